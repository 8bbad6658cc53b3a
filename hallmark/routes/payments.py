from flask import Blueprint, jsonify, request
from flask_login import login_required

from hallmark import db
from hallmark.models.payment import Payment, PaymentSetup
from hallmark.models.school import School
from hallmark.models.student import Student
from hallmark.routes.main import audit
from hallmark.schemas import PaymentCreate, PaymentUpdate, PaymentSetupCreate
from hallmark.services.notification_service import NotificationService
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, json_body, empty_list_response, int_arg, paginate

bp = Blueprint('payments', __name__, url_prefix='/api/payments')
setups_bp = Blueprint('payment_setups', __name__, url_prefix='/api/payment-setups')

VIEW_ROLES = ('super', 'admin', 'management', 'student', 'parent')


def visible_payments(scope):
    query = scope.filter(Payment.query, Payment.school_id)
    if scope.role == 'student':
        return query.filter(Payment.student_id == (scope.student.id if scope.student else None))
    if scope.role == 'parent':
        return query.filter(Payment.student_id.in_([child.id for child in scope.children]))
    return query


def derive_status(school_id, session, term, amount):
    """PAID when the term's fees are covered, PARTIAL when part payment is allowed."""
    setup = PaymentSetup.query.filter_by(school_id=school_id, session=session, term=term).first()
    if setup is None:
        return 'PENDING'
    if amount >= float(setup.amount):
        return 'PAID'
    return 'PARTIAL' if setup.partpayment else 'PENDING'


@bp.route('', methods=['GET'])
@roles_required(*VIEW_ROLES)
def list_payments():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_payments(scope)
    for arg, column in (('session', Payment.session), ('term', Payment.term), ('status', Payment.status)):
        value = request.args.get(arg, '').strip()
        if value:
            query = query.filter(column == value)
    student_id = int_arg('student_id')
    if student_id:
        query = query.filter(Payment.student_id == student_id)

    payments, pagination = paginate(query.order_by(Payment.created_at.desc(), Payment.id.desc()))
    return list_response([p.to_dict() for p in payments], pagination['total'], pagination=pagination)


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_payment():
    scope = current_scope()
    payload = PaymentCreate.model_validate(json_body())
    student = db.session.get(Student, payload.student_id)
    if not student or not scope.owns(student.school_id):
        return error_response(400, 'Bad Request', 'Student not found')

    payment = Payment(
        student_id=student.id,
        school_id=student.school_id,
        session=payload.session,
        term=payload.term,
        amount=payload.amount,
        status=payload.status or derive_status(student.school_id, payload.session, payload.term, payload.amount),
    )
    db.session.add(payment)
    db.session.commit()

    audit('create_payment', f'Recorded payment {payment.id} for {student.admission_number}')
    NotificationService.notify_payment(payment)
    return jsonify({'data': payment.to_dict()}), 201


@bp.route('/<int:payment_id>', methods=['GET'])
@roles_required(*VIEW_ROLES)
def get_payment(payment_id):
    payment = visible_payments(current_scope()).filter(Payment.id == payment_id).first()
    if not payment:
        return error_response(404, 'Not Found', 'Payment not found')
    return jsonify({'data': payment.to_dict()})


@bp.route('/<int:payment_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_payment(payment_id):
    payment = Payment.query.get_or_404(payment_id)
    current_scope().require(payment.school_id)
    changes = PaymentUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    previous_status = payment.status
    if 'amount' in changes:
        payment.amount = changes['amount']
        if 'status' not in changes:
            payment.status = derive_status(payment.school_id, payment.session, payment.term, changes['amount'])
    if changes.get('status'):
        payment.status = changes['status']
    db.session.commit()

    audit('update_payment', f'Updated payment {payment.id}')
    if payment.status != previous_status:
        NotificationService.notify_payment(payment)
    return jsonify({'data': payment.to_dict()})


@bp.route('/<int:payment_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_payment(payment_id):
    payment = Payment.query.get_or_404(payment_id)
    current_scope().require(payment.school_id)
    db.session.delete(payment)
    db.session.commit()
    audit('delete_payment', f'Deleted payment {payment_id}')
    return jsonify({'message': 'Payment deleted'})


@setups_bp.route('', methods=['GET'])
@login_required
def list_setups():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()
    setups = scope.filter(PaymentSetup.query, PaymentSetup.school_id)\
                  .order_by(PaymentSetup.session.desc(), PaymentSetup.term.asc()).all()
    return list_response([s.to_dict() for s in setups])


@setups_bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_setup():
    payload = PaymentSetupCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    existing = PaymentSetup.query.filter_by(school_id=school_id, session=payload.session, term=payload.term).first()
    if existing:
        return error_response(409, 'Conflict', 'Fees are already set up for this term', existingId=existing.id)

    setup = PaymentSetup(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    db.session.add(setup)
    db.session.commit()
    audit('create_payment_setup', f'Set up fees for {setup.term} term {setup.session}')
    return jsonify({'data': setup.to_dict()}), 201


@setups_bp.route('/<int:setup_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_setup(setup_id):
    setup = PaymentSetup.query.get_or_404(setup_id)
    current_scope().require(setup.school_id)
    db.session.delete(setup)
    db.session.commit()
    audit('delete_payment_setup', f'Deleted payment setup {setup_id}')
    return jsonify({'message': 'Payment setup deleted'})
