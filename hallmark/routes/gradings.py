from flask import Blueprint, current_app, jsonify, request, send_file
from flask_login import login_required

from hallmark import db
from hallmark.models.grading import (
    Assessment, Grading, GradingPolicy, ReportCard, StudentGrade, StudentTrait, Trait,
)
from hallmark.models.school import School
from hallmark.models.student import Student
from hallmark.models.subject import Subject
from hallmark.routes.main import audit
from hallmark.schemas import GradingCreate, GradingUpdate, GradingPolicyCreate, ScoreSheet
from hallmark.services.grading_service import delete_gradings, record_scores
from hallmark.services.notification_service import NotificationService
from hallmark.services.report_service import report_card_pdf
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response

bp = Blueprint('gradings', __name__, url_prefix='/api/gradings')
policies_bp = Blueprint('grading_policies', __name__, url_prefix='/api/grading-policies')


def visible_gradings(scope):
    query = scope.filter(Grading.query, Grading.school_id)
    if scope.published_only:
        query = query.filter(Grading.published.is_(True))
    return query


def _duplicate(school_id, session, term, exclude_id=None):
    query = Grading.query.filter_by(school_id=school_id, session=session, term=term)
    if exclude_id:
        query = query.filter(Grading.id != exclude_id)
    return query.first()


def _conflict_response(existing):
    return error_response(409, 'Conflict', 'Grade record already exists.', existingId=existing.id)


def _check_policy(policy_id, school_id):
    policy = db.session.get(GradingPolicy, policy_id)
    if not policy or policy.school_id != school_id:
        return error_response(400, 'Bad Request', 'Grading policy not found in this school')
    return None


def _cascade_delete(ids):
    try:
        counts = delete_gradings(ids)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return counts


@bp.route('', methods=['GET'])
@login_required
def list_gradings():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_gradings(scope)
    for arg, column in (('session', Grading.session), ('term', Grading.term)):
        value = request.args.get(arg, '').strip()
        if value:
            query = query.filter(column == value)

    gradings = query.order_by(Grading.created_at.desc(), Grading.id.desc()).all()
    if not gradings:
        return empty_list_response()
    return list_response([g.to_dict(counts=True) for g in gradings])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_grading():
    payload = GradingCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    existing = _duplicate(school_id, payload.session, payload.term)
    if existing:
        return _conflict_response(existing)
    if payload.grading_policy_id:
        error = _check_policy(payload.grading_policy_id, school_id)
        if error:
            return error

    grading = Grading(school_id=school_id, published=False, **payload.model_dump(exclude={'school_id'}))
    db.session.add(grading)
    db.session.commit()

    audit('create_grading', f'Created grading {grading.title} ({grading.term} {grading.session})')
    return jsonify({'data': grading.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_many():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    found = {g.id for g in current_scope().filter(Grading.query, Grading.school_id).filter(Grading.id.in_(ids))}
    missing = sorted(set(ids) - found)
    if missing:
        return error_response(404, 'Not Found', 'Some gradings were not found', missing=missing)

    counts = _cascade_delete(ids)
    current_app.logger.info(f"Deleted gradings {ids}: {counts}")
    audit('delete_gradings', f'Deleted gradings {ids}')
    return jsonify({'deleted': counts})


@bp.route('/<int:grading_id>', methods=['GET'])
@login_required
def get_grading(grading_id):
    grading = visible_gradings(current_scope()).filter(Grading.id == grading_id).first()
    if not grading:
        return error_response(404, 'Not Found', 'Grading not found')
    data = grading.to_dict(counts=True)
    data['policy'] = grading.policy.to_dict() if grading.policy else None
    return jsonify({'data': data})


@bp.route('/<int:grading_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_grading(grading_id):
    scope = current_scope()
    grading = Grading.query.get_or_404(grading_id)
    scope.require(grading.school_id)
    changes = GradingUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    if 'school_id' in changes:
        if not scope.is_global:
            changes.pop('school_id')
        elif not db.session.get(School, changes['school_id']):
            return error_response(400, 'Bad Request', 'School not found')

    school_id = changes.get('school_id', grading.school_id)
    existing = _duplicate(school_id, changes.get('session', grading.session), changes.get('term', grading.term),
                          exclude_id=grading.id)
    if existing:
        return _conflict_response(existing)
    if changes.get('grading_policy_id'):
        error = _check_policy(changes['grading_policy_id'], school_id)
        if error:
            return error

    newly_published = changes.get('published') is True and not grading.published
    for field, value in changes.items():
        setattr(grading, field, value)
    db.session.commit()

    audit('update_grading', f'Updated grading {grading.id}')
    if newly_published:
        NotificationService.notify_grading_published(grading)
    return jsonify({'data': grading.to_dict()})


@bp.route('/<int:grading_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_one(grading_id):
    grading = Grading.query.get_or_404(grading_id)
    current_scope().require(grading.school_id)

    counts = _cascade_delete([grading.id])
    audit('delete_grading', f'Deleted grading {grading_id}')
    return jsonify({'message': 'Grading deleted', 'deleted': counts})


@bp.route('/<int:grading_id>/scores', methods=['POST'])
@roles_required('super', 'admin', 'management', 'teacher')
def enter_scores(grading_id):
    scope = current_scope()
    grading = Grading.query.get_or_404(grading_id)
    scope.require(grading.school_id)
    sheet = ScoreSheet.model_validate(json_body())

    if scope.role == 'teacher':
        subject_ids = {entry.subject_id for entry in sheet.scores}
        own = {s.id for s in Subject.query.filter(Subject.id.in_(list(subject_ids)),
                                                  Subject.teacher_id == scope.teacher.id)}
        if own != subject_ids:
            return error_response(403, 'Forbidden', 'Teachers can only enter scores for their own subjects')

    try:
        class_ids = record_scores(grading, sheet.scores)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    audit('enter_scores', f'Entered {len(sheet.scores)} score rows for grading {grading.id}')
    return jsonify({'message': 'Scores saved', 'entries': len(sheet.scores), 'classes': class_ids})


@bp.route('/<int:grading_id>/report-card/<int:student_id>', methods=['GET'])
@login_required
def report_card(grading_id, student_id):
    scope = current_scope()
    grading = visible_gradings(scope).filter(Grading.id == grading_id).first()
    if not grading:
        return error_response(404, 'Not Found', 'Grading not found')

    student = Student.query.get_or_404(student_id)
    scope.require(student.school_id)
    if scope.role == 'student' and student.id != scope.student.id:
        return error_response(403, 'Forbidden', 'You can only view your own report card')
    if scope.role == 'parent' and student.parent_id != scope.parent.id:
        return error_response(403, 'Forbidden', 'You can only view report cards of your children')
    if scope.role == 'teacher' and student.class_id not in scope.class_ids():
        return error_response(403, 'Forbidden', 'Student is not in one of your classes')

    grades = StudentGrade.query.filter_by(grading_id=grading.id, student_id=student.id)\
                               .order_by(StudentGrade.subject_id).all()
    traits = StudentTrait.query.filter_by(grading_id=grading.id, student_id=student.id).all()
    card = ReportCard.query.filter_by(grading_id=grading.id, student_id=student.id).first()

    audit('report_card', f'Generated report card for {student.admission_number}, grading {grading.id}')
    output = report_card_pdf(grading.school, grading, student, grades, traits, card)
    return send_file(
        output,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"report_card_{student.admission_number.replace('/', '-')}_{grading.id}.pdf",
    )


@policies_bp.route('', methods=['GET'])
@login_required
def list_policies():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()
    policies = scope.filter(GradingPolicy.query, GradingPolicy.school_id).order_by(GradingPolicy.title.asc()).all()
    return list_response([p.to_dict() for p in policies])


@policies_bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_policy():
    payload = GradingPolicyCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    policy = GradingPolicy(school_id=school_id, title=payload.title, description=payload.description,
                           pass_mark=payload.pass_mark, max_score=payload.max_score)
    policy.assessments = [Assessment(**a.model_dump()) for a in payload.assessments]
    policy.traits = [Trait(**t.model_dump()) for t in payload.traits]
    db.session.add(policy)
    db.session.commit()

    audit('create_grading_policy', f'Created grading policy {policy.title}')
    return jsonify({'data': policy.to_dict()}), 201


@policies_bp.route('/<int:policy_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_policy(policy_id):
    policy = GradingPolicy.query.get_or_404(policy_id)
    current_scope().require(policy.school_id)
    in_use = Grading.query.filter_by(grading_policy_id=policy.id).count()
    if in_use:
        return error_response(400, 'Bad Request', 'Grading policy is used by existing gradings', gradings=in_use)

    db.session.delete(policy)
    db.session.commit()
    audit('delete_grading_policy', f'Deleted grading policy {policy_id}')
    return jsonify({'message': 'Grading policy deleted'})
