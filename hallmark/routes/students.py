from flask import Blueprint, current_app, jsonify, request, send_file
from flask_login import login_required, current_user
from datetime import datetime

from hallmark import db
from hallmark.models.academics import Answer, Submission, assignment_students
from hallmark.models.parent import Parent
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.models.student import Student
from hallmark.routes.main import audit
from hallmark.schemas import StudentCreate, StudentUpdate
from hallmark.services.accounts import ensure_email_available, generate_admission_number, new_user
from hallmark.services.grading_service import purge_student_results
from hallmark.services.notification_service import NotificationService
from hallmark.services.report_service import students_workbook, XLSX_MIMETYPE
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg

bp = Blueprint('students', __name__, url_prefix='/api/students')

PROFILE_FIELDS = ('firstname', 'surname', 'othername', 'phone', 'gender', 'birthday', 'religion',
                  'studenttype', 'house', 'bloodgroup', 'address', 'state', 'lga', 'section')


def visible_students(scope):
    query = scope.filter(Student.query, Student.school_id)
    if scope.role == 'teacher':
        return query.filter(Student.class_id.in_(scope.form_class_ids()))
    if scope.role == 'student':
        return query.filter(Student.id == (scope.student.id if scope.student else None))
    if scope.role == 'parent':
        return query.filter(Student.parent_id == (scope.parent.id if scope.parent else None))
    return query


def _filtered_query(scope):
    query = visible_students(scope)
    class_id = int_arg('class_id')
    if class_id:
        query = query.filter(Student.class_id == class_id)
    school_id = int_arg('school_id')
    if school_id and scope.is_global:
        query = query.filter(Student.school_id == school_id)
    search = request.args.get('search', '').strip()
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(db.or_(db.func.lower(Student.firstname).like(like),
                                    db.func.lower(Student.surname).like(like),
                                    db.func.lower(Student.admission_number).like(like)))
    return query.order_by(Student.surname.asc(), Student.created_at.desc())


def _delete_students(students):
    ids = [s.id for s in students]
    purge_student_results(ids)
    Submission.query.filter(Submission.student_id.in_(ids)).delete(synchronize_session=False)
    Answer.query.filter(Answer.student_id.in_(ids)).delete(synchronize_session=False)
    db.session.execute(assignment_students.delete().where(assignment_students.c.student_id.in_(ids)))
    for student in students:
        user = student.user
        db.session.delete(student)
        if user is not None:
            db.session.delete(user)


@bp.route('', methods=['GET'])
@login_required
def list_students():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()
    students = _filtered_query(scope).all()
    return list_response([s.to_dict() for s in students])


@bp.route('/export', methods=['GET'])
@roles_required('super', 'admin', 'management', 'teacher')
def export_students():
    scope = current_scope()
    students = _filtered_query(scope).all()
    school = db.session.get(School, scope.school_ids[0]) if scope.school_ids else None
    title = f"{school.name} students" if school else "Students"

    audit('export_students', f'Exported {len(students)} students')
    output = students_workbook(title, students)
    return send_file(
        output,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"students_{datetime.utcnow():%Y%m%d}.xlsx",
    )


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management', 'teacher')
def create_student():
    scope = current_scope()
    payload = StudentCreate.model_validate(json_body())
    school_id = scope.school_for_write(payload.school_id)

    school = db.session.get(School, school_id)
    if not school:
        return error_response(400, 'Bad Request', 'School not found')

    school_class = db.session.get(SchoolClass, payload.class_id)
    if not school_class or school_class.school_id != school_id:
        return error_response(400, 'Bad Request', 'Class not found')
    if scope.role == 'teacher' and school_class.id not in scope.form_class_ids():
        return error_response(403, 'Forbidden', 'Teachers can only add students to classes they are form master of')
    if school_class.is_full():
        return error_response(400, 'Bad Request', 'Class capacity reached')

    if payload.parent_id and not db.session.get(Parent, payload.parent_id):
        return error_response(400, 'Bad Request', 'Parent not found')
    ensure_email_available(payload.email)

    password = payload.password or current_app.config['DEFAULT_PASSWORD']
    user = new_user('student', email=payload.email, password=password, school_id=school_id)
    student = Student(
        user=user,
        school_id=school_id,
        class_id=school_class.id,
        parent_id=payload.parent_id,
        admission_number=generate_admission_number(school),
        **{field: getattr(payload, field) for field in PROFILE_FIELDS},
    )
    if payload.admission_date:
        student.admission_date = payload.admission_date
    db.session.add(student)
    db.session.commit()

    audit('create_student', f'Created student {student.admission_number}')
    NotificationService.notify_account_created(user, password=password, created_by=current_user.display_name)
    return jsonify({'data': student.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management', 'teacher')
def delete_students():
    scope = current_scope()
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    students = Student.query.filter(Student.id.in_(ids)).all()
    missing = sorted(set(ids) - {s.id for s in students})
    if missing:
        return error_response(404, 'Not Found', 'Some students were not found', missing=missing)

    if any(not scope.owns(s.school_id) for s in students):
        return error_response(403, 'Forbidden', 'Students belong to another school')
    if scope.role == 'teacher':
        allowed = set(scope.form_class_ids())
        if any(s.class_id not in allowed for s in students):
            return error_response(403, 'Forbidden', 'Teachers can only delete students in their own classes')

    _delete_students(students)
    db.session.commit()
    audit('delete_students', f'Deleted students {ids}')
    return jsonify({'deleted': len(ids), 'ids': ids})


@bp.route('/<int:student_id>', methods=['GET'])
@login_required
def get_student(student_id):
    student = visible_students(current_scope()).filter(Student.id == student_id).first()
    if not student:
        return error_response(404, 'Not Found', 'Student not found')
    data = student.to_dict()
    data['parent'] = student.parent.to_dict(minimal=True) if student.parent else None
    return jsonify({'data': data})


@bp.route('/<int:student_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management', 'teacher')
def update_student(student_id):
    scope = current_scope()
    student = visible_students(scope).filter(Student.id == student_id).first()
    if not student:
        return error_response(404, 'Not Found', 'Student not found')

    changes = StudentUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    if 'class_id' in changes and changes['class_id'] != student.class_id:
        new_class = db.session.get(SchoolClass, changes['class_id'])
        if not new_class or new_class.school_id != student.school_id:
            return error_response(400, 'Bad Request', 'Class not found')
        if scope.role == 'teacher' and new_class.id not in scope.form_class_ids():
            return error_response(403, 'Forbidden', 'Teachers can only move students into their own classes')
        if new_class.is_full():
            return error_response(400, 'Bad Request', 'Class capacity reached')
    if changes.get('parent_id') and not db.session.get(Parent, changes['parent_id']):
        return error_response(400, 'Bad Request', 'Parent not found')
    if 'email' in changes:
        ensure_email_available(changes['email'], exclude_user_id=student.user_id)
        email = changes.pop('email')
        student.user.email = email.lower() if email else None
    if 'active' in changes:
        student.user.active = changes.pop('active')

    for field, value in changes.items():
        setattr(student, field, value)
    db.session.commit()

    audit('update_student', f'Updated student {student.admission_number}')
    return jsonify({'data': student.to_dict()})


@bp.route('/<int:student_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management', 'teacher')
def delete_student(student_id):
    scope = current_scope()
    student = Student.query.get_or_404(student_id)
    scope.require(student.school_id)
    if scope.role == 'teacher' and student.class_id not in scope.form_class_ids():
        return error_response(403, 'Forbidden', 'Teachers can only delete students in their own classes')

    _delete_students([student])
    db.session.commit()
    audit('delete_student', f'Deleted student {student_id}')
    return jsonify({'message': 'Student deleted'})
