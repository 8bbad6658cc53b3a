from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from hallmark import db
from hallmark.models.academics import Assignment, ClassTest
from hallmark.models.lesson import Lesson
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.models.subject import Subject
from hallmark.models.teacher import Teacher
from hallmark.routes.main import audit
from hallmark.schemas import TeacherCreate, TeacherUpdate
from hallmark.services.accounts import ensure_email_available, new_user
from hallmark.services.notification_service import NotificationService
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg

bp = Blueprint('teachers', __name__, url_prefix='/api/teachers')

PROFILE_FIELDS = ('title', 'firstname', 'surname', 'othername', 'phone', 'gender', 'birthday',
                  'bloodgroup', 'state', 'lga', 'address', 'section')


def visible_teachers(scope):
    query = scope.filter(Teacher.query, Teacher.school_id)
    if scope.role == 'teacher':
        return query.filter(Teacher.id == (scope.teacher.id if scope.teacher else None))
    if scope.role in ('student', 'parent'):
        class_ids = scope.class_ids()
        masters = {c.formmaster_id for c in SchoolClass.query.filter(SchoolClass.id.in_(class_ids))}
        lesson_teachers = {row[0] for row in Lesson.query.with_entities(Lesson.teacher_id)
                           .filter(Lesson.class_id.in_(class_ids)).distinct()}
        return query.filter(Teacher.id.in_(list((masters | lesson_teachers) - {None})))
    return query


def blocking_relations(teacher):
    """Records that keep a teacher from being deleted."""
    relations = {
        'classes': SchoolClass.query.filter_by(formmaster_id=teacher.id).count(),
        'subjects': Subject.query.filter_by(teacher_id=teacher.id).count(),
        'lessons': Lesson.query.filter_by(teacher_id=teacher.id).count(),
        'assignments': Assignment.query.filter_by(teacher_id=teacher.id).count(),
        'tests': ClassTest.query.filter_by(teacher_id=teacher.id).count(),
    }
    return {name: count for name, count in relations.items() if count}


def _phone_taken(school_id, phone, exclude_id=None):
    if not phone:
        return False
    query = Teacher.query.filter_by(school_id=school_id, phone=phone)
    if exclude_id:
        query = query.filter(Teacher.id != exclude_id)
    return query.first() is not None


def _assign_subjects(teacher, subject_ids):
    subjects = Subject.query.filter(Subject.id.in_(subject_ids), Subject.school_id == teacher.school_id).all()
    if len(subjects) != len(set(subject_ids)):
        return error_response(400, 'Bad Request', 'Subjects must belong to the teacher\'s school')
    for subject in subjects:
        subject.teacher = teacher
    return None


def _delete_teacher(teacher):
    user = teacher.user
    db.session.delete(teacher)
    if user is not None:
        db.session.delete(user)


@bp.route('', methods=['GET'])
@login_required
def list_teachers():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_teachers(scope)
    school_id = int_arg('school_id')
    if school_id and scope.is_admin:
        query = query.filter(Teacher.school_id == school_id)
    search = request.args.get('search', '').strip()
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(db.or_(db.func.lower(Teacher.firstname).like(like),
                                    db.func.lower(Teacher.surname).like(like)))

    teachers = query.order_by(Teacher.surname.asc(), Teacher.firstname.asc()).all()
    return list_response([t.to_dict() for t in teachers])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_teacher():
    payload = TeacherCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(404, 'Not Found', 'School not found')

    ensure_email_available(payload.email)
    if _phone_taken(school_id, payload.phone):
        return error_response(409, 'Conflict', 'A teacher with this phone number already exists in this school')

    password = payload.password or current_app.config['DEFAULT_PASSWORD']
    user = new_user('teacher', email=payload.email, password=password, school_id=school_id)
    teacher = Teacher(user=user, school_id=school_id,
                      **{field: getattr(payload, field) for field in PROFILE_FIELDS})
    db.session.add(teacher)
    db.session.flush()

    if payload.subject_ids:
        error = _assign_subjects(teacher, payload.subject_ids)
        if error:
            db.session.rollback()
            return error

    db.session.commit()
    audit('create_teacher', f'Created teacher {teacher.full_name}')
    NotificationService.notify_account_created(user, password=password, created_by=current_user.display_name)
    return jsonify({'data': teacher.to_dict(detail=True)}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_teachers():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    teachers = current_scope().filter(Teacher.query, Teacher.school_id).filter(Teacher.id.in_(ids)).all()
    if not teachers:
        return error_response(404, 'Not Found', 'No matching teachers found')

    deletable, blocked = [], []
    for teacher in teachers:
        relations = blocking_relations(teacher)
        if relations:
            blocked.append({'id': teacher.id, 'name': teacher.full_name, 'relations': relations})
        else:
            deletable.append(teacher)

    if not deletable:
        return error_response(400, 'Bad Request', 'None of the selected teachers can be deleted', blocked=blocked)

    deleted = [t.id for t in deletable]
    for teacher in deletable:
        _delete_teacher(teacher)
    db.session.commit()

    audit('delete_teachers', f'Deleted teachers {deleted}')
    message = f"Deleted {len(deleted)} teacher(s)"
    if blocked:
        message += f"; {len(blocked)} could not be deleted"
    return jsonify({'deleted': len(deleted), 'ids': deleted, 'blocked': blocked, 'message': message})


@bp.route('/<int:teacher_id>', methods=['GET'])
@login_required
def get_teacher(teacher_id):
    teacher = visible_teachers(current_scope()).filter(Teacher.id == teacher_id).first()
    if not teacher:
        return error_response(404, 'Not Found', 'Teacher not found')
    return jsonify({'data': teacher.to_dict(detail=True)})


@bp.route('/<int:teacher_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management', 'teacher')
def update_teacher(teacher_id):
    scope = current_scope()
    teacher = visible_teachers(scope).filter(Teacher.id == teacher_id).first()
    if not teacher:
        return error_response(404, 'Not Found', 'Teacher not found')

    changes = TeacherUpdate.model_validate(json_body()).model_dump(exclude_unset=True)
    if scope.role == 'teacher':
        # Teachers may edit their own profile details only
        changes.pop('active', None)
        changes.pop('subject_ids', None)

    if 'email' in changes:
        ensure_email_available(changes['email'], exclude_user_id=teacher.user_id)
        teacher.user.email = changes.pop('email').lower()
    if 'phone' in changes and _phone_taken(teacher.school_id, changes['phone'], exclude_id=teacher.id):
        return error_response(409, 'Conflict', 'A teacher with this phone number already exists in this school')
    if 'active' in changes:
        teacher.user.active = changes.pop('active')
    subject_ids = changes.pop('subject_ids', None)
    if subject_ids is not None:
        error = _assign_subjects(teacher, subject_ids)
        if error:
            db.session.rollback()
            return error

    for field, value in changes.items():
        setattr(teacher, field, value)
    db.session.commit()

    audit('update_teacher', f'Updated teacher {teacher.id}')
    return jsonify({'data': teacher.to_dict(detail=True)})


@bp.route('/<int:teacher_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_teacher(teacher_id):
    teacher = current_scope().filter(Teacher.query, Teacher.school_id).filter(Teacher.id == teacher_id).first()
    if not teacher:
        return error_response(404, 'Not Found', 'Teacher not found')

    relations = blocking_relations(teacher)
    if relations:
        return error_response(400, 'Bad Request', 'Teacher still has linked records', relations=relations)

    _delete_teacher(teacher)
    db.session.commit()
    audit('delete_teacher', f'Deleted teacher {teacher_id}')
    return jsonify({'message': 'Teacher deleted'})
