from flask import Blueprint, jsonify, request
from flask_login import login_required

from hallmark import db
from hallmark.models.academics import Assignment, ClassTest
from hallmark.models.grading import StudentGrade
from hallmark.models.lesson import Lesson
from hallmark.models.school import School
from hallmark.models.subject import Subject
from hallmark.models.teacher import Teacher
from hallmark.routes.main import audit
from hallmark.schemas import SubjectCreate, SubjectUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg

bp = Blueprint('subjects', __name__, url_prefix='/api/subjects')


def visible_subjects(scope):
    query = scope.filter(Subject.query, Subject.school_id)
    if scope.role == 'teacher':
        return query.filter(Subject.teacher_id == (scope.teacher.id if scope.teacher else None))
    if scope.role in ('student', 'parent'):
        taught = [row[0] for row in Lesson.query.with_entities(Lesson.subject_id)
                  .filter(Lesson.class_id.in_(scope.class_ids())).distinct()]
        return query.filter(Subject.id.in_(taught))
    return query


def blocking_relations(subject):
    relations = {
        'lessons': Lesson.query.filter_by(subject_id=subject.id).count(),
        'assignments': Assignment.query.filter_by(subject_id=subject.id).count(),
        'tests': ClassTest.query.filter_by(subject_id=subject.id).count(),
        'grades': StudentGrade.query.filter_by(subject_id=subject.id).count(),
    }
    return {name: count for name, count in relations.items() if count}


def _name_taken(school_id, name, exclude_id=None):
    query = Subject.query.filter(Subject.school_id == school_id, db.func.lower(Subject.name) == name.lower())
    if exclude_id:
        query = query.filter(Subject.id != exclude_id)
    return query.first() is not None


def _check_teacher(teacher_id, school_id):
    teacher = db.session.get(Teacher, teacher_id)
    if not teacher or teacher.school_id != school_id:
        return error_response(400, 'Bad Request', 'Teacher does not belong to this school')
    return None


@bp.route('', methods=['GET'])
@login_required
def list_subjects():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_subjects(scope)
    school_id = int_arg('school_id')
    if school_id and scope.is_global:
        query = query.filter(Subject.school_id == school_id)
    category = request.args.get('category', '').strip()
    if category:
        query = query.filter(Subject.category == category)
    search = request.args.get('search', '').strip()
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(db.or_(db.func.lower(Subject.name).like(like),
                                    db.func.lower(Subject.category).like(like)))

    subjects = query.order_by(Subject.name.asc()).all()
    return list_response([s.to_dict() for s in subjects])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_subject():
    payload = SubjectCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    if _name_taken(school_id, payload.name):
        return error_response(409, 'Conflict', 'A subject with this name already exists in this school')
    if payload.teacher_id:
        error = _check_teacher(payload.teacher_id, school_id)
        if error:
            return error

    subject = Subject(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    db.session.add(subject)
    db.session.commit()
    audit('create_subject', f'Created subject {subject.name}')
    return jsonify({'data': subject.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_subjects():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    subjects = current_scope().filter(Subject.query, Subject.school_id).filter(Subject.id.in_(ids)).all()
    if not subjects:
        return error_response(404, 'Not Found', 'No matching subjects found')

    deletable, blocked = [], []
    for subject in subjects:
        relations = blocking_relations(subject)
        if relations:
            blocked.append({'id': subject.id, 'name': subject.name, 'relations': relations})
        else:
            deletable.append(subject)

    if not deletable:
        return error_response(400, 'Bad Request', 'Subjects with lessons, assignments or tests cannot be deleted',
                              blocked=blocked)

    for subject in deletable:
        db.session.delete(subject)
    db.session.commit()
    audit('delete_subjects', f'Deleted subjects {[s.id for s in deletable]}')
    return jsonify({'deleted': len(deletable), 'blocked': blocked})


@bp.route('/<int:subject_id>', methods=['GET'])
@login_required
def get_subject(subject_id):
    subject = visible_subjects(current_scope()).filter(Subject.id == subject_id).first()
    if not subject:
        return error_response(404, 'Not Found', 'Subject not found')
    data = subject.to_dict()
    data['lessons'] = [lesson.to_dict() for lesson in subject.lessons]
    return jsonify({'data': data})


@bp.route('/<int:subject_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_subject(subject_id):
    subject = Subject.query.get_or_404(subject_id)
    current_scope().require(subject.school_id)
    changes = SubjectUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    if 'name' in changes and _name_taken(subject.school_id, changes['name'], exclude_id=subject.id):
        return error_response(409, 'Conflict', 'A subject with this name already exists in this school')
    if changes.get('teacher_id'):
        error = _check_teacher(changes['teacher_id'], subject.school_id)
        if error:
            return error

    for field, value in changes.items():
        setattr(subject, field, value)
    db.session.commit()
    audit('update_subject', f'Updated subject {subject.name}')
    return jsonify({'data': subject.to_dict()})


@bp.route('/<int:subject_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_subject(subject_id):
    subject = Subject.query.get_or_404(subject_id)
    current_scope().require(subject.school_id)

    relations = blocking_relations(subject)
    if relations:
        return error_response(400, 'Bad Request', 'Subject still has lessons, assignments or tests',
                              relations=relations)

    db.session.delete(subject)
    db.session.commit()
    audit('delete_subject', f'Deleted subject {subject_id}')
    return jsonify({'message': 'Subject deleted'})
