from flask import Blueprint, jsonify, request
from flask_login import login_required

from hallmark import db
from hallmark.models.academics import Assignment, ClassTest
from hallmark.models.grading import StudentGrade
from hallmark.models.lesson import Lesson
from hallmark.models.notice import Event, Announcement
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.models.student import Student
from hallmark.models.teacher import Teacher
from hallmark.routes.main import audit
from hallmark.schemas import ClassCreate, ClassUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response, int_arg

bp = Blueprint('classes', __name__, url_prefix='/api/classes')


def visible_classes(scope):
    query = scope.filter(SchoolClass.query, SchoolClass.school_id)
    class_ids = scope.class_ids()
    if class_ids is not None:
        query = query.filter(SchoolClass.id.in_(class_ids))
    return query


def blocking_relations(school_class):
    relations = {
        'students': Student.query.filter_by(class_id=school_class.id).count(),
        'assignments': Assignment.query.filter_by(class_id=school_class.id).count(),
        'tests': ClassTest.query.filter_by(class_id=school_class.id).count(),
        'grades': StudentGrade.query.filter_by(class_id=school_class.id).count(),
    }
    return {name: count for name, count in relations.items() if count}


def _name_taken(school_id, name, exclude_id=None):
    query = SchoolClass.query.filter(SchoolClass.school_id == school_id,
                                     db.func.lower(SchoolClass.name) == name.lower())
    if exclude_id:
        query = query.filter(SchoolClass.id != exclude_id)
    return query.first() is not None


def _check_formmaster(formmaster_id, school_id):
    teacher = db.session.get(Teacher, formmaster_id)
    if not teacher or teacher.school_id != school_id:
        return error_response(400, 'Bad Request', 'Form master not found in this school')
    return None


def _delete_classes(classes):
    ids = [c.id for c in classes]
    Lesson.query.filter(Lesson.class_id.in_(ids)).delete(synchronize_session=False)
    for model in (Event, Announcement):
        model.query.filter(model.class_id.in_(ids)).update({'class_id': None}, synchronize_session=False)
    for school_class in classes:
        db.session.delete(school_class)


@bp.route('', methods=['GET'])
@login_required
def list_classes():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_classes(scope)
    school_id = int_arg('school_id')
    if school_id and scope.is_global:
        query = query.filter(SchoolClass.school_id == school_id)
    level = request.args.get('level', '').strip()
    if level:
        query = query.filter(SchoolClass.level == level)
    search = request.args.get('search', '').strip()
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(db.or_(db.func.lower(SchoolClass.name).like(like),
                                    db.func.lower(SchoolClass.category).like(like),
                                    db.func.lower(SchoolClass.level).like(like)))

    classes = query.order_by(SchoolClass.name.asc()).all()
    return list_response([c.to_dict() for c in classes])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_class():
    payload = ClassCreate.model_validate(json_body())
    school_id = current_scope().school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')

    if _name_taken(school_id, payload.name):
        return error_response(409, 'Conflict', 'A class with this name already exists in this school')
    if payload.formmaster_id:
        error = _check_formmaster(payload.formmaster_id, school_id)
        if error:
            return error

    school_class = SchoolClass(school_id=school_id, **payload.model_dump(exclude={'school_id'}))
    db.session.add(school_class)
    db.session.commit()
    audit('create_class', f'Created class {school_class.name}')
    return jsonify({'data': school_class.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_classes():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    classes = current_scope().filter(SchoolClass.query, SchoolClass.school_id).filter(SchoolClass.id.in_(ids)).all()
    if not classes:
        return error_response(404, 'Not Found', 'No matching classes found')

    deletable, blocked = [], []
    for school_class in classes:
        relations = blocking_relations(school_class)
        if relations:
            blocked.append({'id': school_class.id, 'name': school_class.name, 'relations': relations})
        else:
            deletable.append(school_class)

    if not deletable:
        return error_response(400, 'Bad Request', 'Classes with enrolled students cannot be deleted', blocked=blocked)

    deleted = [c.id for c in deletable]
    _delete_classes(deletable)
    db.session.commit()
    audit('delete_classes', f'Deleted classes {deleted}')
    return jsonify({'deleted': len(deleted), 'ids': deleted, 'blocked': blocked})


@bp.route('/<int:class_id>', methods=['GET'])
@login_required
def get_class(class_id):
    school_class = visible_classes(current_scope()).filter(SchoolClass.id == class_id).first()
    if not school_class:
        return error_response(404, 'Not Found', 'Class not found')
    return jsonify({'data': school_class.to_dict(detail=True)})


@bp.route('/<int:class_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_class(class_id):
    school_class = SchoolClass.query.get_or_404(class_id)
    current_scope().require(school_class.school_id)
    changes = ClassUpdate.model_validate(json_body()).model_dump(exclude_unset=True)

    if 'name' in changes and _name_taken(school_class.school_id, changes['name'], exclude_id=school_class.id):
        return error_response(409, 'Conflict', 'A class with this name already exists in this school')
    if changes.get('formmaster_id'):
        error = _check_formmaster(changes['formmaster_id'], school_class.school_id)
        if error:
            return error
    if changes.get('capacity') and changes['capacity'] < len(school_class.students):
        return error_response(400, 'Bad Request', 'Capacity cannot be lower than the number of enrolled students')

    for field, value in changes.items():
        setattr(school_class, field, value)
    db.session.commit()
    audit('update_class', f'Updated class {school_class.name}')
    return jsonify({'data': school_class.to_dict()})


@bp.route('/<int:class_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_class(class_id):
    school_class = SchoolClass.query.get_or_404(class_id)
    current_scope().require(school_class.school_id)

    relations = blocking_relations(school_class)
    if relations:
        message = 'Class has enrolled students' if 'students' in relations else 'Class still has linked records'
        return error_response(400, 'Bad Request', message, relations=relations)

    _delete_classes([school_class])
    db.session.commit()
    audit('delete_class', f'Deleted class {class_id}')
    return jsonify({'message': 'Class deleted'})
