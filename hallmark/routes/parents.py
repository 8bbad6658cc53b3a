from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from hallmark import db
from hallmark.models.parent import Parent
from hallmark.models.student import Student
from hallmark.routes.main import audit
from hallmark.schemas import ParentCreate, ParentUpdate
from hallmark.services.accounts import ensure_email_available, new_user
from hallmark.services.notification_service import NotificationService
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import (
    error_response, list_response, parse_ids, json_body, empty_list_response, int_arg, bool_arg, paginate,
)

bp = Blueprint('parents', __name__, url_prefix='/api/parents')

PROFILE_FIELDS = ('title', 'firstname', 'surname', 'othername', 'phone', 'gender', 'birthday', 'bloodgroup',
                  'occupation', 'religion', 'state', 'lga', 'address')


def visible_parents(scope):
    query = Parent.query
    if scope.role == 'parent':
        return query.filter(Parent.id == (scope.parent.id if scope.parent else None))
    if scope.role == 'student':
        return query.filter(Parent.id == (scope.student.parent_id if scope.student else None))
    if scope.is_global:
        return query
    return query.filter(db.or_(
        Parent.school_id.in_(scope.school_ids),
        Parent.children.any(Student.school_id.in_(scope.school_ids)),
    ))


def fully_owned(scope, parent):
    """True when the parent's registering school and every child's school are in scope.

    A parent shared with another school is visible to both, but only a scope
    that owns all of it may delete the account or edit its profile.
    """
    if scope.is_global or scope.role == 'parent':
        return True
    school_ids = parent.school_ids
    return bool(school_ids) and all(scope.owns(school_id) for school_id in school_ids)


def _link_students(parent, student_ids, scope):
    students = scope.filter(Student.query, Student.school_id).filter(Student.id.in_(student_ids)).all()
    if len(students) != len(set(student_ids)):
        return error_response(400, 'Bad Request', 'Some students were not found')
    for student in students:
        student.parent = parent
    return None


def _delete_parents(parents):
    for parent in parents:
        for child in list(parent.children):
            child.parent_id = None
        user = parent.user
        db.session.delete(parent)
        if user is not None:
            db.session.delete(user)


@bp.route('', methods=['GET'])
@login_required
def list_parents():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()

    query = visible_parents(scope)
    student_id = int_arg('student_id')
    if student_id:
        query = query.filter(Parent.children.any(Student.id == student_id))
    query = query.order_by(Parent.surname.asc(), Parent.firstname.asc())
    minimal = bool_arg('minimal')

    if request.args.get('page') or request.args.get('limit'):
        parents, pagination = paginate(query, default_limit=50, max_limit=500)
        return list_response([p.to_dict(minimal=minimal) for p in parents], pagination['total'],
                             pagination=pagination)
    parents = query.all()
    return list_response([p.to_dict(minimal=minimal) for p in parents])


@bp.route('', methods=['POST'])
@roles_required('super', 'admin', 'management')
def create_parent():
    scope = current_scope()
    payload = ParentCreate.model_validate(json_body())
    school_id = None if scope.is_global else scope.school_for_write()
    ensure_email_available(payload.email)

    password = payload.password or current_app.config['DEFAULT_PASSWORD']
    user = new_user('parent', email=payload.email, password=password, school_id=school_id)
    parent = Parent(user=user, school_id=school_id, **{field: getattr(payload, field) for field in PROFILE_FIELDS})
    db.session.add(parent)
    db.session.flush()

    if payload.student_ids:
        error = _link_students(parent, payload.student_ids, scope)
        if error:
            db.session.rollback()
            return error
        if parent.school_id is None:
            parent.school_id = parent.children[0].school_id

    db.session.commit()
    audit('create_parent', f'Created parent {parent.full_name}')
    NotificationService.notify_account_created(user, password=password, created_by=current_user.display_name)
    return jsonify({'data': parent.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_parents():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    scope = current_scope()
    parents = visible_parents(scope).filter(Parent.id.in_(ids)).all()
    if not parents:
        return error_response(404, 'Not Found', 'No matching parents found')

    deletable, blocked = [], []
    for parent in parents:
        if fully_owned(scope, parent):
            deletable.append(parent)
        else:
            blocked.append({'id': parent.id, 'name': parent.full_name, 'school_ids': parent.school_ids})

    if not deletable:
        return error_response(403, 'Forbidden', 'Parents linked to other schools cannot be deleted',
                              blocked=blocked)

    deleted = [p.id for p in deletable]
    _delete_parents(deletable)
    db.session.commit()
    audit('delete_parents', f'Deleted parents {deleted}')
    return jsonify({'deleted': len(deleted), 'ids': deleted, 'blocked': blocked})


@bp.route('/<int:parent_id>', methods=['GET'])
@login_required
def get_parent(parent_id):
    parent = visible_parents(current_scope()).filter(Parent.id == parent_id).first()
    if not parent:
        return error_response(404, 'Not Found', 'Parent not found')
    return jsonify({'data': parent.to_dict()})


@bp.route('/<int:parent_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management', 'parent')
def update_parent(parent_id):
    scope = current_scope()
    parent = visible_parents(scope).filter(Parent.id == parent_id).first()
    if not parent:
        return error_response(404, 'Not Found', 'Parent not found')

    changes = ParentUpdate.model_validate(json_body()).model_dump(exclude_unset=True)
    if scope.role == 'parent':
        changes.pop('active', None)
        changes.pop('student_ids', None)
    elif not fully_owned(scope, parent) and set(changes) - {'student_ids'}:
        return error_response(403, 'Forbidden', 'Parents linked to other schools can only have children linked')

    if 'email' in changes:
        ensure_email_available(changes['email'], exclude_user_id=parent.user_id)
        parent.user.email = changes.pop('email').lower()
    if 'active' in changes:
        parent.user.active = changes.pop('active')
    student_ids = changes.pop('student_ids', None)
    if student_ids is not None:
        for child in list(parent.children):
            if scope.owns(child.school_id):
                child.parent_id = None
        error = _link_students(parent, student_ids, scope)
        if error:
            db.session.rollback()
            return error

    for field, value in changes.items():
        setattr(parent, field, value)
    db.session.commit()

    audit('update_parent', f'Updated parent {parent.id}')
    return jsonify({'data': parent.to_dict()})


@bp.route('/<int:parent_id>', methods=['DELETE'])
@roles_required('super', 'admin', 'management')
def delete_parent(parent_id):
    scope = current_scope()
    parent = visible_parents(scope).filter(Parent.id == parent_id).first()
    if not parent:
        return error_response(404, 'Not Found', 'Parent not found')
    if not fully_owned(scope, parent):
        return error_response(403, 'Forbidden', 'Parent is linked to another school')

    _delete_parents([parent])
    db.session.commit()
    audit('delete_parent', f'Deleted parent {parent_id}')
    return jsonify({'message': 'Parent deleted'})
