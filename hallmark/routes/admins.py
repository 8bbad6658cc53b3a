from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from hallmark import db
from hallmark.models.school import School
from hallmark.models.user import User, ADMIN_ROLES
from hallmark.routes.main import audit
from hallmark.schemas import AdminCreate, AdminUpdate
from hallmark.services.notification_service import NotificationService
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, json_body, empty_list_response

bp = Blueprint('admins', __name__, url_prefix='/api/admins')


def _admin_query():
    scope = current_scope()
    return scope.filter(User.query.filter(User.role.in_(ADMIN_ROLES)), User.school_id)


def _conflict(username, email, exclude_id=None):
    query = User.query.filter(db.or_(User.username == username, db.func.lower(User.email) == email.lower()))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first()


def _check_target(admin):
    """Management users cannot touch super admins."""
    if admin.role == 'super' and current_user.role != 'super':
        return error_response(403, 'Forbidden', 'Only a super admin can manage super admins')
    return None


@bp.route('', methods=['GET'])
@login_required
def list_admins():
    if current_user.role not in ADMIN_ROLES:
        return empty_list_response()

    query = _admin_query()
    search = request.args.get('search', '').strip()
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(db.or_(db.func.lower(User.username).like(like), db.func.lower(User.email).like(like)))

    admins = query.order_by(User.created_at.desc()).all()
    return list_response([a.to_dict() for a in admins])


@bp.route('', methods=['POST'])
@roles_required('super', 'management')
def create_admin():
    payload = AdminCreate.model_validate(json_body())

    if payload.role == 'super' and current_user.role != 'super':
        return error_response(403, 'Forbidden', 'Only a super admin can create super admins')

    school_id = payload.school_id if current_user.role == 'super' else current_user.school_id
    if payload.role == 'super':
        school_id = None
    else:
        if not school_id:
            return error_response(400, 'Bad Request', 'School ID is required for this role')
        if not db.session.get(School, school_id):
            return error_response(404, 'Not Found', 'School not found')

    if _conflict(payload.username, payload.email):
        return error_response(409, 'Conflict', 'Username or email already exists')

    admin = User(
        username=payload.username,
        email=payload.email.lower(),
        role=payload.role,
        section=payload.section,
        school_id=school_id,
        active=True,
    )
    admin.set_password(payload.password)
    db.session.add(admin)
    db.session.commit()

    audit('create_admin', f'Created {admin.role} account {admin.username}')
    NotificationService.notify_account_created(admin, created_by=current_user.display_name)
    return jsonify({'data': admin.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super', 'management')
def delete_admins():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    ids = [i for i in ids if i != current_user.id]
    if not ids:
        return error_response(400, 'Bad Request', 'You cannot delete your own account')

    admins = _admin_query().filter(User.id.in_(ids)).all()
    if current_user.role != 'super':
        admins = [a for a in admins if a.role != 'super']
    if not admins:
        return error_response(404, 'Not Found', 'No matching administrators found')

    deleted = [a.id for a in admins]
    for admin in admins:
        db.session.delete(admin)
    db.session.commit()

    audit('delete_admins', f'Deleted administrators {deleted}')
    return jsonify({'deleted': len(deleted), 'ids': deleted})


@bp.route('/<int:admin_id>', methods=['GET'])
@roles_required('super', 'admin', 'management')
def get_admin(admin_id):
    admin = _admin_query().filter(User.id == admin_id).first()
    if not admin:
        return error_response(404, 'Not Found', 'Administrator not found')
    return jsonify({'data': admin.to_dict()})


@bp.route('/<int:admin_id>', methods=['PUT'])
@roles_required('super', 'management')
def update_admin(admin_id):
    admin = _admin_query().filter(User.id == admin_id).first()
    if not admin:
        return error_response(404, 'Not Found', 'Administrator not found')
    denied = _check_target(admin)
    if denied:
        return denied

    changes = AdminUpdate.model_validate(json_body()).model_dump(exclude_unset=True)
    if changes.get('role') == 'super' and current_user.role != 'super':
        return error_response(403, 'Forbidden', 'Only a super admin can grant the super role')
    if current_user.role != 'super':
        changes.pop('school_id', None)
    elif changes.get('school_id') and not db.session.get(School, changes['school_id']):
        return error_response(404, 'Not Found', 'School not found')

    if _conflict(changes.get('username', admin.username), changes.get('email', admin.email or ''), exclude_id=admin.id):
        return error_response(409, 'Conflict', 'Username or email already exists')

    password = changes.pop('password', None)
    if password:
        admin.set_password(password)
    if 'email' in changes and changes['email']:
        changes['email'] = changes['email'].lower()
    for field, value in changes.items():
        setattr(admin, field, value)
    db.session.commit()

    audit('update_admin', f'Updated administrator {admin.id}')
    return jsonify({'data': admin.to_dict()})


@bp.route('/<int:admin_id>', methods=['DELETE'])
@roles_required('super', 'management')
def delete_admin(admin_id):
    if admin_id == current_user.id:
        return error_response(400, 'Bad Request', 'You cannot delete your own account')
    admin = _admin_query().filter(User.id == admin_id).first()
    if not admin:
        return error_response(404, 'Not Found', 'Administrator not found')
    denied = _check_target(admin)
    if denied:
        return denied

    db.session.delete(admin)
    db.session.commit()
    audit('delete_admin', f'Deleted administrator {admin_id}')
    return jsonify({'message': 'Administrator deleted'})
