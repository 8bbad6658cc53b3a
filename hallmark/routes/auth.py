from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user

from hallmark import db
from hallmark.models.student import Student
from hallmark.models.user import User, ADMIN_ROLES
from hallmark.routes.main import log_activity, audit
from hallmark.schemas import LoginRequest, ChangePasswordRequest
from hallmark.services.notification_service import NotificationService
from hallmark.utils.password_validator import PasswordValidator
from hallmark.utils.responses import error_response, json_body

bp = Blueprint('auth', __name__, url_prefix='/api/auth')
password_validator = PasswordValidator(min_length=6)


def _find_user(identifier):
    """Email for staff and parents; students may also use their admission number."""
    if '@' in identifier:
        return User.query.filter(db.func.lower(User.email) == identifier.lower()).first()
    student = Student.query.filter(db.func.upper(Student.admission_number) == identifier.upper()).first()
    return student.user if student else None


def _school_ids_of(user):
    if user.parent_profile:
        return set(user.parent_profile.school_ids)
    if user.teacher_profile:
        return {user.teacher_profile.school_id}
    if user.student_profile:
        return {user.student_profile.school_id}
    return {user.school_id} if user.school_id else set()


def session_payload(user):
    data = user.to_dict()
    data['name'] = user.display_name
    for attr in ('teacher_profile', 'student_profile', 'parent_profile'):
        profile = getattr(user, attr)
        if profile is not None:
            data['profile'] = profile.to_dict()
    return data


@bp.route('/login', methods=['POST'])
def login():
    payload = LoginRequest.model_validate(json_body())
    user = _find_user(payload.identifier)

    if not user:
        return error_response(401, 'Unauthorized', 'Invalid credentials')

    if not user.active:
        log_activity(user.id, 'login_attempt', f'Login blocked for inactive account {payload.identifier}',
                     request.remote_addr)
        return error_response(403, 'Forbidden', 'Account is disabled')

    if user.is_account_locked():
        minutes_remaining = user.get_lock_time_remaining()
        log_activity(user.id, 'login_attempt', f'Account locked, login attempt blocked for {payload.identifier}',
                     request.remote_addr)
        return error_response(403, 'Locked', f'Account is locked. Please try again in {minutes_remaining} minutes.')

    if not user.check_password(payload.password):
        if user.is_account_locked():
            log_activity(user.id, 'account_locked', f'Account locked after failed logins for {payload.identifier}',
                         request.remote_addr)
            return error_response(403, 'Locked', 'Account has been locked due to too many failed attempts.')
        log_activity(user.id, 'login_failed', f'Invalid password attempt for {payload.identifier}', request.remote_addr)
        return error_response(401, 'Unauthorized', 'Invalid credentials')

    login_user(user)
    log_activity(user.id, 'login', f'User logged in: {payload.identifier}', request.remote_addr)
    return jsonify({'data': session_payload(user)})


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    audit('logout', f'User logged out: {current_user.email or current_user.id}')
    logout_user()
    return jsonify({'message': 'Logged out'})


@bp.route('/me')
@login_required
def me():
    return jsonify({'data': session_payload(current_user)})


@bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    payload = ChangePasswordRequest.model_validate(json_body())
    target_id = payload.user_id or current_user.id
    target = db.session.get(User, target_id)
    if not target:
        return error_response(404, 'Not Found', 'User not found')

    if target.id == current_user.id:
        if not payload.old_password:
            return error_response(400, 'Bad Request', 'Old password is required')
        if not target.verify_password(payload.old_password):
            return error_response(400, 'Bad Request', 'Old password is incorrect')
        if payload.old_password == payload.new_password:
            return error_response(400, 'Bad Request', 'New password must be different from the old password')
    else:
        if current_user.role not in ADMIN_ROLES:
            return error_response(403, 'Forbidden', "You cannot change another user's password")
        if target.role in ADMIN_ROLES and current_user.role != 'super':
            return error_response(403, 'Forbidden', 'Only a super admin can change an administrator password')
        if current_user.role != 'super' and current_user.school_id not in _school_ids_of(target):
            return error_response(403, 'Forbidden', 'User belongs to another school')

    is_valid, issues = password_validator.validate_password(payload.new_password)
    if not is_valid:
        return error_response(400, 'Validation failed', 'Password is too weak', details=issues)

    target.set_password(payload.new_password)
    db.session.commit()

    audit('change_password', f'Password changed for user {target.id}')
    NotificationService.notify_password_changed(target, changed_by=current_user)
    return jsonify({'message': 'Password updated successfully'})
