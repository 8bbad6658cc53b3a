import os
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required
from werkzeug.utils import secure_filename

from hallmark import db
from hallmark.models.school import School
from hallmark.routes.main import audit
from hallmark.schemas import SchoolCreate, SchoolUpdate
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, parse_ids, empty_list_response

bp = Blueprint('schools', __name__, url_prefix='/api/schools')

ALLOWED_LOGO_TYPES = {'image/jpeg', 'image/png', 'image/webp', 'image/gif', 'image/svg+xml'}


def _form_data():
    """Schools accept multipart (with a logo) or plain JSON."""
    if request.mimetype == 'multipart/form-data' or request.form:
        return {key: value for key, value in request.form.items() if value != ''}
    return request.get_json(silent=True) or {}


def _save_logo(file):
    """Validate and store an uploaded logo; return its relative path or an error response."""
    if file.mimetype not in ALLOWED_LOGO_TYPES:
        return None, error_response(400, 'Bad Request', 'Logo must be a JPEG, PNG, WEBP, GIF or SVG image')

    content = file.read()
    if len(content) > current_app.config['MAX_LOGO_BYTES']:
        return None, error_response(400, 'Bad Request', 'Logo must be 5MB or smaller')

    folder = os.path.join(current_app.config['UPLOAD_FOLDER'], 'logo')
    os.makedirs(folder, exist_ok=True)
    filename = f"{int(datetime.utcnow().timestamp() * 1000)}_{secure_filename(file.filename or 'logo')}"
    with open(os.path.join(folder, filename), 'wb') as fh:
        fh.write(content)
    return f"logo/{filename}", None


def _remove_logo(path):
    if not path:
        return
    full_path = os.path.join(current_app.config['UPLOAD_FOLDER'], path)
    try:
        os.remove(full_path)
    except FileNotFoundError:
        current_app.logger.warning(f"Logo file already missing: {full_path}")


def _conflict(name, email, exclude_id=None):
    query = School.query.filter(db.or_(School.name == name, School.email == email))
    if exclude_id:
        query = query.filter(School.id != exclude_id)
    return query.first()


@bp.route('', methods=['GET'])
@login_required
def list_schools():
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()
    schools = scope.filter(School.query, School.id).order_by(School.name.asc()).all()
    return list_response([s.to_dict(counts=True) for s in schools])


@bp.route('', methods=['POST'])
@roles_required('super', 'management')
def create_school():
    payload = SchoolCreate.model_validate(_form_data())

    if _conflict(payload.name, payload.email):
        return error_response(409, 'Conflict', 'A school with this name or email already exists')

    school = School(**payload.model_dump())
    logo = request.files.get('logo')
    if logo and logo.filename:
        path, error = _save_logo(logo)
        if error:
            return error
        school.logo = path

    db.session.add(school)
    db.session.commit()
    audit('create_school', f'Created school {school.name}')
    return jsonify({'data': school.to_dict()}), 201


@bp.route('', methods=['DELETE'])
@roles_required('super')
def delete_schools():
    ids = parse_ids()
    if not ids:
        return error_response(400, 'Bad Request', 'No ids provided')

    schools = School.query.filter(School.id.in_(ids)).all()
    missing = sorted(set(ids) - {s.id for s in schools})
    if missing:
        return error_response(404, 'Not Found', 'Some schools were not found', missing=missing)

    in_use = [s.id for s in schools if s.students or s.teachers or s.classes or s.users]
    if in_use:
        return error_response(409, 'Conflict', 'Schools still have users, classes or students', blocked=in_use)

    logos = [s.logo for s in schools]
    for school in schools:
        db.session.delete(school)
    db.session.commit()

    for path in logos:
        _remove_logo(path)
    audit('delete_schools', f'Deleted schools {ids}')
    return '', 204


@bp.route('/<int:school_id>', methods=['GET'])
@login_required
def get_school(school_id):
    school = School.query.get_or_404(school_id)
    current_scope().require(school.id)
    return jsonify({'data': school.to_dict(counts=True)})


@bp.route('/<int:school_id>', methods=['PUT'])
@roles_required('super', 'admin', 'management')
def update_school(school_id):
    school = School.query.get_or_404(school_id)
    current_scope().require(school.id)
    changes = SchoolUpdate.model_validate(_form_data()).model_dump(exclude_unset=True)

    if _conflict(changes.get('name', school.name), changes.get('email', school.email), exclude_id=school.id):
        return error_response(409, 'Conflict', 'A school with this name or email already exists')

    for field, value in changes.items():
        setattr(school, field, value)

    old_logo = None
    logo = request.files.get('logo')
    if logo and logo.filename:
        path, error = _save_logo(logo)
        if error:
            return error
        old_logo, school.logo = school.logo, path

    db.session.commit()
    _remove_logo(old_logo)
    audit('update_school', f'Updated school {school.name}')
    return jsonify({'data': school.to_dict()})


@bp.route('/<int:school_id>', methods=['DELETE'])
@roles_required('super')
def delete_school(school_id):
    school = School.query.get_or_404(school_id)
    if school.students or school.teachers or school.classes or school.users:
        return error_response(409, 'Conflict', 'School still has users, classes or students')
    logo = school.logo
    db.session.delete(school)
    db.session.commit()
    _remove_logo(logo)
    audit('delete_school', f'Deleted school {school_id}')
    return jsonify({'message': 'School deleted'})
