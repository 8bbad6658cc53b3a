from flask import Blueprint, jsonify
from flask_login import login_required
from sqlalchemy import or_

from hallmark import db
from hallmark.models.notice import Announcement, Event
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.routes.main import audit
from hallmark.schemas import AnnouncementCreate, AnnouncementUpdate, EventCreate, EventUpdate
from hallmark.services.notification_service import NotificationService
from hallmark.services.scope import current_scope
from hallmark.utils.decorators import roles_required
from hallmark.utils.responses import error_response, list_response, json_body, empty_list_response, paginate

bp = Blueprint('events', __name__, url_prefix='/api/events')
announcements_bp = Blueprint('announcements', __name__, url_prefix='/api/announcements')

WRITE_ROLES = ('super', 'admin', 'management', 'teacher')


def visible_notices(model, scope):
    """General notices plus the ones attached to the caller's classes."""
    query = model.query
    if not scope.is_global:
        query = query.filter(or_(model.school_id.is_(None), model.school_id.in_(scope.school_ids)))
    class_ids = scope.class_ids()
    if class_ids is not None:
        query = query.filter(or_(model.class_id.is_(None), model.class_id.in_(class_ids)))
    return query


def _check_class(scope, class_id, school_id):
    if class_id is None:
        if scope.role == 'teacher':
            return error_response(403, 'Forbidden', 'Teachers can only post to their own classes')
        return None
    school_class = db.session.get(SchoolClass, class_id)
    if not school_class or school_class.school_id != school_id:
        return error_response(400, 'Bad Request', 'Class not found in this school')
    if scope.role == 'teacher' and class_id not in scope.class_ids():
        return error_response(403, 'Forbidden', 'Teachers can only post to their own classes')
    return None


def _editable(model, item_id):
    scope = current_scope()
    item = model.query.get_or_404(item_id)
    scope.require(item.school_id)
    if scope.role == 'teacher' and item.class_id not in scope.class_ids():
        return scope, None
    return scope, item


def _list(model, order_column):
    scope = current_scope()
    if scope.is_empty:
        return empty_list_response()
    items, pagination = paginate(visible_notices(model, scope).order_by(order_column.desc(), model.id.desc()))
    return list_response([i.to_dict() for i in items], pagination['total'], pagination=pagination)


def _get(model, item_id, label):
    item = visible_notices(model, current_scope()).filter(model.id == item_id).first()
    if not item:
        return error_response(404, 'Not Found', f'{label} not found')
    return jsonify({'data': item.to_dict()})


def _create(model, schema, notify, label):
    scope = current_scope()
    payload = schema.model_validate(json_body())
    school_id = scope.school_for_write(payload.school_id)
    if not db.session.get(School, school_id):
        return error_response(400, 'Bad Request', 'School not found')
    error = _check_class(scope, payload.class_id, school_id)
    if error:
        return error

    values = payload.model_dump(exclude={'school_id'}, exclude_none=True)
    item = model(school_id=school_id, **values)
    db.session.add(item)
    db.session.commit()

    audit(f'create_{label.lower()}', f'Created {label.lower()} {item.title}')
    notify(item)
    return jsonify({'data': item.to_dict()}), 201


def _update(model, schema, item_id, label):
    scope, item = _editable(model, item_id)
    if item is None:
        return error_response(403, 'Forbidden', f'{label} belongs to a class you do not teach')
    changes = schema.model_validate(json_body()).model_dump(exclude_unset=True)

    if 'class_id' in changes:
        error = _check_class(scope, changes['class_id'], item.school_id)
        if error:
            return error
    if model is Event:
        start = changes.get('start_time') or item.start_time
        end = changes.get('end_time') or item.end_time
        if end < start:
            return error_response(400, 'Bad Request', 'end_time must not be before start_time')
    for field, value in changes.items():
        if value is None and field not in ('description', 'class_id'):
            continue
        setattr(item, field, value)
    db.session.commit()

    audit(f'update_{label.lower()}', f'Updated {label.lower()} {item.id}')
    return jsonify({'data': item.to_dict()})


def _delete(model, item_id, label):
    _, item = _editable(model, item_id)
    if item is None:
        return error_response(403, 'Forbidden', f'{label} belongs to a class you do not teach')
    db.session.delete(item)
    db.session.commit()
    audit(f'delete_{label.lower()}', f'Deleted {label.lower()} {item_id}')
    return jsonify({'message': f'{label} deleted'})


@bp.route('', methods=['GET'])
@login_required
def list_events():
    return _list(Event, Event.start_time)


@bp.route('', methods=['POST'])
@roles_required(*WRITE_ROLES)
def create_event():
    return _create(Event, EventCreate, NotificationService.notify_event, 'Event')


@bp.route('/<int:event_id>', methods=['GET'])
@login_required
def get_event(event_id):
    return _get(Event, event_id, 'Event')


@bp.route('/<int:event_id>', methods=['PUT'])
@roles_required(*WRITE_ROLES)
def update_event(event_id):
    return _update(Event, EventUpdate, event_id, 'Event')


@bp.route('/<int:event_id>', methods=['DELETE'])
@roles_required(*WRITE_ROLES)
def delete_event(event_id):
    return _delete(Event, event_id, 'Event')


@announcements_bp.route('', methods=['GET'])
@login_required
def list_announcements():
    return _list(Announcement, Announcement.date)


@announcements_bp.route('', methods=['POST'])
@roles_required(*WRITE_ROLES)
def create_announcement():
    return _create(Announcement, AnnouncementCreate, NotificationService.notify_announcement, 'Announcement')


@announcements_bp.route('/<int:announcement_id>', methods=['GET'])
@login_required
def get_announcement(announcement_id):
    return _get(Announcement, announcement_id, 'Announcement')


@announcements_bp.route('/<int:announcement_id>', methods=['PUT'])
@roles_required(*WRITE_ROLES)
def update_announcement(announcement_id):
    return _update(Announcement, AnnouncementUpdate, announcement_id, 'Announcement')


@announcements_bp.route('/<int:announcement_id>', methods=['DELETE'])
@roles_required(*WRITE_ROLES)
def delete_announcement(announcement_id):
    return _delete(Announcement, announcement_id, 'Announcement')
