from datetime import datetime

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from hallmark import db
from hallmark.models.notification import Notification
from hallmark.utils.responses import error_response, list_response, bool_arg, paginate

bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


def _own(notification_id):
    return Notification.query.filter_by(id=notification_id, recipient_id=current_user.id).first()


@bp.route('', methods=['GET'])
@login_required
def list_notifications():
    query = Notification.query.filter_by(recipient_id=current_user.id)
    if bool_arg('unread'):
        query = query.filter(Notification.is_read.is_(False))
    items, pagination = paginate(query.order_by(Notification.created_at.desc(), Notification.id.desc()),
                                 default_limit=20)
    return list_response([n.to_dict() for n in items], pagination['total'], pagination=pagination,
                         unread=Notification.get_unread_count(current_user.id))


@bp.route('/unread-count', methods=['GET'])
@login_required
def unread_count():
    return jsonify({'count': Notification.get_unread_count(current_user.id)})


@bp.route('/<int:notification_id>/read', methods=['POST'])
@login_required
def mark_read(notification_id):
    notification = _own(notification_id)
    if not notification:
        return error_response(404, 'Not Found', 'Notification not found')
    if not notification.is_read:
        notification.mark_as_read()
    return jsonify({'data': notification.to_dict()})


@bp.route('/read-all', methods=['POST'])
@login_required
def mark_all_read():
    unread = Notification.query.filter_by(recipient_id=current_user.id, is_read=False).all()
    for notification in unread:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
    db.session.commit()
    return jsonify({'message': 'All notifications marked as read', 'updated': len(unread)})


@bp.route('/<int:notification_id>', methods=['DELETE'])
@login_required
def delete_notification(notification_id):
    notification = _own(notification_id)
    if not notification:
        return error_response(404, 'Not Found', 'Notification not found')
    db.session.delete(notification)
    db.session.commit()
    return jsonify({'message': 'Notification deleted'})
