from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from hallmark import db
from hallmark.models.user_activity import UserActivity


def log_activity(user_id, activity_type, description, ip_address=None):
    if user_id:  # Only log if user is authenticated
        activity = UserActivity(user_id=user_id, activity_type=activity_type, description=description,
                                ip_address=ip_address)
        db.session.add(activity)
        db.session.commit()


def audit(activity_type, description):
    """Log an action of the signed-in user for the current request."""
    log_activity(current_user.id, activity_type, description, request.remote_addr)


bp = Blueprint('main', __name__, url_prefix='/api')


@bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@bp.route('/activity')
@login_required
def my_activity():
    activities = UserActivity.query.filter_by(user_id=current_user.id)\
                                   .order_by(UserActivity.created_at.desc())\
                                   .limit(50).all()
    return jsonify({'data': [{
        'id': a.id,
        'activity_type': a.activity_type,
        'description': a.description,
        'ip_address': a.ip_address,
        'created_at': a.created_at.isoformat(),
    } for a in activities], 'total': len(activities)})
