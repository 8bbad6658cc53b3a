from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def roles_required(*roles):
    """Require a signed-in user whose role is one of ``roles``.

    Anonymous users get 401 through the login manager; other roles get 403.
    """
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if current_user.role not in roles:
                abort(403, description='You do not have permission to perform this action')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
