from hallmark import db
from hallmark.models.notification import Notification
from hallmark.models.user import User

from conftest import PASSWORD


def test_login_with_email_returns_session_user(client, world):
    response = client.post('/api/auth/login', json={'identifier': 'ADMIN.A@hallmark.test', 'password': PASSWORD})
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['role'] == 'admin'
    assert data['school_id'] == world.school_a


def test_student_logs_in_with_admission_number(client, world):
    response = client.post('/api/auth/login', json={'identifier': world.admission_number.lower(),
                                                    'password': PASSWORD})
    assert response.status_code == 200
    assert response.get_json()['data']['profile']['admission_number'] == world.admission_number


def test_wrong_password_is_unauthorized(client, world):
    response = client.post('/api/auth/login', json={'identifier': 'admin.a@hallmark.test', 'password': 'nope'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Unauthorized'


def test_account_locks_after_three_failures(client, world):
    body = {'identifier': 'admin.a@hallmark.test', 'password': 'wrong-password'}
    assert client.post('/api/auth/login', json=body).status_code == 401
    assert client.post('/api/auth/login', json=body).status_code == 401
    locked = client.post('/api/auth/login', json=body)
    assert locked.status_code == 403
    assert locked.get_json()['error'] == 'Locked'

    # even the right password is refused while locked
    response = client.post('/api/auth/login', json={'identifier': 'admin.a@hallmark.test', 'password': PASSWORD})
    assert response.status_code == 403


def test_inactive_account_is_forbidden(app, client, world):
    with app.app_context():
        user = db.session.get(User, world.users.admin_a)
        user.active = False
        db.session.commit()

    response = client.post('/api/auth/login', json={'identifier': 'admin.a@hallmark.test', 'password': PASSWORD})
    assert response.status_code == 403


def test_login_body_is_validated(client, world):
    response = client.post('/api/auth/login', json={'identifier': ''})
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Validation failed'
    assert {d['field'] for d in body['details']} == {'identifier', 'password'}


def test_me_requires_login(client, world):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized', 'message': 'Authentication required'}


def test_logout_clears_session(client, login_as):
    login_as('admin')
    assert client.get('/api/auth/me').status_code == 200
    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/auth/me').status_code == 401


def test_change_own_password_needs_old_password(client, login_as):
    login_as('teacher')
    response = client.post('/api/auth/change-password', json={'new_password': 'Fresh#1357'})
    assert response.status_code == 400

    response = client.post('/api/auth/change-password',
                           json={'old_password': PASSWORD, 'new_password': PASSWORD})
    assert response.status_code == 400


def test_change_own_password_notifies_user(app, client, login_as, world):
    login_as('teacher')
    response = client.post('/api/auth/change-password',
                           json={'old_password': PASSWORD, 'new_password': 'Fresh#1357'})
    assert response.status_code == 200

    with app.app_context():
        user = db.session.get(User, world.users.teacher)
        assert user.verify_password('Fresh#1357')
        assert Notification.query.filter_by(recipient_id=user.id, notification_type='password_changed').count() == 1


def test_weak_password_is_rejected(client, login_as):
    login_as('teacher')
    response = client.post('/api/auth/change-password',
                           json={'old_password': PASSWORD, 'new_password': 'password'})
    assert response.status_code == 400
    assert response.get_json()['details']


def test_only_super_changes_administrator_passwords(client, login_as, world):
    login_as('admin')
    response = client.post('/api/auth/change-password',
                           json={'user_id': world.users.management_a, 'new_password': 'Fresh#1357'})
    assert response.status_code == 403

    login_as('super')
    response = client.post('/api/auth/change-password',
                           json={'user_id': world.users.management_a, 'new_password': 'Fresh#1357'})
    assert response.status_code == 200


def test_admin_cannot_reset_password_in_another_school(client, login_as, world):
    login_as('admin_b')
    response = client.post('/api/auth/change-password',
                           json={'user_id': world.users.teacher, 'new_password': 'Fresh#1357'})
    assert response.status_code == 403

    login_as('admin')
    response = client.post('/api/auth/change-password',
                           json={'user_id': world.users.teacher, 'new_password': 'Fresh#1357'})
    assert response.status_code == 200


def test_teacher_cannot_change_other_passwords(client, login_as, world):
    login_as('teacher')
    response = client.post('/api/auth/change-password',
                           json={'user_id': world.users.student, 'new_password': 'Fresh#1357'})
    assert response.status_code == 403
