import pytest

from conftest import PASSWORD
from hallmark import db
from hallmark.models.parent import Parent
from hallmark.models.student import Student
from hallmark.models.user import User


@pytest.fixture
def shared_parent(app, world):
    """The seeded parent, registered at school B with one child in each school."""
    with app.app_context():
        parent = db.session.get(Parent, world.parent)
        parent.school_id = world.school_b
        user = User(role='student', username='student.b', school_id=world.school_b, active=True)
        user.set_password(PASSWORD)
        db.session.add(Student(user=user, admission_number='HSS/2026/00001', firstname='Kemi', surname='Ade',
                               class_id=world.class_b, school_id=world.school_b, parent_id=parent.id))
        db.session.commit()
    return world.parent


def test_parent_list_minimal_and_paginated(client, login_as, world):
    login_as('admin')
    minimal = client.get('/api/parents?minimal=true').get_json()
    assert minimal['data'] == [{'id': world.parent, 'firstname': 'Bola', 'surname': 'Ade'}]
    assert 'pagination' not in minimal

    paged = client.get('/api/parents?page=1&limit=1').get_json()
    assert paged['pagination'] == {'page': 1, 'limit': 1, 'total': 1, 'pages': 1}

    login_as('admin_b')
    assert client.get('/api/parents').get_json()['total'] == 0


def test_parent_is_created_and_linked(client, login_as, world):
    login_as('admin')
    response = client.post('/api/parents', json={
        'firstname': 'Ngozi', 'surname': 'Eze', 'email': 'ngozi@hallmark.test', 'student_ids': [world.student],
    })
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['school_id'] == world.school_a
    assert client.get(f'/api/parents?student_id={world.student}').get_json()['data'][0]['id'] == data['id']


def test_parent_cannot_link_students_of_another_school(client, login_as, world):
    login_as('admin_b')
    response = client.post('/api/parents', json={
        'firstname': 'Ngozi', 'surname': 'Eze', 'email': 'ngozi@hallmark.test', 'student_ids': [world.student],
    })
    assert response.status_code == 400


def test_shared_parent_is_not_deleted_by_one_school(app, client, login_as, shared_parent):
    login_as('admin')
    response = client.delete(f'/api/parents?ids={shared_parent}')
    assert response.status_code == 403
    assert response.get_json()['blocked'][0]['id'] == shared_parent
    assert client.delete(f'/api/parents/{shared_parent}').status_code == 403

    login_as('admin_b')
    assert client.delete(f'/api/parents/{shared_parent}').status_code == 403

    with app.app_context():
        assert db.session.get(Parent, shared_parent) is not None

    login_as('super')
    assert client.delete(f'/api/parents/{shared_parent}').status_code == 200


def test_shared_parent_profile_is_read_only_for_one_school(app, client, login_as, world, shared_parent):
    login_as('admin')
    assert client.get(f'/api/parents/{shared_parent}').status_code == 200
    assert client.put(f'/api/parents/{shared_parent}', json={'firstname': 'Changed'}).status_code == 403

    response = client.put(f'/api/parents/{shared_parent}', json={'student_ids': []})
    assert response.status_code == 200
    with app.app_context():
        children = Student.query.filter_by(parent_id=shared_parent).all()
        assert [c.school_id for c in children] == [world.school_b]


def test_parent_updates_own_profile_only(client, login_as, world):
    login_as('parent')
    response = client.put(f'/api/parents/{world.parent}', json={'occupation': 'Engineer', 'active': False})
    assert response.status_code == 200
    assert response.get_json()['data']['occupation'] == 'Engineer'
    assert client.get('/api/auth/me').status_code == 200


def test_null_email_is_rejected_on_update(client, login_as, world):
    login_as('admin')
    assert client.put(f'/api/parents/{world.parent}', json={'email': None}).status_code == 400
    assert client.put(f'/api/teachers/{world.teacher}', json={'email': None}).status_code == 400

    response = client.put(f'/api/teachers/{world.teacher}', json={'email': 'ADA@hallmark.test'})
    assert response.status_code == 200
    assert response.get_json()['data']['email'] == 'ada@hallmark.test'


def test_admin_list_is_scoped(client, login_as, world):
    login_as('admin')
    ids = {a['id'] for a in client.get('/api/admins').get_json()['data']}
    assert ids == {world.users.admin_a, world.users.management_a}

    login_as('teacher')
    assert client.get('/api/admins').get_json()['total'] == 0


def test_management_creates_admins_in_own_school(client, login_as, world):
    login_as('management')
    body = {'username': 'clerk', 'email': 'clerk@hallmark.test', 'password': PASSWORD, 'role': 'admin',
            'school_id': world.school_b}
    response = client.post('/api/admins', json=body)
    assert response.status_code == 201
    assert response.get_json()['data']['school_id'] == world.school_a

    assert client.post('/api/admins', json=dict(body, username='boss', email='boss@hallmark.test',
                                                role='super')).status_code == 403
    assert client.post('/api/admins', json=body).status_code == 409


def test_admin_cannot_delete_own_account(client, login_as, world):
    login_as('management')
    assert client.delete(f'/api/admins/{world.users.management_a}').status_code == 400
    assert client.delete(f'/api/admins?ids={world.users.management_a}').status_code == 400
    assert client.delete(f'/api/admins/{world.users.super}').status_code == 404

    response = client.delete(f'/api/admins?ids={world.users.management_a}&ids={world.users.admin_a}')
    assert response.get_json()['ids'] == [world.users.admin_a]


def test_admin_update_rejects_null_email(client, login_as, world):
    login_as('super')
    assert client.put(f'/api/admins/{world.users.admin_a}', json={'email': None}).status_code == 400
    response = client.put(f'/api/admins/{world.users.admin_a}', json={'section': 'Junior'})
    assert response.get_json()['data']['section'] == 'Junior'


def test_activity_lists_own_actions(client, login_as):
    login_as('admin')
    client.post('/api/subjects', json={'name': 'Biology'})

    types = [a['activity_type'] for a in client.get('/api/activity').get_json()['data']]
    assert {'login', 'create_subject'} <= set(types)

    login_as('teacher')
    types = [a['activity_type'] for a in client.get('/api/activity').get_json()['data']]
    assert 'create_subject' not in types
