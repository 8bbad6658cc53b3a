import pytest

from conftest import PASSWORD


@pytest.fixture
def lesson_body(world):
    return {
        'name': 'Algebra', 'day': 'monday',
        'start_time': '2026-05-04T08:00:00', 'end_time': '2026-05-04T09:00:00',
        'class_id': world.class_a, 'subject_id': world.subject_a, 'teacher_id': world.teacher,
    }


@pytest.fixture
def lesson_id(client, login_as, lesson_body):
    login_as('admin')
    response = client.post('/api/lessons', json=lesson_body)
    assert response.status_code == 201
    assert response.get_json()['data']['day'] == 'MONDAY'
    return response.get_json()['data']['id']


def _second_teacher(client, login):
    response = client.post('/api/teachers', json={
        'firstname': 'Musa', 'surname': 'Bala', 'email': 'musa@hallmark.test', 'phone': '0803',
        'password': PASSWORD,
    })
    assert response.status_code == 201
    login('musa@hallmark.test')


def test_lesson_links_must_share_the_school(client, login_as, world, lesson_body):
    login_as('admin')
    response = client.post('/api/lessons', json=dict(lesson_body, class_id=world.class_b))
    assert response.status_code == 400
    assert client.post('/api/lessons', json=dict(lesson_body, end_time='2026-05-04T07:00:00')).status_code == 400


def test_teachers_only_see_their_own_lessons_and_subjects(client, login, login_as, lesson_id):
    login_as('teacher')
    assert [l['id'] for l in client.get('/api/lessons').get_json()['data']] == [lesson_id]
    assert client.get('/api/subjects').get_json()['total'] == 1

    login_as('admin')
    _second_teacher(client, login)
    assert client.get('/api/lessons').get_json()['total'] == 0
    assert client.get('/api/subjects').get_json()['total'] == 0
    assert client.get(f'/api/lessons/{lesson_id}').status_code == 404


def test_students_and_parents_see_subjects_taught_in_their_class(client, login_as, world, lesson_body):
    login_as('student')
    assert client.get('/api/subjects').get_json()['total'] == 0

    login_as('admin')
    assert client.post('/api/lessons', json=lesson_body).status_code == 201

    for role in ('student', 'parent'):
        login_as(role)
        subjects = client.get('/api/subjects').get_json()['data']
        assert [s['id'] for s in subjects] == [world.subject_a]
        assert client.get('/api/lessons').get_json()['total'] == 1


def test_lesson_update_rejects_null_times(client, lesson_id):
    response = client.put(f'/api/lessons/{lesson_id}', json={'start_time': None})
    assert response.status_code == 400
    assert client.put(f'/api/lessons/{lesson_id}', json={'end_time': None}).status_code == 400


def test_lesson_update_accepts_offset_timestamps(client, lesson_id):
    response = client.put(f'/api/lessons/{lesson_id}', json={'end_time': '2026-05-04T10:00:00Z'})
    assert response.status_code == 200
    assert response.get_json()['data']['end_time'] == '2026-05-04T10:00:00'

    response = client.put(f'/api/lessons/{lesson_id}', json={'start_time': '2026-05-04T12:00:00+01:00'})
    assert response.status_code == 400


def test_subject_with_lessons_is_not_deleted(client, world, lesson_id):
    response = client.delete(f'/api/subjects/{world.subject_a}')
    assert response.status_code == 400
    assert response.get_json()['relations'] == {'lessons': 1}

    bulk = client.delete(f'/api/subjects?ids={world.subject_a}')
    assert bulk.status_code == 400
    assert bulk.get_json()['blocked'][0]['id'] == world.subject_a

    assert client.delete(f'/api/lessons?ids={lesson_id}').get_json()['deleted'] == 1
    assert client.delete(f'/api/subjects/{world.subject_a}').status_code == 200


def test_subject_names_are_unique_per_school(client, login_as):
    login_as('admin')
    assert client.post('/api/subjects', json={'name': 'mathematics'}).status_code == 409

    login_as('admin_b')
    assert client.post('/api/subjects', json={'name': 'Mathematics'}).status_code == 201


def test_subject_teacher_must_belong_to_the_school(client, login_as, world):
    login_as('admin_b')
    response = client.post('/api/subjects', json={'name': 'Physics', 'teacher_id': world.teacher})
    assert response.status_code == 400
