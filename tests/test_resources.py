import io
import os

from hallmark import db
from hallmark.models.term import Term


def test_super_creates_school_with_logo(app, client, login_as):
    login_as('super')
    response = client.post('/api/schools', data={
        'name': 'Hallmark East',
        'email': 'east@hallmark.test',
        'logo': (io.BytesIO(b'\x89PNG\r\n\x1a\n' + b'0' * 64), 'crest.png', 'image/png'),
    }, content_type='multipart/form-data')
    assert response.status_code == 201
    logo = response.get_json()['data']['logo']
    assert os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], logo))


def test_school_logo_type_is_checked(client, login_as):
    login_as('super')
    response = client.post('/api/schools', data={
        'name': 'Hallmark East',
        'email': 'east@hallmark.test',
        'logo': (io.BytesIO(b'%PDF-1.4'), 'crest.pdf', 'application/pdf'),
    }, content_type='multipart/form-data')
    assert response.status_code == 400


def test_duplicate_school_is_a_conflict(client, login_as):
    login_as('super')
    response = client.post('/api/schools', json={'name': 'Hallmark North', 'email': 'other@hallmark.test'})
    assert response.status_code == 409


def test_school_list_is_scoped(client, login_as, world):
    login_as('admin')
    data = client.get('/api/schools').get_json()['data']
    assert [s['id'] for s in data] == [world.school_a]

    login_as('super')
    assert client.get('/api/schools').get_json()['total'] == 2


def test_school_in_use_cannot_be_deleted(client, login_as, world):
    login_as('super')
    response = client.delete(f'/api/schools?ids={world.school_b}')
    assert response.status_code == 409

    login_as('admin')
    assert client.delete(f'/api/schools?ids={world.school_b}').status_code == 403


def test_teacher_bulk_delete_reports_blocked_teachers(client, login_as, world):
    login_as('admin')
    created = client.post('/api/teachers', json={
        'firstname': 'Musa', 'surname': 'Bala', 'email': 'musa@hallmark.test', 'phone': '0802',
    })
    assert created.status_code == 201
    free_id = created.get_json()['data']['id']

    response = client.delete(f'/api/teachers?ids={world.teacher}&ids={free_id}')
    assert response.status_code == 200
    body = response.get_json()
    assert body['ids'] == [free_id]
    assert body['blocked'][0]['id'] == world.teacher
    assert body['blocked'][0]['relations'] == {'classes': 1, 'subjects': 1}


def test_teacher_phone_must_be_unique_in_school(client, login_as):
    login_as('admin')
    response = client.post('/api/teachers', json={
        'firstname': 'Musa', 'surname': 'Bala', 'email': 'musa@hallmark.test', 'phone': '0801',
    })
    assert response.status_code == 409


def test_duplicate_class_name_is_a_conflict(client, login_as):
    login_as('admin')
    response = client.post('/api/classes', json={'name': 'JSS1'})
    assert response.status_code == 409


def test_class_with_students_is_not_deleted(client, login_as, world):
    login_as('admin')
    response = client.delete(f'/api/classes?ids={world.class_a}')
    assert response.status_code == 400
    assert response.get_json()['blocked'][0]['relations'] == {'students': 1}


def test_creating_active_term_deactivates_others(app, client, login_as, world):
    login_as('admin')
    first = client.post('/api/terms', json={'session': '2025/2026', 'term': 'First',
                                             'start': '2025-09-08', 'end': '2025-12-12'})
    assert first.status_code == 201
    assert first.get_json()['data']['days_open'] == 95

    second = client.post('/api/terms', json={'session': '2025/2026', 'term': 'Second',
                                              'start': '2026-01-05', 'end': '2026-04-03'})
    assert second.status_code == 201

    with app.app_context():
        statuses = {t.term: t.status for t in Term.query.filter_by(school_id=world.school_a)}
    assert statuses == {'First': 'Inactive', 'Second': 'Active'}


def test_deleting_active_term_reactivates_newest(app, client, login_as, world):
    login_as('admin')
    first_id = client.post('/api/terms', json={'session': '2025/2026', 'term': 'First',
                                                'start': '2025-09-08', 'end': '2025-12-12'}).get_json()['data']['id']
    second_id = client.post('/api/terms', json={'session': '2025/2026', 'term': 'Second',
                                                 'start': '2026-01-05', 'end': '2026-04-03'}).get_json()['data']['id']

    response = client.delete(f'/api/terms?ids={second_id}')
    assert response.status_code == 200
    assert response.get_json()['activated'] == [first_id]

    with app.app_context():
        assert db.session.get(Term, first_id).status == 'Active'


def test_term_dates_are_validated(client, login_as):
    login_as('admin')
    response = client.post('/api/terms', json={'session': '2025/2026', 'term': 'First',
                                                'start': '2025-12-12', 'end': '2025-09-08'})
    assert response.status_code == 400


def test_attendance_upserts_per_day(client, login_as, world):
    login_as('teacher')
    body = {'student_id': world.student, 'school_id': world.school_a, 'date': '2026-03-02', 'present': True}
    assert client.post('/api/attendance', json=body).status_code == 201

    body['present'] = False
    response = client.post('/api/attendance', json=body)
    assert response.status_code == 200
    assert response.get_json()['data']['present'] is False

    login_as('parent')
    listing = client.get('/api/attendance?from=2026-03-01&to=2026-03-31').get_json()
    assert listing['total'] == 1
    assert listing['pagination'] == {'page': 1, 'limit': 50, 'total': 1, 'pages': 1}


def test_attendance_present_must_be_boolean(client, login_as, world):
    login_as('admin')
    body = {'student_id': world.student, 'school_id': world.school_a, 'date': '2026-03-02', 'present': 'yes'}
    assert client.post('/api/attendance', json=body).status_code == 400


def test_attendance_for_another_school_is_forbidden(client, login_as, world):
    login_as('admin_b')
    body = {'student_id': world.student, 'school_id': world.school_a, 'date': '2026-03-02', 'present': True}
    assert client.post('/api/attendance', json=body).status_code == 403


def test_payment_status_follows_fee_setup(client, login_as, world):
    login_as('admin')
    setup = client.post('/api/payment-setups', json={'amount': 50000, 'partpayment': True,
                                                      'session': '2025/2026', 'term': 'First'})
    assert setup.status_code == 201
    duplicate = client.post('/api/payment-setups', json={'amount': 1, 'session': '2025/2026', 'term': 'First'})
    assert duplicate.status_code == 409

    partial = client.post('/api/payments', json={'student_id': world.student, 'session': '2025/2026',
                                                  'term': 'First', 'amount': 20000})
    assert partial.get_json()['data']['status'] == 'PARTIAL'

    login_as('parent')
    assert client.get('/api/payments').get_json()['total'] == 1
