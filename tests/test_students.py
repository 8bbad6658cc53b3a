from datetime import date

from hallmark import db
from hallmark.models.school import School
from hallmark.models.student import Student
from hallmark.models.user import User
from hallmark.services.accounts import generate_admission_number


def _new_student(**overrides):
    body = {'firstname': 'Kemi', 'surname': 'Bello', 'gender': 'female'}
    body.update(overrides)
    return body


def test_admission_number_continues_the_yearly_sequence(app, world):
    with app.app_context():
        school = db.session.get(School, world.school_a)
        assert generate_admission_number(school, 2001) == 'HALL/2001/00001'
        number = generate_admission_number(school, date.today().year)
        assert number == f'HALL/{date.today().year}/00002'
        assert school.regnumbercount == 2


def test_admission_number_uses_the_suffix(app, world):
    with app.app_context():
        school = db.session.get(School, world.school_b)
        school.regnumberappend = 'ss'
        assert generate_admission_number(school, 2030) == 'HSS/2030/00001/SS'


def test_admin_creates_student_with_generated_number(app, client, login_as, world):
    login_as('admin')
    response = client.post('/api/students', json=_new_student(class_id=world.class_a))
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['admission_number'] == f'HALL/{date.today().year}/00002'
    assert data['gender'] == 'FEMALE'
    assert data['school_id'] == world.school_a

    with app.app_context():
        student = db.session.get(Student, data['id'])
        assert student.user.role == 'student'
        assert student.user.verify_password(app.config['DEFAULT_PASSWORD'])


def test_class_capacity_is_enforced(client, login_as, world):
    login_as('admin')
    assert client.post('/api/students', json=_new_student(class_id=world.class_a)).status_code == 201

    response = client.post('/api/students', json=_new_student(firstname='Late', class_id=world.class_a))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Class capacity reached'


def test_class_from_another_school_is_rejected(client, login_as, world):
    login_as('admin')
    response = client.post('/api/students', json=_new_student(class_id=world.class_b))
    assert response.status_code == 400


def test_super_must_name_a_school(client, login_as, world):
    login_as('super')
    response = client.post('/api/students', json=_new_student(class_id=world.class_a))
    assert response.status_code == 400
    assert response.get_json()['message'] == 'School ID is required'


def test_students_are_scoped_by_role(client, login_as, world):
    login_as('admin_b')
    assert client.get('/api/students').get_json() == {'data': [], 'total': 0}

    login_as('parent')
    data = client.get('/api/students').get_json()['data']
    assert [s['id'] for s in data] == [world.student]

    login_as('teacher')
    data = client.get('/api/students').get_json()['data']
    assert [s['id'] for s in data] == [world.student]

    login_as('student')
    assert client.get('/api/students').get_json()['total'] == 1
    assert client.post('/api/students', json=_new_student(class_id=world.class_a)).status_code == 403


def test_other_school_cannot_delete_students(client, login_as, world):
    login_as('admin_b')
    response = client.delete(f'/api/students?ids={world.student}')
    assert response.status_code == 403


def test_bulk_delete_reports_missing_ids(client, login_as, world):
    login_as('admin')
    response = client.delete(f'/api/students?ids={world.student},9999')
    assert response.status_code == 404
    assert response.get_json()['missing'] == [9999]


def test_delete_student_removes_login(app, client, login_as, world):
    login_as('admin')
    response = client.delete(f'/api/students/{world.student}')
    assert response.status_code == 200

    with app.app_context():
        assert db.session.get(Student, world.student) is None
        assert db.session.get(User, world.users.student) is None


def test_export_returns_a_workbook(client, login_as, world):
    login_as('admin')
    response = client.get('/api/students/export')
    assert response.status_code == 200
    assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    assert response.data[:2] == b'PK'
