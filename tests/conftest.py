from datetime import date
from types import SimpleNamespace

import pytest

from config import Config
from hallmark import create_app, db
from hallmark.models.parent import Parent
from hallmark.models.school import School
from hallmark.models.school_class import SchoolClass
from hallmark.models.student import Student
from hallmark.models.subject import Subject
from hallmark.models.teacher import Teacher
from hallmark.models.user import User

PASSWORD = 'Secret#2468'


class SQLiteConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SEND_EMAILS = False
    LOG_LEVEL = 'WARNING'


def _user(role, email, school_id=None, username=None):
    user = User(role=role, email=email, username=username or email.split('@')[0], school_id=school_id, active=True)
    user.set_password(PASSWORD)
    db.session.add(user)
    return user


def seed():
    """Two schools with one account of every role in the first one."""
    school_a = School(name='Hallmark North', email='north@hallmark.test', regnumberprepend='HALL')
    school_b = School(name='Hallmark South', email='south@hallmark.test', regnumberprepend='HSS')
    db.session.add_all([school_a, school_b])
    db.session.flush()

    super_user = _user('super', 'super@hallmark.test')
    admin_a = _user('admin', 'admin.a@hallmark.test', school_a.id)
    admin_b = _user('admin', 'admin.b@hallmark.test', school_b.id)
    management_a = _user('management', 'management.a@hallmark.test', school_a.id)

    teacher_user = _user('teacher', 'teacher.a@hallmark.test', school_a.id)
    teacher = Teacher(user=teacher_user, school_id=school_a.id, firstname='Ada', surname='Obi', phone='0801',
                      gender='FEMALE')
    db.session.add(teacher)
    db.session.flush()

    class_a = SchoolClass(name='JSS1', capacity=2, school_id=school_a.id, formmaster_id=teacher.id)
    class_b = SchoolClass(name='JSS1', capacity=30, school_id=school_b.id)
    subject_a = Subject(name='Mathematics', school_id=school_a.id, teacher_id=teacher.id)
    db.session.add_all([class_a, class_b, subject_a])
    db.session.flush()

    parent_user = _user('parent', 'parent.a@hallmark.test', school_a.id)
    parent = Parent(user=parent_user, school_id=school_a.id, firstname='Bola', surname='Ade')
    db.session.add(parent)
    db.session.flush()

    student_user = _user('student', None, school_a.id, username='student.a')
    student = Student(user=student_user, admission_number=f'HALL/{date.today().year}/00001',
                      firstname='Tunde', surname='Ade', gender='MALE', class_id=class_a.id,
                      parent_id=parent.id, school_id=school_a.id)
    school_a.regnumbercount = 1
    db.session.add(student)
    db.session.commit()

    return SimpleNamespace(
        school_a=school_a.id, school_b=school_b.id,
        class_a=class_a.id, class_b=class_b.id, subject_a=subject_a.id,
        teacher=teacher.id, parent=parent.id, student=student.id,
        admission_number=student.admission_number,
        users=SimpleNamespace(
            super=super_user.id, admin_a=admin_a.id, admin_b=admin_b.id, management_a=management_a.id,
            teacher=teacher_user.id, parent=parent_user.id, student=student_user.id,
        ),
    )


@pytest.fixture
def app(tmp_path):
    config = type('TmpConfig', (SQLiteConfig,), {'UPLOAD_FOLDER': str(tmp_path / 'uploads')})
    app = create_app(config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def world(app):
    with app.app_context():
        return seed()


@pytest.fixture
def login(client):
    def _login(identifier, password=PASSWORD):
        response = client.post('/api/auth/login', json={'identifier': identifier, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login


ACCOUNTS = {
    'super': 'super@hallmark.test',
    'admin': 'admin.a@hallmark.test',
    'admin_b': 'admin.b@hallmark.test',
    'management': 'management.a@hallmark.test',
    'teacher': 'teacher.a@hallmark.test',
    'parent': 'parent.a@hallmark.test',
}


@pytest.fixture
def login_as(login, world):
    """Sign in as one of the seeded accounts by role name."""
    def _login_as(role):
        if role == 'student':
            return login(world.admission_number)
        return login(ACCOUNTS[role])
    return _login_as
