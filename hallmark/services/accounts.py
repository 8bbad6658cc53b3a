from datetime import date

from flask import abort, current_app

from hallmark import db
from hallmark.models.student import Student
from hallmark.models.user import User


def generate_admission_number(school, year=None):
    """Next admission number for ``school``: ``PREFIX/YYYY/00001``.

    The sequence restarts every year and continues from the highest number
    already issued with the same prefix and year.
    """
    prefix = (school.regnumberprepend or current_app.config['ADMISSION_PREFIX']).strip().upper()
    year = year or date.today().year
    stem = f"{prefix}/{year}/"

    highest = 0
    for (number,) in Student.query.with_entities(Student.admission_number).filter(
            Student.admission_number.like(f"{stem}%")):
        parts = number[len(stem):].split('/')
        if parts and parts[0].isdigit():
            highest = max(highest, int(parts[0]))

    seq = highest + 1
    school.regnumbercount = seq
    number = f"{stem}{seq:05d}"
    if school.regnumberappend:
        number = f"{number}/{school.regnumberappend.strip().upper()}"
    return number


def ensure_email_available(email, exclude_user_id=None):
    if not email:
        return
    query = User.query.filter(db.func.lower(User.email) == email.lower())
    if exclude_user_id:
        query = query.filter(User.id != exclude_user_id)
    if query.first():
        abort(409, description='Email already in use')


def new_user(role, email=None, password=None, school_id=None, username=None, section=None):
    """Build (not commit) a login account; password falls back to DEFAULT_PASSWORD."""
    user = User(
        role=role,
        email=email.lower() if email else None,
        username=username,
        school_id=school_id,
        section=section,
        active=True,
    )
    user.set_password(password or current_app.config['DEFAULT_PASSWORD'])
    db.session.add(user)
    return user
