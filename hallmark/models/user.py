from hallmark import db, login_manager
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta

ROLES = ('super', 'admin', 'management', 'teacher', 'student', 'parent')
ADMIN_ROLES = ('super', 'admin', 'management')


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80))
    email = db.Column(db.String(120), unique=True, nullable=True)  # students may sign in by admission number only
    password_hash = db.Column(db.String(256))
    role = db.Column(db.String(20), nullable=False)  # one of ROLES
    section = db.Column(db.String(50))
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=True)
    active = db.Column(db.Boolean, default=True)
    avatar = db.Column(db.String(256), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Fields for login security
    login_attempts = db.Column(db.Integer, default=0)
    last_login_attempt = db.Column(db.DateTime)
    is_locked = db.Column(db.Boolean, default=False)
    lock_until = db.Column(db.DateTime)

    teacher_profile = db.relationship('Teacher', backref='user', uselist=False)
    student_profile = db.relationship('Student', backref='user', uselist=False)
    parent_profile = db.relationship('Parent', backref='user', uselist=False)

    @property
    def is_active(self):
        return bool(self.active)

    @property
    def is_admin(self):
        return self.role in ADMIN_ROLES

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)
        # Reset login attempts when password is changed
        self.login_attempts = 0
        self.is_locked = False
        self.lock_until = None

    def verify_password(self, password):
        """Compare without touching the lockout counters."""
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    def check_password(self, password):
        if self.is_account_locked():
            return False

        is_correct = self.verify_password(password)

        self.last_login_attempt = datetime.utcnow()
        if is_correct:
            self.login_attempts = 0
            self.is_locked = False
            self.lock_until = None
        else:
            self.login_attempts = (self.login_attempts or 0) + 1
            if self.login_attempts >= current_app.config['LOGIN_MAX_ATTEMPTS']:
                self.is_locked = True
                self.lock_until = datetime.utcnow() + timedelta(minutes=current_app.config['LOGIN_LOCK_MINUTES'])

        db.session.commit()
        return is_correct

    def has_role(self, *roles):
        return self.role in roles

    def is_account_locked(self):
        if not self.is_locked or not self.lock_until:
            return False
        return datetime.utcnow() < self.lock_until

    def get_lock_time_remaining(self):
        if not self.is_locked or not self.lock_until:
            return 0
        remaining = self.lock_until - datetime.utcnow()
        return max(0, int(remaining.total_seconds() / 60))

    @property
    def display_name(self):
        profile = self.teacher_profile or self.student_profile or self.parent_profile
        if profile is not None:
            return profile.full_name
        return self.username or self.email

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'section': self.section,
            'school_id': self.school_id,
            'active': self.active,
            'avatar': self.avatar,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.id} {self.role}>'


@login_manager.user_loader
def load_user(id):
    return db.session.get(User, int(id))
