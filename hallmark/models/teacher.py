from hallmark import db
from datetime import datetime


class Teacher(db.Model):
    __table_args__ = (db.UniqueConstraint('school_id', 'phone', name='uq_teacher_school_phone'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    title = db.Column(db.String(20))
    firstname = db.Column(db.String(64), nullable=False)
    surname = db.Column(db.String(64), nullable=False)
    othername = db.Column(db.String(64))
    birthday = db.Column(db.Date)
    bloodgroup = db.Column(db.String(5))
    gender = db.Column(db.String(10))  # MALE / FEMALE
    state = db.Column(db.String(64))
    lga = db.Column(db.String(64))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    section = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subjects = db.relationship('Subject', backref='teacher', lazy=True)
    lessons = db.relationship('Lesson', backref='teacher', lazy=True)
    form_classes = db.relationship('SchoolClass', backref='formmaster', lazy=True)

    @property
    def full_name(self):
        return ' '.join(part for part in (self.title, self.firstname, self.surname) if part)

    @property
    def email(self):
        return self.user.email if self.user else None

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'school_id': self.school_id,
            'title': self.title,
            'firstname': self.firstname,
            'surname': self.surname,
            'othername': self.othername,
            'email': self.email,
            'phone': self.phone,
            'gender': self.gender,
            'birthday': self.birthday.isoformat() if self.birthday else None,
            'bloodgroup': self.bloodgroup,
            'state': self.state,
            'lga': self.lga,
            'address': self.address,
            'section': self.section,
            'active': self.user.active if self.user else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if detail:
            data['subjects'] = [{'id': s.id, 'name': s.name} for s in self.subjects]
            data['classes'] = [{'id': c.id, 'name': c.name} for c in self.form_classes]
            data['lessons'] = [lesson.to_dict() for lesson in self.lessons]
        return data
