from hallmark import db
from datetime import datetime, date


class Student(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    admission_number = db.Column(db.String(50), unique=True, nullable=False)
    firstname = db.Column(db.String(64), nullable=False)
    surname = db.Column(db.String(64), nullable=False)
    othername = db.Column(db.String(64))
    birthday = db.Column(db.Date)
    gender = db.Column(db.String(10))  # MALE / FEMALE
    religion = db.Column(db.String(50))
    studenttype = db.Column(db.String(50))
    house = db.Column(db.String(50))
    bloodgroup = db.Column(db.String(5))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    state = db.Column(db.String(64))
    lga = db.Column(db.String(64))
    section = db.Column(db.String(50))
    admission_date = db.Column(db.Date, default=date.today)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey('parent.id'), nullable=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    attendances = db.relationship('Attendance', backref='student', lazy=True, cascade='all, delete-orphan')
    payments = db.relationship('Payment', backref='student', lazy=True, cascade='all, delete-orphan')

    @property
    def full_name(self):
        return ' '.join(part for part in (self.firstname, self.othername, self.surname) if part)

    @property
    def email(self):
        return self.user.email if self.user else None

    @property
    def age(self):
        if not self.birthday:
            return None
        today = date.today()
        return today.year - self.birthday.year - ((today.month, today.day) < (self.birthday.month, self.birthday.day))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'admission_number': self.admission_number,
            'firstname': self.firstname,
            'surname': self.surname,
            'othername': self.othername,
            'email': self.email,
            'phone': self.phone,
            'gender': self.gender,
            'birthday': self.birthday.isoformat() if self.birthday else None,
            'religion': self.religion,
            'studenttype': self.studenttype,
            'house': self.house,
            'bloodgroup': self.bloodgroup,
            'address': self.address,
            'state': self.state,
            'lga': self.lga,
            'section': self.section,
            'admission_date': self.admission_date.isoformat() if self.admission_date else None,
            'class_id': self.class_id,
            'class_name': self.school_class.name if self.school_class else None,
            'parent_id': self.parent_id,
            'school_id': self.school_id,
            'active': self.user.active if self.user else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
