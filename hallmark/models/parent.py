from hallmark import db
from datetime import datetime


class Parent(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    title = db.Column(db.String(20))
    firstname = db.Column(db.String(64), nullable=False)
    surname = db.Column(db.String(64), nullable=False)
    othername = db.Column(db.String(64))
    birthday = db.Column(db.Date)
    bloodgroup = db.Column(db.String(5))
    gender = db.Column(db.String(10))
    occupation = db.Column(db.String(120))
    religion = db.Column(db.String(50))
    state = db.Column(db.String(64))
    lga = db.Column(db.String(64))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=True)  # registering school
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    children = db.relationship('Student', backref='parent', lazy=True)

    @property
    def full_name(self):
        return ' '.join(part for part in (self.title, self.firstname, self.surname) if part)

    @property
    def email(self):
        return self.user.email if self.user else None

    @property
    def school_ids(self):
        ids = {child.school_id for child in self.children if child.school_id}
        if self.school_id:
            ids.add(self.school_id)
        return sorted(ids)

    def to_dict(self, minimal=False):
        if minimal:
            return {'id': self.id, 'firstname': self.firstname, 'surname': self.surname}
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'firstname': self.firstname,
            'surname': self.surname,
            'othername': self.othername,
            'email': self.email,
            'phone': self.phone,
            'gender': self.gender,
            'occupation': self.occupation,
            'religion': self.religion,
            'state': self.state,
            'lga': self.lga,
            'address': self.address,
            'school_id': self.school_id,
            'active': self.user.active if self.user else None,
            'students': [{'id': s.id, 'firstname': s.firstname, 'surname': s.surname,
                          'admission_number': s.admission_number} for s in self.children],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
