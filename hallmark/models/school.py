from hallmark import db
from datetime import datetime


class School(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    schooltype = db.Column(db.String(50))
    subtitle = db.Column(db.String(255))
    logo = db.Column(db.String(256), nullable=True)  # Path under UPLOAD_FOLDER
    contactperson = db.Column(db.String(120))
    contactpersonemail = db.Column(db.String(120))
    contactpersonphone = db.Column(db.String(30))
    youtube = db.Column(db.String(255))
    facebook = db.Column(db.String(255))
    regnumberprepend = db.Column(db.String(20))
    regnumberappend = db.Column(db.String(20))
    regnumbercount = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = db.relationship('User', backref='school', lazy=True)
    teachers = db.relationship('Teacher', backref='school', lazy=True)
    students = db.relationship('Student', backref='school', lazy=True)
    classes = db.relationship('SchoolClass', backref='school', lazy=True)
    subjects = db.relationship('Subject', backref='school', lazy=True)
    terms = db.relationship('Term', backref='school', lazy=True)

    def to_dict(self, counts=False):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'schooltype': self.schooltype,
            'subtitle': self.subtitle,
            'logo': self.logo,
            'contactperson': self.contactperson,
            'contactpersonemail': self.contactpersonemail,
            'contactpersonphone': self.contactpersonphone,
            'youtube': self.youtube,
            'facebook': self.facebook,
            'regnumberprepend': self.regnumberprepend,
            'regnumberappend': self.regnumberappend,
            'regnumbercount': self.regnumbercount,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if counts:
            from hallmark.models.payment import Payment, PaymentSetup
            data['_count'] = {
                'students': len(self.students),
                'teachers': len(self.teachers),
                'subjects': len(self.subjects),
                'paymentSetups': PaymentSetup.query.filter_by(school_id=self.id).count(),
                'payments': Payment.query.filter_by(school_id=self.id).count(),
            }
        return data

    def __repr__(self):
        return f'<School {self.name}>'
