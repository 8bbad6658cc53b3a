from hallmark import db
from datetime import datetime


class Subject(db.Model):
    __table_args__ = (db.UniqueConstraint('school_id', 'name', name='uq_subject_school_name'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(50))
    section = db.Column(db.String(50))
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    lessons = db.relationship('Lesson', backref='subject', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'section': self.section,
            'school_id': self.school_id,
            'teacher_id': self.teacher_id,
            'teacher': self.teacher.full_name if self.teacher else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
