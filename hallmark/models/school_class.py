from hallmark import db
from datetime import datetime


class SchoolClass(db.Model):
    """A class (form) within a school. Named to avoid clashing with the keyword."""
    __tablename__ = 'school_class'
    __table_args__ = (db.UniqueConstraint('school_id', 'name', name='uq_class_school_name'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(50))
    level = db.Column(db.String(50))
    capacity = db.Column(db.Integer)
    section = db.Column(db.String(50))
    formmaster_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=True)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    students = db.relationship('Student', backref='school_class', lazy=True)
    lessons = db.relationship('Lesson', backref='school_class', lazy=True)

    def is_full(self):
        return bool(self.capacity) and len(self.students) >= self.capacity

    def to_dict(self, detail=False):
        data = {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'level': self.level,
            'capacity': self.capacity,
            'section': self.section,
            'formmaster_id': self.formmaster_id,
            'formmaster': self.formmaster.full_name if self.formmaster else None,
            'school_id': self.school_id,
            'student_count': len(self.students),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if detail:
            data['students'] = [s.to_dict() for s in self.students]
            data['lessons'] = [lesson.to_dict() for lesson in self.lessons]
        return data
