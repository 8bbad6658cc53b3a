from hallmark import db
from datetime import datetime


class Attendance(db.Model):
    __table_args__ = (db.UniqueConstraint('student_id', 'school_id', 'date', name='uq_attendance_student_day'),)

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    present = db.Column(db.Boolean, nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'present': self.present,
            'student_id': self.student_id,
            'student': self.student.full_name if self.student else None,
            'school_id': self.school_id,
        }
