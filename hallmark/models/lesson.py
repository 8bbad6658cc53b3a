from hallmark import db
from datetime import datetime

DAYS = ('MONDAY', 'TUESDAY', 'WEDNESDAY', 'THURSDAY', 'FRIDAY')


class Lesson(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    day = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey('school_class.id'), nullable=False)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teacher.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def day_index(self):
        return DAYS.index(self.day) if self.day in DAYS else len(DAYS)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'day': self.day,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'class_id': self.class_id,
            'subject_id': self.subject_id,
            'teacher_id': self.teacher_id,
            'school_id': self.school_id,
        }
