from hallmark import db
from datetime import datetime

TERM_NAMES = ('First', 'Second', 'Third')


class Term(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    session = db.Column(db.String(20), nullable=False)  # e.g. 2025/2026
    term = db.Column(db.String(10), nullable=False)
    start = db.Column(db.Date, nullable=False)
    end = db.Column(db.Date, nullable=False)
    next_term = db.Column(db.Date)
    days_open = db.Column(db.Integer)
    status = db.Column(db.String(10), default='Active', nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'session': self.session,
            'term': self.term,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'next_term': self.next_term.isoformat() if self.next_term else None,
            'days_open': self.days_open,
            'status': self.status,
            'school_id': self.school_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
