from hallmark import db
from datetime import datetime

PAYMENT_STATUSES = ('PENDING', 'PARTIAL', 'PAID', 'OVERDUE')


class PaymentSetup(db.Model):
    """Fees expected per school, session and term."""
    __tablename__ = 'payment_setup'
    __table_args__ = (db.UniqueConstraint('school_id', 'session', 'term', name='uq_payment_setup_term'),)

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    fees = db.Column(db.String(255))  # description of the fee items
    partpayment = db.Column(db.Boolean, default=False)
    session = db.Column(db.String(20), nullable=False)
    term = db.Column(db.String(10), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'amount': float(self.amount),
            'fees': self.fees,
            'partpayment': self.partpayment,
            'session': self.session,
            'term': self.term,
            'school_id': self.school_id,
        }


class Payment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    session = db.Column(db.String(20), nullable=False)
    term = db.Column(db.String(10), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(10), default='PENDING', nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'session': self.session,
            'term': self.term,
            'amount': float(self.amount),
            'status': self.status,
            'student_id': self.student_id,
            'student': self.student.full_name if self.student else None,
            'school_id': self.school_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
