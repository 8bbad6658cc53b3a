from hallmark import db
from datetime import datetime
from enum import Enum


class NotificationType(Enum):
    PAYMENT_DUE = "payment_due"
    PAYMENT_CONFIRMED = "payment_confirmed"
    NEW_USER = "new_user"
    NEW_EVENT = "new_event"
    NEW_ANNOUNCEMENT = "new_announcement"
    ASSIGNMENT_DUE = "assignment_due"
    TEST_SCHEDULED = "test_scheduled"
    PASSWORD_CHANGED = "password_changed"
    GRADING_PUBLISHED = "grading_published"
    GENERAL = "general"


class NotificationPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(db.String(50), nullable=False)  # stored as string for portability
    priority = db.Column(db.String(20), default='medium')
    school_id = db.Column(db.Integer, db.ForeignKey('school.id'), nullable=True)

    # Status tracking
    is_read = db.Column(db.Boolean, default=False)
    is_email_sent = db.Column(db.Boolean, default=False)
    email_sent_at = db.Column(db.DateTime)

    related_entity_type = db.Column(db.String(50))  # e.g. 'event', 'payment', 'grading'
    related_entity_id = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    read_at = db.Column(db.DateTime)

    recipient = db.relationship('User', backref=db.backref('notifications', lazy=True, cascade='all, delete-orphan',
                                                           order_by='Notification.created_at.desc()'))

    def mark_as_read(self):
        """Mark notification as read"""
        self.is_read = True
        self.read_at = datetime.utcnow()
        db.session.commit()

    def to_dict(self):
        """Convert notification to dictionary for JSON responses"""
        return {
            'id': self.id,
            'title': self.title,
            'message': self.message,
            'type': self.notification_type,
            'priority': self.priority,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat(),
            'read_at': self.read_at.isoformat() if self.read_at else None,
            'related_entity_type': self.related_entity_type,
            'related_entity_id': self.related_entity_id,
        }

    @staticmethod
    def get_unread_count(user_id):
        """Get count of unread notifications for a user"""
        return Notification.query.filter_by(recipient_id=user_id, is_read=False).count()

    def __repr__(self):
        return f'<Notification {self.id}: {self.title} for User {self.recipient_id}>'
