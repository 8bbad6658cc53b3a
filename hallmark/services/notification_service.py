from flask import current_app
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from hallmark import db
from hallmark.models.notification import Notification, NotificationType
from hallmark.models.user import User
from hallmark.models.student import Student
from hallmark.models.teacher import Teacher
from hallmark.services.email_service import EmailService


class NotificationService:

    @staticmethod
    def create_notification(recipient_id, title, message, notification_type,
                            priority='medium', related_entity_type=None,
                            related_entity_id=None, school_id=None, send_email=False):
        """
        Create a new in-app notification for a user.

        Database failures are logged and rolled back; they never propagate to the caller.
        """
        if not recipient_id:
            current_app.logger.warning("Cannot create notification: recipient_id is None")
            return None

        recipient = db.session.get(User, recipient_id)
        if not recipient:
            current_app.logger.warning(f"Cannot create notification: recipient with ID {recipient_id} not found")
            return None

        notification = Notification(
            recipient_id=recipient_id,
            title=title,
            message=message,
            notification_type=notification_type,
            priority=priority,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            school_id=school_id,
        )
        try:
            db.session.add(notification)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating notification: {str(e)}")
            return None

        if send_email and NotificationService._email(notification, recipient):
            db.session.commit()
        return notification

    @staticmethod
    def _email(notification, recipient):
        if not recipient.email:
            return False
        if not EmailService.send_email(notification.title, [recipient.email], notification.message):
            return False
        notification.is_email_sent = True
        notification.email_sent_at = datetime.utcnow()
        return True

    @staticmethod
    def broadcast(recipient_ids, title, message, notification_type, priority='medium', related_entity_type=None,
                  related_entity_id=None, school_id=None, send_email=False):
        """Notify many users at once; all rows are written in a single commit."""
        ids = sorted({i for i in recipient_ids if i})
        if not ids:
            return 0
        recipients = User.query.filter(User.id.in_(ids)).order_by(User.id).all()
        notifications = [Notification(
            recipient_id=recipient.id,
            title=title,
            message=message,
            notification_type=notification_type,
            priority=priority,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            school_id=school_id,
        ) for recipient in recipients]

        try:
            db.session.add_all(notifications)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating {len(notifications)} notifications: {str(e)}")
            return 0

        if send_email:
            emailed = [NotificationService._email(n, r) for n, r in zip(notifications, recipients)]
            if any(emailed):
                db.session.commit()
        return len(notifications)

    @staticmethod
    def audience_for(school_id, class_id=None):
        """User ids that should hear about a school or class notice."""
        if class_id:
            students = Student.query.filter_by(class_id=class_id).all()
        elif school_id:
            students = Student.query.filter_by(school_id=school_id).all()
        else:
            students = []
        ids = {s.user_id for s in students}
        ids.update(s.parent.user_id for s in students if s.parent)
        if school_id:
            ids.update(u.id for u in User.query.filter_by(school_id=school_id).all())
            ids.update(t.user_id for t in Teacher.query.filter_by(school_id=school_id).all())
        return ids

    @staticmethod
    def notify_account_created(user, password=None, created_by=None):
        """Tell a new user their account exists; mail credentials when possible."""
        name = user.display_name
        login_id = user.email or (user.student_profile.admission_number if user.student_profile else '')
        message = f"Your account has been created by {created_by or 'an administrator'}."
        if password:
            message += " Please change your password after your first login."
        NotificationService.create_notification(
            recipient_id=user.id,
            title="Welcome to Hallmark Academy",
            message=message,
            notification_type=NotificationType.NEW_USER.value,
            priority='high',
            related_entity_type='user',
            related_entity_id=user.id,
            school_id=user.school_id,
        )
        if password and user.email:
            EmailService.send_account_created(user.email, name, login_id, password)

    @staticmethod
    def notify_password_changed(user, changed_by=None):
        if changed_by and changed_by.id != user.id:
            message = f"Your password was changed by {changed_by.display_name}."
        else:
            message = "Your password was changed successfully."
        NotificationService.create_notification(
            recipient_id=user.id,
            title="Password changed",
            message=message,
            notification_type=NotificationType.PASSWORD_CHANGED.value,
            priority='high',
            send_email=True,
        )

    @staticmethod
    def notify_event(event):
        return NotificationService.broadcast(
            NotificationService.audience_for(event.school_id, event.class_id),
            f"New event: {event.title}",
            event.description or event.title,
            NotificationType.NEW_EVENT.value,
            related_entity_type='event',
            related_entity_id=event.id,
            school_id=event.school_id,
        )

    @staticmethod
    def notify_announcement(announcement):
        return NotificationService.broadcast(
            NotificationService.audience_for(announcement.school_id, announcement.class_id),
            announcement.title,
            announcement.description or announcement.title,
            NotificationType.NEW_ANNOUNCEMENT.value,
            related_entity_type='announcement',
            related_entity_id=announcement.id,
            school_id=announcement.school_id,
        )

    @staticmethod
    def notify_payment(payment):
        student = payment.student
        recipients = [student.user_id]
        if student.parent:
            recipients.append(student.parent.user_id)
        if payment.status == 'PAID':
            title, kind = "Payment confirmed", NotificationType.PAYMENT_CONFIRMED.value
        else:
            title, kind = "Payment due", NotificationType.PAYMENT_DUE.value
        message = f"{payment.term} term {payment.session}: {float(payment.amount):.2f} recorded for {student.full_name} ({payment.status})."
        return NotificationService.broadcast(
            recipients, title, message, kind,
            related_entity_type='payment', related_entity_id=payment.id, school_id=payment.school_id,
        )

    @staticmethod
    def notify_grading_published(grading):
        students = Student.query.filter_by(school_id=grading.school_id).all()
        recipients = {s.user_id for s in students}
        recipients.update(s.parent.user_id for s in students if s.parent)
        return NotificationService.broadcast(
            recipients,
            "Results published",
            f"{grading.title} ({grading.term} term, {grading.session}) results are now available.",
            NotificationType.GRADING_PUBLISHED.value,
            related_entity_type='grading',
            related_entity_id=grading.id,
            school_id=grading.school_id,
        )
