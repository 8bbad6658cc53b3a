from flask import current_app
from flask_mail import Message

from hallmark import mail


class EmailService:
    """Service for handling outgoing email"""

    @staticmethod
    def send_email(subject, recipients, text_body, html_body=None):
        """
        Send an email through Flask-Mail.

        When ``SEND_EMAILS`` is off the message is only logged. Returns True on
        success (or when logged), False when sending failed.
        """
        recipient_list = [r for r in (recipients or []) if r]
        if not recipient_list:
            current_app.logger.error("No recipients specified for email")
            return False

        if not current_app.config.get('SEND_EMAILS'):
            return EmailService._log_email(subject, recipient_list)

        try:
            msg = Message(
                subject=subject,
                recipients=recipient_list,
                body=text_body,
                html=html_body,
                sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
            )
            mail.send(msg)
            current_app.logger.info(f"Email sent successfully to {', '.join(recipient_list)}")
            return True
        except Exception as e:
            current_app.logger.error(f"Failed to send email to {recipient_list[0]}: {str(e)}")
            return False

    @staticmethod
    def _log_email(subject, recipients):
        # Bodies can carry initial passwords; never log them
        current_app.logger.info(f"EMAIL (not sent) to {', '.join(recipients)}: {subject}")
        return True

    @staticmethod
    def send_account_created(email, name, login_id, password):
        subject = "Your Hallmark Academy account"
        body = f"""
Hello {name},

An account has been created for you on Hallmark Academy.

Login: {login_id}
Password: {password}

Please change your password after your first login.

Hallmark Academy
        """
        return EmailService.send_email(subject, [email], body)
