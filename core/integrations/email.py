"""Email integration for job board notifications."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from core.config import settings
from core.utils.formatting import mask_email

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service for sending emails via SMTP.

    Without an SMTP host (local development, tests) messages are logged
    instead of sent.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML
            reply_to: Reply-to email address

        Returns:
            True if email sent (or logged in development mode)
        """
        recipients = list(to_email) if isinstance(to_email, list) else [to_email]

        if not self.is_configured:
            logger.info(
                f"Email (development mode) to {', '.join(mask_email(r) for r in recipients)}: "
                f"{subject}"
            )
            logger.debug(body)
            return True

        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ", ".join(recipients)
        msg['Subject'] = subject
        if reply_to:
            msg['Reply-To'] = reply_to
        msg.attach(MIMEText(body, 'html' if html else 'plain'))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return False

        logger.info(f"Email sent to {', '.join(mask_email(r) for r in recipients)}")
        return True


class EmailTemplates:
    """Plain-text job board email templates."""

    @staticmethod
    def otp_code(user_name: str, code: str, expires_minutes: int) -> dict:
        return {
            'subject': f'Your {settings.from_name} verification code',
            'body': (
                f"Hi {user_name},\n\n"
                f"Your {settings.from_name} verification code is: {code}. "
                f"This code expires in {expires_minutes} minutes.\n"
            ),
        }

    @staticmethod
    def application_received(candidate_name: str, position: str, company: str) -> dict:
        return {
            'subject': f'Application Received - {position}',
            'body': (
                f"Hi {candidate_name},\n\n"
                f"Thank you for applying to {position} at {company}. "
                f"We'll review your application and get back to you soon.\n"
            ),
        }

    @staticmethod
    def status_update(candidate_name: str, position: str, company: str, status: str) -> dict:
        openings = {
            'shortlisted': "Congratulations! You have been shortlisted for",
            'rejected': "Unfortunately, your application for",
            'hired': "Great news! You have been selected for",
            'interview-scheduled': "Your interview has been scheduled for",
        }
        opening = openings.get(status, "There is an update on your application for")
        if status == 'rejected':
            line = f"{opening} {position} at {company} was not successful."
        else:
            line = f"{opening} {position} at {company}."
        return {
            'subject': f'Application Update - {position}',
            'body': f"Hi {candidate_name},\n\n{line}\n",
        }

    @staticmethod
    def interview_invitation(
        candidate_name: str,
        position: str,
        interview_date: str,
        interview_time: str,
        interview_type: Optional[str] = None,
        location: Optional[str] = None,
    ) -> dict:
        details = [f"Date: {interview_date}", f"Time: {interview_time}"]
        if interview_type:
            details.append(f"Type: {interview_type}")
        if location:
            details.append(f"Location: {location}")
        return {
            'subject': f'Interview Invitation - {position}',
            'body': (
                f"Hi {candidate_name},\n\n"
                f"Your interview has been scheduled for {position}.\n\n"
                + "\n".join(details)
                + "\n"
            ),
        }

    @staticmethod
    def job_moderated(
        employer_name: str, position: str, approved: bool, reason: Optional[str] = None
    ) -> dict:
        if approved:
            line = f"Your job posting \"{position}\" has been approved and is now live."
        else:
            line = f"Your job posting \"{position}\" was not approved. Reason: {reason}"
        return {
            'subject': f'Job Posting {"Approved" if approved else "Rejected"} - {position}',
            'body': f"Hi {employer_name},\n\n{line}\n",
        }


class ApplicationNotifier:
    """
    Best-effort notifications for workflow transitions.

    Every method takes plain values (not ORM objects) so it can run as a
    background task after the request's session is gone, and never raises.
    """

    def __init__(self, email_service: Optional[EmailService] = None):
        self.email = email_service or get_email_service()

    def _send(self, to_email: str, template: dict) -> bool:
        return self.email.send_email(to_email, template['subject'], template['body'])

    def send_otp(self, to_email: str, user_name: str, code: str, expires_minutes: int) -> bool:
        return self._send(to_email, EmailTemplates.otp_code(user_name, code, expires_minutes))

    def application_received(
        self, to_email: str, candidate_name: str, position: str, company: str
    ) -> bool:
        return self._send(
            to_email, EmailTemplates.application_received(candidate_name, position, company)
        )

    def status_changed(
        self, to_email: str, candidate_name: str, position: str, company: str, status: str
    ) -> bool:
        return self._send(
            to_email, EmailTemplates.status_update(candidate_name, position, company, status)
        )

    def interview_scheduled(
        self,
        to_email: str,
        candidate_name: str,
        position: str,
        interview_date: str,
        interview_time: str,
        interview_type: Optional[str] = None,
        location: Optional[str] = None,
    ) -> bool:
        return self._send(
            to_email,
            EmailTemplates.interview_invitation(
                candidate_name, position, interview_date, interview_time, interview_type, location
            ),
        )

    def job_moderated(
        self,
        to_email: str,
        employer_name: str,
        position: str,
        approved: bool,
        reason: Optional[str] = None,
    ) -> bool:
        return self._send(
            to_email, EmailTemplates.job_moderated(employer_name, position, approved, reason)
        )


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def get_notifier() -> ApplicationNotifier:
    """FastAPI dependency returning the notifier."""
    return ApplicationNotifier()
