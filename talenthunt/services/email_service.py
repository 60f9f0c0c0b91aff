from fastapi_mail import FastMail, MessageSchema, ConnectionConfig
from jinja2 import Environment, FileSystemLoader, select_autoescape
from talenthunt.config import settings
from talenthunt.models.verification_code import EMAIL_VERIFICATION, PASSWORD_RESET
from typing import Optional
import os
import logging

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates", "email")

env = Environment(loader=FileSystemLoader(TEMPLATE_DIR), autoescape=select_autoescape(["html"]))

OTP_SUBJECTS = {
    EMAIL_VERIFICATION: ("Edo Talent Hunt - Verify Your Email", "verify_email.html"),
    PASSWORD_RESET: ("Edo Talent Hunt - Password Reset", "reset_password.html"),
}


def _connection_config(port: int, ssl: bool) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.EMAIL_HOST_USER,
        MAIL_PASSWORD=settings.EMAIL_HOST_PASSWORD,
        MAIL_FROM=settings.EMAIL_FROM,
        MAIL_FROM_NAME="Edo Talent Hunt",
        MAIL_PORT=port,
        MAIL_SERVER=settings.EMAIL_HOST,
        MAIL_STARTTLS=not ssl,
        MAIL_SSL_TLS=ssl,
        USE_CREDENTIALS=bool(settings.EMAIL_HOST_USER),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=1 if settings.MAIL_SUPPRESS_SEND else 0,
    )


class EmailDispatcher:
    """Renders jinja2 templates and delivers them through fastapi-mail.

    Every public method reports success as a bool and never raises: a failed
    email must not undo the state change that triggered it.
    """

    async def send_email_with_retry(self, message: MessageSchema, subject: str, to_email: str) -> bool:
        """Try sending via TLS first (587), then SSL (465) if it fails"""
        try:
            await FastMail(_connection_config(587, ssl=False)).send_message(message)
            logger.info(f"{subject} email sent to {to_email} via port 587")
            return True
        except Exception as e:
            logger.warning(f"Failed to send {subject} via port 587: {str(e)}")
            try:
                await FastMail(_connection_config(465, ssl=True)).send_message(message)
                logger.info(f"{subject} email sent to {to_email} via port 465")
                return True
            except Exception as e2:
                logger.error(f"Failed to send {subject} email via both ports: {str(e2)}")
                return False

    async def _send_template(self, to_email: str, subject: str, template: str, **context) -> bool:
        try:
            html = env.get_template(template).render(**context)
            message = MessageSchema(subject=subject, recipients=[to_email], body=html, subtype="html")
        except Exception as e:
            logger.error(f"Failed to build {subject} email to {to_email}: {str(e)}")
            return False
        return await self.send_email_with_retry(message, subject, to_email)

    async def send_code(self, email: str, code: str, purpose: str, name: Optional[str] = None) -> bool:
        subject, template = OTP_SUBJECTS.get(purpose, ("Edo Talent Hunt - Verification Code", "verify_email.html"))
        return await self._send_template(
            email,
            subject,
            template,
            name=name or email.split("@")[0],
            token=code,
            expires_minutes=settings.OTP_EXPIRE_MINUTES,
        )

    async def send_invitation(
        self,
        email: str,
        name: str,
        sponsor_name: str,
        bulk_registration_number: str,
        code: str,
    ) -> bool:
        return await self._send_template(
            email,
            "Edo Talent Hunt - You've Been Registered",
            "bulk_invitation.html",
            name=name,
            sponsor_name=sponsor_name,
            bulk_registration_number=bulk_registration_number,
            token=code,
            expires_minutes=settings.OTP_EXPIRE_MINUTES,
        )

    async def send_tickets(self, email: str, name: str, purchase_reference: str, ticket_numbers: list, items: list) -> bool:
        return await self._send_template(
            email,
            "Edo Talent Hunt - Your Tickets",
            "tickets.html",
            name=name,
            purchase_reference=purchase_reference,
            ticket_numbers=ticket_numbers,
            items=items,
        )


_dispatcher = EmailDispatcher()


def get_email_dispatcher() -> EmailDispatcher:
    return _dispatcher
