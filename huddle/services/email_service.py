import logging
import os
import smtplib
from email.message import EmailMessage

from jinja2 import Environment, FileSystemLoader, select_autoescape

from huddle.core.config import Settings
from huddle.core.exceptions import DeliveryError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates", "email")

templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)


def render(template_name: str, **context) -> str:
    return templates.get_template(template_name).render(**context).strip()


def send_email(settings: Settings, to: str, subject: str, html: str) -> str:
    """Hands one message to the SMTP server and returns the provider name.

    In development, or when no SMTP account is configured, the message is
    only logged.
    """
    if settings.is_development or not settings.SMTP_USER:
        logger.info("Email to %s (%s) logged instead of sent", to, subject)
        return "console"

    message = EmailMessage()
    message["From"] = settings.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable email client.")
    message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(settings.SMTP_USER, settings.SMTP_PASS or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise DeliveryError(f"SMTP delivery to {to} failed: {e}") from e
    return "smtp"
