import resend
import logging
from app.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html_content: str) -> None:
    """Sends an email using the Resend service."""
    if not settings.RESEND_API_KEY or not settings.RESEND_API_KEY.get_secret_value():
        logger.error("RESEND_API_KEY is not configured or is empty. Cannot send email.")
        return

    try:
        resend.api_key = settings.RESEND_API_KEY.get_secret_value()
        params = {
            "from": settings.EMAIL_FROM_ADDRESS,
            "to": [to],
            "subject": subject,
            "html": html_content,
        }
        email = resend.Emails.send(params)
        logger.info(f"Email sent successfully to {to}. Message ID: {email['id']}")
    except Exception as e:
        logger.error(f"Failed to send email to {to}. Error: {e}")
        raise  # Re-raise the exception so the caller can handle it


def send_magic_link_email(to_email: str, link: str) -> None:
    """Sends a passwordless sign-in link."""
    subject = "Your Spark sign-in link"
    html_content = f"""
    <p>Click the link below to sign in. This link expires in {settings.MAGIC_LINK_EXPIRE_MINUTES} minutes.</p>
    <p><a href="{link}">Open sign-in link</a></p>
    <p>If your phone has the Spark app installed, it will open after you follow the link.</p>
    <p>If you did not ask to sign in, you can safely ignore this email.</p>
    """
    send_email(to=to_email, subject=subject, html_content=html_content)
