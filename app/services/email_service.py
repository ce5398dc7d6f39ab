import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

from app.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html_body: str) -> bool:
    """Send via SMTP; returns False in stub mode (SMTP not configured)."""
    if not settings.smtp_configured:
        logger.info("[EMAIL STUB] To: %s | Subject: %s", to_email, subject)
        logger.debug("[EMAIL STUB] Body: %s", html_body[:200])
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html"))

    if settings.smtp_port == 465:
        with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port) as server:
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from, to_email, msg.as_string())
    else:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_from, to_email, msg.as_string())
    logger.info("Invitation email sent to %s", to_email)
    return True


def build_interview_link(interview_id: str, token: str) -> str:
    return f"{settings.frontend_url}/interview/{interview_id}?token={token}"


def send_interview_invitation(
    to_email: str,
    candidate_name: str,
    role_name: str,
    tech_stacks: List[str],
    date_label: str,
    time_label: str,
    duration: int,
    interview_link: str,
) -> bool:
    stacks = ", ".join(tech_stacks) if tech_stacks else "general technical topics"
    subject = f"{settings.company_name} - Interview Invitation for {role_name}"
    body = f"""
    <h2>Hi {candidate_name},</h2>
    <p>You have been invited to a technical interview for <strong>{role_name}</strong> at {settings.company_name}.</p>
    <p><strong>Topics:</strong> {stacks}</p>
    <p><strong>When:</strong> {date_label} at {time_label} ({duration} minutes)</p>
    <p><a href="{interview_link}" style="background:#2563eb;color:white;padding:12px 24px;border-radius:8px;text-decoration:none;font-weight:bold;">
        Join Your Interview
    </a></p>
    <p>The link only works during the scheduled window. You'll need a microphone and a quiet environment.</p>
    <p>Good luck!<br>The {settings.company_name} Team</p>
    """
    return send_email(to_email, subject, body)
