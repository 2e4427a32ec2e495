"""E-mail notifications for issued certificates"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Optional

from certlink.shared.config import EmailConfig
from certlink.shared.errors import NotificationFailed, NotificationUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InternDetails:
    """Extra context for internship completion certificates."""

    name: str
    role: str
    start_date: str
    end_date: str


def _build_message(
    sender: str,
    recipient: str,
    file_name: str,
    view_url: str,
    intern: Optional[InternDetails],
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient

    if intern:
        message["Subject"] = "Your Internship Completion Certificate"
        greeting = f"Dear {intern.name},"
        body = (
            f"It's a pleasure to share your Internship Completion Certificate for your time "
            f"with us from {intern.start_date} to {intern.end_date}, where you worked as a "
            f"{intern.role}."
        )
        details = [
            f"Intern Name: {intern.name}",
            f"Role: {intern.role}",
            f"Duration: {intern.start_date} to {intern.end_date}",
        ]
    else:
        message["Subject"] = "Your certificate is ready"
        greeting = "Hello,"
        body = f"Your certificate \"{file_name}\" has been uploaded and is ready to view."
        details = [f"File: {file_name}"]

    details.append(f"Certificate Link: {view_url}")

    text = "\n\n".join([greeting, body, "\n".join(details)])
    message.set_content(text)

    html_details = "".join(f"<p>{escape(line)}</p>" for line in details[:-1])
    message.add_alternative(
        f"<p>{escape(greeting)}</p>"
        f"<p>{escape(body)}</p>"
        f"<p><a href=\"{escape(view_url)}\">View Your Certificate</a></p>"
        f"{html_details}"
        f"<p>Certificate Link: <a href=\"{escape(view_url)}\">{escape(view_url)}</a></p>",
        subtype="html",
    )
    return message


class EmailService:
    """
    Sends "your certificate is ready" messages over SMTP.

    The service is constructed once at startup. When the transport is not
    configured every send raises NotificationUnavailable instead of silently
    doing nothing.
    """

    def __init__(self, config: EmailConfig):
        self.config = config
        if not config.is_configured:
            logger.info("Email configuration not found. Email service disabled.")

    @property
    def is_available(self) -> bool:
        return self.config.is_configured

    def _send(self, message: EmailMessage) -> None:
        cfg = self.config
        context = ssl.create_default_context()

        if cfg.port == 465:
            with smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout_seconds, context=context) as smtp:
                smtp.login(cfg.user, cfg.password)
                smtp.send_message(message)
        else:
            with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as smtp:
                smtp.starttls(context=context)
                smtp.login(cfg.user, cfg.password)
                smtp.send_message(message)

    async def send_certificate_link(
        self,
        email: str,
        certificate_id: str,
        file_name: str,
        view_url: str,
        intern: Optional[InternDetails] = None,
    ) -> None:
        """
        Send the certificate view link to a recipient.

        Args:
            email: Recipient address
            certificate_id: Certificate identifier (for logging)
            file_name: Display name of the certificate file
            view_url: Public view URL
            intern: Optional internship details for the richer template

        Raises:
            NotificationUnavailable: If the transport is not configured
            NotificationFailed: If the SMTP exchange fails
        """
        if not self.is_available:
            raise NotificationUnavailable("Email service not configured")

        try:
            # Header values containing CR/LF raise ValueError here
            message = _build_message(
                sender=self.config.from_address or self.config.user,
                recipient=email,
                file_name=file_name,
                view_url=view_url,
                intern=intern,
            )
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"Email sending failed for certificate {certificate_id}: {e}")
            raise NotificationFailed("Failed to send certificate email", cause=e) from e

        logger.info(f"Email sent for certificate {certificate_id} to {email}")
