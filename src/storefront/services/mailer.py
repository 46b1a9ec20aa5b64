"""Outbound email over SMTP"""
from email.message import EmailMessage
from typing import Optional
from opentelemetry import trace
from storefront.services.errors import MailDeliveryError
import smtplib
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class Mailer:
    """Sends plain-text mail through one SMTP relay"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "no-reply@storefront.local",
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def send(self, to: str, subject: str, body: str, reply_to: Optional[str] = None):
        """Send one message; raises MailDeliveryError on any SMTP failure"""
        with tracer.start_as_current_span("mailer.send") as span:
            span.set_attribute("mail.subject", subject)

            if not self.is_configured:
                raise MailDeliveryError("SMTP host is not configured")

            message = EmailMessage()
            message["From"] = self.sender
            message["To"] = to
            message["Subject"] = subject
            if reply_to:
                message["Reply-To"] = reply_to
            message.set_content(body)

            try:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                    if self.use_tls:
                        smtp.starttls()
                    if self.user and self.password:
                        smtp.login(self.user, self.password)
                    smtp.send_message(message)
            except (smtplib.SMTPException, OSError) as e:
                logger.error(f"Failed to send mail '{subject}': {e}")
                span.record_exception(e)
                raise MailDeliveryError(str(e))

            logger.info(f"Sent mail '{subject}'")
