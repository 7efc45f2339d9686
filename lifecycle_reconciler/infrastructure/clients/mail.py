"""SMTP mail transport for user notices and admin reports"""

import mimetypes
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from pathlib import Path
from typing import Optional, Sequence

from lifecycle_reconciler.config import Settings
from lifecycle_reconciler.domain.exceptions import MailSendError

INLINE_IMAGE_CID = "logo"


class SmtpMailer:
    """Sends HTML mail through the configured relay. Dry-run is the caller's decision."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.use_ssl = settings.smtp_use_ssl
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.timeout = settings.smtp_timeout_seconds
        self.sender = settings.sender_address

    def build_message(
        self,
        to: Sequence[str],
        subject: str,
        html_body: str,
        inline_image: Optional[Path] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(to)
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid()
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")

        if inline_image is not None:
            mime_type, _ = mimetypes.guess_type(inline_image.name)
            maintype, subtype = (mime_type or "image/png").split("/", 1)
            html_part = message.get_payload()[1]
            html_part.add_related(
                inline_image.read_bytes(),
                maintype=maintype,
                subtype=subtype,
                cid=f"<{INLINE_IMAGE_CID}>",
                filename=inline_image.name,
            )
        return message

    def send(
        self,
        to: Sequence[str],
        subject: str,
        html_body: str,
        inline_image: Optional[Path] = None,
    ) -> None:
        """
        Deliver one message.

        Raises:
            MailSendError: no recipients, unreadable inline image, or any SMTP/socket failure
        """
        recipients = [address for address in to if address]
        if not recipients:
            raise MailSendError("No recipients")

        try:
            message = self.build_message(recipients, subject, html_body, inline_image)
        except OSError as e:
            raise MailSendError(f"Cannot attach inline image {inline_image}: {e}") from e

        smtp_class = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        try:
            with smtp_class(self.host, self.port, timeout=self.timeout) as smtp:
                if self.username and self.password is not None:
                    smtp.login(self.username, self.password.get_secret_value())
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailSendError(f"SMTP delivery to {', '.join(recipients)} failed: {e}") from e
