"""
Email notification client.

Sends release notifications through an SMTP server.
"""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage

from release_watcher.config import MailConfig
from release_watcher.errors import DeliveryError
from release_watcher.models import ReleaseRecord
from release_watcher.notifier import render_notification

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    SMTP notification client.

    Opens one SMTP connection per message. The blocking smtplib calls
    run in a worker thread so other sources keep progressing.
    """

    channel = "email"

    def __init__(self, config: MailConfig):
        """
        Initialize the email notifier.

        Parameters
        ----------
        config : MailConfig
            SMTP server, credentials and addresses.
        """
        self.config = config

    def _build_message(self, source: str, release: ReleaseRecord) -> EmailMessage:
        notification = render_notification(source, release)
        msg = EmailMessage()
        msg["Subject"] = notification.subject
        msg["From"] = self.config.sender
        msg["To"] = ", ".join(self.config.recipients)
        msg.set_content(notification.body)
        return msg

    def _send(self, msg: EmailMessage) -> None:
        """Deliver a message synchronously."""
        config = self.config
        context = ssl.create_default_context()

        if config.secure:
            connection: smtplib.SMTP = smtplib.SMTP_SSL(
                config.host, config.port, timeout=config.timeout, context=context
            )
        else:
            connection = smtplib.SMTP(config.host, config.port, timeout=config.timeout)

        with connection as client:
            if not config.secure:
                client.ehlo()
                if client.has_extn("starttls"):
                    client.starttls(context=context)
                    client.ehlo()
            if config.auth is not None:
                client.login(config.auth.user, config.auth.password)
            client.send_message(msg)

    async def send_release(self, source: str, release: ReleaseRecord) -> None:
        """
        Send a release notification by email.

        Parameters
        ----------
        source : str
            Name of the source.
        release : ReleaseRecord
            The new release.

        Raises
        ------
        DeliveryError
            If the message cannot be built or the SMTP exchange fails.
        """
        try:
            msg = self._build_message(source, release)
            await asyncio.to_thread(self._send, msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            raise DeliveryError(
                self.channel, f"Failed to send email for '{source}': {e}"
            ) from e

        logger.info("Email sent for %s - %s", source, release.title)

    async def close(self) -> None:
        """Nothing to release: connections are per message."""
