"""Mail delivery of rotated log files.

When a section sets ``mail ADDRESS`` the executor hands the rotated file
(``maillast``, the default) or the pre-rotation file (``mailfirst``) to
:class:`MailNotifier`, which sends it as an attachment over SMTP.

Delivery failures are logged and reported through the return value;
they never stop a rotation.

Example
-------
>>> notifier = MailNotifier()
>>> notifier.send(policy, Path("/var/log/app.log.1"), "app.log rotated")
True
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path

from pylogrotate.policies.policy import PolicyRecord

logger = logging.getLogger(__name__)


class MailNotifier:
    """Sends a log file to the address configured in a policy.

    Parameters
    ----------
    timeout_seconds:
        SMTP connection timeout in seconds (default: 30).
    dry_run:
        Log instead of connecting.
    """

    def __init__(self, timeout_seconds: float = 30.0, dry_run: bool = False) -> None:
        self._timeout = timeout_seconds
        self._dry_run = dry_run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def send(self, policy: PolicyRecord, attachment: Path, subject: str) -> bool:
        """Mail *attachment* to ``policy.mail``.

        Parameters
        ----------
        policy:
            Supplies the recipient and the SMTP connection settings.
        attachment:
            File to attach.
        subject:
            Message subject.

        Returns
        -------
        bool
            ``True`` when the message was accepted by the SMTP server.
        """
        if not policy.mail:
            return False
        if not policy.smtpserver:
            logger.warning("mail %s configured without smtpserver; not sending %s", policy.mail, attachment)
            return False
        if self._dry_run:
            logger.info("Would mail %s to %s via %s", attachment, policy.mail, policy.smtpserver)
            return True

        try:
            message = self._build_message(policy, attachment, subject)
            self._deliver(policy, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to mail %s to %s: %s", attachment, policy.mail, exc)
            return False
        logger.info("Mailed %s to %s", attachment, policy.mail)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_message(policy: PolicyRecord, attachment: Path, subject: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = policy.smtpfrom
        message["To"] = policy.mail
        message["Subject"] = subject
        message.set_content(f"Rotated log file {attachment.name} is attached.")
        message.add_attachment(
            attachment.read_bytes(),
            maintype="application",
            subtype="octet-stream",
            filename=attachment.name,
        )
        return message

    def _deliver(self, policy: PolicyRecord, message: EmailMessage) -> None:
        smtp_class = smtplib.SMTP_SSL if policy.smtpssl else smtplib.SMTP
        with smtp_class(policy.smtpserver, policy.smtpport, timeout=self._timeout) as client:
            if policy.smtpuser:
                client.login(policy.smtpuser, policy.smtpuserpwd or "")
            client.send_message(message)
