"""Mail delivery of rotated log files."""
from __future__ import annotations

from pylogrotate.mail.notifier import MailNotifier

__all__ = ["MailNotifier"]
