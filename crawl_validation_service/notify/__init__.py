"""Outbound notifications."""

from .email import Notifier, SmtpNotifier

__all__ = ["Notifier", "SmtpNotifier"]
