"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging messages instead of delivering them.
"""

import logging

from trustgraph.domain.result import Ok, Result

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - the verification link shows up in the logs.
    """

    def __init__(self, sender: str = "noreply@trustgraph.local") -> None:
        self.sender = sender

    def send(self, address: str, subject: str, body: str) -> Result[None]:
        """
        Log the message to console (simulates email delivery).

        Args:
            address: Recipient email address
            subject: Message subject
            body: Plain-text message body

        Returns:
            Ok(None); console delivery cannot fail
        """
        logger.info("[EMAIL] From: %s To: %s Subject: %s\n%s", self.sender, address, subject, body)
        return Ok(None)
