"""
Access - single-use access tokens, participant roster and invitations.
"""

from assessment_engine.engines.access.notifier import (
    BrevoNotifier,
    DeliveryResult,
    LoggingNotifier,
    Notifier,
    Recipient,
    build_notifier,
)
from assessment_engine.engines.access.roster import Roster
from assessment_engine.engines.access.token_issuer import IssueResult, TokenIssuer, generate_code

__all__ = [
    "BrevoNotifier",
    "DeliveryResult",
    "IssueResult",
    "LoggingNotifier",
    "Notifier",
    "Recipient",
    "Roster",
    "TokenIssuer",
    "build_notifier",
    "generate_code",
]
