"""
One-time password issuers for passwordless login.

Two interchangeable implementations, selected by ``OTP_MODE``:

* ``RandomOtpIssuer``: random 6-digit code, stored hashed on the user with
  an expiry and delivered by e-mail.
* ``StaticOtpIssuer``: fixed demo code (``STATIC_OTP_CODE``), nothing is
  stored or delivered.
"""

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Optional

from core.config import settings
from core.security import generate_otp_code, hash_otp, verify_otp
from core.utils.datetime import add_minutes, is_past, now
from database.models.users import User

logger = logging.getLogger(__name__)


class OtpIssuer(ABC):
    """Issues and checks one-time login codes."""

    #: Whether the issued code has to be sent to the user
    requires_delivery: bool = True

    @abstractmethod
    def issue(self, user: User) -> str:
        """Create a code for ``user`` and return it (plain text)."""

    @abstractmethod
    def verify(self, user: User, code: str) -> bool:
        """Check ``code``; a successful check consumes it."""


class RandomOtpIssuer(OtpIssuer):
    requires_delivery = True

    def __init__(self, expire_minutes: Optional[int] = None, length: int = 6):
        self.expire_minutes = expire_minutes or settings.otp_expire_minutes
        self.length = length

    def issue(self, user: User) -> str:
        code = generate_otp_code(self.length)
        user.otp_hash = hash_otp(code)
        user.otp_expires_at = add_minutes(now(), self.expire_minutes)
        logger.info(f"Issued one-time code for user {user.id}")
        return code

    def verify(self, user: User, code: str) -> bool:
        if not user.otp_hash or not user.otp_expires_at:
            return False
        if is_past(user.otp_expires_at):
            return False
        if not verify_otp(code, user.otp_hash):
            return False

        user.otp_hash = None
        user.otp_expires_at = None
        return True


class StaticOtpIssuer(OtpIssuer):
    """Demo issuer: every user logs in with the same configured code."""

    requires_delivery = False

    def __init__(self, code: Optional[str] = None):
        self.code = code or settings.static_otp_code

    def issue(self, user: User) -> str:
        logger.info(f"Static one-time code in use for user {user.id}")
        return self.code

    def verify(self, user: User, code: str) -> bool:
        return hmac.compare_digest(code.encode(), self.code.encode())


def get_otp_issuer() -> OtpIssuer:
    """Return the issuer configured by ``OTP_MODE``."""
    if settings.otp_mode == "static":
        return StaticOtpIssuer()
    return RandomOtpIssuer()
