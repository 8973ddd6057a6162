"""
MFA Manager

Enrollment and verification of second factors (TOTP, SMS, email) and
one-time backup codes. Works on the User entity in memory; callers persist
the changes with users.save_mfa inside their Unit of Work.
"""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import timedelta
from typing import List, Optional

import pyotp
from pydantic import BaseModel

from src.app.services.code_sender import ICodeSender
from src.app.services.rate_limiter import IRateLimiter
from src.domain.base import utc_now
from src.domain.entities import (
    BackupCode,
    MfaDisabled,
    MfaEnabled,
    MfaMethod,
    MfaPendingSetup,
    User,
)
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)

PHONE_NUMBER_PATTERN = re.compile(r"^\+\d{10,15}$")
DELIVERY_WINDOW = timedelta(hours=1)

INVALID_CODE = Error("INVALID_MFA_CODE", "Invalid verification code")
STATE_CHANGED = Error(
    "MFA_STATE_CHANGED", "MFA settings were changed by another request, please retry"
)


class MfaSetupResult(BaseModel):
    """What the caller needs to finish enrollment"""

    method: MfaMethod
    secret: Optional[str] = None
    provisioning_uri: Optional[str] = None
    destination: Optional[str] = None


def hash_backup_code(code: str) -> str:
    return hashlib.sha256(code.strip().lower().encode()).hexdigest()


def generate_numeric_code() -> str:
    return str(secrets.randbelow(900000) + 100000)


def mask_destination(destination: str) -> str:
    if "@" in destination:
        local, _, domain = destination.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"{'*' * (len(destination) - 4)}{destination[-4:]}"


class MfaManager:
    """
    Second factor state machine: Disabled -> PendingSetup -> Enabled.

    Business Rules:
    - setup() stores a pending secret; MFA is not active until verified
    - Successful setup verification yields 10 backup codes, returned once
    - SMS/email codes are single use and expire after code_ttl
    - A backup code authenticates exactly once
    - MFA failures never touch the login lockout counter
    """

    def __init__(
        self,
        code_sender: ICodeSender,
        rate_limiter: IRateLimiter,
        issuer_name: str = "IdentityService",
        code_ttl: timedelta = timedelta(minutes=10),
        backup_code_count: int = 10,
        deliveries_per_hour: int = 5,
        verify_attempts: int = 5,
        verify_window: timedelta = timedelta(minutes=5),
    ):
        self.code_sender = code_sender
        self.rate_limiter = rate_limiter
        self.issuer_name = issuer_name
        self.code_ttl = code_ttl
        self.backup_code_count = backup_code_count
        self.deliveries_per_hour = deliveries_per_hour
        self.verify_attempts = verify_attempts
        self.verify_window = verify_window

    async def setup(
        self, user: User, method: MfaMethod, destination: Optional[str] = None
    ) -> Result[MfaSetupResult]:
        """
        Start enrollment for a method.

        TOTP returns the shared secret and an otpauth:// URI. SMS and email
        deliver a 6-digit code out of band.
        """
        if user.mfa_enabled:
            return Return.err(
                Error("MFA_ALREADY_ENABLED", "Disable MFA before enrolling a new method")
            )

        if method == MfaMethod.totp:
            secret = pyotp.random_base32()
            uri = pyotp.TOTP(secret).provisioning_uri(
                name=user.email, issuer_name=self.issuer_name
            )
            user.apply_mfa(MfaPendingSetup(method=method, secret=secret))
            logger.info(f"TOTP setup initiated for user: {user.id}")
            return Return.ok(
                MfaSetupResult(method=method, secret=secret, provisioning_uri=uri)
            )

        if method == MfaMethod.sms:
            if not destination or not PHONE_NUMBER_PATTERN.match(destination):
                return Return.err(
                    Error(
                        "VALIDATION_ERROR",
                        "Phone number must be in international format (e.g., +1234567890)",
                    )
                )
        elif method == MfaMethod.email:
            destination = user.email
        else:
            return Return.err(Error("VALIDATION_ERROR", "Invalid MFA method"))

        code = generate_numeric_code()
        delivered = await self._deliver(method, destination, code)
        if delivered.is_err():
            return Return.err(delivered.error)

        user.apply_mfa(
            MfaPendingSetup(
                method=method,
                secret=code,
                destination=destination,
                code_expires_at=utc_now() + self.code_ttl,
            )
        )
        logger.info(f"{method.value} MFA setup initiated for user: {user.id}")
        return Return.ok(
            MfaSetupResult(method=method, destination=mask_destination(destination))
        )

    def verify_setup(self, user: User, code: str) -> Result[List[str]]:
        """
        Confirm enrollment with the first code.

        Returns:
            Result with the plaintext backup codes (only time they are shown),
            or Error MFA_NOT_INITIATED / INVALID_MFA_CODE
        """
        config = user.mfa_config()
        if not isinstance(config, MfaPendingSetup):
            return Return.err(Error("MFA_NOT_INITIATED", "MFA setup not initiated"))

        if config.method == MfaMethod.totp:
            valid = self._verify_totp(config.secret, code)
        else:
            valid = self._verify_one_time_code(config.secret, config.code_expires_at, code)

        if not valid:
            logger.warning(f"Invalid MFA setup verification for user: {user.id}")
            return Return.err(INVALID_CODE)

        codes, backup_codes = self._new_backup_codes()
        if config.method == MfaMethod.totp:
            secret = config.secret
        else:
            # Consumed; login challenges replace it with a fresh code
            secret = secrets.token_hex(20)
        user.apply_mfa(
            MfaEnabled(
                method=config.method,
                secret=secret,
                destination=config.destination,
                backup_codes=backup_codes,
            )
        )
        logger.info(f"{config.method.value} MFA enabled for user: {user.id}")
        return Return.ok(codes)

    async def send_login_challenge(self, user: User) -> Result[Optional[str]]:
        """
        Deliver a fresh login code for SMS/email factors.

        Returns the masked destination, or None for TOTP (nothing to send).
        """
        config = user.mfa_config()
        if not isinstance(config, MfaEnabled):
            return Return.err(Error("MFA_NOT_ENABLED", "MFA not enabled for this user"))
        if config.method == MfaMethod.totp:
            return Return.ok(None)

        code = generate_numeric_code()
        delivered = await self._deliver(config.method, config.destination, code)
        if delivered.is_err():
            return Return.err(delivered.error)

        user.apply_mfa(
            config.model_copy(
                update={"secret": code, "code_expires_at": utc_now() + self.code_ttl}
            )
        )
        return Return.ok(mask_destination(config.destination))

    def verify_login(
        self,
        user: User,
        code: Optional[str] = None,
        backup_code: Optional[str] = None,
    ) -> Result[None]:
        """
        Check a second factor during login.

        A backup code is consumed on match. SMS/email codes are replaced by a
        random value after a successful check so they cannot be replayed.
        """
        config = user.mfa_config()
        if not isinstance(config, MfaEnabled):
            return Return.err(Error("MFA_NOT_ENABLED", "MFA not enabled for this user"))

        if backup_code:
            digest = hash_backup_code(backup_code)
            for entry in config.backup_codes:
                if not entry.used and hmac.compare_digest(entry.code_hash, digest):
                    entry.used = True
                    user.apply_mfa(config)
                    remaining = sum(1 for c in config.backup_codes if not c.used)
                    logger.info(
                        f"Backup code used for user: {user.id} ({remaining} remaining)"
                    )
                    return Return.ok(None)
            logger.warning(f"Invalid backup code for user: {user.id}")
            return Return.err(INVALID_CODE)

        if not code:
            return Return.err(INVALID_CODE)

        if config.method == MfaMethod.totp:
            if not self._verify_totp(config.secret, code):
                logger.warning(f"Invalid MFA verification for user: {user.id}")
                return Return.err(INVALID_CODE)
            return Return.ok(None)

        if not self._verify_one_time_code(config.secret, config.code_expires_at, code):
            logger.warning(f"Invalid MFA verification for user: {user.id}")
            return Return.err(INVALID_CODE)

        user.apply_mfa(
            config.model_copy(
                update={"secret": secrets.token_hex(20), "code_expires_at": None}
            )
        )
        return Return.ok(None)

    async def allow_verify_attempt(self, challenge_id: str) -> bool:
        """Count one code check against a login challenge; False once it is used up."""
        allowed = await self.rate_limiter.hit(
            f"mfa-verify:{challenge_id}", self.verify_attempts, self.verify_window
        )
        if not allowed:
            logger.warning(f"MFA verification attempts exhausted for challenge: {challenge_id}")
        return allowed

    def disable(self, user: User) -> Result[None]:
        if isinstance(user.mfa_config(), MfaDisabled):
            return Return.err(Error("MFA_NOT_ENABLED", "MFA not enabled for this user"))
        user.apply_mfa(MfaDisabled())
        logger.info(f"MFA disabled for user: {user.id}")
        return Return.ok(None)

    def regenerate_backup_codes(self, user: User) -> Result[List[str]]:
        config = user.mfa_config()
        if not isinstance(config, MfaEnabled):
            return Return.err(Error("MFA_NOT_ENABLED", "MFA not enabled for this user"))
        codes, backup_codes = self._new_backup_codes()
        user.apply_mfa(config.model_copy(update={"backup_codes": backup_codes}))
        logger.info(f"Backup codes regenerated for user: {user.id}")
        return Return.ok(codes)

    def _new_backup_codes(self):
        codes = [secrets.token_hex(4) for _ in range(self.backup_code_count)]
        return codes, [BackupCode(code_hash=hash_backup_code(c)) for c in codes]

    def _verify_totp(self, secret: str, code: str) -> bool:
        if not code or not code.isdigit():
            return False
        # One step either side for clock skew
        return pyotp.TOTP(secret).verify(code, valid_window=1)

    def _verify_one_time_code(self, expected: str, expires_at, code: str) -> bool:
        if not code or not expected:
            return False
        if expires_at is None or expires_at <= utc_now():
            return False
        return hmac.compare_digest(expected.encode(), code.strip().encode())

    async def _deliver(self, method: MfaMethod, destination: str, code: str) -> Result[None]:
        allowed = await self.rate_limiter.hit(
            f"mfa:{destination}", self.deliveries_per_hour, DELIVERY_WINDOW
        )
        if not allowed:
            logger.warning(f"MFA delivery rate limit exceeded for {mask_destination(destination)}")
            return Return.err(
                Error("MFA_RATE_LIMITED", "Too many verification codes requested, try again later")
            )

        message = f"Your {self.issuer_name} verification code is: {code}"
        if not await self.code_sender.send(method, destination, message):
            logger.error(f"MFA code delivery failed via {method.value}")
            return Return.err(
                Error("MFA_DELIVERY_FAILED", "Could not deliver the verification code")
            )
        return Return.ok(None)
