"""
User Entity

Owns identity, password material, lockout counters and MFA configuration.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, SQLModel

from src.domain.base import utc_now
from .enums import MfaMethod, MfaState
from .mfa import BackupCode, MfaConfig, MfaDisabled, MfaEnabled, MfaPendingSetup


class User(SQLModel, table=True):
    """
    User entity.

    Business Rules:
    - Username and email are unique; email is stored lower-cased
    - password_hash is an Argon2id encoded hash, never plaintext
    - password_history keeps at most 5 previous hashes, oldest first
    - While locked_until is in the future every login attempt is rejected
    - mfa_state=enabled implies mfa_method != none and mfa_secret is set
    - MFA columns change only through a save that checks mfa_version, so a
      backup or one-time code is consumed by exactly one request
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=30)
    email: str = Field(unique=True, index=True, max_length=255)

    password_hash: str = Field(max_length=255)
    password_history: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    password_changed_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime)
    )

    # Lockout
    failed_login_attempts: int = Field(default=0)
    locked_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # MFA (see mfa_config / apply_mfa)
    mfa_state: MfaState = Field(default=MfaState.disabled)
    mfa_method: MfaMethod = Field(default=MfaMethod.none)
    mfa_secret: Optional[str] = Field(default=None, max_length=255)
    mfa_destination: Optional[str] = Field(default=None, max_length=255)
    mfa_code_expires_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    backup_codes: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    mfa_version: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    @property
    def mfa_enabled(self) -> bool:
        return self.mfa_state == MfaState.enabled

    def mfa_config(self) -> MfaConfig:
        """Current MFA configuration as a tagged variant."""
        if self.mfa_state == MfaState.pending:
            return MfaPendingSetup(
                method=self.mfa_method,
                secret=self.mfa_secret,
                destination=self.mfa_destination,
                code_expires_at=self.mfa_code_expires_at,
            )
        if self.mfa_state == MfaState.enabled:
            return MfaEnabled(
                method=self.mfa_method,
                secret=self.mfa_secret,
                destination=self.mfa_destination,
                code_expires_at=self.mfa_code_expires_at,
                backup_codes=[BackupCode(**c) for c in self.backup_codes or []],
            )
        return MfaDisabled()

    def apply_mfa(self, config: MfaConfig) -> None:
        """Persist an MFA variant onto the flat columns."""
        if isinstance(config, MfaDisabled):
            self.mfa_state = MfaState.disabled
            self.mfa_method = MfaMethod.none
            self.mfa_secret = None
            self.mfa_destination = None
            self.mfa_code_expires_at = None
            self.backup_codes = []
            return

        if config.method == MfaMethod.none or not config.secret:
            raise ValueError("An active MFA configuration needs a method and a secret")

        self.mfa_method = config.method
        self.mfa_secret = config.secret
        self.mfa_destination = config.destination
        self.mfa_code_expires_at = config.code_expires_at
        if isinstance(config, MfaEnabled):
            self.mfa_state = MfaState.enabled
            self.backup_codes = [c.model_dump() for c in config.backup_codes]
        else:
            self.mfa_state = MfaState.pending
            self.backup_codes = []
