"""
MFA configuration variants.

A user's second factor is exactly one of Disabled, PendingSetup or Enabled.
The User entity persists the active variant as flat columns.
"""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .enums import MfaMethod


class BackupCode(BaseModel):
    """One-shot recovery code; only its SHA-256 digest is stored."""

    code_hash: str
    used: bool = False


class MfaDisabled(BaseModel):
    state: Literal["disabled"] = "disabled"


class MfaPendingSetup(BaseModel):
    """
    Setup started but not confirmed.

    secret is the TOTP shared secret, or the one-time code sent by SMS/email.
    """

    state: Literal["pending"] = "pending"
    method: MfaMethod
    secret: str
    destination: Optional[str] = None
    code_expires_at: Optional[datetime] = None


class MfaEnabled(BaseModel):
    """
    Confirmed second factor.

    For SMS/email, secret holds the latest login code (or a random
    placeholder once consumed) and destination the phone number / address.
    """

    state: Literal["enabled"] = "enabled"
    method: MfaMethod
    secret: str
    destination: Optional[str] = None
    code_expires_at: Optional[datetime] = None
    backup_codes: List[BackupCode] = Field(default_factory=list)


MfaConfig = Union[MfaDisabled, MfaPendingSetup, MfaEnabled]
