"""
Identity Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class MfaMethod(str, Enum):
    """Second factor delivery method"""

    none = "none"
    totp = "totp"
    sms = "sms"
    email = "email"


class MfaState(str, Enum):
    """MFA enrollment state"""

    disabled = "disabled"
    pending = "pending"
    enabled = "enabled"


class RevokedReason(str, Enum):
    """Why a refresh token stopped being usable"""

    rotation = "rotation"
    logout = "logout"
    logout_all = "logout-all"
    security_ip_mismatch = "security-ip-mismatch"
    password_change = "password-change"
    manual = "manual"
