"""
Identity Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import MfaMethod, MfaState, RevokedReason

# Export MFA variants
from .mfa import BackupCode, MfaConfig, MfaDisabled, MfaEnabled, MfaPendingSetup

# Export all entities
from .user import User
from .refresh_token import RefreshToken
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "MfaMethod",
    "MfaState",
    "RevokedReason",
    # MFA variants
    "BackupCode",
    "MfaConfig",
    "MfaDisabled",
    "MfaEnabled",
    "MfaPendingSetup",
    # Entities
    "User",
    "RefreshToken",
    "AuditEvent",
]
