"""
MFA Management Use Cases

Enrollment, confirmation, disabling and backup code rotation for the
authenticated user.
"""

from .setup_mfa_use_case import SetupMfaUseCase
from .confirm_mfa_setup_use_case import ConfirmMfaSetupUseCase
from .disable_mfa_use_case import DisableMfaUseCase
from .regenerate_backup_codes_use_case import RegenerateBackupCodesUseCase
from .dtos import (
    SetupMfaCommand,
    SetupMfaResponse,
    BackupCodesResponse,
    MfaStatusResponse,
)

__all__ = [
    "SetupMfaUseCase",
    "ConfirmMfaSetupUseCase",
    "DisableMfaUseCase",
    "RegenerateBackupCodesUseCase",
    "SetupMfaCommand",
    "SetupMfaResponse",
    "BackupCodesResponse",
    "MfaStatusResponse",
]
