"""
User Use Cases

Profile, security log and data export of the authenticated user.
"""

from .get_profile_use_case import GetProfileUseCase
from .update_profile_use_case import UpdateProfileCommand, UpdateProfileUseCase
from .get_audit_events_use_case import (
    AuditEventInfo,
    AuditEventsResponse,
    GetAuditEventsUseCase,
)
from .export_account_data_use_case import (
    AccountExportResponse,
    ExportAccountDataUseCase,
    SessionRecord,
)

__all__ = [
    "GetProfileUseCase",
    "UpdateProfileUseCase",
    "GetAuditEventsUseCase",
    "ExportAccountDataUseCase",
    "UpdateProfileCommand",
    "AuditEventInfo",
    "AuditEventsResponse",
    "AccountExportResponse",
    "SessionRecord",
]
