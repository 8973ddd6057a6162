"""
Session Management Use Cases
"""

from .list_sessions_use_case import ListSessionsUseCase, SessionListResponse
from .revoke_sessions_use_case import RevokeSessionsUseCase, RevokedSessionsResponse

__all__ = [
    "ListSessionsUseCase",
    "RevokeSessionsUseCase",
    "SessionListResponse",
    "RevokedSessionsResponse",
]
