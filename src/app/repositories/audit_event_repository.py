from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from uuid import UUID

from src.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """Append-only security log"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        pass

    @abstractmethod
    async def get_by_user_paginated(
        self, user_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Returns:
            (events newest first, cursor of the next page or None)
        """
        pass
