"""
MFA Management DTOs
"""

from typing import List, Optional

from pydantic import BaseModel

from src.domain.entities import MfaMethod


class SetupMfaCommand(BaseModel):
    user_id: str
    method: MfaMethod
    destination: Optional[str] = None


class SetupMfaResponse(BaseModel):
    """TOTP returns secret + provisioning URI; SMS/email the masked destination"""

    method: str
    secret: Optional[str] = None
    provisioning_uri: Optional[str] = None
    destination: Optional[str] = None
    message: str


class BackupCodesResponse(BaseModel):
    """Plaintext backup codes; shown exactly once"""

    message: str
    backup_codes: List[str]


class MfaStatusResponse(BaseModel):
    status: str
    message: str
