"""Credential data models.

Stored under the legacy JSON keys (``password``, ``passwordHash``,
``created``, ``lastAccessed``) so collections written by older clients
load unchanged.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..utils.timeutil import utcnow


class CredentialRecord(BaseModel):
    """Password material and access timestamps for one queue name"""

    model_config = ConfigDict(populate_by_name=True)

    obfuscated_password: Optional[str] = Field(default=None, alias="password")
    verification_code: Optional[str] = Field(default=None, alias="passwordHash")
    credential_hash: Optional[str] = Field(default=None, alias="credentialHash")
    created_at: datetime = Field(default_factory=utcnow, alias="created")
    last_accessed_at: Optional[datetime] = Field(default=None, alias="lastAccessed")
    encrypted: bool = False
    upgraded_at: Optional[datetime] = Field(default=None, alias="upgraded")

    @property
    def stored_secret(self) -> Optional[str]:
        """The secret carried as the third part of a distributor token"""
        return self.credential_hash or self.obfuscated_password

    def to_document(self) -> Dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CredentialCollection(BaseModel):
    """Whole credential document: queue name -> record"""

    model_config = ConfigDict(populate_by_name=True)

    queues: Dict[str, CredentialRecord] = Field(default_factory=dict)
    last_updated: datetime = Field(default_factory=utcnow, alias="lastUpdated")

    def to_document(self) -> Dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
