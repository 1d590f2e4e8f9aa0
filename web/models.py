"""API request/response models for the queue server"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SuccessResponse(BaseModel):
    """Plain acknowledgement used by the document endpoints"""
    success: bool = True
    message: Optional[str] = None


class QueueBackupRequest(BaseModel):
    """Body of POST /api/save-queue-backup"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    queue_name: str = Field(..., alias="queueName", min_length=1)
    data: Dict[str, Any]


class DeleteQueueAuthRequest(BaseModel):
    """Body of DELETE /api/delete-queue-auth"""
    model_config = ConfigDict(populate_by_name=True)

    queue_name: str = Field(..., alias="queueName", min_length=1)


class CleanupRunResponse(BaseModel):
    success: bool = True
    message: str
    checked: int
    removed: List[str]
    remaining: int


class CleanupStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    running: bool
    last_run: Optional[str] = Field(default=None, alias="lastRun")
    next_run: Optional[str] = Field(default=None, alias="nextRun")
    queue_count: int = Field(alias="queueCount")
    last_removed: List[str] = Field(default_factory=list, alias="lastRemoved")


class LoginResponse(BaseModel):
    """Deep-link parameters returned by POST /auth/login"""
    model_config = ConfigDict(populate_by_name=True)

    queue: str
    token: str
    created: bool
    distributor_url: str = Field(alias="distributorUrl")


class TicketOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    number: int
    issued_at: str = Field(alias="issuedAt")
    served: bool
    called_at: Optional[str] = Field(default=None, alias="calledAt")
    display_url: Optional[str] = Field(default=None, alias="displayUrl")


class DistributorStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queue: str
    next_issued: int = Field(alias="nextIssued")
    calling: int
    outstanding: int
    last_updated: str = Field(alias="lastUpdated")


class NoticeResponse(BaseModel):
    """A controller Notice plus the counters after the action"""
    message: str
    level: str
    ticket: Optional[TicketOut] = None
    redirect: Optional[str] = None
    status: Optional[DistributorStatus] = None
