"""Data models for Graph responses."""
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

QUOTA_PLACEHOLDER = "n/a"


class QuotaSchema(BaseModel):
    """Pydantic schema for the drive quota facet."""
    used: Optional[int] = None
    total: Optional[int] = None


class DriveSchema(BaseModel):
    """Pydantic schema for GET /drive."""
    driveType: Optional[str] = None
    quota: Optional[QuotaSchema] = None


class EventSchema(BaseModel):
    """Pydantic schema for POST /events."""
    id: str
    subject: Optional[str] = None


@dataclass
class DriveQuota:
    """Read-only storage quota snapshot."""
    drive_type: Optional[str]
    used: Optional[int]
    total: Optional[int]

    @classmethod
    def from_response(cls, data: dict) -> "DriveQuota":
        drive = DriveSchema.model_validate(data)
        quota = drive.quota or QuotaSchema()
        return cls(drive_type=drive.driveType, used=quota.used, total=quota.total)

    @property
    def drive_type_display(self) -> str:
        return self.drive_type if self.drive_type is not None else QUOTA_PLACEHOLDER

    @property
    def used_display(self) -> str:
        return str(self.used) if self.used is not None else QUOTA_PLACEHOLDER

    @property
    def total_display(self) -> str:
        return str(self.total) if self.total is not None else QUOTA_PLACEHOLDER


@dataclass
class PutResult:
    """Raw result of an upload."""
    status_code: int
    raw_body: str
