"""
Base domain entities

Entity carries identity and audit fields; ExternalEntity adds the fields
used to match records against the ERP (external id / code and last sync).

Author: TM3
Date: 2025-12-02
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def clean(value: Optional[str]) -> Optional[str]:
    """Strip a string, turning blanks into None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


class Entity(BaseModel):
    """Identity + audit fields shared by every persisted entity"""

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utcnow)
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, arbitrary_types_allowed=True)

    def touch(self, updated_by: Optional[str] = None):
        self.updated_at = utcnow()
        if updated_by:
            self.updated_by = updated_by

    def soft_delete(self, deleted_by: Optional[str] = None):
        self.is_deleted = True
        self.deleted_at = utcnow()
        self.touch(deleted_by)

    def audit_dict(self) -> dict:
        return {
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "created_by": self.created_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "updated_by": self.updated_by,
        }


class ExternalEntity(Entity):
    """Entity that can be synchronized from the ERP"""

    external_id: Optional[str] = None
    external_code: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    @property
    def is_synced(self) -> bool:
        return self.last_synced_at is not None

    def mark_as_synced(self):
        self.last_synced_at = utcnow()

    def initialize_from_external(self, external_id: str, external_code: Optional[str] = None):
        self.external_id = clean(external_id)
        self.external_code = clean(external_code)
        self.mark_as_synced()

    def update_external_code(self, external_code: Optional[str]):
        self.external_code = clean(external_code)

    def external_dict(self) -> dict:
        return {
            "external_id": self.external_id,
            "external_code": self.external_code,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }
