from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

# Bucket configuration record returned by the resource configuration API.
class BucketMetadata(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)
    name: str = Field(..., description="Bucket name.")
    service_instance_id: Optional[str] = Field(None, description="Service instance that owns the bucket.")
    time_created: Optional[datetime] = Field(None, description="When the bucket was created.")
    time_updated: Optional[datetime] = Field(None, description="When the bucket configuration last changed.")
    object_count: int = Field(0, description="Number of objects in the bucket.")
    bytes_used: int = Field(0, description="Total size of the bucket contents in bytes.")
    crn: Optional[str] = Field(None, description="Cloud resource name of the bucket.")
    service_instance_crn: Optional[str] = Field(None, description="Cloud resource name of the owning instance.")


@dataclass(frozen=True)
class Owner:
    id: str = ""
    display_name: str = ""


@dataclass(frozen=True)
class BucketInfo:
    name: str
    creation_date: str = ""
    location_constraint: str = ""


@dataclass(frozen=True)
class BucketList:
    owner: Owner = field(default_factory=Owner)
    buckets: tuple[BucketInfo, ...] = ()

    def find(self, name: str) -> BucketInfo | None:
        for bucket in self.buckets:
            if bucket.name == name:
                return bucket
        return None


@dataclass(frozen=True)
class ObjectInfo:
    key: str
    last_modified: str = ""
    size: int = 0
    etag: str = ""


@dataclass(frozen=True)
class ObjectListPage:
    objects: tuple[ObjectInfo, ...]
    next_continuation_token: str = ""
    is_truncated: bool = False


@dataclass(frozen=True)
class DeleteError:
    key: str
    code: str = ""
    message: str = ""

    def __str__(self) -> str:
        return f"{self.key}: {self.code} {self.message}".strip()


@dataclass(frozen=True)
class DeleteResult:
    deleted: tuple[str, ...] = ()
    errors: tuple[DeleteError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors
