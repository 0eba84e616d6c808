"""
Data models for managed images.

Provides Pydantic models for image records and the per-document sidecar file.
Field aliases keep the camelCase names used on disk.
"""

import time
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Align = Literal["left", "center", "right"]


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * 1000)


class ImageOperation(str, Enum):
    """Operations a document image manager performs on its records."""

    ADD = "add"
    REMOVE = "remove"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    UPDATE = "update"


class ImageRecord(BaseModel):
    """One image managed for a document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    local_path: str = Field(default="", alias="localPath", description="Vault path of the local copy")
    remote_path: str = Field(default="", alias="remotePath", description="URL after upload")
    is_uploaded: bool = Field(default=False, alias="isUploaded", description="Remote URL recorded")
    local_deleted: bool = Field(
        default=False,
        alias="localDeleted",
        description="Local copy deleted after upload; local_path is kept for reference",
    )
    original_name: str | None = Field(default=None, alias="originalName", description="Source file name")
    size: int | None = Field(default=None, description="File size in bytes")
    width: int | None = Field(default=None, description="Image width in pixels")
    height: int | None = Field(default=None, description="Image height in pixels")
    align: Align | None = Field(default=None, description="Display alignment")
    create_time: int | None = Field(default=None, alias="createTime", description="Epoch milliseconds")
    modify_time: int | None = Field(default=None, alias="modifyTime", description="Epoch milliseconds")

    @field_validator("align", mode="before")
    @classmethod
    def _drop_unknown_align(cls, value: Any) -> Any:
        if value not in ("left", "center", "right"):
            return None
        return value

    @field_validator("remote_path", "local_path", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _uploaded_needs_remote(self) -> "ImageRecord":
        if self.is_uploaded and not self.remote_path:
            self.is_uploaded = False
        return self

    @classmethod
    def create(cls, local_path: str, remote_path: str = "", is_uploaded: bool = False) -> "ImageRecord":
        """Create a record stamped with the current time."""
        timestamp = now_ms()
        return cls(
            local_path=local_path,
            remote_path=remote_path,
            is_uploaded=is_uploaded,
            create_time=timestamp,
            modify_time=timestamp,
        )

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with on-disk field names, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SidecarFile(BaseModel):
    """Content of a document's sidecar JSON file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    md_path: str = Field(default="", alias="mdPath", description="Path of the owning document")
    images: dict[str, ImageRecord] = Field(
        default_factory=dict,
        description="Mapping from local path to image record",
    )

    @field_validator("images", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with on-disk field names."""
        return {
            "mdPath": self.md_path,
            "images": {key: record.to_json_dict() for key, record in self.images.items()},
        }
