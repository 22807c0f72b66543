"""Upload API data models."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateSessionRequest(BaseModel):
    """Request model for creating an upload session."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: Optional[str] = Field(None, alias="fileName")
    file_size: Optional[int] = Field(None, alias="fileSize")
    file_type: Optional[str] = Field(None, alias="fileType")


class CreateSessionResponse(BaseModel):
    """Response model for upload session creation."""

    model_config = ConfigDict(populate_by_name=True)

    target_endpoint: str = Field(alias="targetEndpoint")
    transfer_mode: Literal["direct", "chunked"] = Field(alias="transferMode")
    size_ceiling: int = Field(alias="sizeCeiling")
    resource_id: Optional[str] = Field(None, alias="resourceId")


class ChunkRelayResponse(BaseModel):
    """Upstream status and Range header relayed for one chunk."""

    model_config = ConfigDict(populate_by_name=True)

    status: int
    range_header: Optional[str] = Field(None, alias="rangeHeader")
    completion_body: Optional[Any] = Field(None, alias="completionBody")


class UploadScopeResponse(BaseModel):
    """Whether the caller's upstream credential can upload."""

    has_scope: bool


class ErrorResponse(BaseModel):
    """Categorized error body."""

    detail: str
    category: str
