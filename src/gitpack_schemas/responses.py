"""API response envelope schemas for CLI output."""

from __future__ import annotations

from pydantic import Field

from gitpack_schemas.base import BaseSchema
from gitpack_schemas.manifest import AssetManifest
from gitpack_schemas.primitives import RunId, Timestamp


class MetaInfo(BaseSchema):
    """Metadata for API responses."""

    timestamp: Timestamp = Field(..., description="ISO-8601 response timestamp")
    run_id: RunId | None = Field(None, description="Build run identifier")


class ErrorDetails(BaseSchema):
    """Detailed error context for responses."""

    field: str | None = Field(None, description="Field or operation name")
    provided: str | None = Field(None, description="Provided value or target")
    valid_options: list[str] | None = Field(
        None, description="Valid options if applicable"
    )


class ErrorResponse(BaseSchema):
    """Error information in response."""

    code: str = Field(..., min_length=1, description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: ErrorDetails | None = Field(None, description="Optional error details")


class ApiResponse[ResponseData](BaseSchema):
    """Generic API response envelope."""

    data: ResponseData | None = Field(
        None, description="Success payload, null on error"
    )
    error: ErrorResponse | None = Field(
        None, description="Error information, null on success"
    )
    meta: MetaInfo = Field(..., description="Response metadata")


class BuildResult(BaseSchema):
    """Result payload for the build command."""

    run_id: RunId = Field(..., description="Build run identifier")
    built: list[str] = Field(..., description="Modules rebuilt in this run")
    skipped: list[str] = Field(..., description="Modules left untouched")
    manifest_written: bool = Field(
        ..., description="Whether the manifest file was rewritten"
    )
    manifest: AssetManifest = Field(..., description="Resulting asset manifest")


class BuilderListResult(BaseSchema):
    """Result payload for the builders command."""

    builders: list[str] = Field(..., description="Registered builder names")
