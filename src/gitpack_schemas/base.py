"""Base schema configuration for gitpack Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with strict validation defaults."""

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        validate_default=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        strict=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable schema for values that must not change once constructed."""

    model_config = ConfigDict(frozen=True)


class DocumentSchema(BaseSchema):
    """Schema for persisted documents that keep unknown keys on round trip.

    Note: manifests are shared with downstream consumers that may add their
    own fields, so extra keys are allowed and written back verbatim.
    """

    model_config = ConfigDict(extra="allow")
