"""Package version for gitpack."""

from __future__ import annotations

from gitpack_schemas.version import VersionInfo

VERSION = VersionInfo(major=0, minor=1, patch=0)
