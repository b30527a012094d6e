"""Export format versioning."""

from __future__ import annotations

from typing import Any, Dict

from packaging import version

# Current export format version
CURRENT_VERSION = "1.0.0"

# Minimum supported version for importing
MIN_SUPPORTED_VERSION = "1.0.0"

# Version history
VERSION_HISTORY = {
    "1.0.0": "Events, snapshots and current state in one document",
}


class SchemaVersionError(Exception):
    """Raised when an export format version is incompatible."""

    def __init__(
        self, found_version: str, required_version: str, message: str = ""
    ):
        self.found_version = found_version
        self.required_version = required_version
        super().__init__(
            message
            or f"Export version {found_version} is incompatible. Required: >={required_version}"
        )


def export_version(data: Dict[str, Any]) -> str:
    """Version declared by an export document; documents without one are current."""
    metadata = data.get("metadata")
    if isinstance(metadata, dict) and metadata.get("version") is not None:
        return str(metadata["version"])
    return CURRENT_VERSION


def validate_version(data: Dict[str, Any]) -> None:
    """Validate that the export format version is supported.

    Args:
        data: Export document with an optional ``metadata.version`` key.

    Raises:
        SchemaVersionError: If the version is unparseable, below
            MIN_SUPPORTED_VERSION, or newer than CURRENT_VERSION's major.
    """
    found = export_version(data)
    try:
        parsed = version.parse(found)
    except version.InvalidVersion:
        raise SchemaVersionError(found, MIN_SUPPORTED_VERSION, f"Invalid export version: {found!r}")

    if parsed < version.parse(MIN_SUPPORTED_VERSION):
        raise SchemaVersionError(
            found,
            MIN_SUPPORTED_VERSION,
            f"Export version {found} is too old. Minimum supported: {MIN_SUPPORTED_VERSION}",
        )
    if parsed.major > version.parse(CURRENT_VERSION).major:
        raise SchemaVersionError(
            found,
            MIN_SUPPORTED_VERSION,
            f"Export version {found} is newer than supported version {CURRENT_VERSION}",
        )


def get_version_info() -> Dict[str, Any]:
    """Get information about export format versions."""
    return {
        "current": CURRENT_VERSION,
        "minimum_supported": MIN_SUPPORTED_VERSION,
        "history": VERSION_HISTORY,
    }
