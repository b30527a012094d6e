"""Tests for export format versioning (pagetrail/core/schema.py)."""

import pytest

from pagetrail.core.schema import (
    CURRENT_VERSION,
    MIN_SUPPORTED_VERSION,
    VERSION_HISTORY,
    SchemaVersionError,
    export_version,
    get_version_info,
    validate_version,
)


class TestVersionConstants:
    """Tests for version constants."""

    def test_current_version(self):
        """CURRENT_VERSION is the export format written by export_data."""
        assert CURRENT_VERSION == "1.0.0"

    def test_versions_in_history(self):
        assert CURRENT_VERSION in VERSION_HISTORY
        assert MIN_SUPPORTED_VERSION in VERSION_HISTORY


class TestSchemaVersionError:
    """Tests for SchemaVersionError exception."""

    def test_error_creation(self):
        error = SchemaVersionError("0.5.0", "1.0.0")
        assert error.found_version == "0.5.0"
        assert error.required_version == "1.0.0"
        assert "0.5.0" in str(error)
        assert "1.0.0" in str(error)

    def test_custom_message(self):
        error = SchemaVersionError("0.5.0", "1.0.0", "Custom")
        assert str(error) == "Custom"


class TestExportVersion:

    def test_declared_version(self):
        assert export_version({"metadata": {"version": "1.2.0"}}) == "1.2.0"

    @pytest.mark.parametrize("data", [{}, {"metadata": None}, {"metadata": {}}, {"metadata": "x"}])
    def test_missing_version_is_current(self, data):
        assert export_version(data) == CURRENT_VERSION


class TestValidateVersion:
    """Tests for validate_version."""

    @pytest.mark.parametrize("found", ["1.0.0", "1.0", "1.4.2"])
    def test_supported_versions(self, found):
        validate_version({"metadata": {"version": found}})

    def test_missing_version_is_accepted(self):
        validate_version({"events": []})

    def test_too_old(self):
        with pytest.raises(SchemaVersionError, match="too old"):
            validate_version({"metadata": {"version": "0.9.0"}})

    def test_newer_major(self):
        """A newer major version may change the document layout."""
        with pytest.raises(SchemaVersionError, match="newer than supported"):
            validate_version({"metadata": {"version": "2.0.0"}})

    def test_invalid_version(self):
        with pytest.raises(SchemaVersionError, match="Invalid export version"):
            validate_version({"metadata": {"version": "latest"}})


def test_get_version_info():
    info = get_version_info()
    assert info["current"] == CURRENT_VERSION
    assert info["minimum_supported"] == MIN_SUPPORTED_VERSION
    assert info["history"] is VERSION_HISTORY
