"""
Unit tests for validators.
"""

import pytest

from baremetal_csi.api.models import GBYTE, MBYTE, TBYTE
from baremetal_csi.cli.lib.validators import parse_size, validate_name


class TestValidateName:
    """Tests for validate_name function."""

    @pytest.mark.unit
    def test_valid_name(self):
        """Test valid names."""
        validate_name("pvc-aaaa-bbbb")
        validate_name("lvg.1")
        validate_name("a")
        validate_name("a" * 253)

    @pytest.mark.unit
    def test_empty_name(self):
        """Test empty name raises error."""
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_name("")

    @pytest.mark.unit
    def test_name_too_long(self):
        """Test name too long raises error."""
        with pytest.raises(ValueError, match="between 1 and 253"):
            validate_name("a" * 254)

    @pytest.mark.unit
    def test_name_invalid_chars(self):
        """Test name with invalid characters raises error."""
        with pytest.raises(ValueError):
            validate_name("pvc a")  # space
        with pytest.raises(ValueError):
            validate_name("PVC")  # uppercase
        with pytest.raises(ValueError):
            validate_name("-pvc")  # starts with hyphen
        with pytest.raises(ValueError):
            validate_name("pvc-")  # ends with hyphen


class TestParseSize:
    """Tests for parse_size function."""

    @pytest.mark.unit
    def test_suffixes(self):
        assert parse_size("1024") == 1024
        assert parse_size("42Gi") == 42 * GBYTE
        assert parse_size("42G") == 42 * GBYTE
        assert parse_size("512MiB") == 512 * MBYTE
        assert parse_size("1t") == TBYTE
        assert parse_size("10B") == 10

    @pytest.mark.unit
    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_size("")
        with pytest.raises(ValueError):
            parse_size("-1Gi")
        with pytest.raises(ValueError):
            parse_size("1Xi")
