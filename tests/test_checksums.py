"""Tests for checksum functions."""

import pytest

from mokbus.protocol.checksums import (
    calculate_checksum,
    split_checksum,
    validate_checksum,
)


class TestChecksums:
    """Tests for checksum calculation and validation."""

    def test_calculate_checksum_scan_frame(self):
        """Test checksum of the scan request body."""
        # 0xA1 ^ 0x01 ^ 0x7F
        assert calculate_checksum(bytes([0xA1, 0x01, 0x7F])) == 0xDF

    def test_calculate_checksum_single_byte(self):
        """Test checksum of single byte."""
        assert calculate_checksum(bytes([0x42])) == 0x42

    def test_calculate_checksum_cancels_pairs(self):
        """Test that equal bytes cancel out."""
        assert calculate_checksum(bytes([0xFF, 0xFF])) == 0x00

    def test_calculate_checksum_empty(self):
        """Test checksum of empty data."""
        assert calculate_checksum(b"") == 0x00

    def test_split_checksum(self):
        """Test splitting into low and high bytes."""
        assert split_checksum(0xDF) == (0xDF, 0x00)
        assert split_checksum(0x12AB) == (0xAB, 0x12)

    def test_validate_checksum_valid(self):
        """Test validation of correct checksum."""
        assert validate_checksum(bytes([0xA1, 0x01, 0x7F, 0xDF, 0x00])) is True

    def test_validate_checksum_invalid_low(self):
        """Test validation of incorrect low byte."""
        assert validate_checksum(bytes([0xA1, 0x01, 0x7F, 0xDE, 0x00])) is False

    def test_validate_checksum_nonzero_high(self):
        """Test that a non-zero high byte is rejected."""
        assert validate_checksum(bytes([0xA1, 0x01, 0x7F, 0xDF, 0x01])) is False

    @pytest.mark.parametrize("frame", [b"", b"\x01", b"\x01\x02"])
    def test_validate_checksum_too_short(self, frame):
        """Test that frames shorter than 3 bytes fail validation."""
        assert validate_checksum(frame) is False
