"""Tests for fixed-shape response parsers."""

import pytest

from mokbus.exceptions import MalformedResponse
from mokbus.models.records import OctalChannelStatus, QuadChannelStatus, SingleChannelStatus
from mokbus.parsers.response_parser import (
    ValidationPolicy,
    decode_octal,
    decode_quad,
    decode_single,
)


def hex_payload(*values: int, size: int) -> str:
    """Build a hex line from leading byte values, zero padded to size bytes."""
    data = list(values) + [0] * (size - len(values))
    return bytes(data).hex().upper()


class TestDecodeSingle:
    """Tests for decode_single."""

    def test_decode_fields(self):
        """Test address, power and input at positions 0, 1 and 2."""
        status = decode_single(hex_payload(5, 1, 2, 0xAA, size=24))

        assert isinstance(status, SingleChannelStatus)
        assert (status.address, status.power_status, status.input_status) == (5, 1, 2)
        assert status.payload[0] == 0xAA
        assert len(status.payload) == 21
        assert status.is_powered is True
        assert status.input_name == "FAULT"
        assert status.warnings == ()

    @pytest.mark.parametrize("address,power,input_status", [(1, 0, 0), (127, 1, 1), (247, 0, 2)])
    def test_decode_known_triples(self, address, power, input_status):
        """Test that encoded (address, power, input) decode unchanged."""
        status = decode_single(hex_payload(address, power, input_status, size=24))
        assert (status.address, status.power_status, status.input_status) == (
            address,
            power,
            input_status,
        )

    def test_decode_separated_hex(self):
        """Test that separators in the line are tolerated."""
        line = "-".join(f"{b:02x}" for b in [7, 1, 0] + [0] * 21)
        assert decode_single(line).address == 7

    def test_decode_bytes_input(self):
        """Test that byte input is used directly."""
        assert decode_single(bytes([9, 0, 1] + [0] * 21)).address == 9

    @pytest.mark.parametrize("size", [0, 1, 23, 25, 48])
    def test_wrong_length_fails(self, size):
        """Test that anything other than 24 bytes fails."""
        with pytest.raises(MalformedResponse) as exc_info:
            decode_single(hex_payload(5, size=size) if size else "")
        assert exc_info.value.kind == "SINGLE_RANGE"

    @pytest.mark.parametrize("address", [0, 248, 255])
    def test_out_of_range_address_fails(self, address):
        """Test that the single decoder rejects invalid addresses."""
        line = hex_payload(address, 1, 0, size=24)
        with pytest.raises(MalformedResponse, match="Invalid address") as exc_info:
            decode_single(line)
        assert exc_info.value.line == line

    def test_lenient_override_warns(self):
        """Test that a LENIENT policy turns the failure into a warning."""
        status = decode_single(hex_payload(0, 1, 0, size=24), ValidationPolicy.LENIENT)
        assert status.address == 0
        assert len(status.warnings) == 1

    def test_not_hex_fails(self):
        """Test that text which is not hex fails."""
        with pytest.raises(MalformedResponse):
            decode_single("hello world")


class TestDecodeOctal:
    """Tests for decode_octal."""

    def test_decode_fields(self):
        """Test addresses, power and inputs."""
        line = hex_payload(*range(11, 19), 1, *[0, 1, 2, 0, 1, 2, 0, 1, 2], size=18)
        status = decode_octal(line)

        assert isinstance(status, OctalChannelStatus)
        assert status.addresses == (11, 12, 13, 14, 15, 16, 17, 18)
        assert status.power_status == 1
        assert status.inputs == (0, 1, 2, 0, 1, 2, 0, 1, 2)
        assert status.warnings == ()

    def test_trailing_bytes_ignored(self):
        """Test that bytes beyond 18 are accepted and ignored."""
        status = decode_octal(hex_payload(*range(11, 19), 0, size=24))
        assert status.addresses == (11, 12, 13, 14, 15, 16, 17, 18)
        assert len(status.inputs) == 9

    @pytest.mark.parametrize("address", [0, 248])
    def test_out_of_range_address_warns(self, address):
        """Test that an invalid address is a warning, not a failure."""
        line = hex_payload(11, 12, address, 14, 15, 16, 17, 18, 1, size=18)
        status = decode_octal(line)

        assert status.addresses[2] == address
        assert len(status.warnings) == 1
        assert "channel 3" in status.warnings[0]

    def test_strict_override_fails(self):
        """Test that a STRICT policy rejects invalid addresses."""
        line = hex_payload(0, 12, 13, 14, 15, 16, 17, 18, size=18)
        with pytest.raises(MalformedResponse):
            decode_octal(line, ValidationPolicy.STRICT)

    def test_short_payload_fails(self):
        """Test that fewer than 18 bytes fail."""
        with pytest.raises(MalformedResponse, match="at least 18"):
            decode_octal(hex_payload(*range(11, 19), size=17))


class TestDecodeQuad:
    """Tests for decode_quad."""

    def test_decode_fields(self):
        """Test a 24-byte quad response."""
        status = decode_quad(hex_payload(1, 2, 3, 4, 1, 0, 1, 2, 0, size=24))

        assert isinstance(status, QuadChannelStatus)
        assert status.addresses == (1, 2, 3, 4)
        assert status.power_status == 1
        assert status.relay_statuses == (0, 1, 2, 0)
        assert status.is_powered is True

    def test_23_bytes_fails(self):
        """Test that a 23-byte payload fails."""
        with pytest.raises(MalformedResponse):
            decode_quad(hex_payload(1, 2, 3, 4, 1, 0, 1, 2, 0, size=23))

    def test_25_bytes_fails(self):
        """Test that a 25-byte payload fails."""
        with pytest.raises(MalformedResponse):
            decode_quad(hex_payload(1, 2, 3, 4, size=25))

    def test_out_of_range_address_warns(self):
        """Test that quad addresses are checked leniently by default."""
        status = decode_quad(hex_payload(1, 2, 3, 0, 1, size=24))
        assert status.addresses == (1, 2, 3, 0)
        assert len(status.warnings) == 1
