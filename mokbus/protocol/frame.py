"""
MOK bus command frames.

Every outbound command is a fixed 5-byte frame:

    [COMMAND][PARAM_A][PARAM_B][CHECKSUM_LOW][CHECKSUM_HIGH]

- Range requests: PARAM_A/PARAM_B are the low bytes of the start and end
  address of the window being queried.
- Single writes: PARAM_A is the channel index, PARAM_B the new address.

Frames are transmitted as lowercase hex text (10 characters), no
separators. Address range checks happen before a frame is built; the
builders here only mask their inputs to byte range.
"""

from __future__ import annotations

from dataclasses import dataclass

from mokbus.exceptions import MalformedResponse
from mokbus.protocol.checksums import calculate_checksum, split_checksum, validate_checksum
from mokbus.protocol.constants import CommandCode, ProtocolConstants
from mokbus.protocol.encoding import bytes_to_hex, is_hex_string


@dataclass(frozen=True)
class Frame:
    """
    An outbound command frame.

    Attributes:
        command: Command byte.
        param_a: First parameter byte (range start or channel index).
        param_b: Second parameter byte (range end or new address).
        checksum_low: XOR of command, param_a and param_b.
        checksum_high: Always 0, transmitted for protocol symmetry.
    """

    command: int
    param_a: int
    param_b: int
    checksum_low: int
    checksum_high: int = 0

    @classmethod
    def build(cls, command: int, param_a: int, param_b: int) -> Frame:
        """
        Build a frame, masking parameters to byte range and computing the checksum.

        Args:
            command: Command byte.
            param_a: First parameter.
            param_b: Second parameter.

        Returns:
            Immutable Frame.
        """
        body = bytes([command & 0xFF, param_a & 0xFF, param_b & 0xFF])
        low, high = split_checksum(calculate_checksum(body))
        return cls(body[0], body[1], body[2], low, high)

    @classmethod
    def from_hex(cls, text: str) -> Frame:
        """
        Decode a frame from its hex text form.

        Args:
            text: 10 hex characters (case-insensitive).

        Returns:
            Decoded Frame.

        Raises:
            MalformedResponse: If the text is not a 5-byte frame with a valid checksum.
        """
        compact = text.strip()
        if not is_hex_string(compact) or len(compact) != ProtocolConstants.FRAME_SIZE * 2:
            raise MalformedResponse("Not a 5-byte hex frame", line=text)

        data = bytes.fromhex(compact)
        if not validate_checksum(data):
            raise MalformedResponse("Frame checksum mismatch", line=text)

        return cls(*data)

    @property
    def command_code(self) -> CommandCode | int:
        """Get command as CommandCode enum if recognized, else raw int."""
        try:
            return CommandCode(self.command)
        except ValueError:
            return self.command

    def to_bytes(self) -> bytes:
        """Get the five frame bytes in wire order."""
        return bytes(
            [self.command, self.param_a, self.param_b, self.checksum_low, self.checksum_high]
        )

    def __repr__(self) -> str:
        code = self.command_code
        name = code.name if isinstance(code, CommandCode) else f"0x{self.command:02X}"
        return f"Frame({name}, a={self.param_a}, b={self.param_b})"


def build_range_request(command: int, start: int, end: int) -> Frame:
    """
    Build a status request for an address window.

    Args:
        command: Range command byte (e.g. CommandCode.SINGLE_RANGE).
        start: First address of the window (low byte is used).
        end: Last address of the window (low byte is used).

    Returns:
        Range request Frame.

    Example:
        >>> serialize(build_range_request(CommandCode.SINGLE_RANGE, 1, 127))
        'a1017fdf00'
    """
    return Frame.build(command, start & 0xFF, end & 0xFF)


def build_single_write(command: int, index: int, new_address: int) -> Frame:
    """
    Build a single-channel address write.

    Args:
        command: Write command byte (CommandCode.OCTAL_WRITE or QUAD_WRITE).
        index: Channel position on the device.
        new_address: Address to assign to that channel.

    Returns:
        Single write Frame.
    """
    return Frame.build(command, index, new_address)


def serialize(frame: Frame) -> str:
    """
    Serialize a frame to lowercase hex text.

    Args:
        frame: Frame to serialize.

    Returns:
        10-character hex string.
    """
    return bytes_to_hex(frame.to_bytes())
