"""
Pydantic models for MOK bus device records.

This module defines the records produced by the response parsers,
implemented as immutable Pydantic models with validation.

Design principles:
- All models are frozen (immutable)
- Byte fields are range-checked by the model
- Protocol address ranges are enforced by the parsers, which decide
  between failing and warning per response kind
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from mokbus.protocol.constants import ProtocolConstants

Byte = Annotated[int, Field(ge=0, le=255)]
"""A single wire byte."""


class DeviceType(str, Enum):
    """
    Device families found on a MOK bus.

    UNKNOWN is the placeholder for an address reported by a scan list
    before any per-device detail has arrived.
    """

    AM1 = "AM1"
    """Single-channel input module."""

    AM8 = "AM8"
    """8-channel input module."""

    PM = "PM"
    """4-channel relay (power) module."""

    UNKNOWN = "UNKNOWN"
    """Address is present but its type is not yet known."""


class PowerStatus(IntEnum):
    """Power status byte values."""

    OFF = 0
    ON = 1


class ChannelStatus(IntEnum):
    """Input or relay status byte values."""

    INACTIVE = 0
    ACTIVE = 1
    FAULT = 2


def _status_name(value: int) -> str:
    try:
        return ChannelStatus(value).name
    except ValueError:
        return f"0x{value:02X}"


class SingleChannelStatus(BaseModel):
    """
    Status of a single-channel (AM1) device.

    Decoded from a 24-byte response. Bytes 3..23 are kept as an opaque
    payload.

    Example:
        >>> status = decode_single("05" "01" "02" + "00" * 21)
        >>> status.address, status.is_powered, status.input_name
        (5, True, 'FAULT')
    """

    model_config = ConfigDict(frozen=True)

    address: Byte = Field(description="Device address")
    power_status: Byte = Field(description="0 = off, 1 = on")
    input_status: Byte = Field(description="0 = inactive, 1 = active, 2 = fault")
    payload: bytes = Field(default=b"", description="Remaining response bytes")
    warnings: tuple[str, ...] = Field(default=(), description="Lenient validation warnings")

    @property
    def is_powered(self) -> bool:
        """Check if the device reports power on."""
        return self.power_status == PowerStatus.ON

    @property
    def input_name(self) -> str:
        """Get the input status as a name."""
        return _status_name(self.input_status)


class OctalChannelStatus(BaseModel):
    """
    Status of an 8-channel (AM8) device.

    Addresses outside 1..247 do not fail the parse; they are listed in
    `warnings` instead.
    """

    model_config = ConfigDict(frozen=True)

    addresses: tuple[Byte, ...] = Field(
        min_length=ProtocolConstants.OCTAL_CHANNELS,
        max_length=ProtocolConstants.OCTAL_CHANNELS,
        description="Address of each channel",
    )
    power_status: Byte = Field(description="0 = off, 1 = on")
    inputs: tuple[Byte, ...] = Field(
        min_length=ProtocolConstants.OCTAL_INPUTS,
        max_length=ProtocolConstants.OCTAL_INPUTS,
        description="Input status per input (0/1/2)",
    )
    warnings: tuple[str, ...] = Field(default=(), description="Lenient validation warnings")

    @property
    def is_powered(self) -> bool:
        """Check if the device reports power on."""
        return self.power_status == PowerStatus.ON


class QuadChannelStatus(BaseModel):
    """
    Status of a 4-channel relay (PM) device.

    Bytes 9..23 of the response are reserved and not retained.
    """

    model_config = ConfigDict(frozen=True)

    addresses: tuple[Byte, ...] = Field(
        min_length=ProtocolConstants.QUAD_CHANNELS,
        max_length=ProtocolConstants.QUAD_CHANNELS,
        description="Address of each channel",
    )
    power_status: Byte = Field(description="0 = off, 1 = on")
    relay_statuses: tuple[Byte, ...] = Field(
        min_length=ProtocolConstants.QUAD_CHANNELS,
        max_length=ProtocolConstants.QUAD_CHANNELS,
        description="Relay status per channel (0/1/2)",
    )
    warnings: tuple[str, ...] = Field(default=(), description="Lenient validation warnings")

    @property
    def is_powered(self) -> bool:
        """Check if the device reports power on."""
        return self.power_status == PowerStatus.ON


class ScanList(BaseModel):
    """Addresses that answered a bus scan, in arrival order without duplicates."""

    model_config = ConfigDict(frozen=True)

    addresses: tuple[
        Annotated[
            int,
            Field(ge=ProtocolConstants.MIN_SCAN_ADDRESS, le=ProtocolConstants.MAX_SCAN_ADDRESS),
        ],
        ...,
    ] = ()

    def __len__(self) -> int:
        return len(self.addresses)

    def __bool__(self) -> bool:
        return bool(self.addresses)


class ScanDetail(BaseModel):
    """Per-device identification received while a scan is running."""

    model_config = ConfigDict(frozen=True)

    address: int = Field(
        ge=ProtocolConstants.MIN_SCAN_ADDRESS,
        le=ProtocolConstants.MAX_SCAN_ADDRESS,
        description="Bus address",
    )
    device_type: DeviceType = Field(description="Classified device family")
    payload: str = Field(default="", description="Device info text as received")

    def __str__(self) -> str:
        return f"{self.address}: {self.device_type.value}"


DeviceRecord = SingleChannelStatus | OctalChannelStatus | QuadChannelStatus | ScanList | ScanDetail
"""Any record the parsers can produce."""
