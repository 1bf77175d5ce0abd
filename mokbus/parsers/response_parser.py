"""
Fixed-shape device response parsers.

Single (AM1), octal (AM8) and quad (PM) status responses are binary
payloads carried as hex text. Each decoder normalizes the inbound line,
checks the byte count for its kind and then validates the address bytes
according to a validation policy:

- STRICT: an address outside 1..247 fails the parse
- LENIENT: an address outside 1..247 is logged and recorded as a warning

Single responses default to STRICT, octal and quad responses to LENIENT.
Octal devices may report boundary or "no data" addresses; whether the
quad policy should match is still open, so both policies are kept.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from mokbus.exceptions import MalformedResponse
from mokbus.models.records import OctalChannelStatus, QuadChannelStatus, SingleChannelStatus
from mokbus.protocol.constants import ProtocolConstants, RequestKind
from mokbus.protocol.encoding import normalize_payload

logger = logging.getLogger(__name__)

RawPayload = str | bytes | bytearray | Sequence[int]


class ValidationPolicy(Enum):
    """How out-of-range addresses in a response are treated."""

    STRICT = "strict"
    """Reject the response."""

    LENIENT = "lenient"
    """Accept the response and record a warning."""


DEFAULT_POLICIES: dict[RequestKind, ValidationPolicy] = {
    RequestKind.SINGLE_RANGE: ValidationPolicy.STRICT,
    RequestKind.OCTAL_RANGE: ValidationPolicy.LENIENT,
    RequestKind.QUAD_RANGE: ValidationPolicy.LENIENT,
    RequestKind.QUAD_WRITE: ValidationPolicy.LENIENT,
}


def _is_device_address(value: int) -> bool:
    return ProtocolConstants.MIN_DEVICE_ADDRESS <= value <= ProtocolConstants.MAX_DEVICE_ADDRESS


def _decode(raw: RawPayload, kind: RequestKind) -> bytes:
    try:
        return normalize_payload(raw)
    except MalformedResponse as e:
        raise MalformedResponse(e.reason, line=raw, kind=kind.name) from e


def _check_addresses(
    addresses: Sequence[int],
    policy: ValidationPolicy,
    raw: RawPayload,
    kind: RequestKind,
) -> tuple[str, ...]:
    """Apply a validation policy; return warnings for the lenient case."""
    warnings: list[str] = []
    for channel, address in enumerate(addresses, start=1):
        if _is_device_address(address):
            continue

        message = (
            f"channel {channel} address {address} outside "
            f"{ProtocolConstants.MIN_DEVICE_ADDRESS}..{ProtocolConstants.MAX_DEVICE_ADDRESS}"
        )
        if policy is ValidationPolicy.STRICT:
            raise MalformedResponse(f"Invalid address: {message}", line=raw, kind=kind.name)

        logger.warning("%s response: %s", kind.name, message)
        warnings.append(message)

    return tuple(warnings)


def decode_single(
    raw: RawPayload,
    policy: ValidationPolicy = DEFAULT_POLICIES[RequestKind.SINGLE_RANGE],
) -> SingleChannelStatus:
    """
    Decode a single-channel (AM1) status response.

    Layout (24 bytes):
        [0] address, [1] power status, [2] input status, [3..23] payload

    Args:
        raw: Inbound line or bytes.
        policy: Address validation policy.

    Returns:
        SingleChannelStatus record.

    Raises:
        MalformedResponse: If the length is not 24 bytes, or the address is
            outside 1..247 under the STRICT policy.
    """
    kind = RequestKind.SINGLE_RANGE
    data = _decode(raw, kind)

    if len(data) != ProtocolConstants.SINGLE_RESPONSE_SIZE:
        raise MalformedResponse(
            f"Expected {ProtocolConstants.SINGLE_RESPONSE_SIZE} bytes, got {len(data)}",
            line=raw,
            kind=kind.name,
        )

    warnings = _check_addresses(data[:1], policy, raw, kind)

    return SingleChannelStatus(
        address=data[0],
        power_status=data[1],
        input_status=data[2],
        payload=data[3:],
        warnings=warnings,
    )


def decode_octal(
    raw: RawPayload,
    policy: ValidationPolicy = DEFAULT_POLICIES[RequestKind.OCTAL_RANGE],
) -> OctalChannelStatus:
    """
    Decode an 8-channel (AM8) status response.

    Layout (at least 18 bytes, trailing bytes ignored):
        [0..7] channel addresses, [8] power status, [9..17] input statuses

    Args:
        raw: Inbound line or bytes.
        policy: Address validation policy.

    Returns:
        OctalChannelStatus record; out-of-range addresses are listed in
        `warnings` under the LENIENT policy.

    Raises:
        MalformedResponse: If fewer than 18 bytes are present.
    """
    kind = RequestKind.OCTAL_RANGE
    data = _decode(raw, kind)

    if len(data) < ProtocolConstants.OCTAL_MIN_RESPONSE_SIZE:
        raise MalformedResponse(
            f"Expected at least {ProtocolConstants.OCTAL_MIN_RESPONSE_SIZE} bytes, got {len(data)}",
            line=raw,
            kind=kind.name,
        )

    channels = ProtocolConstants.OCTAL_CHANNELS
    addresses = tuple(data[:channels])
    warnings = _check_addresses(addresses, policy, raw, kind)

    return OctalChannelStatus(
        addresses=addresses,
        power_status=data[channels],
        inputs=tuple(data[channels + 1 : channels + 1 + ProtocolConstants.OCTAL_INPUTS]),
        warnings=warnings,
    )


def decode_quad(
    raw: RawPayload,
    policy: ValidationPolicy = DEFAULT_POLICIES[RequestKind.QUAD_RANGE],
) -> QuadChannelStatus:
    """
    Decode a 4-channel relay (PM) status response.

    Layout (24 bytes):
        [0..3] channel addresses, [4] power status, [5..8] relay statuses,
        [9..23] reserved

    Args:
        raw: Inbound line or bytes.
        policy: Address validation policy.

    Returns:
        QuadChannelStatus record.

    Raises:
        MalformedResponse: If the length is not 24 bytes, or an address is
            out of range under the STRICT policy.
    """
    kind = RequestKind.QUAD_RANGE
    data = _decode(raw, kind)

    if len(data) != ProtocolConstants.QUAD_RESPONSE_SIZE:
        raise MalformedResponse(
            f"Expected {ProtocolConstants.QUAD_RESPONSE_SIZE} bytes, got {len(data)}",
            line=raw,
            kind=kind.name,
        )

    channels = ProtocolConstants.QUAD_CHANNELS
    addresses = tuple(data[:channels])
    warnings = _check_addresses(addresses, policy, raw, kind)

    return QuadChannelStatus(
        addresses=addresses,
        power_status=data[channels],
        relay_statuses=tuple(data[channels + 1 : channels + 1 + channels]),
        warnings=warnings,
    )
