"""
Data models for MOK bus records.

This module contains Pydantic models representing device responses:

- Status records for single, 8-channel and 4-channel devices
- Scan list and per-device scan detail records
- Device type and status enums
"""

from mokbus.models.records import (
    ChannelStatus,
    DeviceRecord,
    DeviceType,
    OctalChannelStatus,
    PowerStatus,
    QuadChannelStatus,
    ScanDetail,
    ScanList,
    SingleChannelStatus,
)

__all__ = [
    # Enums
    "DeviceType",
    "PowerStatus",
    "ChannelStatus",
    # Records
    "SingleChannelStatus",
    "OctalChannelStatus",
    "QuadChannelStatus",
    "ScanList",
    "ScanDetail",
    "DeviceRecord",
]
