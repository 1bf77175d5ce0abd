"""
mokbus - Python library for configuring MOK devices on an RS-485 bus.

This library provides async communication with MOK relay and input
modules: status range requests for single-channel (AM1), 8-channel (AM8)
and 4-channel (PM) devices, sequential channel address writes, and a
full-bus discovery scan with persisted results.

Example:
    >>> from mokbus import BusClient
    >>> from mokbus.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     transport = AsyncSerialTransport("/dev/ttyUSB0")
    ...     async with BusClient(transport, listener=print) as client:
    ...         client.start_listening()
    ...         await client.start_scan()
"""

from mokbus.client import BusClient, ClientState
from mokbus.correlator import RequestCorrelator
from mokbus.events import Notification, NotificationLevel
from mokbus.exceptions import (
    ConnectionError,
    MalformedResponse,
    MokBusError,
    ProtocolError,
    RequestInProgressError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from mokbus.models.records import (
    DeviceType,
    OctalChannelStatus,
    QuadChannelStatus,
    ScanDetail,
    ScanList,
    SingleChannelStatus,
)
from mokbus.protocol.constants import RequestKind
from mokbus.protocol.frame import Frame, serialize
from mokbus.scan import ScanSession
from mokbus.sequencer import SequencedWriteController, WriteKind
from mokbus.storage import JsonFileConfigStore, MemoryConfigStore, StorageError
from mokbus.traffic_log import TrafficLog
from mokbus.transport import AbstractTransport, AsyncSerialTransport, MockTransport

__version__ = "0.1.0"
__all__ = [
    # Client
    "BusClient",
    "ClientState",
    "RequestCorrelator",
    "ScanSession",
    "SequencedWriteController",
    "WriteKind",
    "RequestKind",
    # Frames
    "Frame",
    "serialize",
    # Models
    "DeviceType",
    "SingleChannelStatus",
    "OctalChannelStatus",
    "QuadChannelStatus",
    "ScanList",
    "ScanDetail",
    # Notifications
    "Notification",
    "NotificationLevel",
    # Storage
    "JsonFileConfigStore",
    "MemoryConfigStore",
    "TrafficLog",
    # Exceptions
    "MokBusError",
    "ValidationError",
    "ProtocolError",
    "MalformedResponse",
    "TimeoutError",
    "ConnectionError",
    "TransportError",
    "RequestInProgressError",
    "StorageError",
    # Transport
    "AbstractTransport",
    "AsyncSerialTransport",
    "MockTransport",
    # Version
    "__version__",
]
