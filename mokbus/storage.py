"""
Persistence of scan results and the section catalog.

The configuration tool keeps one JSON document (``mok-config.json``)
holding the device sections the user has configured, the addresses found
by the last bus scan and the device information collected for them.
The scan session saves it after every change and reads it back at
startup.

Stores implement the ConfigStore interface:
- JsonFileConfigStore: JSON file on disk
- MemoryConfigStore: in-memory store for tests
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from mokbus.exceptions import MokBusError
from mokbus.models.records import ScanDetail

logger = logging.getLogger(__name__)

CONFIG_VERSION: Final[str] = "1.0"
DEFAULT_CONFIG_PATH: Final[Path] = Path.home() / ".mokbus" / "mok-config.json"


class StorageError(MokBusError):
    """Raised when the configuration cannot be read or written."""

    pass


class StoredConfig(BaseModel):
    """
    Persisted configuration document.

    Field aliases match the on-disk camelCase keys.
    """

    model_config = ConfigDict(populate_by_name=True)

    sections: list[dict[str, Any]] = Field(default_factory=list, description="Configured sections")
    scan_results: list[int] = Field(
        default_factory=list, alias="scanResults", description="Addresses found by the last scan"
    )
    device_info: list[ScanDetail] = Field(
        default_factory=list, alias="deviceInfo", description="Known device types by address"
    )
    last_modified: datetime | None = Field(default=None, alias="lastModified")
    version: str = CONFIG_VERSION


class ConfigStore(ABC):
    """Abstract configuration store."""

    @abstractmethod
    def save(self, config: StoredConfig) -> None:
        """
        Persist the configuration.

        Raises:
            StorageError: If the configuration cannot be written.
        """
        ...

    @abstractmethod
    def load(self) -> StoredConfig | None:
        """
        Load the configuration.

        Returns:
            Stored configuration, or None if nothing has been saved.

        Raises:
            StorageError: If stored data exists but cannot be read.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored configuration. Safe to call when nothing is stored."""
        ...


class JsonFileConfigStore(ConfigStore):
    """
    Store the configuration as a JSON file.

    Each save stamps ``lastModified`` and ``version`` and creates the
    parent directory if needed.

    Example:
        >>> store = JsonFileConfigStore(Path("/tmp/mok-config.json"))
        >>> store.save(StoredConfig(scan_results=[1, 5]))
        >>> store.load().scan_results
        [1, 5]
    """

    def __init__(self, path: Path | str = DEFAULT_CONFIG_PATH) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Path of the JSON file."""
        return self._path

    def save(self, config: StoredConfig) -> None:
        stamped = config.model_copy(
            update={"last_modified": datetime.now(timezone.utc), "version": CONFIG_VERSION}
        )
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                stamped.model_dump_json(by_alias=True, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Failed to save config to {self._path}: {e}") from e
        logger.debug("Config saved to %s", self._path)

    def load(self) -> StoredConfig | None:
        if not self._path.exists():
            return None

        try:
            config = StoredConfig.model_validate_json(self._path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Failed to read config from {self._path}: {e}") from e
        except PydanticValidationError as e:
            raise StorageError(f"Invalid config in {self._path}: {e}") from e

        logger.debug("Config loaded from %s", self._path)
        return config

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to clear config {self._path}: {e}") from e
        logger.debug("Config cleared")

    def __repr__(self) -> str:
        return f"JsonFileConfigStore({str(self._path)!r})"


class MemoryConfigStore(ConfigStore):
    """
    In-memory store for testing.

    Attributes:
        save_count: Number of save() calls.
    """

    def __init__(self, config: StoredConfig | None = None) -> None:
        self._config = config
        self.save_count = 0

    @property
    def config(self) -> StoredConfig | None:
        """The last saved configuration."""
        return self._config

    def save(self, config: StoredConfig) -> None:
        self._config = config.model_copy(deep=True)
        self.save_count += 1

    def load(self) -> StoredConfig | None:
        return self._config

    def clear(self) -> None:
        self._config = None
