"""
Data loader: buffers one session's snapshot in front of a storage driver

Writes are trailing-throttled (rapid writes coalesce into one write of the
latest buffer) and reads are leading-throttled (the first read hits storage,
further reads inside the window are served from the buffer). A pending write
is always flushed before storage is read or the session key changes.
"""
import copy
import threading
import time
from typing import Any, Dict, Optional, Type

import structlog

from sessioncart.config import Config, StorageDriverConfig, get_config
from sessioncart.exceptions import DriverNotSupportedError, InvalidConfigError
from sessioncart.storage import DEFAULT_DRIVERS, CartStorage
from sessioncart.utils import MISSING, get_path, has_path, set_path


class DataLoader:
    """Keyed data buffer with a storage registry and throttled persistence"""

    def __init__(self, key: str, config: Optional[Config] = None):
        config = config or get_config()
        self._key = key
        self.data: Dict[str, Any] = {}
        self.write_throttle_wait = config.write_throttle_wait
        self.read_throttle_wait = config.read_throttle_wait
        self.default_storage = config.default
        self.storages_config: Dict[str, StorageDriverConfig] = dict(config.storages)
        self._storages: Dict[str, CartStorage] = {}
        self._drivers: Dict[str, Type[CartStorage]] = dict(DEFAULT_DRIVERS)

        self._lock = threading.RLock()
        self._write_timer: Optional[threading.Timer] = None
        self._write_error: Optional[Exception] = None
        self._loaded_at: Optional[float] = None
        self.logger = structlog.get_logger().bind(component="data_loader")

    @property
    def current_key(self) -> str:
        return self._key

    def key(self, value: str) -> None:
        """Switch the data access key; pending writes go to the old key first"""
        with self._lock:
            self.flush()
            self._key = value
            self._loaded_at = None
        self.logger.debug("Data key changed", key=value)

    # Data access

    def set(self, key: Any, value: Any = MISSING) -> None:
        """
        Set data and schedule a write

        Args:
            key: Dotted path, or a dictionary replacing the whole buffer
            value: Value for the path (omit when passing a dictionary)
        """
        with self._lock:
            self._raise_write_error()
            if value is MISSING:
                if not isinstance(key, dict):
                    raise TypeError("set() needs a value or a dictionary")
                self.data = copy.deepcopy(key)
            else:
                self._load()
                set_path(self.data, key, copy.deepcopy(value))
            self._loaded_at = time.monotonic()
            try:
                self._schedule_save()
            except Exception:
                # Buffer no longer matches storage
                self._loaded_at = None
                raise

    def get(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Get a copy of the value at a dotted path, or of the whole buffer"""
        with self._lock:
            self._raise_write_error()
            self._load()
            return copy.deepcopy(get_path(self.data, key, default))

    def has(self, key: str) -> bool:
        """Check if a dotted path exists"""
        with self._lock:
            self._raise_write_error()
            self._load()
            return has_path(self.data, key)

    def flush(self) -> None:
        """Write pending data now and surface a failed deferred write"""
        with self._lock:
            self._flush_write()
            self._raise_write_error()

    # Storage registry

    def storages(self) -> Dict[str, CartStorage]:
        """Get the instantiated storages"""
        return self._storages

    def drivers(self) -> Dict[str, Type[CartStorage]]:
        """Get the registered drivers"""
        return self._drivers

    def storage(self, name: Optional[str] = None) -> CartStorage:
        """
        Get the storage instance for a name, or the default storage

        Raises:
            InvalidConfigError: If the name, its config or its driver is missing
            DriverNotSupportedError: If no driver is registered for the config
        """
        name = name or self.default_storage

        if not name:
            raise InvalidConfigError.missing_storage_name()

        if name in self._storages:
            return self._storages[name]

        storage_config = self.storages_config.get(name)
        if storage_config is None:
            raise InvalidConfigError.missing_storage_config(name)

        if isinstance(storage_config, dict):
            storage_config = StorageDriverConfig(**storage_config)

        if not storage_config.driver:
            raise InvalidConfigError.missing_storage_driver(name)

        driver = self._drivers.get(storage_config.driver)
        if driver is None:
            raise DriverNotSupportedError(storage_config.driver)

        storage = driver(storage_config.config)
        self._storages[name] = storage
        self.logger.info("Storage initialized", storage=name, driver=storage_config.driver)
        return storage

    def add_storage(self, name: str, config: Any) -> None:
        """Add a named storage configuration"""
        if name in self.storages_config:
            raise InvalidConfigError.duplicate_storage_name(name)
        if isinstance(config, dict):
            config = StorageDriverConfig(**config)
        self.storages_config[name] = config

    def register_driver(self, name: str, storage: Type[CartStorage]) -> None:
        """Register a custom driver"""
        self._drivers[name] = storage

    def driver(self, name: str) -> None:
        """Set current working storage"""
        with self._lock:
            self.flush()
            self.storage(name)
            self.default_storage = name
            self._loaded_at = None

    # Internals

    def _load(self) -> None:
        if (
            self._loaded_at is not None
            and self.read_throttle_wait > 0
            and time.monotonic() - self._loaded_at < self.read_throttle_wait
        ):
            return
        self._flush_write()
        storage = self.storage()
        raw = storage.get(self._key)
        self.data = storage.parse(raw) if raw else {}
        self._loaded_at = time.monotonic()

    def _save(self) -> None:
        storage = self.storage()
        storage.put(self._key, storage.serialise(self.data))
        self._loaded_at = time.monotonic()
        self.logger.debug("Data written", key=self._key)

    def _schedule_save(self) -> None:
        if self.write_throttle_wait <= 0:
            self._save()
            return
        if self._write_timer is not None:
            return

        def run():
            self._deferred_save(timer)

        timer = threading.Timer(self.write_throttle_wait, run)
        timer.daemon = True
        self._write_timer = timer
        timer.start()

    def _deferred_save(self, timer: threading.Timer) -> None:
        with self._lock:
            # Flushed or replaced meanwhile
            if self._write_timer is not timer:
                return
            self._write_timer = None
            try:
                self._save()
            except Exception as e:
                self.logger.error("Deferred write failed", key=self._key, error=str(e))
                self._write_error = e

    def _flush_write(self) -> None:
        timer = self._write_timer
        if timer is None:
            return
        timer.cancel()
        self._write_timer = None
        self._save()

    def _raise_write_error(self) -> None:
        if self._write_error is not None:
            error, self._write_error = self._write_error, None
            raise error
