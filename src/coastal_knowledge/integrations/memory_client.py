"""Key/value storage client.

The knowledge base and assistant sessions are kept in a dumb key/value store:
either a remote memory server over REST or a JSON file on local disk.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Optional

import httpx

from .retry import with_retry

logger = logging.getLogger(__name__)


# ===================
# Data Classes
# ===================


@dataclass
class MemoryEntry:
    """An entry in the key/value store."""
    key: str
    value: Any
    created_at: str = ""
    updated_at: str = ""


@dataclass
class MemoryOperationResult:
    """Result of a store operation."""
    success: bool
    key: str = ""
    message: str = ""


# ===================
# Backend Interface
# ===================


class MemoryBackend(ABC):
    """Abstract base class for key/value storage backends."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is available."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[MemoryEntry]:
        """Get a value by key."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> MemoryOperationResult:
        """Set a value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> MemoryOperationResult:
        """Delete a key."""
        ...

    @abstractmethod
    def list_keys(self, prefix: Optional[str] = None) -> list[str]:
        """List keys with optional prefix filter."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


# ===================
# REST Backend
# ===================


class RestMemoryBackend(MemoryBackend):
    """REST API-based backend using httpx."""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 10.0,
        connect_timeout: float = 3.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the REST backend.

        Args:
            base_url: Memory server URL
            timeout: Request timeout in seconds
            connect_timeout: Health check timeout in seconds
            max_retries: Retries on transient network errors
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        self._send = with_retry(max_retries=max_retries)(self._client.request)
        self._available = self._check_connection(connect_timeout)

    def _check_connection(self, timeout: float) -> bool:
        """Check if the memory server answers its health endpoint."""
        try:
            self._client.get("/health", timeout=timeout)
            logger.info(f"REST memory server connected: {self.base_url}")
            return True
        except httpx.HTTPError as e:
            logger.info(
                f"REST memory server not available at {self.base_url}: {e} "
                "(local storage will be used)"
            )
            return False

    @property
    def is_available(self) -> bool:
        return self._available

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def _make_request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Optional[dict]:
        """Send a request; None on 404."""
        response = self._send(method, endpoint, json=json_data, params=params)

        if response.status_code == 404:
            return None

        response.raise_for_status()

        if response.content:
            return response.json()
        return {}

    def get(self, key: str) -> Optional[MemoryEntry]:
        try:
            result = self._make_request("GET", f"/memory/{key}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to get memory key '{key}': {e}")
            return None

        if result is None:
            return None

        return MemoryEntry(
            key=key,
            value=result.get("value"),
            created_at=result.get("created_at", ""),
            updated_at=result.get("updated_at", ""),
        )

    def set(self, key: str, value: Any) -> MemoryOperationResult:
        try:
            self._make_request("POST", f"/memory/{key}", json_data={"value": value})
        except httpx.HTTPError as e:
            logger.error(f"Failed to set memory key '{key}': {e}")
            return MemoryOperationResult(success=False, key=key, message=str(e))

        return MemoryOperationResult(success=True, key=key, message="Value set successfully")

    def delete(self, key: str) -> MemoryOperationResult:
        try:
            self._make_request("DELETE", f"/memory/{key}")
        except httpx.HTTPError as e:
            logger.error(f"Failed to delete memory key '{key}': {e}")
            return MemoryOperationResult(success=False, key=key, message=str(e))

        return MemoryOperationResult(success=True, key=key, message="Key deleted successfully")

    def list_keys(self, prefix: Optional[str] = None) -> list[str]:
        params = {"prefix": prefix} if prefix else {}
        try:
            result = self._make_request("GET", "/memory", params=params)
        except httpx.HTTPError as e:
            logger.error(f"Failed to list memory keys: {e}")
            return []

        if result is None:
            return []
        return result.get("keys", [])


# ===================
# Local File Backend
# ===================


class LocalMemoryBackend(MemoryBackend):
    """JSON file on local disk, one object keyed by store key."""

    def __init__(self, path: Path):
        """Initialize the local backend.

        Args:
            path: JSON file path (created on first write)
        """
        self.path = Path(path)
        self._entries: dict[str, dict[str, Any]] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug(f"Local store not found, starting empty: {self.path}")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load local store {self.path}: {e}")
            return

        if isinstance(data, dict):
            self._entries = data
            logger.info(f"Loaded {len(self._entries)} keys from {self.path}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._entries, f, ensure_ascii=False, indent=2)

    @property
    def is_available(self) -> bool:
        return True

    def close(self) -> None:
        pass

    def get(self, key: str) -> Optional[MemoryEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return MemoryEntry(
            key=key,
            value=entry.get("value"),
            created_at=entry.get("created_at", ""),
            updated_at=entry.get("updated_at", ""),
        )

    def set(self, key: str, value: Any) -> MemoryOperationResult:
        now = datetime.now().isoformat()
        existing = self._entries.get(key)
        self._entries[key] = {
            "value": value,
            "created_at": existing.get("created_at", now) if existing else now,
            "updated_at": now,
        }
        try:
            self._save()
        except OSError as e:
            logger.error(f"Failed to write local store {self.path}: {e}")
            return MemoryOperationResult(success=False, key=key, message=str(e))
        return MemoryOperationResult(success=True, key=key, message="Value set successfully")

    def delete(self, key: str) -> MemoryOperationResult:
        if self._entries.pop(key, None) is not None:
            try:
                self._save()
            except OSError as e:
                logger.error(f"Failed to write local store {self.path}: {e}")
                return MemoryOperationResult(success=False, key=key, message=str(e))
        return MemoryOperationResult(success=True, key=key, message="Key deleted successfully")

    def list_keys(self, prefix: Optional[str] = None) -> list[str]:
        if prefix:
            return [k for k in self._entries if k.startswith(prefix)]
        return list(self._entries)


# ===================
# Unified Client
# ===================


class MemoryClient:
    """Client for key/value store operations.

    Uses the REST memory server or a local JSON file based on configuration.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 10.0,
        connect_timeout: float = 3.0,
        protocol: Literal["rest", "local"] = "local",
        local_path: Optional[Path] = None,
        max_retries: int = 3,
    ):
        """Initialize the memory client.

        Args:
            base_url: Memory server URL (rest)
            timeout: Request timeout in seconds (rest)
            connect_timeout: Health check timeout in seconds (rest)
            protocol: "rest" or "local"
            local_path: JSON file path (local)
            max_retries: Retries on transient network errors (rest)
        """
        self._protocol = protocol

        if protocol == "rest":
            self._backend: MemoryBackend = RestMemoryBackend(
                base_url=base_url,
                timeout=timeout,
                connect_timeout=connect_timeout,
                max_retries=max_retries,
            )
        else:
            if local_path is None:
                raise ValueError("local_path is required for the local protocol")
            self._backend = LocalMemoryBackend(local_path)

    @property
    def protocol(self) -> str:
        return self._protocol

    @property
    def is_available(self) -> bool:
        """Check if the store is available."""
        return self._backend.is_available

    def close(self):
        """Close the client."""
        self._backend.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ===================
    # Basic Operations (delegated to backend)
    # ===================

    def get(self, key: str) -> Optional[MemoryEntry]:
        """Get a value by key."""
        return self._backend.get(key)

    def set(self, key: str, value: Any) -> MemoryOperationResult:
        """Set a value."""
        return self._backend.set(key, value)

    def delete(self, key: str) -> MemoryOperationResult:
        """Delete a key."""
        return self._backend.delete(key)

    def list_keys(self, prefix: Optional[str] = None) -> list[str]:
        """List all keys, optionally filtered by prefix."""
        return self._backend.list_keys(prefix)

    def get_json(self, key: str) -> Optional[Any]:
        """Get a value, decoding it when the store handed back a JSON string."""
        entry = self.get(key)
        if entry is None or entry.value is None:
            return None

        if isinstance(entry.value, str):
            try:
                return json.loads(entry.value)
            except json.JSONDecodeError:
                logger.warning(f"Stored value for '{key}' is not valid JSON")
                return None

        return entry.value
