"""Key-value storage backends for CabShare."""

import os
import json
import tempfile
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from cabshare import config

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Custom exception for storage backend errors."""
    pass


class KeyValueStore:
    """
    A store of text values addressed by string keys.

    Every method raises StorageError when the underlying storage cannot be
    read or written.
    """

    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None if there is none."""
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        """Remove key. Removing a missing key is not an error."""
        raise NotImplementedError

    def multi_remove(self, keys: List[str]) -> None:
        """Remove several keys."""
        for key in keys:
            self.remove_item(key)


class FileKeyValueStore(KeyValueStore):
    """Stores every key in a single JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {str(e)}")

        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            # Write to a temp file first so a crash never leaves half a file
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {str(e)}")

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value under '{key}' in {self.path} is not text")
        return value

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: List[str]) -> None:
        data = self._read()
        if not any(key in data for key in keys):
            return
        for key in keys:
            data.pop(key, None)
        self._write(data)


class HttpKeyValueStore(KeyValueStore):
    """Talks to the CabShare key-value server over HTTP."""

    def __init__(self, base_url: str, timeout: float = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = config.HTTP_TIMEOUT if timeout is None else timeout

    def _url(self, key: str) -> str:
        return f"{self.base_url}/items/{quote(key, safe='')}"

    def get_item(self, key: str) -> Optional[str]:
        try:
            response = requests.get(self._url(key), timeout=self.timeout)

            if response.status_code == 404:
                return None

            response.raise_for_status()
            body = response.json()
            if not isinstance(body, dict) or not isinstance(body.get("value"), (str, type(None))):
                raise StorageError(f"Server sent an unexpected body for '{key}'")
            return body.get("value")

        except requests.RequestException as e:
            raise StorageError(f"Failed to read '{key}': {str(e)}")
        except ValueError as e:
            raise StorageError(f"Server sent an invalid response for '{key}': {str(e)}")

    def set_item(self, key: str, value: str) -> None:
        try:
            response = requests.put(self._url(key), json={"value": value},
                                    timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise StorageError(f"Failed to write '{key}': {str(e)}")

    def remove_item(self, key: str) -> None:
        try:
            response = requests.delete(self._url(key), timeout=self.timeout)
            if response.status_code == 404:
                return
            response.raise_for_status()
        except requests.RequestException as e:
            raise StorageError(f"Failed to remove '{key}': {str(e)}")


def create_store(url: Optional[str] = None, path: Optional[str] = None) -> KeyValueStore:
    """
    Create the storage backend from configuration.

    Args:
        url: Base URL of a key-value server; defaults to CABSHARE_STORE_URL
        path: Path of the JSON storage file; defaults to CABSHARE_STORE_PATH

    Returns:
        KeyValueStore: HTTP backend when a URL is configured, file backend otherwise
    """
    url = url or config.STORE_URL
    if url:
        logger.info(f"Using key-value server at {url}")
        return HttpKeyValueStore(url)

    path = path or config.STORE_PATH
    logger.info(f"Using storage file {path}")
    return FileKeyValueStore(path)
