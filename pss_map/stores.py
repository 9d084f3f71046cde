"""
Resource Store and Blob Store implementations.

A Resource Store is a string key-value store with whole-value get/set.
A Blob Store takes file bytes and hands back a locator (URL or relative path).
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from .errors import StoreError

logger = logging.getLogger(__name__)


class ResourceStore(ABC):
    @abstractmethod
    def get_string(self, key):
        """Returns the stored string or None."""

    @abstractmethod
    def set_string(self, key, value):
        """Overwrites the value stored under key."""


class MemoryStore(ResourceStore):
    def __init__(self, initial=None):
        self.values = dict(initial or {})

    def get_string(self, key):
        return self.values.get(key)

    def set_string(self, key, value):
        self.values[key] = value


class JsonFileStore(ResourceStore):
    """All keys live in one JSON object on disk; every write replaces the file."""

    def __init__(self, filepath):
        self.filepath = Path(filepath)

    def _read_all(self):
        if not self.filepath.exists():
            return {}
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StoreError(f"cannot read {self.filepath}: {e}") from e
        except json.JSONDecodeError as e:
            logger.warning("Store file %s is not valid JSON, treating it as empty: %s", self.filepath, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get_string(self, key):
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key, value):
        data = self._read_all()
        data[key] = value
        tmp_path = None
        try:
            self.filepath.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=self.filepath.name, suffix=".tmp",
                                            dir=str(self.filepath.parent))
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4)
            os.replace(str(tmp_path), str(self.filepath))
        except OSError as e:
            raise StoreError(f"cannot write {self.filepath}: {e}") from e
        finally:
            if tmp_path and tmp_path.exists():
                tmp_path.unlink(missing_ok=True)


class BlobStore(ABC):
    @abstractmethod
    def upload(self, data: bytes, name, content_type):
        """Persists the bytes and returns a locator; raises StoreError on failure."""


class LocalBlobStore(BlobStore):
    def __init__(self, root, folder="uploads"):
        self.root = Path(root)
        self.folder = folder

    def upload(self, data, name, content_type):
        target_dir = self.root / self.folder
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / name).write_bytes(data)
        except OSError as e:
            raise StoreError(f"cannot save {name} locally: {e}") from e
        return f"{self.folder}/{name}"

    def resolve(self, locator):
        return self.root / locator


class HttpBlobStore(BlobStore):
    def __init__(self, upload_url, public_base_url=None, timeout=10):
        self.upload_url = upload_url
        self.public_base_url = public_base_url
        self.timeout = timeout

    def upload(self, data, name, content_type):
        try:
            resp = requests.post(
                self.upload_url,
                params={"name": f"uploads/{name}"},
                data=data,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"upload of {name} failed: {e}") from e
        if resp.status_code not in (200, 201):
            raise StoreError(f"upload of {name} failed: HTTP {resp.status_code} {resp.text[:200]}")
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        url = payload.get("url") if isinstance(payload, dict) else None
        if isinstance(url, str) and url:
            return url
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/uploads/{name}"
        raise StoreError(f"upload of {name} returned no download URL")
