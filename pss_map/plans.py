"""
Stadium plans and their uploaded files.

A plan file is kept either behind a locator returned by a Blob Store (URL or
relative path) or, when every upload failed, inline as base64 so the file is
never lost.
"""
import base64
import binascii
import json
import logging
import re
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import requests

from .errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

PLANS_KEY = "plans_all"

# Intrinsic pixel sizes of the stadium diagrams
DEFAULT_PLAN_SIZES = [(958, 657), (987, 672), (1018, 803)]

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


@dataclass(frozen=True)
class PlanFile:
    name: str
    content_type: str
    locator: Optional[str] = None
    inline_data: Optional[str] = None

    @property
    def is_remote(self):
        return bool(self.locator) and self.locator.startswith(("http://", "https://"))

    def to_dict(self):
        return {"name": self.name, "contentType": self.content_type,
                "locator": self.locator, "inlineData": self.inline_data}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ValueError("invalid plan file record")
        locator, inline = data.get("locator"), data.get("inlineData")
        for key in ("locator", "inlineData", "contentType"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"plan file '{data['name']}' has a non-text {key}")
        if not locator and not inline:
            raise ValueError(f"plan file '{data['name']}' has neither locator nor data")
        return cls(data["name"], data.get("contentType") or guess_content_type(data["name"]),
                   locator or None, inline or None)


@dataclass(frozen=True)
class Plan:
    index: int
    name: str
    width: float
    height: float
    file: Optional[PlanFile] = None

    def to_dict(self):
        return {"index": self.index, "name": self.name, "width": self.width,
                "height": self.height, "file": self.file.to_dict() if self.file else None}


def sanitize_filename(filename):
    return re.sub(r"[^A-Za-z0-9_.\-]", "_", filename or "plan")


def guess_content_type(filename):
    return CONTENT_TYPES.get(Path(filename.lower()).suffix, "application/octet-stream")


def store_plan_file(data: bytes, filename, blob_stores=()):
    """Try each blob store in order; fall back to inline base64."""
    sanitized = sanitize_filename(filename)
    unique_name = f"{int(time.time() * 1000)}_{sanitized}"
    content_type = guess_content_type(sanitized)
    for store in blob_stores:
        try:
            locator = store.upload(data, unique_name, content_type)
        except StoreError as e:
            logger.warning("%s could not store %s: %s", type(store).__name__, filename, e)
            continue
        if locator:
            logger.info("Stored %s at %s", filename, locator)
            return PlanFile(sanitized, content_type, locator=locator)
    logger.warning("No blob store accepted %s, keeping it inline", filename)
    return PlanFile(sanitized, content_type, inline_data=base64.b64encode(data).decode("ascii"))


def read_plan_file(plan_file: PlanFile, root=".", timeout=10):
    if plan_file.inline_data:
        try:
            return base64.b64decode(plan_file.inline_data, validate=True)
        except binascii.Error as e:
            raise StoreError(f"inline data of {plan_file.name} is corrupt: {e}") from e
    if plan_file.is_remote:
        try:
            resp = requests.get(plan_file.locator, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StoreError(f"cannot download {plan_file.locator}: {e}") from e
        return resp.content
    try:
        return (Path(root) / plan_file.locator).read_bytes()
    except OSError as e:
        raise StoreError(f"cannot read {plan_file.locator}: {e}") from e


class PlanCatalog:
    """The configured plans plus the files uploaded for them."""

    def __init__(self, store, sizes=None):
        self.store = store
        sizes = sizes or DEFAULT_PLAN_SIZES
        self.plans = [Plan(i, f"Plan {i + 1}", float(w), float(h)) for i, (w, h) in enumerate(sizes)]

    def __len__(self):
        return len(self.plans)

    def load(self):
        try:
            raw = self.store.get_string(PLANS_KEY)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"cannot read '{PLANS_KEY}': {e}") from e
        if not raw:
            return self
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored plans are not valid JSON: %s", e)
            return self
        for entry in entries if isinstance(entries, list) else []:
            try:
                index = entry["index"]
                plan = self.get(index)
                name = entry.get("name") or plan.name
                file = PlanFile.from_dict(entry["file"]) if entry.get("file") else None
            except (KeyError, TypeError, ValueError, NotFoundError) as e:
                logger.warning("Skipping stored plan entry %r: %s", entry, e)
                continue
            # Sizes always come from configuration
            self.plans[index] = replace(plan, name=name, file=file)
        return self

    def get(self, index):
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self.plans):
            raise NotFoundError(f"no plan with index {index}")
        return self.plans[index]

    def _write(self, plans):
        try:
            self.store.set_string(PLANS_KEY, json.dumps([p.to_dict() for p in plans]))
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"cannot write '{PLANS_KEY}': {e}") from e
        self.plans = plans

    def attach_file(self, index, plan_file: PlanFile):
        plan = self.get(index)
        plans = list(self.plans)
        plans[index] = replace(plan, file=plan_file)
        self._write(plans)
        logger.info("Attached %s to plan %d", plan_file.name, index + 1)
        return plans[index]

