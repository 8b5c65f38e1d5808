"""
Application registry: fixed-shape app records stored in a JSON file.

IMPORTANT: The gateway only reads from the registry. All writes come from the
dashboard API.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class AppStatus(str, Enum):
    """Administrator-declared status. Informational only, never used for routing."""

    RUNNING = "running"
    MAINTENANCE = "under maintenance"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(name: str) -> str:
    """Convert an app name to a URL-safe slug."""
    slug = name.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-_\s]+", "-", slug)
    return slug.strip("-")


@dataclass
class ApplicationRecord:
    id: str
    name: str
    slug: str
    app_url: str
    category: str = ""
    department: str = ""
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    status: AppStatus = AppStatus.RUNNING
    active: bool = True
    created_at: str = field(default_factory=_utcnow)
    updated_at: str = field(default_factory=_utcnow)

    @classmethod
    def from_dict(cls, data: Dict) -> "ApplicationRecord":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or data["slug"],
            slug=data["slug"],
            app_url=data["app_url"],
            category=data.get("category") or "",
            department=data.get("department") or "",
            description=data.get("description"),
            tags=list(data.get("tags") or []),
            status=AppStatus(data.get("status", AppStatus.RUNNING.value)),
            active=bool(data.get("active", True)),
            created_at=data.get("created_at") or _utcnow(),
            updated_at=data.get("updated_at") or _utcnow(),
        )

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


def validate_slug(slug: str) -> str:
    if not slug or not SLUG_PATTERN.match(slug):
        raise ValueError("Slug must be lowercase letters, digits and single hyphens (e.g. 'hr-portal').")
    return slug


def validate_app_url(app_url: str) -> str:
    parsed = urlparse(app_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("App URL must be an absolute http:// or https:// URL.")
    return app_url


def parse_status(status) -> AppStatus:
    if isinstance(status, AppStatus):
        return status
    try:
        return AppStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in AppStatus)
        raise ValueError(f"Status must be one of: {allowed}.") from None


def filter_records(records: List[ApplicationRecord], query: str = "", category: str = "") -> List[ApplicationRecord]:
    """
    Narrow ``records`` for the catalog and dashboard listings.

    ``query`` matches name or description case-insensitively; ``category``
    must match exactly. Empty values do not filter.
    """
    needle = (query or "").strip().lower()
    matches = []
    for record in records:
        if category and record.category != category:
            continue
        if needle and needle not in record.name.lower() and needle not in (record.description or "").lower():
            continue
        matches.append(record)
    return matches


def categories_of(records: List[ApplicationRecord]) -> List[str]:
    return sorted({record.category for record in records if record.category})


class AppRegistry:
    """JSON-file backed store of application records keyed by slug."""

    _EDITABLE_FIELDS = ("name", "slug", "app_url", "category", "department", "description", "tags", "status", "active")

    def __init__(self, config_path):
        self._config_file = Path(config_path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._config_file

    def _load_config(self) -> Dict:
        """Load the registry document. A missing or corrupt file is an empty registry."""
        if self._config_file.exists():
            try:
                with open(self._config_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict) and isinstance(data.get("apps"), list):
                    return data
                logger.error(f"Registry file {self._config_file} has an unexpected shape; treating it as empty")
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading registry file {self._config_file}: {e}")
        return {"apps": []}

    def _save_config(self, config: Dict):
        """Write the registry document atomically."""
        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._config_file.parent, prefix=".apps_registry.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(config, f, indent=2)
            os.replace(tmp_path, self._config_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _load_records(self) -> List[ApplicationRecord]:
        records = []
        for raw in self._load_config()["apps"]:
            try:
                records.append(ApplicationRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed registry entry {raw!r}: {e}")
        return records

    def _save_records(self, records: List[ApplicationRecord]):
        config = self._load_config()
        config["apps"] = [record.to_dict() for record in records]
        self._save_config(config)

    def list(self) -> List[ApplicationRecord]:
        return self._load_records()

    def list_active(self) -> List[ApplicationRecord]:
        return [record for record in self._load_records() if record.active]

    def lookup(self, slug: str) -> Optional[ApplicationRecord]:
        """Return the first record registered under ``slug``."""
        for record in self._load_records():
            if record.slug == slug:
                return record
        return None

    def get(self, app_id: str) -> Optional[ApplicationRecord]:
        for record in self._load_records():
            if record.id == app_id:
                return record
        return None

    def register(
        self,
        name: str,
        slug: Optional[str],
        app_url: str,
        category: str = "",
        department: str = "",
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        status=AppStatus.RUNNING,
        active: bool = True,
    ) -> ApplicationRecord:
        """Register a new application. Raises ValueError on invalid or duplicate input."""
        if not name or not name.strip():
            raise ValueError("Name is required.")
        slug = validate_slug(slug or slugify(name))
        now = _utcnow()
        record = ApplicationRecord(
            id=str(uuid.uuid4()),
            name=name.strip(),
            slug=slug,
            app_url=validate_app_url(app_url),
            category=category or "",
            department=department or "",
            description=description,
            tags=list(tags or []),
            status=parse_status(status),
            active=bool(active),
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            records = self._load_records()
            if any(existing.slug == slug for existing in records):
                raise ValueError("App already registered")
            records.append(record)
            self._save_records(records)

        logger.info(f"Registered app {record.slug} -> {record.app_url}")
        return record

    def update(self, app_id: str, **changes) -> Optional[ApplicationRecord]:
        """Apply ``changes`` to a record. Returns None when the id is unknown."""
        unknown = set(changes) - set(self._EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")

        with self._lock:
            records = self._load_records()
            for record in records:
                if record.id != app_id:
                    continue

                if "name" in changes:
                    if not changes["name"] or not str(changes["name"]).strip():
                        raise ValueError("Name is required.")
                    record.name = str(changes["name"]).strip()
                if "slug" in changes:
                    new_slug = validate_slug(changes["slug"])
                    if any(other.id != app_id and other.slug == new_slug for other in records):
                        raise ValueError("App already registered")
                    record.slug = new_slug
                if "app_url" in changes:
                    record.app_url = validate_app_url(changes["app_url"])
                if "status" in changes:
                    record.status = parse_status(changes["status"])
                if "active" in changes:
                    record.active = bool(changes["active"])
                if "tags" in changes:
                    record.tags = list(changes["tags"] or [])
                for name in ("category", "department"):
                    if name in changes:
                        setattr(record, name, changes[name] or "")
                if "description" in changes:
                    record.description = changes["description"]

                record.updated_at = _utcnow()
                self._save_records(records)
                return record

        return None

    def toggle_active(self, app_id: str) -> Optional[ApplicationRecord]:
        """Flip the active flag of a record."""
        record = self.get(app_id)
        if record is None:
            return None
        return self.update(app_id, active=not record.active)

    def delete(self, app_id: str) -> bool:
        with self._lock:
            records = self._load_records()
            remaining = [record for record in records if record.id != app_id]
            if len(remaining) == len(records):
                return False
            self._save_records(remaining)
        logger.info(f"Deleted app {app_id}")
        return True


REGISTRY_EXTENSION_KEY = "launcher.registry"


def get_registry() -> AppRegistry:
    """Registry attached to the current Flask app."""
    from flask import current_app

    return current_app.extensions[REGISTRY_EXTENSION_KEY]
