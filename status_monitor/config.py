"""Monitored target registry: configuration models and the built-in default."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from status_monitor.models import DEFAULT_CATEGORY_ID


logger = structlog.get_logger(__name__)

CONFIG_KEY = "config"

DEFAULT_SUCCESS_CODES = [200, 201, 202, 203, 204, 301, 302, 307, 308]


class Target(BaseModel):
    """One monitored URL. Identity is `id`; the other fields may change freely."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str | None = None
    url: str = Field(..., min_length=1)
    category_id: str | None = Field(None, alias="categoryId")

    @property
    def display_name(self) -> str:
        return self.name if self.name is not None else self.id

    @property
    def effective_category_id(self) -> str:
        return self.category_id or DEFAULT_CATEGORY_ID


class Category(BaseModel):
    """Display grouping only. Nothing about a category affects probing."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str | None = None
    default_open: bool | None = Field(True, alias="defaultOpen")


class Configuration(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    urls: list[Target] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    success_codes: list[int] = Field(default_factory=lambda: list(DEFAULT_SUCCESS_CODES), alias="successCodes")

    @field_validator("categories", mode="before")
    @classmethod
    def skip_invalid_categories(cls, v: Any) -> list[Category]:
        # A broken category entry must not invalidate the targets.
        if not isinstance(v, list):
            return []
        kept: list[Category] = []
        for entry in v:
            try:
                kept.append(Category.model_validate(entry))
            except ValidationError:
                logger.warning("Ignoring invalid category entry", entry=repr(entry)[:200])
        return kept

    def success_set(self) -> frozenset[int]:
        return frozenset(int(c) for c in self.success_codes)

    def target_ids(self) -> set[str]:
        return {t.id for t in self.urls}

    def unique_targets(self) -> list[Target]:
        # First occurrence of a duplicated id wins.
        seen: set[str] = set()
        out: list[Target] = []
        for target in self.urls:
            if target.id in seen:
                continue
            seen.add(target.id)
            out.append(target)
        return out

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


DEFAULT_CONFIG_DOCUMENT: dict[str, Any] = {
    "urls": [
        {"id": "google", "name": "Google", "url": "https://www.google.com", "categoryId": "general"},
        {"id": "github", "name": "GitHub", "url": "https://github.com", "categoryId": "general"},
        {"id": "dezso.hu", "name": "dezso.hu", "url": "https://www.dezso.hu", "categoryId": "internal"},
    ],
    "categories": [
        {"id": "general", "name": "Általános", "defaultOpen": True},
        {"id": "internal", "name": "Belső rendszerek", "defaultOpen": True},
    ],
    "successCodes": list(DEFAULT_SUCCESS_CODES),
}


def default_config() -> Configuration:
    return Configuration.model_validate(DEFAULT_CONFIG_DOCUMENT)


def load_default_config(path: Path | None) -> Configuration:
    """
    Built-in default, optionally replaced by a YAML document on disk.
    A configured but unreadable/invalid file is a startup error.
    """
    if path is None or not str(path).strip():
        return default_config()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("Default config YAML must be a mapping")
    try:
        return Configuration.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid default config in {path}: {exc}") from exc


def parse_config(raw: str | bytes | None, *, default: Configuration | None = None) -> Configuration:
    """
    Decode the persisted configuration blob.
    Absent, undecodable or invalid configuration all fall back to the default.
    """
    fallback = default if default is not None else default_config()
    if raw is None:
        return fallback
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Persisted config is not valid JSON; using default")
        return fallback
    if not isinstance(data, dict):
        logger.warning("Persisted config is not a JSON object; using default")
        return fallback
    try:
        return Configuration.model_validate(data)
    except ValidationError as exc:
        logger.warning("Persisted config failed validation; using default", errors=exc.error_count())
        return fallback
