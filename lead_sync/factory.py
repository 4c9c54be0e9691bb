"""Factory helpers for constructing stores and fetchers from configuration."""
from __future__ import annotations

import importlib
from typing import Any, Dict, Mapping, Optional

from .config import SyncSettings
from .errors import ConfigurationError
from .ingestion.loaders import FileSheetFetcher, HttpSheetFetcher, SheetFetcher
from .store import InMemoryStore, RecordStore

DEFAULT_STORE_CLASS = "lead_sync.store.memory.InMemoryStore"

_STORE_ALIASES = {
    "memory": DEFAULT_STORE_CLASS,
    "postgres": "lead_sync.store.postgres.PostgresStore",
}


def _load_class(path: str):
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ConfigurationError(f"Invalid store class path '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Could not import '{module_name}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigurationError(f"Module '{module_name}' does not define '{attr}'") from exc


def build_store(store_cfg: Optional[Mapping[str, Any]] = None) -> RecordStore:
    """Instantiate the record store named in the ``store`` configuration section."""

    store_cfg = dict(store_cfg or {})
    class_path = str(store_cfg.get("class") or DEFAULT_STORE_CLASS)
    class_path = _STORE_ALIASES.get(class_path, class_path)
    options: Dict[str, Any] = dict(store_cfg.get("options") or {})

    if class_path == DEFAULT_STORE_CLASS and not options:
        return InMemoryStore()

    store_cls = _load_class(class_path)
    try:
        return store_cls(**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for store '{class_path}': {exc}") from exc


def build_fetcher(settings: SyncSettings, *, local: bool = False) -> SheetFetcher:
    """Return a file fetcher for local CSV paths, otherwise an HTTP fetcher."""

    if local:
        return FileSheetFetcher()
    return HttpSheetFetcher(
        timeout=settings.fetch.timeout_seconds,
        url_template=settings.fetch.url_template,
        user_agent=settings.fetch.user_agent,
    )


__all__ = ["build_store", "build_fetcher", "DEFAULT_STORE_CLASS"]
