"""Configuration helpers for the sheet sync orchestrator."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .ingestion.headers import DEFAULT_DATA_PREFIXES, HeaderOptions
from .ingestion.loaders import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT, EXPORT_URL_TEMPLATE
from .ingestion.mapper import REQUIRED_FIELDS
from .ingestion.matcher import ColumnMatcher, build_rules
from .models import ENTITIES, LEADS, SALESPERSONS, CanonicalField, get_entity

LOGGER = logging.getLogger(__name__)

_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

DEFAULT_HEADER_TOKENS: Mapping[str, Tuple[Tuple[str, ...], ...]] = {
    LEADS.name: (("email",), ("phone",), ("name", "full")),
    SALESPERSONS.name: (("email",), ("name", "full")),
}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    try:
        if file_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Configuration file '{file_path}' is not valid: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class FetchSettings:
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    url_template: str = EXPORT_URL_TEMPLATE
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class EntitySettings:
    """Per-entity ingestion policy."""

    phone_required: bool = False
    defaults: Dict[CanonicalField, str] = field(default_factory=dict)
    aliases: Dict[str, Any] = field(default_factory=dict)
    header_tokens: Tuple[Tuple[str, ...], ...] = ()
    sheet_id: Optional[str] = None


@dataclass
class SyncSettings:
    """Typed view over a configuration mapping."""

    spreadsheet_id: Optional[str] = None
    fetch: FetchSettings = field(default_factory=FetchSettings)
    header_scan_limit: int = 50
    leading_column_max_length: int = 50
    data_prefixes: Tuple[str, ...] = DEFAULT_DATA_PREFIXES
    max_reported_rejections: int = 50
    entities: Dict[str, EntitySettings] = field(default_factory=dict)
    store: Dict[str, Any] = field(default_factory=dict)

    def entity(self, name: str) -> EntitySettings:
        schema = get_entity(name)
        settings = self.entities.get(schema.name)
        if settings is None:
            settings = EntitySettings(header_tokens=DEFAULT_HEADER_TOKENS[schema.name])
            self.entities[schema.name] = settings
        return settings

    def header_options(self, name: str = LEADS.name) -> HeaderOptions:
        return HeaderOptions(
            scan_limit=self.header_scan_limit,
            leading_column_max_length=self.leading_column_max_length,
            data_prefixes=self.data_prefixes,
            required_tokens=self.entity(name).header_tokens or DEFAULT_HEADER_TOKENS[get_entity(name).name],
        )

    def matcher(self, name: str) -> ColumnMatcher:
        schema = get_entity(name)
        try:
            return ColumnMatcher(build_rules(schema, self.entity(name).aliases))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid alias configuration for {schema.name}: {exc}") from exc


def settings_from_config(config: Optional[Mapping[str, Any]] = None) -> SyncSettings:
    """Build :class:`SyncSettings` from a loaded configuration mapping."""

    config = dict(config or {})
    fetch_cfg = _section(config, "fetch")
    ingestion_cfg = _section(config, "ingestion")
    sheets_cfg = _section(config, "sheets")
    entities_cfg = _section(config, "entities")

    try:
        settings = SyncSettings(
            spreadsheet_id=_optional_str(config.get("spreadsheet_id")),
            fetch=FetchSettings(
                timeout_seconds=float(fetch_cfg.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
                url_template=str(fetch_cfg.get("url_template", EXPORT_URL_TEMPLATE)),
                user_agent=str(fetch_cfg.get("user_agent", DEFAULT_USER_AGENT)),
            ),
            header_scan_limit=int(ingestion_cfg.get("header_scan_limit", 50)),
            leading_column_max_length=int(ingestion_cfg.get("leading_column_max_length", 50)),
            data_prefixes=tuple(str(prefix).lower() for prefix in ingestion_cfg.get("data_prefixes", DEFAULT_DATA_PREFIXES)),
            max_reported_rejections=int(ingestion_cfg.get("max_reported_rejections", 50)),
            store=dict(_section(config, "store")),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc

    if settings.fetch.timeout_seconds <= 0:
        raise ConfigurationError("fetch.timeout_seconds must be positive")
    if "{spreadsheet_id}" not in settings.fetch.url_template:
        raise ConfigurationError("fetch.url_template must contain '{spreadsheet_id}'")

    unknown = set(entities_cfg) - set(ENTITIES)
    if unknown:
        raise ConfigurationError(f"Unknown entities in configuration: {sorted(unknown)}")

    for name in ENTITIES:
        entity_cfg = _section(entities_cfg, name)
        settings.entities[name] = _entity_settings(name, entity_cfg, sheets_cfg.get(name))
        # Fail early on bad alias tables rather than on the first sync.
        settings.matcher(name)

    LOGGER.debug("Loaded settings: spreadsheet=%s, store=%s", settings.spreadsheet_id, settings.store.get("class"))
    return settings


def _entity_settings(name: str, entity_cfg: Mapping[str, Any], sheet_id: Any) -> EntitySettings:
    schema = get_entity(name)
    phone_required = bool(entity_cfg.get("phone_required", False))
    required = REQUIRED_FIELDS + ((CanonicalField.PHONE,) if phone_required else ())
    defaults: Dict[CanonicalField, str] = {}
    for key, value in _section(entity_cfg, "defaults").items():
        try:
            canonical = CanonicalField.parse(key)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        if canonical not in schema.fields:
            raise ConfigurationError(f"Default for '{canonical.value}' is not part of the {name} schema")
        if canonical in required:
            raise ConfigurationError(f"'{canonical.value}' is required for {name} and cannot have a default")
        defaults[canonical] = "" if value is None else str(value)

    tokens_cfg = entity_cfg.get("header_tokens")
    if tokens_cfg:
        header_tokens = tuple(
            tuple(str(token).lower() for token in ([group] if isinstance(group, str) else group))
            for group in tokens_cfg
        )
    else:
        header_tokens = DEFAULT_HEADER_TOKENS[name]

    return EntitySettings(
        phone_required=phone_required,
        defaults=defaults,
        aliases=dict(_section(entity_cfg, "aliases")),
        header_tokens=header_tokens,
        sheet_id=_optional_str(sheet_id),
    )


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{key}' must be a mapping")
    return value


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "ConfigurationError",
    "EntitySettings",
    "FetchSettings",
    "SyncSettings",
    "load_configuration",
    "settings_from_config",
]
