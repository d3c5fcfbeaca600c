"""
Configuration management for QMS.

Loads config.yaml and provides type-safe access to settings.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

# Config file location — lives inside the qms package
_PACKAGE_DIR = Path(__file__).parent.parent.resolve()
CONFIG_PATH = _PACKAGE_DIR / "config.yaml"

# Cache for loaded config
_config_cache: Optional[Dict[str, Any]] = None


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Load configuration from config.yaml.

    Args:
        reload: Force reload even if cached

    Returns:
        Configuration dictionary
    """
    global _config_cache

    if _config_cache is not None and not reload:
        return _config_cache

    if not CONFIG_PATH.exists():
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        _config_cache = yaml.safe_load(f) or {}

    return _config_cache


def get_config_value(*keys: str, default: Any = None) -> Any:
    """
    Get a nested config value safely.

    Args:
        *keys: Path of keys to traverse (e.g., 'quotations', 'number_prefix')
        default: Value to return if key not found

    Example:
        prefix = get_config_value('quotations', 'number_prefix', default='Q')
    """
    config = get_config()

    for key in keys:
        if isinstance(config, dict) and key in config:
            config = config[key]
        else:
            return default

    return config


def update_config_section(section_path: str, data: dict) -> None:
    """
    Update a section of config.yaml and write back to disk.

    Args:
        section_path: Dot-notation path (e.g., "rfq.contact")
        data: Dictionary of values to merge into the section

    Raises:
        KeyError: If the section path doesn't exist in config
    """
    global _config_cache

    # Always reload from disk to avoid overwriting concurrent changes
    with open(CONFIG_PATH, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    keys = section_path.split(".")
    target = config
    for key in keys[:-1]:
        if key not in target or not isinstance(target[key], dict):
            raise KeyError(f"Config section not found: {section_path}")
        target = target[key]

    last_key = keys[-1]
    if last_key not in target:
        raise KeyError(f"Config section not found: {section_path}")

    if isinstance(target[last_key], dict):
        for k, v in data.items():
            if isinstance(target[last_key].get(k), dict) and isinstance(v, dict):
                target[last_key][k].update(v)
            else:
                target[last_key][k] = v
    else:
        target[last_key] = data

    with open(CONFIG_PATH, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    # Invalidate cache so next get_config() reloads from disk
    _config_cache = None


def get_write_roles(module: str) -> List[str]:
    """Roles allowed to create/update/delete records in a module."""
    roles = get_config_value("permissions", module, default=None)
    if roles is None:
        return ["admin"]
    return list(roles)


def get_allowed_origins() -> List[str]:
    """CORS origins for the single-page frontend."""
    origins = get_config_value("cors", "origins", default=None) or []
    return [o.strip() for o in origins if o and o.strip()]


class QMSPaths:
    """
    Centralized path access for QMS system.

    All paths are loaded from config.yaml with sensible fallbacks.

    Usage:
        from qms.core.config import QMS_PATHS
        db = QMS_PATHS.database
        docs = QMS_PATHS.documents
    """

    def __init__(self):
        self._config = None

    def _ensure_config(self):
        if self._config is None:
            self._config = get_config()

    def _resolve(self, raw: str) -> Path:
        """Resolve a path: if relative, resolve against _PACKAGE_DIR."""
        p = Path(raw)
        if not p.is_absolute():
            p = _PACKAGE_DIR / p
        return p

    @property
    def database(self) -> Path:
        self._ensure_config()
        raw = self._config.get("destinations", {}).get("database", "data/qms.db")
        return self._resolve(raw)

    @property
    def documents(self) -> Path:
        self._ensure_config()
        raw = self._config.get("destinations", {}).get("documents", "data/documents")
        return self._resolve(raw)

    @property
    def exports(self) -> Path:
        self._ensure_config()
        raw = self._config.get("destinations", {}).get("exports", "data/exports")
        return self._resolve(raw)


# Singleton instance
QMS_PATHS = QMSPaths()
