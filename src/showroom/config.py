"""Showroom configuration loader.

Priority (high → low):
  1. CLI flags                (handled at call site, not in this module)
  2. Environment variables    (SHOWROOM_BASE_URL, SHOWROOM_DB)
  3. Per-project showroom.yaml
  4. Global ~/.showroom/config.yaml
  5. Hardcoded defaults

share.base_url must be an http(s) URL: every share link is built on it.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".showroom"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "showroom.yaml"
DEFAULT_DB_NAME: str = ".showroom.db"

_DAY_MS = 24 * 60 * 60 * 1000

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["share", "images", "storage"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ShareCfg:
    """Share link configuration (showroom.yaml: share:).

    Attributes:
        base_url: Page URL every share link points at.
        default_expiry_ms: Lifetime of managed links created without --expires-in.
        max_expiry_ms: Upper bound for any managed link lifetime.
        max_snapshot_url_length: Embedded links longer than this trigger a warning.
        sweep_interval_s: Minimum gap between automatic expiry sweeps.
    """

    base_url: str = "http://localhost:8000/"
    default_expiry_ms: int = 7 * _DAY_MS
    max_expiry_ms: int = 30 * _DAY_MS
    max_snapshot_url_length: int = 1_800
    sweep_interval_s: int = 60


@dataclass
class ImagesCfg:
    """Embedded image compression (showroom.yaml: images:)."""

    max_dimension_px: int = 1_200
    quality: float = 0.72


@dataclass
class StorageCfg:
    """Local store configuration (showroom.yaml: storage:)."""

    db_path: str = DEFAULT_DB_NAME
    backup_retention: int = 10


@dataclass
class ShowroomConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    share: ShareCfg = field(default_factory=ShareCfg)
    images: ImagesCfg = field(default_factory=ImagesCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)

    def db_path_for(self, project_dir: Path) -> Path:
        """Resolve ``storage.db_path`` relative to *project_dir*."""
        path = Path(self.storage.db_path).expanduser()
        return path if path.is_absolute() else project_dir / path


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _validate_base_url(base_url: str) -> None:
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigError(
            f"share.base_url must be an http(s) URL: '{base_url}'\n"
            "  Example: share.base_url: https://proposals.example.com/"
        )


def _validate(cfg: ShowroomConfig) -> None:
    _validate_base_url(cfg.share.base_url)
    if cfg.share.default_expiry_ms < 0 or cfg.share.max_expiry_ms < 0:
        raise ConfigError("share.default_expiry_ms and share.max_expiry_ms must be >= 0")
    if cfg.share.max_snapshot_url_length <= 0:
        raise ConfigError("share.max_snapshot_url_length must be > 0")
    if cfg.share.sweep_interval_s < 0:
        raise ConfigError("share.sweep_interval_s must be >= 0")
    if cfg.images.max_dimension_px <= 0:
        raise ConfigError("images.max_dimension_px must be > 0")
    if not 0.0 < cfg.images.quality <= 1.0:
        raise ConfigError(
            f"images.quality must be between 0 and 1, got {cfg.images.quality}\n"
            "  Example: images.quality: 0.72"
        )
    if cfg.storage.backup_retention < 0:
        raise ConfigError("storage.backup_retention must be >= 0")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping at the top level")
    return data


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*.

    None values in *override* keep the base value.
    """
    result = dict(base)
    for k, v in override.items():
        if v is None and k in result:
            continue
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> ShowroomConfig:
    """Build a *ShowroomConfig* from a merged raw YAML dict."""
    cfg = ShowroomConfig()
    try:
        if "share" in data:
            s = data["share"] or {}
            cfg.share = ShareCfg(
                base_url=str(s.get("base_url", cfg.share.base_url)),
                default_expiry_ms=int(s.get("default_expiry_ms", cfg.share.default_expiry_ms)),
                max_expiry_ms=int(s.get("max_expiry_ms", cfg.share.max_expiry_ms)),
                max_snapshot_url_length=int(
                    s.get("max_snapshot_url_length", cfg.share.max_snapshot_url_length)
                ),
                sweep_interval_s=int(s.get("sweep_interval_s", cfg.share.sweep_interval_s)),
            )

        if "images" in data:
            i = data["images"] or {}
            cfg.images = ImagesCfg(
                max_dimension_px=int(i.get("max_dimension_px", cfg.images.max_dimension_px)),
                quality=float(i.get("quality", cfg.images.quality)),
            )

        if "storage" in data:
            st = data["storage"] or {}
            cfg.storage = StorageCfg(
                db_path=str(st.get("db_path", cfg.storage.db_path)),
                backup_retention=int(st.get("backup_retention", cfg.storage.backup_retention)),
            )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc
    return cfg


def _apply_env_overrides(cfg: ShowroomConfig) -> ShowroomConfig:
    """Apply SHOWROOM_* environment variable overrides."""
    if base_url := os.environ.get("SHOWROOM_BASE_URL"):
        cfg.share.base_url = base_url
    if db_path := os.environ.get("SHOWROOM_DB"):
        cfg.storage.db_path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> ShowroomConfig:
    """Load and return a merged *ShowroomConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *showroom.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file does not parse, a value has the wrong type,
            or a value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def write_project_config(project_dir: Path, base_url: str | None = None) -> Path:
    """Write a starter *showroom.yaml* into *project_dir* unless one exists.

    Returns:
        Path to the project config file.
    """
    target = project_dir / PROJECT_CONFIG_NAME
    if target.exists():
        return target

    defaults = ShowroomConfig()
    content = (
        "# Showroom project configuration.\n"
        "share:\n"
        f"  base_url: {base_url or defaults.share.base_url}\n"
        f"  default_expiry_ms: {defaults.share.default_expiry_ms}\n"
        f"  max_snapshot_url_length: {defaults.share.max_snapshot_url_length}\n"
        "\n"
        "images:\n"
        f"  max_dimension_px: {defaults.images.max_dimension_px}\n"
        f"  quality: {defaults.images.quality}\n"
        "\n"
        "storage:\n"
        f"  db_path: {defaults.storage.db_path}\n"
        f"  backup_retention: {defaults.storage.backup_retention}\n"
    )
    target.write_text(content, encoding="utf-8")
    return target
