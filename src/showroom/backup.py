"""Settings + assets backup file.

Format::

    {
      "settings": { ...admin config... },
      "assets": [
        {"id", "name", "type", "size", "createdAt", "dataURL"}
      ]
    }

A bare settings object (no "settings" wrapper) is accepted on import. Assets are
re-put through the content-addressed store, so ids survive a round trip and
importing the same backup twice adds nothing.
"""

from __future__ import annotations

import json
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from showroom.assets.datauri import parse_data_uri, to_data_uri
from showroom.assets.store import AssetStore
from showroom.settings import Keys, SettingsStore


class BackupError(ValueError):
    """Raised when a backup payload cannot be imported at all."""


@dataclass(frozen=True)
class ImportSummary:
    settings_restored: bool
    assets_imported: int
    assets_skipped: int


def export_backup(
    settings: SettingsStore, assets: AssetStore | None = None
) -> dict[str, Any]:
    """Return the backup payload: admin settings plus, optionally, every asset."""
    payload: dict[str, Any] = {"settings": settings.load(Keys.ADMIN)}
    if assets is not None:
        payload["assets"] = [
            {
                "id": a.id,
                "name": a.name,
                "type": a.mime_type,
                "size": a.size_bytes,
                "createdAt": a.created_at,
                "dataURL": to_data_uri(a.payload, a.mime_type),
            }
            for a in assets.list()
        ]
    return payload


def write_backup(
    path: Path, settings: SettingsStore, assets: AssetStore | None = None
) -> dict[str, Any]:
    """Write the backup payload to *path* as indented JSON and return it."""
    payload = export_backup(settings, assets)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return payload


def read_backup(path: Path) -> dict[str, Any]:
    """Parse a backup file.

    Raises:
        BackupError: If the file is not UTF-8 text holding a JSON object.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise BackupError(f"not UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BackupError(f"not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise BackupError("top level is not a backup object")
    return payload


def import_backup(
    payload: dict[str, Any], settings: SettingsStore, assets: AssetStore | None = None
) -> ImportSummary:
    """Restore settings and assets from a backup payload.

    Asset entries without a ``dataURL`` are skipped; entries whose ``dataURL``
    does not decode are skipped with a UserWarning.

    Raises:
        BackupError: If *payload* is not a JSON object.
        StorageWriteError: If the local store refuses a write.
    """
    if not isinstance(payload, dict):
        raise BackupError("Backup payload must be an object")

    wrapped = "settings" in payload or "assets" in payload
    admin = payload.get("settings") if wrapped else payload
    restored = isinstance(admin, dict)
    if restored:
        settings.save(Keys.ADMIN, admin)

    imported = skipped = 0
    entries = payload.get("assets") if wrapped else None
    if assets is not None and isinstance(entries, list):
        for entry in entries:
            data_url = entry.get("dataURL") if isinstance(entry, dict) else None
            if not data_url:
                skipped += 1
                continue
            try:
                mime, raw = parse_data_uri(data_url)
            except ValueError as exc:
                warnings.warn(
                    f"Skipping asset '{entry.get('name') or entry.get('id')}': {exc}",
                    UserWarning,
                    stacklevel=2,
                )
                skipped += 1
                continue
            assets.put(
                raw,
                name=_entry_name(entry),
                mime_type=entry.get("type") or mime,
            )
            imported += 1

    return ImportSummary(
        settings_restored=restored, assets_imported=imported, assets_skipped=skipped
    )


def _entry_name(entry: dict[str, Any]) -> str | None:
    if entry.get("name"):
        return str(entry["name"])
    return f"asset-{entry['id']}.bin" if entry.get("id") else None
