"""Filesystem bundle store used by the manifest and asset endpoints.

Bundles are published (by an external process) as::

    <updates_root>/<runtimeVersion>/<bundleId>/
        metadata.json      # fileMetadata per platform
        expoConfig.json    # opaque app config embedded in manifests
        rollback           # optional marker turning the bundle into a rollback
        bundles/..., assets/...

The store only reads. The latest bundle for a runtime version is the
sub-directory whose name is the largest integer (publish timestamp).
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Mapping, Optional, Tuple

from ota_api.errors import (
    AssetNotFoundError,
    BundleMetadataMissingError,
    ExpoConfigMissingError,
    NoCompatibleBundleError,
)

METADATA_FILENAME = "metadata.json"
EXPO_CONFIG_FILENAME = "expoConfig.json"
ROLLBACK_MARKER = "rollback"
SUPPORTED_PLATFORMS = ("ios", "android")


class UpdateType(enum.Enum):
    """Kind of update a resolved bundle directory represents."""

    NORMAL_UPDATE = "normal_update"
    ROLLBACK = "rollback"


@dataclass(frozen=True)
class AssetEntry:
    """One ``fileMetadata.<platform>.assets`` entry."""

    path: str
    ext: Optional[str]


@dataclass(frozen=True)
class PlatformMetadata:
    """Launch bundle path and asset list for one platform."""

    bundle: str
    assets: Tuple[AssetEntry, ...]


@dataclass(frozen=True)
class BundleMetadata:
    """Parsed ``metadata.json`` plus its identity hash and creation time."""

    metadata_json: Mapping[str, Any]
    created_at: str
    id: str

    def for_platform(self, platform: str) -> PlatformMetadata:
        """Return the platform entry or raise when the bundle lacks it."""
        file_metadata = self.metadata_json.get("fileMetadata")
        entry = file_metadata.get(platform) if isinstance(file_metadata, Mapping) else None
        if not isinstance(entry, Mapping) or not isinstance(entry.get("bundle"), str):
            raise BundleMetadataMissingError(
                f"No metadata found for platform {platform}.",
                hint="Republish the update with an export for this platform.",
            )
        assets = []
        for item in entry.get("assets") or []:
            if not isinstance(item, Mapping) or not isinstance(item.get("path"), str):
                raise BundleMetadataMissingError(
                    f"Malformed asset entry in {platform} metadata.",
                    hint="Each asset needs a string 'path' and 'ext'.",
                )
            ext = item.get("ext")
            assets.append(AssetEntry(path=item["path"], ext=str(ext) if ext is not None else None))
        return PlatformMetadata(bundle=entry["bundle"], assets=tuple(assets))


def compute_file_digest(path: Path, algorithm: str = "sha256") -> bytes:
    """Hash one file in chunks and return the raw digest."""
    digest = hashlib.new(algorithm)
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(1024 * 1024)
            if not chunk:
                break
            digest.update(chunk)
    return digest.digest()


def file_created_at(path: Path) -> str:
    """Return the creation time of ``path`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Filesystems without birth time support fall back to the mtime.
    """
    stat = path.stat()
    timestamp = getattr(stat, "st_birthtime", None) or stat.st_mtime
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bundle_sort_key(name: str) -> Tuple[int, int, str]:
    try:
        return (1, int(name, 10), name)
    except ValueError:
        return (0, 0, name)


class BundleStore:
    """Read-only access to published update bundles."""

    def __init__(self, updates_root: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.updates_root = Path(updates_root)
        self._log = logger or logging.getLogger("ota_api.storage")

    # ------------------------------------------------------------------
    # Bundle resolution
    # ------------------------------------------------------------------
    def runtime_dir(self, runtime_version: str) -> Path:
        """Return the directory holding all bundles of one runtime version."""
        name = str(runtime_version or "")
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise NoCompatibleBundleError()
        return self.updates_root / name

    def resolve_latest_bundle(self, runtime_version: str) -> Path:
        """Return the newest bundle directory for ``runtime_version``."""
        runtime_dir = self.runtime_dir(runtime_version)
        if not runtime_dir.is_dir():
            raise NoCompatibleBundleError()
        candidates = [entry.name for entry in runtime_dir.iterdir() if entry.is_dir()]
        if not candidates:
            raise NoCompatibleBundleError(hint=f"{runtime_dir} contains no bundle directories.")
        latest = max(candidates, key=_bundle_sort_key)
        self._log.debug("Resolved runtime_version=%s to bundle %s", runtime_version, latest)
        return runtime_dir / latest

    def get_update_type(self, bundle_path: Path) -> UpdateType:
        """Classify a bundle as a rollback when it carries the marker file."""
        if (Path(bundle_path) / ROLLBACK_MARKER).exists():
            return UpdateType.ROLLBACK
        return UpdateType.NORMAL_UPDATE

    # ------------------------------------------------------------------
    # Bundle contents
    # ------------------------------------------------------------------
    def read_metadata(self, bundle_path: Path) -> BundleMetadata:
        """Load ``metadata.json`` and derive its identity hash."""
        metadata_path = Path(bundle_path) / METADATA_FILENAME
        try:
            raw = metadata_path.read_bytes()
        except OSError as exc:
            raise BundleMetadataMissingError(
                f"No update metadata found with error: {exc}",
                hint=f"Expected {metadata_path}.",
            ) from exc
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BundleMetadataMissingError(
                f"Invalid update metadata: {exc}",
                hint=f"{metadata_path} must be a UTF-8 JSON object.",
            ) from exc
        if not isinstance(payload, Mapping):
            raise BundleMetadataMissingError(
                "Invalid update metadata: expected a JSON object.",
                hint=f"Check {metadata_path}.",
            )
        return BundleMetadata(
            metadata_json=payload,
            created_at=file_created_at(metadata_path),
            id=hashlib.sha256(raw).hexdigest(),
        )

    def read_expo_config(self, bundle_path: Path) -> Dict[str, Any]:
        """Load the opaque app config embedded as ``extra.expoClient``."""
        config_path = Path(bundle_path) / EXPO_CONFIG_FILENAME
        try:
            return json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ExpoConfigMissingError(
                f"No expo config json found with error: {exc}",
                hint=f"Expected {config_path}.",
            ) from exc

    def rollback_created_at(self, bundle_path: Path) -> str:
        """Return the timestamp of the rollback marker as ``commitTime``."""
        return file_created_at(Path(bundle_path) / ROLLBACK_MARKER)

    # ------------------------------------------------------------------
    # Asset addressing
    # ------------------------------------------------------------------
    def asset_ref(self, bundle_path: Path, file_path: str) -> str:
        """Return the updates-root relative reference used in asset URLs."""
        relative = Path(bundle_path).relative_to(self.updates_root)
        return (PurePosixPath(relative.as_posix()) / file_path).as_posix()

    def resolve_asset_ref(self, asset_ref: str) -> Path:
        """Map an asset reference back to a file inside the updates root."""
        root = self.updates_root.resolve()
        candidate = (root / str(asset_ref or "")).resolve()
        if candidate == root or root not in candidate.parents or not candidate.is_file():
            raise AssetNotFoundError(asset_ref)
        return candidate

    def bundle_for_asset_ref(self, asset_ref: str, runtime_version: str) -> Path:
        """Return the bundle directory an asset reference points into."""
        parts = PurePosixPath(str(asset_ref or "")).parts
        if len(parts) < 3 or parts[0] != runtime_version or parts[1] in {".", ".."}:
            raise AssetNotFoundError(asset_ref)
        return self.runtime_dir(runtime_version) / parts[1]
