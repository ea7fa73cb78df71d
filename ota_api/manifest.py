"""Manifest construction for normal updates."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ota_api.assets import hex_digest_to_uuid, resolve_asset
from ota_api.models import Manifest, NoUpdateAvailable
from ota_api.storage import BundleStore


def manifest_id_for(metadata_hash: str) -> str:
    """Return the manifest id for a ``metadata.json`` SHA-256 hex digest."""
    return hex_digest_to_uuid(metadata_hash)


def build_manifest(
    store: BundleStore,
    *,
    bundle_path: Path,
    runtime_version: str,
    platform: str,
    base_url: str,
    current_update_id: Optional[str],
    protocol_version: int,
) -> Union[Manifest, NoUpdateAvailable]:
    """Describe the bundle at ``bundle_path`` for one platform.

    Under protocol 1 a client whose ``current_update_id`` already equals the
    manifest id gets :class:`NoUpdateAvailable` back. Protocol 0 has no such
    mechanism and always receives the full manifest.
    """
    metadata = store.read_metadata(bundle_path)
    manifest_id = manifest_id_for(metadata.id)

    if protocol_version == 1 and current_update_id is not None and current_update_id == manifest_id:
        return NoUpdateAvailable(reason=f"already running update {manifest_id}")

    platform_metadata = metadata.for_platform(platform)
    expo_config = store.read_expo_config(bundle_path)

    assets = [
        resolve_asset(
            bundle_path=bundle_path,
            file_path=asset.path,
            ext=asset.ext,
            is_launch_asset=False,
            base_url=base_url,
            runtime_version=runtime_version,
            platform=platform,
            asset_ref=store.asset_ref(bundle_path, asset.path),
        )
        for asset in platform_metadata.assets
    ]
    launch_asset = resolve_asset(
        bundle_path=bundle_path,
        file_path=platform_metadata.bundle,
        ext=None,
        is_launch_asset=True,
        base_url=base_url,
        runtime_version=runtime_version,
        platform=platform,
        asset_ref=store.asset_ref(bundle_path, platform_metadata.bundle),
    )

    return Manifest(
        id=manifest_id,
        created_at=metadata.created_at,
        runtime_version=runtime_version,
        assets=assets,
        launch_asset=launch_asset,
        metadata={},
        extra={"expoClient": expo_config},
    )
