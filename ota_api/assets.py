"""Asset metadata for manifest ``assets`` and ``launchAsset`` entries."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from ota_api.errors import AssetNotFoundError, UnknownContentTypeError
from ota_api.models import AssetMetadata
from ota_api.storage import compute_file_digest

LAUNCH_ASSET_CONTENT_TYPE = "application/javascript"
LAUNCH_ASSET_EXTENSION = "bundle"

# Extensions exported by the Metro bundler that older mimetypes tables lack.
_EXTRA_TYPES = {
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "webp": "image/webp",
    "hbc": "application/javascript",
    "json": "application/json",
    "svg": "image/svg+xml",
    "map": "application/json",
}
for _ext, _type in _EXTRA_TYPES.items():
    mimetypes.add_type(_type, f".{_ext}")


def hex_digest_to_uuid(value: str) -> str:
    """Format the first 32 hex characters of a digest as a UUID string."""
    return f"{value[0:8]}-{value[8:12]}-{value[12:16]}-{value[16:20]}-{value[20:32]}"


def get_base64_url_encoding(raw: bytes) -> str:
    """Base64url encode ``raw`` without padding."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def mime_type_for_extension(ext: Optional[str]) -> Optional[str]:
    """Return the registered MIME type for ``ext`` (with or without dot)."""
    if not ext:
        return None
    normalized = str(ext).lstrip(".").lower()
    content_type, _encoding = mimetypes.guess_type(f"asset.{normalized}", strict=False)
    return content_type


def content_type_for_asset(ext: Optional[str], *, is_launch_asset: bool) -> str:
    """Launch assets are always JavaScript; others use the MIME table."""
    if is_launch_asset:
        return LAUNCH_ASSET_CONTENT_TYPE
    content_type = mime_type_for_extension(ext)
    if content_type is None:
        raise UnknownContentTypeError(str(ext))
    return content_type


def build_asset_url(base_url: str, asset_ref: str, runtime_version: str, platform: str) -> str:
    query = urlencode(
        {"asset": asset_ref, "runtimeVersion": runtime_version, "platform": platform},
        quote_via=quote,
        safe="/",
    )
    return f"{base_url.rstrip('/')}/api/assets?{query}"


def resolve_asset(
    *,
    bundle_path: Path,
    file_path: str,
    ext: Optional[str],
    is_launch_asset: bool,
    base_url: str,
    runtime_version: str,
    platform: str,
    asset_ref: str,
) -> AssetMetadata:
    """Hash one bundle file and describe it for the manifest.

    ``key`` is derived from the MD5 of the file contents so identical files
    share a key across bundles; ``hash`` is the base64url SHA-256 the client
    uses to verify the download.
    """
    asset_path = Path(bundle_path) / file_path
    if not asset_path.is_file():
        raise AssetNotFoundError(file_path)

    content_type = content_type_for_asset(ext, is_launch_asset=is_launch_asset)
    sha256 = compute_file_digest(asset_path, "sha256")
    md5 = compute_file_digest(asset_path, "md5")
    extension = LAUNCH_ASSET_EXTENSION if is_launch_asset else str(ext).lstrip(".")

    return AssetMetadata(
        hash=get_base64_url_encoding(sha256),
        key=hex_digest_to_uuid(md5.hex()),
        file_extension=f".{extension}",
        content_type=content_type,
        url=build_asset_url(base_url, asset_ref, runtime_version, platform),
    )
