"""Update response engine behind ``GET /api/manifest`` and ``GET /api/assets``.

The service resolves the latest bundle, classifies it, builds the manifest or
directive, signs it when the client asks for a signature, and hands back a
fully encoded multipart response. It keeps no per-request state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from ota_api.assets import LAUNCH_ASSET_CONTENT_TYPE, content_type_for_asset
from ota_api.context import AssetRequest, RequestContext
from ota_api.directives import build_no_update_available_directive, build_rollback_directive
from ota_api.encoder import EncodedResponse, encode_directive, encode_manifest
from ota_api.errors import AssetNotFoundError
from ota_api.manifest import build_manifest
from ota_api.models import Directive, Manifest, NoUpdateAvailable, RollbackDirective
from ota_api.signing import create_signature_header
from ota_api.storage import BundleStore, UpdateType


@dataclass(frozen=True)
class AssetFile:
    """Resolved file and content type for one asset download."""

    path: Path
    content_type: str


class UpdateResponseService:
    """Turn a validated :class:`RequestContext` into an encoded response."""

    def __init__(
        self,
        store: BundleStore,
        *,
        asset_request_headers: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.asset_request_headers = dict(asset_request_headers or {})
        self.log = logger or logging.getLogger("ota_api.service")

    # ------------------------------------------------------------------
    # Manifest endpoint
    # ------------------------------------------------------------------
    def respond(
        self,
        ctx: RequestContext,
        *,
        base_url: str,
        private_key: Optional[rsa.RSAPrivateKey] = None,
    ) -> EncodedResponse:
        """Build the manifest or directive response for one client poll."""
        bundle_path = self.store.resolve_latest_bundle(ctx.runtime_version)
        update_type = self.store.get_update_type(bundle_path)
        self.log.info(
            "manifest request runtime_version=%s platform=%s protocol=%s bundle=%s type=%s",
            ctx.runtime_version,
            ctx.platform,
            ctx.protocol_version,
            bundle_path.name,
            update_type.value,
        )

        result: Union[Manifest, RollbackDirective, NoUpdateAvailable]
        if update_type is UpdateType.ROLLBACK:
            result = build_rollback_directive(
                self.store,
                bundle_path=bundle_path,
                protocol_version=ctx.protocol_version,
                embedded_update_id=ctx.embedded_update_id,
                current_update_id=ctx.current_update_id,
            )
        else:
            result = build_manifest(
                self.store,
                bundle_path=bundle_path,
                runtime_version=ctx.runtime_version,
                platform=ctx.platform,
                base_url=base_url,
                current_update_id=ctx.current_update_id,
                protocol_version=ctx.protocol_version,
            )

        if isinstance(result, NoUpdateAvailable):
            self.log.info("No update available for runtime_version=%s: %s", ctx.runtime_version, result.reason)
            result = build_no_update_available_directive(ctx.protocol_version)

        if isinstance(result, Manifest):
            return self._encode_manifest(result, ctx, private_key)
        return self._encode_directive(result, ctx, private_key)

    def _signature_for(
        self,
        payload: str,
        ctx: RequestContext,
        private_key: Optional[rsa.RSAPrivateKey],
    ) -> Optional[str]:
        if not ctx.expect_signature:
            return None
        return create_signature_header(payload, private_key)

    def _encode_manifest(
        self,
        manifest: Manifest,
        ctx: RequestContext,
        private_key: Optional[rsa.RSAPrivateKey],
    ) -> EncodedResponse:
        manifest_json = manifest.canonical_json()
        return encode_manifest(
            manifest,
            protocol_version=ctx.protocol_version,
            manifest_json=manifest_json,
            signature=self._signature_for(manifest_json, ctx, private_key),
            asset_request_headers=self.asset_request_headers,
        )

    def _encode_directive(
        self,
        directive: Directive,
        ctx: RequestContext,
        private_key: Optional[rsa.RSAPrivateKey],
    ) -> EncodedResponse:
        directive_json = directive.canonical_json()
        self.log.info("Serving %s directive to runtime_version=%s", directive.type, ctx.runtime_version)
        return encode_directive(
            directive,
            protocol_version=ctx.protocol_version,
            directive_json=directive_json,
            signature=self._signature_for(directive_json, ctx, private_key),
        )

    # ------------------------------------------------------------------
    # Asset endpoint
    # ------------------------------------------------------------------
    def resolve_asset_file(self, request: AssetRequest) -> AssetFile:
        """Map an asset URL back to a file declared by the latest bundle.

        Files of superseded bundles are reported as missing.
        """
        bundle_path = self.store.resolve_latest_bundle(request.runtime_version)
        if self.store.bundle_for_asset_ref(request.asset, request.runtime_version) != bundle_path:
            raise AssetNotFoundError(request.asset)
        relative = PurePosixPath(*PurePosixPath(request.asset).parts[2:]).as_posix()

        platform_metadata = self.store.read_metadata(bundle_path).for_platform(request.platform)
        is_launch_asset = platform_metadata.bundle == relative
        declared = next((entry for entry in platform_metadata.assets if entry.path == relative), None)
        if not is_launch_asset and declared is None:
            raise AssetNotFoundError(request.asset)

        path = self.store.resolve_asset_ref(request.asset)
        if is_launch_asset:
            content_type = LAUNCH_ASSET_CONTENT_TYPE
        else:
            content_type = content_type_for_asset(declared.ext, is_launch_asset=False)
        return AssetFile(path=path, content_type=content_type)
