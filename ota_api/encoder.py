"""Multipart response encoding for the manifest endpoint.

Protocol 0 clients only ever receive manifests. Protocol 1 adds directives and
the ``expo-sfv-version`` header announcing structured-field signatures.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary, encode_multipart_formdata

from ota_api.errors import UnsupportedProtocolError
from ota_api.models import Directive, Manifest

JSON_PART_CONTENT_TYPE = "application/json; charset=utf-8"
CACHE_CONTROL = "private, max-age=0"
SFV_VERSION = "0"


@dataclass(frozen=True)
class EncodedResponse:
    """Status, headers and body of one multipart manifest response."""

    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200


def _json_part(name: str, payload: str, content_type: str, signature: Optional[str] = None) -> RequestField:
    part = RequestField(name=name, data=payload)
    part.make_multipart(content_type=content_type)
    if signature:
        part.headers["expo-signature"] = signature
    return part


def _response_headers(protocol_version: int, boundary: str) -> Dict[str, str]:
    headers = {"expo-protocol-version": str(protocol_version)}
    if protocol_version == 1:
        headers["expo-sfv-version"] = SFV_VERSION
    headers["cache-control"] = CACHE_CONTROL
    headers["content-type"] = f"multipart/mixed; boundary={boundary}"
    return headers


def _encode(parts, protocol_version: int, boundary: Optional[str]) -> EncodedResponse:
    boundary = boundary or choose_boundary()
    body, _form_content_type = encode_multipart_formdata(parts, boundary=boundary)
    return EncodedResponse(body=body, headers=_response_headers(protocol_version, boundary))


def encode_manifest(
    manifest: Manifest,
    *,
    protocol_version: int,
    manifest_json: Optional[str] = None,
    signature: Optional[str] = None,
    asset_request_headers: Optional[Mapping[str, str]] = None,
    boundary: Optional[str] = None,
) -> EncodedResponse:
    """Encode a manifest plus its ``extensions`` part.

    ``manifest_json`` must be the exact string that ``signature`` was computed
    over; it defaults to the manifest's canonical JSON.
    """
    payload = manifest_json if manifest_json is not None else manifest.canonical_json()
    per_asset = dict(asset_request_headers or {})
    extensions = {
        "assetRequestHeaders": {asset.key: dict(per_asset) for asset in manifest.all_assets()},
    }
    parts = [
        _json_part("manifest", payload, JSON_PART_CONTENT_TYPE, signature),
        _json_part("extensions", json.dumps(extensions, separators=(",", ":")), "application/json"),
    ]
    return _encode(parts, protocol_version, boundary)


def encode_directive(
    directive: Directive,
    *,
    protocol_version: int,
    directive_json: Optional[str] = None,
    signature: Optional[str] = None,
    boundary: Optional[str] = None,
) -> EncodedResponse:
    """Encode a rollback or no-update-available directive."""
    if protocol_version == 0:
        raise UnsupportedProtocolError(f"Directive {directive.type} not available in protocol version 0")
    payload = directive_json if directive_json is not None else directive.canonical_json()
    parts = [_json_part("directive", payload, JSON_PART_CONTENT_TYPE, signature)]
    return _encode(parts, protocol_version, boundary)
