"""Protocol-version headers and multipart layout of encoded responses."""

from __future__ import annotations

import json

import pytest

from ota_api.encoder import encode_directive, encode_manifest
from ota_api.errors import UnsupportedProtocolError
from ota_api.manifest import build_manifest
from ota_api.models import NoUpdateAvailableDirective, RollbackDirective, RollbackParameters
from ota_api.storage import BundleStore
from ota_api.tests.bundle_factory import RUNTIME_VERSION
from ota_api.tests.multipart import parse_multipart, part_text


@pytest.fixture
def manifest(store: BundleStore, make_bundle):
    return build_manifest(
        store,
        bundle_path=make_bundle(),
        runtime_version=RUNTIME_VERSION,
        platform="ios",
        base_url="http://updates.test",
        current_update_id=None,
        protocol_version=1,
    )


def test_protocol_1_manifest_headers(manifest) -> None:
    encoded = encode_manifest(manifest, protocol_version=1, boundary="test-boundary")

    assert encoded.status_code == 200
    assert encoded.headers == {
        "expo-protocol-version": "1",
        "expo-sfv-version": "0",
        "cache-control": "private, max-age=0",
        "content-type": "multipart/mixed; boundary=test-boundary",
    }


def test_protocol_0_manifest_headers(manifest) -> None:
    encoded = encode_manifest(manifest, protocol_version=0)

    assert encoded.headers["expo-protocol-version"] == "0"
    assert "expo-sfv-version" not in encoded.headers
    assert encoded.headers["cache-control"] == "private, max-age=0"
    assert encoded.headers["content-type"].startswith("multipart/mixed; boundary=")


def test_manifest_parts(manifest) -> None:
    encoded = encode_manifest(
        manifest,
        protocol_version=1,
        asset_request_headers={"authorization": "Bearer cdn-token"},
    )

    parts = parse_multipart(encoded.headers["content-type"], encoded.body)

    assert list(parts) == ["manifest", "extensions"]
    assert parts["manifest"].get_content_type() == "application/json"
    assert parts["manifest"].get_param("charset") == "utf-8"
    assert part_text(parts["manifest"]) == manifest.canonical_json()
    assert parts["manifest"]["expo-signature"] is None

    extensions = json.loads(part_text(parts["extensions"]))
    keys = {asset.key for asset in manifest.all_assets()}
    assert set(extensions["assetRequestHeaders"]) == keys
    assert all(
        headers == {"authorization": "Bearer cdn-token"}
        for headers in extensions["assetRequestHeaders"].values()
    )


def test_signature_travels_in_part_header(manifest) -> None:
    encoded = encode_manifest(manifest, protocol_version=1, signature='sig="abc", keyid="main"')

    parts = parse_multipart(encoded.headers["content-type"], encoded.body)

    assert parts["manifest"]["expo-signature"] == 'sig="abc", keyid="main"'
    assert parts["extensions"]["expo-signature"] is None


def test_manifest_json_override_is_sent_verbatim(manifest) -> None:
    encoded = encode_manifest(manifest, protocol_version=1, manifest_json='{"exact":"bytes"}')

    parts = parse_multipart(encoded.headers["content-type"], encoded.body)

    assert part_text(parts["manifest"]) == '{"exact":"bytes"}'


@pytest.mark.parametrize(
    "directive",
    [
        RollbackDirective(parameters=RollbackParameters(commit_time="2024-05-01T10:00:00.000Z")),
        NoUpdateAvailableDirective(),
    ],
)
def test_directive_parts(directive) -> None:
    encoded = encode_directive(directive, protocol_version=1)

    parts = parse_multipart(encoded.headers["content-type"], encoded.body)

    assert list(parts) == ["directive"]
    assert json.loads(part_text(parts["directive"]))["type"] == directive.type
    assert encoded.headers["expo-protocol-version"] == "1"
    assert encoded.headers["expo-sfv-version"] == "0"


def test_directive_rejected_under_protocol_0() -> None:
    with pytest.raises(UnsupportedProtocolError):
        encode_directive(NoUpdateAvailableDirective(), protocol_version=0)
