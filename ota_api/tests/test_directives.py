from __future__ import annotations

import json

import pytest

from ota_api.directives import build_no_update_available_directive, build_rollback_directive
from ota_api.errors import MissingHeaderError, UnsupportedProtocolError
from ota_api.models import NoUpdateAvailable, NoUpdateAvailableDirective, RollbackDirective
from ota_api.storage import BundleStore

EMBEDDED_ID = "6f6f7ac8-d6f2-4a3b-8a37-9c8f2f7d7e21"
CURRENT_ID = "0754dad0-d200-d634-113c-ef1e26f2c7b5"


def _rollback(store: BundleStore, bundle, **overrides):
    kwargs = {
        "bundle_path": bundle,
        "protocol_version": 1,
        "embedded_update_id": EMBEDDED_ID,
        "current_update_id": CURRENT_ID,
    }
    kwargs.update(overrides)
    return build_rollback_directive(store, **kwargs)


def test_rollback_directive_wire_shape(store: BundleStore, make_bundle) -> None:
    bundle = make_bundle(rollback=True)

    directive = _rollback(store, bundle)

    assert isinstance(directive, RollbackDirective)
    assert json.loads(directive.canonical_json()) == {
        "type": "rollBackToEmbedded",
        "parameters": {"commitTime": store.rollback_created_at(bundle)},
    }


@pytest.mark.parametrize("embedded", [EMBEDDED_ID, None])
def test_rollback_requires_protocol_1(store: BundleStore, make_bundle, embedded) -> None:
    bundle = make_bundle(rollback=True)

    with pytest.raises(UnsupportedProtocolError) as excinfo:
        _rollback(store, bundle, protocol_version=0, embedded_update_id=embedded)
    assert excinfo.value.message == "Rollbacks not supported on protocol version 0"


@pytest.mark.parametrize("embedded", [None, "", "   "])
def test_rollback_requires_embedded_update_id(store: BundleStore, make_bundle, embedded) -> None:
    bundle = make_bundle(rollback=True)

    with pytest.raises(MissingHeaderError) as excinfo:
        _rollback(store, bundle, embedded_update_id=embedded)
    assert excinfo.value.status_code == 400


def test_already_rolled_back_client_gets_no_update(store: BundleStore, make_bundle) -> None:
    bundle = make_bundle(rollback=True)

    result = _rollback(store, bundle, current_update_id=EMBEDDED_ID)

    assert isinstance(result, NoUpdateAvailable)
    assert EMBEDDED_ID in result.reason


def test_no_update_available_directive() -> None:
    directive = build_no_update_available_directive(1)

    assert isinstance(directive, NoUpdateAvailableDirective)
    assert directive.canonical_json() == '{"type":"noUpdateAvailable"}'


def test_no_update_available_requires_protocol_1() -> None:
    with pytest.raises(UnsupportedProtocolError):
        build_no_update_available_directive(0)
