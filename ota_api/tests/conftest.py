"""Shared fixtures: on-disk update bundles and RSA key pairs."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ota_api.storage import BundleStore
from ota_api.tests.bundle_factory import write_bundle


@pytest.fixture
def updates_root(tmp_path: Path) -> Path:
    root = tmp_path / "updates"
    root.mkdir()
    return root


@pytest.fixture
def store(updates_root: Path) -> BundleStore:
    return BundleStore(updates_root)


@pytest.fixture
def make_bundle(updates_root: Path) -> Callable[..., Path]:
    def _make(**kwargs) -> Path:
        return write_bundle(updates_root, **kwargs)

    return _make


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_path(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    path = tmp_path / "keys" / "private-key.pem"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path
