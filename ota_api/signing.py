"""RSA-SHA256 code signing for manifest and directive parts.

Signatures are detached: the exact JSON string placed in the multipart body is
signed and the result travels in the part's ``expo-signature`` header as a
structured-field dictionary ``sig="<base64>", keyid="main"``.
"""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from http_sfv import Dictionary, Item

from ota_api.errors import SigningKeyMissingError

DEFAULT_KEY_ID = "main"

log = logging.getLogger(__name__)


def load_private_key(path: Union[str, Path]) -> rsa.RSAPrivateKey:
    """Load a PEM encoded, unencrypted RSA private key."""
    data = Path(path).read_bytes()
    key = serialization.load_pem_private_key(data, password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError(f"{path} does not contain an RSA private key")
    return key


def load_public_key(path: Union[str, Path]) -> rsa.RSAPublicKey:
    """Load a PEM encoded RSA public key (``code-signing-certificates`` style)."""
    data = Path(path).read_bytes()
    key = serialization.load_pem_public_key(data)
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError(f"{path} does not contain an RSA public key")
    return key


def sign_rsa_sha256(payload: str, private_key: rsa.RSAPrivateKey) -> str:
    """Return the base64 RSASSA-PKCS1-v1_5/SHA-256 signature of ``payload``."""
    signature = private_key.sign(payload.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def create_signature_header(
    payload: str,
    private_key: Optional[rsa.RSAPrivateKey],
    *,
    key_id: str = DEFAULT_KEY_ID,
) -> str:
    """Sign ``payload`` and serialize the ``expo-signature`` header value."""
    if private_key is None:
        raise SigningKeyMissingError()
    header = Dictionary()
    header["sig"] = Item(sign_rsa_sha256(payload, private_key))
    header["keyid"] = Item(key_id)
    return str(header)


def parse_signature_header(header: str) -> Dict[str, Any]:
    """Return the member values of a structured-field signature header.

    Raises ``ValueError`` when ``header`` is not a valid dictionary.
    """
    members = Dictionary()
    members.parse(header.encode("ascii"))
    return {name: getattr(member, "value", member) for name, member in members.items()}


def verify_signature_header(
    header: str,
    payload: str,
    public_key: rsa.RSAPublicKey,
    *,
    key_id: Optional[str] = DEFAULT_KEY_ID,
) -> bool:
    """Check an ``expo-signature`` header against ``payload``.

    Returns ``False`` for malformed headers, mismatched key ids and invalid
    signatures alike.
    """
    try:
        values = parse_signature_header(header)
    except ValueError as exc:
        log.debug("Unparseable signature header: %s", exc)
        return False

    if key_id is not None and values.get("keyid") != key_id:
        return False
    sig = values.get("sig")
    if not isinstance(sig, str):
        return False
    try:
        signature = base64.b64decode(sig, validate=True)
        public_key.verify(signature, payload.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    except (InvalidSignature, binascii.Error):
        return False
    return True
