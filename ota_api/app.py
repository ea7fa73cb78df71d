# ota_api/app.py
"""FastAPI application serving Expo Updates manifests and assets.

Configuration is read from the environment at import time:

- ``OTA_UPDATES_ROOT``: bundle store root (``updates``)
- ``OTA_PRIVATE_KEY_PATH``: PEM private key for ``expo-expect-signature`` clients
- ``OTA_PUBLIC_URL``: base URL used in asset URLs instead of the request host
- ``OTA_ASSET_REQUEST_HEADERS``: JSON object sent as per-asset request headers
"""

from __future__ import annotations

import json
import logging
import os
import pathlib
from functools import lru_cache
from typing import Dict, Optional

from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI, Request, Response
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ota_api.context import AssetRequest, RequestContext
from ota_api.errors import UpdateProtocolError
from ota_api.service import UpdateResponseService
from ota_api.signing import load_private_key
from ota_api.storage import BundleStore

log = logging.getLogger("ota_api.app")


def _load_asset_request_headers(raw: str) -> Dict[str, str]:
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        log.warning("Ignoring OTA_ASSET_REQUEST_HEADERS: not valid JSON")
        return {}
    if not isinstance(payload, dict):
        log.warning("Ignoring OTA_ASSET_REQUEST_HEADERS: expected a JSON object")
        return {}
    return {str(key): str(value) for key, value in payload.items()}


UPDATES_ROOT = pathlib.Path(os.getenv("OTA_UPDATES_ROOT", "updates"))
PRIVATE_KEY_PATH = os.getenv("OTA_PRIVATE_KEY_PATH", "")
PUBLIC_URL = os.getenv("OTA_PUBLIC_URL", "")
ASSET_REQUEST_HEADERS = _load_asset_request_headers(os.getenv("OTA_ASSET_REQUEST_HEADERS", ""))

STORE = BundleStore(UPDATES_ROOT)
SERVICE = UpdateResponseService(STORE, asset_request_headers=ASSET_REQUEST_HEADERS)

app = FastAPI(title="OTA Update Server", version="0.1.0")


# ---------- Error rendering ----------
@app.exception_handler(UpdateProtocolError)
async def protocol_error_handler(request: Request, exc: UpdateProtocolError) -> JSONResponse:
    log.warning("%s %s -> %s %s (%s)", request.method, request.url.path, exc.status_code, exc.message, exc.code)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Expected GET." if exc.status_code == 405 else str(exc.detail)
    return JSONResponse({"error": message}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


# ---------- Key / URL helpers ----------
@lru_cache(maxsize=4)
def _cached_private_key(path: str) -> rsa.RSAPrivateKey:
    return load_private_key(path)


def get_signing_key() -> Optional[rsa.RSAPrivateKey]:
    """Return the configured signing key, or ``None`` when none is set."""
    if not PRIVATE_KEY_PATH:
        return None
    return _cached_private_key(PRIVATE_KEY_PATH)


def _first_forwarded(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def base_url_for(request: Request) -> str:
    """Return ``scheme://host`` clients should use to fetch assets."""
    if PUBLIC_URL:
        return PUBLIC_URL.rstrip("/")
    scheme = _first_forwarded(request.headers.get("x-forwarded-proto")) or request.url.scheme
    host = (
        _first_forwarded(request.headers.get("x-forwarded-host"))
        or request.headers.get("host")
        or request.url.netloc
    )
    return f"{scheme}://{host}"


# ---------- Endpoints ----------
@app.get("/api/manifest")
def manifest_endpoint(request: Request):
    """Return the multipart manifest or directive for one client poll."""
    ctx = RequestContext.from_request(request.headers, request.query_params)
    try:
        private_key = get_signing_key() if ctx.expect_signature else None
        encoded = SERVICE.respond(ctx, base_url=base_url_for(request), private_key=private_key)
    except UpdateProtocolError:
        raise
    except Exception as exc:
        # Any other failure while resolving the bundle is a 404 for clients.
        log.exception("Unexpected manifest failure runtime_version=%s", ctx.runtime_version)
        return JSONResponse({"error": str(exc)}, status_code=404)
    return Response(content=encoded.body, status_code=encoded.status_code, headers=encoded.headers)


@app.get("/api/assets")
def assets_endpoint(request: Request):
    """Serve one asset file referenced by a manifest."""
    asset_request = AssetRequest.from_query(request.query_params)
    asset_file = SERVICE.resolve_asset_file(asset_request)
    log.debug("Serving asset %s as %s", asset_file.path, asset_file.content_type)
    return FileResponse(asset_file.path, media_type=asset_file.content_type)
