"""Typed request context resolved once from headers and query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from starlette.datastructures import Headers, QueryParams

from ota_api.errors import RequestValidationError
from ota_api.storage import SUPPORTED_PLATFORMS

SUPPORTED_PROTOCOL_VERSIONS = (0, 1)


def value_or_none(value: Optional[str]) -> Optional[str]:
    """Normalize a possibly empty string to ``None``."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed if trimmed else None


def parse_protocol_version(headers: Headers) -> int:
    """Read ``expo-protocol-version``; absent means protocol 0."""
    values = headers.getlist("expo-protocol-version")
    if len(values) > 1:
        raise RequestValidationError("Unsupported protocol version. Expected either 0 or 1.")
    raw = value_or_none(values[0]) if values else None
    if raw is None:
        return 0
    try:
        version = int(raw, 10)
    except ValueError:
        version = -1
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        raise RequestValidationError("Unsupported protocol version. Expected either 0 or 1.")
    return version


@dataclass(frozen=True)
class RequestContext:
    """Everything the manifest engine needs to know about one poll."""

    protocol_version: int
    platform: str
    runtime_version: str
    current_update_id: Optional[str] = None
    embedded_update_id: Optional[str] = None
    expect_signature: bool = False

    @classmethod
    def from_request(cls, headers: Headers, query: QueryParams) -> "RequestContext":
        """Resolve header-or-query values in the order clients are validated."""
        protocol_version = parse_protocol_version(headers)

        platform = headers.get("expo-platform") or query.get("platform")
        if platform not in SUPPORTED_PLATFORMS:
            raise RequestValidationError("Unsupported platform. Expected either ios or android.")

        runtime_version = value_or_none(headers.get("expo-runtime-version") or query.get("runtime-version"))
        if runtime_version is None:
            raise RequestValidationError("No runtimeVersion provided.")

        return cls(
            protocol_version=protocol_version,
            platform=platform,
            runtime_version=runtime_version,
            current_update_id=value_or_none(headers.get("expo-current-update-id")),
            embedded_update_id=value_or_none(headers.get("expo-embedded-update-id")),
            expect_signature=bool(value_or_none(headers.get("expo-expect-signature"))),
        )


@dataclass(frozen=True)
class AssetRequest:
    """Validated query of ``GET /api/assets``."""

    asset: str
    runtime_version: str
    platform: str

    @classmethod
    def from_query(cls, query: QueryParams) -> "AssetRequest":
        asset = value_or_none(query.get("asset"))
        if asset is None:
            raise RequestValidationError("No asset name provided.")
        platform = query.get("platform")
        if platform not in SUPPORTED_PLATFORMS:
            raise RequestValidationError('No platform provided. Expected "ios" or "android".')
        runtime_version = value_or_none(query.get("runtimeVersion"))
        if runtime_version is None:
            raise RequestValidationError("No runtimeVersion provided.")
        return cls(asset=asset, runtime_version=runtime_version, platform=platform)
