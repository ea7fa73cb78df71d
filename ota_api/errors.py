"""Typed errors for the update manifest endpoints.

Every error carries a stable ``code``, a client-facing ``message``, an
operator ``hint`` and the HTTP ``status_code`` used by ``ota_api.app`` when
rendering the ``{"error": ...}`` response body.
"""

from __future__ import annotations


class UpdateProtocolError(RuntimeError):
    """Base exception containing a typed error payload for API responses."""

    def __init__(
        self,
        *,
        code: str,
        message: str,
        hint: str = "",
        status_code: int = 404,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint
        self.status_code = status_code

    def to_dict(self) -> dict:
        """Return the JSON body sent to clients."""
        return {"error": self.message}


class RequestValidationError(UpdateProtocolError):
    """Raised when request headers or query parameters are unusable."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(code="request.invalid", message=message, hint=hint, status_code=400)


class MissingHeaderError(UpdateProtocolError):
    """Raised when a header required by the selected code path is absent."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(code="request.missing_header", message=message, hint=hint, status_code=400)


class SigningKeyMissingError(UpdateProtocolError):
    """Raised when a client asks for a signature but no key is loaded."""

    def __init__(self) -> None:
        super().__init__(
            code="signing.key_missing",
            message="Code signing requested but no key supplied when starting server.",
            hint="Set OTA_PRIVATE_KEY_PATH to a PEM encoded RSA private key.",
            status_code=400,
        )


class NoCompatibleBundleError(UpdateProtocolError):
    """Raised when no bundle directory exists for a runtime version."""

    def __init__(self, message: str = "Unsupported runtime version", *, hint: str = "") -> None:
        super().__init__(code="bundle.not_found", message=message, hint=hint, status_code=404)


class BundleMetadataMissingError(UpdateProtocolError):
    """Raised when ``metadata.json`` is unreadable or lacks the platform."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(code="bundle.metadata_missing", message=message, hint=hint, status_code=404)


class ExpoConfigMissingError(UpdateProtocolError):
    """Raised when ``expoConfig.json`` cannot be read from a bundle."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(code="bundle.config_missing", message=message, hint=hint, status_code=404)


class UnsupportedProtocolError(UpdateProtocolError):
    """Raised when a directive is requested under protocol version 0."""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(
            code="protocol.unsupported",
            message=message,
            hint=hint or "Directives require expo-protocol-version 1.",
            status_code=404,
        )


class UnknownContentTypeError(UpdateProtocolError):
    """Raised when an asset extension has no registered MIME type."""

    def __init__(self, ext: str) -> None:
        super().__init__(
            code="asset.unknown_content_type",
            message=f'No content type registered for extension "{ext}".',
            hint="Register the extension with mimetypes.add_type before serving.",
            status_code=404,
        )
        self.ext = ext


class AssetNotFoundError(UpdateProtocolError):
    """Raised when an asset file referenced by a bundle does not exist."""

    def __init__(self, asset_name: str) -> None:
        super().__init__(
            code="asset.not_found",
            message=f'Asset "{asset_name}" does not exist.',
            status_code=404,
        )
        self.asset_name = asset_name
