"""Rollback and no-update-available directives (protocol version 1 only)."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ota_api.errors import MissingHeaderError, UnsupportedProtocolError
from ota_api.models import (
    NoUpdateAvailable,
    NoUpdateAvailableDirective,
    RollbackDirective,
    RollbackParameters,
)
from ota_api.storage import BundleStore


def build_rollback_directive(
    store: BundleStore,
    *,
    bundle_path: Path,
    protocol_version: int,
    embedded_update_id: Optional[str],
    current_update_id: Optional[str],
) -> Union[RollbackDirective, NoUpdateAvailable]:
    """Return the rollback directive for a bundle carrying a rollback marker.

    A client whose current update already is its embedded update has rolled
    back before and gets :class:`NoUpdateAvailable` instead.
    """
    if protocol_version == 0:
        raise UnsupportedProtocolError("Rollbacks not supported on protocol version 0")

    embedded = (embedded_update_id or "").strip()
    if not embedded:
        raise MissingHeaderError("Invalid Expo-Embedded-Update-ID request header specified.")

    if current_update_id == embedded:
        return NoUpdateAvailable(reason=f"already running embedded update {embedded}")

    return RollbackDirective(
        parameters=RollbackParameters(commit_time=store.rollback_created_at(bundle_path)),
    )


def build_no_update_available_directive(protocol_version: int) -> NoUpdateAvailableDirective:
    if protocol_version == 0:
        raise UnsupportedProtocolError("NoUpdateAvailable directive not available in protocol version 0")
    return NoUpdateAvailableDirective()
