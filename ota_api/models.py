"""Wire models for manifests and directives.

Both payload families share :class:`SignablePayload` so the signer and the
multipart encoder work with "anything that has a canonical JSON form".
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SignablePayload(_WireModel):
    """Base for payloads that are serialized once, signed, then transmitted."""

    def to_wire(self) -> Dict[str, Any]:
        """Return the camelCase dict sent to clients."""
        return self.model_dump(mode="json", by_alias=True)

    def canonical_json(self) -> str:
        """Compact JSON with declaration key order; the signed byte sequence."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False)


class AssetMetadata(_WireModel):
    """Wire shape of one asset in a manifest."""

    hash: str
    key: str
    file_extension: str = Field(alias="fileExtension")
    content_type: str = Field(alias="contentType")
    url: str


class Manifest(SignablePayload):
    """Update manifest served for a normal update."""

    id: str
    created_at: str = Field(alias="createdAt")
    runtime_version: str = Field(alias="runtimeVersion")
    assets: List[AssetMetadata]
    launch_asset: AssetMetadata = Field(alias="launchAsset")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    extra: Dict[str, Any] = Field(default_factory=dict)

    def all_assets(self) -> List[AssetMetadata]:
        """Return the auxiliary assets followed by the launch asset."""
        return [*self.assets, self.launch_asset]


class RollbackParameters(_WireModel):
    commit_time: str = Field(alias="commitTime")


class RollbackDirective(SignablePayload):
    """Instructs the client to roll back to its embedded update."""

    type: Literal["rollBackToEmbedded"] = "rollBackToEmbedded"
    parameters: RollbackParameters


class NoUpdateAvailableDirective(SignablePayload):
    """Tells the client it already runs the right update."""

    type: Literal["noUpdateAvailable"] = "noUpdateAvailable"


Directive = Annotated[
    Union[RollbackDirective, NoUpdateAvailableDirective],
    Field(discriminator="type"),
]


@dataclass(frozen=True)
class NoUpdateAvailable:
    """Builder result meaning "the client is already current".

    Returned instead of a manifest or rollback directive; callers route it to
    :func:`ota_api.directives.build_no_update_available_directive`. ``reason``
    is for the server log only and never reaches the wire.
    """

    reason: Optional[str] = None
