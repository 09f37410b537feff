"""Data models for CMIS repository objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from .exceptions import CmisAPIError, CmisInvalidResponseError

if TYPE_CHECKING:
    from .api import CmisClient


class BaseType(str, Enum):
    """CMIS base object types."""

    DOCUMENT = "cmis:document"
    FOLDER = "cmis:folder"


class CmisDialect(str, Enum):
    """JSON property shapes returned by CMIS browser bindings."""

    SUCCINCT = "succinct"
    """``{"succinctProperties": {"cmis:name": "a.txt"}}``"""

    LEGACY = "legacy"
    """``{"object": {"properties": {"cmis:name": {"value": "a.txt"}}}}``"""


# =============================================================================
# Property parsing strategies
# =============================================================================


def _succinct_properties(raw: dict[str, Any]) -> Optional[dict[str, Any]]:
    if isinstance(raw.get("succinctProperties"), dict):
        return raw["succinctProperties"]
    inner = raw.get("object")
    if isinstance(inner, dict) and isinstance(inner.get("succinctProperties"), dict):
        return inner["succinctProperties"]
    return None


def _legacy_properties(raw: dict[str, Any]) -> Optional[dict[str, Any]]:
    inner = raw.get("object", raw)
    if not isinstance(inner, dict) or not isinstance(inner.get("properties"), dict):
        return None
    properties: dict[str, Any] = {}
    for key, prop in inner["properties"].items():
        properties[key] = prop.get("value") if isinstance(prop, dict) else prop
    return properties


_STRATEGIES: list[tuple[CmisDialect, Callable[[dict[str, Any]], Optional[dict]]]] = [
    (CmisDialect.SUCCINCT, _succinct_properties),
    (CmisDialect.LEGACY, _legacy_properties),
]


def parse_cmis_properties(raw: dict[str, Any]) -> tuple[CmisDialect, dict[str, Any]]:
    """Flatten the properties of a CMIS object into a plain mapping.

    Args:
        raw: Object JSON as returned by the repository

    Returns:
        Tuple of (detected dialect, properties keyed by CMIS property id)

    Raises:
        CmisInvalidResponseError: If no known property shape is present
    """
    if isinstance(raw, dict):
        for dialect, parse in _STRATEGIES:
            properties = parse(raw)
            if properties is not None:
                return dialect, properties
    raise CmisInvalidResponseError("Unrecognized CMIS object format")


def _single(value: Any) -> Any:
    # Multi-valued properties come back as lists
    if isinstance(value, list):
        return value[0] if value else None
    return value


# =============================================================================
# Remote file descriptor
# =============================================================================


@dataclass(frozen=True)
class RemoteFileDescriptor:
    """Canonical view of a remote object, independent of the CMIS dialect."""

    name: str
    """File or folder name"""

    object_id: str
    """Identifier resolving to a content stream"""

    mime_type: Optional[str]
    """Content stream MIME type (None for folders)"""

    version: str
    """Repository-assigned version label (empty if the object is not versioned)"""

    node_id: str
    """Identity of the file across all of its versions"""

    base_type: str
    """CMIS base type id (cmis:document or cmis:folder)"""

    path: Optional[str] = None
    """Repository path (only reported for folders by most repositories)"""

    dialect: CmisDialect = CmisDialect.SUCCINCT
    """Property shape this descriptor was parsed from"""

    @classmethod
    def from_cmis_object(cls, raw: dict[str, Any]) -> RemoteFileDescriptor:
        """Create a descriptor from repository object JSON.

        Args:
            raw: Object JSON in either succinct or legacy shape

        Returns:
            RemoteFileDescriptor instance

        Raises:
            CmisInvalidResponseError: If the object is missing required properties
        """
        dialect, props = parse_cmis_properties(raw)

        name = _single(props.get("cmis:name"))
        object_id = _single(props.get("cmis:objectId"))
        if not name or not object_id:
            raise CmisInvalidResponseError(
                "CMIS object is missing cmis:name or cmis:objectId"
            )

        node_id = (
            _single(props.get("alfcmis:nodeRef"))
            or _single(props.get("cmis:versionSeriesId"))
            or object_id
        )
        version = _single(props.get("cmis:versionLabel"))

        return cls(
            name=name,
            object_id=object_id,
            mime_type=_single(props.get("cmis:contentStreamMimeType")),
            version=str(version) if version is not None else "",
            node_id=node_id,
            base_type=_single(props.get("cmis:baseTypeId")) or "",
            path=_single(props.get("cmis:path")),
            dialect=dialect,
        )

    @property
    def is_folder(self) -> bool:
        return self.base_type == BaseType.FOLDER.value

    @property
    def is_document(self) -> bool:
        return self.base_type == BaseType.DOCUMENT.value

    async def get_latest_version(self, client: CmisClient) -> str:
        """Fetch the current version label of this file from the repository.

        The object is re-read by node id, so the label reflects any write
        made after this descriptor was created.

        Args:
            client: CMIS client

        Returns:
            Latest version label

        Raises:
            CmisAPIError: If the object cannot be fetched or carries no label
        """
        succinct = self.dialect == CmisDialect.SUCCINCT
        try:
            updated = await client.get_object(self.node_id, succinct=succinct)
        except CmisAPIError as e:
            status = e.status_code if e.status_code is not None else ""
            raise CmisAPIError(
                f"failed to get new version: {status}\n{e}", status_code=e.status_code
            ) from e

        _, props = parse_cmis_properties(updated)
        version = _single(props.get("cmis:versionLabel"))
        if version is None:
            raise CmisInvalidResponseError(
                f"failed to get new version: no cmis:versionLabel for {self.node_id}"
            )
        return str(version)
