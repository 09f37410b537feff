"""Shared fixtures: an in-memory stand-in for the CMIS client."""

import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import pytest

from cmiscopy.exceptions import CmisAPIError
from cmiscopy.models import RemoteFileDescriptor
from cmiscopy.output import OutputFormatter


class FakeResponse:
    """Streaming response returning content in small chunks."""

    def __init__(
        self, status_code: int, content: bytes, error: Optional[Exception] = None
    ):
        self.status_code = status_code
        self.content = content
        self.error = error

    async def aiter_bytes(self):
        for start in range(0, len(self.content), 3):
            yield self.content[start : start + 3]
            if self.error is not None:
                raise self.error


class FakeCmisClient:
    """Repository held in dictionaries, recording every content write."""

    def __init__(self):
        self.contents: dict[str, bytes] = {}
        self.statuses: dict[str, int] = {}
        self.versions: dict[str, str] = {}
        self.open_errors: dict[str, Exception] = {}
        self.stream_errors: dict[str, Exception] = {}
        self.upload_errors: dict[str, Exception] = {}
        self.version_errors: dict[str, Exception] = {}
        self.objects_by_path: dict[str, dict] = {}
        self.children: dict[str, list[dict]] = {}
        self.writes: list[tuple[str, bytes, bool, Optional[str]]] = []
        self.opened: list[str] = []

    @asynccontextmanager
    async def stream_content(self, object_id):
        self.opened.append(object_id)
        if object_id in self.open_errors:
            raise self.open_errors[object_id]
        status = self.statuses.get(object_id, 200 if object_id in self.contents else 404)
        yield FakeResponse(
            status, self.contents.get(object_id, b""), self.stream_errors.get(object_id)
        )

    async def set_content_stream(
        self, object_id, data, overwrite=True, mime_type=None, file_name="content"
    ):
        if object_id in self.upload_errors:
            raise self.upload_errors[object_id]
        self.writes.append((object_id, data, overwrite, mime_type))
        self.contents[object_id] = data
        return {}

    async def get_object(self, object_id, succinct=True):
        if object_id in self.version_errors:
            raise self.version_errors[object_id]
        if object_id not in self.versions:
            raise CmisAPIError("Object not found", status_code=404)
        return {"succinctProperties": {"cmis:versionLabel": self.versions[object_id]}}

    async def get_object_by_path(self, path, succinct=True):
        if path not in self.objects_by_path:
            raise CmisAPIError("Object not found", status_code=404)
        return self.objects_by_path[path]

    async def get_children(self, path, max_items=100, succinct=True):
        return self.children.get(path, [])


def make_descriptor(
    name: str = "file.txt",
    object_id: str = "obj-1",
    node_id: str = "n1",
    version: str = "1.0",
    mime_type: Optional[str] = "text/plain",
    base_type: str = "cmis:document",
) -> RemoteFileDescriptor:
    return RemoteFileDescriptor(
        name=name,
        object_id=object_id,
        mime_type=mime_type,
        version=version,
        node_id=node_id,
        base_type=base_type,
    )


def cmis_object(
    name: str,
    object_id: str,
    node_id: Optional[str] = None,
    version: str = "1.0",
    base_type: str = "cmis:document",
) -> dict:
    """Succinct CMIS object JSON as returned in children listings."""
    return {
        "object": {
            "succinctProperties": {
                "cmis:name": name,
                "cmis:objectId": object_id,
                "cmis:baseTypeId": base_type,
                "cmis:versionLabel": version,
                "cmis:contentStreamMimeType": "text/plain",
                "alfcmis:nodeRef": node_id or f"workspace://SpacesStore/{object_id}",
            }
        }
    }


@pytest.fixture
def fake_client():
    """Create an in-memory CMIS client."""
    return FakeCmisClient()


@pytest.fixture
def quiet_output():
    """Create an output formatter that prints nothing but errors."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def new_descriptor():
    """Factory for remote file descriptors."""
    return make_descriptor


@pytest.fixture
def new_cmis_object():
    """Factory for CMIS object JSON."""
    return cmis_object
