"""
Evidence storage for verification responses.

Teachers upload a screenshot of their phone's call log; the application keeps only
the returned reference string on the verification challenge.
"""

from __future__ import annotations

import mimetypes
from typing import Any, Dict, Protocol
from uuid import uuid4

from repositories.store import StoreError


class EvidenceStorage(Protocol):
    def store(self, staff_id: str, data: bytes, content_type: str) -> str:
        ...


def _object_path(staff_id: str, content_type: str) -> str:
    extension = mimetypes.guess_extension(content_type) or ".bin"
    return f"{staff_id}/{uuid4()}{extension}"


class SupabaseEvidenceStorage:
    """Stores evidence in a Supabase Storage bucket and returns its public URL."""

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    def store(self, staff_id: str, data: bytes, content_type: str) -> str:
        if not data:
            raise ValueError("evidence payload is empty")
        path = _object_path(staff_id, content_type)
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(path, data, {"content-type": content_type})
        except Exception as exc:
            raise StoreError(f"Failed to upload evidence: {exc}") from exc
        return bucket.get_public_url(path)


class InMemoryEvidenceStorage:
    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}

    def store(self, staff_id: str, data: bytes, content_type: str) -> str:
        if not data:
            raise ValueError("evidence payload is empty")
        path = _object_path(staff_id, content_type)
        self.objects[path] = data
        return f"memory://evidence/{path}"


__all__ = ["EvidenceStorage", "InMemoryEvidenceStorage", "SupabaseEvidenceStorage"]
