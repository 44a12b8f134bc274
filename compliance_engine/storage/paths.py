"""
Storage path conventions for uploaded compliance documents.
Layout: {contractor_id}/{document_type}/{document_id}.{ext}
"""

import hashlib
from pathlib import Path

# Upload MIME type -> stored file extension
EXTENSIONS = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def file_hash(file_bytes: bytes) -> str:
    """SHA-256 hash of file content."""
    return hashlib.sha256(file_bytes).hexdigest()


def extension_for(mime_type: str, file_name: str = "") -> str:
    if mime_type in EXTENSIONS:
        return EXTENSIONS[mime_type]
    suffix = Path(file_name).suffix.lstrip(".").lower()
    return suffix or "bin"


def document_path(contractor_id: str, document_type: str, document_id: str, extension: str) -> str:
    """Relative storage path for an uploaded document."""
    return f"{contractor_id}/{document_type}/{document_id}.{extension}"


def ensure_parent_dirs(storage_root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = Path(storage_root) / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
