"""
Document store for uploaded certificates and policies.
Local filesystem (volume mount); every path is relative to DOCUMENT_STORAGE_ROOT.
"""

from pathlib import Path
from typing import Optional

import structlog

from compliance_engine.config import settings
from compliance_engine.storage.paths import ensure_parent_dirs

logger = structlog.get_logger(__name__)


class DocumentStore:
    """Save, load and remove stored document files."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.DOCUMENT_STORAGE_ROOT)
        self.root.mkdir(parents=True, exist_ok=True)

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Save raw bytes. Returns the relative path."""
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        full_path.write_bytes(data)
        logger.info("document_file_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def load_bytes(self, relative_path: str) -> bytes:
        full_path = self.root / relative_path
        if not full_path.exists():
            raise FileNotFoundError(f"Document file not found: {relative_path}")
        return full_path.read_bytes()

    def exists(self, relative_path: str) -> bool:
        return (self.root / relative_path).exists()

    def delete(self, relative_path: str) -> bool:
        """Delete a stored file. Returns True if it existed."""
        full_path = self.root / relative_path
        if full_path.exists():
            full_path.unlink()
            logger.info("document_file_deleted", path=relative_path)
            return True
        return False

    def full_path(self, relative_path: str) -> Path:
        """Absolute filesystem path for a stored file."""
        return self.root / relative_path
