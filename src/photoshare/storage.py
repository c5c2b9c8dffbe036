import logging
import pathlib
import shutil
import time
from typing import Iterable, Optional
from urllib.parse import quote, unquote, urlparse

from fastapi import UploadFile

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/public"


def _safe_join(root: pathlib.Path, key: str) -> pathlib.Path:
    # Prevent path traversal: resolve and ensure it is within root.
    candidate = (root / key).resolve()
    if root not in candidate.parents:
        raise ValueError("Invalid storage key")
    return candidate


def upload_size(upload: UploadFile) -> int:
    """Size of an uploaded file in bytes, leaving the stream at the start."""
    stream = upload.file
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(0)
    return size


class PhotoStorage:
    """
    Local backing file area for uploaded photos.

    Files are addressed by a flat filename; the public URL of a file is
    `<base>/public/<filename>` and the filename is recovered from a stored
    URL by taking its last path segment.
    """

    def __init__(self, root: str, public_base_url: str = ""):
        self.root = pathlib.Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    # PUBLIC_INTERFACE
    def unique_filename(self, owner_id: int, original_name: Optional[str]) -> str:
        """Collision-resistant name: owner ID + nanosecond timestamp + original basename."""
        base = pathlib.PurePosixPath((original_name or "").replace("\\", "/")).name or "upload"
        return f"photos_{owner_id}_{time.time_ns()}_{base}"

    # PUBLIC_INTERFACE
    def public_url(self, filename: str, request_base_url: str = "") -> str:
        base = self.public_base_url or request_base_url.rstrip("/")
        return f"{base}{PUBLIC_PREFIX}/{quote(filename)}"

    # PUBLIC_INTERFACE
    @staticmethod
    def filename_from_url(photo_url: str) -> str:
        path = urlparse(photo_url).path or photo_url
        return unquote(path.rsplit("/", 1)[-1])

    # PUBLIC_INTERFACE
    def path_for(self, filename: str) -> pathlib.Path:
        return _safe_join(self.root, filename)

    # PUBLIC_INTERFACE
    def save_upload(self, upload: UploadFile, filename: str) -> int:
        """Write an uploaded file under `filename`. Returns size in bytes."""
        target = self.path_for(filename)
        upload.file.seek(0)
        with target.open("wb") as f:
            shutil.copyfileobj(upload.file, f, 1024 * 1024)
        size = target.stat().st_size
        logger.info("Saved photo file %s (%d bytes)", filename, size)
        return size

    # PUBLIC_INTERFACE
    def delete(self, filename: str) -> bool:
        """
        Remove a stored file.

        Returns False when the file was already gone. Other OSErrors propagate.
        """
        target = self.path_for(filename)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("Photo file %s was already missing", filename)
            return False
        logger.info("Deleted photo file %s", filename)
        return True

    # PUBLIC_INTERFACE
    def delete_for_url(self, photo_url: str) -> bool:
        return self.delete(self.filename_from_url(photo_url))

    # PUBLIC_INTERFACE
    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()


# PUBLIC_INTERFACE
def extension_allowed(filename: str, allowed: Iterable[str]) -> bool:
    ext = pathlib.PurePosixPath(filename or "").suffix.lower()
    return ext in {a.lower() for a in allowed}
