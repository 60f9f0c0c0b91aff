# talenthunt/services/media_store.py
import os
import logging
from uuid import uuid4

from talenthunt.config import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {
    "profilePhoto": {"jpg", "jpeg", "png", "webp"},
    "videoUpload": {"mp4", "mov", "avi", "webm", "mkv"},
}


class MediaStoreError(Exception):
    pass


class MediaStore:
    """Local filesystem storage for registration media."""

    def __init__(self, root: str = None, base_url: str = None):
        self.root = root or settings.UPLOAD_DIR
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def store(self, content: bytes, filename: str, folder: str) -> str:
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
        name = f"{uuid4().hex}.{ext}"
        folder_path = os.path.join(self.root, folder)

        try:
            os.makedirs(folder_path, exist_ok=True)
            with open(os.path.join(folder_path, name), "wb") as buffer:
                buffer.write(content)
        except OSError as e:
            logger.error(f"❌ Failed to store {filename} in {folder_path}: {e}")
            raise MediaStoreError(f"Could not store {filename}") from e

        logger.info(f"📁 Stored {filename} as {folder}/{name}")
        return f"{self.base_url}/{folder}/{name}"


_store = MediaStore()


def get_media_store() -> MediaStore:
    return _store
