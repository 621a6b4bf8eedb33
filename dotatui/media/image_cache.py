"""
Image byte caches.

MemoryImageCache holds the session's decoded-ready PNG bytes; DiskImageCache
persists them across sessions under images/<urlsafe-base64(url)>.
"""

import base64
import logging
import shutil
from collections import OrderedDict
from io import BytesIO
from pathlib import Path
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class ImageDecodeError(Exception):
    """Image bytes could not be decoded."""
    pass


def ensure_png(data: bytes) -> bytes:
    """
    Normalize image bytes to PNG.

    PNG input is returned unchanged; anything else Pillow can read is
    re-encoded.

    Raises:
        ImageDecodeError: Bytes are not a supported image
    """
    if data.startswith(PNG_MAGIC):
        return data

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if img.mode not in ('RGB', 'RGBA', 'L', 'LA', 'P'):
                img = img.convert('RGBA')
            out = BytesIO()
            img.save(out, format='PNG')
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Unsupported image data: {e}") from e

    return out.getvalue()


class MemoryImageCache:
    """
    URL -> bytes cache bounded by entry count.

    Eviction is by write order: re-putting a URL moves it to the front,
    reads do not. Only the UI loop touches it, so no lock.
    """

    def __init__(self, max_entries: int = 256):
        self.max_entries = max_entries
        self._entries: 'OrderedDict[str, bytes]' = OrderedDict()

    def get(self, url: str) -> Optional[bytes]:
        return self._entries.get(url)

    def put(self, url: str, data: bytes) -> None:
        self._entries.pop(url, None)
        self._entries[url] = data
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted image from memory cache: {evicted}")

    def urls(self) -> List[str]:
        """URLs, most recently written first."""
        return list(reversed(self._entries))

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class DiskImageCache:
    """Filesystem image cache; all I/O is best-effort."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, url: str) -> Path:
        name = base64.urlsafe_b64encode(url.encode('utf-8')).decode('ascii').rstrip('=')
        return self.root / name

    def read(self, url: str) -> Optional[bytes]:
        path = self.path_for(url)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.debug(f"Could not read cached image {path}: {e}")
            return None

    def write(self, url: str, data: bytes) -> bool:
        path = self.path_for(url)
        temp_path = path.with_name(path.name + '.tmp')
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(data)
            temp_path.replace(path)
        except OSError as e:
            logger.warning(f"Could not write cached image {path}: {e}")
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove {temp_path}")
            return False
        return True

    def clear(self) -> int:
        """Remove the cache directory; returns number of files removed."""
        if not self.root.exists():
            return 0
        count = sum(1 for p in self.root.iterdir() if p.is_file())
        shutil.rmtree(self.root, ignore_errors=True)
        logger.info(f"Removed {count} cached images from {self.root}")
        return count
