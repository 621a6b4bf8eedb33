"""
Image pipeline: memory -> disk -> network resolution for image URLs.

Fetched bytes are normalized to PNG before they reach either cache, so both
caches only ever hold PNG data.
"""

import asyncio
import logging
from typing import Optional

from dotatui.media.image_cache import DiskImageCache, ImageDecodeError, MemoryImageCache, ensure_png
from dotatui.media.terminal_image import ImageArea, ImageSupport

logger = logging.getLogger(__name__)


class ImagePipeline:
    """
    Resolves image bytes for URLs and renders them with the active protocol.

    Args:
        support: Selected terminal image protocol
        disk: Persistent image cache
    """

    def __init__(self, support: ImageSupport, disk: DiskImageCache):
        self.support = support
        self.disk = disk

    @property
    def active(self) -> bool:
        return self.support.active

    def lookup(self, url: str, memory: MemoryImageCache) -> Optional[bytes]:
        """Bytes from the memory cache only."""
        return memory.get(url)

    def load_from_disk(self, url: str) -> Optional[bytes]:
        """
        Read url from the disk cache, normalizing to PNG.

        Entries that do not decode are ignored and will be fetched again.
        """
        data = self.disk.read(url)
        if data is None:
            return None
        try:
            return ensure_png(data)
        except ImageDecodeError as e:
            logger.debug(f"Ignoring undecodable cached image for {url}: {e}")
            return None

    async def fetch(self, client, url: str) -> bytes:
        """
        Fetch url, normalize it to PNG and store it on disk.

        Args:
            client: OpenDotaClient (uses fetch_bytes)
            url: Absolute image URL

        Returns:
            PNG bytes

        Raises:
            APIError: Network failure or non-2xx status
            ImageDecodeError: Bytes are not an image
        """
        raw = await client.fetch_bytes(url)
        png = await asyncio.to_thread(ensure_png, raw)
        await asyncio.to_thread(self.disk.write, url, png)
        return png

    def draw(self, area: Optional[ImageArea], data: Optional[bytes]) -> str:
        return self.support.render_avatar(area, data)

    def reset(self) -> str:
        return self.support.reset()
