"""Terminal image support: protocol encoding and image caches."""

from .terminal_image import ImageArea, ImageProtocol, ImageSupport
from .image_cache import DiskImageCache, ImageDecodeError, MemoryImageCache, ensure_png

__all__ = [
    'ImageArea',
    'ImageProtocol',
    'ImageSupport',
    'DiskImageCache',
    'ImageDecodeError',
    'MemoryImageCache',
    'ensure_png',
]
