"""
Terminal graphics protocols.

Encoders here are pure: they turn image bytes plus a target size in character
cells into escape-sequence text. Writing that text to the terminal is the
caller's job.
"""

import base64
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

KITTY_CHUNK_SIZE = 4096
KITTY_RESET = "\x1b_Ga=d\x1b\\"


class ImageProtocol(Enum):
    """Supported inline image protocols."""
    KITTY = "kitty"
    ITERM2 = "iterm2"
    NONE = "none"


@dataclass(frozen=True)
class ImageArea:
    """Screen rectangle in character cells (0-based)."""
    x: int
    y: int
    width: int
    height: int

    def inner(self) -> 'ImageArea':
        """Area inside a one-cell border; small areas are used as-is."""
        if self.width <= 2 or self.height <= 2:
            return ImageArea(self.x, self.y, max(self.width, 1), max(self.height, 1))
        return ImageArea(
            self.x + 1,
            self.y + 1,
            max(self.width - 2, 1),
            max(self.height - 2, 1),
        )


def kitty_chunks(data: bytes, width: int, height: int,
                 chunk_size: int = KITTY_CHUNK_SIZE) -> List[str]:
    """
    Encode image bytes as kitty graphics transfer chunks.

    The base64 payload is split into chunk_size pieces; each piece carries
    m=1 except the last, which carries m=0.

    Args:
        data: PNG bytes
        width: Target width in cells
        height: Target height in cells
        chunk_size: Base64 characters per chunk

    Returns:
        List of escape sequences, one per chunk
    """
    payload = base64.b64encode(data).decode('ascii')
    pieces = [payload[i:i + chunk_size] for i in range(0, len(payload), chunk_size)] or ['']

    chunks = []
    for index, piece in enumerate(pieces):
        more = 1 if index < len(pieces) - 1 else 0
        chunks.append(f"\x1b_Ga=T,f=100,c={width},r={height},m={more};{piece}\x1b\\")
    return chunks


def encode_kitty(data: bytes, width: int, height: int) -> str:
    return "".join(kitty_chunks(data, width, height))


def encode_iterm2(data: bytes, width: int, height: int) -> str:
    """Encode image bytes as a single iTerm2 inline image sequence."""
    payload = base64.b64encode(data).decode('ascii')
    return (
        f"\x1b]1337;File=inline=1;width={width}c;height={height}c;"
        f"preserveAspectRatio=1:{payload}\x07"
    )


def cursor_to(x: int, y: int) -> str:
    """CSI cursor position for 0-based cell coordinates."""
    return f"\x1b[{y + 1};{x + 1}H"


def detect_protocol(env: Optional[Mapping[str, str]] = None) -> ImageProtocol:
    """
    Probe terminal identification variables.

    Kitty and Ghostty speak the kitty protocol; iTerm2 and WezTerm accept
    the iTerm2 inline image sequence.
    """
    env = os.environ if env is None else env
    term = env.get('TERM', '').lower()
    term_program = env.get('TERM_PROGRAM', '')

    if 'KITTY_WINDOW_ID' in env or 'kitty' in term or 'ghostty' in term_program.lower():
        return ImageProtocol.KITTY
    if ('ITERM_SESSION_ID' in env or 'WEZTERM_EXECUTABLE' in env
            or term_program in ('WezTerm', 'iTerm.app')):
        return ImageProtocol.ITERM2
    return ImageProtocol.NONE


class ImageSupport:
    """Selected image protocol plus the enabled flag."""

    def __init__(self, protocol: ImageProtocol, enabled: bool = True):
        self.protocol = protocol
        self.enabled = enabled

    @classmethod
    def detect(cls, enabled: bool = True,
               env: Optional[Mapping[str, str]] = None) -> 'ImageSupport':
        if not enabled:
            return cls(ImageProtocol.NONE, False)
        return cls(detect_protocol(env), True)

    @classmethod
    def from_config(cls, images_config: dict,
                    env: Optional[Mapping[str, str]] = None) -> 'ImageSupport':
        """
        Build from the 'images' config section.

        protocol: kitty | iterm2 | wezterm | none | auto
        """
        enabled = bool(images_config.get('enabled', True))
        protocol = str(images_config.get('protocol', 'auto')).lower()

        if protocol == 'kitty':
            support = cls(ImageProtocol.KITTY, enabled)
        elif protocol in ('iterm2', 'wezterm'):
            support = cls(ImageProtocol.ITERM2, enabled)
        elif protocol == 'none':
            support = cls(ImageProtocol.NONE, False)
        else:
            support = cls.detect(enabled, env)

        logger.debug(f"Image support: protocol={support.protocol.value} enabled={support.enabled}")
        return support

    @property
    def active(self) -> bool:
        return self.enabled and self.protocol is not ImageProtocol.NONE

    def render_avatar(self, area: Optional[ImageArea], data: Optional[bytes]) -> str:
        """
        Escape sequence drawing an image inside area's border.

        Returns an empty string when images are disabled, there is no area,
        or there are no bytes.
        """
        if not self.active or area is None or not data:
            return ""

        inner = area.inner()
        if self.protocol is ImageProtocol.KITTY:
            body = encode_kitty(data, inner.width, inner.height)
        else:
            body = encode_iterm2(data, inner.width, inner.height)
        return cursor_to(inner.x, inner.y) + body

    def reset(self) -> str:
        """Sequence clearing previously placed kitty images."""
        if self.enabled and self.protocol is ImageProtocol.KITTY:
            return KITTY_RESET
        return ""
