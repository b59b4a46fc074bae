# enchls/manifest.py
"""
Extended HLS manifest codec.

An extended manifest is an ordinary media playlist plus two proprietary tags:

    #EXT-X-CUSTOM-KEY:METHOD=CHACHA20-POLY1305,URI="data:text/plain;base64,<key>"
    #EXT-X-SEGMENT-NONCE:<nonce>

The key tag appears once, before any nonce tag. Each nonce tag sits directly
above the segment reference it protects. `parse` strips both tags so the
result can be fed to an unmodified player, and returns the key plus a table
mapping segment basename -> nonce.
"""
import logging
import math
import posixpath
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence
from urllib.parse import urljoin, urlparse

from .crypto import CHACHA20_POLY1305, SUPPORTED_METHODS, b64, ub64
from .errors import (
    KeyNotFound,
    MalformedKeyMaterial,
    MalformedManifest,
    TruncatedNonceDirective,
    UnsupportedMethod,
)
from .keys import KEY_SIZE, NONCE_SIZE

logger = logging.getLogger(__name__)

KEY_TAG = "#EXT-X-CUSTOM-KEY:"
NONCE_TAG = "#EXT-X-SEGMENT-NONCE:"

ENCRYPTED_EXT = ".enc"
PLAINTEXT_EXT = ".ts"

# manifests loaded from local content rather than the network
SYNTHETIC_SCHEMES = ("blob", "memory")

_METHOD_RE = re.compile(r"METHOD=([A-Za-z0-9-]+)")
_DATA_URI_RE = re.compile(r'URI="data:text/plain;base64,([^"]+)"')


@dataclass(frozen=True)
class SegmentRef:
    reference: str
    nonce: bytes
    duration: float


@dataclass(frozen=True)
class ParsedManifest:
    method: str
    key: bytes
    nonces: Mapping[str, bytes]
    cleaned: str


def segment_id(url: str) -> str:
    """Basename of a URL or path, query and fragment ignored."""
    return posixpath.basename(urlparse(url).path)


def is_encrypted_segment(url: str) -> bool:
    return urlparse(url).path.endswith(ENCRYPTED_EXT)


def is_synthetic_url(url: Optional[str]) -> bool:
    return bool(url) and urlparse(url).scheme in SYNTHETIC_SCHEMES


def _is_uri_line(line: str) -> bool:
    return bool(line) and not line.startswith("#")


class ManifestCodec:
    def __init__(self, content_base_url: Optional[str] = None):
        self.content_base_url = content_base_url

    # ---------- encode ----------

    def render(
        self,
        segments: Sequence[SegmentRef],
        key: bytes,
        target_duration: Optional[int] = None,
        method: str = CHACHA20_POLY1305,
    ) -> str:
        if not segments:
            raise ValueError("cannot render a manifest without segments")
        if len(key) != KEY_SIZE:
            raise MalformedKeyMaterial(f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)}")
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethod(f"Unsupported key method '{method}'")
        if target_duration is None:
            target_duration = math.ceil(max(s.duration for s in segments))

        lines = [
            "#EXTM3U",
            "#EXT-X-VERSION:3",
            f"#EXT-X-TARGETDURATION:{int(target_duration)}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            "#EXT-X-PLAYLIST-TYPE:VOD",
            "",
            f'{KEY_TAG}METHOD={method},URI="data:text/plain;base64,{b64(key)}"',
            "",
        ]
        for seg in segments:
            if len(seg.nonce) != NONCE_SIZE:
                raise MalformedKeyMaterial(
                    f"Invalid nonce size for {seg.reference}: expected {NONCE_SIZE} bytes, got {len(seg.nonce)}"
                )
            lines.append(f"#EXTINF:{float(seg.duration):.1f},")
            lines.append(f"{NONCE_TAG}{b64(seg.nonce)}")
            lines.append(seg.reference)
        lines.append("#EXT-X-ENDLIST")
        return "\n".join(lines) + "\n"

    # ---------- decode ----------

    def parse(self, text: str, base_url: Optional[str] = None) -> ParsedManifest:
        """Split an extended manifest into (method, key, nonce table, cleaned text).

        Raises KeyNotFound when there is no key directive; the manifest is then
        an ordinary one and should be used as-is.
        """
        lines = text.splitlines()
        method, key = self._parse_key(text, lines)
        nonces = self._parse_nonces(lines)
        cleaned = self._clean(lines, base_url)
        if text.endswith("\n"):
            cleaned += "\n"
        return ParsedManifest(method=method, key=key, nonces=MappingProxyType(nonces), cleaned=cleaned)

    def _parse_key(self, text: str, lines: list[str]) -> tuple[str, bytes]:
        key_line = None
        seen_nonce = seen_segment = False
        for raw in lines:
            line = raw.strip()
            if line.startswith(NONCE_TAG):
                seen_nonce = True
            elif line.startswith(KEY_TAG):
                if key_line is not None:
                    raise MalformedManifest("Duplicate key directive")
                if seen_nonce or seen_segment:
                    raise MalformedManifest("Key directive must precede all segment and nonce directives")
                key_line = line
            elif _is_uri_line(line):
                seen_segment = True

        if key_line is None:
            raise KeyNotFound(text)

        m = _DATA_URI_RE.search(key_line)
        if not m:
            raise MalformedManifest("Key directive carries no data URI")
        method_m = _METHOD_RE.search(key_line)
        method = method_m.group(1).upper() if method_m else CHACHA20_POLY1305
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethod(f"Unsupported key method '{method}'")
        try:
            key = ub64(m.group(1))
        except ValueError as e:
            raise MalformedManifest(f"Invalid base64 key format: {e}") from e
        if len(key) != KEY_SIZE:
            raise MalformedKeyMaterial(f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)}")
        return method, key

    def _parse_nonces(self, lines: list[str]) -> dict[str, bytes]:
        nonces: dict[str, bytes] = {}
        pending = None  # (line number, payload) awaiting its segment
        for i, raw in enumerate(lines, start=1):
            line = raw.strip()
            if line.startswith(NONCE_TAG):
                if pending is not None:
                    raise MalformedManifest(f"Nonce directives on lines {pending[0]} and {i} precede one segment")
                pending = (i, line[len(NONCE_TAG):])
            elif pending is not None and _is_uri_line(line):
                # the next non-comment, non-blank line is the protected segment
                try:
                    nonces[segment_id(line)] = ub64(pending[1])
                except ValueError as e:
                    logger.warning("Skipping undecodable nonce for %s: %s", line, e)
                pending = None
        if pending is not None:
            raise TruncatedNonceDirective(f"Nonce directive on line {pending[0]} has no following segment")
        return nonces

    def _clean(self, lines: list[str], base_url: Optional[str]) -> str:
        rewrite = is_synthetic_url(base_url) and bool(self.content_base_url)
        out = []
        for raw in lines:
            line = raw.strip()
            if line.startswith(KEY_TAG) or line.startswith(NONCE_TAG):
                continue
            if rewrite and _is_uri_line(line) and self._is_local_enc_reference(line):
                out.append(urljoin(self.content_base_url, line))
                continue
            out.append(raw.rstrip("\r"))
        return "\n".join(out)

    @staticmethod
    def _is_local_enc_reference(line: str) -> bool:
        return line.endswith(ENCRYPTED_EXT) and not urlparse(line).scheme and not line.startswith("/")
