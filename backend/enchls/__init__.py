"""Segment-level authenticated encryption for HLS streams."""

from .crypto import SegmentCipher
from .keys import CounterNonceGenerator, KeyNonceGenerator
from .loader import DecryptionSession, StreamingDecryptLoader, loader_factory
from .manifest import ManifestCodec, ParsedManifest, SegmentRef

__version__ = "0.1.0"

__all__ = [
    "SegmentCipher", "KeyNonceGenerator", "CounterNonceGenerator",
    "ManifestCodec", "ParsedManifest", "SegmentRef",
    "DecryptionSession", "StreamingDecryptLoader", "loader_factory",
]
