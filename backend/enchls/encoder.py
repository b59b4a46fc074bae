# enchls/encoder.py
import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .crypto import SegmentCipher, b64, ub64
from .keys import KeyNonceGenerator
from .manifest import ENCRYPTED_EXT, PLAINTEXT_EXT, ManifestCodec, SegmentRef
from .models import EncryptionMetadata, SegmentRecord

logger = logging.getLogger(__name__)


@dataclass
class EncryptedAsset:
    key: bytes
    method: str
    algorithm: str
    segments: list[SegmentRecord] = field(default_factory=list)


def encrypt_segments(
    directory,
    generator: Optional[KeyNonceGenerator] = None,
    cipher: Optional[SegmentCipher] = None,
) -> EncryptedAsset:
    """Encrypt every *.ts in `directory` (lexical order) under one fresh master key.

    Each segment gets its own nonce and is written next to its source with the
    .enc extension.
    """
    directory = Path(directory)
    generator = generator or KeyNonceGenerator()
    cipher = cipher or SegmentCipher()
    master_key = generator.generate_key()
    asset = EncryptedAsset(key=master_key, method=cipher.method, algorithm=cipher.algorithm)

    sources = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == PLAINTEXT_EXT)
    logger.info("Encrypting %d segments in %s", len(sources), directory)

    for src in sources:
        plaintext = src.read_bytes()
        nonce = generator.generate_nonce()
        ciphertext = cipher.encrypt(plaintext, master_key, nonce)
        dst = src.with_suffix(ENCRYPTED_EXT)
        dst.write_bytes(ciphertext)
        asset.segments.append(SegmentRecord(
            original=src.name,
            encrypted=dst.name,
            nonce=b64(nonce),
            size=len(plaintext),
            encrypted_size=len(ciphertext),
        ))
        logger.debug("Encrypted: %s -> %s", src.name, dst.name)
    return asset


def build_manifest(
    asset: EncryptedAsset,
    segment_duration: float,
    codec: Optional[ManifestCodec] = None,
) -> str:
    codec = codec or ManifestCodec()
    refs = [SegmentRef(reference=s.encrypted, nonce=ub64(s.nonce), duration=segment_duration)
            for s in asset.segments]
    return codec.render(refs, asset.key, method=asset.method)


def build_metadata(asset: EncryptedAsset) -> EncryptionMetadata:
    return EncryptionMetadata(
        master_key=b64(asset.key),
        segments=asset.segments,
        algorithm=asset.algorithm,
        created=dt.datetime.now(dt.timezone.utc).isoformat(),
    )
