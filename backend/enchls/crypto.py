# enchls/crypto.py
import base64
import binascii
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from .errors import IntegrityError, MalformedKeyMaterial
from .keys import KEY_SIZE, NONCE_SIZE

TAG_SIZE = 16

CHACHA20_POLY1305 = "CHACHA20-POLY1305"
AES_256_GCM = "AES-256-GCM"

_AEADS = {
    CHACHA20_POLY1305: ChaCha20Poly1305,
    AES_256_GCM: AESGCM,
}

# identifier recorded in the side-channel metadata
ALGORITHM_IDS = {
    CHACHA20_POLY1305: "chacha20-poly1305",
    AES_256_GCM: "aes-256-gcm",
}

SUPPORTED_METHODS = tuple(_AEADS)


def _check_lengths(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_SIZE:
        raise MalformedKeyMaterial(f"Invalid key size: expected {KEY_SIZE} bytes, got {len(key)}")
    if len(nonce) != NONCE_SIZE:
        raise MalformedKeyMaterial(f"Invalid nonce size: expected {NONCE_SIZE} bytes, got {len(nonce)}")


class SegmentCipher:
    """AEAD over one opaque segment. ciphertext = plaintext + 16-byte tag."""

    def __init__(self, method: str = CHACHA20_POLY1305):
        method = method.strip().upper()
        if method not in _AEADS:
            raise ValueError(f"Unsupported cipher method '{method}'")
        self.method = method
        self._aead_cls = _AEADS[method]

    @property
    def algorithm(self) -> str:
        return ALGORITHM_IDS[self.method]

    def encrypt(self, plaintext: bytes, key: bytes, nonce: bytes, aad: bytes | None = None) -> bytes:
        _check_lengths(key, nonce)
        return self._aead_cls(key).encrypt(nonce, plaintext, aad or None)

    def decrypt(self, ciphertext: bytes, key: bytes, nonce: bytes, aad: bytes | None = None) -> bytes:
        _check_lengths(key, nonce)
        if len(ciphertext) < TAG_SIZE:
            raise IntegrityError(f"Ciphertext too short: {len(ciphertext)} bytes")
        try:
            return self._aead_cls(key).decrypt(nonce, ciphertext, aad or None)
        except InvalidTag as e:
            raise IntegrityError("Authentication tag mismatch") from e


# ---------- transport encoding ----------

_WS_RE = re.compile(r"\s+")
_URLSAFE = str.maketrans("-_", "+/")

def b64(x: bytes) -> str:
    return base64.b64encode(x).decode("ascii")

def ub64(s: str) -> bytes:
    """Decode standard or URL-safe base64, padded or not, ignoring whitespace.

    Raises ValueError when the input is not base64 in either alphabet.
    """
    s = _WS_RE.sub("", s).translate(_URLSAFE).rstrip("=")
    if len(s) % 4 == 1:
        raise ValueError("invalid base64 length")
    s += "=" * (-len(s) % 4)
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64: {e}") from e
