# enchls/errors.py
"""Exception taxonomy for the segment encryption protocol."""


class SegmentStreamError(Exception):
    """Base exception for enchls."""


# ---------- key material / cipher ----------

class MalformedKeyMaterial(SegmentStreamError, ValueError):
    """Key or nonce has the wrong length. Configuration bug, never retried."""


class IntegrityError(SegmentStreamError):
    """AEAD tag did not verify: tampered, truncated, or wrong key/nonce/aad."""


# ---------- manifest ----------

class ManifestError(SegmentStreamError):
    """Raised when an extended manifest cannot be parsed."""


class KeyNotFound(ManifestError):
    """No key directive. Callers treat the manifest as unencrypted."""

    def __init__(self, manifest: str):
        super().__init__("Encryption key not found in playlist")
        self.manifest = manifest

    @property
    def cleaned_manifest(self) -> str:
        # nothing proprietary to strip
        return self.manifest


class TruncatedNonceDirective(ManifestError):
    """A nonce directive is the last non-blank line of the manifest."""


class MalformedManifest(ManifestError):
    """Duplicate or misplaced key directive, or undecodable key payload."""


class UnsupportedMethod(ManifestError):
    """Key directive names a METHOD this codec has no cipher for."""


# ---------- loader ----------

class LoaderError(SegmentStreamError):
    """Raised by the streaming decrypt loader for a single fetch."""


class NonceNotFound(LoaderError):
    def __init__(self, segment: str):
        super().__init__(f"Nonce not found for segment: {segment}")
        self.segment = segment


class KeyUnavailable(LoaderError):
    def __init__(self):
        super().__init__("Decryption key not available")


class NetworkError(LoaderError):
    """Non-2xx HTTP status."""

    def __init__(self, status_code: int, reason: str = ""):
        text = f"HTTP {status_code}"
        if reason:
            text = f"{text} {reason}"
        super().__init__(text)
        self.status_code = status_code


class TransportError(LoaderError):
    """No response at all (connection refused, DNS, timeout, reset)."""


# ---------- processing ----------

class TranscodeError(SegmentStreamError):
    """ffmpeg could not be started or exited non-zero, or produced no segments."""


__all__ = [
    "SegmentStreamError",
    "MalformedKeyMaterial", "IntegrityError",
    "ManifestError", "KeyNotFound", "TruncatedNonceDirective",
    "MalformedManifest", "UnsupportedMethod",
    "LoaderError", "NonceNotFound", "KeyUnavailable",
    "NetworkError", "TransportError",
    "TranscodeError",
]
