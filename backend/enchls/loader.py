# enchls/loader.py
"""
Streaming decrypt loader.

The playback engine creates a loader per resource fetch, so loaders carry no
key material of their own. Everything they need lives in a DecryptionSession
that the factory closes over:

    session = DecryptionSession()
    engine_config = {"loader": loader_factory(session, transport)}

A manifest fetch replaces the session keys wholesale; segment fetches only
read them.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

from .crypto import CHACHA20_POLY1305, SegmentCipher
from .errors import (
    KeyNotFound,
    KeyUnavailable,
    MalformedManifest,
    NetworkError,
    NonceNotFound,
)
from .manifest import ManifestCodec, ParsedManifest, is_encrypted_segment, segment_id
from .transport import Transport

logger = logging.getLogger(__name__)

TEXT = "text"
ARRAYBUFFER = "arraybuffer"


# ---------- engine-facing types ----------

@dataclass
class LoaderContext:
    url: str
    response_type: str = ARRAYBUFFER


@dataclass
class LoadingTimes:
    start: float = 0.0
    first: float = 0.0
    end: float = 0.0


@dataclass
class LoaderStats:
    aborted: bool = False
    loaded: int = 0
    total: int = 0
    retry: int = 0
    chunk_count: int = 0
    loading: LoadingTimes = field(default_factory=LoadingTimes)


@dataclass
class LoaderResponse:
    url: str
    data: Union[str, bytes]


@dataclass
class LoaderErrorInfo:
    code: int                        # HTTP status for NetworkError, else 0
    text: str
    error: Optional[BaseException] = None


@dataclass
class LoaderCallbacks:
    on_success: Callable[[LoaderResponse, LoaderStats, LoaderContext], None]
    on_error: Callable[[LoaderErrorInfo, LoaderContext], None]


# ---------- shared session state ----------

@dataclass(frozen=True)
class SessionKeys:
    method: str
    key: Optional[bytes]
    nonces: Mapping[str, bytes]


_EMPTY = SessionKeys(method=CHACHA20_POLY1305, key=None, nonces=MappingProxyType({}))


class DecryptionSession:
    """Key and nonce table for one playback session.

    The whole snapshot is swapped in a single assignment, so a reader that
    grabs `snapshot` once sees either the old asset or the new one, never a mix.
    """

    def __init__(self):
        self._keys = _EMPTY

    @property
    def snapshot(self) -> SessionKeys:
        return self._keys

    @property
    def has_key(self) -> bool:
        return self._keys.key is not None

    def install(self, parsed: ParsedManifest) -> None:
        self._keys = SessionKeys(method=parsed.method, key=parsed.key, nonces=parsed.nonces)
        logger.info("Session keys installed (%s, %d segments)", parsed.method, len(parsed.nonces))

    def clear(self) -> None:
        # Owner only. Loaders never clear: another instance may be mid-decrypt.
        self._keys = _EMPTY


# ---------- loader ----------

class StreamingDecryptLoader:
    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        *,
        session: DecryptionSession,
        transport: Transport,
        codec: Optional[ManifestCodec] = None,
    ):
        self.config = config or {}
        self.session = session
        self.transport = transport
        self.codec = codec or ManifestCodec()
        self.context: Optional[LoaderContext] = None
        self.stats = LoaderStats()
        self._task: Optional[asyncio.Task] = None

    async def fetch(self, context: LoaderContext) -> LoaderResponse:
        """Fetch one resource and return the body the engine should see."""
        result = await self.transport.get(context.url)
        self.stats.loading.first = time.monotonic()
        if not result.ok:
            raise NetworkError(result.status, result.reason)

        self.stats.loaded = self.stats.total = len(result.body)
        if context.response_type == TEXT:
            return self._on_manifest(context.url, result.body)
        if is_encrypted_segment(context.url):
            return self._on_segment(context.url, result.body)
        return LoaderResponse(url=context.url, data=result.body)

    def _on_manifest(self, url: str, body: bytes) -> LoaderResponse:
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedManifest(f"Playlist is not UTF-8: {e}") from e
        try:
            parsed = self.codec.parse(text, base_url=url)
        except KeyNotFound as e:
            logger.warning("No encryption key found, treating as regular playlist: %s", url)
            return LoaderResponse(url=url, data=e.cleaned_manifest)
        self.session.install(parsed)
        return LoaderResponse(url=url, data=parsed.cleaned)

    def _on_segment(self, url: str, body: bytes) -> LoaderResponse:
        name = segment_id(url)
        keys = self.session.snapshot
        nonce = keys.nonces.get(name)
        if nonce is None:
            raise NonceNotFound(name)
        if keys.key is None:
            raise KeyUnavailable()
        plaintext = SegmentCipher(keys.method).decrypt(body, keys.key, nonce)
        logger.debug("Decrypted %s (%d bytes)", name, len(plaintext))
        return LoaderResponse(url=url, data=plaintext)

    # ---------- engine extension point ----------

    def load(self, context: LoaderContext, config: Optional[dict[str, Any]], callbacks: LoaderCallbacks) -> None:
        """Start the fetch on the running event loop and return immediately."""
        self.context = context
        self.stats = LoaderStats()
        self.stats.loading.start = time.monotonic()
        if config:
            self.config = config
        self._task = asyncio.get_running_loop().create_task(self._run(context, callbacks))

    async def _run(self, context: LoaderContext, callbacks: LoaderCallbacks) -> None:
        try:
            response = await self.fetch(context)
        except Exception as e:
            if self.stats.aborted:
                return
            if not isinstance(e, NetworkError):
                logger.error("Error loading %s: %s", context.url, e)
            code = e.status_code if isinstance(e, NetworkError) else 0
            self._notify(context, callbacks.on_error, LoaderErrorInfo(code=code, text=str(e), error=e), context)
            return
        if self.stats.aborted:
            return
        self.stats.loading.end = time.monotonic()
        self._notify(context, callbacks.on_success, response, self.stats, context)

    @staticmethod
    def _notify(context: LoaderContext, callback: Callable[..., None], *args: Any) -> None:
        # nothing awaits the load task, so a raising callback would go unseen
        try:
            callback(*args)
        except Exception:
            logger.exception("Loader callback failed for %s", context.url)

    def abort(self) -> None:
        self.stats.aborted = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def destroy(self) -> None:
        # session state stays: other loader instances may still be using it
        self.abort()
        self._task = None
        self.context = None


def loader_factory(
    session: DecryptionSession,
    transport: Transport,
    codec: Optional[ManifestCodec] = None,
) -> Callable[..., StreamingDecryptLoader]:
    """Constructor the engine can call per resource, bound to one session."""
    def create(config: Optional[dict[str, Any]] = None) -> StreamingDecryptLoader:
        return StreamingDecryptLoader(config, session=session, transport=transport, codec=codec)
    return create
