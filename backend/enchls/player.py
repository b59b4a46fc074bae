# enchls/player.py
import asyncio
import enum
from collections import deque
import logging
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urljoin

from . import config
from .errors import LoaderError, NetworkError, SegmentStreamError, TransportError
from .loader import (
    ARRAYBUFFER,
    TEXT,
    DecryptionSession,
    LoaderCallbacks,
    LoaderContext,
    LoaderResponse,
    loader_factory,
)
from .manifest import ManifestCodec
from .transport import Transport

logger = logging.getLogger(__name__)

SegmentSink = Callable[[int, str, bytes], None]

# statuses worth another attempt; everything else 4xx is final
_RETRYABLE_STATUS = {408, 425, 429}


class PlayerState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


def segment_urls(playlist: str, base_url: str) -> list[str]:
    """Resolve every URI line of a standard media playlist against base_url."""
    urls = []
    for raw in playlist.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            urls.append(urljoin(base_url, line))
    return urls


def is_transient(error: BaseException) -> bool:
    if isinstance(error, TransportError):
        return True
    if isinstance(error, NetworkError):
        return error.status_code >= 500 or error.status_code in _RETRYABLE_STATUS
    return False


class PlaybackSession:
    """Headless player: drives the decrypt loader the way a playback engine does.

    State machine: idle -> loading -> loaded | error. Transient network errors
    are retried here; decode and decrypt errors are fatal.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        codec: Optional[ManifestCodec] = None,
        *,
        prefetch: int = config.PREFETCH_WINDOW,
        max_retries: int = config.MAX_RETRIES,
        retry_delay: float = config.RETRY_DELAY,
    ):
        self.transport = transport or Transport(timeout=config.FETCH_TIMEOUT)
        self.codec = codec or ManifestCodec(config.CONTENT_BASE_URL)
        self.session = DecryptionSession()
        self.engine_config = {
            "loader": loader_factory(self.session, self.transport, self.codec),
            "prefetch": max(1, prefetch),
            "max_retries": max_retries,
            "retry_delay": retry_delay,
        }
        self.state = PlayerState.IDLE
        self.error: Optional[str] = None
        self.segments_loaded = 0

    # ---------- fetch with engine-side retry ----------

    async def _load(self, url: str, response_type: str) -> LoaderResponse:
        attempt = 0
        while True:
            loader = self.engine_config["loader"]({})
            future = asyncio.get_running_loop().create_future()

            def on_success(response, stats, context):
                if not future.done():
                    future.set_result(response)

            def on_error(info, context):
                if not future.done():
                    future.set_exception(info.error or LoaderError(info.text))

            loader.load(LoaderContext(url=url, response_type=response_type), {}, LoaderCallbacks(on_success, on_error))
            loader.stats.retry = attempt
            try:
                return await future
            except SegmentStreamError as e:
                if attempt >= self.engine_config["max_retries"] or not is_transient(e):
                    raise
                attempt += 1
                logger.warning("Network error for %s (%s), retry %d", url, e, attempt)
                await asyncio.sleep(self.engine_config["retry_delay"])
            finally:
                loader.destroy()

    # ---------- public API ----------

    async def load_playlist(self, url: str, on_segment: Optional[SegmentSink] = None) -> int:
        """Load a manifest, then fetch and decrypt every segment in playlist order.

        Returns the number of segments delivered. On a fatal error the state
        becomes ERROR and the error is re-raised.
        """
        self.state = PlayerState.LOADING
        self.error = None
        self.segments_loaded = 0
        pending: deque[tuple[int, str, asyncio.Task]] = deque()
        try:
            manifest = await self._load(url, TEXT)
            self.state = PlayerState.LOADED
            urls = segment_urls(manifest.data, url)
            logger.info("Playlist loaded: %s (%d segments)", url, len(urls))

            # at most `prefetch` segments are in flight or buffered ahead of delivery
            window = self.engine_config["prefetch"]
            upcoming = iter(enumerate(urls))

            def schedule() -> None:
                while len(pending) < window:
                    item = next(upcoming, None)
                    if item is None:
                        return
                    index, seg_url = item
                    task = asyncio.ensure_future(self._load(seg_url, ARRAYBUFFER))
                    pending.append((index, seg_url, task))

            schedule()
            while pending:
                index, seg_url, task = pending.popleft()
                response = await task
                self.segments_loaded += 1
                if on_segment is not None:
                    on_segment(index, seg_url, response.data)
                schedule()
            return self.segments_loaded
        except SegmentStreamError as e:
            self.state = PlayerState.ERROR
            self.error = str(e)
            logger.error("Playback failed: %s", e)
            raise
        except Exception as e:
            self.state = PlayerState.ERROR
            self.error = str(e) or type(e).__name__
            logger.exception("Playback failed due to unexpected error")
            raise
        finally:
            for _, _, task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*(task for _, _, task in pending), return_exceptions=True)

    async def load_file(self, path, on_segment: Optional[SegmentSink] = None) -> int:
        """Play a manifest from a local file; its segments still come from the network."""
        data = Path(path).read_bytes()
        url = self.transport.blobs.register(data)
        try:
            return await self.load_playlist(url, on_segment)
        finally:
            self.transport.blobs.revoke(url)

    def destroy(self) -> None:
        self.session.clear()
        self.state = PlayerState.IDLE
        self.error = None

    async def aclose(self) -> None:
        self.destroy()
        await self.transport.aclose()
