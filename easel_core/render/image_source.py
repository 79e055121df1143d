from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
import io
import logging
import threading
import time
from typing import Callable, Iterable
import urllib.error
import urllib.request

from PIL import Image

from easel_core.core.elements import ImageElement
from easel_core.core.errors import ImageLoadError, InvalidValueError


LOGGER = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_S = 5.0
DEFAULT_FETCH_WORKERS = 4
DEFAULT_MAX_REMOTE_IMAGE_BYTES = 10 * 1024 * 1024
USER_AGENT = "easel-canvas/0.1"
FETCH_CHUNK_BYTES = 64 * 1024

Fetcher = Callable[[str, float, int], bytes]


def decode_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return image.convert("RGBA")
    except Exception as exc:  # noqa: BLE001
        raise ImageLoadError(f"image decode failed: {exc}") from exc


def fetch_url(url: str, timeout_s: float, max_bytes: int) -> bytes:
    """Download ``url`` within ``timeout_s`` in total.

    ``urlopen`` only bounds each socket operation, so the body is read in
    chunks and the download is abandoned once the deadline passes.
    """
    deadline = time.monotonic() + timeout_s
    req = urllib.request.Request(url=url, headers={"User-Agent": USER_AGENT}, method="GET")
    chunks: list[bytes] = []
    size = 0
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            while True:
                if time.monotonic() > deadline:
                    raise ImageLoadError(f"timed out after {timeout_s:.1f}s fetching {url}")
                chunk = resp.read1(FETCH_CHUNK_BYTES)
                if not chunk:
                    break
                chunks.append(chunk)
                size += len(chunk)
                if size > max_bytes:
                    raise ImageLoadError(f"remote image exceeds {max_bytes} bytes: {url}")
    except urllib.error.HTTPError as exc:
        raise ImageLoadError(f"http {exc.code} fetching {url}") from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise ImageLoadError(f"could not fetch {url}: {exc}") from exc
    return b"".join(chunks)


def normalize_upload(data: bytes, width: int, height: int) -> bytes:
    """Decode an uploaded image, resize it to its draw box and re-encode as PNG."""
    try:
        image = decode_image(data)
    except ImageLoadError as exc:
        raise InvalidValueError("uploaded file is not a decodable image", field="image") from exc
    out = io.BytesIO()
    image.resize((width, height), Image.Resampling.BILINEAR).save(out, format="PNG")
    return out.getvalue()


@dataclass(eq=False)
class PendingImages:
    """Remote fetches started ahead of painting, sharing one deadline.

    Each batch owns its worker pool, so a fetch that overruns its deadline
    only occupies a thread of the batch that started it.
    """

    deadline: float
    futures: dict[str, Future[bytes]] = field(default_factory=dict)
    executor: ThreadPoolExecutor | None = None

    def remaining_s(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    def close(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)


class ImageLoader:
    """Resolves image elements to decoded pixels with bounded remote I/O."""

    def __init__(
        self,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        max_workers: int = DEFAULT_FETCH_WORKERS,
        max_bytes: int = DEFAULT_MAX_REMOTE_IMAGE_BYTES,
        fetcher: Fetcher = fetch_url,
    ) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        self._timeout_s = timeout_s
        self._max_workers = max_workers
        self._max_bytes = max_bytes
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._active: set[PendingImages] = set()

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def prefetch(self, elements: Iterable[ImageElement]) -> PendingImages:
        pending = PendingImages(deadline=time.monotonic() + self._timeout_s)
        urls: list[str] = []
        for element in elements:
            url = element.image_url
            if element.image_data or not url or url in urls:
                continue
            urls.append(url)
        if not urls:
            return pending
        workers = min(self._max_workers, len(urls))
        pending.executor = ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="easel-image-fetch",
        )
        LOGGER.debug("prefetching %d remote image(s) with %d worker(s)", len(urls), workers)
        for url in urls:
            pending.futures[url] = pending.executor.submit(self._fetcher, url, self._timeout_s, self._max_bytes)
        with self._lock:
            self._active.add(pending)
        return pending

    def release(self, pending: PendingImages) -> None:
        """Cancel queued fetches of a finished batch and forget it."""
        with self._lock:
            self._active.discard(pending)
        pending.close()

    def load(self, element: ImageElement, pending: PendingImages | None = None) -> Image.Image:
        if element.image_data:
            return decode_image(element.image_data)
        url = element.image_url
        if not url:
            raise ImageLoadError("image element has neither data nor url")
        if pending is not None and url in pending.futures:
            return decode_image(self._await(url, pending))
        own = self.prefetch([element])
        try:
            return decode_image(self._await(url, own))
        finally:
            self.release(own)

    def close(self) -> None:
        with self._lock:
            active = list(self._active)
            self._active.clear()
        for pending in active:
            pending.close()

    def _await(self, url: str, pending: PendingImages) -> bytes:
        future = pending.futures[url]
        try:
            return future.result(timeout=pending.remaining_s())
        except FutureTimeoutError as exc:
            future.cancel()
            raise ImageLoadError(f"timed out after {self._timeout_s:.1f}s fetching {url}") from exc
        except ImageLoadError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ImageLoadError(f"could not fetch {url}: {exc}") from exc
