"""Qt asset loader - downloads emote images and decodes them for painting."""

import asyncio
import logging
import queue

import aiohttp
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QObject, QThread, Signal
from PySide6.QtGui import QMovie, QPixmap

logger = logging.getLogger(__name__)

CONCURRENT_EMOTE_DOWNLOADS = 10
DOWNLOAD_TIMEOUT_SECONDS = 10


class EmoteAsset(QObject):
    """A static or animated image that may still be downloading."""

    loaded = Signal()

    def __init__(self, url: str, animated: bool, parent: QObject | None = None):
        super().__init__(parent)
        self.url = url
        self.animated = animated
        self.failed = False
        self._pixmap: QPixmap | None = None
        self._movie: QMovie | None = None
        # QMovie reads from the buffer lazily; both must outlive it
        self._bytes: QByteArray | None = None
        self._buffer: QBuffer | None = None

    @property
    def is_ready(self) -> bool:
        return self._pixmap is not None or self._movie is not None

    def current_pixmap(self) -> QPixmap | None:
        """The frame to draw right now, or None while loading."""
        if self._movie is not None:
            return self._movie.currentPixmap()
        return self._pixmap

    def set_data(self, data: bytes) -> None:
        """Decode downloaded bytes. Must run on the main thread."""
        if self.animated and self._start_movie(data):
            self.loaded.emit()
            return

        pixmap = QPixmap()
        if not pixmap.loadFromData(data) or pixmap.isNull():
            logger.debug(f"Could not decode emote image: {self.url}")
            self.failed = True
            return
        self._pixmap = pixmap
        self.loaded.emit()

    def _start_movie(self, data: bytes) -> bool:
        self._bytes = QByteArray(data)
        self._buffer = QBuffer(self._bytes, self)
        self._buffer.open(QIODevice.OpenModeFlag.ReadOnly)
        movie = QMovie(self._buffer, QByteArray(), self)
        if not movie.isValid():
            self._buffer.close()
            self._buffer = None
            self._bytes = None
            return False
        movie.setCacheMode(QMovie.CacheMode.CacheAll)
        movie.start()
        self._movie = movie
        return True


class QtAssetLoader(QObject):
    """AssetLoader that downloads in a worker thread and decodes on the main thread."""

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)
        self._assets: dict[str, list[EmoteAsset]] = {}
        self._worker = EmoteDownloadWorker(parent=self)
        self._worker.bytes_ready.connect(self._on_bytes_ready)
        self._worker.download_failed.connect(self._on_download_failed)
        self._worker.start()

    def load_static(self, url: str) -> EmoteAsset:
        return self._load(url, animated=False)

    def load_animated(self, url: str) -> EmoteAsset:
        return self._load(url, animated=True)

    def _load(self, url: str, animated: bool) -> EmoteAsset:
        asset = EmoteAsset(url, animated, parent=self)
        pending = self._assets.setdefault(url, [])
        pending.append(asset)
        if len(pending) == 1:
            self._worker.enqueue(url)
        return asset

    def _on_bytes_ready(self, url: str, data: bytes) -> None:
        for asset in self._assets.pop(url, []):
            asset.set_data(data)

    def _on_download_failed(self, url: str, reason: str) -> None:
        logger.debug(f"Emote download failed ({reason}): {url}")
        for asset in self._assets.pop(url, []):
            asset.failed = True

    def stop(self) -> None:
        """Stop the download worker."""
        self._worker.stop()
        self._worker.wait(2000)


class EmoteDownloadWorker(QThread):
    """Worker thread for downloading emote images.

    Processes a queue of URLs, downloads them via aiohttp and emits raw
    bytes. Decoding happens on the main thread.
    """

    bytes_ready = Signal(str, bytes)  # url, raw_data
    download_failed = Signal(str, str)  # url, reason

    def __init__(self, parent: QObject | None = None):
        super().__init__(parent)
        self._queue: queue.Queue[str] = queue.Queue()
        self._should_stop = False

    def enqueue(self, url: str) -> None:
        """Add an image to the download queue."""
        self._queue.put(url)

    def stop(self) -> None:
        """Stop the worker."""
        self._should_stop = True

    def run(self) -> None:
        """Process the download queue."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._process_queue())
        finally:
            loop.close()

    async def _process_queue(self) -> None:
        """Download images from the queue with concurrent requests."""
        sem = asyncio.Semaphore(CONCURRENT_EMOTE_DOWNLOADS)
        timeout = aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT_SECONDS)
        async with aiohttp.ClientSession() as session:
            tasks: set[asyncio.Task] = set()

            while not self._should_stop or tasks:
                # Drain available items from queue (non-blocking)
                if not self._should_stop:
                    while True:
                        try:
                            url = self._queue.get_nowait()
                        except queue.Empty:
                            break
                        task = asyncio.create_task(self._download_one(session, sem, timeout, url))
                        tasks.add(task)
                        task.add_done_callback(tasks.discard)

                if tasks:
                    await asyncio.wait(tasks, timeout=0.15, return_when=asyncio.FIRST_COMPLETED)
                elif not self._should_stop:
                    await asyncio.sleep(0.1)

    async def _download_one(self, session, sem, timeout, url: str) -> None:
        """Download a single image."""
        async with sem:
            try:
                async with session.get(url, timeout=timeout) as resp:
                    if resp.status != 200:
                        self.download_failed.emit(url, f"http {resp.status}")
                        return
                    data = await resp.read()
                    if not data:
                        self.download_failed.emit(url, "empty")
                        return
                    self.bytes_ready.emit(url, data)
            except Exception as e:
                logger.debug(f"Failed to download {url}: {e!r}")
                self.download_failed.emit(url, "exception")
