"""Asynchronous image decoding.

Every background or fill image is decoded by its own future. Load failures
are logged and the asset then reads as absent; callers gate exports on
``all_settled``.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterable

from PIL import Image

from flyerstamp.decoders.image_decoder import ImageSource, decode_image
from flyerstamp.errors import AssetLoadError

LOGGER = logging.getLogger(__name__)

ASSET_PENDING = "pending"
ASSET_READY = "ready"
ASSET_FAILED = "failed"


@dataclass(slots=True)
class Asset:
    key: str
    future: Future

    @property
    def status(self) -> str:
        if not self.future.done():
            return ASSET_PENDING
        if self.future.cancelled() or self.future.exception() is not None:
            return ASSET_FAILED
        return ASSET_READY

    @property
    def image(self) -> Image.Image | None:
        if self.status != ASSET_READY:
            return None
        return self.future.result()

    @property
    def error(self) -> str | None:
        if not self.future.done():
            return None
        if self.future.cancelled():
            return "cancelled"
        exc = self.future.exception()
        if exc is None:
            return None
        if isinstance(exc, AssetLoadError):
            return exc.reason
        return str(exc)


class AssetLoader:
    def __init__(self, max_workers: int | None = None) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="flyerstamp-decode")
        self._assets: dict[str, Asset] = {}
        self._listeners: list[Callable[[str], None]] = []
        self._lock = threading.Lock()

    def __enter__(self) -> AssetLoader:
        return self

    def __exit__(self, *_exc) -> None:
        self.shutdown()

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callback run (on the decode thread) with the key of each settled load."""
        with self._lock:
            self._listeners.append(callback)

    def _decode(self, key: str, source: ImageSource) -> Image.Image:
        try:
            return decode_image(source)
        except Exception as exc:
            LOGGER.warning("image load failed key=%s reason=%s", key, exc)
            raise AssetLoadError(key, str(exc)) from exc

    def _notify(self, key: str, future: Future) -> None:
        with self._lock:
            current = self._assets.get(key)
            listeners = list(self._listeners)
        if current is None or current.future is not future:
            return
        for callback in listeners:
            try:
                callback(key)
            except Exception:
                LOGGER.exception("asset listener failed key=%s", key)

    def load(self, key: str, source: ImageSource) -> Asset:
        """Start decoding ``source`` under ``key``, replacing any earlier load for it."""
        future = self._executor.submit(self._decode, key, source)
        asset = Asset(key=key, future=future)
        with self._lock:
            previous = self._assets.get(key)
            self._assets[key] = asset
        if previous is not None:
            previous.future.cancel()
        future.add_done_callback(lambda done, k=key: self._notify(k, done))
        return asset

    def get(self, key: str) -> Asset | None:
        with self._lock:
            return self._assets.get(key)

    def discard(self, key: str) -> None:
        with self._lock:
            asset = self._assets.pop(key, None)
        if asset is not None:
            asset.future.cancel()

    def image(self, key: str) -> Image.Image | None:
        asset = self.get(key)
        return asset.image if asset is not None else None

    def _select(self, keys: Iterable[str] | None) -> list[Asset]:
        with self._lock:
            if keys is None:
                return list(self._assets.values())
            return [self._assets[key] for key in keys if key in self._assets]

    def pending(self, keys: Iterable[str] | None = None) -> list[str]:
        return [asset.key for asset in self._select(keys) if asset.status == ASSET_PENDING]

    def all_settled(self, keys: Iterable[str] | None = None) -> bool:
        return not self.pending(keys)

    def wait(self, keys: Iterable[str] | None = None, timeout: float | None = None) -> bool:
        """Block until the given loads settle or ``timeout`` elapses; True when all settled."""
        futures = [asset.future for asset in self._select(keys)]
        if futures:
            wait(futures, timeout=timeout)
        return all(future.done() for future in futures)

    def errors(self) -> dict[str, str]:
        result: dict[str, str] = {}
        for asset in self._select(None):
            reason = asset.error
            if reason:
                result[asset.key] = reason
        return result

    def shutdown(self, wait_for_pending: bool = False) -> None:
        self._executor.shutdown(wait=wait_for_pending, cancel_futures=True)
