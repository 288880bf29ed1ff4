from __future__ import annotations

from typing import Iterable


class FlyerStampError(Exception):
    """Base class for engine errors."""


class TemplateFormatError(FlyerStampError, ValueError):
    pass


class InvalidGeometryError(FlyerStampError, ValueError):
    pass


class AssetLoadError(FlyerStampError, RuntimeError):
    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"failed to load asset {key!r}: {reason}")
        self.key = key
        self.reason = reason


class ExportNotReadyError(FlyerStampError, RuntimeError):
    """Raised when a composite is requested while assets are still decoding."""

    def __init__(self, pending: Iterable[str]) -> None:
        self.pending = tuple(pending)
        super().__init__(f"assets still loading: {', '.join(self.pending) or '-'}")
