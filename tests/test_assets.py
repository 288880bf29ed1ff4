import io
import logging
import threading

from PIL import Image

from flyerstamp import assets
from flyerstamp.assets import ASSET_FAILED, ASSET_PENDING, ASSET_READY, AssetLoader


def _png_bytes(size=(12, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "green").save(buffer, format="PNG")
    return buffer.getvalue()


def test_load_decodes_to_rgba() -> None:
    with AssetLoader() as loader:
        asset = loader.load("bg", _png_bytes())
        assert loader.wait(["bg"], timeout=5)
        assert asset.status == ASSET_READY
        assert asset.image.mode == "RGBA"
        assert asset.image.size == (12, 8)
        assert loader.errors() == {}


def test_failed_load_reads_as_absent(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="flyerstamp.assets"):
        with AssetLoader() as loader:
            asset = loader.load("photo", b"definitely not an image")
            loader.wait(timeout=5)
            assert asset.status == ASSET_FAILED
            assert asset.image is None
            assert loader.image("photo") is None
            assert "photo" in loader.errors()
            assert loader.all_settled()
    assert any("photo" in record.getMessage() for record in caplog.records)


def test_pending_gate_and_listener(monkeypatch) -> None:
    gate = threading.Event()
    settled: list[str] = []
    real_decode = assets.decode_image

    def slow_decode(source):
        gate.wait(5)
        return real_decode(source)

    monkeypatch.setattr(assets, "decode_image", slow_decode)
    with AssetLoader() as loader:
        done = threading.Event()

        def _listener(key: str) -> None:
            settled.append(key)
            done.set()

        loader.add_listener(_listener)
        asset = loader.load("slow", _png_bytes())
        assert asset.status == ASSET_PENDING
        assert loader.pending() == ["slow"]
        assert not loader.all_settled(["slow"])
        assert loader.all_settled(["other"])

        gate.set()
        assert loader.wait(timeout=5)
        assert done.wait(5)
        assert loader.all_settled()
    assert settled == ["slow"]


def test_reload_replaces_and_discard_removes() -> None:
    with AssetLoader() as loader:
        loader.load("bg", b"broken")
        loader.load("bg", _png_bytes((3, 3)))
        loader.wait(timeout=5)
        assert loader.image("bg").size == (3, 3)

        loader.discard("bg")
        assert loader.get("bg") is None
        assert loader.image("bg") is None
