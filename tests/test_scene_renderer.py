from __future__ import annotations

import io
import threading
import time
import unittest

from PIL import Image
import torch

from easel_core.core.errors import ImageLoadError
from easel_core.core.scene_store import SceneStore
from easel_core.render.image_source import ImageLoader
from easel_core.render.scene_renderer import SceneRenderer
from easel_core.render.surface import MatrixSurface


WHITE = (255, 255, 255, 255)
PLACEHOLDER = (204, 204, 204, 255)


def _png(color: tuple[int, int, int, int], size: tuple[int, int] = (2, 2)) -> bytes:
    out = io.BytesIO()
    Image.new("RGBA", size, color).save(out, format="PNG")
    return out.getvalue()


def _unreachable(url: str, timeout_s: float, max_bytes: int) -> bytes:
    raise ImageLoadError(f"unreachable: {url}")


def _px(frame: torch.Tensor, x: int, y: int) -> tuple[int, ...]:
    return tuple(int(v) for v in frame[y, x].tolist())


class _RecordingSurface(MatrixSurface):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    def reset(self, width: int, height: int) -> None:
        self.calls.append(f"reset:{width}x{height}")
        super().reset(width, height)

    def fill_rect(self, x, y, width, height, color) -> None:
        self.calls.append(f"fill_rect:{x},{y},{width},{height}")
        super().fill_rect(x, y, width, height, color)

    def fill_ellipse(self, cx, cy, rx, ry, color) -> None:
        self.calls.append(f"fill_ellipse:{cx},{cy},{rx},{ry}")
        super().fill_ellipse(cx, cy, rx, ry, color)

    def draw_baseline_text(self, x, baseline_y, text, *, font_family, font_size, color) -> None:
        self.calls.append(f"text:{x},{baseline_y},{text}")
        super().draw_baseline_text(
            x, baseline_y, text, font_family=font_family, font_size=font_size, color=color
        )


class SceneRendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.loader = ImageLoader(timeout_s=1.0, fetcher=_unreachable)
        self.renderer = SceneRenderer(self.loader)

    def tearDown(self) -> None:
        self.loader.close()

    def test_empty_scene_is_opaque_white_of_scene_size(self) -> None:
        frame = self.renderer.render_to_tensor(SceneStore(64, 48).snapshot())
        self.assertEqual(tuple(frame.shape), (48, 64, 4))
        self.assertTrue(torch.all(frame == 255))

    def test_surface_is_reset_then_filled_white_before_elements(self) -> None:
        store = SceneStore(50, 40)
        store.add_rectangle({"x": 1, "y": 2, "width": 3, "height": 4})
        surface = _RecordingSurface()
        self.renderer.render(store.snapshot(), surface)
        self.assertEqual(surface.calls[:3], ["reset:50x40", "fill_rect:0,0,50,40", "fill_rect:1,2,3,4"])

    def test_later_elements_win_in_overlap(self) -> None:
        store = SceneStore(120, 120)
        store.add_rectangle({"x": 10, "y": 10, "width": 60, "height": 60, "fillColor": "#ff0000"})
        store.add_rectangle({"x": 40, "y": 40, "width": 60, "height": 60, "fillColor": "#0000ff"})
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 55, 55), (0, 0, 255, 255))
        self.assertEqual(_px(frame, 25, 25), (255, 0, 0, 255))

    def test_circle_is_centred_on_bounding_box(self) -> None:
        store = SceneStore(200, 200)
        store.add_circle({"x": 0, "y": 0, "radius": 50, "fillColor": "#00ff00", "strokeColor": "#00ff00"})
        surface = _RecordingSurface()
        self.renderer.render(store.snapshot(), surface)
        frame = surface.to_tensor()
        self.assertIn("fill_ellipse:50,50,50,50", surface.calls)
        self.assertEqual(_px(frame, 50, 50), (0, 255, 0, 255))
        self.assertEqual(_px(frame, 1, 1), WHITE)
        self.assertEqual(_px(frame, 120, 50), WHITE)

    def test_text_baseline_is_offset_by_font_size(self) -> None:
        store = SceneStore(200, 100)
        store.add_text({"x": 10, "y": 20, "text": "EASEL", "fontSize": 30})
        surface = _RecordingSurface()
        self.renderer.render(store.snapshot(), surface)
        self.assertIn("text:10,50,EASEL", surface.calls)
        frame = surface.to_tensor()
        dark_rows = torch.nonzero(frame[:, :, 0] < 128)[:, 0]
        self.assertGreater(dark_rows.numel(), 0)
        self.assertGreaterEqual(int(dark_rows.min().item()), 20)

    def test_out_of_bounds_geometry_is_not_an_error(self) -> None:
        store = SceneStore(30, 30)
        store.add_rectangle({"x": -20, "y": -20, "width": 30, "height": 30, "fillColor": "#ff0000"})
        store.add_circle({"x": 500, "y": 500, "radius": 10})
        store.add_text({"x": -1000, "y": 5, "text": "off"})
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 0, 0), (255, 0, 0, 255))
        self.assertEqual(_px(frame, 25, 25), WHITE)

    def test_embedded_image_is_stretched_into_box(self) -> None:
        store = SceneStore(60, 60)
        store.add_image({"x": 10, "y": 20, "width": 30, "height": 15, "imageData": _png((200, 0, 200, 255))})
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 10, 20), (200, 0, 200, 255))
        self.assertEqual(_px(frame, 39, 34), (200, 0, 200, 255))
        self.assertEqual(_px(frame, 40, 34), WHITE)
        self.assertEqual(_px(frame, 39, 35), WHITE)

    def test_unreachable_url_draws_gray_placeholder_with_caption(self) -> None:
        store = SceneStore(300, 200)
        store.add_image({"x": 20, "y": 30, "width": 200, "height": 100, "imageUrl": "https://example.invalid/a.png"})
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 20, 30), PLACEHOLDER)
        self.assertEqual(_px(frame, 219, 129), PLACEHOLDER)
        self.assertEqual(_px(frame, 220, 129), WHITE)
        self.assertEqual(_px(frame, 19, 30), WHITE)
        caption = frame[30:50, 20:220, 0]
        self.assertTrue(bool((caption < 150).any()))

    def test_undecodable_embedded_image_uses_placeholder(self) -> None:
        store = SceneStore(50, 50)
        store.add_image({"x": 0, "y": 0, "width": 50, "height": 50, "imageData": b"definitely not an image"})
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 49, 49), PLACEHOLDER)

    def test_slow_fetch_is_bounded_by_timeout(self) -> None:
        def slow(url: str, timeout_s: float, max_bytes: int) -> bytes:
            time.sleep(2.0)
            return _png((0, 0, 0, 255))

        loader = ImageLoader(timeout_s=0.2, fetcher=slow)
        try:
            store = SceneStore(40, 40)
            store.add_image({"width": 40, "height": 40, "imageUrl": "https://example.invalid/slow.png"})
            started = time.monotonic()
            frame = SceneRenderer(loader).render_to_tensor(store.snapshot())
            elapsed = time.monotonic() - started
        finally:
            loader.close()
        self.assertLess(elapsed, 1.5)
        self.assertEqual(_px(frame, 39, 39), PLACEHOLDER)

    def test_successful_remote_fetch_draws_image(self) -> None:
        payload = _png((10, 20, 30, 255))
        loader = ImageLoader(timeout_s=1.0, fetcher=lambda url, timeout_s, max_bytes: payload)
        try:
            store = SceneStore(20, 20)
            store.add_image({"width": 10, "height": 10, "imageUrl": "https://example.invalid/ok.png"})
            frame = SceneRenderer(loader).render_to_tensor(store.snapshot())
        finally:
            loader.close()
        self.assertEqual(_px(frame, 5, 5), (10, 20, 30, 255))

    def test_overrunning_fetches_do_not_starve_the_next_render(self) -> None:
        payload = _png((10, 20, 30, 255))
        release = threading.Event()

        def fetcher(url: str, timeout_s: float, max_bytes: int) -> bytes:
            if "hang" in url:
                release.wait(3.0)
            return payload

        loader = ImageLoader(timeout_s=0.3, max_workers=4, fetcher=fetcher)
        renderer = SceneRenderer(loader)
        try:
            stalled = SceneStore(40, 10)
            for i in range(4):
                stalled.add_image(
                    {"x": i * 10, "y": 0, "width": 10, "height": 10, "imageUrl": f"https://example.invalid/hang-{i}.png"}
                )
            frame = renderer.render_to_tensor(stalled.snapshot())
            self.assertEqual(_px(frame, 1, 1), PLACEHOLDER)

            store = SceneStore(20, 20)
            store.add_image({"width": 10, "height": 10, "imageUrl": "https://example.invalid/ok.png"})
            frame = renderer.render_to_tensor(store.snapshot())
        finally:
            release.set()
            loader.close()
        self.assertEqual(_px(frame, 5, 5), (10, 20, 30, 255))

    def test_fractional_rgba_fill_blends_over_white(self) -> None:
        store = SceneStore(20, 20)
        store.add_rectangle(
            {"x": 0, "y": 0, "width": 20, "height": 20, "fillColor": "rgba(255, 0, 0, 0.5)", "strokeWidth": 0}
        )
        frame = self.renderer.render_to_tensor(store.snapshot())
        self.assertEqual(_px(frame, 10, 10), (255, 127, 127, 255))

    def test_render_is_idempotent(self) -> None:
        store = SceneStore(160, 120)
        store.add_rectangle({"x": 5, "y": 5, "width": 80, "height": 40, "fillColor": "rgba(255, 0, 0, 128)"})
        store.add_circle({"x": 40, "y": 30, "radius": 30, "fillColor": "#00ff0080", "strokeWidth": 3})
        store.add_text({"x": 10, "y": 70, "text": "repeat", "fontSize": 18, "color": "#333"})
        store.add_image({"x": 90, "y": 60, "width": 60, "height": 50, "imageUrl": "https://example.invalid/x.png"})
        snapshot = store.snapshot()
        first = self.renderer.render_to_tensor(snapshot)
        second = self.renderer.render_to_tensor(snapshot)
        self.assertTrue(torch.equal(first, second))


if __name__ == "__main__":
    unittest.main()
