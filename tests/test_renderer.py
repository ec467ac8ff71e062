import numpy as np
import pytest

from fisheye_panorama.errors import (
    ConfigurationError,
    GeometryError,
    ImageLoadError,
    ImageValidationError,
)
from fisheye_panorama.models.camera_state import RendererConfig
from fisheye_panorama.models.label import Label
from fisheye_panorama.viewer.render_target import ArrayRenderTarget
from fisheye_panorama.viewer.renderer import PanoramaRenderer, RendererCallbacks
from fisheye_panorama.viewer.scheduling import ManualFrameScheduler
from fisheye_panorama.viewer.view_controller import InputData, InputType


class Recorder:
    def __init__(self) -> None:
        self.loads = 0
        self.errors: list[Exception] = []
        self.views = []

    def callbacks(self) -> RendererCallbacks:
        return RendererCallbacks(
            on_load=self._on_load,
            on_error=self.errors.append,
            on_view_change=self.views.append,
        )

    def _on_load(self) -> None:
        self.loads += 1


class NoContextTarget:
    width = 320
    height = 200

    def get_context(self):
        return None

    def resize(self, width, height):
        raise AssertionError("should not be called")


def panorama(width: int = 512, height: int = 256, value: int = 0) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def make_renderer(config=None, provider=None, size=(160, 120)):
    recorder = Recorder()
    scheduler = ManualFrameScheduler()
    kwargs = {"scheduler": scheduler}
    if provider is not None:
        kwargs["image_provider"] = provider
    target = ArrayRenderTarget(*size)
    renderer = PanoramaRenderer(target, config, recorder.callbacks(), **kwargs)
    return renderer, target, scheduler, recorder


def test_construction_requires_drawing_context():
    with pytest.raises(ConfigurationError):
        PanoramaRenderer(NoContextTarget())


@pytest.mark.parametrize(
    "shape, message",
    [((300, 511), "too small"), ((255, 512), "too small"), ((4096, 8193), "too large"), ((4097, 8192), "too large")],
)
def test_load_rejects_out_of_range_dimensions(shape, message):
    renderer, _, _, recorder = make_renderer()
    with pytest.raises(ImageValidationError, match=message):
        renderer.load_image(np.zeros(shape, dtype=np.uint8))
    assert not renderer.has_image
    assert len(recorder.errors) == 1
    assert recorder.loads == 0


def test_load_accepts_boundary_dimensions():
    renderer, _, _, recorder = make_renderer(size=(100, 100))
    renderer.load_image(panorama(512, 256))
    assert renderer.image_size == (512, 256)
    renderer.load_image(np.zeros((4096, 8192), dtype=np.uint8))
    assert renderer.image_size == (8192, 4096)
    assert recorder.loads == 2
    assert recorder.errors == []


def test_failed_load_keeps_previous_image():
    renderer, target, _, recorder = make_renderer()
    renderer.load_image(panorama(value=200))
    before = target.buffer.copy()
    with pytest.raises(ImageValidationError):
        renderer.load_image(panorama(511, 300))
    assert renderer.image_size == (512, 256)
    assert np.array_equal(target.buffer, before)
    assert isinstance(recorder.errors[0], ImageValidationError)


def test_provider_failure_becomes_load_error_with_cors_hint():
    def failing_provider(handle):
        raise OSError("connection refused")

    renderer, _, _, recorder = make_renderer(provider=failing_provider)
    with pytest.raises(ImageLoadError) as info:
        renderer.load_image("https://cdn.example.com/pano.jpg")
    message = str(info.value)
    assert "https://cdn.example.com/pano.jpg" in message
    assert "CORS not configured on cdn.example.com" in message
    assert recorder.errors == [info.value]


def test_provider_is_used_for_non_array_handles():
    calls = []

    def provider(handle):
        calls.append(handle)
        return panorama()

    renderer, _, _, recorder = make_renderer(provider=provider)
    renderer.load_image("local.jpg")
    assert calls == ["local.jpg"]
    assert recorder.loads == 1


def test_load_renders_immediately():
    renderer, target, _, _ = make_renderer()
    renderer.load_image(panorama(value=90))
    assert not renderer.is_dirty
    assert np.all(target.buffer[..., :3] == 90)
    assert np.all(target.buffer[..., 3] == 255)


def test_render_without_image_is_noop():
    renderer, _, _, _ = make_renderer()
    assert renderer.render() is False
    assert renderer.is_dirty


def test_render_is_idempotent_until_state_changes():
    renderer, _, _, _ = make_renderer()
    renderer.load_image(panorama())
    assert renderer.render() is False
    renderer.set_state(yaw=30.0)
    assert renderer.render() is True
    assert renderer.render() is False


def test_mutations_are_coalesced_into_one_frame():
    renderer, _, scheduler, recorder = make_renderer()
    renderer.load_image(panorama())
    for _ in range(3):
        renderer.handle_input(InputType.KEY_DOWN, InputData(key="ArrowRight"))
    renderer.handle_input(InputType.WHEEL, InputData(delta_y=100.0))
    assert scheduler.pending_count == 1
    assert scheduler.run_pending() == 1
    assert len(recorder.views) == 1
    assert recorder.views[0].yaw == 15.0
    assert recorder.views[0].zoom == pytest.approx(0.9)
    assert not renderer.is_dirty


def test_keyboard_end_to_end():
    renderer, _, scheduler, _ = make_renderer(RendererConfig(enable_keyboard=True))
    for _ in range(5):
        renderer.handle_input("key-down", {"key": "ArrowRight"})
    scheduler.run_pending()
    assert renderer.get_state().yaw == 25.0


def test_wheel_end_to_end():
    renderer, _, _, _ = make_renderer(RendererConfig(min_zoom=0.5, max_zoom=3.0))
    renderer.handle_input("wheel", {"deltaY": 100})
    renderer.handle_input("wheel", {"deltaY": -100})
    assert renderer.get_state().zoom == pytest.approx(1.0)


def test_get_state_returns_a_copy():
    renderer, _, _, _ = make_renderer()
    state = renderer.get_state()
    state.yaw = 123.0
    assert renderer.get_state().yaw == 0.0


def test_resize_validates_and_marks_dirty():
    renderer, target, scheduler, _ = make_renderer()
    renderer.load_image(panorama())
    with pytest.raises(GeometryError, match="Canvas too small"):
        renderer.resize(99, 500)
    assert (target.width, target.height) == (160, 120)
    assert not renderer.is_dirty

    renderer.resize(100, 100)
    assert (target.width, target.height) == (100, 100)
    assert renderer.is_dirty
    assert scheduler.pending_count == 1
    scheduler.run_pending()
    assert target.buffer.shape == (100, 100, 4)


def test_set_labels_redraws_overlay():
    renderer, target, scheduler, _ = make_renderer(size=(200, 100))
    renderer.load_image(panorama(value=0))
    assert tuple(target.buffer[50, 100]) == (0, 0, 0, 255)

    renderer.set_labels([Label("center", 236, 108, 40, 40, "Center")])
    assert renderer.is_dirty
    scheduler.run_pending()
    assert target.buffer[50, 100, 0] > 0
    assert [label.id for label in renderer.labels] == ["center"]


def test_destroy_cancels_pending_frame_and_is_idempotent():
    renderer, _, scheduler, recorder = make_renderer()
    renderer.load_image(panorama())
    renderer.handle_input(InputType.KEY_DOWN, InputData(key="ArrowLeft"))
    assert renderer.has_pending_frame
    renderer.destroy()
    assert scheduler.pending_count == 0
    assert not renderer.has_image
    renderer.destroy()
    assert renderer.is_destroyed
    renderer.handle_input(InputType.KEY_DOWN, InputData(key="ArrowLeft"))
    assert scheduler.pending_count == 0
    assert renderer.render() is False
    assert recorder.views == []


def test_report_load_failure_keeps_image():
    renderer, _, _, recorder = make_renderer()
    renderer.load_image(panorama())
    error = renderer.report_load_failure("/missing/pano.jpg", FileNotFoundError("nope"))
    assert isinstance(error, ImageLoadError)
    assert "CORS" not in str(error)
    assert recorder.errors == [error]
    assert renderer.has_image


def test_replacing_the_image_drops_the_cached_snapshot():
    renderer, target, _, _ = make_renderer()
    renderer.load_image(panorama(value=10))
    assert np.all(target.buffer[..., :3] == 10)

    renderer.load_image(panorama(value=200))
    assert np.all(target.buffer[..., :3] == 200)

    renderer.set_state(yaw=90.0)
    renderer.render()
    assert np.all(target.buffer[..., :3] == 200)


def test_non_finite_set_state_keeps_view_valid():
    renderer, _, _, _ = make_renderer()
    renderer.set_state(yaw=float("inf"), pitch=float("nan"))
    state = renderer.get_state()
    assert -180.0 <= state.yaw < 180.0
    assert -90.0 <= state.pitch <= 90.0
