import math

import numpy as np
import pytest

from fisheye_panorama.math import mapping
from fisheye_panorama.math.projection import get_projection_strategy
from fisheye_panorama.models.camera_state import ProjectionType

VIEW_W, VIEW_H = 800, 600
IMAGE_W, IMAGE_H = 4096, 2048
FOV = math.radians(90.0)


def test_center_pixel_samples_image_center():
    x, y = mapping.project_to_source(
        VIEW_W / 2, VIEW_H / 2, VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, 0.0, 0.0, 1.0, FOV
    )
    assert x == pytest.approx(IMAGE_W / 2)
    assert y == pytest.approx(IMAGE_H / 2)


def test_yaw_moves_center_sample_horizontally():
    x, y = mapping.project_to_source(
        VIEW_W / 2, VIEW_H / 2, VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, math.pi / 2, 0.0, 1.0, FOV
    )
    assert x == pytest.approx(IMAGE_W * 0.75)
    assert y == pytest.approx(IMAGE_H / 2)


def test_latitude_is_clamped_at_the_pole():
    _, y = mapping.project_to_source(
        VIEW_W / 2, VIEW_H - 1, VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, 0.0, math.pi / 2, 1.0, FOV
    )
    assert y == pytest.approx(IMAGE_H)


def test_longitude_wraps_across_the_seam():
    x, _ = mapping.project_to_source(
        VIEW_W / 2 + 40, VIEW_H / 2, VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, math.pi, 0.0, 1.0, FOV
    )
    # Just right of the seam lands near the left edge of the image.
    assert 0.0 <= x < IMAGE_W * 0.1


def test_zoom_narrows_the_visible_window():
    args = (VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, 0.0, 0.0)
    wide_x, _ = mapping.project_to_source(VIEW_W - 1, VIEW_H / 2, *args, 1.0, FOV, ProjectionType.EQUIDISTANT)
    tight_x, _ = mapping.project_to_source(VIEW_W - 1, VIEW_H / 2, *args, 2.0, FOV, ProjectionType.EQUIDISTANT)
    assert IMAGE_W / 2 < tight_x < wide_x


@pytest.mark.parametrize("projection_type", list(ProjectionType))
def test_project_to_viewport_recovers_viewport_pixel(projection_type):
    yaw, pitch, zoom = 0.3, 0.2, 1.25
    for x, y in [(400.0, 300.0), (250.0, 180.0), (600.0, 420.0), (100.0, 500.0)]:
        src_x, src_y = mapping.project_to_source(
            x, y, VIEW_W, VIEW_H, IMAGE_W, IMAGE_H, yaw, pitch, zoom, FOV, projection_type
        )
        point = mapping.project_to_viewport(
            src_x, src_y, IMAGE_W, IMAGE_H, VIEW_W, VIEW_H, yaw, pitch, zoom, FOV, projection_type
        )
        assert point is not None
        assert point[0] == pytest.approx(x, abs=1e-6)
        assert point[1] == pytest.approx(y, abs=1e-6)


@pytest.mark.parametrize(
    "projection_type",
    [ProjectionType.STEREOGRAPHIC, ProjectionType.EQUIDISTANT, ProjectionType.EQUISOLID],
)
def test_point_behind_camera_is_not_visible(projection_type):
    point = mapping.project_to_viewport(
        0.0, IMAGE_H / 2, IMAGE_W, IMAGE_H, VIEW_W, VIEW_H, 0.0, 0.0, 1.0, FOV, projection_type
    )
    assert point is None


def _source_x_for_normalized(nx: float) -> float:
    strategy = get_projection_strategy(ProjectionType.EQUIDISTANT)
    theta, _ = strategy.viewport_to_angles(nx, 0.0, FOV, VIEW_W / VIEW_H)
    return (theta + math.pi) / (2 * math.pi) * IMAGE_W


def test_pixel_gate_rejects_points_pushed_out_by_zoom():
    src_x = _source_x_for_normalized(0.5)
    args = (src_x, IMAGE_H / 2, IMAGE_W, IMAGE_H, VIEW_W, VIEW_H, 0.0, 0.0)

    point = mapping.project_to_viewport(*args, 1.0, FOV, ProjectionType.EQUIDISTANT)
    assert point is not None
    assert point[0] == pytest.approx(600.0)
    assert point[1] == pytest.approx(300.0)

    # nx * zoom = 1.5 puts the point 200px right of the viewport.
    assert mapping.project_to_viewport(*args, 3.0, FOV, ProjectionType.EQUIDISTANT) is None


def test_angular_gate_rejects_points_beyond_overscan():
    src_x = _source_x_for_normalized(1.3)
    args = (src_x, IMAGE_H / 2, IMAGE_W, IMAGE_H, VIEW_W, VIEW_H, 0.0, 0.0)
    # With zoom 0.5 the pixel would land inside the viewport, but |nx| > 1.2.
    assert mapping.project_to_viewport(*args, 0.5, FOV, ProjectionType.EQUIDISTANT) is None

    src_x = _source_x_for_normalized(1.1)
    args = (src_x, IMAGE_H / 2, IMAGE_W, IMAGE_H, VIEW_W, VIEW_H, 0.0, 0.0)
    point = mapping.project_to_viewport(*args, 0.5, FOV, ProjectionType.EQUIDISTANT)
    assert point is not None
    assert point[0] == pytest.approx((1.1 * 0.5 + 1.0) / 2.0 * VIEW_W)


@pytest.mark.parametrize("projection_type", list(ProjectionType))
def test_grid_projection_matches_scalar_projection(projection_type):
    width, height = 64, 48
    yaw, pitch, zoom = 2.9, -0.4, 0.8
    grid_x, grid_y = mapping.project_grid_to_source(
        width, height, IMAGE_W, IMAGE_H, yaw, pitch, zoom, FOV, projection_type
    )
    assert grid_x.shape == (height, width)
    for x, y in [(0, 0), (63, 0), (10, 20), (32, 24), (63, 47)]:
        src_x, src_y = mapping.project_to_source(
            x, y, width, height, IMAGE_W, IMAGE_H, yaw, pitch, zoom, FOV, projection_type
        )
        assert grid_x[y, x] == pytest.approx(src_x, abs=1e-6)
        assert grid_y[y, x] == pytest.approx(src_y, abs=1e-6)
    assert np.all((grid_x >= 0.0) & (grid_x <= IMAGE_W))
    assert np.all((grid_y >= 0.0) & (grid_y <= IMAGE_H))
