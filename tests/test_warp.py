import numpy as np
import pytest

from cornerpin.compositing.warp import (
    bilinear_sample,
    composite,
    sample_many,
    warp_into_quad,
)
from cornerpin.geometry.errors import SingularMatrixError
from cornerpin.geometry.homography import (
    apply_homography,
    compute_homography,
    identity,
    invert_homography,
)
from cornerpin.geometry.quad import frame_corners

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
RECT = [(5, 5), (25, 5), (25, 25), (5, 25)]


def test_lattice_points_are_exact(rgba_frame):
    h, w = rgba_frame.shape[:2]
    for y in range(h):
        for x in range(w):
            assert bilinear_sample(rgba_frame, x, y) == tuple(int(v) for v in rgba_frame[y, x])


def test_sample_between_pixels():
    img = np.array([[[0, 0, 0, 255], [100, 200, 50, 255]]], dtype=np.uint8)
    assert bilinear_sample(img, 0.5, 0) == (50, 100, 25, 255)
    assert bilinear_sample(img, 0.25, 0) == (25, 50, 13, 255)


def test_sample_rounds_half_up():
    img = np.array([[[0], [1]]], dtype=np.uint8)
    assert bilinear_sample(img, 0.5, 0) == (1,)


def test_sample_interpolates_along_y():
    img = np.array([[[0, 0, 0, 0]], [[40, 80, 120, 160]]], dtype=np.uint8)
    assert bilinear_sample(img, 0, 0.75) == (30, 60, 90, 120)


def test_sample_clamps_outside(rgba_frame):
    h, w = rgba_frame.shape[:2]
    assert bilinear_sample(rgba_frame, -5, -5) == tuple(int(v) for v in rgba_frame[0, 0])
    assert bilinear_sample(rgba_frame, w + 3, h + 10) == tuple(int(v) for v in rgba_frame[-1, -1])


def test_sample_grayscale():
    img = np.array([[0, 10], [20, 30]], dtype=np.uint8)
    assert bilinear_sample(img, 0.5, 0.5) == (15,)


def test_sample_many_shape(rgba_frame):
    xs, ys = np.meshgrid(np.linspace(0, 15, 7), np.linspace(0, 11, 5))
    out = sample_many(rgba_frame, xs, ys)
    assert out.shape == (5, 7, 4)
    assert out[0, 0].tolist() == rgba_frame[0, 0].tolist()


def test_identity_warp_copies_frame(rgba_frame):
    warped, mask = warp_into_quad(rgba_frame, identity(), rgba_frame.shape[:2])
    assert mask.all()
    np.testing.assert_array_equal(warped, rgba_frame)


def test_warp_fills_quad_only(solid):
    frame = solid((10, 10), RED)
    H = compute_homography(frame_corners(10, 10), RECT)
    warped, mask = warp_into_quad(frame, H, (40, 40), corners=RECT)

    assert mask[15, 15]
    assert tuple(warped[15, 15]) == RED
    assert not mask[0, 0]
    assert not mask[35, 35]
    rows, cols = np.nonzero(mask)
    assert rows.min() >= 5 and rows.max() <= 25
    assert cols.min() >= 5 and cols.max() <= 25
    assert not warped[~mask].any()


def test_warp_skewed_quad(solid, video_square, skewed_quad):
    frame = solid((100, 100), RED)
    H = compute_homography(video_square, skewed_quad)
    _, mask = warp_into_quad(frame, H, (300, 300), corners=skewed_quad)
    assert mask[150, 150]
    assert not mask[245, 55]          # (x=55, y=245) lies left of the BL corner
    assert not mask[60, 240]


def test_warp_samples_through_inverse(rgba_frame):
    corners = [(3, 2), (40, 6), (37, 30), (5, 28)]
    h, w = rgba_frame.shape[:2]
    H = compute_homography(frame_corners(w, h), corners)
    warped, mask = warp_into_quad(rgba_frame, H, (35, 45), corners=corners)
    H_inv = invert_homography(H)

    rows, cols = np.nonzero(mask)
    assert len(rows) > 100
    for r, c in list(zip(rows, cols))[::17]:
        x, y = apply_homography((c, r), H_inv)
        expected = np.array(bilinear_sample(rgba_frame, x, y))
        assert np.abs(warped[r, c].astype(int) - expected).max() <= 1


def test_warp_rejects_singular():
    with pytest.raises(SingularMatrixError):
        warp_into_quad(np.zeros((4, 4, 4), np.uint8), np.zeros((3, 3)), (4, 4))


def test_composite_opaque(solid):
    bg = solid((40, 40), BLUE)
    frame = solid((10, 10), RED)
    out = composite(bg, frame, RECT)
    assert out.shape == (40, 40, 4)
    assert out.dtype == np.uint8
    assert tuple(out[15, 15]) == RED
    assert tuple(out[0, 0]) == BLUE


def test_composite_half_opacity(solid):
    bg = solid((40, 40), BLUE)
    frame = solid((10, 10), RED)
    out = composite(bg, frame, RECT, opacity=0.5)
    r, g, b, a = (int(v) for v in out[15, 15])
    assert r == pytest.approx(128, abs=1)
    assert g == 0
    assert b == pytest.approx(128, abs=1)
    assert a == 255


def test_composite_respects_frame_alpha(solid):
    bg = solid((40, 40), BLUE)
    frame = solid((10, 10), (255, 0, 0, 0))
    out = composite(bg, frame, RECT)
    assert tuple(out[15, 15]) == BLUE


def test_composite_rgb_inputs(solid):
    bg = solid((40, 40), (0, 0, 255))
    frame = solid((10, 10), (255, 0, 0))
    out = composite(bg, frame, RECT)
    assert out.shape == (40, 40, 4)
    assert tuple(out[15, 15]) == RED
