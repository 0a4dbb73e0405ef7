import numpy as np
import pytest

from tag_viz.projection import (
    DegenerateProjection,
    homography_from_corners,
    project,
)


@pytest.mark.parametrize(
    "point",
    [(0.0, 0.0), (3.0, 4.0), (-12.5, 7.25), (1e6, -1e6)],
)
def test_identity_homography_is_noop(point):
    assert project(np.eye(3), point) == point


def test_scale_homography():
    H = np.diag([2.0, 2.0, 1.0])
    assert project(H, (3, 4)) == (6.0, 8.0)


def test_accepts_row_major_list():
    H = [1, 0, 10, 0, 1, 20, 0, 0, 1]
    assert project(H, (1, 2)) == (11.0, 22.0)


def test_perspective_divide():
    # w = 0.5*x + 1 -> at x=2, w=2
    H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.5, 0.0, 1.0]])
    u, v = project(H, (2.0, 4.0))
    assert u == pytest.approx(1.0)
    assert v == pytest.approx(2.0)


def test_zero_third_row_is_degenerate():
    H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 0.0]])
    with pytest.raises(DegenerateProjection):
        project(H, (1.0, 1.0))


def test_near_zero_denominator_is_degenerate():
    H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1e-12]])
    with pytest.raises(DegenerateProjection):
        project(H, (0.0, 0.0))


def test_non_finite_homography_is_degenerate():
    H = np.eye(3)
    H[0, 2] = np.inf
    with pytest.raises(DegenerateProjection):
        project(H, (1.0, 1.0))


def test_projection_is_deterministic():
    rng = np.random.default_rng(7)
    H = rng.normal(size=(3, 3))
    H[2] = [0.01, 0.02, 1.0]
    first = project(H, (0.3, -0.7))
    for _ in range(5):
        assert project(H.copy(), (0.3, -0.7)) == first


def test_homography_from_corners_maps_tag_square():
    corners = np.array([[10.0, 20.0], [110.0, 25.0], [105.0, 130.0], [5.0, 120.0]])
    H = homography_from_corners(corners)

    assert H[2, 2] == pytest.approx(1.0)
    for local, px in zip([(-1, -1), (1, -1), (1, 1), (-1, 1)], corners):
        assert project(H, local) == pytest.approx(tuple(px), abs=1e-3)


def test_homography_from_axis_aligned_square_centre():
    corners = np.array([[30.0, 30.0], [70.0, 30.0], [70.0, 70.0], [30.0, 70.0]])
    H = homography_from_corners(corners)
    assert project(H, (0, 0)) == pytest.approx((50.0, 50.0), abs=1e-6)
    assert project(H, (1, 0)) == pytest.approx((70.0, 50.0), abs=1e-6)
