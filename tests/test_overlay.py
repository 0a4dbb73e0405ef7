import logging

import numpy as np
import pytest

from tag_viz.overlay import (
    CORNER_COLOURS,
    OverlayMode,
    OverlayRenderer,
    UnknownOverlayMode,
)
from tag_viz.tag_types import DetectionBatch

RED, GREEN, BLUE, YELLOW = (np.array(c, dtype=np.uint8) for c in CORNER_COLOURS)
CLEAR = np.zeros(4, dtype=np.uint8)


def test_empty_batch_is_fully_transparent():
    overlay = OverlayRenderer("axes").render(DetectionBatch(), (48, 64))
    assert overlay.shape == (48, 64, 4)
    assert overlay.dtype == np.uint8
    assert not overlay.any()


def test_overlay_is_read_only(make_detection):
    overlay = OverlayRenderer("tri").render(DetectionBatch([make_detection()]), (100, 100))
    assert not overlay.flags.writeable
    with pytest.raises(ValueError):
        overlay[0, 0] = 1


def test_axes_mode_draws_x_red_and_y_green(make_detection):
    overlay = OverlayRenderer(OverlayMode.AXES).render(
        DetectionBatch([make_detection()]), (100, 100)
    )
    # origin (50,50), x-point (70,50), y-point (50,70); indexing is [row, col]
    assert np.array_equal(overlay[50, 62], RED)
    assert np.array_equal(overlay[62, 50], GREEN)
    assert np.array_equal(overlay[5, 5], CLEAR)


def test_tri_mode_fills_four_coloured_triangles(make_detection):
    overlay = OverlayRenderer(OverlayMode.TRI).render(
        DetectionBatch([make_detection()]), (100, 100)
    )
    assert np.array_equal(overlay[38, 50], RED)     # centre, corner 0, corner 1
    assert np.array_equal(overlay[50, 62], GREEN)   # centre, corner 1, corner 2
    assert np.array_equal(overlay[62, 50], BLUE)    # centre, corner 2, corner 3
    assert np.array_equal(overlay[50, 38], YELLOW)  # centre, corner 3, corner 0
    assert np.array_equal(overlay[90, 90], CLEAR)


@pytest.mark.parametrize("mode", ["axes", "tri"])
def test_corner_markers_use_corner_colours(make_detection, mode):
    overlay = OverlayRenderer(mode).render(DetectionBatch([make_detection()]), (100, 100))
    # radius-5 rings around each corner; sample the point 5 px outside the square
    assert np.array_equal(overlay[25, 30], RED)
    assert np.array_equal(overlay[25, 70], GREEN)
    assert np.array_equal(overlay[75, 70], BLUE)
    assert np.array_equal(overlay[75, 30], YELLOW)


def test_degenerate_detection_is_skipped(make_detection, caplog):
    bad = make_detection(tag_id=9, homography=[[1, 0, 0], [0, 1, 0], [0, 0, 0]])
    renderer = OverlayRenderer("axes", logger=logging.getLogger("test.overlay"))

    with caplog.at_level(logging.WARNING, logger="test.overlay"):
        overlay = renderer.render(DetectionBatch([bad]), (100, 100))

    assert not overlay.any()
    assert "id=9" in caplog.text


def test_degenerate_detection_does_not_block_others(make_detection):
    bad = make_detection(tag_id=9, homography=[[1, 0, 0], [0, 1, 0], [0, 0, 0]])
    good = make_detection(tag_id=2)
    overlay = OverlayRenderer("axes").render(DetectionBatch([bad, good]), (100, 100))
    assert np.array_equal(overlay[50, 62], RED)


def test_tri_mode_draws_detection_with_zero_projective_row(make_detection):
    # tri never projects, so a homography that would divide by zero is irrelevant
    det = make_detection(homography=[[1, 0, 0], [0, 1, 0], [0, 0, 0]])
    overlay = OverlayRenderer("tri").render(DetectionBatch([det]), (100, 100))
    assert np.array_equal(overlay[38, 50], RED)
    assert np.array_equal(overlay[50, 38], YELLOW)
    assert np.array_equal(overlay[25, 30], RED)


def test_detections_outside_frame_are_clipped(make_detection):
    far = make_detection(
        corners=[[500, 500], [540, 500], [540, 540], [500, 540]],
        centre=(520, 520),
        homography=[[20, 0, 520], [0, 20, 520], [0, 0, 1]],
    )
    overlay = OverlayRenderer("tri").render(DetectionBatch([far]), (100, 100))
    assert not overlay.any()


def test_unknown_mode_is_rejected():
    with pytest.raises(UnknownOverlayMode):
        OverlayRenderer("bogus")


def test_mode_parse():
    assert OverlayMode.parse("AXES") is OverlayMode.AXES
    assert OverlayMode.parse(" tri ") is OverlayMode.TRI
    assert OverlayMode.parse(OverlayMode.TRI) is OverlayMode.TRI
    with pytest.raises(UnknownOverlayMode):
        OverlayMode.parse("")
