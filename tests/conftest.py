import numpy as np
import pytest

from tag_viz.tag_types import Detection


SQUARE = [[30.0, 30.0], [70.0, 30.0], [70.0, 70.0], [30.0, 70.0]]

# Tag-local origin at (50, 50), one unit is 20 px.
SCALE_H = [[20.0, 0.0, 50.0], [0.0, 20.0, 50.0], [0.0, 0.0, 1.0]]


@pytest.fixture
def frame():
    return np.full((100, 100, 3), (100, 50, 200), dtype=np.uint8)


@pytest.fixture
def make_detection():
    def _make(tag_id=1, corners=None, centre=(50.0, 50.0), homography=None):
        return Detection(
            tag_id=tag_id,
            corners=SQUARE if corners is None else corners,
            centre=centre,
            homography=SCALE_H if homography is None else homography,
        )

    return _make
