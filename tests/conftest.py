import numpy as np
import pytest


@pytest.fixture
def video_square():
    return [(0, 0), (100, 0), (100, 100), (0, 100)]


@pytest.fixture
def skewed_quad():
    return [(50, 50), (250, 80), (230, 260), (60, 240)]


@pytest.fixture
def rgba_frame():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(12, 16, 4), dtype=np.uint8)


@pytest.fixture
def solid():
    def make(shape, color):
        img = np.zeros(tuple(shape) + (len(color),), dtype=np.uint8)
        img[:, :] = color
        return img
    return make
