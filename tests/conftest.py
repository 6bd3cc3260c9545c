import numpy as np
import pytest

from panostitch.geometry.homography import apply_homography


def translation(dx, dy):
    return np.array([
        [1.0, 0.0, dx],
        [0.0, 1.0, dy],
        [0.0, 0.0, 1.0],
    ])


def scale_free(H):
    """Frobenius-normalise H with a fixed sign so equal-up-to-scale matrices compare equal."""
    H = H / np.linalg.norm(H)
    return H * np.sign(H[2, 2])


@pytest.fixture
def H_true():
    return np.array([
        [1.05,   0.04,  30.0],
        [-0.02,  0.97,  12.0],
        [1.2e-4, -8e-5,  1.0],
    ])


@pytest.fixture
def noisy_matches(H_true):
    """50 exact correspondences followed by 10 gross outliers."""
    rng = np.random.default_rng(1234)
    target = rng.uniform([0, 0], [400, 300], size=(60, 2))
    base = apply_homography(H_true, target)
    offsets = rng.uniform(40, 80, size=(10, 2)) * rng.choice([-1, 1], size=(10, 2))
    base[50:] += offsets
    return base, target


@pytest.fixture
def square_image():
    """400 x 300 black image with a 100 x 100 white square at (150, 100)."""
    img = np.zeros((300, 400, 3), dtype=np.uint8)
    img[100:200, 150:250] = 255
    return img
