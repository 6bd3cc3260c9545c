import warnings

import numpy as np
import pytest

from conftest import scale_free, translation
from panostitch.errors import (
    DegenerateInputError,
    InsufficientCorrespondencesError,
    LowConfidenceEstimateWarning,
)
from panostitch.geometry.correspondences import CorrespondenceSet
from panostitch.geometry import ransac as ransac_module
from panostitch.geometry.homography import apply_homography
from panostitch.geometry.ransac import count_inliers, draw_sample, ransac_homography


def test_recovers_homography_despite_outliers(H_true, noisy_matches):
    base, target = noisy_matches
    result = ransac_homography(CorrespondenceSet(base, target), rng=0)

    assert result.num_inliers == 50
    np.testing.assert_array_equal(result.inliers, np.arange(50))
    np.testing.assert_allclose(scale_free(result.H), scale_free(H_true), atol=1e-6)
    assert result.inlier_rate == pytest.approx(50 / 60)


def test_same_seed_gives_same_estimate(noisy_matches):
    corr = CorrespondenceSet(*noisy_matches)
    a = ransac_homography(corr, num_iterations=50, rng=np.random.default_rng(7))
    b = ransac_homography(corr, num_iterations=50, rng=np.random.default_rng(7))
    np.testing.assert_array_equal(a.H, b.H)
    np.testing.assert_array_equal(a.inliers, b.inliers)


def test_count_inliers_uses_squared_threshold(H_true, noisy_matches):
    corr = CorrespondenceSet(*noisy_matches)
    np.testing.assert_array_equal(count_inliers(H_true, corr, 10.0), np.arange(50))
    assert len(count_inliers(H_true, corr, 1e9)) == 60


def test_draw_sample_returns_distinct_indices():
    rng = np.random.default_rng(3)
    for _ in range(100):
        sample = draw_sample(rng, 5, 4)
        assert len(set(sample.tolist())) == 4
        assert sample.min() >= 0 and sample.max() < 5


def test_too_few_correspondences():
    pts = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    with pytest.raises(InsufficientCorrespondencesError):
        ransac_homography(CorrespondenceSet(pts, pts))


def test_all_samples_degenerate():
    pts = np.tile([[3.0, 4.0]], (10, 1))
    with pytest.raises(DegenerateInputError):
        ransac_homography(CorrespondenceSet(pts, pts), num_iterations=20, rng=0)


def test_zero_consensus_returns_last_candidate_and_warns(noisy_matches):
    corr = CorrespondenceSet(*noisy_matches)
    with pytest.warns(LowConfidenceEstimateWarning):
        result = ransac_homography(corr, num_iterations=5, threshold=0.0,
                                   rng=0, min_inliers=4)
    assert result.num_inliers == 0
    assert result.H.shape == (3, 3)


def test_no_warning_when_consensus_is_large(noisy_matches):
    corr = CorrespondenceSet(*noisy_matches)
    with warnings.catch_warnings():
        warnings.simplefilter("error", LowConfidenceEstimateWarning)
        ransac_homography(corr, num_iterations=200, rng=0, min_inliers=20)


def test_invalid_arguments(noisy_matches):
    corr = CorrespondenceSet(*noisy_matches)
    with pytest.raises(ValueError):
        ransac_homography(corr, sample_size=3)
    with pytest.raises(ValueError):
        ransac_homography(corr, num_iterations=0)


def two_translated_clusters():
    """Ten identity matches followed by ten matches shifted by (100, 0)."""
    grid = np.array([
        [0.0, 0.0], [100.0, 0.0], [0.0, 100.0], [100.0, 100.0], [50.0, 20.0],
        [20.0, 70.0], [80.0, 40.0], [60.0, 90.0], [30.0, 30.0], [90.0, 60.0],
    ])
    target = np.vstack([grid, grid + [500.0, 0.0]])
    base = target.copy()
    base[10:] += [100.0, 0.0]
    return CorrespondenceSet(base, target)


@pytest.mark.parametrize("first, second, expected_H, expected_inliers", [
    ([0, 1, 2, 3], [10, 11, 12, 13], translation(0, 0), np.arange(10)),
    ([10, 11, 12, 13], [0, 1, 2, 3], translation(100, 0), np.arange(10, 20)),
])
def test_equal_consensus_keeps_first_candidate(monkeypatch, first, second,
                                               expected_H, expected_inliers):
    samples = iter([np.array(first), np.array(second)])
    monkeypatch.setattr(ransac_module, "draw_sample",
                        lambda rng, population, size: next(samples))

    result = ransac_homography(two_translated_clusters(), num_iterations=2, rng=0)

    assert result.num_inliers == 10
    np.testing.assert_array_equal(result.inliers, expected_inliers)
    np.testing.assert_allclose(result.H, expected_H, atol=1e-6)


def test_degenerate_samples_are_skipped_and_consensus_still_found(H_true, capsys):
    rng = np.random.default_rng(11)
    target = rng.uniform([0, 0], [400, 300], size=(30, 2))
    base = apply_homography(H_true, target)
    # ten copies of one inconsistent match: any two in a sample coincide
    dup = np.tile([[5.0, 5.0]], (10, 1))
    corr = CorrespondenceSet(np.vstack([base, dup]), np.vstack([target, dup]))

    result = ransac_homography(corr, num_iterations=300, rng=0)

    assert "degenerate samples skipped" in capsys.readouterr().out
    assert result.num_inliers == 30
    np.testing.assert_array_equal(result.inliers, np.arange(30))
    np.testing.assert_allclose(scale_free(result.H), scale_free(H_true), atol=1e-6)


def test_full_frame_matches_waste_no_iterations(capsys):
    H = np.array([[1.02, 0.03, 150.0], [-0.02, 0.98, 80.0], [1e-6, 2e-6, 1.0]])
    rng = np.random.default_rng(21)
    target = rng.uniform([0, 0], [6000, 4000], size=(240, 2))
    base = apply_homography(H, target)
    offsets = rng.uniform(200, 400, size=(40, 2)) * rng.choice([-1, 1], size=(40, 2))
    base[200:] += offsets

    result = ransac_homography(CorrespondenceSet(base, target), num_iterations=200, rng=0)

    assert "degenerate" not in capsys.readouterr().out
    np.testing.assert_array_equal(result.inliers, np.arange(200))
    np.testing.assert_allclose(apply_homography(result.H, target[:200]), base[:200],
                               atol=1e-3)
