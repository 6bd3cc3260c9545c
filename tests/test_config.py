import os

import pytest

from panostitch.config import StitchConfig

DEFAULT_CONFIG = os.path.join(os.path.dirname(__file__), os.pardir, "configs", "default.yaml")


def test_defaults_from_empty_config():
    config = StitchConfig.from_dict({})
    assert config.num_iterations == 1000
    assert config.inlier_threshold == 10.0
    assert config.padding == 30
    assert config.blend_alpha == 0.3
    assert config.blend_mode == "constant"
    assert config.seed is None


def test_default_yaml_matches_defaults():
    assert StitchConfig.from_file(DEFAULT_CONFIG) == StitchConfig()


def test_nested_sections_override_defaults():
    config = StitchConfig.from_dict({
        "ransac": {"num_iterations": 250, "seed": 5},
        "canvas": {"padding": 10},
        "blending": {"alpha": 0.5, "mode": "distance"},
    })
    assert config.num_iterations == 250
    assert config.seed == 5
    assert config.padding == 10
    assert config.blend_alpha == 0.5
    assert config.blend_mode == "distance"
    assert config.min_match_count == 20


@pytest.mark.parametrize("cfg", [
    {"blending": {"alpha": 1.5}},
    {"blending": {"mode": "feather"}},
    {"ransac": {"num_iterations": 0}},
    {"ransac": {"inlier_threshold": -1}},
    {"matching": {"min_match_count": 3}},
    {"canvas": {"padding": -5}},
])
def test_invalid_values_are_rejected(cfg):
    with pytest.raises(ValueError):
        StitchConfig.from_dict(cfg)
