"""
Stitching configuration.

The YAML file mirrors the pipeline stages (``ransac``, ``matching``,
``canvas``, ``blending``).  Missing keys fall back to the defaults below.
"""

from dataclasses import dataclass
from typing import Optional

import yaml

from panostitch.stitching.blending import BLEND_MODES, DEFAULT_ALPHA
from panostitch.stitching.canvas import DEFAULT_PADDING


def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        return yaml.safe_load(fh) or {}


@dataclass(frozen=True)
class StitchConfig:
    num_iterations: int = 1000
    inlier_threshold: float = 10.0
    sample_size: int = 4
    min_inliers: int = 20
    seed: Optional[int] = None
    min_match_count: int = 20
    padding: int = DEFAULT_PADDING
    blend_alpha: float = DEFAULT_ALPHA
    blend_mode: str = "constant"

    def __post_init__(self) -> None:
        if self.num_iterations < 1:
            raise ValueError(f"ransac.num_iterations must be >= 1, got {self.num_iterations}")
        if self.inlier_threshold <= 0:
            raise ValueError(f"ransac.inlier_threshold must be > 0, got {self.inlier_threshold}")
        if self.sample_size < 4:
            raise ValueError(f"ransac.sample_size must be >= 4, got {self.sample_size}")
        if self.min_match_count < self.sample_size:
            raise ValueError(
                f"matching.min_match_count ({self.min_match_count}) must be at "
                f"least ransac.sample_size ({self.sample_size})"
            )
        if self.padding < 0:
            raise ValueError(f"canvas.padding must be >= 0, got {self.padding}")
        if not 0.0 <= self.blend_alpha <= 1.0:
            raise ValueError(f"blending.alpha must lie in [0, 1], got {self.blend_alpha}")
        if self.blend_mode not in BLEND_MODES:
            raise ValueError(
                f"blending.mode must be one of {BLEND_MODES}, got {self.blend_mode!r}"
            )

    @classmethod
    def from_dict(cls, cfg: dict) -> "StitchConfig":
        """Build a config from the nested YAML layout."""
        cfg = cfg or {}
        r_cfg = cfg.get("ransac") or {}
        m_cfg = cfg.get("matching") or {}
        c_cfg = cfg.get("canvas") or {}
        b_cfg = cfg.get("blending") or {}
        defaults = cls.__dataclass_fields__

        def pick(section, key, field):
            return section.get(key, defaults[field].default)

        return cls(
            num_iterations=int(pick(r_cfg, "num_iterations", "num_iterations")),
            inlier_threshold=float(pick(r_cfg, "inlier_threshold", "inlier_threshold")),
            sample_size=int(pick(r_cfg, "sample_size", "sample_size")),
            min_inliers=int(pick(r_cfg, "min_inliers", "min_inliers")),
            seed=pick(r_cfg, "seed", "seed"),
            min_match_count=int(pick(m_cfg, "min_match_count", "min_match_count")),
            padding=int(pick(c_cfg, "padding", "padding")),
            blend_alpha=float(pick(b_cfg, "alpha", "blend_alpha")),
            blend_mode=str(pick(b_cfg, "mode", "blend_mode")),
        )

    @classmethod
    def from_file(cls, path: str) -> "StitchConfig":
        return cls.from_dict(load_config(path))
