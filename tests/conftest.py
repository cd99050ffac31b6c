"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from detection.haar import FeatureType, HaarFeature
from detection.stumps import Stump, StumpBank


def gray_frame(width, height, value):
    """Uniform 3-channel uint8 frame."""
    return np.full((height, width, 3), value, dtype=np.uint8)


def square_frame(width, height, x, y, side, background=0, foreground=255):
    """Dark frame with one bright square whose top-left pixel is (x, y)."""
    frame = gray_frame(width, height, background)
    frame[y:y + side, x:x + side] = foreground
    return frame


def left_edge_stump(threshold=47.0):
    """
    A stump firing on a dark column immediately left of a bright one,
    spanning the full 24px window height.
    """
    feature = HaarFeature(
        shape=FeatureType.EDGE_HORIZONTAL,
        width=2,
        height=24,
        offset_x=0,
        offset_y=0,
    )
    return Stump(feature=feature, threshold=threshold, polarity=-1, weight=1.0)


@pytest.fixture
def empty_bank():
    return StumpBank()


@pytest.fixture
def square_bank():
    return StumpBank([left_edge_stump()])


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    
    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  stumps_path: "data/stumps.json"
  detection_width: 240
  detection_height: 135
  step_size: 1.5
  max_scale: 5
  scale_step: 0.25
  merge_radius: 18
  confidence_threshold: 300

log_path: "logs/test.log"
log_level: "INFO"
""")
    
    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "stumps_path": "data/stumps.json",
            "detection_width": 240,
            "detection_height": 135,
            "step_size": 1.5,
            "max_scale": 5,
            "scale_step": 0.25,
            "merge_radius": 18,
            "confidence_threshold": 300,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
