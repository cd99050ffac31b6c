"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    swap_rb: bool = False
    flip_horizontal: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            flip_horizontal=d.get("flip_horizontal", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "flip_horizontal": self.flip_horizontal,
        }


@dataclass
class DetectionConfig:
    """Face detection configuration."""
    stumps_path: Optional[str] = "data/stumps.json"
    detection_width: int = 240
    detection_height: int = 135
    step_size: float = 1.5
    max_scale: float = 5.0
    scale_step: float = 0.25
    merge_radius: float = 18.0
    confidence_threshold: float = 300.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            stumps_path=d.get("stumps_path", "data/stumps.json"),
            detection_width=d.get("detection_width", 240),
            detection_height=d.get("detection_height", 135),
            step_size=d.get("step_size", 1.5),
            max_scale=d.get("max_scale", 5.0),
            scale_step=d.get("scale_step", 0.25),
            merge_radius=d.get("merge_radius", 18.0),
            confidence_threshold=d.get("confidence_threshold", 300.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stumps_path": self.stumps_path,
            "detection_width": self.detection_width,
            "detection_height": self.detection_height,
            "step_size": self.step_size,
            "max_scale": self.max_scale,
            "scale_step": self.scale_step,
            "merge_radius": self.merge_radius,
            "confidence_threshold": self.confidence_threshold,
        }


@dataclass
class Config:
    """
    Complete application configuration.
    
    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    log_path: str = "logs/face_detect.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            log_path=d.get("log_path", "logs/face_detect.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
