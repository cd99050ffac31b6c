"""
Face detection application.

Runs the Haar cascade face detector on a webcam, a video file or a still
image and reports the detections of every frame.

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --image photo.jpg
    python src/main.py --video clip.mp4 --max-frames 100

Arguments:
    --config: Path to configuration file
    --image: Run once on a still image
    --video: Run on a video file instead of the configured camera
    --stumps: Override detection.stumps_path
    --threshold: Override detection.confidence_threshold
    --max-frames: Stop after this many frames
"""

import os
import sys
import argparse
import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml

from detection.haar_detector import HaarCascadeDetector
from models.config import Config
from models.detection import Detection
from models.frame import FrameData
from observation import ImageSource, ImageSourceConfig, OpenCVSource, OpenCVSourceConfig
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.
    
    Args:
        config: Configuration dictionary
        
    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"
    
    # Camera settings
    camera = config.get('camera') or {}
    if 'device_id' in camera:
        if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
            return False, "camera.device_id must be an integer (index) or string (path)"
        if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
            return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
            return False, "camera.resolution values must be positive integers"
    
    # Detection settings
    detection = config.get('detection') or {}
    for key in ('detection_width', 'detection_height'):
        if key in detection:
            value = detection[key]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                return False, f"detection.{key} must be a positive integer"
    if 'step_size' in detection:
        if not _is_number(detection['step_size']) or detection['step_size'] <= 0:
            return False, "detection.step_size must be a number greater than 0"
    if 'max_scale' in detection:
        if not _is_number(detection['max_scale']) or detection['max_scale'] < 1:
            return False, "detection.max_scale must be a number of at least 1"
    if 'scale_step' in detection:
        if not _is_number(detection['scale_step']) or detection['scale_step'] <= 0:
            return False, "detection.scale_step must be a number greater than 0"
    if 'merge_radius' in detection:
        if not _is_number(detection['merge_radius']) or detection['merge_radius'] <= 0:
            return False, "detection.merge_radius must be a number greater than 0"
    if 'confidence_threshold' in detection:
        if not _is_number(detection['confidence_threshold']):
            return False, "detection.confidence_threshold must be a number"
    if 'stumps_path' in detection and detection['stumps_path'] is not None:
        if not isinstance(detection['stumps_path'], str):
            return False, "detection.stumps_path must be a string"
    
    # Log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"
    
    return True, None


def format_detections(detections: List[Detection]) -> str:
    """One line per detection: box corners and confidence."""
    lines = []
    for det in detections:
        x1, y1, x2, y2 = det.bbox.as_int_tuple()
        lines.append(f"  face at ({x1}, {y1})-({x2}, {y2}) confidence={det.confidence:.1f}")
    return "\n".join(lines)


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Haar cascade face detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument('--image', type=str, help='Run once on a still image')
    source_group.add_argument('--video', type=str, help='Run on a video file')
    parser.add_argument('--stumps', type=str, help='Override detection.stumps_path')
    parser.add_argument('--threshold', type=float, help='Override detection.confidence_threshold')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    args = parser.parse_args()
    
    config = load_config(args.config)
    detection_cfg = config.setdefault('detection', {})
    if args.stumps:
        detection_cfg['stumps_path'] = args.stumps
    if args.threshold is not None:
        detection_cfg['confidence_threshold'] = args.threshold

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)
    
    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting face detection")

    typed = Config.from_dict(config)
    detector = HaarCascadeDetector.from_config(typed.detection)
    logging.info(f"Detector ready: {detector.get_info()}")

    if args.image:
        source = ImageSource(ImageSourceConfig(source_id="image", path=args.image))
    elif args.video:
        source = OpenCVSource(OpenCVSourceConfig(source_id="video", device_id=args.video))
    else:
        source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config['camera'], source_id="camera"))

    engine = create_engine_from_config(config, source=source, detector=detector, max_frames=args.max_frames)

    def report(frame_data: FrameData, detections: List[Detection]) -> None:
        logging.info(f"Frame {frame_data.frame_index}: {len(detections)} face(s)")
        if detections:
            print(format_detections(detections))

    engine.add_callback(report)

    try:
        engine.run()
    except RuntimeError as e:
        logging.error(f"Failed to start: {e}")
        sys.exit(1)

    logging.info("Face detection stopped")


if __name__ == "__main__":
    main()
