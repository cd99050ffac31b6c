"""
Pipeline module for the face detection application.

The pipeline drives the per-frame flow:
- Frame acquisition from observation sources
- Face detection
- Delivery of detections to callbacks
"""

from .engine import PipelineEngine, PipelineConfig, PipelineStats, create_engine_from_config

__all__ = [
    "PipelineEngine",
    "PipelineConfig",
    "PipelineStats",
    "create_engine_from_config",
]
