"""
Pipeline engine for the face detection application.

Drives detection once per frame: read a frame from an observation source,
run the detector synchronously, hand the results to registered callbacks.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from detection.base import Detector
from detection.haar_detector import HaarCascadeDetector
from detection.search import SearchCancelled
from models.config import Config
from models.detection import Detection
from models.frame import FrameData
from observation import ObservationSource, OpenCVSource, OpenCVSourceConfig


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.
    
    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between status log messages.
        max_frames: Stop after this many frames (None = unlimited).
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    max_frames: Optional[int] = None


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    cancelled_count: int = 0
    last_detections: int = 0
    last_duration_ms: float = 0.0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0


class PipelineEngine:
    """
    Main processing loop.
    
    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        detector = HaarCascadeDetector(StumpBank.load("data/stumps.json"))
        engine = PipelineEngine(source, detector, PipelineConfig())
        engine.add_callback(lambda frame_data, faces: print(len(faces)))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: Detector,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._running = False
        self._callbacks: List[Callable[[FrameData, List[Detection]], None]] = []

    def add_callback(self, callback: Callable[[FrameData, List[Detection]], None]) -> None:
        """
        Add a callback to be called after each frame is processed.
        
        Args:
            callback: Function taking (frame_data, detections) as arguments.
        """
        self._callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self) -> None:
        """
        Run the main processing loop.
        
        Opens the observation source, processes frames until stopped or
        exhausted, then closes resources.
        """
        self._running = True
        self.stats = PipelineStats()

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")
            
            while self._running:
                frame_data = self.source.read()
                
                if frame_data is None:
                    if self.source.is_finite:
                        break
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(0.5)
                    continue
                
                self.stats.consecutive_failures = 0
                detections = self.process_frame(frame_data)

                if detections is not None:
                    for callback in self._callbacks:
                        try:
                            callback(frame_data, detections)
                        except Exception as e:
                            logging.warning(f"Callback error: {e}")

                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    break

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """
        Signal the pipeline to stop.

        A scan in progress is abandoned at the next window boundary.
        """
        self._running = False

    def process_frame(self, frame_data: FrameData) -> Optional[List[Detection]]:
        """
        Run detection on one frame.
        
        Returns the detections, or None if the scan was cancelled.
        """
        self.stats.frame_count += 1
        started = time.perf_counter()

        try:
            detections = self.detector.detect(frame_data.frame, should_cancel=self._cancel_requested)
        except SearchCancelled:
            self.stats.cancelled_count += 1
            logging.debug(f"Frame {frame_data.frame_index} scan cancelled")
            return None

        self.stats.last_duration_ms = (time.perf_counter() - started) * 1000.0
        self.stats.last_detections = len(detections)
        self.stats.detection_count += len(detections)

        if detections:
            logging.debug(
                f"[DETECT] frame={frame_data.frame_index} faces={len(detections)} "
                f"time={self.stats.last_duration_ms:.1f}ms"
            )
        return detections

    def _cancel_requested(self) -> bool:
        return not self._running

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            elapsed = max(now - self.stats.start_time, 1e-9)
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"detections={self.stats.detection_count}, "
                f"fps={self.stats.frame_count / elapsed:.1f}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        logging.info(
            f"Pipeline stopped: frames={self.stats.frame_count}, "
            f"detections={self.stats.detection_count}"
        )


def create_engine_from_config(
    config: Dict[str, Any],
    source: Optional[ObservationSource] = None,
    detector: Optional[Detector] = None,
    max_frames: Optional[int] = None,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from a config dict.
    
    Args:
        config: Full application config dict.
        source: Frame source. Defaults to the configured camera.
        detector: Detector. Defaults to a HaarCascadeDetector built from
            the detection section.
        max_frames: Optional frame limit.
    """
    typed = Config.from_dict(config)
    if source is None:
        source = OpenCVSource(OpenCVSourceConfig.from_camera_config(config.get("camera", {}) or {}))
    if detector is None:
        detector = HaarCascadeDetector.from_config(typed.detection)
    return PipelineEngine(source, detector, PipelineConfig(max_frames=max_frames))
