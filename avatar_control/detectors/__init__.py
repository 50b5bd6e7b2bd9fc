"""
Face detectors feeding the animation loop.

- FaceDetector: Interface used by FrameOrchestrator
- ReplayDetector: Recorded JSON-lines sessions
- MediaPipeDetector: Webcam + MediaPipe Face Landmarker (imported lazily,
  it needs OpenCV and MediaPipe)
"""

from avatar_control.detectors.base import DetectorUnavailableError, FaceDetector
from avatar_control.detectors.replay import ReplayDetector, parse_record

__all__ = [
    "DetectorUnavailableError",
    "FaceDetector",
    "ReplayDetector",
    "parse_record",
]
