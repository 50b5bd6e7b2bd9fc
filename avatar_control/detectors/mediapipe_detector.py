"""
Live face detector using OpenCV capture and MediaPipe Face Landmarker.

Produces FaceObservation values from a webcam: head rotation from the
facial transformation matrix, a normalized box around the landmarks, the
normalized landmark mesh itself, and emotion scores folded from the
Face Landmarker blendshapes.

Uses the MediaPipe Tasks API (FaceLandmarker), mediapipe >= 0.10.
"""

import asyncio
import logging
import os
import time
import urllib.request
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from avatar_control.detectors.base import DetectorUnavailableError, FaceDetector
from avatar_control.observation import EmotionScore, FaceObservation, HeadRotation

logger = logging.getLogger(__name__)

# Model download URL
MODEL_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/1/face_landmarker.task"
DEFAULT_MODEL_PATH = "face_landmarker.task"


def _mean(blendshapes: Dict[str, float], *names: str) -> float:
    return sum(blendshapes.get(name, 0.0) for name in names) / len(names)


def _clamp(value: float) -> float:
    return float(min(max(value, 0.0), 1.0))


def emotions_from_blendshapes(blendshapes: Dict[str, float]) -> Tuple[EmotionScore, ...]:
    """
    Fold ARKit-style blendshape scores into happy/angry/sad/neutral.

    Args:
        blendshapes: Blendshape name to score in [0, 1]

    Returns:
        Emotion scores sorted by descending score
    """
    smile = _mean(blendshapes, "mouthSmileLeft", "mouthSmileRight")
    cheek = _mean(blendshapes, "cheekSquintLeft", "cheekSquintRight")
    brow_down = _mean(blendshapes, "browDownLeft", "browDownRight")
    sneer = _mean(blendshapes, "noseSneerLeft", "noseSneerRight")
    frown = _mean(blendshapes, "mouthFrownLeft", "mouthFrownRight")
    brow_inner_up = blendshapes.get("browInnerUp", 0.0)

    # MediaPipe reports ~0.1-0.3 on these for a relaxed face
    happy = _clamp((smile * 0.7 + cheek * 0.3) * 1.3)
    angry = _clamp((max(0.0, brow_down - 0.1) * 0.6 + sneer * 0.4) * 1.5)
    sad = _clamp((max(0.0, frown - 0.15) * 0.6 + brow_inner_up * 0.4) * 1.5)
    neutral = _clamp(1.0 - max(happy, angry, sad))

    scores = [
        EmotionScore("happy", happy),
        EmotionScore("angry", angry),
        EmotionScore("sad", sad),
        EmotionScore("neutral", neutral),
    ]
    return tuple(sorted(scores, key=lambda e: e.score, reverse=True))


def head_rotation_from_matrix(matrix) -> HeadRotation:
    """Extract pitch/yaw/roll in radians from a 4x4 face transformation matrix."""
    r = np.array(matrix)[:3, :3]

    sy = np.sqrt(r[0, 0] ** 2 + r[1, 0] ** 2)
    if sy > 1e-6:
        pitch = np.arctan2(r[2, 1], r[2, 2])
        yaw = np.arctan2(-r[2, 0], sy)
        roll = np.arctan2(r[1, 0], r[0, 0])
    else:
        pitch = np.arctan2(-r[1, 2], r[1, 1])
        yaw = np.arctan2(-r[2, 0], sy)
        roll = 0.0

    return HeadRotation(pitch=float(pitch), yaw=float(yaw), roll=float(roll))


def box_from_landmarks(points: np.ndarray) -> Tuple[float, float, float, float]:
    """Normalized (x, y, width, height) box around the landmark x/y extent."""
    xy = np.clip(points[:, :2], 0.0, 1.0)
    x0, y0 = xy.min(axis=0)
    x1, y1 = xy.max(axis=0)
    return float(x0), float(y0), float(x1 - x0), float(y1 - y0)


class MediaPipeDetector(FaceDetector):
    """摄像头人脸检测 (webcam face detector)

    Wraps an OpenCV VideoCapture and a MediaPipe FaceLandmarker configured
    for a single face. Frame capture and inference are blocking, so detect()
    runs them in a worker thread.
    """

    def __init__(
        self,
        camera_id: int = 0,
        frame_width: int = 640,
        frame_height: int = 360,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_path: Optional[str] = None,
    ):
        """
        Args:
            camera_id: OpenCV camera index
            frame_width: Requested capture width
            frame_height: Requested capture height
            min_detection_confidence: Minimum confidence for face detection [0, 1]
            min_tracking_confidence: Minimum confidence for landmark tracking [0, 1]
            model_path: Path to the face_landmarker.task model file. If None, will download.
        """
        self.camera_id = camera_id
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.model_path = model_path

        self._camera: Optional[cv2.VideoCapture] = None
        self._landmarker = None

    def _get_model_path(self) -> str:
        """Get or download the face landmarker model."""
        if self.model_path is not None:
            if not os.path.exists(self.model_path):
                raise DetectorUnavailableError(f"Model not found: {self.model_path}")
            return self.model_path

        if os.path.exists(DEFAULT_MODEL_PATH):
            return DEFAULT_MODEL_PATH

        logger.info(f"Downloading face landmarker model to {DEFAULT_MODEL_PATH}")
        try:
            urllib.request.urlretrieve(MODEL_URL, DEFAULT_MODEL_PATH)
        except OSError as e:
            raise DetectorUnavailableError(f"Failed to download face landmarker model: {e}") from e
        return DEFAULT_MODEL_PATH

    def open(self) -> None:
        """
        Open the camera and create the Face Landmarker.

        Raises:
            DetectorUnavailableError: If the camera cannot be opened or the
                model cannot be loaded
        """
        if self._camera is not None:
            return

        camera = cv2.VideoCapture(self.camera_id)
        if not camera.isOpened():
            camera.release()
            raise DetectorUnavailableError(
                f"Failed to open camera {self.camera_id}; "
                "make sure no other application is using it"
            )
        camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

        try:
            base_options = python.BaseOptions(model_asset_path=self._get_model_path())
            options = vision.FaceLandmarkerOptions(
                base_options=base_options,
                output_face_blendshapes=True,
                output_facial_transformation_matrixes=True,
                num_faces=1,
                min_face_detection_confidence=self.min_detection_confidence,
                min_tracking_confidence=self.min_tracking_confidence,
            )
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            camera.release()
            raise DetectorUnavailableError(f"Failed to create face landmarker: {e}") from e

        self._camera = camera
        logger.info(f"Opened camera {self.camera_id} with MediaPipe Face Landmarker")

    async def detect(self) -> Optional[FaceObservation]:
        if self._camera is None:
            raise DetectorUnavailableError("Detector is not open")
        return await asyncio.to_thread(self._detect_blocking)

    def _detect_blocking(self) -> Optional[FaceObservation]:
        ok, frame = self._camera.read()
        if not ok or frame is None or frame.size == 0:
            logger.warning("Camera returned no frame")
            return None

        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        result = self._landmarker.detect(mp_image)

        return self.observation_from_result(result, timestamp=time.time())

    @staticmethod
    def observation_from_result(result, timestamp: float = 0.0) -> Optional[FaceObservation]:
        """Convert a FaceLandmarkerResult into an observation of its first face."""
        if not result.face_landmarks:
            return None

        points = np.array([[lm.x, lm.y, lm.z] for lm in result.face_landmarks[0]])

        if result.facial_transformation_matrixes:
            rotation = head_rotation_from_matrix(result.facial_transformation_matrixes[0])
        else:
            rotation = HeadRotation()

        emotions: Sequence[EmotionScore] = ()
        if result.face_blendshapes:
            blendshapes = {
                category.category_name: float(category.score)
                for category in result.face_blendshapes[0]
            }
            emotions = emotions_from_blendshapes(blendshapes)

        mesh: List[Tuple[float, ...]] = [tuple(float(c) for c in p) for p in points]
        return FaceObservation(
            rotation=rotation,
            box=box_from_landmarks(points),
            mesh=tuple(mesh),
            emotions=tuple(emotions),
            timestamp=timestamp,
        )

    def close(self) -> None:
        """Release camera and MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
        if self._camera is not None:
            self._camera.release()
            self._camera = None
