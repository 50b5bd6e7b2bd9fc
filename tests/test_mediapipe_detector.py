"""
Tests for the MediaPipe detector's result conversion.

No camera or model file is needed: Face Landmarker results are faked with
SimpleNamespace objects carrying the same attributes.
"""

import asyncio
from types import SimpleNamespace

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

pytest.importorskip("cv2")
pytest.importorskip("mediapipe")

from avatar_control.detectors import mediapipe_detector  # noqa: E402
from avatar_control.detectors.base import DetectorUnavailableError  # noqa: E402
from avatar_control.detectors.mediapipe_detector import (  # noqa: E402
    MediaPipeDetector,
    box_from_landmarks,
    emotions_from_blendshapes,
    head_rotation_from_matrix,
)


def landmark(x, y, z=0.0):
    return SimpleNamespace(x=x, y=y, z=z)


def category(name, score):
    return SimpleNamespace(category_name=name, score=score)


def fake_result(landmarks=None, matrix=None, blendshapes=None):
    return SimpleNamespace(
        face_landmarks=[landmarks] if landmarks is not None else [],
        facial_transformation_matrixes=[matrix] if matrix is not None else [],
        face_blendshapes=[blendshapes] if blendshapes is not None else [],
    )


class TestBlendshapeEmotions:

    def test_relaxed_face_is_neutral(self):
        emotions = emotions_from_blendshapes({})
        assert emotions[0].label == "neutral"
        assert emotions[0].score == 1.0

    def test_smile_is_happy(self):
        emotions = emotions_from_blendshapes({
            "mouthSmileLeft": 0.9, "mouthSmileRight": 0.9,
            "cheekSquintLeft": 0.6, "cheekSquintRight": 0.6,
        })
        assert emotions[0].label == "happy"
        assert emotions[0].score > 0.7

    def test_scores_sorted_and_bounded(self):
        emotions = emotions_from_blendshapes({
            "browDownLeft": 1.0, "browDownRight": 1.0,
            "noseSneerLeft": 1.0, "noseSneerRight": 1.0,
            "mouthFrownLeft": 0.5, "mouthFrownRight": 0.5,
        })
        scores = [e.score for e in emotions]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert emotions[0].label == "angry"


class TestGeometryHelpers:

    def test_identity_matrix_has_no_rotation(self):
        rotation = head_rotation_from_matrix(np.eye(4))
        assert (rotation.pitch, rotation.yaw, rotation.roll) == pytest.approx((0.0, 0.0, 0.0))

    def test_yaw_recovered(self):
        matrix = np.eye(4)
        matrix[:3, :3] = Rotation.from_euler("y", 0.3).as_matrix()
        assert head_rotation_from_matrix(matrix).yaw == pytest.approx(0.3)

    def test_box_spans_landmarks(self):
        points = np.array([[0.2, 0.3, 0.0], [0.6, 0.5, 0.0], [0.4, 0.9, 0.0]])
        assert box_from_landmarks(points) == pytest.approx((0.2, 0.3, 0.4, 0.6))

    def test_box_clipped_to_frame(self):
        points = np.array([[-0.1, 0.5, 0.0], [1.2, 0.6, 0.0]])
        x, y, w, h = box_from_landmarks(points)
        assert (x, x + w) == pytest.approx((0.0, 1.0))


class TestObservationFromResult:

    def test_no_face(self):
        assert MediaPipeDetector.observation_from_result(fake_result()) is None

    def test_full_result(self):
        landmarks = [landmark(0.4, 0.4)] * 478
        landmarks[13] = landmark(0.5, 0.50)
        landmarks[14] = landmark(0.5, 0.52)

        observation = MediaPipeDetector.observation_from_result(
            fake_result(
                landmarks=landmarks,
                matrix=np.eye(4),
                blendshapes=[category("mouthFrownLeft", 1.0), category("mouthFrownRight", 1.0),
                             category("browInnerUp", 1.0)],
            ),
            timestamp=12.5,
        )

        assert len(observation.mesh) == 478
        upper, lower = observation.lip_points()
        assert lower[1] - upper[1] == pytest.approx(0.02)
        assert observation.top_emotion.label == "sad"
        assert observation.timestamp == 12.5

    def test_missing_matrix_gives_zero_rotation(self):
        observation = MediaPipeDetector.observation_from_result(
            fake_result(landmarks=[landmark(0.5, 0.5)] * 20)
        )
        assert observation.rotation.yaw == 0.0
        assert observation.emotions == ()


class TestDetectorLifecycle:

    def test_unopenable_camera_raises(self, monkeypatch):
        class ClosedCapture:
            def __init__(self, index):
                self.released = False

            def isOpened(self):
                return False

            def release(self):
                self.released = True

        monkeypatch.setattr(mediapipe_detector.cv2, "VideoCapture", ClosedCapture)

        with pytest.raises(DetectorUnavailableError):
            MediaPipeDetector(camera_id=5).open()

    def test_detect_before_open_raises(self):
        with pytest.raises(DetectorUnavailableError):
            asyncio.run(MediaPipeDetector().detect())
