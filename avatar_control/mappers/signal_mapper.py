"""
Maps raw face observations to avatar pose targets, mouth and emotion.

The face box is placed in the world by unprojecting its center through the
renderer camera and intersecting the resulting ray with the z = 0 plane the
avatar stands in. Head rotation is halved and mirrored into the avatar's
facing convention.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from avatar_control.camera import CameraModel
from avatar_control.mappers.base import NEUTRAL_EMOTION, MappedSignals, ObservationMapper
from avatar_control.observation import FaceObservation
from avatar_control.pose import TargetPose, euler_to_quaternion

logger = logging.getLogger(__name__)


@dataclass
class SignalMapperConfig:
    """Configuration for SignalMapper."""

    # Top emotion score must be strictly greater than this
    emotion_threshold: float = 0.7

    # mouth = clamp(scale * lip_gap + offset, 0, 1)
    mouth_scale: float = 100.0
    mouth_offset: float = -1.0

    # Fraction of the detected head rotation passed to the avatar
    rotation_gain: float = 0.5

    # Depth of the unprojected box center in NDC
    ndc_depth: float = 0.5


class SignalMapper(ObservationMapper):
    """
    Stateless mapper from FaceObservation to MappedSignals.

    Usage:
        mapper = SignalMapper()
        signals = mapper.map(observation, camera, previous=MappedSignals.neutral())
    """

    def __init__(self, config: Optional[SignalMapperConfig] = None):
        self.config = config or SignalMapperConfig()

    def map(
        self,
        observation: Optional[FaceObservation],
        camera: CameraModel,
        previous: MappedSignals,
    ) -> MappedSignals:
        if observation is None:
            return previous

        if not self._is_finite(observation):
            logger.warning("Observation has non-finite values, holding previous target")
            return previous

        lips = observation.lip_points()
        if lips is None:
            logger.warning(
                f"Observation mesh has {len(observation.mesh)} points, "
                "need inner-lip landmarks, holding previous target"
            )
            return previous

        position = self.map_position(observation.box, camera)
        if position is None:
            logger.warning("Face ray is parallel to the avatar plane, holding previous target")
            return previous

        return MappedSignals(
            target=TargetPose(
                position=position,
                rotation=self.map_rotation(observation),
            ),
            mouth=self.map_mouth(lips[0][1], lips[1][1]),
            emotion=self.map_emotion(observation),
        )

    def map_position(self, box, camera: CameraModel) -> Optional[np.ndarray]:
        """
        Place the face box center on the avatar plane.

        Returns:
            World-space position with z = 0, or None if the view ray never
            reaches the plane.
        """
        b = np.clip(np.asarray(box, dtype=np.float64), 0.0, 1.0)
        ndc = (
            2.0 * b[0] + b[2] - 1.0,
            -2.0 * b[1] - b[3] + 1.0,
            self.config.ndc_depth,
        )

        eye = camera.position_vector
        direction = camera.unproject(ndc) - eye
        norm = np.linalg.norm(direction)
        if norm < 1e-12:
            return None
        direction = direction / norm

        if abs(direction[2]) < 1e-9:
            return None

        k = -eye[2] / direction[2]
        return eye + k * direction

    def map_rotation(self, observation: FaceObservation) -> np.ndarray:
        gain = self.config.rotation_gain
        r = observation.rotation
        return euler_to_quaternion(-gain * r.pitch, -gain * r.yaw, gain * r.roll)

    def map_mouth(self, upper_lip_y: float, lower_lip_y: float) -> float:
        """Mouth-open weight in [0, 1] from the inner-lip vertical gap."""
        value = self.config.mouth_scale * (lower_lip_y - upper_lip_y) + self.config.mouth_offset
        return float(min(max(value, 0.0), 1.0))

    def map_emotion(self, observation: FaceObservation) -> str:
        top = observation.top_emotion
        if top is not None and top.score > self.config.emotion_threshold:
            return top.label
        return NEUTRAL_EMOTION

    @staticmethod
    def _is_finite(observation: FaceObservation) -> bool:
        r = observation.rotation
        values = [r.pitch, r.yaw, r.roll, *observation.box]
        lips = observation.lip_points()
        if lips is not None:
            values.extend([lips[0][1], lips[1][1]])
        return all(math.isfinite(v) for v in values)
