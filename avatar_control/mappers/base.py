"""
Abstract base class for observation mappers.

All mappers must implement this interface to be used with FrameOrchestrator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from avatar_control.camera import CameraModel
from avatar_control.observation import FaceObservation
from avatar_control.pose import TargetPose


NEUTRAL_EMOTION = "neutral"


@dataclass
class MappedSignals:
    """Per-tick mapper output, also threaded back in as the held value."""

    target: TargetPose = field(default_factory=TargetPose.neutral)
    mouth: float = 0.0
    emotion: str = NEUTRAL_EMOTION

    @classmethod
    def neutral(cls) -> "MappedSignals":
        return cls()


class ObservationMapper(ABC):
    """
    Abstract base class for mapping a face observation to avatar targets.

    The mapper is responsible for:
    1. Converting head rotation and face box into a TargetPose
    2. Deriving the mouth-open weight from the lip landmarks
    3. Picking an emotion label from the ranked emotion scores
    """

    @abstractmethod
    def map(
        self,
        observation: Optional[FaceObservation],
        camera: CameraModel,
        previous: MappedSignals,
    ) -> MappedSignals:
        """
        Convert one observation into avatar targets.

        Parameters:
            observation (Optional[FaceObservation]): This tick's detector output, or None when no face was found.
            camera (CameraModel): Renderer camera used for unprojection.
            previous (MappedSignals): Last tick's result, returned as-is when there is nothing new to map.

        Returns:
            MappedSignals: Target pose, mouth weight in [0, 1] and emotion label.
        """
        pass
