"""Temporal smoothing module for avatar pose targets.

This module eases the avatar toward each tick's target pose and splits the
eased rotation across the head, neck and chest joints.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from avatar_control.pose import (
    IDENTITY_QUATERNION,
    SmoothedPose,
    TargetPose,
    euler_to_quaternion,
    lerp,
    quaternion_to_euler,
    slerp,
)


@dataclass
class JointRotations:
    """Joint quaternions (x, y, z, w) handed to the avatar applier."""

    head: np.ndarray
    neck: np.ndarray
    chest: np.ndarray


class TemporalSmoother:
    """指数平滑姿态 (Exponential pose smoother)

    Applies per-tick exponential easing to the target pose:

        position[t] = lerp(position[t-1], target.position, alpha)
        rotation[t] = slerp(rotation[t-1], target.rotation, alpha)

    Unlike a plain EMA the state starts at the origin with identity rotation
    rather than at the first input, so the avatar glides into place when
    tracking begins.

    Attributes:
        alpha: Smoothing coefficient in range (0, 1]. Smaller = smoother.
        lean_coefficient: Chest lean per unit of lateral offset.
    """

    # Each of head and neck carries this share of the total turn
    JOINT_SHARE = 0.5

    def __init__(self, alpha: float = 0.2, lean_coefficient: float = 1.0):
        """Initialize the temporal smoother.

        Args:
            alpha: Smoothing coefficient. Must be in range (0, 1].
                   Default is 0.2.
            lean_coefficient: How far the chest leans into lateral motion.

        Raises:
            ValueError: If alpha is not in range (0, 1].
        """
        if not (0 < alpha <= 1):
            raise ValueError(f"alpha must be in range (0, 1], got {alpha}")

        self.alpha = alpha
        self.lean_coefficient = lean_coefficient
        self._pose = SmoothedPose()

    def update(self, target: TargetPose, alpha: Optional[float] = None) -> SmoothedPose:
        """Ease the smoothed pose one step toward the target.

        Called every tick, including ticks where the target was held over,
        so the pose keeps converging instead of stepping.

        Args:
            target: This tick's target pose.
            alpha: Optional per-call coefficient overriding self.alpha.

        Returns:
            Copy of the updated smoothed pose.
        """
        c = self.alpha if alpha is None else alpha
        if not (0 < c <= 1):
            raise ValueError(f"alpha must be in range (0, 1], got {c}")

        self._pose.position = lerp(
            self._pose.position, np.asarray(target.position, dtype=np.float64), c
        )
        self._pose.rotation = slerp(self._pose.rotation, target.rotation, c)
        return self._pose.copy()

    def derive(self) -> JointRotations:
        """Split the smoothed pose into head, neck and chest rotations.

        Head and neck each take half of the smoothed rotation and add a twist
        about the forward axis proportional to the lateral offset. The chest
        leans the opposite way by the full amount.
        """
        lean = self.lean_coefficient * float(self._pose.position[0])

        return JointRotations(
            head=self._joint_rotation(lean),
            neck=self._joint_rotation(lean),
            chest=euler_to_quaternion(0.0, 0.0, -lean),
        )

    def _joint_rotation(self, lean: float) -> np.ndarray:
        share = slerp(IDENTITY_QUATERNION, self._pose.rotation, self.JOINT_SHARE)
        euler = quaternion_to_euler(share)
        euler[2] += self.JOINT_SHARE * lean
        return euler_to_quaternion(*euler)

    def reset(self):
        """Return to origin position and identity rotation."""
        self._pose = SmoothedPose()

    @property
    def current_state(self) -> SmoothedPose:
        """Copy of the current smoothed pose."""
        return self._pose.copy()
