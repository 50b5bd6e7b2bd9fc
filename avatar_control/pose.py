"""
Pose types and quaternion helpers.

Quaternions are stored as numpy arrays in (x, y, z, w) order, the same
layout scipy's Rotation uses. Euler angles are intrinsic XYZ, radians.
"""

from dataclasses import dataclass, field

import numpy as np
from scipy.spatial.transform import Rotation, Slerp


IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])


def euler_to_quaternion(x: float, y: float, z: float) -> np.ndarray:
    """Convert intrinsic XYZ Euler angles (radians) to a unit quaternion."""
    return Rotation.from_euler("XYZ", [x, y, z]).as_quat()


def quaternion_to_euler(q: np.ndarray) -> np.ndarray:
    """Inverse of euler_to_quaternion, returns (x, y, z) in radians."""
    return Rotation.from_quat(q).as_euler("XYZ")


def slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    """
    Spherical interpolation between two quaternions along the shortest arc.

    Args:
        q0: Start quaternion (x, y, z, w)
        q1: End quaternion (x, y, z, w)
        t: Blend factor, 0 returns q0 and 1 returns q1

    Returns:
        Interpolated unit quaternion
    """
    keyframes = Rotation.from_quat(np.vstack([q0, q1]))
    return Slerp([0.0, 1.0], keyframes)([t])[0].as_quat()


def lerp(p0: np.ndarray, p1: np.ndarray, t: float) -> np.ndarray:
    return p0 + (p1 - p0) * t


def rotation_angle(q0: np.ndarray, q1: np.ndarray) -> float:
    """Angle in radians of the relative rotation between q0 and q1."""
    relative = Rotation.from_quat(q0).inv() * Rotation.from_quat(q1)
    return float(relative.magnitude())


@dataclass
class TargetPose:
    """Where the avatar should be this tick, before smoothing."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())

    def copy(self) -> "TargetPose":
        return TargetPose(position=self.position.copy(), rotation=self.rotation.copy())

    @classmethod
    def neutral(cls) -> "TargetPose":
        """Origin position with identity rotation."""
        return cls()


@dataclass
class SmoothedPose(TargetPose):
    """Persistent eased pose, owned by the TemporalSmoother."""

    def copy(self) -> "SmoothedPose":
        return SmoothedPose(position=self.position.copy(), rotation=self.rotation.copy())
