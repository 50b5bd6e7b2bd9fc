"""
Perspective camera model used to unproject face boxes into world space.

The camera follows the OpenGL conventions of the avatar renderer: it looks
down its local -Z axis, NDC spans [-1, 1] on every axis, and the view is
built from a world position plus a look-at target with +Y up.
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class CameraModel:
    """Read-only perspective camera description.

    Attributes:
        fov: Vertical field of view in degrees
        aspect: Width / height
        near: Near clip distance
        far: Far clip distance
        position: Camera world position
        target: World point the camera looks at
    """

    fov: float = 30.0
    aspect: float = 16.0 / 9.0
    near: float = 0.1
    far: float = 100.0
    position: Sequence[float] = (0.0, 1.45, -0.77)
    target: Sequence[float] = (0.0, 1.45, 0.0)
    up: Sequence[float] = field(default=(0.0, 1.0, 0.0), repr=False)

    def __post_init__(self):
        if not (0.0 < self.fov < 180.0):
            raise ValueError(f"fov must be in range (0, 180), got {self.fov}")
        if self.aspect <= 0:
            raise ValueError(f"aspect must be > 0, got {self.aspect}")
        if not (0.0 < self.near < self.far):
            raise ValueError(
                f"clip planes must satisfy 0 < near < far, got near={self.near}, far={self.far}"
            )
        if np.allclose(self.position_vector, self.target_vector):
            raise ValueError("camera position and target must differ")

        # Cache the inverse transform; the model never changes after construction
        inverse = np.linalg.inv(self.projection_matrix() @ self.view_matrix())
        object.__setattr__(self, "_inverse_projection_view", inverse)

    @property
    def position_vector(self) -> np.ndarray:
        return np.asarray(self.position, dtype=np.float64)

    @property
    def target_vector(self) -> np.ndarray:
        return np.asarray(self.target, dtype=np.float64)

    def projection_matrix(self) -> np.ndarray:
        """OpenGL-style perspective projection matrix."""
        top = self.near * np.tan(np.radians(0.5 * self.fov))
        right = top * self.aspect
        depth = self.far - self.near

        return np.array([
            [self.near / right, 0.0, 0.0, 0.0],
            [0.0, self.near / top, 0.0, 0.0],
            [0.0, 0.0, -(self.far + self.near) / depth, -2.0 * self.far * self.near / depth],
            [0.0, 0.0, -1.0, 0.0],
        ])

    def world_matrix(self) -> np.ndarray:
        """Camera-to-world transform built from position, target and up."""
        eye = self.position_vector
        z_axis = eye - self.target_vector
        z_axis = z_axis / np.linalg.norm(z_axis)

        x_axis = np.cross(np.asarray(self.up, dtype=np.float64), z_axis)
        if np.linalg.norm(x_axis) < 1e-9:
            # Looking straight along up; nudge z like the renderer does
            z_axis = z_axis + np.array([0.0, 0.0, 1e-4])
            z_axis = z_axis / np.linalg.norm(z_axis)
            x_axis = np.cross(np.asarray(self.up, dtype=np.float64), z_axis)
        x_axis = x_axis / np.linalg.norm(x_axis)
        y_axis = np.cross(z_axis, x_axis)

        world = np.eye(4)
        world[:3, 0] = x_axis
        world[:3, 1] = y_axis
        world[:3, 2] = z_axis
        world[:3, 3] = eye
        return world

    def view_matrix(self) -> np.ndarray:
        return np.linalg.inv(self.world_matrix())

    @property
    def forward(self) -> np.ndarray:
        """Unit vector the camera looks along, in world space."""
        return -self.world_matrix()[:3, 2]

    def unproject(self, ndc: Sequence[float]) -> np.ndarray:
        """
        Map a point from normalized device coordinates back into world space.

        Args:
            ndc: (x, y, z) with each component in [-1, 1]

        Returns:
            World-space point, shape (3,)
        """
        point = np.append(np.asarray(ndc, dtype=np.float64), 1.0)
        world = self._inverse_projection_view @ point
        return world[:3] / world[3]
