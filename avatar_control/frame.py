"""
AvatarFrame dataclass, the per-tick output of the animation pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np


@dataclass
class AvatarFrame:
    """Everything the avatar applier needs for one tick.

    Quaternions are (x, y, z, w). Weights are in [0, 1].
    """

    index: int
    elapsed: float
    delta: float
    face_detected: bool

    head_rotation: np.ndarray
    neck_rotation: np.ndarray
    chest_rotation: np.ndarray
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))

    mouth: float = 0.0
    blink: float = 0.0
    expressions: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "elapsed": self.elapsed,
            "delta": self.delta,
            "face_detected": self.face_detected,
            "head_rotation": [float(v) for v in self.head_rotation],
            "neck_rotation": [float(v) for v in self.neck_rotation],
            "chest_rotation": [float(v) for v in self.chest_rotation],
            "position": [float(v) for v in self.position],
            "mouth": self.mouth,
            "blink": self.blink,
            "expressions": dict(self.expressions),
        }
