"""
FaceObservation dataclass for one tick of face-tracking output.

This module defines the data structures a face detector hands to the
animation pipeline: head rotation, normalized face box, landmark mesh
and ranked emotion scores.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple


# Inner-lip landmark indices in the 468/478-point face mesh topology
UPPER_INNER_LIP = 13
LOWER_INNER_LIP = 14


@dataclass(frozen=True)
class HeadRotation:
    """Head rotation in radians, camera-view convention."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True)
class EmotionScore:
    label: str
    score: float


@dataclass(frozen=True)
class FaceObservation:
    """检测器单帧输出 (one detector result for a single face)

    Attributes:
        rotation: Head pitch/yaw/roll in radians.
        box: Normalized face box, the detector's (x, y, width, height) layout
             with every value in [0, 1].
        mesh: Landmark points, each (x, y, z) in normalized image space.
              Only the inner-lip points 13 and 14 are consumed.
        emotions: Emotion scores sorted by descending score. May be empty.
        timestamp: Detector timestamp in seconds, informational only.
    """

    rotation: HeadRotation
    box: Tuple[float, float, float, float]
    mesh: Sequence[Sequence[float]] = field(default_factory=tuple, repr=False)
    emotions: Tuple[EmotionScore, ...] = ()
    timestamp: float = 0.0

    @property
    def top_emotion(self) -> Optional[EmotionScore]:
        """Highest ranked emotion, trusting the detector's ordering."""
        if not self.emotions:
            return None
        return self.emotions[0]

    def lip_points(self) -> Optional[Tuple[Sequence[float], Sequence[float]]]:
        """Return (upper, lower) inner-lip points, or None if the mesh is short
        or either point lacks a y coordinate."""
        if len(self.mesh) <= LOWER_INNER_LIP:
            return None
        upper, lower = self.mesh[UPPER_INNER_LIP], self.mesh[LOWER_INNER_LIP]
        if len(upper) < 2 or len(lower) < 2:
            return None
        return upper, lower

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FaceObservation":
        """
        Build an observation from a detector result dictionary.

        Accepts both the field names used here (``rotation``, ``box``,
        ``mesh``, ``emotions``) and the layout emitted by browser face
        trackers (``rotation.angle``, ``boxRaw``, ``meshRaw``, ``emotion``
        entries keyed ``emotion``/``score``).

        Args:
            data: Parsed JSON object for one face

        Returns:
            FaceObservation instance

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        rotation = data.get("rotation")
        if isinstance(rotation, dict) and "angle" in rotation:
            rotation = rotation["angle"]
        if not isinstance(rotation, dict):
            raise ValueError(f"Observation is missing a rotation: {rotation!r}")

        box = data.get("box", data.get("boxRaw"))
        if not isinstance(box, (list, tuple)) or len(box) != 4:
            raise ValueError(f"Observation box must have 4 values, got {box!r}")

        mesh = data.get("mesh", data.get("meshRaw")) or []
        if not isinstance(mesh, (list, tuple)):
            raise ValueError(f"Observation mesh must be a list of points, got {mesh!r}")

        raw_emotions: List[Dict[str, Any]] = data.get("emotions", data.get("emotion")) or []
        if not isinstance(raw_emotions, (list, tuple)) or not all(
            isinstance(entry, dict) for entry in raw_emotions
        ):
            raise ValueError(f"Observation emotions must be a list of objects, got {raw_emotions!r}")

        try:
            emotions = tuple(
                EmotionScore(
                    label=str(entry.get("label", entry.get("emotion", ""))),
                    score=float(entry.get("score", 0.0)),
                )
                for entry in raw_emotions
            )

            return cls(
                rotation=HeadRotation(
                    pitch=float(rotation.get("pitch", 0.0)),
                    yaw=float(rotation.get("yaw", 0.0)),
                    roll=float(rotation.get("roll", 0.0)),
                ),
                box=tuple(float(v) for v in box),
                mesh=tuple(tuple(float(c) for c in point) for point in mesh),
                emotions=emotions,
                timestamp=float(data.get("timestamp", 0.0)),
            )
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Malformed observation field: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rotation": {
                "pitch": self.rotation.pitch,
                "yaw": self.rotation.yaw,
                "roll": self.rotation.roll,
            },
            "box": list(self.box),
            "mesh": [list(point) for point in self.mesh],
            "emotions": [{"label": e.label, "score": e.score} for e in self.emotions],
            "timestamp": self.timestamp,
        }
