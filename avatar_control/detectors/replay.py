"""
Replay detector for recorded tracking sessions.

Reads a JSON-lines file with one entry per tick. Each line is either a face
object, ``null`` for a tick without a face, or a full detector result with a
``face`` list whose first element is used.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from avatar_control.detectors.base import FaceDetector
from avatar_control.observation import FaceObservation

logger = logging.getLogger(__name__)


def parse_record(record: Any) -> Optional[FaceObservation]:
    """
    Convert one recorded tick into an observation.

    Raises:
        ValueError: If the record is neither null nor a face/result object
    """
    if record is None:
        return None
    if not isinstance(record, dict):
        raise ValueError(f"Expected an object or null, got {type(record).__name__}")

    if "face" in record:
        faces = record["face"] or []
        if not faces:
            return None
        record = faces[0]

    return FaceObservation.from_dict(record)


class ReplayDetector(FaceDetector):
    """
    Plays back recorded observations, one per detect() call.

    Usage:
        detector = ReplayDetector.from_file("session.jsonl")
        observation = await detector.detect()
    """

    def __init__(self, observations: Iterable[Optional[FaceObservation]], loop: bool = False):
        self._observations: List[Optional[FaceObservation]] = list(observations)
        self._position = 0
        self.loop = loop

    @classmethod
    def from_file(cls, path: Union[str, Path], loop: bool = False) -> "ReplayDetector":
        """
        Load a JSON-lines recording.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If a line is not valid JSON or not a valid record
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Recording not found: {path}")

        observations = []
        with open(path, 'r') as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    observations.append(parse_record(json.loads(line)))
                except ValueError as e:
                    raise ValueError(f"{path}:{line_no}: {e}") from e

        logger.info(f"Loaded {len(observations)} recorded ticks from {path}")
        return cls(observations, loop=loop)

    def __len__(self) -> int:
        return len(self._observations)

    async def detect(self) -> Optional[FaceObservation]:
        if self.exhausted:
            return None

        observation = self._observations[self._position]
        self._position += 1
        if self.loop and self._position >= len(self._observations):
            self._position = 0
        return observation

    @property
    def exhausted(self) -> bool:
        if self.loop:
            return not self._observations
        return self._position >= len(self._observations)

    def rewind(self) -> None:
        self._position = 0
