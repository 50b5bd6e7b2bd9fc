"""
Avatar appliers, the output boundary of the animation loop.
"""

import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO, Union

from avatar_control.frame import AvatarFrame
from avatar_control.protocol import AvatarFrameProtocol

logger = logging.getLogger(__name__)


class AvatarApplier(ABC):
    """Receives one AvatarFrame per tick and poses the avatar with it."""

    @abstractmethod
    def apply(self, frame: AvatarFrame) -> None:
        pass

    def close(self) -> None:
        """Release resources."""


class StreamApplier(AvatarApplier):
    """
    Writes each frame as one protocol line to a text stream.

    Usage:
        applier = StreamApplier.to_path("frames.txt")
        applier.apply(frame)
    """

    COMMAND_TERMINATOR = "\n"

    def __init__(self, stream: Optional[TextIO] = None, owns_stream: bool = False):
        self._stream = stream if stream is not None else sys.stdout
        self._owns_stream = owns_stream
        self.frames_written = 0

    @classmethod
    def to_path(cls, path: Union[str, Path]) -> "StreamApplier":
        """Open `path` for writing; "-" writes to stdout."""
        if str(path) == "-":
            return cls(sys.stdout)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Writing avatar frames to {path}")
        return cls(open(path, 'w'), owns_stream=True)

    def apply(self, frame: AvatarFrame) -> None:
        self._stream.write(AvatarFrameProtocol.encode(frame) + self.COMMAND_TERMINATOR)
        self._stream.flush()
        self.frames_written += 1

    def close(self) -> None:
        if self._owns_stream and not self._stream.closed:
            self._stream.close()
