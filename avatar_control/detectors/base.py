"""
Abstract base class for face detectors.

A detector is the input boundary of the animation loop: once per tick it
reports either one face observation or None.
"""

from abc import ABC, abstractmethod
from typing import Optional

from avatar_control.observation import FaceObservation


class DetectorUnavailableError(RuntimeError):
    """Raised when a detector cannot be opened (camera busy, model missing)."""


class FaceDetector(ABC):
    """
    Abstract base class for per-tick face detection.

    Implementations that wrap blocking work (camera reads, model inference)
    should push it off the event loop, e.g. with asyncio.to_thread.
    """

    def open(self) -> None:
        """Acquire resources. Raise DetectorUnavailableError on failure."""

    @abstractmethod
    async def detect(self) -> Optional[FaceObservation]:
        """
        Produce this tick's observation.

        Returns:
            Optional[FaceObservation]: The best-ranked face, or None if no face is visible.
        """
        pass

    @property
    def exhausted(self) -> bool:
        """True once a finite source has nothing left to report."""
        return False

    def close(self) -> None:
        """Release resources."""
