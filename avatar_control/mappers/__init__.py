"""
Observation-to-target mappers for avatar control.

- ObservationMapper: Interface used by FrameOrchestrator
- SignalMapper: Camera unprojection, halved head rotation, lip-gap mouth
  and thresholded emotion
"""

from avatar_control.mappers.base import MappedSignals, ObservationMapper
from avatar_control.mappers.signal_mapper import SignalMapper, SignalMapperConfig

__all__ = [
    "MappedSignals",
    "ObservationMapper",
    "SignalMapper",
    "SignalMapperConfig",
]
