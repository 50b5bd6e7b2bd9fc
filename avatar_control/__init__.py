"""
Avatar Control Package

Face-tracking driven avatar animation: pose smoothing, blinking and
expression selection for a rigged 3D avatar.
"""

__version__ = "0.1.0"

from avatar_control.appliers import AvatarApplier, StreamApplier
from avatar_control.blink import BlinkState, BlinkSynthesizer
from avatar_control.camera import CameraModel
from avatar_control.clock import FrameClock
from avatar_control.config import TrackingConfig, load_config, save_config
from avatar_control.controller import FrameOrchestrator, OrchestratorState
from avatar_control.expression import EXPRESSION_CHANNELS, ExpressionSelector
from avatar_control.frame import AvatarFrame
from avatar_control.mappers import MappedSignals, SignalMapper
from avatar_control.observation import EmotionScore, FaceObservation, HeadRotation
from avatar_control.pose import SmoothedPose, TargetPose
from avatar_control.protocol import AvatarFrameProtocol
from avatar_control.smoother import JointRotations, TemporalSmoother

__all__ = [
    "AvatarApplier",
    "StreamApplier",
    "BlinkState",
    "BlinkSynthesizer",
    "CameraModel",
    "FrameClock",
    "TrackingConfig",
    "load_config",
    "save_config",
    "FrameOrchestrator",
    "OrchestratorState",
    "EXPRESSION_CHANNELS",
    "ExpressionSelector",
    "AvatarFrame",
    "MappedSignals",
    "SignalMapper",
    "EmotionScore",
    "FaceObservation",
    "HeadRotation",
    "SmoothedPose",
    "TargetPose",
    "AvatarFrameProtocol",
    "JointRotations",
    "TemporalSmoother",
]
