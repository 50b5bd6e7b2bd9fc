"""
Frame orchestrator that coordinates the avatar animation pipeline.

This is the main entry point of the package. Once per tick it awaits the
detector, maps the observation, eases the pose, advances the blink schedule,
selects the expression and hands the resulting frame to the applier.
"""

import asyncio
import enum
import logging
import time
from typing import Callable, Optional

import numpy as np

from avatar_control.appliers import AvatarApplier
from avatar_control.blink import BlinkSynthesizer, IntervalSource
from avatar_control.camera import CameraModel
from avatar_control.clock import FrameClock
from avatar_control.config import TrackingConfig
from avatar_control.detectors.base import DetectorUnavailableError, FaceDetector
from avatar_control.expression import ExpressionSelector
from avatar_control.frame import AvatarFrame
from avatar_control.mappers.base import MappedSignals, ObservationMapper
from avatar_control.mappers.signal_mapper import SignalMapper, SignalMapperConfig
from avatar_control.observation import FaceObservation
from avatar_control.smoother import TemporalSmoother

logger = logging.getLogger(__name__)


class OrchestratorState(enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class FrameOrchestrator:
    """
    Runs the per-tick animation pipeline.

    Coordinates:
    - Face detection (the only await point per tick)
    - Observation mapping with hold-on-missing
    - Pose smoothing and joint split
    - Autonomous blinking
    - Expression selection
    - Frame output to the avatar applier

    Usage:
        detector = ReplayDetector.from_file("session.jsonl")
        async with FrameOrchestrator(detector, StreamApplier()) as orchestrator:
            await orchestrator.run()
    """

    def __init__(
        self,
        detector: FaceDetector,
        applier: Optional[AvatarApplier] = None,
        config: Optional[TrackingConfig] = None,
        mapper: Optional[ObservationMapper] = None,
        camera: Optional[CameraModel] = None,
        clock: Optional[FrameClock] = None,
        rng: Optional[IntervalSource] = None,
    ):
        """
        Parameters:
            detector (FaceDetector): Source of per-tick observations.
            applier (Optional[AvatarApplier]): Receives every frame; frames are only returned when omitted.
            config (Optional[TrackingConfig]): Tuning constants and camera; defaults when omitted.
            mapper (Optional[ObservationMapper]): Defaults to a SignalMapper built from config.
            camera (Optional[CameraModel]): Defaults to config.camera_model().
            clock (Optional[FrameClock]): Tick clock; inject for deterministic timing.
            rng (Optional[IntervalSource]): Blink interval source; defaults to numpy seeded with config.seed.
        """
        self.config = config or TrackingConfig()
        self.detector = detector
        self.applier = applier
        self.camera = camera or self.config.camera_model()
        self.mapper = mapper or SignalMapper(
            SignalMapperConfig(
                emotion_threshold=self.config.emotion_threshold,
                mouth_scale=self.config.mouth_scale,
                mouth_offset=self.config.mouth_offset,
            )
        )
        self.smoother = TemporalSmoother(
            alpha=self.config.smoothing_coefficient,
            lean_coefficient=self.config.lean_coefficient,
        )
        self.blinker = BlinkSynthesizer(
            interval_min=self.config.blink_interval_min,
            interval_max=self.config.blink_interval_max,
            slope=self.config.blink_slope,
            rng=rng if rng is not None else np.random.default_rng(self.config.seed),
        )
        self.selector = ExpressionSelector(weight=self.config.expression_weight)
        self.clock = clock or FrameClock()

        # State
        self.state = OrchestratorState.IDLE
        self._signals = MappedSignals.neutral()
        self._last_face_time: Optional[float] = None
        self._released = False
        self._running = False
        self._frame_count = 0

        # Callback
        self._on_frame: Optional[Callable[[AvatarFrame], None]] = None

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def signals(self) -> MappedSignals:
        """The mapped targets currently being eased toward."""
        return self._signals

    def start(self) -> None:
        """
        Open the detector and move from IDLE to TRACKING.

        Raises:
            DetectorUnavailableError: If the detector cannot be opened.
        """
        if self.state is OrchestratorState.TRACKING:
            return

        self.detector.open()
        self.clock.start()
        self.state = OrchestratorState.TRACKING
        logger.info("Avatar tracking started")

    async def _observe(self) -> Optional[FaceObservation]:
        try:
            return await self.detector.detect()
        except DetectorUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Detection failed, treating tick as no face: {e}")
            return None

    def _update_signals(self, observation: Optional[FaceObservation], elapsed: float) -> None:
        if observation is not None:
            self._last_face_time = elapsed
            if self._released:
                logger.info("Face reacquired")
                self._released = False
        elif self.config.face_timeout is not None and not self._released:
            last_seen = self._last_face_time if self._last_face_time is not None else 0.0
            if elapsed - last_seen > self.config.face_timeout:
                logger.info(
                    f"No face for {elapsed - last_seen:.2f}s, easing back to neutral"
                )
                self._signals = MappedSignals.neutral()
                self._released = True

        self._signals = self.mapper.map(observation, self.camera, previous=self._signals)

    async def step(self) -> AvatarFrame:
        """
        Run one tick of the pipeline.

        Returns:
            AvatarFrame: The frame that was sent to the applier.
        """
        if self.state is OrchestratorState.IDLE:
            self.start()

        observation = await self._observe()
        delta, elapsed = self.clock.tick()

        self._update_signals(observation, elapsed)
        signals = self._signals

        pose = self.smoother.update(signals.target)
        joints = self.smoother.derive()
        blink = self.blinker.update(elapsed)
        expressions = self.selector.select(signals.emotion)

        frame = AvatarFrame(
            index=self._frame_count,
            elapsed=elapsed,
            delta=delta,
            face_detected=observation is not None,
            head_rotation=joints.head,
            neck_rotation=joints.neck,
            chest_rotation=joints.chest,
            position=pose.position,
            mouth=signals.mouth,
            blink=blink,
            expressions=expressions,
        )

        if self.applier is not None:
            self.applier.apply(frame)

        if self._on_frame is not None:
            self._on_frame(frame)

        self._frame_count += 1
        logger.debug(
            f"Frame {frame.index}: face={frame.face_detected}, mouth={frame.mouth:.2f}, "
            f"blink={frame.blink:.2f}, emotion={signals.emotion}"
        )
        return frame

    async def run(
        self,
        max_frames: Optional[int] = None,
        on_frame: Optional[Callable[[AvatarFrame], None]] = None,
    ) -> int:
        """
        Tick until stopped, max_frames is reached or the detector is exhausted.

        Parameters:
            max_frames (Optional[int]): Stop after this many ticks of this run.
            on_frame (Optional[Callable]): Invoked with every frame after the applier.

        Returns:
            int: Number of ticks run.
        """
        self._on_frame = on_frame
        self._running = True

        interval = 1.0 / self.config.target_fps if self.config.target_fps else None
        ticks = 0

        try:
            while self._running:
                if max_frames is not None and ticks >= max_frames:
                    break
                if self.detector.exhausted:
                    logger.info("Detector has no more observations")
                    break

                loop_start = time.perf_counter()
                await self.step()
                ticks += 1

                if interval is not None:
                    remaining = interval - (time.perf_counter() - loop_start)
                    if remaining > 0:
                        await asyncio.sleep(remaining)
        finally:
            self._running = False
            self._on_frame = None

        return ticks

    def stop(self) -> None:
        """Ask run() to return after the current tick."""
        self._running = False

    def close(self) -> None:
        """
        Stop the loop and release detector and applier resources.

        Logs a brief summary with total frames and average FPS.
        """
        self._running = False
        self.detector.close()
        if self.applier is not None:
            self.applier.close()

        if self._frame_count > 0 and self.clock.elapsed > 0:
            logger.info(
                f"Processed {self._frame_count} frames in {self.clock.elapsed:.1f}s "
                f"({self._frame_count / self.clock.elapsed:.1f} FPS)"
            )
        self.state = OrchestratorState.IDLE

    async def __aenter__(self) -> "FrameOrchestrator":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
