"""
Avatar frame protocol encoder and decoder.

This module implements the line protocol used to stream avatar frames to an
out-of-process renderer over a pipe, socket or file.

Frame format: "frame:V1,V2,...,V21"
Where the values follow FIELD_ORDER: frame index, elapsed seconds, a 0/1
face flag, head/neck/chest quaternions (x, y, z, w), mouth and blink weights,
then the four expression channel weights.
"""

import math
from typing import Dict, List, Optional

from avatar_control.expression import EXPRESSION_CHANNELS
from avatar_control.frame import AvatarFrame


def _quaternion_fields(joint: str) -> List[str]:
    return [f"{joint}.{axis}" for axis in ("x", "y", "z", "w")]


class AvatarFrameProtocol:
    """Avatar frame encoder/decoder for renderer communication."""

    FIELD_ORDER: List[str] = [
        "index", "elapsed", "face",
        *_quaternion_fields("head"),
        *_quaternion_fields("neck"),
        *_quaternion_fields("chest"),
        "mouth", "blink",
        *EXPRESSION_CHANNELS,
    ]

    WEIGHT_FIELDS: List[str] = ["mouth", "blink", *EXPRESSION_CHANNELS]

    MIN_WEIGHT: float = 0.0
    MAX_WEIGHT: float = 1.0
    COMMAND_PREFIX: str = "frame:"
    PRECISION: int = 6

    @classmethod
    def validate_weight(cls, weight: float, name: str = "") -> None:
        """
        Validate that a blend-shape weight is finite and within [0, 1].

        Raises:
            ValueError: If weight is outside the valid range.
        """
        if not math.isfinite(weight) or weight < cls.MIN_WEIGHT or weight > cls.MAX_WEIGHT:
            raise ValueError(
                f"Weight {weight} is out of range [{cls.MIN_WEIGHT}, {cls.MAX_WEIGHT}]"
                + (f" for '{name}'" if name else "")
            )

    @classmethod
    def encode(cls, frame: AvatarFrame) -> str:
        """
        Encode an avatar frame to a command string.

        Args:
            frame: Frame to encode. Expression weights must cover exactly
                   the four expression channels.

        Returns:
            Command string in format "frame:V1,V2,...,V21"

        Raises:
            ValueError: If expression channels are missing or unknown, a
                       quaternion is malformed, or a weight is out of range.
        """
        missing = set(EXPRESSION_CHANNELS) - set(frame.expressions)
        if missing:
            raise ValueError(f"Missing expression channels: {sorted(missing)}")
        extra = set(frame.expressions) - set(EXPRESSION_CHANNELS)
        if extra:
            raise ValueError(f"Unknown expression channels: {sorted(extra)}")

        values: Dict[str, float] = {
            "index": frame.index,
            "elapsed": frame.elapsed,
            "face": 1 if frame.face_detected else 0,
            "mouth": frame.mouth,
            "blink": frame.blink,
        }
        for joint, quaternion in (
            ("head", frame.head_rotation),
            ("neck", frame.neck_rotation),
            ("chest", frame.chest_rotation),
        ):
            if len(quaternion) != 4 or not all(math.isfinite(v) for v in quaternion):
                raise ValueError(f"Invalid {joint} quaternion: {list(quaternion)}")
            for name, v in zip(_quaternion_fields(joint), quaternion):
                values[name] = float(v)
        values.update(frame.expressions)

        for name in cls.WEIGHT_FIELDS:
            cls.validate_weight(values[name], name)

        parts = []
        for name in cls.FIELD_ORDER:
            if name in ("index", "face"):
                parts.append(str(int(values[name])))
            else:
                parts.append(f"{values[name]:.{cls.PRECISION}f}")

        return cls.COMMAND_PREFIX + ",".join(parts)

    @classmethod
    def decode(cls, command: str) -> Optional[Dict[str, float]]:
        """
        Decode a command string to a dictionary of field values.

        Args:
            command: Command string in format "frame:V1,V2,...,V21"

        Returns:
            Dictionary mapping FIELD_ORDER names to values,
            or None if the command format is invalid.
        """
        command = command.strip()
        if not command.startswith(cls.COMMAND_PREFIX):
            return None

        value_str = command[len(cls.COMMAND_PREFIX):]
        if not value_str:
            return None

        parts = value_str.split(",")
        if len(parts) != len(cls.FIELD_ORDER):
            return None

        values: Dict[str, float] = {}
        for name, part in zip(cls.FIELD_ORDER, parts):
            try:
                value = int(part) if name in ("index", "face") else float(part)
            except ValueError:
                return None

            if not math.isfinite(value):
                return None
            if name in cls.WEIGHT_FIELDS and not (cls.MIN_WEIGHT <= value <= cls.MAX_WEIGHT):
                return None
            if name == "face" and value not in (0, 1):
                return None

            values[name] = value

        return values
