"""
Emotion label to blend-shape selection.
"""

from typing import Dict, Optional

# Blend-shape preset names of the avatar format
FUN = "Fun"
ANGRY = "Angry"
SORROW = "Sorrow"
NEUTRAL = "Neutral"

EXPRESSION_CHANNELS = (FUN, ANGRY, SORROW, NEUTRAL)

DEFAULT_EXPRESSION_MAP: Dict[str, str] = {
    "happy": FUN,
    "angry": ANGRY,
    "sad": SORROW,
    "neutral": NEUTRAL,
}


class ExpressionSelector:
    """
    Picks exactly one expression channel per tick.

    Every channel in the table is cleared and the selected one is set to
    `weight`. Labels missing from the table select Neutral. The weight
    stays below 1.0 so expressions never read as exaggerated.
    """

    def __init__(
        self,
        weight: float = 0.7,
        expression_map: Optional[Dict[str, str]] = None,
        fallback: str = "neutral",
    ):
        if not (0 <= weight <= 1):
            raise ValueError(f"weight must be in range [0, 1], got {weight}")

        self.weight = weight
        self.expression_map = dict(expression_map or DEFAULT_EXPRESSION_MAP)
        if fallback not in self.expression_map:
            raise ValueError(f"fallback label {fallback!r} is not in the expression map")
        self.fallback = fallback

    @property
    def channels(self):
        return tuple(dict.fromkeys(self.expression_map.values()))

    def channel_for(self, label: Optional[str]) -> str:
        return self.expression_map.get(label, self.expression_map[self.fallback])

    def select(self, label: Optional[str]) -> Dict[str, float]:
        """
        Build the expression weight set for an emotion label.

        Returns:
            Dict mapping each channel name to its weight; one channel holds
            `weight`, every other channel 0.0.
        """
        weights = {channel: 0.0 for channel in self.channels}
        weights[self.channel_for(label)] = self.weight
        return weights
