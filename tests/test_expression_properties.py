"""
Property-based tests for ExpressionSelector.
"""

import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from avatar_control.expression import (
    ANGRY,
    EXPRESSION_CHANNELS,
    FUN,
    NEUTRAL,
    SORROW,
    ExpressionSelector,
)


KNOWN_LABELS = {"happy": FUN, "angry": ANGRY, "sad": SORROW, "neutral": NEUTRAL}


class TestExpressionExclusivity:
    """
    **Property: Exactly one expression channel is active**

    *For any* label, selection SHALL set exactly one channel to 0.7 and every
    other channel to 0.0. Unknown labels SHALL select Neutral.
    """

    @pytest.mark.parametrize("label, channel", sorted(KNOWN_LABELS.items()))
    def test_known_labels(self, label, channel):
        weights = ExpressionSelector().select(label)

        assert set(weights) == set(EXPRESSION_CHANNELS)
        assert weights[channel] == 0.7
        assert all(w == 0.0 for name, w in weights.items() if name != channel)

    def test_unknown_label_selects_neutral(self):
        weights = ExpressionSelector().select("surprise")
        assert weights[NEUTRAL] == 0.7
        assert sum(weights.values()) == pytest.approx(0.7)

    def test_none_selects_neutral(self):
        assert ExpressionSelector().select(None)[NEUTRAL] == 0.7

    @settings(max_examples=200)
    @given(label=st.one_of(st.text(max_size=12), st.sampled_from(sorted(KNOWN_LABELS))))
    def test_exactly_one_channel_nonzero(self, label):
        weights = ExpressionSelector().select(label)

        nonzero = [name for name, w in weights.items() if w != 0.0]
        assert len(nonzero) == 1
        assert weights[nonzero[0]] == 0.7
        assert nonzero[0] == KNOWN_LABELS.get(label, NEUTRAL)

    def test_previous_selection_is_cleared(self):
        selector = ExpressionSelector()
        selector.select("happy")
        weights = selector.select("angry")
        assert weights[FUN] == 0.0
        assert weights[ANGRY] == 0.7


class TestExpressionConfiguration:

    def test_custom_weight(self):
        assert ExpressionSelector(weight=0.5).select("sad")[SORROW] == 0.5

    @pytest.mark.parametrize("weight", [-0.1, 1.1])
    def test_invalid_weight_rejected(self, weight):
        with pytest.raises(ValueError):
            ExpressionSelector(weight=weight)

    def test_fallback_must_be_mapped(self):
        with pytest.raises(ValueError):
            ExpressionSelector(fallback="bored")

    def test_channels_follow_table_order(self):
        assert ExpressionSelector().channels == EXPRESSION_CHANNELS
