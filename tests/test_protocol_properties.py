"""
Property-based tests for AvatarFrameProtocol.

These tests verify correctness properties of the frame encoder/decoder
using Hypothesis for property-based testing.
"""

import io

import numpy as np
import pytest
from hypothesis import given, settings
import hypothesis.strategies as st

from avatar_control.appliers import StreamApplier
from avatar_control.expression import EXPRESSION_CHANNELS, ExpressionSelector
from avatar_control.frame import AvatarFrame
from avatar_control.pose import IDENTITY_QUATERNION, euler_to_quaternion
from avatar_control.protocol import AvatarFrameProtocol


def make_frame(**overrides) -> AvatarFrame:
    values = dict(
        index=3,
        elapsed=0.05,
        delta=0.016,
        face_detected=True,
        head_rotation=euler_to_quaternion(0.1, 0.2, 0.0),
        neck_rotation=euler_to_quaternion(0.1, 0.2, 0.0),
        chest_rotation=IDENTITY_QUATERNION.copy(),
        mouth=0.25,
        blink=0.0,
        expressions=ExpressionSelector().select("happy"),
    )
    values.update(overrides)
    return AvatarFrame(**values)


weight = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
small_angle = st.floats(min_value=-1.0, max_value=1.0, allow_nan=False)


def invalid_weight_strategy():
    return st.one_of(
        st.floats(max_value=-1e-3, allow_nan=False, allow_infinity=False),
        st.floats(min_value=1.001, allow_nan=False, allow_infinity=False),
    )


class TestProtocolRoundTrip:
    """
    **Property: Protocol Round-Trip Consistency**

    *For any* valid frame, encoding to a command string and decoding it back
    SHALL reproduce every field to the encoded precision.
    """

    @settings(max_examples=100)
    @given(
        index=st.integers(min_value=0, max_value=10**7),
        mouth=weight,
        blink=weight,
        rx=small_angle, ry=small_angle, rz=small_angle,
        label=st.sampled_from(["happy", "angry", "sad", "neutral"]),
    )
    def test_encode_decode_round_trip(self, index, mouth, blink, rx, ry, rz, label):
        head = euler_to_quaternion(rx, ry, rz)
        frame = make_frame(
            index=index, mouth=mouth, blink=blink,
            head_rotation=head, expressions=ExpressionSelector().select(label),
        )

        decoded = AvatarFrameProtocol.decode(AvatarFrameProtocol.encode(frame))

        assert decoded is not None
        assert decoded["index"] == index
        assert decoded["face"] == 1
        assert decoded["mouth"] == pytest.approx(mouth, abs=1e-6)
        assert decoded["blink"] == pytest.approx(blink, abs=1e-6)
        assert [decoded[f"head.{a}"] for a in "xyzw"] == pytest.approx(list(head), abs=1e-6)
        for channel in EXPRESSION_CHANNELS:
            assert decoded[channel] == pytest.approx(frame.expressions[channel], abs=1e-6)

    def test_command_format(self):
        command = AvatarFrameProtocol.encode(make_frame(face_detected=False))

        assert command.startswith("frame:3,0.050000,0,")
        assert len(command[len("frame:"):].split(",")) == len(AvatarFrameProtocol.FIELD_ORDER)
        assert len(AvatarFrameProtocol.FIELD_ORDER) == 21


class TestProtocolValidation:
    """
    **Property: Invalid frames are rejected on encode**
    """

    @settings(max_examples=100)
    @given(value=invalid_weight_strategy(), field=st.sampled_from(["mouth", "blink"]))
    def test_out_of_range_weight_rejected(self, value, field):
        with pytest.raises(ValueError):
            AvatarFrameProtocol.encode(make_frame(**{field: value}))

    def test_out_of_range_expression_rejected(self):
        expressions = ExpressionSelector().select("sad")
        expressions["Sorrow"] = 1.5
        with pytest.raises(ValueError):
            AvatarFrameProtocol.encode(make_frame(expressions=expressions))

    def test_missing_channel_rejected(self):
        expressions = ExpressionSelector().select("sad")
        del expressions["Fun"]
        with pytest.raises(ValueError, match="Missing"):
            AvatarFrameProtocol.encode(make_frame(expressions=expressions))

    def test_unknown_channel_rejected(self):
        expressions = ExpressionSelector().select("sad")
        expressions["Surprised"] = 0.0
        with pytest.raises(ValueError, match="Unknown"):
            AvatarFrameProtocol.encode(make_frame(expressions=expressions))

    def test_malformed_quaternion_rejected(self):
        with pytest.raises(ValueError):
            AvatarFrameProtocol.encode(make_frame(chest_rotation=np.array([0.0, 0.0, 1.0])))
        with pytest.raises(ValueError):
            AvatarFrameProtocol.encode(
                make_frame(head_rotation=np.array([0.0, np.nan, 0.0, 1.0]))
            )


class TestProtocolDecodeRejection:
    """
    **Property: Malformed command strings decode to None**
    """

    @pytest.mark.parametrize("command", [
        "",
        "frame:",
        "angles:1,2,3",
        "frame:1,2,3",
        "frame:" + ",".join(["0"] * 22),
    ])
    def test_malformed_commands(self, command):
        assert AvatarFrameProtocol.decode(command) is None

    def test_non_numeric_value(self):
        parts = AvatarFrameProtocol.encode(make_frame())[len("frame:"):].split(",")
        parts[5] = "abc"
        assert AvatarFrameProtocol.decode("frame:" + ",".join(parts)) is None

    def test_out_of_range_weight_value(self):
        parts = AvatarFrameProtocol.encode(make_frame())[len("frame:"):].split(",")
        parts[AvatarFrameProtocol.FIELD_ORDER.index("mouth")] = "1.5"
        assert AvatarFrameProtocol.decode("frame:" + ",".join(parts)) is None

    def test_bad_face_flag(self):
        parts = AvatarFrameProtocol.encode(make_frame())[len("frame:"):].split(",")
        parts[2] = "2"
        assert AvatarFrameProtocol.decode("frame:" + ",".join(parts)) is None

    @settings(max_examples=100)
    @given(text=st.text(max_size=60))
    def test_arbitrary_text_never_raises(self, text):
        result = AvatarFrameProtocol.decode(text)
        assert result is None or set(result) == set(AvatarFrameProtocol.FIELD_ORDER)


class TestStreamApplier:

    def test_writes_one_line_per_frame(self):
        stream = io.StringIO()
        applier = StreamApplier(stream)

        applier.apply(make_frame(index=0))
        applier.apply(make_frame(index=1))

        lines = stream.getvalue().splitlines()
        assert applier.frames_written == 2
        assert [AvatarFrameProtocol.decode(line)["index"] for line in lines] == [0, 1]

    def test_to_path_owns_file(self, tmp_path):
        path = tmp_path / "out" / "frames.txt"
        applier = StreamApplier.to_path(path)
        applier.apply(make_frame())
        applier.close()

        assert path.read_text().startswith("frame:")

    def test_borrowed_stream_left_open(self):
        stream = io.StringIO()
        applier = StreamApplier(stream)
        applier.close()
        assert not stream.closed
