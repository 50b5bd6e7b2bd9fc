"""
Tests for FaceObservation parsing and the replay detector.
"""

import asyncio
import json

import pytest

from avatar_control.detectors.replay import ReplayDetector, parse_record
from avatar_control.observation import FaceObservation, HeadRotation


def face_record(**overrides):
    record = {
        "rotation": {"pitch": 0.1, "yaw": -0.2, "roll": 0.05},
        "box": [0.3, 0.2, 0.25, 0.4],
        "mesh": [[0.0, 0.0, 0.0]] * 15,
        "emotions": [{"label": "happy", "score": 0.9}, {"label": "neutral", "score": 0.1}],
    }
    record.update(overrides)
    return record


def detect_all(detector, n):
    async def _run():
        return [await detector.detect() for _ in range(n)]
    return asyncio.run(_run())


class TestObservationParsing:

    def test_native_layout(self):
        observation = FaceObservation.from_dict(face_record())

        assert observation.rotation == HeadRotation(0.1, -0.2, 0.05)
        assert observation.box == (0.3, 0.2, 0.25, 0.4)
        assert observation.top_emotion.label == "happy"
        assert observation.lip_points() is not None

    def test_browser_tracker_layout(self):
        record = {
            "rotation": {"angle": {"pitch": 0.3, "yaw": 0.1, "roll": 0.0}},
            "boxRaw": [0.1, 0.1, 0.5, 0.5],
            "meshRaw": [[0.5, 0.5, 0.0]] * 468,
            "emotion": [{"score": 0.8, "emotion": "sad"}],
        }
        observation = FaceObservation.from_dict(record)

        assert observation.rotation.pitch == 0.3
        assert observation.box == (0.1, 0.1, 0.5, 0.5)
        assert len(observation.mesh) == 468
        assert observation.top_emotion.label == "sad"

    def test_dict_round_trip(self):
        observation = FaceObservation.from_dict(face_record())
        assert FaceObservation.from_dict(observation.to_dict()) == observation

    def test_short_mesh_has_no_lips(self):
        observation = FaceObservation.from_dict(face_record(mesh=[[0, 0, 0]] * 5))
        assert observation.lip_points() is None

    def test_missing_emotions_allowed(self):
        record = face_record()
        del record["emotions"]
        assert FaceObservation.from_dict(record).top_emotion is None

    @pytest.mark.parametrize("overrides", [
        {"rotation": None},
        {"box": [0.1, 0.2]},
        {"box": 5},
        {"box": [0.1, None, 0.2, 0.2]},
        {"rotation": {"pitch": None}},
        {"emotions": ["happy"]},
        {"emotions": [{"label": "happy", "score": None}]},
        {"mesh": [1, 2]},
        {"mesh": 7},
    ])
    def test_malformed_record_rejected(self, overrides):
        with pytest.raises(ValueError):
            FaceObservation.from_dict(face_record(**overrides))


class TestParseRecord:

    def test_null_is_no_face(self):
        assert parse_record(None) is None

    def test_result_with_face_list(self):
        observation = parse_record({"face": [face_record(), face_record(box=[0, 0, 1, 1])]})
        assert observation.box == (0.3, 0.2, 0.25, 0.4)

    def test_result_with_empty_face_list(self):
        assert parse_record({"face": []}) is None

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            parse_record([1, 2, 3])


class TestReplayDetector:

    def test_plays_in_order_then_exhausts(self):
        first = FaceObservation.from_dict(face_record())
        detector = ReplayDetector([first, None])

        assert len(detector) == 2
        assert detect_all(detector, 3) == [first, None, None]
        assert detector.exhausted

    def test_loop_wraps_around(self):
        first = FaceObservation.from_dict(face_record())
        detector = ReplayDetector([first, None], loop=True)

        assert detect_all(detector, 5) == [first, None, first, None, first]
        assert not detector.exhausted

    def test_rewind(self):
        detector = ReplayDetector([None])
        detect_all(detector, 1)
        detector.rewind()
        assert not detector.exhausted

    def test_from_file(self, tmp_path):
        path = tmp_path / "session.jsonl"
        lines = [json.dumps(face_record()), "null", "", json.dumps({"face": []})]
        path.write_text("\n".join(lines) + "\n")

        detector = ReplayDetector.from_file(path)

        assert len(detector) == 3
        observations = detect_all(detector, 3)
        assert observations[0].top_emotion.score == 0.9
        assert observations[1:] == [None, None]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ReplayDetector.from_file(tmp_path / "missing.jsonl")

    def test_bad_line_reports_location(self, tmp_path):
        path = tmp_path / "session.jsonl"
        path.write_text("null\n{not json\n")
        with pytest.raises(ValueError, match="session.jsonl:2"):
            ReplayDetector.from_file(path)

    def test_wrongly_typed_field_reports_location(self, tmp_path):
        path = tmp_path / "session.jsonl"
        path.write_text("null\nnull\n" + json.dumps(face_record(emotions=["happy"])) + "\n")
        with pytest.raises(ValueError, match="session.jsonl:3"):
            ReplayDetector.from_file(path)
