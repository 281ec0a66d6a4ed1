import json
import math
import unittest

from analytics_service.models import (
    AnalysisOptions,
    EmptySessionError,
    Frame,
    JointType,
    QualityCategory,
    Session,
    SessionMode,
    analyze,
)

from pose_fixtures import landmarks_payload, plank_session, squat_landmarks, squat_session

NO_SMOOTHING = AnalysisOptions(smoothing_radius=0)

# One full squat cycle between two bottoms: 85 -> 175 -> 85
ONE_CYCLE = [175, 85, 95, 110, 175, 110, 95, 90, 85, 175]


def wave(cycles, period=12, top=175.0, bottom=90.0):
    mid, amp = (top + bottom) / 2, (top - bottom) / 2
    return [mid + amp * math.cos(2 * math.pi * i / period) for i in range(cycles * period + 1)]


class SquatSessionTest(unittest.TestCase):
    def test_single_cycle_is_one_good_rep(self):
        result = analyze(squat_session(ONE_CYCLE), NO_SMOOTHING)

        self.assertEqual(result.activity, "squat")
        self.assertEqual(len(result.reps), 1)
        rep = result.reps[0]
        self.assertTrue(rep.is_good)
        self.assertIn(rep.category, (QualityCategory.EXCELLENT, QualityCategory.GOOD))
        self.assertEqual(rep.frame_count, 8)
        self.assertEqual((rep.start_t, rep.end_t), (100.0, 800.0))
        self.assertEqual(result.good_rep_count, 1)
        self.assertEqual(result.bad_rep_count, 0)
        self.assertEqual(result.rep_category_counts[rep.category.value], 1)

    def test_isolated_dip_has_no_closing_valley(self):
        # Reps run valley to valley, so a lone dip has no closing valley
        result = analyze(squat_session([175, 150, 120, 95, 85, 95, 120, 150, 175, 175]), NO_SMOOTHING)
        self.assertEqual(result.reps, [])

    def test_repeated_squats_with_default_smoothing(self):
        result = analyze(squat_session(wave(cycles=3)))
        self.assertEqual(len(result.reps), 2)
        self.assertEqual(result.good_rep_count, 2)
        for rep in result.reps:
            self.assertGreaterEqual(rep.frame_count, 6)

    def test_shallow_squat_is_bad_rep(self):
        angles = [175, 150, 160, 170, 175, 170, 160, 150, 175, 175]
        result = analyze(squat_session(angles), NO_SMOOTHING)

        self.assertEqual(len(result.reps), 1)
        rep = result.reps[0]
        self.assertGreater(abs(rep.min_value - 90), 28)
        self.assertFalse(rep.is_good)
        self.assertEqual(result.good_rep_count, 0)
        self.assertEqual(result.bad_rep_count, 1)

    def test_activity_id_is_resolved_by_substring(self):
        result = analyze(squat_session(ONE_CYCLE, activity_id="Goblet Squat"), NO_SMOOTHING)
        self.assertEqual(result.activity, "squat")


class HoldSessionTest(unittest.TestCase):
    def test_steady_plank(self):
        result = analyze(plank_session([180.0] * 50))

        self.assertEqual(result.activity, "plank")
        self.assertEqual(result.total_frames, 50)
        self.assertEqual(result.correct_frames, 50)
        self.assertEqual(result.accuracy_pct, 100)
        self.assertEqual(result.frame_category_counts["Excellent"], 50)
        self.assertEqual(result.reps, [])
        self.assertEqual(result.good_rep_count + result.bad_rep_count, 0)

    def test_oscillating_hold_never_produces_reps(self):
        angles = [180.0 if i % 8 < 4 else 150.0 for i in range(64)]
        result = analyze(plank_session(angles), NO_SMOOTHING)
        self.assertEqual(result.reps, [])
        self.assertLess(result.accuracy_pct, 100)


class SparseSessionTest(unittest.TestCase):
    def test_frames_without_landmarks(self):
        session = Session(
            activity_id="squat",
            frames=tuple(Frame(t=i * 33.0, landmarks=()) for i in range(12)),
        )
        result = analyze(session)

        self.assertEqual(result.total_frames, 12)
        self.assertEqual(result.correct_frames, 0)
        self.assertEqual(result.accuracy_pct, 0)
        self.assertEqual(result.overall_weighted_score, 0)
        self.assertEqual(result.frame_category_counts["Unknown"], 12)
        self.assertTrue(all(p.category is QualityCategory.UNKNOWN for p in result.timeline))
        self.assertTrue(all(p.score is None for p in result.timeline))
        self.assertEqual(result.reps, [])

    def test_empty_session_raises(self):
        with self.assertRaises(EmptySessionError):
            analyze(Session(activity_id="squat", frames=()))
        self.assertTrue(issubclass(EmptySessionError, ValueError))

    def test_partial_landmarks_degrade(self):
        frames = []
        for i, angle in enumerate(ONE_CYCLE):
            lm = list(squat_landmarks(angle))
            if i % 3 == 0:
                # knees not detected
                lm[JointType.LEFT_KNEE.value] = None
                lm[JointType.RIGHT_KNEE.value] = None
            frames.append(Frame(t=i * 100.0, landmarks=tuple(lm)))
        result = analyze(Session(activity_id="squat", frames=tuple(frames)))

        self.assertEqual(result.total_frames, len(ONE_CYCLE))
        self.assertIsNone(result.timeline[0].metrics["knee"])
        self.assertIsNotNone(result.timeline[0].metrics["back"])
        self.assertIsNotNone(result.timeline[0].score)


class AggregationTest(unittest.TestCase):
    def setUp(self):
        self.result = analyze(squat_session(wave(cycles=2)))

    def test_timeline_matches_frames(self):
        self.assertEqual(len(self.result.timeline), len(wave(cycles=2)))

    def test_accuracy_reproducible_from_timeline(self):
        timeline = self.result.timeline
        expected = round(100 * sum(p.score or 0 for p in timeline) / len(timeline))
        self.assertEqual(self.result.accuracy_pct, expected)
        self.assertEqual(self.result.overall_weighted_score, expected)

    def test_correct_frames_counts_passed(self):
        self.assertEqual(self.result.correct_frames, sum(p.passed for p in self.result.timeline))

    def test_scores_in_unit_interval(self):
        for point in self.result.timeline:
            if point.score is not None:
                self.assertGreaterEqual(point.score, 0.0)
                self.assertLessEqual(point.score, 1.0)

    def test_histograms_cover_every_category(self):
        for counts in (self.result.frame_category_counts, self.result.rep_category_counts):
            self.assertEqual(set(counts), {c.value for c in QualityCategory})
        self.assertEqual(sum(self.result.frame_category_counts.values()), self.result.total_frames)
        self.assertEqual(sum(self.result.rep_category_counts.values()), len(self.result.reps))

    def test_downsampled_series(self):
        result = analyze(squat_session(ONE_CYCLE), AnalysisOptions(smoothing_radius=0, sample_stride=3))
        series = result.downsampled_series
        self.assertEqual(len(series), 4)
        self.assertEqual([p.time_sec for p in series], [0, 0, 1, 1])
        self.assertAlmostEqual(series[0].primary_value, 175.0, places=1)
        self.assertAlmostEqual(series[0].secondary_value, 180.0, places=1)
        self.assertEqual(series[1].score, result.timeline[3].score)

    def test_result_is_json_serializable(self):
        data = json.loads(json.dumps(self.result.to_dict()))
        self.assertEqual(data["total_frames"], self.result.total_frames)
        self.assertEqual(len(data["reps"]), len(self.result.reps))

    def test_each_call_builds_a_fresh_result(self):
        session = squat_session(ONE_CYCLE)
        first, second = analyze(session, NO_SMOOTHING), analyze(session, NO_SMOOTHING)
        self.assertIsNot(first, second)
        self.assertIsNot(first.timeline, second.timeline)
        self.assertEqual(first.to_dict(), second.to_dict())


class AnalysisOptionsTest(unittest.TestCase):
    def test_defaults(self):
        options = AnalysisOptions()
        self.assertEqual((options.smoothing_radius, options.sample_stride), (2, 1))

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            AnalysisOptions(smoothing_radius=-1)
        with self.assertRaises(ValueError):
            AnalysisOptions(sample_stride=0)


class SessionFromDictTest(unittest.TestCase):
    def test_capture_layer_payload(self):
        session = Session.from_dict({
            "id": "abc123",
            "mode": "yoga",
            "exercise": "Tree Pose",
            "startTs": 1000,
            "durationMs": 5000,
            "frames": [{"t": 0, "landmarks": landmarks_payload(squat_landmarks(90))}],
        })
        self.assertEqual(session.session_id, "abc123")
        self.assertIs(session.mode, SessionMode.YOGA)
        self.assertEqual(session.activity_id, "Tree Pose")
        self.assertEqual(session.end_ts, 6000)
        self.assertEqual(len(session.frames), 1)
        self.assertAlmostEqual(session.frames[0].landmarks[25].y, 300.0)

    def test_defaults_for_missing_fields(self):
        session = Session.from_dict({"frames": "not-a-list", "mode": "dance"})
        self.assertEqual(session.activity_id, "unknown")
        self.assertIs(session.mode, SessionMode.EXERCISE)
        self.assertEqual(session.frames, ())
        self.assertTrue(session.session_id)

    def test_malformed_landmarks_become_unknown_frames(self):
        session = Session.from_dict({
            "exercise": "squat",
            "frames": [
                {"t": 0, "landmarks": ["garbage", {"x": "a", "y": 1}, None]},
                {"t": "later", "landmarks": "nope"},
            ],
        })
        result = analyze(session)
        self.assertEqual(result.total_frames, 2)
        self.assertEqual(result.frame_category_counts["Unknown"], 2)

    def test_non_finite_timestamps_become_zero(self):
        lm = landmarks_payload(squat_landmarks(90))
        session = Session.from_dict({
            "exercise": "squat",
            "frames": [
                {"t": "nan", "landmarks": lm},
                {"t": "inf", "landmarks": lm},
                {"t": float("-inf"), "landmarks": lm},
                {"t": 10, "landmarks": lm},
            ],
        })
        self.assertEqual([f.t for f in session.frames], [0.0, 0.0, 0.0, 10.0])

        result = analyze(session)
        self.assertEqual([p.time_sec for p in result.downsampled_series], [0, 0, 0, 0])
        json.dumps(result.to_dict(), allow_nan=False)

    def test_non_object_frames_still_count(self):
        session = Session.from_dict({
            "exercise": "squat",
            "frames": [
                None,
                "garbage",
                {"t": 100, "landmarks": landmarks_payload(squat_landmarks(90))},
            ],
        })
        self.assertEqual(len(session.frames), 3)
        self.assertEqual(session.frames[0], Frame(t=0.0))

        result = analyze(session)
        self.assertEqual(result.total_frames, 3)
        self.assertEqual(result.frame_category_counts["Unknown"], 2)

    def test_zero_timestamps_are_kept(self):
        session = Session.from_dict({"startTs": 0, "durationMs": 0, "endTs": 0, "frames": []})
        self.assertEqual((session.start_ts, session.duration_ms, session.end_ts), (0.0, 0.0, 0.0))

        session = Session.from_dict({"start_ts": 0, "duration_ms": 2500, "frames": []})
        self.assertEqual(session.start_ts, 0.0)
        self.assertEqual(session.end_ts, 2500.0)


class NonFiniteFrameTimeTest(unittest.TestCase):
    def test_infinite_frame_time_is_charted_at_zero(self):
        frames = (
            Frame(t=0.0, landmarks=tuple(squat_landmarks(90))),
            Frame(t=float("inf"), landmarks=tuple(squat_landmarks(90))),
            Frame(t=float("nan"), landmarks=tuple(squat_landmarks(90))),
        )
        result = analyze(Session(activity_id="squat", frames=frames))

        self.assertEqual(result.total_frames, 3)
        self.assertEqual([p.time_sec for p in result.downsampled_series], [0, 0, 0])


if __name__ == "__main__":
    unittest.main()
