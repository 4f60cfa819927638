import unittest

from animation_engine import (
    BACKWARD,
    EASING,
    FORWARD,
    AnimationEngine,
    NoKeyframesError,
    PlaybackState,
    interpolate_between_settings,
)
from config import ArtSettings, LoopMode, Strategy
from keyframe_manager import Keyframe
from tick_scheduler import ManualTickScheduler


SETTINGS_A = ArtSettings(grid_end_ring=2, connection_end_ring=2, chaos=0.0, line_width=1.0,
                         strategy=Strategy.WEB, seed=0)
SETTINGS_B = ArtSettings(grid_end_ring=6, connection_end_ring=6, chaos=4.0, line_width=5.0,
                         strategy=Strategy.SPOKES, seed=10)


def _keyframes(duration_a: float = 1000.0, duration_b: float = 1000.0):
    return [
        Keyframe(id="a", name="A", timestamp=0.0, settings=SETTINGS_A.copy(), duration=duration_a),
        Keyframe(id="b", name="B", timestamp=1.0, settings=SETTINGS_B.copy(), duration=duration_b),
    ]


class _RecordingScheduler:
    """Keeps every requested callback, even after cancel()."""

    def __init__(self):
        self.now_ms = 0.0
        self.callbacks = []
        self.cancelled = 0

    def now(self):
        return self.now_ms

    def request_tick(self, callback):
        self.callbacks.append(callback)

    def cancel(self):
        self.cancelled += 1


class TestEasing(unittest.TestCase):
    def test_easing_endpoints(self):
        for name, ease in EASING.items():
            self.assertEqual(ease(0.0), 0.0, name)
            self.assertEqual(ease(1.0), 1.0, name)

    def test_cubic_midpoint_and_shape(self):
        ease = EASING["ease_in_out_cubic"]
        self.assertEqual(ease(0.5), 0.5)
        self.assertAlmostEqual(ease(0.25), 0.0625)
        self.assertAlmostEqual(ease(0.75), 0.9375)


class TestInterpolation(unittest.TestCase):
    def setUp(self):
        self.updates = []
        self.engine = AnimationEngine(on_update=self.updates.append)
        self.engine.set_keyframes(_keyframes())

    def test_interval_endpoints_match_keyframes_exactly(self):
        self.assertEqual(self.engine.interpolate_settings(0), SETTINGS_A)
        self.assertEqual(self.engine.interpolate_settings(1000), SETTINGS_B)

    def test_last_keyframe_pairs_with_itself(self):
        result = self.engine.interpolate_settings(1500)
        self.assertEqual(result, SETTINGS_B)
        result.chaos = 99.0
        self.assertEqual(self.engine.keyframes[1].settings.chaos, 4.0)

    def test_strategy_switches_at_midpoint(self):
        self.assertEqual(self.engine.interpolate_settings(499).strategy, Strategy.WEB)
        self.assertEqual(self.engine.interpolate_settings(500).strategy, Strategy.SPOKES)

    def test_integer_fields_round(self):
        quarter = self.engine.interpolate_settings(250)  # eased progress 0.0625
        self.assertEqual(quarter.grid_end_ring, 2)        # 2.25
        self.assertEqual(quarter.seed, 1)                 # 0.625
        self.assertIsInstance(quarter.seed, int)
        self.assertAlmostEqual(quarter.chaos, 0.25)

        half = self.engine.interpolate_settings(500)
        self.assertEqual(half.grid_end_ring, 4)
        self.assertAlmostEqual(half.line_width, 3.0)

    def test_single_keyframe_returns_copy(self):
        engine = AnimationEngine()
        engine.set_keyframes(_keyframes()[:1])
        self.assertEqual(engine.interpolate_settings(300), SETTINGS_A)

    def test_zero_duration_interval_jumps_to_target(self):
        engine = AnimationEngine()
        engine.set_keyframes(_keyframes(duration_a=0.0))
        self.assertEqual(engine.interpolate_settings(0), SETTINGS_B)

    def test_no_keyframes(self):
        engine = AnimationEngine(on_update=self.updates.append)
        with self.assertRaises(NoKeyframesError):
            engine.interpolate_settings(0)
        engine.update_current_settings()
        self.assertEqual(self.updates, [])

    def test_interpolate_between_settings_leaves_inputs(self):
        a, b = SETTINGS_A.copy(), SETTINGS_B.copy()
        interpolate_between_settings(a, b, 0.3)
        self.assertEqual(a, SETTINGS_A)
        self.assertEqual(b, SETTINGS_B)

    def test_set_keyframes_sorts_and_copies(self):
        keyframes = list(reversed(_keyframes()))
        engine = AnimationEngine()
        engine.set_keyframes(keyframes)
        keyframes[0].settings.chaos = 50.0
        self.assertEqual([k.id for k in engine.keyframes], ["a", "b"])
        self.assertEqual(engine.keyframes[1].settings.chaos, 4.0)
        self.assertEqual(engine.total_duration, 2000.0)


class TestFrameGeneration(unittest.TestCase):
    def test_frame_count_and_span(self):
        engine = AnimationEngine()
        engine.set_keyframes(_keyframes())
        calls = []
        frames = engine.generate_frames(30, lambda i, n: calls.append((i, n)))

        self.assertEqual(len(frames), 61)
        self.assertEqual(frames[0], SETTINGS_A)
        self.assertEqual(frames[-1], SETTINGS_B)
        self.assertEqual(calls[-1], (60, 60))
        self.assertEqual(len(calls), 61)

    def test_fractional_frame_count_rounds_up(self):
        engine = AnimationEngine()
        engine.set_keyframes(_keyframes(1000.0, 50.0))
        self.assertEqual(len(engine.generate_frames(10)), 12)  # ceil(10.5) + 1

    def test_generation_does_not_move_cursor(self):
        engine = AnimationEngine()
        engine.set_keyframes(_keyframes())
        engine.seek_to(700)
        engine.generate_frames(12)
        self.assertEqual(engine.current_time, 700)

    def test_generate_without_keyframes_raises(self):
        with self.assertRaises(NoKeyframesError):
            AnimationEngine().generate_frames(30)


class TestPlayback(unittest.TestCase):
    def setUp(self):
        self.updates = []
        self.scheduler = ManualTickScheduler()
        self.engine = AnimationEngine(on_update=self.updates.append, scheduler=self.scheduler)
        self.engine.set_keyframes(_keyframes())  # total 2000 ms

    def test_play_emits_and_schedules(self):
        self.engine.play()
        self.assertEqual(self.engine.state, PlaybackState.PLAYING)
        self.assertTrue(self.engine.is_playing())
        self.assertTrue(self.scheduler.pending)
        self.assertEqual(self.updates[-1], SETTINGS_A)

    def test_play_without_keyframes_is_ignored(self):
        engine = AnimationEngine(scheduler=ManualTickScheduler())
        engine.play()
        self.assertFalse(engine.is_playing())

    def test_loop_mode_none_stops_at_end(self):
        self.engine.play()
        self.scheduler.run_for(2500)

        self.assertEqual(self.engine.state, PlaybackState.STOPPED)
        self.assertEqual(self.engine.current_time, 2000)
        self.assertFalse(self.scheduler.pending)
        self.assertEqual(self.updates[-1], SETTINGS_B)

    def test_play_at_end_restarts_from_zero(self):
        self.engine.seek_to(2000)
        self.engine.play()
        self.assertEqual(self.engine.current_time, 0)
        self.assertEqual(self.engine.direction, FORWARD)

    def test_loop_wraps_to_start(self):
        self.engine.set_loop_mode(LoopMode.LOOP)
        self.engine.play()
        self.scheduler.run_for(2000)
        self.assertEqual(self.engine.current_time, 0)

        self.scheduler.advance(500)
        self.assertEqual(self.engine.current_time, 500)
        self.assertTrue(self.engine.is_playing())

    def test_pingpong_reverses(self):
        self.engine.set_loop_mode("pingpong")
        self.engine.play()
        self.scheduler.run_for(2000)
        self.assertEqual(self.engine.current_time, 2000)
        self.assertEqual(self.engine.direction, BACKWARD)

        # 1.5x the total duration after starting at 0
        self.scheduler.run_for(1000)
        self.assertEqual(self.engine.current_time, 1000)
        self.assertEqual(self.engine.direction, BACKWARD)

        self.scheduler.run_for(1000)
        self.assertEqual(self.engine.current_time, 0)
        self.assertEqual(self.engine.direction, FORWARD)
        self.assertTrue(self.engine.is_playing())

    def test_pause_cancels_and_keeps_position(self):
        self.engine.play()
        self.scheduler.advance(300)
        self.engine.pause()

        self.assertEqual(self.engine.state, PlaybackState.PAUSED)
        self.assertFalse(self.scheduler.pending)
        self.assertFalse(self.scheduler.advance(1000))
        self.assertEqual(self.engine.current_time, 300)

    def test_resume_continues_from_paused_position(self):
        self.engine.play()
        self.scheduler.advance(300)
        self.engine.pause()
        self.scheduler.advance(5000)

        self.engine.play()
        self.assertEqual(self.engine.current_time, 300)
        self.scheduler.advance(100)
        self.assertEqual(self.engine.current_time, 400)

    def test_stale_tick_after_pause_is_ignored(self):
        scheduler = _RecordingScheduler()
        engine = AnimationEngine(scheduler=scheduler, clock=scheduler.now)
        engine.set_keyframes(_keyframes())
        engine.play()
        scheduler.now_ms = 200
        scheduler.callbacks[-1]()
        engine.pause()

        scheduler.now_ms = 900
        for callback in list(scheduler.callbacks):
            callback()
        self.assertEqual(engine.current_time, 200)
        self.assertGreaterEqual(scheduler.cancelled, 1)

    def test_tick_fired_from_update_callback_is_ignored(self):
        scheduler = _RecordingScheduler()
        engine = AnimationEngine(scheduler=scheduler, clock=scheduler.now)
        engine.set_keyframes(_keyframes())
        nested_requests = []

        def on_update(_settings):
            if engine.is_playing() and scheduler.callbacks:
                before = len(scheduler.callbacks)
                scheduler.callbacks[-1]()
                nested_requests.append(len(scheduler.callbacks) - before)

        engine.set_on_update(on_update)
        engine.play()
        scheduler.now_ms = 100
        scheduler.callbacks[-1]()

        self.assertEqual(nested_requests, [0])
        self.assertEqual(engine.current_time, 100)
        self.assertEqual(len(scheduler.callbacks), 2)

    def test_pause_and_play_from_update_callback_keeps_ticking(self):
        self.engine.set_loop_mode(LoopMode.LOOP)
        calls = []

        def on_update(_settings):
            calls.append(self.engine.current_time)
            if len(calls) == 3:
                self.engine.pause()
                self.engine.play()

        self.engine.set_on_update(on_update)
        self.engine.play()
        self.scheduler.advance(16)
        self.scheduler.advance(16)

        self.assertTrue(self.engine.is_playing())
        self.assertTrue(self.scheduler.pending)
        self.assertEqual(self.engine.current_time, 32)

        self.scheduler.advance(16)
        self.assertEqual(self.engine.current_time, 48)
        self.assertTrue(self.scheduler.pending)

    def test_stop_resets(self):
        self.engine.set_loop_mode(LoopMode.PINGPONG)
        self.engine.play()
        self.scheduler.run_for(2500)
        self.engine.stop()

        self.assertEqual(self.engine.state, PlaybackState.STOPPED)
        self.assertEqual(self.engine.current_time, 0)
        self.assertEqual(self.engine.direction, FORWARD)
        self.assertFalse(self.scheduler.pending)
        self.assertEqual(self.updates[-1], SETTINGS_A)

    def test_seek_clamps_and_emits(self):
        self.engine.seek_to(-50)
        self.assertEqual(self.engine.current_time, 0)
        self.engine.seek_to(99999)
        self.assertEqual(self.engine.current_time, 2000)
        self.assertEqual(self.updates[-1], SETTINGS_B)

        self.engine.seek_to_normalized(0.25)
        self.assertEqual(self.engine.current_time, 500)
        self.assertEqual(self.engine.get_normalized_time(), 0.25)

    def test_seek_while_playing_reanchors(self):
        self.engine.play()
        self.scheduler.advance(100)
        self.engine.seek_to(1500)
        self.scheduler.advance(100)
        self.assertEqual(self.engine.current_time, 1600)

    def test_progress_snapshot(self):
        self.engine.set_loop_mode(LoopMode.LOOP)
        self.engine.seek_to(1000)
        progress = self.engine.get_progress()

        self.assertEqual(progress.current_time, 1000)
        self.assertEqual(progress.total_duration, 2000)
        self.assertEqual(progress.normalized, 0.5)
        self.assertFalse(progress.is_playing)
        self.assertEqual(progress.loop_mode, LoopMode.LOOP)
        self.assertEqual(progress.direction, FORWARD)
        self.assertEqual(progress.state, PlaybackState.STOPPED)

    def test_set_keyframes_rewinds(self):
        self.engine.seek_to(1200)
        self.engine.set_keyframes(_keyframes())
        self.assertEqual(self.engine.current_time, 0)

    def test_invalid_loop_mode_rejected(self):
        with self.assertRaises(ValueError):
            self.engine.set_loop_mode("bounce")


if __name__ == "__main__":
    unittest.main()
