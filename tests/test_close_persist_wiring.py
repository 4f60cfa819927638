import unittest

from close_persist_wiring import persist_runtime_ui_to_config
from config import ArtSettings, Config, LoopMode, Strategy


class _Value:
    def __init__(self, value):
        self._value = value

    def value(self):
        return self._value


class _Check:
    def __init__(self, checked):
        self._checked = checked

    def isChecked(self):
        return self._checked


class _Engine:
    def __init__(self, loop_mode):
        self.loop_mode = loop_mode


class _WindowStub:
    def __init__(self, loop_mode=LoopMode.PINGPONG):
        self.current_settings = ArtSettings(strategy=Strategy.CLUSTERS, cluster_count=7, chaos=1.5)
        self.engine = _Engine(loop_mode)

        self.fps_spin = _Value(24)
        self.duration_spin = _Value(1500)
        self.export_width_spin = _Value(640)
        self.export_height_spin = _Value(480)
        self.quality_slider = _Value(65)
        self.alpha_checkbox = _Check(True)
        self.keyframes_file = "/tmp/show.json"


class TestClosePersistWiring(unittest.TestCase):
    def test_persist_runtime_ui_to_config(self):
        cfg = Config()
        window = _WindowStub()

        persist_runtime_ui_to_config(window, cfg)

        self.assertEqual(cfg.settings.strategy, Strategy.CLUSTERS)
        self.assertEqual(cfg.settings.cluster_count, 7)
        self.assertIsNot(cfg.settings, window.current_settings)

        self.assertEqual(cfg.animation.loop_mode, LoopMode.PINGPONG)
        self.assertEqual(cfg.animation.fps, 24)
        self.assertEqual(cfg.animation.default_duration_ms, 1500.0)

        self.assertEqual(cfg.export.fps, 24)
        self.assertEqual(cfg.export.width, 640)
        self.assertEqual(cfg.export.height, 480)
        self.assertAlmostEqual(cfg.export.quality, 0.65, places=6)
        self.assertTrue(cfg.export.with_alpha)
        self.assertEqual(cfg.export.loop_mode, LoopMode.LOOP)
        self.assertEqual(cfg.last_keyframes_file, "/tmp/show.json")

    def test_play_once_exports_non_looping_gif(self):
        cfg = Config()
        persist_runtime_ui_to_config(_WindowStub(loop_mode="none"), cfg)
        self.assertEqual(cfg.animation.loop_mode, LoopMode.NONE)
        self.assertEqual(cfg.export.loop_mode, LoopMode.NONE)

    def test_missing_control_is_reported(self):
        window = _WindowStub()
        del window.quality_slider
        with self.assertRaises(AttributeError) as ctx:
            persist_runtime_ui_to_config(window, Config())
        self.assertIn("quality_slider", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
