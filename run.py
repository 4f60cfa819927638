#!/usr/bin/env python3
"""
ringweave - Ring-lattice art with keyframe animation

Launches the desktop window, or with --keyframes/--export-gif renders a
keyframe timeline straight to an animated GIF without opening a window.
"""

import argparse
import cProfile
import sys
import time
from pathlib import Path


def run_export(keyframes_path: str, out_path: str, fps: int | None = None) -> int:
    """Headless keyframes -> GIF export. Returns a process exit code."""
    from animation_engine import AnimationEngine, NoKeyframesError
    from config_persistence import load_config
    from gif_exporter import ExportError, ExportInProgressError, GifExporter
    from keyframe_manager import KeyframeImportError
    from keyframe_wiring import load_keyframes_file
    from logging_utils import log_event, set_log_level

    config = load_config()
    set_log_level(config.log_level)
    options = config.export
    if fps is not None:
        options.fps = fps

    try:
        keyframes = load_keyframes_file(Path(keyframes_path))
    except (OSError, KeyframeImportError) as e:
        log_event("ERROR", "Export", "Cannot read keyframes", path=keyframes_path, error=e)
        return 1
    if not keyframes:
        log_event("ERROR", "Export", "No keyframes to export", path=keyframes_path)
        return 1

    engine = AnimationEngine()
    engine.set_keyframes(keyframes)

    def on_progress(fraction: float):
        print(f"\r[Export] {fraction * 100:5.1f}%", end="", flush=True)

    try:
        frames = engine.generate_frames(options.fps)
        GifExporter(config.canvas_size).export_animation(frames, options, out_path, on_progress)
    except (NoKeyframesError, ExportError, ExportInProgressError) as e:
        print()
        log_event("ERROR", "Export", "GIF export failed", error=e)
        return 1

    print()
    return 0


def run_app(app_argv: list[str]) -> int:
    # Import ONLY PyQt6 essentials first for splash screen (fast)
    t_pyqt = time.perf_counter()
    from PyQt6.QtWidgets import QApplication, QSplashScreen
    from PyQt6.QtGui import QPixmap
    from PyQt6.QtCore import Qt

    print(
        f"[Startup] GUI framework loaded (+{(time.perf_counter() - t_pyqt) * 1000:.0f} ms). "
        "Initializing application...",
        flush=True,
    )

    app = QApplication(app_argv)
    app.setStyle("Fusion")

    if getattr(sys, "frozen", False):
        resource_dir = Path(sys._MEIPASS)  # type: ignore[attr-defined]
    else:
        resource_dir = Path(__file__).parent

    splash_path = resource_dir / "splash_screen.png"
    splash = None
    if splash_path.exists():
        splash = QSplashScreen(QPixmap(str(splash_path)))
        splash.show()
        splash.showMessage(
            "Loading generator and animation modules...",
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            Qt.GlobalColor.white,
        )
        app.processEvents()  # Force display update

    t_main = time.perf_counter()

    # Import heavy modules (numpy, scipy, pyqtgraph, Pillow) after splash
    from main import RingweaveWindow

    print(
        f"[Startup] Loaded main module (+{(time.perf_counter() - t_main) * 1000:.0f} ms)",
        flush=True,
    )
    if splash:
        splash.showMessage(
            "Initializing UI...",
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            Qt.GlobalColor.white,
        )
        app.processEvents()

    window = RingweaveWindow()

    print("\nInitialization complete. Starting GUI...\n", flush=True)

    if splash:
        splash.finish(window)

    window.show()

    return app.exec()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run ringweave")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    parser.add_argument(
        "--keyframes",
        metavar="FILE",
        help="Keyframes JSON file for headless export",
    )
    parser.add_argument(
        "--export-gif",
        metavar="OUT",
        help="Render --keyframes to this GIF and exit without opening a window",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=None,
        help="Export frame rate (default: value from config)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if bool(args.keyframes) != bool(args.export_gif):
        parser.error("--keyframes and --export-gif must be given together")
    if args.fps is not None and args.fps <= 0:
        parser.error("--fps must be positive")

    if args.export_gif:
        def target():
            return run_export(args.keyframes, args.export_gif, args.fps)
    else:
        # Keep Qt argument list clean; avoid passing our flags downstream
        app_argv = [sys.argv[0]]

        def target():
            return run_app(app_argv)

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = target()
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = target()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
