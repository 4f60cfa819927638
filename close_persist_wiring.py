from config import Config, LoopMode


def _require_window_attr(window, attr_name: str):
    try:
        return getattr(window, attr_name)
    except AttributeError as exc:
        raise AttributeError(
            f"persist_runtime_ui_to_config missing required control: {attr_name}"
        ) from exc


def persist_runtime_ui_to_config(window, config: Config) -> None:
    """Copy the live settings and export/playback controls into config on shutdown."""
    current_settings = _require_window_attr(window, "current_settings")
    engine = _require_window_attr(window, "engine")
    fps_spin = _require_window_attr(window, "fps_spin")
    duration_spin = _require_window_attr(window, "duration_spin")
    export_width_spin = _require_window_attr(window, "export_width_spin")
    export_height_spin = _require_window_attr(window, "export_height_spin")
    quality_slider = _require_window_attr(window, "quality_slider")
    alpha_checkbox = _require_window_attr(window, "alpha_checkbox")

    config.settings = current_settings.copy()

    config.animation.loop_mode = LoopMode(engine.loop_mode)
    config.animation.fps = int(fps_spin.value())
    config.animation.default_duration_ms = float(duration_spin.value())

    config.export.fps = int(fps_spin.value())
    config.export.width = int(export_width_spin.value())
    config.export.height = int(export_height_spin.value())
    config.export.quality = quality_slider.value() / 100.0
    config.export.with_alpha = alpha_checkbox.isChecked()
    # GIF repeats unless playback is set to play once
    config.export.loop_mode = LoopMode.NONE if config.animation.loop_mode is LoopMode.NONE else LoopMode.LOOP

    keyframes_file = getattr(window, "keyframes_file", None)
    if keyframes_file:
        config.last_keyframes_file = str(keyframes_file)
