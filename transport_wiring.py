from dataclasses import dataclass

from config import LoopMode


LOOP_MODE_ORDER = (LoopMode.NONE, LoopMode.LOOP, LoopMode.PINGPONG)

LOOP_MODE_LABELS = {
    LoopMode.NONE: "→ Once",
    LoopMode.LOOP: "⟳ Loop",
    LoopMode.PINGPONG: "⇄ Ping-Pong",
}


@dataclass(frozen=True)
class TransportUiState:
    play_text: str
    stop_enabled: bool
    seek_enabled: bool
    export_enabled: bool


def play_button_text(is_playing: bool) -> str:
    """Return Play button text for playing/paused state."""
    return "⏸ Pause" if is_playing else "▶ Play"


def transport_ui_state(keyframe_count: int, is_playing: bool, is_exporting: bool = False) -> TransportUiState:
    """Return enabled state of the transport controls."""
    has_timeline = keyframe_count > 0
    return TransportUiState(
        play_text=play_button_text(is_playing),
        stop_enabled=has_timeline,
        seek_enabled=has_timeline and not is_exporting,
        export_enabled=has_timeline and not is_exporting and not is_playing,
    )


def format_time_ms(ms: float) -> str:
    """m:ss.s display for a timeline position."""
    seconds = max(0.0, ms) / 1000.0
    minutes = int(seconds // 60)
    return f"{minutes}:{seconds - minutes * 60:04.1f}"


def time_label_text(current_ms: float, total_ms: float) -> str:
    return f"{format_time_ms(current_ms)} / {format_time_ms(total_ms)}"


def next_loop_mode(mode) -> LoopMode:
    """Cycle none -> loop -> pingpong -> none."""
    index = LOOP_MODE_ORDER.index(LoopMode(mode))
    return LOOP_MODE_ORDER[(index + 1) % len(LOOP_MODE_ORDER)]


def loop_mode_label(mode) -> str:
    return LOOP_MODE_LABELS[LoopMode(mode)]


def slider_to_time(slider_value: int, slider_max: int, total_ms: float) -> float:
    """Map a timeline slider position onto milliseconds."""
    if slider_max <= 0:
        return 0.0
    return max(0, min(slider_value, slider_max)) / slider_max * total_ms


def time_to_slider(time_ms: float, total_ms: float, slider_max: int) -> int:
    if total_ms <= 0:
        return 0
    return int(round(max(0.0, min(time_ms, total_ms)) / total_ms * slider_max))


def state_summary(progress) -> str:
    """One-line status text from an engine PlaybackProgress snapshot."""
    direction = "◀" if progress.direction < 0 else "▶"
    return (
        f"{progress.state.value.capitalize()} {direction} "
        f"{time_label_text(progress.current_time, progress.total_duration)} "
        f"[{loop_mode_label(progress.loop_mode)}]"
    )
