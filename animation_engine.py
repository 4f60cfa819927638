"""
ringweave - Animation Engine
Walks a keyframe timeline and produces interpolated ArtSettings.

Time is measured on the duration axis: keyframe i owns the span
[start_i, start_i + duration_i] and eases from its own settings toward
keyframe i+1. Live playback is driven by a tick scheduler (one tick per
display frame); offline export enumerates frames without touching the
live cursor.
"""

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from art_generator import round_half_up
from config import DISCRETE_FIELDS, INTEGER_FIELDS, ArtSettings, LoopMode
from keyframe_manager import Keyframe, get_interval_at_time, get_total_duration, sort_keyframes
from logging_utils import log_event
from tick_scheduler import ManualTickScheduler, monotonic_ms


class NoKeyframesError(RuntimeError):
    """Interpolation or frame enumeration requested on an empty timeline."""


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


FORWARD = 1
BACKWARD = -1


def _ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


EASING = {
    "linear": lambda t: t,
    "ease_in": lambda t: t * t,
    "ease_out": lambda t: t * (2 - t),
    "ease_in_out": lambda t: 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t,
    "ease_in_out_cubic": _ease_in_out_cubic,
}


def lerp(start: float, end: float, t: float) -> float:
    # Exact at both endpoints
    return start * (1 - t) + end * t


def interpolate_between_settings(from_settings: ArtSettings, to_settings: ArtSettings, progress: float) -> ArtSettings:
    """Blend two settings at eased `progress` in [0, 1]."""
    result = from_settings.copy()
    for f in fields(ArtSettings):
        name = f.name
        a = getattr(from_settings, name)
        b = getattr(to_settings, name)
        if name in DISCRETE_FIELDS:
            setattr(result, name, a if progress < 0.5 else b)
        elif name in INTEGER_FIELDS:
            setattr(result, name, round_half_up(lerp(a, b, progress)))
        else:
            setattr(result, name, lerp(a, b, progress))
    return result


@dataclass(frozen=True)
class PlaybackProgress:
    current_time: float
    total_duration: float
    normalized: float
    is_playing: bool
    loop_mode: LoopMode
    direction: int
    state: PlaybackState


class AnimationEngine:
    """Keyframe sequencer with none/loop/pingpong boundary policies.

    `clock` returns milliseconds; `scheduler` must offer request_tick(callback)
    and cancel(). Ticks are single-flight: a tick arriving while one is
    running, or one queued before the last pause/stop, is ignored.
    """

    def __init__(
        self,
        on_update: Optional[Callable[[ArtSettings], None]] = None,
        scheduler=None,
        clock: Optional[Callable[[], float]] = None,
        easing: str = "ease_in_out_cubic",
    ):
        if scheduler is None:
            scheduler = ManualTickScheduler()
        if clock is None:
            clock = scheduler.now if isinstance(scheduler, ManualTickScheduler) else monotonic_ms

        self.scheduler = scheduler
        self.clock = clock
        self.on_update = on_update
        self.ease = EASING[easing]

        self.keyframes: List[Keyframe] = []
        self.total_duration = 0.0
        self.current_time = 0.0
        self.loop_mode = LoopMode.NONE
        self.direction = FORWARD
        self.state = PlaybackState.STOPPED

        self._start_time = 0.0
        self._run_id = 0
        self._in_tick = False

    # ----- configuration -----

    def set_keyframes(self, keyframes: Sequence[Keyframe]) -> None:
        """Replace the timeline with sorted copies and rewind to 0."""
        self.keyframes = [kf.copy() for kf in sort_keyframes(keyframes)]
        self.total_duration = get_total_duration(self.keyframes)
        self.current_time = 0.0
        log_event("DEBUG", "Animation", "Keyframes set", count=len(self.keyframes), total_ms=self.total_duration)

    def set_loop_mode(self, mode) -> None:
        self.loop_mode = LoopMode(mode)

    def set_on_update(self, callback: Optional[Callable[[ArtSettings], None]]) -> None:
        self.on_update = callback

    # ----- transport -----

    def play(self) -> None:
        if not self.keyframes:
            log_event("WARNING", "Animation", "Play ignored: no keyframes")
            return
        if self.state is PlaybackState.PLAYING:
            return

        if self.current_time >= self.total_duration and self.loop_mode is LoopMode.NONE:
            self.current_time = 0.0
            self.direction = FORWARD

        self.state = PlaybackState.PLAYING
        self._run_id += 1
        self._anchor()
        log_event("INFO", "Animation", "Playback started", position_ms=round(self.current_time, 1),
                  direction=self.direction, loop_mode=self.loop_mode.value)
        run_id = self._run_id
        if self._in_tick:
            # Restarted from an update callback; the running tick will not reschedule this run
            self.scheduler.request_tick(lambda: self._tick(run_id))
        else:
            self._tick(run_id)

    def pause(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self.state = PlaybackState.PAUSED
        self._run_id += 1
        self.scheduler.cancel()
        log_event("INFO", "Animation", "Playback paused", position_ms=round(self.current_time, 1))

    def stop(self) -> None:
        self.state = PlaybackState.STOPPED
        self._run_id += 1
        self.scheduler.cancel()
        self.current_time = 0.0
        self.direction = FORWARD
        self.update_current_settings()

    def seek_to(self, time_ms: float) -> None:
        self.current_time = max(0.0, min(float(time_ms), self.total_duration))
        if self.state is PlaybackState.PLAYING:
            self._anchor()
        self.update_current_settings()

    def seek_to_normalized(self, normalized: float) -> None:
        self.seek_to(normalized * self.total_duration)

    # ----- queries -----

    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    def get_normalized_time(self) -> float:
        if self.total_duration <= 0:
            return 0.0
        return self.current_time / self.total_duration

    def get_progress(self) -> PlaybackProgress:
        return PlaybackProgress(
            current_time=self.current_time,
            total_duration=self.total_duration,
            normalized=self.get_normalized_time(),
            is_playing=self.is_playing(),
            loop_mode=self.loop_mode,
            direction=self.direction,
            state=self.state,
        )

    # ----- ticking -----

    def _anchor(self) -> None:
        # Reference time such that the next tick lands on current_time
        if self.direction == FORWARD:
            self._start_time = self.clock() - self.current_time
        else:
            self._start_time = self.clock() - (self.total_duration - self.current_time)

    def _tick(self, run_id: int) -> None:
        if run_id != self._run_id or self.state is not PlaybackState.PLAYING:
            return
        if self._in_tick:
            log_event("WARNING", "Animation", "Overlapping tick ignored")
            return

        self._in_tick = True
        try:
            keep_running = self._advance()
            self.update_current_settings()
        finally:
            self._in_tick = False

        if keep_running and run_id == self._run_id:
            self.scheduler.request_tick(lambda: self._tick(run_id))

    def _advance(self) -> bool:
        """Apply elapsed time and the loop policy. Returns False when playback ends."""
        now = self.clock()
        elapsed = now - self._start_time
        total = self.total_duration

        if self.direction == FORWARD:
            position = elapsed
            if position >= total:
                if self.loop_mode is LoopMode.LOOP:
                    position = 0.0
                    self._start_time = now
                elif self.loop_mode is LoopMode.PINGPONG:
                    position = total
                    self.direction = BACKWARD
                    self._start_time = now
                else:
                    self.current_time = total
                    self._finish()
                    return False
        else:
            position = total - elapsed
            if position <= 0:
                position = 0.0
                if self.loop_mode is LoopMode.PINGPONG:
                    self.direction = FORWARD
                    self._start_time = now
                else:
                    self.current_time = 0.0
                    self._finish()
                    return False

        self.current_time = max(0.0, min(position, total))
        return True

    def _finish(self) -> None:
        self.state = PlaybackState.STOPPED
        self._run_id += 1
        log_event("INFO", "Animation", "Playback finished", position_ms=round(self.current_time, 1))

    # ----- interpolation -----

    def update_current_settings(self) -> None:
        if not self.keyframes:
            return
        settings = self.interpolate_settings(self.current_time)
        if self.on_update is not None:
            self.on_update(settings)

    def interpolate_settings(self, time_ms: float) -> ArtSettings:
        """Fully interpolated settings at `time_ms` on the duration axis."""
        if not self.keyframes:
            raise NoKeyframesError("No keyframes to interpolate")

        from_kf, to_kf, start = get_interval_at_time(self.keyframes, time_ms)
        if from_kf is to_kf:
            return from_kf.settings.copy()

        if from_kf.duration > 0:
            progress = (time_ms - start) / from_kf.duration
        else:
            progress = 1.0
        progress = max(0.0, min(1.0, progress))

        return interpolate_between_settings(from_kf.settings, to_kf.settings, self.ease(progress))

    def generate_frames(
        self,
        fps: int = 30,
        on_frame_generated: Optional[Callable[[int, int], None]] = None,
    ) -> List[ArtSettings]:
        """Sample the timeline at `fps`: ceil(total / 1000 * fps) + 1 frames spanning [0, total].

        `on_frame_generated(index, frame_count)` is called after each frame.
        The live playback position is left untouched.
        """
        if not self.keyframes:
            raise NoKeyframesError("No keyframes to export")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        frame_count = math.ceil(self.total_duration / 1000 * fps)
        times = np.linspace(0.0, self.total_duration, frame_count + 1) if frame_count > 0 else np.zeros(1)

        frames: List[ArtSettings] = []
        for index, time_ms in enumerate(times.tolist()):
            frames.append(self.interpolate_settings(time_ms))
            if on_frame_generated is not None:
                on_frame_generated(index, frame_count)

        log_event("INFO", "Animation", "Frames generated", frames=len(frames), fps=fps, total_ms=self.total_duration)
        return frames
