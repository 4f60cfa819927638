"""
ringweave - GIF Exporter
Renders a list of settings snapshots and encodes them as an animated GIF.

One export runs at a time per exporter. Output goes to a temp file next to
the target and is moved into place only once encoding succeeds.
"""

import os
import tempfile
import threading
from typing import Callable, List, Optional, Sequence

import numpy as np
from PIL import Image

from config import ArtSettings, ExportOptions, LoopMode
from frame_renderer import render_frame
from logging_utils import log_event, timed


TRANSPARENT_INDEX = 255
RENDER_SHARE = 0.9  # Progress fraction reserved for frame rendering


class ExportError(RuntimeError):
    """Rendering or encoding failed; nothing was written."""


class ExportInProgressError(RuntimeError):
    """Another export is already running on this exporter."""


def palette_size(quality: float, with_alpha: bool = False) -> int:
    """Map quality 0..1 onto a GIF palette size (2..256, one slot kept for transparency)."""
    quality = max(0.0, min(1.0, float(quality)))
    colors = 2 + int(round(quality * 254))
    return min(colors, TRANSPARENT_INDEX) if with_alpha else colors


def frame_delay_ms(fps: int) -> int:
    return int(round(1000 / fps))


def to_gif_frame(image: Image.Image, quality: float, with_alpha: bool) -> Image.Image:
    """Quantize a rendered frame to a palette image. Transparent pixels map to TRANSPARENT_INDEX."""
    if not with_alpha:
        return image.convert("RGB").quantize(colors=palette_size(quality))

    alpha = np.asarray(image.getchannel("A"))
    paletted = image.convert("RGB").quantize(colors=palette_size(quality, with_alpha=True))
    palette = paletted.getpalette() or []
    palette = (palette + [0] * 768)[:768]

    indices = np.array(paletted, dtype=np.uint8)
    indices[alpha < 128] = TRANSPARENT_INDEX

    frame = Image.fromarray(indices)
    frame.putpalette(palette)
    frame.info["transparency"] = TRANSPARENT_INDEX
    return frame


class GifExporter:
    """Settings frames -> animated GIF file."""

    def __init__(self, canvas_size: int = 1000):
        self.canvas_size = canvas_size
        self._lock = threading.Lock()
        self._abort = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def abort(self) -> None:
        """Stop the running export after the current frame."""
        if self.busy:
            self._abort.set()

    def export_animation(
        self,
        frames: Sequence[ArtSettings],
        options: ExportOptions,
        path: str,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> str:
        """Encode `frames` to `path`. Blocks until done; raises ExportInProgressError if busy."""
        self._acquire()
        try:
            return self._export(frames, options, path, on_progress)
        finally:
            self._lock.release()

    def start_export(
        self,
        frames: Sequence[ArtSettings],
        options: ExportOptions,
        path: str,
        on_progress: Optional[Callable[[float], None]] = None,
        on_finished: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> threading.Thread:
        """Run export_animation on a worker thread. Callbacks fire on that thread."""
        self._acquire()
        frames = [f.copy() for f in frames]

        def worker():
            error: Optional[Exception] = None
            try:
                result = self._export(frames, options, path, on_progress)
            except ExportError as e:
                error = e
            except Exception as e:
                log_event("ERROR", "Export", "Export worker failed", path=path, error=e)
                error = e
            finally:
                self._lock.release()

            if error is not None:
                if on_error:
                    on_error(error)
            elif on_finished:
                on_finished(result)

        self._thread = threading.Thread(target=worker, name="GifExport", daemon=True)
        self._thread.start()
        return self._thread

    def wait(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            log_event("WARNING", "Export", "Export rejected: another export is running")
            raise ExportInProgressError("An export is already in progress")
        self._abort.clear()

    def _export(
        self,
        frames: Sequence[ArtSettings],
        options: ExportOptions,
        path: str,
        on_progress: Optional[Callable[[float], None]],
    ) -> str:
        if not frames:
            raise ExportError("No frames to export")
        if options.fps <= 0:
            raise ExportError(f"Invalid fps: {options.fps}")

        directory = os.path.dirname(os.path.abspath(path))
        try:
            fd, tmp_path = tempfile.mkstemp(suffix=".gif.part", dir=directory)
        except OSError as e:
            raise ExportError(f"Cannot write to {directory}: {e}") from e
        os.close(fd)

        try:
            with timed("Export", "GIF encoded", frames=len(frames), path=path):
                images = self._render_all(frames, options, on_progress)
                save_kwargs = {
                    "format": "GIF",
                    "save_all": True,
                    "append_images": images[1:],
                    "duration": frame_delay_ms(options.fps),
                    "disposal": 2,
                }
                if LoopMode(options.loop_mode) is not LoopMode.NONE:
                    save_kwargs["loop"] = 0
                if options.with_alpha:
                    save_kwargs["transparency"] = TRANSPARENT_INDEX
                images[0].save(tmp_path, **save_kwargs)
            os.replace(tmp_path, path)
        except ExportError:
            self._discard(tmp_path)
            raise
        except Exception as e:
            self._discard(tmp_path)
            log_event("ERROR", "Export", "GIF export failed", path=path, error=e)
            raise ExportError(f"GIF export failed: {e}") from e

        if on_progress:
            on_progress(1.0)
        log_event("INFO", "Export", "GIF saved", path=path, frames=len(frames),
                  size=f"{options.width}x{options.height}", fps=options.fps)
        return path

    def _render_all(self, frames, options, on_progress) -> List[Image.Image]:
        images: List[Image.Image] = []
        total = len(frames)
        for index, settings in enumerate(frames):
            if self._abort.is_set():
                log_event("INFO", "Export", "GIF export aborted", rendered=index, total=total)
                raise ExportError("Export aborted")
            image = render_frame(settings, options, self.canvas_size)
            images.append(to_gif_frame(image, options.quality, options.with_alpha))
            if on_progress:
                on_progress((index + 1) / total * RENDER_SHARE)
        return images

    @staticmethod
    def _discard(tmp_path: str) -> None:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
