import shutil
import time
from pathlib import Path
from typing import List, Optional, Sequence

from keyframe_manager import (
    Keyframe,
    create_keyframe,
    export_keyframes,
    get_total_duration,
    import_keyframes,
    insert_keyframe,
)
from config import ArtSettings
from logging_utils import log_event


EXPORT_PREFIXES = {
    "keyframes": ("animation-keyframes", "json"),
    "gif": ("animation", "gif"),
    "png": ("art-export", "png"),
    "svg": ("art-export", "svg"),
}


def get_keyframes_file_path(*, frozen: bool, executable_path: str, source_file: str) -> Path:
    """Resolve the default keyframes file for packaged or source execution."""
    if frozen:
        return Path(executable_path).parent / "keyframes.json"
    return Path(source_file).parent / "keyframes.json"


def default_export_filename(kind: str, now_ms: Optional[int] = None) -> str:
    """Timestamped file name for an export kind (keyframes/gif/png/svg)."""
    prefix, ext = EXPORT_PREFIXES[kind]
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}-{now_ms}.{ext}"


def save_keyframes_file(keyframes_file: Path, keyframes: Sequence[Keyframe]) -> None:
    """Persist keyframes to disk in their JSON text form."""
    with open(keyframes_file, 'w', encoding='utf-8') as f:
        f.write(export_keyframes(keyframes))
    log_event("INFO", "Keyframes", "Keyframes saved", path=keyframes_file, count=len(keyframes))


def load_keyframes_file(
    keyframes_file: Path,
    *,
    frozen: bool = False,
    meipass: str | None = None,
) -> List[Keyframe]:
    """Load keyframes from disk, copying the bundled demo timeline first when needed.

    A missing file gives an empty list; a malformed one raises KeyframeImportError.
    """
    keyframes_file = Path(keyframes_file)
    if not keyframes_file.exists() and frozen and meipass:
        bundled = Path(meipass) / 'keyframes.json'
        if bundled.exists():
            shutil.copy(bundled, keyframes_file)

    if not keyframes_file.exists():
        return []

    with open(keyframes_file, 'r', encoding='utf-8') as f:
        keyframes = import_keyframes(f.read())
    log_event("INFO", "Keyframes", "Keyframes loaded", path=keyframes_file, count=len(keyframes))
    return keyframes


def add_snapshot_keyframe(
    keyframes: Sequence[Keyframe],
    settings: ArtSettings,
    at_time_ms: float = 0.0,
    duration: float = 2000.0,
) -> List[Keyframe]:
    """Snapshot `settings` as "Keyframe N" positioned at `at_time_ms` on the current timeline."""
    total = get_total_duration(keyframes)
    timestamp = at_time_ms / total if at_time_ms and total > 0 else 0.0
    new_keyframe = create_keyframe(settings, f"Keyframe {len(keyframes) + 1}", timestamp, duration)
    return insert_keyframe(keyframes, new_keyframe)
