"""
ringweave - Keyframe Manager
Pure operations over ordered keyframe lists. Nothing here mutates its input;
every function returns a new list (or a value) and keyframes never share
their settings objects.
"""

import json
import random
import string
import time
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Sequence, Tuple

from config import ArtSettings, settings_from_dict, settings_to_dict
from logging_utils import log_event


_ID_ALPHABET = string.digits + string.ascii_lowercase


class KeyframeImportError(ValueError):
    """Keyframe payload could not be parsed or is not a list."""


@dataclass
class Keyframe:
    """Named snapshot of the full parameter set used as an interpolation anchor"""
    id: str
    name: str
    timestamp: float              # Position in timeline (0-1)
    settings: ArtSettings = field(default_factory=ArtSettings)
    duration: float = 2000.0      # Transition time into this keyframe (ms)

    def copy(self) -> "Keyframe":
        return replace(self, settings=self.settings.copy())


def generate_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"keyframe_{int(time.time() * 1000)}_{suffix}"


def create_keyframe(
    settings: ArtSettings,
    name: str = "Keyframe",
    timestamp: float = 0.0,
    duration: float = 2000.0,
) -> Keyframe:
    """Snapshot `settings` into a new keyframe with a fresh id."""
    return Keyframe(
        id=generate_id(),
        name=name,
        timestamp=timestamp,
        settings=settings.copy(),
        duration=duration,
    )


def duplicate_keyframe(keyframe: Keyframe, new_timestamp: Optional[float] = None) -> Keyframe:
    return replace(
        keyframe,
        id=generate_id(),
        name=f"{keyframe.name} (Copy)",
        timestamp=keyframe.timestamp if new_timestamp is None else new_timestamp,
        settings=keyframe.settings.copy(),
    )


def sort_keyframes(keyframes: Sequence[Keyframe]) -> List[Keyframe]:
    """Stable ascending sort by timestamp."""
    return sorted(keyframes, key=lambda kf: kf.timestamp)


def normalize_timestamps(keyframes: Sequence[Keyframe]) -> List[Keyframe]:
    """Spread timestamps evenly over [0, 1], keeping relative order."""
    if not keyframes:
        return []
    if len(keyframes) == 1:
        return [replace(keyframes[0].copy(), timestamp=0.0)]

    ordered = sort_keyframes(keyframes)
    last = len(ordered) - 1
    return [replace(kf.copy(), timestamp=index / last) for index, kf in enumerate(ordered)]


def insert_keyframe(keyframes: Sequence[Keyframe], new_keyframe: Keyframe) -> List[Keyframe]:
    return sort_keyframes([*keyframes, new_keyframe])


def remove_keyframe(keyframes: Sequence[Keyframe], keyframe_id: str) -> List[Keyframe]:
    return [kf for kf in keyframes if kf.id != keyframe_id]


_KEYFRAME_FIELDS = {f.name for f in fields(Keyframe)}


def update_keyframe(keyframes: Sequence[Keyframe], keyframe_id: str, updates: dict) -> List[Keyframe]:
    """Merge `updates` into the keyframe with `keyframe_id`. No-op when the id is absent."""
    known = {k: v for k, v in updates.items() if k in _KEYFRAME_FIELDS}
    for key in updates.keys() - known.keys():
        log_event("WARNING", "Keyframes", "Ignoring unknown keyframe field", field=key)

    if isinstance(known.get("settings"), dict):
        known["settings"] = settings_from_dict(known["settings"])
    elif isinstance(known.get("settings"), ArtSettings):
        known["settings"] = known["settings"].copy()

    return [replace(kf, **known) if kf.id == keyframe_id else kf for kf in keyframes]


def find_keyframe_at(keyframes: Sequence[Keyframe], timestamp: float) -> Optional[Keyframe]:
    """Keyframe sitting at `timestamp` (within 0.001), if any."""
    for kf in sort_keyframes(keyframes):
        if abs(kf.timestamp - timestamp) < 0.001:
            return kf
    return None


def get_keyframes_for_interpolation(
    keyframes: Sequence[Keyframe],
    timestamp: float,
) -> Tuple[Optional[Keyframe], Optional[Keyframe]]:
    """Bracketing pair (before, after) with before.timestamp <= t <= after.timestamp.

    Before the first keyframe -> (first, first); after the last -> (last, last);
    a single keyframe always pairs with itself; an empty list gives (None, None).
    """
    if not keyframes:
        return None, None
    if len(keyframes) == 1:
        return keyframes[0], keyframes[0]

    ordered = sort_keyframes(keyframes)
    for before, after in zip(ordered, ordered[1:]):
        if before.timestamp <= timestamp <= after.timestamp:
            return before, after

    if timestamp <= ordered[0].timestamp:
        return ordered[0], ordered[0]
    return ordered[-1], ordered[-1]


def get_total_duration(keyframes: Sequence[Keyframe]) -> float:
    return sum(kf.duration for kf in keyframes)


def get_interval_at_time(
    keyframes: Sequence[Keyframe],
    time_ms: float,
) -> Tuple[Optional[Keyframe], Optional[Keyframe], float]:
    """Duration-axis bracketing: (from, to, start_of_from) for a playback position.

    Keyframe i owns [start_i, start_i + duration_i] and transitions toward
    keyframe i+1; the last keyframe pairs with itself. Past the end the last
    keyframe is returned for both.
    """
    ordered = sort_keyframes(keyframes)
    if not ordered:
        return None, None, 0.0

    start = 0.0
    for index, kf in enumerate(ordered):
        if start <= time_ms <= start + kf.duration:
            nxt = ordered[index + 1] if index + 1 < len(ordered) else kf
            return kf, nxt, start
        start += kf.duration

    last = ordered[-1]
    return last, last, start - last.duration


def get_keyframe_at_time(keyframes: Sequence[Keyframe], time_ms: float) -> Optional[Keyframe]:
    """Keyframe whose duration interval contains `time_ms`, else the last one."""
    from_kf, _, _ = get_interval_at_time(keyframes, time_ms)
    return from_kf


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def keyframe_to_dict(keyframe: Keyframe) -> dict:
    return {
        "id": keyframe.id,
        "name": keyframe.name,
        "timestamp": keyframe.timestamp,
        "settings": settings_to_dict(keyframe.settings),
        "duration": keyframe.duration,
    }


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_valid_entry(entry) -> bool:
    return (
        isinstance(entry, dict)
        and bool(entry.get("id"))
        and bool(entry.get("name"))
        and _is_number(entry.get("timestamp"))
        and isinstance(entry.get("settings"), dict)
        and _is_number(entry.get("duration"))
    )


def keyframe_from_dict(entry: dict) -> Keyframe:
    return Keyframe(
        id=str(entry["id"]),
        name=str(entry["name"]),
        timestamp=entry["timestamp"],
        settings=settings_from_dict(entry["settings"]),
        duration=entry["duration"],
    )


def export_keyframes(keyframes: Sequence[Keyframe]) -> str:
    """Human-readable JSON array of keyframe records."""
    return json.dumps([keyframe_to_dict(kf) for kf in keyframes], indent=2)


def import_keyframes(json_string: str) -> List[Keyframe]:
    """Parse a keyframe JSON array. Malformed entries are dropped; a non-array payload raises."""
    try:
        imported = json.loads(json_string)
    except (TypeError, ValueError) as e:
        raise KeyframeImportError(f"Failed to import keyframes: {e}") from e

    if not isinstance(imported, list):
        raise KeyframeImportError("Failed to import keyframes: Invalid keyframes format")

    valid = [keyframe_from_dict(entry) for entry in imported if _is_valid_entry(entry)]
    dropped = len(imported) - len(valid)
    if dropped:
        log_event("WARNING", "Keyframes", "Dropped malformed keyframes", dropped=dropped, kept=len(valid))
    return valid
