# ringweave Configuration
# All default values, enums and schema migration

from dataclasses import dataclass, field, fields, is_dataclass, replace
from enum import Enum
import math

from logging_utils import log_event


CURRENT_CONFIG_VERSION = 1


class Strategy(str, Enum):
    """Connection strategies - how a ring lattice becomes a line set"""
    WEB = "Web"            # Tangential + radial edges
    SPOKES = "Spokes"      # Radial edges only
    SWIRL = "Swirl"        # Double tangential fan-out, randomized twist
    RANDOM = "Random"      # Random pairings under a per-point degree cap
    CLUSTERS = "Clusters"  # Every point wired to its nearest random center


class LoopMode(str, Enum):
    """Playback boundary policy"""
    NONE = "none"          # Stop at the end
    LOOP = "loop"          # Wrap to start
    PINGPONG = "pingpong"  # Reverse direction at either end


@dataclass
class ArtSettings:
    """Full parameter set for one generated image"""
    # Grid structure
    grid_start_ring: int = 0
    grid_end_ring: int = 4
    symmetry_sides: int = 6           # >= 3, points per ring = ring * sides
    chaos: float = 0.0                # Jitter magnitude (0 = perfect lattice)

    # Connection rules
    strategy: Strategy = Strategy.WEB
    connection_start_ring: int = 0
    connection_end_ring: int = 4

    # Algorithm parameters
    tangential_step: int = 1          # Ring-offset for same-ring edges (0 = none)
    radial_twist: float = 0.0         # Typically -1..1
    cluster_count: int = 5
    max_connections: int = 2          # Per-point degree cap for Random

    # Appearance
    line_width: float = 2.0
    dot_size: float = 4.0
    curvature: float = 0.0            # Signed bend of each edge

    seed: int = 0

    def copy(self) -> "ArtSettings":
        return replace(self)


# Fields that round to the nearest integer after interpolation
INTEGER_FIELDS = (
    "grid_start_ring",
    "grid_end_ring",
    "symmetry_sides",
    "connection_start_ring",
    "connection_end_ring",
    "tangential_step",
    "cluster_count",
    "max_connections",
    "seed",
)

# Fields that switch at the progress midpoint instead of interpolating
DISCRETE_FIELDS = ("strategy",)

# Structural fields - a change here regenerates the point lattice
STRUCTURAL_FIELDS = ("grid_start_ring", "grid_end_ring", "symmetry_sides", "chaos", "seed")


@dataclass
class AnimationConfig:
    """Live playback settings"""
    loop_mode: LoopMode = LoopMode.NONE
    fps: int = 30                          # Export sampling rate
    default_duration_ms: float = 2000.0    # Transition time for new keyframes


@dataclass
class ExportOptions:
    """Frame/GIF export options handed to the renderer and encoder"""
    width: int = 1000
    height: int = 1000
    fps: int = 30
    quality: float = 0.8              # 0.0 (smallest palette) - 1.0 (full palette)
    with_alpha: bool = False
    loop_mode: LoopMode = LoopMode.LOOP


@dataclass
class Config:
    """Master configuration"""
    version: int = 1                  # Schema version for persisted configs
    canvas_size: int = 1000           # Logical drawing area (square, px)
    settings: ArtSettings = field(default_factory=ArtSettings)
    animation: AnimationConfig = field(default_factory=AnimationConfig)
    export: ExportOptions = field(default_factory=ExportOptions)
    log_level: str = "INFO"           # Logging level (DEBUG/INFO/WARNING/ERROR)
    last_keyframes_file: str = ""     # Most recently saved/loaded keyframe file


# Current-shape camelCase keys (as written by older exports) -> snake_case fields
_CAMEL_KEYS = {
    "gridStartRing": "grid_start_ring",
    "gridEndRing": "grid_end_ring",
    "symmetrySides": "symmetry_sides",
    "connectionStartRing": "connection_start_ring",
    "connectionEndRing": "connection_end_ring",
    "tangentialStep": "tangential_step",
    "radialTwist": "radial_twist",
    "clusterCount": "cluster_count",
    "maxConnections": "max_connections",
    "lineWidth": "line_width",
    "dotSize": "dot_size",
}

# Legacy connection range keys
_LEGACY_RANGE_KEYS = {
    "startRing": "connection_start_ring",
    "start_ring": "connection_start_ring",
    "endRing": "connection_end_ring",
    "end_ring": "connection_end_ring",
}


def canonical_settings_keys(data: dict) -> dict:
    """Map camelCase and legacy settings keys onto the canonical grid/connection shape.

    Legacy ``ringCount`` N becomes the grid range 0..N-1. Canonical keys win
    when both forms are present.
    """
    out: dict = {}
    legacy: dict = {}
    for key, value in data.items():
        if key in ("ringCount", "ring_count"):
            try:
                ring_count = int(value)
            except (TypeError, ValueError):
                continue
            legacy["grid_start_ring"] = 0
            legacy["grid_end_ring"] = max(ring_count - 1, 0)
        elif key in _LEGACY_RANGE_KEYS:
            legacy[_LEGACY_RANGE_KEYS[key]] = value
        else:
            out[_CAMEL_KEYS.get(key, key)] = value
    for key, value in legacy.items():
        out.setdefault(key, value)
    return out


def apply_dict_to_dataclass(target, data) -> None:
    """Recursively apply values from a dict onto a dataclass instance.
    Unknown keys are ignored; Enum fields are coerced when possible."""
    if not isinstance(data, dict):
        return

    if isinstance(target, ArtSettings):
        data = canonical_settings_keys(data)

    for key, value in data.items():
        if not hasattr(target, key):
            continue

        current = getattr(target, key)

        if is_dataclass(current):
            if isinstance(value, dict):
                apply_dict_to_dataclass(current, value)
            else:
                log_event("WARNING", "Config", f"Expected a mapping for {key}, keeping default", value=value)
            continue

        if isinstance(current, Enum):
            try:
                setattr(target, key, current.__class__(value))
            except ValueError:
                log_event("WARNING", "Config", f"Could not convert {key} to {current.__class__.__name__}, keeping default", value=value)
            continue

        value = _coerce_scalar(current, value)
        if value is _REJECTED:
            log_event("WARNING", "Config", f"Invalid value for {key}, keeping default", value=data[key])
            continue

        setattr(target, key, value)


_REJECTED = object()


def _coerce_scalar(current, value):
    """Match `value` to the type of the field's current value, or return _REJECTED.

    Integral floats are accepted for int fields, ints for float fields.
    """
    if isinstance(current, bool):
        return value if isinstance(value, bool) else _REJECTED
    if isinstance(value, bool):
        return _REJECTED
    if isinstance(current, int):
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return _REJECTED
    if isinstance(current, float):
        if isinstance(value, (int, float)) and math.isfinite(value):
            return float(value)
        return _REJECTED
    if isinstance(current, str):
        return value if isinstance(value, str) else _REJECTED
    return value


def settings_from_dict(data: dict) -> ArtSettings:
    """Build an ArtSettings from a (possibly legacy) mapping, defaults for missing keys."""
    settings = ArtSettings()
    apply_dict_to_dataclass(settings, data)
    return settings


def settings_to_dict(settings: ArtSettings) -> dict:
    """Plain-JSON view of an ArtSettings (enums as their string values)."""
    out = {}
    for f in fields(settings):
        value = getattr(settings, f.name)
        out[f.name] = value.value if isinstance(value, Enum) else value
    return out


def clamp_connection_range(settings: ArtSettings) -> ArtSettings:
    """Return a copy with ordered grid/connection ranges and the connection range inside the grid."""
    grid_start = max(0, int(settings.grid_start_ring))
    grid_end = max(grid_start, int(settings.grid_end_ring))

    conn_start = min(max(int(settings.connection_start_ring), grid_start), grid_end)
    conn_end = min(max(int(settings.connection_end_ring), conn_start), grid_end)

    return replace(
        settings,
        grid_start_ring=grid_start,
        grid_end_ring=grid_end,
        connection_start_ring=conn_start,
        connection_end_ring=conn_end,
    )


def migrate_config(config: Config, loaded_version) -> None:
    """Upgrade older config structures to the current schema.
    Sanitizes None values, clamps ranges and bumps version."""
    try:
        version = int(loaded_version) if loaded_version is not None else 0
    except (TypeError, ValueError):
        version = 0

    defaults = ArtSettings()
    for f in fields(ArtSettings):
        if getattr(config.settings, f.name, None) is None:
            setattr(config.settings, f.name, getattr(defaults, f.name))

    if version < CURRENT_CONFIG_VERSION:
        log_event("INFO", "Config", "Migrating config", from_version=version, to_version=CURRENT_CONFIG_VERSION)

    if getattr(config, 'log_level', None) is None:
        config.log_level = "INFO"
    if getattr(config, 'canvas_size', None) is None:
        config.canvas_size = 1000
    if getattr(config.animation, 'fps', None) is None:
        config.animation.fps = 30
    if getattr(config.export, 'fps', None) is None:
        config.export.fps = 30

    # Always clamp safety ranges
    try:
        quality = float(getattr(config.export, 'quality', 0.8))
    except (TypeError, ValueError):
        quality = 0.8
    config.export.quality = max(0.0, min(1.0, quality))

    try:
        fps = int(getattr(config.animation, 'fps', 30))
    except (TypeError, ValueError):
        fps = 30
    config.animation.fps = max(1, min(120, fps))

    config.settings = clamp_connection_range(config.settings)
    config.settings.symmetry_sides = max(3, int(config.settings.symmetry_sides))

    config.version = CURRENT_CONFIG_VERSION


# Default config instance
DEFAULT_CONFIG = Config()

# Centralized slider ranges (min, max) for settings wired into the UI
SETTING_RANGE_LIMITS = {
    'grid_start_ring': (0, 20),
    'grid_end_ring': (0, 20),
    'symmetry_sides': (3, 24),
    'chaos': (0.0, 10.0),
    'connection_start_ring': (0, 20),
    'connection_end_ring': (0, 20),
    'tangential_step': (0, 12),
    'radial_twist': (-1.0, 1.0),
    'cluster_count': (1, 40),
    'max_connections': (1, 12),
    'line_width': (0.0, 10.0),
    'dot_size': (0.0, 12.0),
    'curvature': (-1.0, 1.0),
    'seed': (0, 9999),
}
