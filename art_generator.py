"""
ringweave - Art Generator
Builds a ring lattice of points and wires it into a line set.

Points are laid out in concentric rings around the canvas center: ring 0 is a
single center point, ring r holds r * symmetry_sides evenly spaced points.
A connection strategy then picks which point pairs become lines. All
randomness comes from a SeededRandom keyed on settings.seed, so identical
settings always give identical output.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from config import ArtSettings, Strategy
from logging_utils import log_event
from seeded_random import SeededRandom


Line = Tuple[int, int]


@dataclass(frozen=True)
class GridPoint:
    """One lattice point. `id` follows generation order (ring, then index)."""
    id: int
    x: float
    y: float
    ring: int
    angle: float


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded toward +inf."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Point lattice
# ---------------------------------------------------------------------------

def generate_grid_points(
    center_x: float,
    center_y: float,
    start_ring: int,
    end_ring: int,
    symmetry_sides: int,
    chaos: float,
    seed: int,
) -> List[GridPoint]:
    """Generate the jittered ring lattice for rings start_ring..end_ring.

    Returns an empty list for symmetry_sides < 3 or an inverted ring range.
    Jitter is drawn x-then-y per point in ring-then-index order.
    """
    if end_ring < start_ring or symmetry_sides < 3:
        return []

    rand = SeededRandom(seed)
    points: List[GridPoint] = []

    max_radius = min(center_x, center_y) * 0.9
    total_rings = end_ring + 1  # ring 0 always counts
    ring_spacing = max_radius / max(total_rings - 1, 1)
    jitter_scale = chaos * 10

    for ring in range(max(start_ring, 0), end_ring + 1):
        count = 1 if ring == 0 else ring * symmetry_sides
        radius = ring * ring_spacing

        jitter = (np.array([rand() for _ in range(2 * count)], dtype=float) - 0.5) * jitter_scale
        jitter = jitter.reshape(count, 2)

        if ring == 0:
            angles = np.zeros(1)
        else:
            angles = np.arange(count, dtype=float) / count * 2.0 * math.pi

        xs = center_x + radius * np.cos(angles) + jitter[:, 0]
        ys = center_y + radius * np.sin(angles) + jitter[:, 1]

        for x, y, angle in zip(xs.tolist(), ys.tolist(), angles.tolist()):
            points.append(GridPoint(id=len(points), x=x, y=y, ring=ring, angle=angle))

    return points


def group_points_by_ring(points: Sequence[GridPoint]) -> Dict[int, List[GridPoint]]:
    """Bucket points per ring, keeping generation order inside each bucket."""
    by_ring: Dict[int, List[GridPoint]] = {}
    for p in points:
        by_ring.setdefault(p.ring, []).append(p)
    return by_ring


# ---------------------------------------------------------------------------
# Ring-pair primitives
# ---------------------------------------------------------------------------

def _tangential_edges(ring_points: List[GridPoint], step: int) -> List[Line]:
    size = len(ring_points)
    return [(p.id, ring_points[(i + step) % size].id) for i, p in enumerate(ring_points)]


def _radial_edges(
    current: List[GridPoint],
    nxt: List[GridPoint],
    offset: Callable[[], float],
) -> List[Line]:
    """One edge per point of `current` into the next ring; `offset` is called once per edge."""
    if not current or not nxt:
        return []
    ratio = len(nxt) / len(current)
    lines: List[Line] = []
    for i, p in enumerate(current):
        target = round_half_up(i * ratio + offset()) % len(nxt)
        lines.append((p.id, nxt[target].id))
    return lines


def _web_lines(by_ring: Dict[int, List[GridPoint]], settings: ArtSettings, rand: SeededRandom) -> List[Line]:
    lines: List[Line] = []
    start, end = settings.connection_start_ring, settings.connection_end_ring
    step = settings.tangential_step
    twist = settings.radial_twist * settings.symmetry_sides / 10

    for ring in range(start, end + 1):
        current = by_ring.get(ring, [])
        if step > 0 and len(current) > 1:
            lines.extend(_tangential_edges(current, step))
        if ring < end:
            lines.extend(_radial_edges(current, by_ring.get(ring + 1, []), lambda: twist))
    return lines


def _spokes_lines(by_ring: Dict[int, List[GridPoint]], settings: ArtSettings, rand: SeededRandom) -> List[Line]:
    lines: List[Line] = []
    twist = settings.radial_twist * settings.symmetry_sides / 10
    for ring in range(settings.connection_start_ring, settings.connection_end_ring):
        lines.extend(_radial_edges(by_ring.get(ring, []), by_ring.get(ring + 1, []), lambda: twist))
    return lines


def _swirl_lines(by_ring: Dict[int, List[GridPoint]], settings: ArtSettings, rand: SeededRandom) -> List[Line]:
    lines: List[Line] = []
    start, end = settings.connection_start_ring, settings.connection_end_ring
    step1 = max(1, settings.tangential_step)
    step2 = max(1, settings.tangential_step + 1)
    base_twist = settings.radial_twist * settings.symmetry_sides / 5

    for ring in range(start, end + 1):
        current = by_ring.get(ring, [])
        size = len(current)

        if size > 1:
            for i, p in enumerate(current):
                lines.append((p.id, current[(i + step1) % size].id))
                if rand() > 0.5:
                    lines.append((p.id, current[(i + step2) % size].id))

        if ring < end:
            lines.extend(_radial_edges(current, by_ring.get(ring + 1, []),
                                       lambda: base_twist + (rand() - 0.5) * 2))
    return lines


def _random_lines(active: List[GridPoint], settings: ArtSettings, rand: SeededRandom) -> List[Line]:
    """2 * len(active) attempts; rejected pairings are dropped, not retried."""
    lines: List[Line] = []
    degree: Dict[int, int] = {}
    cap = settings.max_connections
    n = len(active)

    for _ in range(n * 2):
        p1 = active[rand.index(n)]
        p2 = active[rand.index(n)]
        d1 = degree.get(p1.id, 0)
        d2 = degree.get(p2.id, 0)
        if p1.id != p2.id and d1 < cap and d2 < cap:
            lines.append((p1.id, p2.id))
            degree[p1.id] = d1 + 1
            degree[p2.id] = d2 + 1
    return lines


def _cluster_lines(active: List[GridPoint], settings: ArtSettings, rand: SeededRandom) -> List[Line]:
    """Wire every active point to its nearest randomly drawn center (first minimum wins)."""
    n = len(active)
    centers = [active[rand.index(n)] for _ in range(max(settings.cluster_count, 0))]
    if not centers:
        return []

    coords = np.array([(p.x, p.y) for p in active], dtype=float)
    center_coords = np.array([(c.x, c.y) for c in centers], dtype=float)
    dist = cdist(coords, center_coords)

    # A point never measures against itself as a center
    point_ids = np.array([p.id for p in active])[:, None]
    center_ids = np.array([c.id for c in centers])[None, :]
    dist[point_ids == center_ids] = np.inf

    nearest = np.argmin(dist, axis=1)
    lines: List[Line] = []
    for row, p in enumerate(active):
        col = int(nearest[row])
        if np.isfinite(dist[row, col]):
            lines.append((p.id, centers[col].id))
    return lines


_RING_STRATEGIES = {
    Strategy.WEB: _web_lines,
    Strategy.SPOKES: _spokes_lines,
    Strategy.SWIRL: _swirl_lines,
}

_POINT_STRATEGIES = {
    Strategy.RANDOM: _random_lines,
    Strategy.CLUSTERS: _cluster_lines,
}


def generate_art(points: Sequence[GridPoint], settings: ArtSettings) -> List[Line]:
    """Connect `points` into lines using settings.strategy. Empty when no point is in the connection range."""
    rand = SeededRandom(settings.seed)
    start, end = settings.connection_start_ring, settings.connection_end_ring

    active = [p for p in points if start <= p.ring <= end]
    if not active:
        return []

    strategy = Strategy(settings.strategy)
    if strategy in _RING_STRATEGIES:
        lines = _RING_STRATEGIES[strategy](group_points_by_ring(points), settings, rand)
    else:
        lines = _POINT_STRATEGIES[strategy](active, settings, rand)

    log_event("DEBUG", "ArtGenerator", "Lines generated", strategy=strategy.value, points=len(points), lines=len(lines))
    return lines


def generate_geometry(settings: ArtSettings, canvas_size: float) -> Tuple[List[GridPoint], List[Line]]:
    """Points and lines for one settings snapshot on a square canvas."""
    center = canvas_size / 2
    points = generate_grid_points(
        center,
        center,
        settings.grid_start_ring,
        settings.grid_end_ring,
        settings.symmetry_sides,
        settings.chaos,
        settings.seed,
    )
    return points, generate_art(points, settings)
