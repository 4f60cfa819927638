import math
import unittest
from collections import Counter

from art_generator import (
    GridPoint,
    _cluster_lines,
    generate_art,
    generate_geometry,
    generate_grid_points,
    group_points_by_ring,
    round_half_up,
)
from config import ArtSettings, Strategy
from seeded_random import SeededRandom


class _FixedIndices:
    """Stands in for SeededRandom.index with a scripted sequence."""

    def __init__(self, indices):
        self._indices = list(indices)

    def index(self, length):
        return self._indices.pop(0)


def _settings(**overrides) -> ArtSettings:
    base = ArtSettings(grid_start_ring=0, grid_end_ring=4, symmetry_sides=6,
                       connection_start_ring=0, connection_end_ring=4)
    for key, value in overrides.items():
        setattr(base, key, value)
    return base


class TestGridPoints(unittest.TestCase):
    def test_ring_cardinality(self):
        points = generate_grid_points(500, 500, 0, 4, 6, 0.0, 0)
        counts = Counter(p.ring for p in points)
        self.assertEqual(counts, {0: 1, 1: 6, 2: 12, 3: 18, 4: 24})
        self.assertEqual(len(points), 61)

    def test_ids_follow_generation_order(self):
        points = generate_grid_points(500, 500, 0, 3, 5, 1.0, 3)
        self.assertEqual([p.id for p in points], list(range(len(points))))
        rings = [p.ring for p in points]
        self.assertEqual(rings, sorted(rings))

    def test_perfect_lattice_geometry(self):
        points = generate_grid_points(500, 500, 0, 4, 6, 0.0, 0)
        center = points[0]
        self.assertEqual((center.x, center.y, center.angle), (500, 500, 0))

        outer = group_points_by_ring(points)[4]
        self.assertAlmostEqual(outer[0].x, 950.0)
        self.assertAlmostEqual(outer[0].y, 500.0)
        for p in outer:
            self.assertAlmostEqual(math.hypot(p.x - 500, p.y - 500), 450.0)

    def test_start_ring_skips_inner_rings_but_keeps_spacing(self):
        points = generate_grid_points(500, 500, 2, 4, 6, 0.0, 0)
        self.assertEqual(min(p.ring for p in points), 2)
        first = points[0]
        self.assertAlmostEqual(math.hypot(first.x - 500, first.y - 500), 225.0)

    def test_invalid_structures_give_empty(self):
        self.assertEqual(generate_grid_points(500, 500, 0, 4, 2, 0.0, 0), [])
        self.assertEqual(generate_grid_points(500, 500, 3, 1, 6, 0.0, 0), [])

    def test_chaos_zero_ignores_seed(self):
        a = generate_grid_points(500, 500, 0, 3, 6, 0.0, 1)
        b = generate_grid_points(500, 500, 0, 3, 6, 0.0, 2)
        self.assertEqual(a, b)

    def test_chaos_jitter_is_seeded_and_bounded(self):
        a = generate_grid_points(500, 500, 0, 3, 6, 2.0, 11)
        b = generate_grid_points(500, 500, 0, 3, 6, 2.0, 11)
        c = generate_grid_points(500, 500, 0, 3, 6, 2.0, 12)
        self.assertEqual(a, b)
        self.assertNotEqual(a, c)

        perfect = generate_grid_points(500, 500, 0, 3, 6, 0.0, 11)
        for jittered, exact in zip(a, perfect):
            self.assertLessEqual(abs(jittered.x - exact.x), 10.0)
            self.assertLessEqual(abs(jittered.y - exact.y), 10.0)


class TestRoundHalfUp(unittest.TestCase):
    def test_halves_round_up(self):
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(1.5), 2)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-0.5), 0)
        self.assertEqual(round_half_up(-1.6), -2)
        self.assertEqual(round_half_up(2.4), 2)


class TestStrategies(unittest.TestCase):
    def _lines(self, settings):
        return generate_geometry(settings, 1000)

    def test_deterministic_for_every_strategy(self):
        for strategy in Strategy:
            settings = _settings(strategy=strategy, chaos=1.5, seed=42, radial_twist=0.3)
            self.assertEqual(self._lines(settings), self._lines(settings.copy()), strategy)

    def test_web_edge_count(self):
        _, lines = self._lines(_settings(strategy=Strategy.WEB, tangential_step=1))
        # Tangential: 6 + 12 + 18 + 24, radial: 1 + 6 + 12 + 18
        self.assertEqual(len(lines), 60 + 37)

    def test_web_without_tangential_step_is_radial_only(self):
        _, lines = self._lines(_settings(strategy=Strategy.WEB, tangential_step=0))
        self.assertEqual(len(lines), 37)

    def test_web_tangential_wraps_within_ring(self):
        points, lines = self._lines(_settings(strategy=Strategy.WEB, tangential_step=2,
                                              connection_start_ring=1, connection_end_ring=1))
        ring1 = group_points_by_ring(points)[1]
        expected = [(p.id, ring1[(i + 2) % 6].id) for i, p in enumerate(ring1)]
        self.assertEqual(lines, expected)

    def test_spokes_are_radial(self):
        points, lines = self._lines(_settings(strategy=Strategy.SPOKES))
        ring_of = {p.id: p.ring for p in points}
        self.assertEqual(len(lines), 37)
        for a, b in lines:
            self.assertEqual(ring_of[b], ring_of[a] + 1)

    def test_spokes_target_index_scales_with_ring_ratio(self):
        points, lines = self._lines(_settings(strategy=Strategy.SPOKES,
                                              connection_start_ring=1, connection_end_ring=2))
        by_ring = group_points_by_ring(points)
        expected = [(p.id, by_ring[2][2 * i].id) for i, p in enumerate(by_ring[1])]
        self.assertEqual(lines, expected)

    def test_negative_twist_wraps_target_index(self):
        points, lines = self._lines(_settings(strategy=Strategy.SPOKES, radial_twist=-1.0,
                                              connection_start_ring=0, connection_end_ring=1))
        ring1 = group_points_by_ring(points)[1]
        # twist = -0.6 -> round(-0.6) = -1 -> wraps to the last index
        self.assertEqual(lines, [(0, ring1[5].id)])

    def test_swirl_edge_count_bounds(self):
        points, lines = self._lines(_settings(strategy=Strategy.SWIRL, seed=9))
        ring_of = {p.id: p.ring for p in points}
        tangential = [l for l in lines if ring_of[l[0]] == ring_of[l[1]]]
        radial = [l for l in lines if ring_of[l[0]] != ring_of[l[1]]]
        self.assertEqual(len(radial), 37)
        self.assertGreaterEqual(len(tangential), 60)
        self.assertLessEqual(len(tangential), 120)

    def test_random_respects_degree_cap(self):
        for cap in (1, 2, 3):
            points, lines = self._lines(_settings(strategy=Strategy.RANDOM, max_connections=cap, seed=5))
            degree = Counter()
            for a, b in lines:
                self.assertNotEqual(a, b)
                degree[a] += 1
                degree[b] += 1
            self.assertTrue(all(d <= cap for d in degree.values()))
            self.assertLessEqual(len(lines), 2 * len(points))

    def test_random_only_uses_active_points(self):
        points, lines = self._lines(_settings(strategy=Strategy.RANDOM, connection_start_ring=2,
                                              connection_end_ring=3, seed=3))
        ring_of = {p.id: p.ring for p in points}
        for a, b in lines:
            self.assertIn(ring_of[a], (2, 3))
            self.assertIn(ring_of[b], (2, 3))

    def test_clusters_wire_to_nearest_center(self):
        points, lines = self._lines(_settings(strategy=Strategy.CLUSTERS, cluster_count=4, chaos=3.0, seed=21))
        by_id = {p.id: p for p in points}
        centers = {b for _, b in lines}
        self.assertTrue(lines)
        self.assertLessEqual(len(lines), len(points))
        for a, b in lines:
            self.assertNotEqual(a, b)
            pa = by_id[a]
            d_best = math.hypot(pa.x - by_id[b].x, pa.y - by_id[b].y)
            for c in centers:
                if c == a:
                    continue
                d = math.hypot(pa.x - by_id[c].x, pa.y - by_id[c].y)
                self.assertLessEqual(d_best, d + 1e-9)

    def test_clusters_pick_nearest_of_all_drawn_centers(self):
        settings = _settings(strategy=Strategy.CLUSTERS, cluster_count=6, chaos=3.0, seed=21,
                             connection_start_ring=1, connection_end_ring=3)
        points, lines = self._lines(settings)
        active = [p for p in points if 1 <= p.ring <= 3]

        rand = SeededRandom(settings.seed)
        centers = [active[rand.index(len(active))] for _ in range(settings.cluster_count)]

        expected = []
        for p in active:
            best = None
            best_d = math.inf
            for c in centers:
                if c.id == p.id:
                    continue
                d = math.hypot(p.x - c.x, p.y - c.y)
                if d < best_d:
                    best, best_d = c, d
            if best is not None:
                expected.append((p.id, best.id))
        self.assertEqual(lines, expected)

    def test_clusters_tie_goes_to_first_center(self):
        active = [
            GridPoint(id=0, x=0.0, y=0.0, ring=1, angle=0.0),
            GridPoint(id=1, x=10.0, y=0.0, ring=1, angle=0.0),
            GridPoint(id=2, x=-10.0, y=0.0, ring=1, angle=0.0),
            GridPoint(id=3, x=0.0, y=5.0, ring=1, angle=0.0),
        ]
        rand = _FixedIndices([1, 2])
        lines = _cluster_lines(active, _settings(cluster_count=2), rand)
        self.assertEqual(lines, [(0, 1), (1, 2), (2, 1), (3, 1)])

    def test_clusters_point_with_only_itself_as_center_is_skipped(self):
        active = [
            GridPoint(id=0, x=0.0, y=0.0, ring=1, angle=0.0),
            GridPoint(id=1, x=10.0, y=0.0, ring=1, angle=0.0),
        ]
        lines = _cluster_lines(active, _settings(cluster_count=2), _FixedIndices([1, 1]))
        self.assertEqual(lines, [(0, 1)])

    def test_clusters_without_centers_produce_nothing(self):
        _, lines = self._lines(_settings(strategy=Strategy.CLUSTERS, cluster_count=0))
        self.assertEqual(lines, [])

    def test_empty_connection_range_produces_no_lines(self):
        points = generate_grid_points(500, 500, 0, 2, 6, 0.0, 0)
        settings = _settings(grid_end_ring=2, connection_start_ring=5, connection_end_ring=6)
        for strategy in Strategy:
            settings.strategy = strategy
            self.assertEqual(generate_art(points, settings), [])

    def test_all_endpoints_exist(self):
        for strategy in Strategy:
            points, lines = self._lines(_settings(strategy=strategy, seed=77, chaos=0.5))
            ids = {p.id for p in points}
            for a, b in lines:
                self.assertIn(a, ids)
                self.assertIn(b, ids)


if __name__ == "__main__":
    unittest.main()
