"""
ringweave - Frame Renderer
Turns one settings snapshot into pixels (Pillow) or SVG markup.
Black strokes on white (or transparent) background; each edge is a straight
segment or a quadratic curve bent by settings.curvature.
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from art_generator import GridPoint, Line, generate_geometry
from config import ArtSettings, ExportOptions
from logging_utils import log_event

__all__ = [
    "generate_geometry",
    "curve_control_point",
    "quadratic_points",
    "build_svg",
    "draw_geometry",
    "render_frame",
    "save_png",
    "save_svg",
]

CURVE_SEGMENTS = 24
PNG_EXPORT_SCALE = 2


def curve_control_point(p1: GridPoint, p2: GridPoint, curvature: float) -> Optional[Tuple[float, float]]:
    """Quadratic control point for an edge, or None when the edge is drawn straight."""
    if curvature == 0:
        return None
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    length = math.hypot(dx, dy)
    if length == 0:
        return None

    offset = length * curvature * 0.5
    mid_x = (p1.x + p2.x) / 2
    mid_y = (p1.y + p2.y) / 2
    return mid_x + (-dy / length) * offset, mid_y + (dx / length) * offset


def quadratic_points(start, control, end, segments: int = CURVE_SEGMENTS) -> np.ndarray:
    """Sample a quadratic Bezier into (segments + 1, 2) points."""
    t = np.linspace(0.0, 1.0, segments + 1)[:, None]
    p0 = np.asarray(start, dtype=float)
    p1 = np.asarray(control, dtype=float)
    p2 = np.asarray(end, dtype=float)
    return (1 - t) ** 2 * p0 + 2 * (1 - t) * t * p1 + t ** 2 * p2


def _points_by_id(points: Sequence[GridPoint]) -> Dict[int, GridPoint]:
    return {p.id: p for p in points}


def _fmt(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def build_svg(
    points: Sequence[GridPoint],
    lines: Sequence[Line],
    settings: ArtSettings,
    canvas_size: float,
    with_alpha: bool = False,
) -> str:
    """Standalone SVG document for one frame."""
    by_id = _points_by_id(points)
    size = _fmt(canvas_size)
    parts: List[str] = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">'
    ]
    if not with_alpha:
        parts.append('<rect width="100%" height="100%" fill="white"/>')

    stroke_width = _fmt(settings.line_width)
    for id1, id2 in lines:
        p1, p2 = by_id.get(id1), by_id.get(id2)
        if p1 is None or p2 is None:
            continue
        control = curve_control_point(p1, p2, settings.curvature)
        if control is None:
            d = f"M {_fmt(p1.x)} {_fmt(p1.y)} L {_fmt(p2.x)} {_fmt(p2.y)}"
        else:
            d = (f"M {_fmt(p1.x)},{_fmt(p1.y)} Q {_fmt(control[0])},{_fmt(control[1])} "
                 f"{_fmt(p2.x)},{_fmt(p2.y)}")
        parts.append(f'<path d="{d}" stroke="black" stroke-width="{stroke_width}" '
                     f'stroke-linecap="round" fill="none"/>')

    if settings.dot_size > 0:
        r = _fmt(settings.dot_size)
        for p in points:
            parts.append(f'<circle cx="{_fmt(p.x)}" cy="{_fmt(p.y)}" r="{r}" fill="black"/>')

    parts.append("</svg>")
    return "\n".join(parts)


def draw_geometry(
    image: Image.Image,
    points: Sequence[GridPoint],
    lines: Sequence[Line],
    settings: ArtSettings,
    scale: float,
    offset: Tuple[float, float] = (0.0, 0.0),
) -> None:
    """Draw edges then dots onto `image`, mapping canvas coords by scale + offset."""
    draw = ImageDraw.Draw(image)
    ox, oy = offset
    ink = (0, 0, 0, 255) if image.mode == "RGBA" else (0, 0, 0)
    width = max(1, int(round(settings.line_width * scale))) if settings.line_width > 0 else 0
    by_id = _points_by_id(points)

    if width > 0:
        for id1, id2 in lines:
            p1, p2 = by_id.get(id1), by_id.get(id2)
            if p1 is None or p2 is None:
                continue
            control = curve_control_point(p1, p2, settings.curvature)
            if control is None:
                path = np.array([(p1.x, p1.y), (p2.x, p2.y)], dtype=float)
            else:
                path = quadratic_points((p1.x, p1.y), control, (p2.x, p2.y))
            path = path * scale + (ox, oy)
            draw.line([tuple(xy) for xy in path.tolist()], fill=ink, width=width, joint="curve")

    if settings.dot_size > 0:
        r = settings.dot_size * scale
        for p in points:
            cx, cy = p.x * scale + ox, p.y * scale + oy
            draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=ink)


def render_frame(settings: ArtSettings, options: ExportOptions, canvas_size: float = 1000) -> Image.Image:
    """Render one settings snapshot into an options.width x options.height image.

    The square canvas is scaled uniformly to fit and centered.
    """
    points, lines = generate_geometry(settings, canvas_size)

    if options.with_alpha:
        image = Image.new("RGBA", (options.width, options.height), (255, 255, 255, 0))
    else:
        image = Image.new("RGB", (options.width, options.height), (255, 255, 255))

    scale = min(options.width / canvas_size, options.height / canvas_size)
    offset = ((options.width - canvas_size * scale) / 2, (options.height - canvas_size * scale) / 2)
    draw_geometry(image, points, lines, settings, scale, offset)
    return image


def save_png(settings: ArtSettings, path: str, canvas_size: int = 1000, scale: int = PNG_EXPORT_SCALE) -> str:
    """Write a white-background PNG at `scale` times the canvas size."""
    size = int(canvas_size * scale)
    image = render_frame(settings, ExportOptions(width=size, height=size), canvas_size)
    image.save(path, format="PNG")
    log_event("INFO", "Export", "PNG saved", path=path, size=size)
    return path


def save_svg(settings: ArtSettings, path: str, canvas_size: int = 1000) -> str:
    points, lines = generate_geometry(settings, canvas_size)
    with open(path, "w", encoding="utf-8") as f:
        f.write(build_svg(points, lines, settings, canvas_size))
    log_event("INFO", "Export", "SVG saved", path=path, lines=len(lines))
    return path
