"""Assignment of line soup to tiles: counting, segment placement and backdrops."""

from __future__ import annotations

import math
from typing import List, MutableSequence, NamedTuple, Sequence

from .buffers import (
    BumpAllocators,
    ConfigUniform,
    IndirectCount,
    LineSoup,
    Path,
    PathSegment,
    SegmentCount,
    Tile,
)
from .geometry import ONE_MINUS_ULP, ROBUST_EPSILON, Vec2, span

WG_SIZE = 256
TILE_WIDTH = 16
TILE_HEIGHT = 16
TILE_SCALE = 1.0 / 16.0

_EPSILON = 1e-6
_I32_MIN = -0x8000_0000
_I32_MAX = 0x7FFF_FFFF
_U32_MAX = 0xFFFF_FFFF


def _div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _floor(x: float) -> float:
    return float(math.floor(x)) if math.isfinite(x) else x


def _ceil(x: float) -> float:
    return float(math.ceil(x)) if math.isfinite(x) else x


def _round(x: float) -> float:
    """Round half away from zero."""
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _clamp(x: float, lo: float, hi: float) -> float:
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def _to_i32(x: float) -> int:
    """Saturating float to i32 conversion; NaN becomes 0."""
    if math.isnan(x):
        return 0
    if x <= _I32_MIN:
        return _I32_MIN
    if x >= _I32_MAX:
        return _I32_MAX
    return int(x)


def _to_u32(x: float) -> int:
    """Saturating float to u32 conversion; NaN becomes 0."""
    if math.isnan(x) or x <= 0.0:
        return 0
    if x >= _U32_MAX:
        return _U32_MAX
    return int(x)


class _LineGrid(NamedTuple):
    """Parameters for walking the tiles a line crosses, in tile units."""

    is_down: bool
    xy0: Vec2
    xy1: Vec2
    s0: Vec2
    s1: Vec2
    count_x: int
    count: int
    dx: float
    dy: float
    a: float
    b: float
    is_positive_slope: bool
    sign: float
    y0: float
    x0: float


def _line_grid(line: LineSoup) -> _LineGrid:
    p0 = Vec2.from_array(line.p0)
    p1 = Vec2.from_array(line.p1)
    is_down = p1.y >= p0.y
    xy0, xy1 = (p0, p1) if is_down else (p1, p0)
    s0 = xy0 * TILE_SCALE
    s1 = xy1 * TILE_SCALE
    count_x = span(s0.x, s1.x) - 1
    count = count_x + span(s0.y, s1.y)

    dx = abs(s1.x - s0.x)
    dy = s1.y - s0.y
    idxdy = _div(1.0, dx + dy)
    a = dx * idxdy
    is_positive_slope = s1.x >= s0.x
    sign = 1.0 if is_positive_slope else -1.0
    xt0 = _floor(s0.x * sign)
    c = s0.x * sign - xt0
    y0 = _floor(s0.y)
    ytop = _ceil(s0.y) if s0.y == s1.y else y0 + 1.0
    b = min((dy * c + dx * (ytop - s0.y)) * idxdy, ONE_MINUS_ULP)
    robust_err = _floor(a * (count - 1.0) + b) - count_x
    if robust_err != 0.0:
        a -= math.copysign(ROBUST_EPSILON, robust_err)
    x0 = xt0 * sign + (0.0 if is_positive_slope else -1.0)
    return _LineGrid(
        is_down, xy0, xy1, s0, s1, count_x, count, dx, dy, a, b,
        is_positive_slope, sign, y0, x0,
    )


def _int_bbox(path: Path) -> List[int]:
    return [int(v) for v in path.bbox]


def path_count(
    bump: BumpAllocators,
    lines: Sequence[LineSoup],
    paths: Sequence[Path],
    tiles: MutableSequence[Tile],
) -> List[SegmentCount]:
    """Count line segments per tile and adjust backdrops for lines left of a path.

    Each tile's ``segment_count_or_ix`` is incremented for every line crossing
    it. The returned records, one per (line, tile) crossing, are the entries
    appended to the segment count buffer; ``bump.seg_counts`` grows by their
    number.
    """
    seg_counts: List[SegmentCount] = []
    for line_ix, line in enumerate(lines[: bump.lines]):
        g = _line_grid(line)
        s0, s1 = g.s0, g.s1
        if g.dx + g.dy == 0.0:
            continue
        if g.dy == 0.0 and _floor(s0.y) == s0.y:
            continue
        a, b, y0, x0, sign = g.a, g.b, g.y0, g.x0, g.sign
        pos = g.is_positive_slope

        path = paths[line.path_ix]
        bbox = _int_bbox(path)
        xmin = min(s0.x, s1.x)
        xmax = max(s0.x, s1.x)
        stride = bbox[2] - bbox[0]
        if s0.y >= bbox[3] or s1.y < bbox[1] or xmin >= bbox[2] or stride == 0:
            continue

        # Clip the line to the bounding box in "i" space.
        imin = 0
        if s0.y < bbox[1]:
            iminf = _round(_div(bbox[1] - y0 + b - a, 1.0 - a)) - 1.0
            if y0 + iminf - _floor(a * iminf + b) < bbox[1]:
                iminf += 1.0
            imin = _to_u32(iminf)
        imax = g.count
        if s1.y > bbox[3]:
            imaxf = _round(_div(bbox[3] - y0 + b - a, 1.0 - a)) - 1.0
            if y0 + imaxf - _floor(a * imaxf + b) < bbox[3]:
                imaxf += 1.0
            imax = _to_u32(imaxf)

        delta = -1 if g.is_down else 1
        ymin = 0
        ymax = 0
        if xmax < bbox[0]:
            ymin = _to_i32(_ceil(s0.y))
            ymax = _to_i32(_ceil(s1.y))
            imax = imin
        else:
            fudge = 0.0 if pos else 1.0
            if xmin < bbox[0]:
                f = _round(_div(sign * (bbox[0] - x0) - b + fudge, a))
                if (x0 + sign * _floor(a * f + b) < bbox[0]) == pos:
                    f += 1.0
                ynext = _to_i32(y0 + f - _floor(a * f + b) + 1.0)
                if pos:
                    if _to_u32(f) > imin:
                        ymin = _to_i32(y0 + (0.0 if y0 == s0.y else 1.0))
                        ymax = ynext
                        imin = _to_u32(f)
                elif _to_u32(f) < imax:
                    ymin = ynext
                    ymax = _to_i32(_ceil(s1.y))
                    imax = _to_u32(f)
            if xmax > bbox[2]:
                f = _round(_div(sign * (bbox[2] - x0) - b + fudge, a))
                if (x0 + sign * _floor(a * f + b) < bbox[2]) == pos:
                    f += 1.0
                if pos:
                    imax = min(imax, _to_u32(f))
                else:
                    imin = max(imin, _to_u32(f))
        imax = max(imin, imax)
        ymin = max(ymin, bbox[1])
        ymax = min(ymax, bbox[3])
        for y in range(ymin, ymax):
            tiles[path.tiles + (y - bbox[1]) * stride].backdrop += delta

        last_z = _floor(a * (imin - 1.0) + b)
        for i in range(imin, imax):
            z = _floor(a * i + b)
            y = _to_i32(y0 + i - z)
            x = _to_i32(x0 + sign * z)
            base = path.tiles + (y - bbox[1]) * stride - bbox[0]
            top_edge = (y0 == s0.y) if i == 0 else (last_z == z)
            if top_edge and x + 1 < bbox[2]:
                x_bump = max(x + 1, bbox[0])
                tiles[base + x_bump].backdrop += delta
            tile = tiles[base + x]
            seg_within_slice = tile.segment_count_or_ix
            tile.segment_count_or_ix += 1
            counts = ((seg_within_slice << 16) | i) & _U32_MAX
            seg_counts.append(SegmentCount(line_ix=line_ix, counts=counts))
            last_z = z
        bump.seg_counts += imax - imin
    return seg_counts


def path_tiling(
    bump: BumpAllocators,
    seg_counts: Sequence[SegmentCount],
    lines: Sequence[LineSoup],
    paths: Sequence[Path],
    tiles: Sequence[Tile],
    segments: MutableSequence[PathSegment],
) -> None:
    """Clip each counted line piece to its tile and store it in ``segments``.

    A tile takes part only once its ``segment_count_or_ix`` holds the bitwise
    complement of its first segment index.
    """
    for seg_count in seg_counts[: bump.seg_counts]:
        line = lines[seg_count.line_ix]
        counts = seg_count.counts
        seg_within_slice = counts >> 16
        seg_within_line = counts & 0xFFFF

        g = _line_grid(line)
        a, b, y0, x0, sign = g.a, g.b, g.y0, g.x0, g.sign
        pos = g.is_positive_slope
        xy0, xy1 = g.xy0, g.xy1
        z = _floor(a * seg_within_line + b)
        x = _to_i32(x0) + _to_i32(sign * z)
        y = _to_i32(y0 + seg_within_line - z)

        path = paths[line.path_ix]
        bbox = _int_bbox(path)
        stride = bbox[2] - bbox[0]
        tile = tiles[path.tiles + (y - bbox[1]) * stride + x - bbox[0]]
        seg_start = ~tile.segment_count_or_ix & _U32_MAX
        if seg_start & 0x8000_0000:
            continue
        tile_xy = Vec2(float(x * TILE_WIDTH), float(y * TILE_HEIGHT))
        tile_xy1 = tile_xy + Vec2(float(TILE_WIDTH), float(TILE_HEIGHT))

        if seg_within_line > 0:
            z_prev = _floor(a * (seg_within_line - 1.0) + b)
            if z == z_prev:
                # Top edge is clipped.
                xt = xy0.x + _div((xy1.x - xy0.x) * (tile_xy.y - xy0.y), xy1.y - xy0.y)
                xt = _clamp(xt, tile_xy.x + 1e-3, tile_xy1.x)
                xy0 = Vec2(xt, tile_xy.y)
            else:
                # Left edge is clipped for positive slopes, right edge otherwise.
                x_clip = tile_xy.x if pos else tile_xy1.x
                yt = xy0.y + _div((xy1.y - xy0.y) * (x_clip - xy0.x), xy1.x - xy0.x)
                yt = _clamp(yt, tile_xy.y + 1e-3, tile_xy1.y)
                xy0 = Vec2(x_clip, yt)
        if seg_within_line < g.count - 1:
            z_next = _floor(a * (seg_within_line + 1.0) + b)
            if z == z_next:
                # Bottom edge is clipped.
                xt = xy0.x + _div((xy1.x - xy0.x) * (tile_xy1.y - xy0.y), xy1.y - xy0.y)
                xt = _clamp(xt, tile_xy.x + 1e-3, tile_xy1.x)
                xy1 = Vec2(xt, tile_xy1.y)
            else:
                # Right edge is clipped for positive slopes, left edge otherwise.
                x_clip = tile_xy1.x if pos else tile_xy.x
                yt = xy0.y + _div((xy1.y - xy0.y) * (x_clip - xy0.x), xy1.x - xy0.x)
                yt = _clamp(yt, tile_xy.y + 1e-3, tile_xy1.y)
                xy1 = Vec2(x_clip, yt)

        y_edge = 1e9
        p0x, p0y = (xy0 - tile_xy).to_array()
        p1x, p1y = (xy1 - tile_xy).to_array()
        if p0x == 0.0:
            if p1x == 0.0:
                p0x = _EPSILON
                if p0y == 0.0:
                    # Entire tile.
                    p1x = _EPSILON
                    p1y = float(TILE_HEIGHT)
                else:
                    # Make the segment disappear.
                    p1x = 2.0 * _EPSILON
                    p1y = p0y
            elif p0y == 0.0:
                p0x = _EPSILON
            else:
                y_edge = p0y
        elif p1x == 0.0:
            if p1y == 0.0:
                p1x = _EPSILON
            else:
                y_edge = p1y
        if p0x == _floor(p0x) and p0x != 0.0:
            p0x -= _EPSILON
        if p1x == _floor(p1x) and p1x != 0.0:
            p1x -= _EPSILON
        if not g.is_down:
            p0x, p0y, p1x, p1y = p1x, p1y, p0x, p0y
        for px, py in ((p0x, p0y), (p1x, p1y)):
            if not (0.0 <= px <= TILE_WIDTH and 0.0 <= py <= TILE_HEIGHT):
                raise ValueError(f"segment point ({px}, {py}) lies outside its tile")
        segments[seg_start + seg_within_slice] = PathSegment(
            point0=(p0x, p0y), point1=(p1x, p1y), y_edge=y_edge
        )


def _indirect_for(n: int) -> IndirectCount:
    return IndirectCount(count_x=(n + (WG_SIZE - 1)) // WG_SIZE, count_y=1, count_z=1)


def path_count_setup(bump: BumpAllocators) -> IndirectCount:
    """Dispatch size for counting: one workgroup per ``WG_SIZE`` lines."""
    return _indirect_for(bump.lines)


def path_tiling_setup(bump: BumpAllocators) -> IndirectCount:
    """Dispatch size for tiling: one workgroup per ``WG_SIZE`` segment counts."""
    return _indirect_for(bump.seg_counts)


def backdrop(config: ConfigUniform, paths: Sequence[Path], tiles: MutableSequence[Tile]) -> None:
    """Turn per-tile backdrop deltas into running sums along each row of a path."""
    for path in paths[: config.layout.n_draw_objects]:
        width = path.bbox[2] - path.bbox[0]
        height = path.bbox[3] - path.bbox[1]
        for y in range(height):
            start = path.tiles + y * width
            row = tiles[start:start + width]
            if len(row) != width:
                raise IndexError(f"path tiles end past the tile buffer at row {y}")
            total = 0
            for tile in row:
                total += tile.backdrop
                tile.backdrop = total