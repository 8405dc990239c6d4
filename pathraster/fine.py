"""Fine rasterization of per-tile command lists into a CPU texture."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, MutableSequence, Sequence, Tuple

from .buffers import PTCL_INITIAL_ALLOC, ConfigUniform, CpuTexture, PathSegment, PtclCommand

TILE_WIDTH = 16
TILE_HEIGHT = 16
TILE_SIZE = TILE_WIDTH * TILE_HEIGHT


def _div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _clamp(x: float, lo: float, hi: float) -> float:
    """Clamp that lets NaN through unchanged."""
    if x < lo:
        return lo
    if x > hi:
        return hi
    return x


def _fmin(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a <= b else b


def _fmax(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a >= b else b


def _signum(x: float) -> float:
    return math.nan if math.isnan(x) else math.copysign(1.0, x)


def _round(x: float) -> float:
    """Round half away from zero."""
    if not math.isfinite(x):
        return x
    return math.copysign(math.floor(abs(x) + 0.5), x)


def _as_i32(word: int) -> int:
    word &= 0xFFFF_FFFF
    return word - (1 << 32) if word & 0x8000_0000 else word


@dataclass(frozen=True)
class CmdFill:
    size_and_rule: int
    seg_data: int
    backdrop: int

    @property
    def n_segs(self) -> int:
        return self.size_and_rule >> 1

    @property
    def even_odd(self) -> bool:
        return bool(self.size_and_rule & 1)


def read_fill(ptcl: Sequence[int], offset: int) -> CmdFill:
    """Decode the fill command whose tag sits at ``offset``."""
    return CmdFill(
        size_and_rule=ptcl[offset + 1],
        seg_data=ptcl[offset + 2],
        backdrop=_as_i32(ptcl[offset + 3]),
    )


def unpack4x8unorm(x: int) -> Tuple[float, float, float, float]:
    """Split a word into four unit-range channels, lowest byte first."""
    return tuple(((x >> (i * 8)) & 0xFF) * (1.0 / 255.0) for i in range(4))


def pack4x8unorm(x: Sequence[float]) -> int:
    """Pack four unit-range channels into a word, first channel in the lowest byte."""
    if len(x) != 4:
        raise ValueError(f"expected four channels, got {len(x)}")
    result = 0
    for i, channel in enumerate(x):
        scaled = _clamp(channel, 0.0, 1.0) * 255.0
        byte = 0 if math.isnan(scaled) else int(_round(scaled))
        result |= byte << (i * 8)
    return result


def fill_path(
    area: MutableSequence[float],
    segments: Sequence[PathSegment],
    fill: CmdFill,
    x_tile: float,
    y_tile: float,
) -> None:
    """Compute coverage of one tile for ``fill`` into ``area``, in place."""
    if len(area) != TILE_SIZE:
        raise ValueError(f"area must hold {TILE_SIZE} values, got {len(area)}")
    end = fill.seg_data + fill.n_segs
    if end > len(segments):
        raise IndexError(f"fill references segments up to {end}, only {len(segments)} exist")
    area[:] = [float(fill.backdrop)] * TILE_SIZE
    for segment in segments[fill.seg_data:end]:
        sx0, sy0 = segment.point0
        sx1, sy1 = segment.point1
        delta_x = sx1 - sx0
        delta_y = sy1 - sy0
        x_sign = _signum(delta_x)
        for yi in range(TILE_HEIGHT):
            row_y = y_tile + yi
            y = sy0 - row_y
            y0 = _clamp(y, 0.0, 1.0)
            y1 = _clamp(y + delta_y, 0.0, 1.0)
            dy = y0 - y1
            y_edge = x_sign * _clamp(row_y - segment.y_edge + 1.0, 0.0, 1.0)
            row = yi * TILE_WIDTH
            if dy != 0.0:
                vec_y_recip = _div(1.0, delta_y)
                t0 = (y0 - y) * vec_y_recip
                t1 = (y1 - y) * vec_y_recip
                startx = sx0 - x_tile
                x0 = startx + t0 * delta_x
                x1 = startx + t1 * delta_x
                xmin0 = _fmin(x0, x1)
                xmax0 = _fmax(x0, x1)
                for i in range(TILE_WIDTH):
                    xmin = _fmin(xmin0 - i, 1.0) - 1.0e-6
                    xmax = xmax0 - i
                    b = _fmin(xmax, 1.0)
                    c = _fmax(b, 0.0)
                    d = _fmax(xmin, 0.0)
                    a = _div(b + 0.5 * (d * d - c * c) - xmin, xmax - xmin)
                    area[row + i] += y_edge + a * dy
            elif y_edge != 0.0:
                for i in range(TILE_WIDTH):
                    area[row + i] += y_edge
    if fill.even_odd:
        area[:] = [abs(a - 2.0 * _round(0.5 * a)) for a in area]
    else:
        area[:] = [_fmin(abs(a), 1.0) for a in area]


def fine(
    config: ConfigUniform,
    segments: Sequence[PathSegment],
    output: CpuTexture,
    ptcl: Sequence[int],
) -> None:
    """Run every tile's command list and write the packed pixels to ``output``."""
    width_in_tiles = config.width_in_tiles
    n_tiles = width_in_tiles * config.height_in_tiles
    for tile_ix in range(n_tiles):
        tile_y, tile_x = divmod(tile_ix, width_in_tiles)
        area: List[float] = [0.0] * TILE_SIZE
        rgba: List[List[float]] = [[0.0] * 4 for _ in range(TILE_SIZE)]
        # skip over the blend stack allocation
        cmd_ix = tile_ix * PTCL_INITIAL_ALLOC + 1
        while True:
            tag = ptcl[cmd_ix]
            if tag == PtclCommand.END:
                break
            if tag == PtclCommand.FILL:
                fill = read_fill(ptcl, cmd_ix)
                x0 = float(tile_x * TILE_WIDTH)
                y0 = float(tile_y * TILE_HEIGHT)
                fill_path(area, segments, fill, x0, y0)
                cmd_ix += 4
            elif tag == PtclCommand.SOLID:
                area = [1.0] * TILE_SIZE
                cmd_ix += 2
            elif tag == PtclCommand.COLOR:
                fg = unpack4x8unorm(ptcl[cmd_ix + 1])[::-1]
                rgba = [
                    [p[j] * (1.0 - fg[3] * ai) + fg[j] * ai for j in range(4)]
                    for p, ai in zip(rgba, area)
                ]
                cmd_ix += 2
            elif tag == PtclCommand.JUMP:
                cmd_ix = ptcl[cmd_ix + 1]
            else:
                raise ValueError(f"unhandled ptcl command {tag}")
        for y in range(TILE_HEIGHT):
            base = output.width * (tile_y * TILE_HEIGHT + y) + tile_x * TILE_WIDTH
            if base + TILE_WIDTH > len(output.pixels):
                raise IndexError("output texture is smaller than the tile grid")
            row = rgba[y * TILE_WIDTH:(y + 1) * TILE_WIDTH]
            output.pixels[base:base + TILE_WIDTH] = [pack4x8unorm(c) for c in row]