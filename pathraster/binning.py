"""Clearing of path bounding boxes and binning of draw objects."""

from __future__ import annotations

import math
from typing import List, MutableSequence, Sequence

from .buffers import BinHeader, BumpAllocators, ConfigUniform, DrawMonoid, PathBbox

WG_SIZE = 256
TILE_WIDTH = 16
TILE_HEIGHT = 16
N_TILE_X = 16
N_TILE_Y = 16
_SX = 1.0 / (N_TILE_X * TILE_WIDTH)
_SY = 1.0 / (N_TILE_Y * TILE_HEIGHT)

_I32_MIN = -0x8000_0000
_I32_MAX = 0x7FFF_FFFF
_BIG_BBOX = (-1e9, -1e9, 1e9, 1e9)


def _fmax(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return max(a, b)


def _fmin(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return min(a, b)


def _to_i32(x: float) -> int:
    """Saturating float to i32 conversion; NaN becomes 0."""
    if math.isnan(x):
        return 0
    if x <= _I32_MIN:
        return _I32_MIN
    if x >= _I32_MAX:
        return _I32_MAX
    return int(x)


def _clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(x, hi))


def bbox_clear(config: ConfigUniform, path_bboxes: MutableSequence[PathBbox]) -> None:
    """Reset the bounding box of every path to the empty (inverted) box."""
    for bbox in path_bboxes[: config.layout.n_paths]:
        bbox.x0 = _I32_MAX
        bbox.y0 = _I32_MAX
        bbox.x1 = _I32_MIN
        bbox.y1 = _I32_MIN


def bbox_intersect(a: Sequence[float], b: Sequence[float]) -> List[float]:
    """Intersection of two (x0, y0, x1, y1) boxes."""
    return [_fmax(a[0], b[0]), _fmax(a[1], b[1]), _fmin(a[2], b[2]), _fmin(a[3], b[3])]


def binning(
    n_wg: int,
    config: ConfigUniform,
    draw_monoids: Sequence[DrawMonoid],
    path_bboxes: Sequence[PathBbox],
    clip_bboxes: Sequence[Sequence[float]],
    intersected_bboxes: MutableSequence[List[float]],
    bump: BumpAllocators,
    bin_data: MutableSequence[int],
    bin_headers: MutableSequence[BinHeader],
) -> None:
    """Assign each draw object to the bins its clipped bounding box covers."""
    layout = config.layout
    width_in_bins = (config.width_in_tiles + N_TILE_X - 1) // N_TILE_X
    height_in_bins = (config.height_in_tiles + N_TILE_Y - 1) // N_TILE_Y
    for wg in range(n_wg):
        counts = [0] * WG_SIZE
        bin_ranges = []
        for local_ix in range(WG_SIZE):
            element_ix = wg * WG_SIZE + local_ix
            x0 = y0 = x1 = y1 = 0
            if element_ix < layout.n_draw_objects:
                draw_monoid = draw_monoids[element_ix]
                clip_bbox: Sequence[float] = _BIG_BBOX
                if draw_monoid.clip_ix > 0:
                    if draw_monoid.clip_ix - 1 >= layout.n_clips:
                        raise ValueError(
                            f"draw object {element_ix} refers to clip "
                            f"{draw_monoid.clip_ix - 1} of {layout.n_clips}"
                        )
                    clip_bbox = clip_bboxes[draw_monoid.clip_ix - 1]
                pb = path_bboxes[draw_monoid.path_ix]
                bbox = bbox_intersect(
                    clip_bbox, (float(pb.x0), float(pb.y0), float(pb.x1), float(pb.y1))
                )
                intersected_bboxes[element_ix] = bbox
                if bbox[0] < bbox[2] and bbox[1] < bbox[3]:
                    x0 = _to_i32(math.floor(bbox[0] * _SX))
                    y0 = _to_i32(math.floor(bbox[1] * _SY))
                    x1 = _to_i32(math.ceil(bbox[2] * _SX))
                    y1 = _to_i32(math.ceil(bbox[3] * _SY))
            x0 = _clamp(x0, 0, width_in_bins)
            y0 = _clamp(y0, 0, height_in_bins)
            x1 = _clamp(x1, 0, width_in_bins)
            y1 = _clamp(y1, 0, height_in_bins)
            for y in range(y0, y1):
                for x in range(x0, x1):
                    counts[y * width_in_bins + x] += 1
            bin_ranges.append((x0, y0, x1, y1))

        chunk_offset = []
        for local_ix, count in enumerate(counts):
            offset = bump.binning
            chunk_offset.append(offset)
            bump.binning += count
            bin_headers[wg * WG_SIZE + local_ix] = BinHeader(
                element_count=count, chunk_offset=offset
            )

        for local_ix, (x0, y0, x1, y1) in enumerate(bin_ranges):
            element_ix = wg * WG_SIZE + local_ix
            for y in range(y0, y1):
                for x in range(x0, x1):
                    bin_ix = y * width_in_bins + x
                    bin_data[layout.bin_data_start + chunk_offset[bin_ix]] = element_ix
                    chunk_offset[bin_ix] += 1