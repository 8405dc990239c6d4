"""Stroke geometry: path segment decoding, caps and joins."""

from __future__ import annotations

import math
import struct
from enum import Enum
from typing import MutableSequence, Sequence

from .buffers import LineSoup
from .curves import CubicPoints, IntBbox, flatten_arc, write_line
from .geometry import Transform, Vec2, f32_from_bits

PATH_TAG_SEG_TYPE = 3
PATH_TAG_LINETO = 1
PATH_TAG_QUADTO = 2
PATH_TAG_CUBICTO = 3
PATH_TAG_F32 = 8
PATH_TAG_SUBPATH_END = 4
PATH_TAG_PATH = 0x10


class CapStyle(Enum):
    """How the open ends of a stroked subpath are drawn."""

    BUTT = "butt"
    SQUARE = "square"
    ROUND = "round"


class JoinStyle(Enum):
    """How consecutive stroked segments are joined."""

    BEVEL = "bevel"
    MITER = "miter"
    ROUND = "round"


def f16_to_f32(bits: int) -> float:
    """Interpret a 16-bit word as an IEEE half-precision float."""
    if not 0 <= bits <= 0xFFFF:
        raise ValueError(f"not a 16-bit word: {bits}")
    return struct.unpack("<e", struct.pack("<H", bits))[0]


def read_f32_point(ix: int, pathdata: Sequence[int]) -> Vec2:
    """Read a point stored as two consecutive f32 words."""
    return Vec2(f32_from_bits(pathdata[ix]), f32_from_bits(pathdata[ix + 1]))


def _sign_extend16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x1_0000 if value & 0x8000 else value


def read_i16_point(ix: int, pathdata: Sequence[int]) -> Vec2:
    """Read a point packed as two i16 values in one word, x in the low half."""
    raw = pathdata[ix]
    return Vec2(float(_sign_extend16(raw)), float(_sign_extend16(raw >> 16)))


def read_path_segment(
    tag_byte: int, pathseg_offset: int, is_stroke: bool, pathdata: Sequence[int]
) -> CubicPoints:
    """Decode one path segment and raise it to a cubic."""
    seg_type = tag_byte & PATH_TAG_SEG_TYPE
    is_stroke_cap_marker = is_stroke and bool(tag_byte & PATH_TAG_SUBPATH_END)
    is_open = seg_type == PATH_TAG_QUADTO

    p2 = Vec2()
    p3 = Vec2()
    if tag_byte & PATH_TAG_F32:
        read, stride = read_f32_point, 2
    else:
        read, stride = read_i16_point, 1
    p0 = read(pathseg_offset, pathdata)
    p1 = read(pathseg_offset + stride, pathdata)
    if seg_type >= PATH_TAG_QUADTO:
        p2 = read(pathseg_offset + 2 * stride, pathdata)
        if seg_type == PATH_TAG_CUBICTO:
            p3 = read(pathseg_offset + 3 * stride, pathdata)

    if is_stroke_cap_marker and is_open:
        p0, p1 = p1, p2
        seg_type = PATH_TAG_LINETO

    if seg_type == PATH_TAG_LINETO:
        p3 = p1
        p2 = p3.mix(p0, 1.0 / 3.0)
        p1 = p0.mix(p3, 1.0 / 3.0)
    elif seg_type == PATH_TAG_QUADTO:
        p3 = p2
        p2 = p1.mix(p2, 1.0 / 3.0)
        p1 = p1.mix(p0, 1.0 / 3.0)

    return CubicPoints(p0, p1, p2, p3)


def draw_cap(
    path_ix: int,
    cap_style: CapStyle,
    point: Vec2,
    cap0: Vec2,
    cap1: Vec2,
    offset_tangent: Vec2,
    transform: Transform,
    lines: MutableSequence[LineSoup],
    bbox: IntBbox,
) -> None:
    """Emit the lines of a cap from ``cap0`` to ``cap1`` around ``point``."""
    if cap_style is CapStyle.ROUND:
        flatten_arc(path_ix, cap0, cap1, point, math.pi, transform, lines, bbox)
        return

    start, end = cap0, cap1
    if cap_style is CapStyle.SQUARE:
        p0 = start + offset_tangent
        p1 = end + offset_tangent
        write_line(path_ix, start, p0, transform, lines, bbox)
        write_line(path_ix, p1, end, transform, lines, bbox)
        start, end = p0, p1
    write_line(path_ix, start, end, transform, lines, bbox)


def draw_join(
    path_ix: int,
    join_style: JoinStyle,
    miter_limit: float,
    p0: Vec2,
    tan_prev: Vec2,
    tan_next: Vec2,
    n_prev: Vec2,
    n_next: Vec2,
    transform: Transform,
    lines: MutableSequence[LineSoup],
    bbox: IntBbox,
) -> None:
    """Emit the lines joining two stroked segments that meet at ``p0``."""
    front0 = p0 + n_prev
    front1 = p0 + n_next
    back0 = p0 - n_next
    back1 = p0 - n_prev

    cr = tan_prev.x * tan_next.y - tan_prev.y * tan_next.x
    d = tan_prev.dot(tan_next)

    if join_style is JoinStyle.ROUND:
        if cr > 0.0:
            arc0, arc1, other0, other1 = back0, back1, front0, front1
        else:
            arc0, arc1, other0, other1 = front0, front1, back0, back1
        flatten_arc(path_ix, arc0, arc1, p0, abs(math.atan2(cr, d)), transform, lines, bbox)
        write_line(path_ix, other0, other1, transform, lines, bbox)
        return

    if join_style is JoinStyle.MITER:
        hypot = math.hypot(cr, d)
        if 2.0 * hypot < (hypot + d) * miter_limit * miter_limit and cr != 0.0:
            is_backside = cr > 0.0
            fp_last = back1 if is_backside else front0
            fp_this = back0 if is_backside else front1
            p = back0 if is_backside else front0

            v = fp_this - fp_last
            h = (tan_prev.x * v.y - tan_prev.y * v.x) / cr
            miter_pt = fp_this - tan_next * h

            write_line(path_ix, p, miter_pt, transform, lines, bbox)
            if is_backside:
                back0 = miter_pt
            else:
                front0 = miter_pt
    elif join_style is not JoinStyle.BEVEL:
        raise ValueError(f"unknown join style: {join_style!r}")

    write_line(path_ix, front0, front1, transform, lines, bbox)
    write_line(path_ix, back0, back1, transform, lines, bbox)