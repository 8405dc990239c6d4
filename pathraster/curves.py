"""Flattening of cubic Béziers and circular arcs into line soup."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, MutableSequence, Optional

from .buffers import LineSoup
from .geometry import ROBUST_EPSILON, Transform, Vec2

MAX_QUADS = 16

_D = 0.67
_B = 0.39
_ACCURACY = 0.25
_Q_ACCURACY = _ACCURACY * 0.1
_REM_ACCURACY = _ACCURACY - _Q_ACCURACY
_MAX_HYPOT2 = 432.0 * _Q_ACCURACY * _Q_ACCURACY
_MIN_THETA = 0.0001
_ARC_TOLERANCE = 0.1

_I32_MIN = -0x8000_0000
_I32_MAX = 0x7FFF_FFFF
_U32_MAX = 0xFFFF_FFFF


def _div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _recip(x: float) -> float:
    return _div(1.0, x)


def _fmax(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a >= b else b


def _fmin(a: float, b: float) -> float:
    if math.isnan(a):
        return b
    if math.isnan(b):
        return a
    return a if a <= b else b


def _signum(x: float) -> float:
    if math.isnan(x):
        return math.nan
    return math.copysign(1.0, x)


def _ceil(x: float) -> float:
    return float(math.ceil(x)) if math.isfinite(x) else x


def _to_u32(x: float) -> int:
    """Saturating float to u32 conversion; NaN becomes 0."""
    if math.isnan(x) or x <= 0.0:
        return 0
    if x >= _U32_MAX:
        return _U32_MAX
    return int(x)


def _to_i32(x: float) -> int:
    """Saturating float to i32 conversion; NaN becomes 0."""
    if math.isnan(x):
        return 0
    if x <= _I32_MIN:
        return _I32_MIN
    if x >= _I32_MAX:
        return _I32_MAX
    return int(x)


@dataclass
class IntBbox:
    """Integer bounding box that starts out empty (inverted)."""

    x0: int = _I32_MAX
    y0: int = _I32_MAX
    x1: int = _I32_MIN
    y1: int = _I32_MIN

    def add_pt(self, pt: Vec2) -> None:
        floor_x = _to_i32(math.floor(pt.x) if math.isfinite(pt.x) else pt.x)
        floor_y = _to_i32(math.floor(pt.y) if math.isfinite(pt.y) else pt.y)
        self.x0 = min(self.x0, floor_x)
        self.y0 = min(self.y0, floor_y)
        self.x1 = max(self.x1, _to_i32(_ceil(pt.x)))
        self.y1 = max(self.y1, _to_i32(_ceil(pt.y)))


@dataclass(frozen=True)
class CubicPoints:
    p0: Vec2
    p1: Vec2
    p2: Vec2
    p3: Vec2


@dataclass(frozen=True)
class SubdivResult:
    val: float = 0.0
    a0: float = 0.0
    a2: float = 0.0


def _to_minus_one_quarter(x: float) -> float:
    return _recip(math.sqrt(math.sqrt(x)))


def approx_parabola_integral(x: float) -> float:
    return x * _to_minus_one_quarter(1.0 - _D + (_D * _D * _D * _D + 0.25 * x * x))


def approx_parabola_inv_integral(x: float) -> float:
    return x * math.sqrt(1.0 - _B + (_B * _B + 0.5 * x * x))


def estimate_subdiv(p0: Vec2, p1: Vec2, p2: Vec2, sqrt_tol: float) -> SubdivResult:
    """Estimate how many subdivisions a quadratic needs, in parabola space."""
    d01 = p1 - p0
    d12 = p2 - p1
    dd = d01 - d12
    cross = (p2.x - p0.x) * dd.y - (p2.y - p0.y) * dd.x
    cross_inv = 1.0e9 if abs(cross) < 1.0e-9 else _recip(cross)
    x0 = d01.dot(dd) * cross_inv
    x2 = d12.dot(dd) * cross_inv
    scale = abs(_div(cross, dd.length() * (x2 - x0)))
    a0 = approx_parabola_integral(x0)
    a2 = approx_parabola_integral(x2)
    val = 0.0
    if scale < 1e9:
        da = abs(a2 - a0)
        sqrt_scale = math.sqrt(scale)
        if _signum(x0) == _signum(x2):
            val = sqrt_scale
        else:
            xmin = _div(sqrt_tol, sqrt_scale)
            val = _div(sqrt_tol, approx_parabola_integral(xmin))
        val *= da
    return SubdivResult(val, a0, a2)


def eval_quad(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Vec2:
    mt = 1.0 - t
    return p0 * (mt * mt) + (p1 * (mt * 2.0) + p2 * t) * t


def eval_cubic(p0: Vec2, p1: Vec2, p2: Vec2, p3: Vec2, t: float) -> Vec2:
    mt = 1.0 - t
    return p0 * (mt * mt * mt) + (p1 * (mt * mt * 3.0) + (p2 * (mt * 3.0) + p3 * t) * t) * t


def _eval_quad_tangent(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Vec2:
    dp0 = 2.0 * (p1 - p0)
    dp1 = 2.0 * (p2 - p1)
    return dp0.mix(dp1, t)


def _normal_of(tangent: Vec2) -> Vec2:
    unit = tangent.normalize()
    return Vec2(-unit.y, unit.x)


def eval_quad_normal(p0: Vec2, p1: Vec2, p2: Vec2, t: float) -> Vec2:
    return _normal_of(_eval_quad_tangent(p0, p1, p2, t))


def cubic_start_tangent(p0: Vec2, p1: Vec2, p2: Vec2, p3: Vec2) -> Vec2:
    """First non-degenerate chord leaving ``p0``."""
    for d in (p1 - p0, p2 - p0):
        if d.dot(d) > ROBUST_EPSILON:
            return d
    return p3 - p0


def cubic_end_tangent(p0: Vec2, p1: Vec2, p2: Vec2, p3: Vec2) -> Vec2:
    """First non-degenerate chord arriving at ``p3``."""
    for d in (p3 - p2, p3 - p1):
        if d.dot(d) > ROBUST_EPSILON:
            return d
    return p3 - p0


def cubic_start_normal(p0: Vec2, p1: Vec2, p2: Vec2, p3: Vec2) -> Vec2:
    return _normal_of(cubic_start_tangent(p0, p1, p2, p3))


def cubic_end_normal(p0: Vec2, p1: Vec2, p2: Vec2, p3: Vec2) -> Vec2:
    return _normal_of(cubic_end_tangent(p0, p1, p2, p3))


def write_line(
    path_ix: int,
    p0: Vec2,
    p1: Vec2,
    transform: Optional[Transform],
    lines: MutableSequence[LineSoup],
    bbox: IntBbox,
) -> None:
    """Append one line, mapped through ``transform`` if given, and grow ``bbox``."""
    if transform is not None:
        p0 = transform.apply(p0)
        p1 = transform.apply(p1)
    if p0.is_nan() or p1.is_nan():
        raise ValueError(f"wrote line segment with NaN: p0: {p0}, p1: {p1}")
    bbox.add_pt(p0)
    bbox.add_pt(p1)
    lines.append(LineSoup(path_ix=path_ix, p0=p0.to_array(), p1=p1.to_array()))


def flatten_cubic(
    cubic: CubicPoints,
    path_ix: int,
    local_to_device: Transform,
    offset: float,
    lines: MutableSequence[LineSoup],
    bbox: IntBbox,
) -> None:
    """Flatten a cubic, or both of its offset curves when ``offset`` is positive."""
    if offset == 0.0:
        p0, p1, p2, p3 = (
            local_to_device.apply(p) for p in (cubic.p0, cubic.p1, cubic.p2, cubic.p3)
        )
        scale = 1.0
        transform = Transform.identity()
    else:
        t = local_to_device.coeffs
        scale = (
            0.5 * Vec2(t[0] + t[3], t[1] - t[2]).length()
            + Vec2(t[0] - t[3], t[1] + t[2]).length()
        )
        p0, p1, p2, p3 = cubic.p0, cubic.p1, cubic.p2, cubic.p3
        transform = local_to_device

    err_v = (p2 - p1) * 3.0 + p0 - p3
    err = err_v.dot(err_v)
    scaled_sqrt_tol = math.sqrt(_div(_REM_ACCURACY, scale))
    n_quads = _to_u32(_ceil((err * (1.0 / _MAX_HYPOT2)) ** (1.0 / 6.0)) * scale)
    n_quads = min(max(n_quads, 1), MAX_QUADS)

    step = 1.0 / n_quads
    quads = []
    val = 0.0
    qp0 = p0
    for i in range(n_quads):
        t = (i + 1) * step
        qp2 = eval_cubic(p0, p1, p2, p3, t)
        qp1 = eval_cubic(p0, p1, p2, p3, t - 0.5 * step)
        qp1 = qp1 * 2.0 - (qp0 + qp2) * 0.5
        params = estimate_subdiv(qp0, qp1, qp2, scaled_sqrt_tol)
        quads.append((qp0, qp1, qp2, params))
        val += params.val
        qp0 = qp2

    n0 = offset * cubic_start_normal(p0, p1, p2, p3)
    n = max(_to_u32(_ceil(val * _div(0.5, scaled_sqrt_tol))), 1)
    lp0 = p0
    v_step = val / n
    n_out = 1
    val_sum = 0.0
    for qp0, qp1, qp2, params in quads:
        u0 = approx_parabola_inv_integral(params.a0)
        u2 = approx_parabola_inv_integral(params.a2)
        uscale = _recip(u2 - u0)
        val_target = n_out * v_step
        while n_out == n or val_target < val_sum + params.val:
            if n_out == n:
                lp1, t1 = p3, 1.0
            else:
                u = _div(val_target - val_sum, params.val)
                a = params.a0 + (params.a2 - params.a0) * u
                au = approx_parabola_inv_integral(a)
                t1 = (au - u0) * uscale
                lp1 = eval_quad(qp0, qp1, qp2, t1)
            if offset > 0.0:
                if lp1 == p3:
                    n1 = cubic_end_normal(p0, p1, p2, p3) * offset
                else:
                    n1 = eval_quad_normal(qp0, qp1, qp2, t1) * offset
                write_line(path_ix, lp0 + n0, lp1 + n1, transform, lines, bbox)
                write_line(path_ix, lp1 - n1, lp0 - n0, transform, lines, bbox)
                n0 = n1
            else:
                write_line(path_ix, lp0, lp1, transform, lines, bbox)
            n_out += 1
            val_target += v_step
            lp0 = lp1
        val_sum += params.val


def flatten_arc(
    path_ix: int,
    begin: Vec2,
    end: Vec2,
    center: Vec2,
    angle: float,
    transform: Transform,
    lines: MutableSequence[LineSoup],
    bbox: IntBbox,
) -> None:
    """Flatten an arc around ``center``; at least the chord is always emitted."""
    p0 = transform.apply(begin)
    r = begin - center
    radius = _fmax(_ARC_TOLERANCE, (p0 - transform.apply(center)).length())
    theta = _fmax(2.0 * math.acos(1.0 - _ARC_TOLERANCE / radius), _MIN_THETA)
    n_lines = max(_to_u32(_ceil(angle / theta)), 1)

    c = math.cos(theta)
    s = math.sin(theta)
    rot = Transform((c, -s, s, c, 0.0, 0.0))

    points: List[Vec2] = []
    for _ in range(n_lines - 1):
        r = rot.apply(r)
        points.append(transform.apply(center + r))
    points.append(transform.apply(end))
    for p1 in points:
        write_line(path_ix, p0, p1, None, lines, bbox)
        p0 = p1