"""Data records shared by the CPU pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple

PTCL_INITIAL_ALLOC = 64


class PtclCommand(IntEnum):
    """Tags for commands in the per-tile command list."""

    END = 0
    FILL = 1
    SOLID = 3
    COLOR = 5
    LIN_GRAD = 6
    RAD_GRAD = 7
    IMAGE = 8
    BEGIN_CLIP = 9
    END_CLIP = 10
    JUMP = 11


@dataclass
class CpuTexture:
    """A texture bound to a CPU stage; pixels are packed RGBA words."""

    width: int
    height: int
    pixels: List[int]

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("texture dimensions must not be negative")
        if len(self.pixels) != self.width * self.height:
            raise ValueError(
                f"expected {self.width * self.height} pixels, got {len(self.pixels)}"
            )

    @classmethod
    def blank(cls, width: int, height: int) -> "CpuTexture":
        return cls(width, height, [0] * (width * height))


@dataclass(slots=True)
class Layout:
    n_draw_objects: int = 0
    n_paths: int = 0
    n_clips: int = 0
    bin_data_start: int = 0
    path_tag_base: int = 0
    path_data_base: int = 0
    draw_tag_base: int = 0
    draw_data_base: int = 0
    transform_base: int = 0
    style_base: int = 0


@dataclass(slots=True)
class ConfigUniform:
    width_in_tiles: int = 0
    height_in_tiles: int = 0
    layout: Layout = field(default_factory=Layout)


@dataclass(slots=True)
class Tile:
    backdrop: int = 0
    segment_count_or_ix: int = 0


@dataclass(slots=True)
class Path:
    bbox: List[int] = field(default_factory=lambda: [0, 0, 0, 0])
    tiles: int = 0


@dataclass(slots=True)
class PathBbox:
    x0: int = 0
    y0: int = 0
    x1: int = 0
    y1: int = 0
    draw_flags: int = 0
    trans_ix: int = 0


@dataclass(slots=True)
class LineSoup:
    path_ix: int = 0
    p0: Tuple[float, float] = (0.0, 0.0)
    p1: Tuple[float, float] = (0.0, 0.0)


@dataclass(slots=True)
class SegmentCount:
    line_ix: int = 0
    counts: int = 0


@dataclass(slots=True)
class PathSegment:
    point0: Tuple[float, float] = (0.0, 0.0)
    point1: Tuple[float, float] = (0.0, 0.0)
    y_edge: float = 0.0


@dataclass(slots=True)
class BumpAllocators:
    failed: int = 0
    binning: int = 0
    ptcl: int = 0
    tile: int = 0
    seg_counts: int = 0
    segments: int = 0
    blend: int = 0
    lines: int = 0


@dataclass(slots=True)
class IndirectCount:
    count_x: int = 0
    count_y: int = 0
    count_z: int = 0


@dataclass(slots=True)
class BinHeader:
    element_count: int = 0
    chunk_offset: int = 0


@dataclass(slots=True)
class Clip:
    ix: int = 0
    path_ix: int = 0


@dataclass(slots=True)
class DrawMonoid:
    path_ix: int = 0
    clip_ix: int = 0
    scene_offset: int = 0
    info_offset: int = 0