import dataclasses

import pytest

from pathraster.buffers import (
    BinHeader,
    BumpAllocators,
    Clip,
    ConfigUniform,
    CpuTexture,
    DrawMonoid,
    IndirectCount,
    Layout,
    LineSoup,
    Path,
    PathBbox,
    PathSegment,
    PtclCommand,
    SegmentCount,
    Tile,
)


def test_blank_texture_has_all_pixels_zero():
    tex = CpuTexture.blank(3, 5)
    assert len(tex.pixels) == 3 * 5
    assert set(tex.pixels) == {0}


def test_texture_rejects_wrong_pixel_count():
    with pytest.raises(ValueError):
        CpuTexture(2, 2, [0, 0, 0])


def test_texture_rejects_negative_size():
    with pytest.raises(ValueError):
        CpuTexture(-1, 0, [])


def test_ptcl_command_lookup_by_tag():
    assert PtclCommand(11) is PtclCommand.JUMP
    assert PtclCommand(0) is PtclCommand.END
    with pytest.raises(ValueError):
        PtclCommand(2)


def test_path_bbox_defaults_are_not_shared():
    a = Path()
    b = Path()
    a.bbox[0] = 7
    assert b.bbox == [0, 0, 0, 0]
    assert a.bbox != b.bbox


def test_config_layout_defaults_are_independent():
    c1 = ConfigUniform()
    c2 = ConfigUniform()
    c1.layout.n_paths = 9
    assert c2.layout.n_paths == 0
    assert c1.layout == Layout(n_paths=9)


@pytest.mark.parametrize(
    "cls",
    [Tile, PathBbox, SegmentCount, BumpAllocators, IndirectCount, BinHeader, Clip, DrawMonoid],
)
def test_integer_records_default_to_zero(cls):
    values = dataclasses.astuple(cls())
    assert all(v == 0 for v in values)


def test_tile_is_mutable():
    tile = Tile()
    tile.backdrop += 2
    tile.backdrop -= 1
    assert tile == Tile(backdrop=1, segment_count_or_ix=0)


def test_line_and_segment_points():
    line = LineSoup(path_ix=4, p0=(1.0, 2.0), p1=(3.0, 4.0))
    seg = PathSegment(point0=line.p0, point1=line.p1, y_edge=0.5)
    assert seg.point0 == line.p0
    assert seg.point1 == line.p1
    assert seg.y_edge == 0.5


def test_bump_counters_accumulate():
    bump = BumpAllocators()
    bump.lines += 3
    bump.seg_counts += 2
    assert dataclasses.asdict(bump)["lines"] == 3
    assert bump.seg_counts == 2