import pytest

from pathraster.buffers import (
    BumpAllocators,
    ConfigUniform,
    Layout,
    LineSoup,
    Path,
    PathSegment,
    Tile,
)
from pathraster.tiling import (
    backdrop,
    path_count,
    path_count_setup,
    path_tiling,
    path_tiling_setup,
)


def _tiles(n):
    return [Tile() for _ in range(n)]


def _mark_starts(tiles):
    start = 0
    for tile in tiles:
        count = tile.segment_count_or_ix
        tile.segment_count_or_ix = ~start
        start += count
    return start


@pytest.mark.parametrize("n, expected", [(0, 0), (1, 1), (256, 1), (257, 2)])
def test_path_count_setup_rounds_up_to_workgroups(n, expected):
    result = path_count_setup(BumpAllocators(lines=n))
    assert (result.count_x, result.count_y, result.count_z) == (expected, 1, 1)


@pytest.mark.parametrize("n, expected", [(0, 0), (255, 1), (512, 2), (513, 3)])
def test_path_tiling_setup_rounds_up_to_workgroups(n, expected):
    result = path_tiling_setup(BumpAllocators(seg_counts=n))
    assert (result.count_x, result.count_y, result.count_z) == (expected, 1, 1)


def test_backdrop_prefix_sums_each_row():
    tiles = _tiles(6)
    originals = [1, 0, -1, 2, 0, 0]
    for tile, value in zip(tiles, originals):
        tile.backdrop = value
    config = ConfigUniform(layout=Layout(n_draw_objects=1))
    backdrop(config, [Path(bbox=[0, 0, 3, 2], tiles=0)], tiles)
    result = [t.backdrop for t in tiles]
    for row in range(2):
        sums = result[row * 3:(row + 1) * 3]
        diffs = [sums[0]] + [b - a for a, b in zip(sums, sums[1:])]
        assert diffs == originals[row * 3:(row + 1) * 3]


def test_backdrop_ignores_paths_beyond_draw_object_count():
    tiles = _tiles(2)
    tiles[0].backdrop = 5
    config = ConfigUniform(layout=Layout(n_draw_objects=0))
    backdrop(config, [Path(bbox=[0, 0, 2, 1], tiles=0)], tiles)
    assert [t.backdrop for t in tiles] == [5, 0]


def test_backdrop_rejects_short_tile_buffer():
    config = ConfigUniform(layout=Layout(n_draw_objects=1))
    with pytest.raises(IndexError):
        backdrop(config, [Path(bbox=[0, 0, 4, 1], tiles=0)], _tiles(2))


def test_zero_length_line_is_skipped():
    bump = BumpAllocators(lines=1)
    tiles = _tiles(1)
    lines = [LineSoup(path_ix=0, p0=(4.0, 4.0), p1=(4.0, 4.0))]
    result = path_count(bump, lines, [Path(bbox=[0, 0, 1, 1], tiles=0)], tiles)
    assert result == []
    assert bump.seg_counts == 0


@pytest.mark.parametrize("down", [True, False])
def test_vertical_line_inside_one_tile(down):
    top, bottom = (4.0, 2.0), (4.0, 10.0)
    p0, p1 = (top, bottom) if down else (bottom, top)
    bump = BumpAllocators(lines=1)
    tiles = _tiles(1)
    paths = [Path(bbox=[0, 0, 1, 1], tiles=0)]
    lines = [LineSoup(path_ix=0, p0=p0, p1=p1)]
    seg_counts = path_count(bump, lines, paths, tiles)
    assert len(seg_counts) == 1
    assert bump.seg_counts == 1
    assert tiles[0].segment_count_or_ix == 1
    assert tiles[0].backdrop == 0

    total = _mark_starts(tiles)
    segments = [PathSegment() for _ in range(total)]
    path_tiling(bump, seg_counts, lines, paths, tiles, segments)
    seg = segments[0]
    assert seg.point0 == pytest.approx(p0, abs=1e-5)
    assert seg.point1 == pytest.approx(p1, abs=1e-5)
    assert seg.y_edge == 1e9


def test_line_crossing_two_tiles_is_continuous():
    bump = BumpAllocators(lines=1)
    tiles = _tiles(2)
    paths = [Path(bbox=[0, 0, 2, 1], tiles=0)]
    lines = [LineSoup(path_ix=0, p0=(8.0, 4.0), p1=(24.0, 12.0))]
    seg_counts = path_count(bump, lines, paths, tiles)
    assert [t.segment_count_or_ix for t in tiles] == [1, 1]
    assert bump.seg_counts == len(seg_counts) == 2

    total = _mark_starts(tiles)
    segments = [PathSegment() for _ in range(total)]
    path_tiling(bump, seg_counts, lines, paths, tiles, segments)
    first, second = segments
    assert first.point0 == pytest.approx((8.0, 4.0), abs=1e-5)
    assert second.point1 == pytest.approx((8.0, 12.0), abs=1e-5)
    # The clipped end of the first piece meets the start of the second.
    assert first.point1[0] == pytest.approx(second.point0[0] + 16.0, abs=1e-4)
    assert first.point1[1] == pytest.approx(second.point0[1], abs=1e-4)
    assert second.point0[0] == 0.0
    assert second.y_edge == second.point0[1]
    for seg in segments:
        for x, y in (seg.point0, seg.point1):
            assert 0.0 <= x <= 16.0 and 0.0 <= y <= 16.0


@pytest.mark.parametrize("down, delta", [(True, -1), (False, 1)])
def test_line_left_of_path_only_adjusts_backdrop(down, delta):
    top, bottom = (4.0, 8.0), (4.0, 24.0)
    p0, p1 = (top, bottom) if down else (bottom, top)
    bump = BumpAllocators(lines=1)
    tiles = _tiles(2)
    paths = [Path(bbox=[1, 0, 2, 2], tiles=0)]
    lines = [LineSoup(path_ix=0, p0=p0, p1=p1)]
    seg_counts = path_count(bump, lines, paths, tiles)
    assert seg_counts == []
    assert [t.backdrop for t in tiles] == [0, delta]
    assert all(t.segment_count_or_ix == 0 for t in tiles)


def test_tiles_without_inverted_start_are_skipped():
    bump = BumpAllocators(lines=1)
    tiles = _tiles(1)
    paths = [Path(bbox=[0, 0, 1, 1], tiles=0)]
    lines = [LineSoup(path_ix=0, p0=(4.0, 2.0), p1=(4.0, 10.0))]
    seg_counts = path_count(bump, lines, paths, tiles)
    sentinel = PathSegment(point0=(1.0, 1.0), point1=(2.0, 2.0), y_edge=3.0)
    segments = [sentinel]
    path_tiling(bump, seg_counts, lines, paths, tiles, segments)
    assert segments[0] is sentinel


def test_lines_beyond_bump_count_are_ignored():
    bump = BumpAllocators(lines=0)
    tiles = _tiles(1)
    lines = [LineSoup(path_ix=0, p0=(4.0, 2.0), p1=(4.0, 10.0))]
    result = path_count(bump, lines, [Path(bbox=[0, 0, 1, 1], tiles=0)], tiles)
    assert result == []
    assert tiles[0].segment_count_or_ix == 0