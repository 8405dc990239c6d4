import pytest

from pathraster.binning import WG_SIZE, bbox_clear, bbox_intersect, binning
from pathraster.buffers import (
    BinHeader,
    BumpAllocators,
    ConfigUniform,
    DrawMonoid,
    Layout,
    PathBbox,
)


def _config(n_draw, width_in_tiles=16, height_in_tiles=16, n_clips=0, start=0):
    return ConfigUniform(
        width_in_tiles=width_in_tiles,
        height_in_tiles=height_in_tiles,
        layout=Layout(n_draw_objects=n_draw, n_clips=n_clips, bin_data_start=start),
    )


def _run(config, monoids, path_bboxes, clip_bboxes=()):
    bump = BumpAllocators()
    intersected = [None] * WG_SIZE
    bin_data = [-1] * 64
    headers = [BinHeader() for _ in range(WG_SIZE)]
    binning(1, config, monoids, path_bboxes, list(clip_bboxes), intersected, bump, bin_data, headers)
    return bump, intersected, bin_data, headers


def test_bbox_clear_only_touches_n_paths():
    boxes = [PathBbox(1, 2, 3, 4) for _ in range(3)]
    config = ConfigUniform(layout=Layout(n_paths=2))
    bbox_clear(config, boxes)
    for box in boxes[:2]:
        assert (box.x0, box.y0, box.x1, box.y1) == (0x7FFF_FFFF, 0x7FFF_FFFF, -0x8000_0000, -0x8000_0000)
    assert (boxes[2].x0, boxes[2].y0, boxes[2].x1, boxes[2].y1) == (1, 2, 3, 4)


def test_bbox_intersect():
    assert bbox_intersect([0, 0, 10, 10], [5, -5, 20, 8]) == [5, 0, 10, 8]


def test_single_object_in_single_bin():
    bump, intersected, bin_data, headers = _run(
        _config(1, start=4), [DrawMonoid(path_ix=0)], [PathBbox(0, 0, 10, 10)]
    )
    assert bump.binning == 1
    assert headers[0] == BinHeader(element_count=1, chunk_offset=0)
    assert bin_data[4] == 0
    assert intersected[0] == [0.0, 0.0, 10.0, 10.0]


def test_objects_listed_in_order():
    bump, _, bin_data, headers = _run(
        _config(2),
        [DrawMonoid(path_ix=0), DrawMonoid(path_ix=1)],
        [PathBbox(0, 0, 10, 10), PathBbox(5, 5, 20, 20)],
    )
    assert headers[0].element_count == 2
    assert bin_data[:2] == [0, 1]
    assert bump.binning == sum(h.element_count for h in headers)


def test_object_spanning_two_bins():
    bump, _, bin_data, headers = _run(
        _config(1, width_in_tiles=32), [DrawMonoid(path_ix=0)], [PathBbox(0, 0, 300, 10)]
    )
    assert headers[0] == BinHeader(element_count=1, chunk_offset=0)
    assert headers[1] == BinHeader(element_count=1, chunk_offset=1)
    assert bin_data[:2] == [0, 0]
    assert bump.binning == 2


def test_empty_bbox_is_not_binned():
    box = PathBbox(0x7FFF_FFFF, 0x7FFF_FFFF, -0x8000_0000, -0x8000_0000)
    bump, _, bin_data, headers = _run(_config(1), [DrawMonoid(path_ix=0)], [box])
    assert bump.binning == 0
    assert all(h.element_count == 0 for h in headers)
    assert bin_data[0] == -1


def test_clip_bbox_restricts_object():
    bump, intersected, _, _ = _run(
        _config(1, n_clips=1),
        [DrawMonoid(path_ix=0, clip_ix=1)],
        [PathBbox(0, 0, 10, 10)],
        clip_bboxes=[[20.0, 20.0, 30.0, 30.0]],
    )
    assert bump.binning == 0
    assert intersected[0][0] >= intersected[0][2]


def test_clip_index_out_of_range():
    with pytest.raises(ValueError):
        _run(
            _config(1, n_clips=0),
            [DrawMonoid(path_ix=0, clip_ix=1)],
            [PathBbox(0, 0, 10, 10)],
            clip_bboxes=[[0.0, 0.0, 1.0, 1.0]],
        )