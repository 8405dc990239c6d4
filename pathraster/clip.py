"""Resolution of clip bounding boxes and clip-end draw monoids."""

from __future__ import annotations

from typing import List, MutableSequence, NamedTuple, Sequence

from .buffers import Clip, ConfigUniform, DrawMonoid, PathBbox

BIG_BBOX = (-1e9, -1e9, 1e9, 1e9)


class _ClipStackElement(NamedTuple):
    parent_ix: int
    path_ix: int
    bbox: List[float]


def clip_leaf(
    config: ConfigUniform,
    clip_inp: Sequence[Clip],
    path_bboxes: Sequence[PathBbox],
    draw_monoids: MutableSequence[DrawMonoid],
    clip_bboxes: MutableSequence[List[float]],
) -> None:
    """Compute each clip's bounding box, sequentially, with an explicit stack."""
    stack: List[_ClipStackElement] = []
    for global_ix, clip_el in enumerate(clip_inp[: config.layout.n_clips]):
        if clip_el.path_ix >= 0:
            path_bbox = path_bboxes[clip_el.path_ix]
            bbox = [
                float(path_bbox.x0),
                float(path_bbox.y0),
                float(path_bbox.x1),
                float(path_bbox.y1),
            ]
            if stack:
                last = stack[-1].bbox
                bbox = [
                    max(bbox[0], last[0]),
                    max(bbox[1], last[1]),
                    min(bbox[2], last[2]),
                    min(bbox[3], last[3]),
                ]
            clip_bboxes[global_ix] = bbox
            stack.append(_ClipStackElement(clip_el.ix, clip_el.path_ix, bbox))
        else:
            if not stack:
                raise ValueError(f"clip {global_ix} ends a clip that was never begun")
            tos = stack.pop()
            clip_bboxes[global_ix] = list(stack[-1].bbox) if stack else list(BIG_BBOX)
            target = draw_monoids[clip_el.ix]
            target.path_ix = tos.path_ix
            target.scene_offset = draw_monoids[tos.parent_ix].scene_offset