# pathraster

Pure-Python CPU stages of a tile-based 2D vector path rasterizer. The
package flattens cubic curves and arcs into line segments, builds stroke
caps and joins, bins draw objects, resolves clip bounding boxes, assigns
line segments to 16×16 tiles with their backdrops, and computes per-pixel
area coverage and solid-colour compositing into packed RGBA pixels.

It also provides a small recording model that describes a render as an
ordered list of buffer uploads, dispatches and frees.

The package has no third-party dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

- `pathraster.engine` – `Recording` with `upload`, `upload_uniform`,
  `upload_image`, `write_image`, `dispatch`, `dispatch_indirect`,
  `download`, `clear_all`, `free_buf`, `free_image`, `free_resource` and
  `into_commands`; the handles `BufProxy` and `ImageProxy`, identified by
  a unique `Id`; `ShaderId`, `ImageFormat`, `BindType`; and the command
  records `Upload`, `UploadUniform`, `UploadImage`, `WriteImage`,
  `Dispatch`, `DispatchIndirect`, `Download`, `Clear`, `FreeBuf`,
  `FreeImage`.
- `pathraster.buffers` – the plain records passed between stages:
  `ConfigUniform` and its `Layout`, `Tile`, `Path`, `PathBbox`,
  `LineSoup`, `SegmentCount`, `PathSegment`, `BumpAllocators`,
  `IndirectCount`, `BinHeader`, `Clip`, `DrawMonoid`, the per-tile
  command tags `PtclCommand`, and `CpuTexture` (with `CpuTexture.blank`).
- `pathraster.geometry` – `Vec2`, the affine `Transform` (`identity`,
  `apply`, `read`), `span`, `read_draw_tag_from_scene`, and
  `f32_from_bits` / `f32_to_bits`.
- `pathraster.config` – `AaConfig`, `AaSupport` (`all`, `area_only`,
  membership test with `in`) and the validated `RenderParams`.
- `pathraster.curves` – `flatten_cubic` (fills, or both offset curves of
  a stroke), `flatten_arc`, `write_line`, the bounding box `IntBbox`, and
  the curve helpers `eval_quad`, `eval_cubic`, `estimate_subdiv`, the
  tangent and normal functions.
- `pathraster.strokes` – `read_path_segment` (decodes f32 or packed i16
  points and raises lines and quadratics to cubics), `read_f32_point`,
  `read_i16_point`, `f16_to_f32`, `draw_cap` with `CapStyle`, and
  `draw_join` with `JoinStyle`.
- `pathraster.binning` – `bbox_clear`, `bbox_intersect` and `binning`.
- `pathraster.clip` – `clip_leaf`.
- `pathraster.tiling` – `path_count`, `path_tiling`, `path_count_setup`,
  `path_tiling_setup` and `backdrop`.
- `pathraster.fine` – `fill_path`, `read_fill`, `pack4x8unorm`,
  `unpack4x8unorm` and `fine`, which runs each tile's command list into a
  `CpuTexture`.

## Example

```python
from pathraster.buffers import BumpAllocators
from pathraster.engine import Recording
from pathraster.geometry import Transform, Vec2
from pathraster.tiling import path_count_setup

rec = Recording()
scene = rec.upload("scene", b"\x00" * 16)   # BufProxy of size 16
rec.free_buf(scene)
commands = rec.into_commands()               # [Upload(...), FreeBuf(...)]

print(Transform.identity().apply(Vec2(1.0, 2.0)))   # Vec2(x=1.0, y=2.0)
print(path_count_setup(BumpAllocators(lines=300)))  # count_x=2, count_y=1, count_z=1
```

## What the package does not do

- A `Recording` only describes work; nothing in the package executes its
  commands or allocates the buffers and images it names.
- There is no scene encoder: the path tag and draw tag streams, the
  prefix scans over them, and the layout in `ConfigUniform` have to be
  supplied by the caller.
- There is no tile allocation or coarse stage that writes the per-tile
  command lists; `fine.fine` expects them already built, and handles only
  the `END`, `FILL`, `SOLID`, `COLOR` and `JUMP` commands (others raise
  `ValueError`).
- There is no command-line program, no file output and no SVG or font
  input.