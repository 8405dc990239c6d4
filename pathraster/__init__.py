"""CPU stages of a tile-based 2D vector path rasterizer and a command recording model."""

__version__ = "0.1.0"

__all__ = [
    "binning",
    "buffers",
    "clip",
    "config",
    "curves",
    "engine",
    "fine",
    "geometry",
    "strokes",
    "tiling",
]