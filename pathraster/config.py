"""Antialiasing choices and per-render parameters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

_U32_MAX = 0xFFFF_FFFF


class AaConfig(Enum):
    """The antialiasing method used during a render pass."""

    AREA = "area"
    MSAA8 = "msaa8"
    MSAA16 = "msaa16"


@dataclass(frozen=True)
class AaSupport:
    """The set of antialiasing configurations enabled when pipelines are built."""

    area: bool
    msaa8: bool
    msaa16: bool

    @classmethod
    def all(cls) -> "AaSupport":
        return cls(area=True, msaa8=True, msaa16=True)

    @classmethod
    def area_only(cls) -> "AaSupport":
        return cls(area=True, msaa8=False, msaa16=False)

    def __contains__(self, method: object) -> bool:
        if not isinstance(method, AaConfig):
            return False
        return {
            AaConfig.AREA: self.area,
            AaConfig.MSAA8: self.msaa8,
            AaConfig.MSAA16: self.msaa16,
        }[method]


@dataclass(frozen=True)
class RenderParams:
    """Parameters of a single render that the client chooses.

    ``base_color`` is the background as an (r, g, b, a) tuple of 8-bit
    channels; ``width`` and ``height`` are the target dimensions in pixels.
    """

    base_color: Tuple[int, int, int, int]
    width: int
    height: int
    antialiasing_method: AaConfig = AaConfig.AREA

    def __post_init__(self) -> None:
        color = tuple(self.base_color)
        if len(color) != 4:
            raise ValueError("base_color needs exactly four channels")
        for channel in color:
            if not isinstance(channel, int) or not 0 <= channel <= 255:
                raise ValueError(f"colour channel out of range: {channel!r}")
        object.__setattr__(self, "base_color", color)
        for name in ("width", "height"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= _U32_MAX:
                raise ValueError(f"{name} must be an unsigned 32-bit integer, got {value!r}")
        if not isinstance(self.antialiasing_method, AaConfig):
            raise TypeError(f"not an antialiasing method: {self.antialiasing_method!r}")