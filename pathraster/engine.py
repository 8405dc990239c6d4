"""Recording of resource uploads, shader dispatches and frees."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

_id_counter = itertools.count(1)
_id_lock = threading.Lock()


@dataclass(frozen=True, order=True)
class Id:
    """Process-wide unique, strictly positive resource identifier."""

    value: int

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError("resource ids are strictly positive")

    @classmethod
    def next(cls) -> "Id":
        """Allocate a fresh identifier."""
        with _id_lock:
            return cls(next(_id_counter))


@dataclass(frozen=True)
class ShaderId:
    """Index of a registered shader."""

    value: int = 0


class ImageFormat(Enum):
    RGBA8 = "rgba8"
    BGRA8 = "bgra8"


@dataclass(frozen=True)
class BindType:
    """The type of resource bound to a slot in a shader."""

    class Kind(Enum):
        BUFFER = "buffer"
        BUF_READ_ONLY = "buf_read_only"
        UNIFORM = "uniform"
        IMAGE = "image"
        IMAGE_READ = "image_read"

    kind: "BindType.Kind"
    format: Optional[ImageFormat] = None

    def __post_init__(self) -> None:
        is_image = self.kind in (BindType.Kind.IMAGE, BindType.Kind.IMAGE_READ)
        if is_image and self.format is None:
            raise ValueError(f"{self.kind.value} binding needs an image format")
        if not is_image and self.format is not None:
            raise ValueError(f"{self.kind.value} binding takes no image format")


@dataclass(frozen=True)
class BufProxy:
    """Handle to a buffer that exists only while a recording runs."""

    size: int
    name: str
    id: Id = field(default_factory=Id.next)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError(f"buffer {self.name!r} must have a positive size")


@dataclass(frozen=True)
class ImageProxy:
    """Handle to an image that exists only while a recording runs."""

    width: int
    height: int
    format: ImageFormat
    id: Id = field(default_factory=Id.next)


ResourceProxy = Union[BufProxy, ImageProxy]


def _as_resource(resource: object) -> ResourceProxy:
    if not isinstance(resource, (BufProxy, ImageProxy)):
        raise TypeError(f"not a buffer or image proxy: {resource!r}")
    return resource


@dataclass(frozen=True)
class Upload:
    buf: BufProxy
    data: bytes


@dataclass(frozen=True)
class UploadUniform:
    buf: BufProxy
    data: bytes


@dataclass(frozen=True)
class UploadImage:
    image: ImageProxy
    data: bytes


@dataclass(frozen=True)
class WriteImage:
    image: ImageProxy
    rect: Tuple[int, int, int, int]
    data: bytes


@dataclass(frozen=True)
class Dispatch:
    shader: ShaderId
    wg_size: Tuple[int, int, int]
    resources: Tuple[ResourceProxy, ...]


@dataclass(frozen=True)
class DispatchIndirect:
    shader: ShaderId
    buf: BufProxy
    offset: int
    resources: Tuple[ResourceProxy, ...]


@dataclass(frozen=True)
class Download:
    buf: BufProxy


@dataclass(frozen=True)
class Clear:
    buf: BufProxy
    offset: int
    size: Optional[int]


@dataclass(frozen=True)
class FreeBuf:
    buf: BufProxy


@dataclass(frozen=True)
class FreeImage:
    image: ImageProxy


Command = Union[
    Upload,
    UploadUniform,
    UploadImage,
    WriteImage,
    Dispatch,
    DispatchIndirect,
    Download,
    Clear,
    FreeBuf,
    FreeImage,
]


@dataclass
class Recording:
    """An ordered list of commands for an engine to run."""

    commands: list = field(default_factory=list)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def push(self, cmd: Command) -> None:
        self.commands.append(cmd)

    def upload(self, name: str, data) -> BufProxy:
        payload = bytes(data)
        buf = BufProxy(len(payload), name)
        self.push(Upload(buf, payload))
        return buf

    def upload_uniform(self, name: str, data) -> BufProxy:
        payload = bytes(data)
        buf = BufProxy(len(payload), name)
        self.push(UploadUniform(buf, payload))
        return buf

    def upload_image(self, width: int, height: int, format: ImageFormat, data) -> ImageProxy:
        payload = bytes(data)
        image = ImageProxy(width, height, format)
        self.push(UploadImage(image, payload))
        return image

    def write_image(self, image: ImageProxy, x: int, y: int, width: int, height: int, data) -> None:
        self.push(WriteImage(image, (x, y, width, height), bytes(data)))

    def dispatch(self, shader: ShaderId, wg_size, resources: Iterable[ResourceProxy]) -> None:
        bound = tuple(_as_resource(r) for r in resources)
        self.push(Dispatch(shader, tuple(wg_size), bound))

    def dispatch_indirect(
        self, shader: ShaderId, buf: BufProxy, offset: int, resources: Iterable[ResourceProxy]
    ) -> None:
        """Dispatch with a size read as three u32 values at ``offset`` in ``buf``."""
        bound = tuple(_as_resource(r) for r in resources)
        self.push(DispatchIndirect(shader, buf, offset, bound))

    def download(self, buf: BufProxy) -> None:
        """Prepare a buffer for reading back after the recording has run."""
        self.push(Download(buf))

    def clear_all(self, buf: BufProxy) -> None:
        self.push(Clear(buf, 0, None))

    def free_buf(self, buf: BufProxy) -> None:
        self.push(FreeBuf(buf))

    def free_image(self, image: ImageProxy) -> None:
        self.push(FreeImage(image))

    def free_resource(self, resource: ResourceProxy) -> None:
        if isinstance(resource, BufProxy):
            self.free_buf(resource)
        elif isinstance(resource, ImageProxy):
            self.free_image(resource)
        else:
            raise TypeError(f"not a buffer or image proxy: {resource!r}")

    def into_commands(self) -> list:
        return list(self.commands)