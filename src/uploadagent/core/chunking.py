"""Fixed-size chunking for multipart uploads.

This module provides:
- ByteSource implementations (in-memory bytes, file on disk)
- Chunk: a 1-based, half-open byte range over a source
- ChunkPlan: lazy, restartable sequence of chunks
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

# Part size used for every chunk except possibly the last one
CHUNK_SIZE = 5 * 1024 * 1024  # 5 MB


@runtime_checkable
class ByteSource(Protocol):
    """Immutable, finite, randomly-sliceable byte sequence."""

    @property
    def size(self) -> int:
        """Total length in bytes."""
        ...

    def read(self, start: int, end: int) -> bytes:
        """Return the bytes in [start, end)."""
        ...


class BytesSource:
    """Source backed by an in-memory buffer."""

    def __init__(self, data: bytes | bytearray | memoryview, name: str | None = None) -> None:
        self._data = bytes(data)
        self.name = name

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, start: int, end: int) -> bytes:
        return self._data[start:end]


class FileSource:
    """Source backed by a file on disk.

    Each read opens the file on its own, so ranges can be read from
    several threads at once. The size is captured when the source is
    created; the file must not change while an upload is running.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"File not found: {self.path}")
        self._size = self.path.stat().st_size

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self._size

    def read(self, start: int, end: int) -> bytes:
        with self.path.open("rb") as f:
            f.seek(start)
            return f.read(end - start)


def open_source(value: ByteSource | bytes | bytearray | memoryview | Path | str) -> ByteSource:
    """Adapt bytes, a path, or an existing source to a ByteSource.

    Args:
        value: Raw bytes, a file path, or a ByteSource.

    Returns:
        A ByteSource over the value.

    Raises:
        FileNotFoundError: If a path does not point to a file.
        TypeError: If the value cannot be adapted.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesSource(value)
    if isinstance(value, (str, Path)):
        return FileSource(value)
    if isinstance(value, ByteSource):
        return value
    raise TypeError(f"Cannot upload object of type {type(value).__name__}")


@dataclass(frozen=True)
class Chunk:
    """A contiguous byte range of the source, the unit of upload.

    Attributes:
        index: 1-based ordinal, equal to the part number.
        start: First byte offset (inclusive).
        end: Last byte offset (exclusive).
    """

    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Return the size of this chunk in bytes."""
        return self.end - self.start

    def read(self, source: ByteSource) -> bytes:
        """Read this chunk's bytes from the source."""
        return source.read(self.start, self.end)


def count_chunks(size: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Return ceil(size / chunk_size)."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if size < 0:
        raise ValueError(f"size must not be negative, got {size}")
    return -(-size // chunk_size)


class ChunkPlan:
    """Ordered chunks covering [0, size) exactly.

    Chunks are computed lazily; iterating the plan again starts over.
    """

    def __init__(self, size: int, chunk_size: int = CHUNK_SIZE) -> None:
        self._total = count_chunks(size, chunk_size)
        self.size = size
        self.chunk_size = chunk_size

    def __len__(self) -> int:
        return self._total

    def __iter__(self) -> Iterator[Chunk]:
        for i in range(self._total):
            start = i * self.chunk_size
            yield Chunk(
                index=i + 1,
                start=start,
                end=min(start + self.chunk_size, self.size),
            )

    def __repr__(self) -> str:
        return f"ChunkPlan(size={self.size}, chunk_size={self.chunk_size}, parts={self._total})"


def plan_chunks(size: int, chunk_size: int = CHUNK_SIZE) -> ChunkPlan:
    """Split a source of the given size into fixed-size chunks.

    Args:
        size: Total length of the source in bytes.
        chunk_size: Size of every chunk but the last.

    Returns:
        A ChunkPlan; empty when size is 0.

    Raises:
        ValueError: If chunk_size < 1 or size < 0.
    """
    return ChunkPlan(size, chunk_size)
