"""Core module - Chunking, configuration, and shared types."""

from uploadagent.core.chunking import (
    CHUNK_SIZE,
    ByteSource,
    BytesSource,
    Chunk,
    ChunkPlan,
    FileSource,
    count_chunks,
    open_source,
    plan_chunks,
)
from uploadagent.core.config import BackendConfig, UploadConfig
from uploadagent.core.types import UploadState

__all__ = [
    # Chunking
    "CHUNK_SIZE",
    "ByteSource",
    "BytesSource",
    "Chunk",
    "ChunkPlan",
    "FileSource",
    "count_chunks",
    "open_source",
    "plan_chunks",
    # Config
    "BackendConfig",
    "UploadConfig",
    # Types
    "UploadState",
]
