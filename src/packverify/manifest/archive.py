"""Streaming manifest construction for package tarballs.

An archive is read strictly front to back, never buffered whole:

- the source (local file or http(s) URI) is exposed as a chunk stream;
- gzip layers are sniffed by magic bytes and peeled, at most
  ``MAX_COMPRESSION_DEPTH`` deep, so hostile input cannot nest forever;
- the result is parsed as a sequential tar stream and every regular file
  is hashed with SHA-1 in fixed-size chunks.

SHA-1 matches the registry's 40-hex ``dist.shasum`` format. Directory,
link and device entries carry no content and are left out of the manifest.
"""

from __future__ import annotations

import asyncio
import gzip
import hashlib
import io
import logging
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import urlparse
from urllib.request import url2pathname

from packverify.core.deadline import Deadline
from packverify.exceptions import ParseError
from packverify.manifest.models import Manifest
from packverify.registry.http_client import DEFAULT_TIMEOUT, stream_bytes

logger = logging.getLogger(__name__)

DIGEST_ALGORITHM: str = "sha1"

# Bound on nested compression layers peeled before tar parsing.
MAX_COMPRESSION_DEPTH: int = 3

CHUNK_SIZE: int = 64 * 1024

GZIP_MAGIC: bytes = b"\x1f\x8b"

_REMOTE_SCHEMES = frozenset({"http", "https"})


class _ChunkReader(io.RawIOBase):
    """Raw, forward-only stream over an iterator of byte chunks.

    The deadline is checked before every chunk is pulled.
    """

    def __init__(self, chunks: Iterator[bytes], deadline: Deadline, source: str) -> None:
        super().__init__()
        self._chunks = chunks
        self._deadline = deadline
        self._source = source
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # noqa: ANN001
        while not self._pending:
            self._deadline.check(f"reading {self._source}")
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class _Rewound(io.RawIOBase):
    """Replays already-consumed ``head`` bytes before the rest of ``stream``."""

    def __init__(self, head: bytes, stream: BinaryIO) -> None:
        super().__init__()
        self._head = head
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # noqa: ANN001
        if self._head:
            size = min(len(buffer), len(self._head))
            buffer[:size] = self._head[:size]
            self._head = self._head[size:]
            return size
        data = self._stream.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)


def _read_magic(stream: BinaryIO) -> bytes:
    """Read up to ``len(GZIP_MAGIC)`` bytes, across short reads, until EOF."""
    head = b""
    while len(head) < len(GZIP_MAGIC):
        data = stream.read(len(GZIP_MAGIC) - len(head))
        if not data:
            break
        head += data
    return head


def _peel_compression(raw: io.RawIOBase, max_depth: int) -> BinaryIO:
    """Wrap ``raw`` in as many gzip readers as its magic bytes call for."""
    stream: BinaryIO = io.BufferedReader(raw, CHUNK_SIZE)
    for depth in range(max_depth):
        head = _read_magic(stream)
        stream = io.BufferedReader(_Rewound(head, stream), CHUNK_SIZE)
        if head != GZIP_MAGIC:
            break
        logger.debug("Decompressing gzip layer %d", depth + 1)
        stream = io.BufferedReader(gzip.GzipFile(fileobj=stream, mode="rb"), CHUNK_SIZE)
    return stream


def _hash_member(handle: BinaryIO) -> str:
    digest = hashlib.new(DIGEST_ALGORITHM)
    for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()


def manifest_from_chunks(
    chunks: Iterator[bytes],
    *,
    source: str = "archive",
    deadline: Deadline | None = None,
    max_depth: int = MAX_COMPRESSION_DEPTH,
) -> Manifest:
    """Build a manifest from a (possibly compressed) tar byte stream.

    Raises:
        ParseError: The stream is not valid gzip/tar data.
        DeadlineExceeded: The deadline expired mid-stream.
    """
    deadline = deadline or Deadline.unbounded()
    manifest: Manifest = {}
    try:
        stream = _peel_compression(_ChunkReader(chunks, deadline, source), max_depth)
        with tarfile.open(fileobj=stream, mode="r|") as archive:
            for member in archive:
                if not member.isfile():
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                manifest[member.name] = _hash_member(handle)
    except (tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error) as exc:
        raise ParseError(f"Unable to read archive {source}: {exc}") from exc
    logger.debug("Manifest of %s: %d files", source, len(manifest))
    return manifest


def manifest_from_file(
    path: Path | str,
    *,
    deadline: Deadline | None = None,
) -> Manifest:
    """Build a manifest by streaming a local archive file.

    Raises:
        OSError: The file cannot be opened.
        ParseError: The file is not valid gzip/tar data.
    """
    path = Path(path)
    with path.open("rb") as handle:
        chunks = iter(lambda: handle.read(CHUNK_SIZE), b"")
        return manifest_from_chunks(chunks, source=str(path), deadline=deadline)


def manifest_from_url(
    url: str,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    deadline: Deadline | None = None,
) -> Manifest:
    """Build a manifest by streaming a remote archive over HTTP.

    Raises:
        HttpError: The download failed.
        ParseError: The body is not valid gzip/tar data.
    """
    deadline = deadline or Deadline.unbounded()
    with stream_bytes(url, timeout=deadline.timeout(timeout)) as chunks:
        return manifest_from_chunks(chunks, source=url, deadline=deadline)


def manifest_from_location(
    location: Path | str,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    deadline: Deadline | None = None,
) -> Manifest:
    """Dispatch on ``location``: http(s) URIs stream remotely, anything
    else (a path or ``file://`` URI) is read from disk."""
    text = str(location)
    parsed = urlparse(text)
    if parsed.scheme in _REMOTE_SCHEMES:
        return manifest_from_url(text, timeout=timeout, deadline=deadline)
    if parsed.scheme == "file":
        return manifest_from_file(url2pathname(parsed.path), deadline=deadline)
    return manifest_from_file(text, deadline=deadline)


async def build_manifests(
    first: Path | str,
    second: Path | str,
    *,
    timeout: float | None = DEFAULT_TIMEOUT,
    deadline: Deadline | None = None,
) -> tuple[Manifest, Manifest]:
    """Build two manifests concurrently, one worker thread each.

    Both workers are joined before anything propagates, so neither stream
    is still reading when the caller moves on. The first error raised (in
    argument order) is then re-raised. The streams share no state.
    """
    results = await asyncio.gather(
        asyncio.to_thread(
            manifest_from_location, first, timeout=timeout, deadline=deadline
        ),
        asyncio.to_thread(
            manifest_from_location, second, timeout=timeout, deadline=deadline
        ),
        return_exceptions=True,
    )
    for outcome in results:
        if isinstance(outcome, BaseException):
            raise outcome
    first_manifest, second_manifest = results
    return first_manifest, second_manifest
