"""Разбор мультиплексированного потока stdout/stderr Docker.

Когда у контейнера нет TTY, daemon отдаёт логи кадрами: 8-байтовый заголовок
`[stream, 0, 0, 0, size (uint32, big-endian)]` и `size` байт полезной нагрузки.
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO, Iterator, Optional, Protocol, Tuple

from docker.utils.socket import STDERR, STDOUT

from src.docker_api.exceptions import MalformedOutputError
from src.utils.concurrency import CancelScope

STDIN = 0
SYSTEM_ERROR = 3
HEADER_SIZE = 8
_HEADER = struct.Struct(">BxxxL")


class ByteReader(Protocol):
    def read(self, size: int = -1) -> bytes: ...


def _read_exactly(reader: ByteReader, size: int) -> bytes:
    """Читает ровно size байт или меньше, если поток закончился."""

    chunks = []
    remaining = size
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def iter_frames(reader: ByteReader) -> Iterator[Tuple[int, bytes]]:
    """Итерирует кадры (stream, payload) до конца потока.

    Обрезанный заголовок или тело в конце потока считаются штатным завершением.
    """

    while True:
        header = _read_exactly(reader, HEADER_SIZE)
        if len(header) < HEADER_SIZE:
            return
        stream, size = _HEADER.unpack(header)
        payload = _read_exactly(reader, size)
        if len(payload) < size:
            return
        yield stream, payload


def demux_copy(
    reader: ByteReader,
    stdout: BinaryIO,
    stderr: BinaryIO,
    *,
    scope: Optional[CancelScope] = None,
) -> int:
    """Раскладывает кадры по двум приёмникам, возвращает число записанных байт.

    Останавливается на конце потока или при отмене scope.
    """

    written = 0
    for stream, payload in iter_frames(reader):
        if scope is not None and scope.cancelled:
            break
        if stream in (STDIN, STDOUT):
            target = stdout
        elif stream == STDERR:
            target = stderr
        elif stream == SYSTEM_ERROR:
            raise MalformedOutputError(
                f"error from daemon in stream: {payload.decode('utf-8', errors='replace')}"
            )
        else:
            raise MalformedOutputError(
                f"unrecognized stream: {stream}", context={"stream": stream}
            )
        target.write(payload)
        target.flush()
        written += len(payload)
    return written


def split_output(reader: ByteReader) -> Tuple[bytes, bytes]:
    """Читает весь поток и возвращает (stdout, stderr)."""

    stdout = io.BytesIO()
    stderr = io.BytesIO()
    demux_copy(reader, stdout, stderr)
    return stdout.getvalue(), stderr.getvalue()
