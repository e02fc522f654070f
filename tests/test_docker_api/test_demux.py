"""Тесты разбора мультиплексированного потока."""

from __future__ import annotations

import io

import pytest

from src.docker_api.demux import demux_copy, iter_frames, split_output
from src.docker_api.exceptions import MalformedOutputError
from src.utils.concurrency import CancelScope


def test_split_output_routes_streams(make_frame) -> None:
    body = (
        make_frame(1, b"out-1\n")
        + make_frame(2, b"err-1\n")
        + make_frame(0, b"stdin\n")
        + make_frame(1, b"out-2\n")
    )
    stdout, stderr = split_output(io.BytesIO(body))
    assert stdout == b"out-1\nstdin\nout-2\n"
    assert stderr == b"err-1\n"


def test_empty_payload_frame(make_frame) -> None:
    frames = list(iter_frames(io.BytesIO(make_frame(1, b"") + make_frame(2, b"x"))))
    assert frames == [(1, b""), (2, b"x")]


def test_truncated_header_ends_stream(make_frame) -> None:
    body = make_frame(1, b"whole") + b"\x01\x00\x00"
    assert split_output(io.BytesIO(body)) == (b"whole", b"")


def test_truncated_body_is_dropped(make_frame) -> None:
    body = make_frame(1, b"whole") + make_frame(2, b"partial-payload")[:-4]
    assert split_output(io.BytesIO(body)) == (b"whole", b"")


def test_system_error_stream_raises(make_frame) -> None:
    with pytest.raises(MalformedOutputError, match="daemon exploded"):
        split_output(io.BytesIO(make_frame(3, b"daemon exploded")))


def test_unknown_stream_raises(make_frame) -> None:
    with pytest.raises(MalformedOutputError) as info:
        split_output(io.BytesIO(make_frame(7, b"??")))
    assert info.value.http_status == 502


def test_reader_returning_short_chunks(make_frame) -> None:
    class Trickle:
        def __init__(self, data: bytes) -> None:
            self._data = data

        def read(self, size: int = -1) -> bytes:
            chunk, self._data = self._data[:1], self._data[1:]
            return chunk

    assert split_output(Trickle(make_frame(2, b"slow"))) == (b"", b"slow")


def test_demux_copy_stops_when_cancelled(make_frame) -> None:
    scope = CancelScope()
    scope.cancel()
    stdout, stderr = io.BytesIO(), io.BytesIO()
    written = demux_copy(io.BytesIO(make_frame(1, b"data")), stdout, stderr, scope=scope)
    assert written == 0
    assert stdout.getvalue() == b""
