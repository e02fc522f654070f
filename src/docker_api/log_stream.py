"""Трансляция логов контейнера в WebSocket.

Одна сессия обслуживает одно подключение и запускает вспомогательные потоки:

* demux: раскладывает кадры Docker по двум каналам (stdout/stderr);
* два сканера: читают каналы построчно и кладут строки в общую очередь;
* keepalive: периодически отправляет клиенту ping;
* watcher: читает сокет клиента только ради обнаружения отключения.

Основной цикл забирает строки из очереди и отправляет их текстовыми кадрами.
Строки stdout и stderr чередуются в порядке чтения из своих каналов;
хронологический порядок между каналами не гарантируется.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
from enum import Enum
from typing import Any, BinaryIO, List, Optional, Protocol

from websockets.exceptions import ConnectionClosed

from src.docker_api.demux import demux_copy
from src.docker_api.exceptions import DockerAPIError, StreamClosedError
from src.docker_api.manager import DockerManager
from src.utils.concurrency import CancelScope, OnceFlag

LOGGER = logging.getLogger(__name__)

KEEPALIVE_INTERVAL_SEC = 30.0
LINE_QUEUE_SIZE = 100
POLL_INTERVAL_SEC = 0.2
HELPER_JOIN_TIMEOUT_SEC = 5.0
ABNORMAL_CLOSURE = 1006
EXPECTED_CLOSE_CODES = frozenset({1000, 1001, ABNORMAL_CLOSURE})


class SessionState(str, Enum):
    UPGRADING = "upgrading"
    STREAMING = "streaming"
    DRAINING = "draining"
    CLOSED = "closed"


class LogSocket(Protocol):
    """Минимальный интерфейс WebSocket (совместим с websockets.sync)."""

    def recv(self) -> Any: ...

    def send(self, message: str) -> None: ...

    def ping(self) -> Any: ...

    def close(self) -> None: ...


class LogStreamSession:
    """Одна сессия стриминга логов от открытия потока до закрытия сокета."""

    def __init__(
        self,
        manager: DockerManager,
        socket: LogSocket,
        container_id: str,
        *,
        scope: Optional[CancelScope] = None,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SEC,
        queue_size: int = LINE_QUEUE_SIZE,
        poll_interval: float = POLL_INTERVAL_SEC,
    ) -> None:
        self._manager = manager
        self._socket = socket
        self._container_id = container_id
        # собственная область: отмена сессии не отменяет запрос целиком
        self._scope = CancelScope(parent=scope)
        self._keepalive_interval = keepalive_interval
        self._poll_interval = poll_interval
        self._lines: queue.Queue[str] = queue.Queue(maxsize=queue_size)
        self._send_lock = threading.Lock()
        self._socket_closed = OnceFlag()
        self._disconnected = OnceFlag()
        self._demux_done = threading.Event()
        self._demux_error: Optional[BaseException] = None
        self._scanners: List[threading.Thread] = []
        self._threads: List[threading.Thread] = []
        self._state = SessionState.UPGRADING

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def client_disconnected(self) -> bool:
        return self._disconnected.is_set()

    def cancel(self) -> None:
        """Запрашивает остановку сессии из любого потока."""

        self._scope.cancel()

    def active_helpers(self) -> List[threading.Thread]:
        return [thread for thread in self._threads if thread.is_alive()]

    # ------------------------------------------------------------------- run
    def run(self) -> None:
        """Блокирует вызывающий поток до завершения сессии."""

        try:
            try:
                reader = self._manager.stream_logs(self._container_id, follow=True)
            except DockerAPIError as exc:
                LOGGER.warning("Cannot open logs for %s: %s", self._container_id, exc)
                self._send_error(f"Failed to get container logs: {exc}")
                return
            self._scope.add_callback(reader.close)
            self._start_helpers(reader)
            self._state = SessionState.STREAMING
            self._dispatch()
        finally:
            self._state = SessionState.CLOSED
            self._scope.cancel()
            self._scope.detach()
            self._close_socket()
            for thread in self._threads:
                thread.join(HELPER_JOIN_TIMEOUT_SEC)

    def _start_helpers(self, reader: Any) -> None:
        stdout_read, stdout_write = os.pipe()
        stderr_read, stderr_write = os.pipe()
        self._spawn(
            "demux",
            self._demux,
            reader,
            open(stdout_write, "wb"),
            open(stderr_write, "wb"),
        )
        self._scanners = [
            self._spawn("stdout", self._scan, open(stdout_read, "rb")),
            self._spawn("stderr", self._scan, open(stderr_read, "rb")),
        ]
        self._spawn("keepalive", self._keepalive)
        self._spawn("watcher", self._watch_disconnect)

    def _spawn(self, role: str, target: Any, *args: Any) -> threading.Thread:
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"logs-{self._container_id[:12]}-{role}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()
        return thread

    # -------------------------------------------------------------- dispatch
    def _dispatch(self) -> None:
        while True:
            if self._scope.cancelled:
                return
            if self._demux_done.is_set():
                self._finish()
                return
            try:
                line = self._lines.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if not self._deliver(line):
                return

    def _finish(self) -> None:
        """Досылает накопленные строки и сообщает об ошибке demux, если она была."""

        self._state = SessionState.DRAINING
        while True:
            scanners_done = not any(thread.is_alive() for thread in self._scanners)
            try:
                line = self._lines.get(timeout=self._poll_interval)
            except queue.Empty:
                if scanners_done:
                    break
                if self._scope.cancelled:
                    return
                continue
            if not self._deliver(line):
                return

        error = self._demux_error
        if error is not None and not self._scope.cancelled:
            self._send_error(f"Error reading logs: {error}")

    def _deliver(self, line: str) -> bool:
        try:
            self._send(line)
        except StreamClosedError as exc:
            if _is_unexpected_close(exc.__cause__):
                LOGGER.warning("WebSocket write error: %s", exc)
            return False
        return True

    # --------------------------------------------------------------- helpers
    def _demux(self, reader: Any, stdout: BinaryIO, stderr: BinaryIO) -> None:
        try:
            demux_copy(reader, stdout, stderr, scope=self._scope)
        except Exception as exc:
            if not self._scope.cancelled:
                LOGGER.warning("Error demuxing logs for %s: %s", self._container_id, exc)
                self._demux_error = exc
        finally:
            for sink in (stdout, stderr):
                try:
                    sink.close()
                except OSError as exc:
                    LOGGER.debug("Log channel sink close failed: %s", exc)
            self._demux_done.set()

    def _scan(self, source: BinaryIO) -> None:
        try:
            for raw in source:
                if self._scope.cancelled:
                    return
                line = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
                if not self._offer(line):
                    return
        except (OSError, ValueError) as exc:
            LOGGER.debug("Log channel reader stopped: %s", exc)
        finally:
            source.close()

    def _offer(self, line: str) -> bool:
        """Кладёт строку в очередь, не зависая навсегда на полной очереди."""

        while not self._scope.cancelled:
            try:
                self._lines.put(line, timeout=self._poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def _keepalive(self) -> None:
        while not self._scope.wait(self._keepalive_interval):
            try:
                with self._send_lock:
                    self._socket.ping()
            except Exception as exc:
                LOGGER.warning("Failed to send ping: %s", exc)
                self._scope.cancel()
                return

    def _watch_disconnect(self) -> None:
        while True:
            try:
                self._socket.recv()
            except Exception as exc:
                if not self._socket_closed.is_set():
                    LOGGER.info("WebSocket read error (client disconnect): %s", exc)
                self._scope.cancel()
                self._disconnected.fire()
                return

    # ---------------------------------------------------------------- socket
    def _send(self, text: str) -> None:
        if self._socket_closed.is_set():
            raise StreamClosedError("WebSocket already closed")
        try:
            with self._send_lock:
                self._socket.send(text)
        except Exception as exc:
            raise StreamClosedError(f"WebSocket send failed: {exc}") from exc

    def _send_error(self, message: str) -> None:
        try:
            self._send(json.dumps({"error": message}))
        except StreamClosedError as exc:
            LOGGER.debug("Cannot deliver error frame: %s", exc)

    def _close_socket(self) -> None:
        if not self._socket_closed.fire():
            return
        try:
            self._socket.close()
        except Exception as exc:
            LOGGER.debug("WebSocket close failed: %s", exc)


def _is_unexpected_close(exc: Optional[BaseException]) -> bool:
    """Неожиданным считается только закрытие с кодом вне EXPECTED_CLOSE_CODES."""

    if not isinstance(exc, ConnectionClosed):
        return False
    code = exc.rcvd.code if exc.rcvd is not None else ABNORMAL_CLOSURE
    return code not in EXPECTED_CLOSE_CODES
