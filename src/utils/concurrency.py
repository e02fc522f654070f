"""Примитивы синхронизации для потоков панели.

Здесь собраны три небольших инструмента, которые используют менеджер runtime
и конвейер логов:

* `ReadWriteLock`: много одновременных читателей либо один писатель;
* `OnceFlag`: идемпотентный сигнал «выполнить ровно один раз»;
* `CancelScope`: кооперативная отмена с родительской связью и callback'ами.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

LOGGER = logging.getLogger(__name__)


class ReadWriteLock:
    """Блокировка читатель/писатель с приоритетом писателя."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self) -> None:
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True

    def release_write(self) -> None:
        with self._condition:
            self._writer_active = False
            self._condition.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Контекст разделяемого доступа."""

        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Контекст эксклюзивного доступа."""

        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class OnceFlag:
    """Флаг, который можно взвести ровно один раз из любого потока."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()

    def fire(self) -> bool:
        """Взводит флаг. Возвращает True только для первого вызова."""

        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def is_set(self) -> bool:
        return self._event.is_set()


class CancelScope:
    """Область кооперативной отмены.

    Отмена родителя отменяет всех потомков. Callback'и, добавленные через
    `add_callback`, вызываются один раз в потоке, выполнившем отмену
    (или сразу, если область уже отменена).
    """

    def __init__(self, parent: Optional["CancelScope"] = None) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._parent = parent
        if parent is not None:
            parent.add_callback(self.cancel)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                LOGGER.warning("Cancel callback %r failed: %s", callback, exc)

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Убирает ещё не вызванный callback; неизвестный игнорируется."""

        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def detach(self) -> None:
        """Отвязывает область от родителя после завершения работы."""

        if self._parent is not None:
            self._parent.remove_callback(self.cancel)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Ждёт отмены; True, если область отменена."""

        return self._event.wait(timeout)
