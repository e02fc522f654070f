"""Интерфейсы и базовые реализации наблюдателей за настройками."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, runtime_checkable

ChangeHandler = Callable[[Any], None]


@runtime_checkable
class SettingsObserver(Protocol):
    """Базовый контракт наблюдателя."""

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        """Вызывается после того, как новое значение сохранено в реестре."""


class LoggingSettingsObserver:
    """Наблюдатель, который отправляет события в журнал."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        self._logger.info("Setting changed: %s.%s (%r -> %r)", group, key, old_value, new_value)


class LogLevelObserver:
    """Применяет новое значение logging.level к корневому логгеру без перезапуска."""

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        if group == "logging" and key == "level" and isinstance(new_value, str):
            logging.getLogger().setLevel(new_value)
