"""Классы групп настроек с полной поддержкой валидации."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

from src.settings.exceptions import SettingsNotFoundError, SettingsValidationError
from src.settings.schemas import DEFAULT_CONFIG
from src.settings.validators import (
    IMAGE_REFERENCE_PATTERN,
    SOCKET_PATH_PATTERN,
    CompositeValidator,
    EnumValidator,
    IntegerRangeValidator,
    RegexValidator,
    TypeValidator,
    Validator,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class SettingsGroup(ABC):
    """Абстрактная база для конкретных групп настроек."""

    group_name: str = ""

    def __init__(self) -> None:
        self._defaults: Dict[str, Any] = dict(DEFAULT_CONFIG.get(self.group_name, {}))
        self._validators: Dict[str, Validator] = {}
        self._values: Dict[str, Any] = {}
        self._setup_validators()
        self.reset_to_defaults()

    @abstractmethod
    def _setup_validators(self) -> None:
        """Привязывает валидаторы к ключам группы."""

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._defaults.keys())

    def get(self, key: str) -> Any:
        """Возвращает значение настройки."""

        self._require_key(key)
        return self._values[key]

    def validate(self, key: str, value: Any) -> Tuple[bool, str]:
        validator = self._validators.get(key)
        if not validator:
            return True, ""
        return validator.validate(value)

    def check(self, key: str, value: Any) -> None:
        """Проверяет значение без сохранения, выбрасывая ошибку при невалидных данных."""

        self._require_key(key)
        is_valid, error = self.validate(key, value)
        if not is_valid:
            raise SettingsValidationError(
                key=f"{self.group_name}.{key}",
                value=value,
                reason=error,
            )

    def set(self, key: str, value: Any) -> None:
        self.check(key, value)
        self._values[key] = value

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def from_dict(self, data: Dict[str, Any]) -> None:
        """Заполняет значениями из словаря; неизвестные ключи игнорируются."""

        for key, value in data.items():
            if key in self._defaults:
                self.set(key, value)

    def reset_to_defaults(self) -> None:
        self._values = dict(self._defaults)

    def _require_key(self, key: str) -> None:
        if key not in self._defaults:
            raise SettingsNotFoundError(self.group_name, key)


class DockerSettings(SettingsGroup):
    """Подключение к Docker daemon и образ для просмотра томов."""

    group_name = "docker"

    def _setup_validators(self) -> None:
        self._validators = {
            "socket": RegexValidator(SOCKET_PATH_PATTERN),
            "volume_explorer_image": RegexValidator(IMAGE_REFERENCE_PATTERN),
            "client_timeout_sec": IntegerRangeValidator(1, 600),
        }


class LoggingSettings(SettingsGroup):
    """Настройки логирования приложения."""

    group_name = "logging"

    def _setup_validators(self) -> None:
        self._validators = {
            "enabled": TypeValidator(bool),
            "level": CompositeValidator([TypeValidator(str), EnumValidator(LOG_LEVELS)]),
            "max_file_size_mb": IntegerRangeValidator(1, 1000),
            "max_archived_files": IntegerRangeValidator(1, 50),
        }


class StreamingSettings(SettingsGroup):
    """Параметры трансляции логов в WebSocket."""

    group_name = "streaming"

    def _setup_validators(self) -> None:
        self._validators = {
            "keepalive_interval_sec": IntegerRangeValidator(5, 300),
            "line_queue_size": IntegerRangeValidator(10, 10000),
        }
