"""Исключения слоя работы с Docker runtime."""

from __future__ import annotations

from typing import Any, Dict, Optional


class DockerAPIError(Exception):
    """Базовая ошибка операций с Docker, хранит сообщение и контекст."""

    http_status = 500

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class NotFoundError(DockerAPIError):
    """Контейнер или том с указанным идентификатором не существует."""

    http_status = 404


class ContainerNotFoundError(NotFoundError):
    def __init__(self, container_id: str, reason: str = "") -> None:
        self.container_id = container_id
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"Container '{container_id}' not found{suffix}",
            context={"container_id": container_id},
        )


class VolumeNotFoundError(NotFoundError):
    def __init__(self, volume_name: str, reason: str = "") -> None:
        self.volume_name = volume_name
        suffix = f": {reason}" if reason else ""
        super().__init__(
            f"Volume '{volume_name}' not found{suffix}",
            context={"volume": volume_name},
        )


class RuntimeUnavailableError(DockerAPIError):
    """Управляющий сокет недоступен или не отвечает на ping."""

    http_status = 503

    def __init__(self, socket_path: str, reason: str) -> None:
        self.socket_path = socket_path
        self.reason = reason
        super().__init__(
            f"Docker daemon not accessible at '{socket_path}': {reason}",
            context={"socket": socket_path, "reason": reason},
        )


class SelfOperationDeniedError(DockerAPIError):
    """Попытка остановить или перезапустить контейнер, в котором работает панель."""

    http_status = 403

    def __init__(self, container_id: str, operation: str) -> None:
        self.container_id = container_id
        self.operation = operation
        super().__init__(
            "Cannot stop or restart the container running this application",
            context={"container_id": container_id, "operation": operation},
        )


class InspectionFailedError(DockerAPIError):
    """Сбой протокола временного контейнера (create/start/wait/logs/stderr)."""

    def __init__(self, stage: str, reason: str) -> None:
        self.stage = stage
        self.reason = reason
        super().__init__(reason, context={"stage": stage})


class MalformedOutputError(DockerAPIError):
    """Поток runtime не соответствует ожидаемому формату."""

    http_status = 502


class VolumeInUseError(DockerAPIError):
    """Том используется контейнером и не может быть удалён без force."""

    http_status = 409

    def __init__(self, volume_name: str, reason: str) -> None:
        self.volume_name = volume_name
        super().__init__(
            f"Volume '{volume_name}' is in use: {reason}",
            context={"volume": volume_name},
        )


class StreamClosedError(DockerAPIError):
    """Клиент отключился или сессия отменена во время стриминга логов."""

    http_status = 499


def status_for_error(exc: BaseException) -> int:
    """HTTP-статус для ответа внешнего обработчика."""

    if isinstance(exc, DockerAPIError):
        return exc.http_status
    return 500
