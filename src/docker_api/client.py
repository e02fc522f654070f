"""Обёртка над docker-py: одно соединение с управляющим сокетом."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import docker
from docker.errors import APIError, DockerException, NotFound
from docker.types import CancellableStream
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import ReadTimeout

from src.docker_api.exceptions import (
    ContainerNotFoundError,
    DockerAPIError,
    RuntimeUnavailableError,
    VolumeInUseError,
    VolumeNotFoundError,
)
from src.utils.helpers import normalize_socket_path

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 60


class RawLogStream:
    """Живой поток логов в исходном (мультиплексированном) виде.

    Закрывать обязан вызывающий; `close` можно вызывать из другого потока,
    чтобы прервать блокирующее чтение.
    """

    def __init__(self, response: Any) -> None:
        self._response = response
        self._closed = False

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            return b""
        return self._response.raw.read(size)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            # CancellableStream умеет разрывать сокет под urllib3-ответом
            CancellableStream(iter(()), self._response).close()
        except (AttributeError, OSError, DockerException) as exc:
            LOGGER.debug("Log stream socket shutdown skipped: %s", exc)
        finally:
            self._response.close()

    @property
    def closed(self) -> bool:
        return self._closed


class DockerClientWrapper:
    """Управляет созданием и использованием docker API client."""

    def __init__(
        self,
        socket_path: str,
        raw_client: Any | None = None,
        *,
        timeout: int = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self.socket_path = socket_path  # путь в том виде, в каком он задан в настройках
        self._timeout = timeout
        self._client = raw_client or self._create_client()

    def _create_client(self) -> Any:
        base_url = normalize_socket_path(self.socket_path)
        try:
            return docker.DockerClient(base_url=base_url, timeout=self._timeout)
        except DockerException as exc:
            LOGGER.error("Docker client init error via %s: %s", base_url, exc)
            raise RuntimeUnavailableError(self.socket_path, str(exc)) from exc

    @property
    def api(self) -> Any:
        """Низкоуровневый APIClient docker-py."""

        return self._client.api

    def ping(self) -> None:
        """Проверяет доступность Docker, бросает RuntimeUnavailableError."""

        try:
            self.api.ping()
        except (DockerException, RequestsConnectionError, ReadTimeout) as exc:
            LOGGER.error("Docker ping failed for %s: %s", self.socket_path, exc)
            raise RuntimeUnavailableError(self.socket_path, str(exc)) from exc

    def close(self) -> None:
        self._client.close()

    def open_log_stream(
        self,
        container_id: str,
        *,
        follow: bool,
        tail: str | int = "all",
        timestamps: bool = False,
    ) -> RawLogStream:
        """Открывает поток логов без разбора кадров."""

        api = self.api
        params: Dict[str, Any] = {
            "stdout": 1,
            "stderr": 1,
            "follow": 1 if follow else 0,
            "timestamps": 1 if timestamps else 0,
            "tail": str(tail),
        }
        try:
            response = api._get(
                api._url("/containers/{0}/logs", container_id), params=params, stream=True
            )
            api._raise_for_status(response)
            if follow:
                # ожидание новых строк не должно упираться в таймаут клиента
                api._disable_socket_timeout(api._get_raw_response_socket(response))
        except Exception as exc:
            raise self.translate_error(exc, container_id=container_id) from exc
        return RawLogStream(response)

    def translate_error(
        self,
        exc: BaseException,
        *,
        container_id: Optional[str] = None,
        volume_name: Optional[str] = None,
    ) -> DockerAPIError:
        """Переводит исключение docker-py/requests в ошибку панели."""

        if isinstance(exc, DockerAPIError):
            return exc
        if isinstance(exc, NotFound):
            reason = getattr(exc, "explanation", None) or str(exc)
            if volume_name is not None:
                return VolumeNotFoundError(volume_name, reason)
            return ContainerNotFoundError(container_id or "", reason)
        if isinstance(exc, APIError):
            if volume_name is not None and exc.status_code == 409:
                return VolumeInUseError(volume_name, exc.explanation or str(exc))
            return DockerAPIError(str(exc), context={"status_code": exc.status_code})
        if isinstance(exc, (RequestsConnectionError, ReadTimeout, DockerException)):
            return RuntimeUnavailableError(self.socket_path, str(exc))
        return DockerAPIError(str(exc))
