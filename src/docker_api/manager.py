"""Менеджер Docker runtime для внешнего HTTP-слоя.

Класс владеет текущим `DockerClientWrapper`, позволяет заменить управляющий
сокет на лету и защищает контейнер, в котором работает сама панель, от
остановки и перезапуска.

Все операции берут блокировку на чтение, замена сокета берёт её на запись:
выполняющийся вызов видит либо старое соединение, либо новое.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, List, Optional, TypeVar

from src.docker_api import containers, explorer, volumes
from src.docker_api.client import DEFAULT_TIMEOUT_SEC, DockerClientWrapper, RawLogStream
from src.docker_api.exceptions import RuntimeUnavailableError, SelfOperationDeniedError
from src.docker_api.models import (
    ContainerDetail,
    ContainerSummary,
    SelfIdentity,
    VolumeFileContent,
    VolumeFileEntry,
    VolumeSummary,
)
from src.utils.concurrency import ReadWriteLock
from src.utils.helpers import short_id

LOGGER = logging.getLogger(__name__)

DEFAULT_EXPLORER_IMAGE = "ghcr.io/dev-zapi/docker-simple-panel:latest"

ClientFactory = Callable[[str], DockerClientWrapper]
SummaryT = TypeVar("SummaryT", bound=ContainerSummary)


class DockerManager:
    """Предоставляет потокобезопасный API над текущим соединением с Docker."""

    def __init__(
        self,
        socket_path: str,
        *,
        identity: Optional[SelfIdentity] = None,
        client_factory: Optional[ClientFactory] = None,
        explorer_image: Optional[Callable[[], str]] = None,
        timeout: int = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self._lock = ReadWriteLock()
        self._identity = identity or SelfIdentity()
        self._client_factory: ClientFactory = client_factory or (
            lambda path: DockerClientWrapper(path, timeout=timeout)
        )
        self._explorer_image = explorer_image or (lambda: DEFAULT_EXPLORER_IMAGE)
        self._client = self._client_factory(socket_path)
        self._socket_path = socket_path

    # ---------------------------------------------------------------- identity
    def is_in_container(self) -> bool:
        """True, если панель работает внутри контейнера."""

        return self._identity.in_container

    def own_container_id(self) -> str:
        """Короткий id собственного контейнера или пустая строка."""

        return self._identity.container_id

    def is_self_container(self, container_id: str) -> bool:
        own = self._identity.container_id
        if not self._identity.in_container or not own:
            return False
        return short_id(container_id) == short_id(own)

    # ------------------------------------------------------------------ socket
    def get_socket_path(self) -> str:
        with self._lock.read_locked():
            return self._socket_path

    def restart_with_socket(self, new_socket_path: str) -> None:
        """Переключает менеджер на новый сокет по принципу «всё или ничего».

        Кандидат открывается и проверяется ping'ом до того, как старое
        соединение будет закрыто; при ошибке текущим остаётся прежний сокет.
        """

        with self._lock.write_locked():
            candidate = self._client_factory(new_socket_path)
            try:
                candidate.ping()
            except RuntimeUnavailableError:
                self._close_quietly(candidate, "new Docker client after failed ping")
                raise
            previous, self._client = self._client, candidate
            self._socket_path = new_socket_path
            self._close_quietly(previous, "existing Docker client")
        LOGGER.info("Docker client restarted with socket: %s", new_socket_path)

    def close(self) -> None:
        with self._lock.write_locked():
            self._client.close()

    # -------------------------------------------------------------- containers
    def list_containers(self) -> List[ContainerSummary]:
        with self._lock.read_locked():
            items = containers.list_containers(self._client)
        return [self._stamp(item) for item in items]

    def get_container_detail(self, container_id: str) -> ContainerDetail:
        with self._lock.read_locked():
            detail = containers.get_container_detail(self._client, container_id)
        return self._stamp(detail)

    def start_container(self, container_id: str) -> None:
        with self._lock.read_locked():
            containers.start_container(self._client, container_id)

    def stop_container(self, container_id: str) -> None:
        self._deny_self(container_id, "stop")
        with self._lock.read_locked():
            containers.stop_container(self._client, container_id)

    def restart_container(self, container_id: str) -> None:
        self._deny_self(container_id, "restart")
        with self._lock.read_locked():
            containers.restart_container(self._client, container_id)

    def stream_logs(self, container_id: str, *, follow: bool = True) -> RawLogStream:
        """Возвращает поток логов; закрывать его обязан вызывающий."""

        with self._lock.read_locked():
            return containers.stream_logs(self._client, container_id, follow=follow)

    def ping(self) -> None:
        with self._lock.read_locked():
            self._client.ping()

    # ----------------------------------------------------------------- volumes
    def list_volumes(self) -> List[VolumeSummary]:
        with self._lock.read_locked():
            return volumes.list_volumes(self._client)

    def remove_volume(self, volume_name: str) -> None:
        with self._lock.read_locked():
            volumes.remove_volume(self._client, volume_name)

    def list_volume_files(self, volume_name: str, path: str = "/") -> List[VolumeFileEntry]:
        image = self._explorer_image()
        with self._lock.read_locked():
            return explorer.list_volume_files(self._client, volume_name, path, image)

    def read_volume_file(self, volume_name: str, path: str) -> VolumeFileContent:
        image = self._explorer_image()
        with self._lock.read_locked():
            return explorer.read_volume_file(self._client, volume_name, path, image)

    # ----------------------------------------------------------------- helpers
    def _stamp(self, item: SummaryT) -> SummaryT:
        return dataclasses.replace(item, is_self=self.is_self_container(item.id))

    def _deny_self(self, container_id: str, operation: str) -> None:
        if self.is_self_container(container_id):
            LOGGER.warning("Refused to %s own container %s", operation, container_id)
            raise SelfOperationDeniedError(container_id, operation)

    @staticmethod
    def _close_quietly(client: DockerClientWrapper, description: str) -> None:
        try:
            client.close()
        except Exception as exc:
            LOGGER.warning("Failed to close %s: %s", description, exc)
