"""Просмотр содержимого томов через временные контейнеры.

Каждая операция создаёт собственный контейнер из образа-инспектора, монтирует
том только для чтения в `/volume`, дожидается завершения команды, забирает
её вывод и в любом случае удаляет контейнер. Ошибка удаления только
логируется и никогда не подменяет основной результат.
"""

from __future__ import annotations

import logging
import posixpath
import threading
import uuid
from typing import Any, Callable, List, Sequence, TypeVar

from docker.errors import DockerException
from requests.exceptions import RequestException

from src.docker_api.client import DockerClientWrapper
from src.docker_api.demux import split_output
from src.docker_api.exceptions import DockerAPIError, InspectionFailedError
from src.docker_api.models import VolumeFileContent, VolumeFileEntry

LOGGER = logging.getLogger(__name__)

MOUNT_POINT = "/volume"
CLEANUP_TIMEOUT_SEC = 30
MIN_LISTING_FIELDS = 9

_CLIENT_ERRORS = (DockerException, RequestException)

T = TypeVar("T")


def list_volume_files(
    client: DockerClientWrapper, volume_name: str, path: str, image: str
) -> List[VolumeFileEntry]:
    """Возвращает содержимое каталога тома (без `.` и `..`)."""

    requested = normalize_volume_path(path)
    command = ["ls", "-la", "--full-time", MOUNT_POINT + requested]
    stdout = _run_inspection(
        client,
        volume_name,
        image,
        command,
        name_prefix="volume-explorer",
        error_prefix="command failed",
    )
    return parse_listing(stdout.decode("utf-8", errors="replace"), requested)


def read_volume_file(
    client: DockerClientWrapper, volume_name: str, path: str, image: str
) -> VolumeFileContent:
    """Возвращает содержимое файла тома целиком, без ограничения размера."""

    requested = normalize_volume_path(path)
    stdout = _run_inspection(
        client,
        volume_name,
        image,
        ["cat", MOUNT_POINT + requested],
        name_prefix="volume-reader",
        error_prefix="failed to read file",
    )
    return VolumeFileContent(path=requested, content=stdout, size=len(stdout))


def normalize_volume_path(path: str) -> str:
    """Приводит путь к абсолютному виду внутри тома, `..` не выходит за корень."""

    normalized = posixpath.normpath("/" + (path or "").strip())
    # normpath сохраняет ведущий "//"
    return "/" + normalized.lstrip("/")


def parse_listing(output: str, requested_path: str) -> List[VolumeFileEntry]:
    """Разбирает вывод `ls -la --full-time`.

    Формат строки: mode links owner group size date time tz name...
    Строки, где меньше 9 полей, пропускаются.
    """

    entries: List[VolumeFileEntry] = []
    for index, line in enumerate(output.splitlines()):
        if index == 0 and line.startswith("total"):
            continue
        fields = line.split()
        if len(fields) < MIN_LISTING_FIELDS:
            if line.strip():
                LOGGER.debug("Skipping malformed listing line: %r", line)
            continue
        mode = fields[0]
        name = " ".join(fields[8:])
        if name in (".", ".."):
            continue
        is_directory = mode.startswith("d")
        entries.append(
            VolumeFileEntry(
                name=name,
                path=posixpath.join(requested_path, name),
                is_directory=is_directory,
                size=0 if is_directory else _parse_size(fields[4]),
                mode=mode,
                mod_time=" ".join(fields[5:8]),
            )
        )
    return entries


def _parse_size(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def _run_inspection(
    client: DockerClientWrapper,
    volume_name: str,
    image: str,
    command: Sequence[str],
    *,
    name_prefix: str,
    error_prefix: str,
) -> bytes:
    """Выполняет команду во временном контейнере и возвращает её stdout."""

    api = client.api
    container_name = f"{name_prefix}-{volume_name}-{uuid.uuid4().hex[:8]}"
    try:
        created = api.create_container(
            image,
            command=list(command),
            name=container_name,
            host_config=api.create_host_config(binds=[f"{volume_name}:{MOUNT_POINT}:ro"]),
        )
    except _CLIENT_ERRORS as exc:
        raise InspectionFailedError(
            "create", f"failed to create temporary container: {exc}"
        ) from exc

    container_id = created["Id"]
    try:
        _guarded(
            lambda: api.start(container_id), "start", "failed to start temporary container"
        )
        _guarded(
            lambda: api.wait(container_id, condition="not-running"),
            "wait",
            "error waiting for container",
        )
        stdout, stderr = _guarded(
            lambda: _collect_output(client, container_id),
            "logs",
            "failed to read container output",
        )
    finally:
        _remove_container(api, container_id)

    if stderr:
        raise InspectionFailedError(
            "stderr", f"{error_prefix}: {stderr.decode('utf-8', errors='replace').strip()}"
        )
    return stdout


def _collect_output(client: DockerClientWrapper, container_id: str) -> tuple[bytes, bytes]:
    stream = client.open_log_stream(container_id, follow=False)
    try:
        return split_output(stream)
    finally:
        stream.close()


def _guarded(action: Callable[[], T], stage: str, message: str) -> T:
    try:
        return action()
    except (DockerAPIError, *_CLIENT_ERRORS) as exc:
        raise InspectionFailedError(stage, f"{message}: {exc}") from exc


def _remove_container(api: Any, container_id: str) -> None:
    """Удаляет временный контейнер, ожидая не дольше CLEANUP_TIMEOUT_SEC.

    Каждое удаление идёт в своём daemon-потоке: зависший вызов не задерживает
    очистку других контейнеров.
    """

    errors: List[Exception] = []

    def remove() -> None:
        try:
            api.remove_container(container_id, force=True)
        except Exception as exc:
            errors.append(exc)

    worker = threading.Thread(
        target=remove, name=f"explorer-cleanup-{container_id[:12]}", daemon=True
    )
    worker.start()
    worker.join(CLEANUP_TIMEOUT_SEC)
    if worker.is_alive():
        LOGGER.warning(
            "Removal of temporary container %s timed out after %s seconds",
            container_id[:12],
            CLEANUP_TIMEOUT_SEC,
        )
    elif errors:
        LOGGER.warning(
            "Failed to remove temporary container %s: %s", container_id[:12], errors[0]
        )
