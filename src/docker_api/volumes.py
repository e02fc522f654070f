"""Функции для работы с томами Docker."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Tuple

from docker.errors import DockerException
from requests.exceptions import RequestException

from src.docker_api.client import DockerClientWrapper
from src.docker_api.models import VolumeSummary
from src.utils.helpers import SHORT_ID_LENGTH, parse_rfc3339

_CLIENT_ERRORS = (DockerException, RequestException)


def list_volumes(client: DockerClientWrapper) -> List[VolumeSummary]:
    """Возвращает тома (сначала новые) вместе с контейнерами, которые их монтируют."""

    api = client.api
    try:
        response = api.volumes() or {}
        raw_containers = api.containers(all=True) or []
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc) from exc

    usage = _build_usage_index(raw_containers)
    volumes = [
        VolumeSummary(
            name=item.get("Name", ""),
            driver=item.get("Driver", "") or "",
            mountpoint=item.get("Mountpoint", "") or "",
            created_at=item.get("CreatedAt", "") or "",
            scope=item.get("Scope", "") or "",
            containers=tuple(usage.get(item.get("Name", ""), ())),
        )
        for item in response.get("Volumes") or []
    ]
    return sort_volumes(volumes)


def remove_volume(client: DockerClientWrapper, name: str) -> None:
    """Удаляет том без force: занятый том daemon удалить откажется."""

    try:
        client.api.remove_volume(name, force=False)
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc, volume_name=name) from exc


def sort_volumes(volumes: List[VolumeSummary]) -> List[VolumeSummary]:
    """Сортирует по времени создания (убывание); нераспознанные даты в конце по имени."""

    dated: List[Tuple[datetime, VolumeSummary]] = []
    undated: List[VolumeSummary] = []
    for volume in volumes:
        created = parse_rfc3339(volume.created_at)
        if created is None:
            undated.append(volume)
        else:
            dated.append((created, volume))
    dated.sort(key=lambda pair: pair[1].name)
    dated.sort(key=lambda pair: pair[0], reverse=True)
    undated.sort(key=lambda volume: volume.name)
    return [volume for _, volume in dated] + undated


def _build_usage_index(raw_containers: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Строит словарь «имя тома -> короткие id контейнеров»."""

    usage: Dict[str, List[str]] = {}
    for container in raw_containers:
        short = container["Id"][:SHORT_ID_LENGTH]
        for mount in container.get("Mounts") or []:
            if mount.get("Type") != "volume" or not mount.get("Name"):
                continue
            usage.setdefault(mount["Name"], []).append(short)
    return usage
