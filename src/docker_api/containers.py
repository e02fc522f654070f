"""Функции для работы с контейнерами через Docker client."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from docker.errors import DockerException
from requests.exceptions import RequestException

from src.docker_api.client import DockerClientWrapper, RawLogStream
from src.docker_api.models import (
    ContainerDetail,
    ContainerSummary,
    MountInfo,
    NetworkInfo,
    PortBinding,
    RestartPolicy,
)
from src.utils.helpers import SHORT_ID_LENGTH, parse_rfc3339

COMPOSE_PROJECT_LABEL = "com.docker.compose.project"
COMPOSE_SERVICE_LABEL = "com.docker.compose.service"
STOP_TIMEOUT_SEC = 10
LOG_TAIL_LINES = 100

_CLIENT_ERRORS = (DockerException, RequestException)


def list_containers(client: DockerClientWrapper) -> List[ContainerSummary]:
    """Возвращает все контейнеры (запущенные и остановленные)."""

    api = client.api
    try:
        raw_containers = api.containers(all=True) or []
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc) from exc

    containers: List[ContainerSummary] = []
    for item in raw_containers:
        state = item.get("State", "") or ""
        health = "none"
        if state == "running":
            health = _lookup_health(client, item["Id"])
        names = item.get("Names") or []
        labels = item.get("Labels") or {}
        containers.append(
            ContainerSummary(
                id=item["Id"][:SHORT_ID_LENGTH],
                name=_strip_name(names[0]) if names else "unknown",
                image=item.get("Image", "") or "",
                state=state,
                status=item.get("Status", "") or "",
                health=health,
                created=int(item.get("Created") or 0),
                compose_project=labels.get(COMPOSE_PROJECT_LABEL, ""),
                compose_service=labels.get(COMPOSE_SERVICE_LABEL, ""),
            )
        )
    return containers


def get_container_detail(client: DockerClientWrapper, container_id: str) -> ContainerDetail:
    """Возвращает подробности одного контейнера (docker inspect)."""

    inspect = inspect_container(client, container_id)
    state = inspect.get("State") or {}
    config = inspect.get("Config") or {}
    host_config = inspect.get("HostConfig") or {}
    network_settings = inspect.get("NetworkSettings") or {}
    labels = config.get("Labels") or {}

    created = parse_rfc3339(inspect.get("Created"))
    return ContainerDetail(
        id=inspect["Id"][:SHORT_ID_LENGTH],
        name=_strip_name(inspect.get("Name", "") or ""),
        image=config.get("Image", "") or "",
        state=state.get("Status", "") or "",
        status=state.get("Status", "") or "",
        health=(state.get("Health") or {}).get("Status") or "none",
        created=int(created.timestamp()) if created else 0,
        compose_project=labels.get(COMPOSE_PROJECT_LABEL, ""),
        compose_service=labels.get(COMPOSE_SERVICE_LABEL, ""),
        restart_policy=_restart_policy(host_config.get("RestartPolicy")),
        env=tuple(config.get("Env") or ()),
        networks=_networks(network_settings.get("Networks")),
        ports=tuple(_port_bindings(network_settings.get("Ports"))),
        mounts=tuple(_mounts(inspect.get("Mounts"))),
        hostname=config.get("Hostname", "") or "",
    )


def inspect_container(client: DockerClientWrapper, container_id: str) -> Dict[str, Any]:
    """Возвращает словарь атрибутов контейнера."""

    try:
        return client.api.inspect_container(container_id)
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc, container_id=container_id) from exc


def start_container(client: DockerClientWrapper, container_id: str) -> None:
    """Запускает контейнер."""

    try:
        client.api.start(container_id)
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc, container_id=container_id) from exc


def stop_container(client: DockerClientWrapper, container_id: str) -> None:
    """Останавливает контейнер (SIGKILL после 10 секунд ожидания)."""

    try:
        client.api.stop(container_id, timeout=STOP_TIMEOUT_SEC)
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc, container_id=container_id) from exc


def restart_container(client: DockerClientWrapper, container_id: str) -> None:
    """Перезапускает контейнер с тем же интервалом ожидания, что и stop."""

    try:
        client.api.restart(container_id, timeout=STOP_TIMEOUT_SEC)
    except _CLIENT_ERRORS as exc:
        raise client.translate_error(exc, container_id=container_id) from exc


def stream_logs(client: DockerClientWrapper, container_id: str, *, follow: bool) -> RawLogStream:
    """Открывает поток последних 100 строк логов (с метками времени)."""

    return client.open_log_stream(
        container_id, follow=follow, tail=LOG_TAIL_LINES, timestamps=True
    )


def _lookup_health(client: DockerClientWrapper, container_id: str) -> str:
    try:
        inspect = client.api.inspect_container(container_id)
    except _CLIENT_ERRORS:
        return "none"
    health = (inspect.get("State") or {}).get("Health") or {}
    return health.get("Status") or "none"


def _strip_name(name: str) -> str:
    return name[1:] if name.startswith("/") else name


def _restart_policy(raw: Optional[Dict[str, Any]]) -> Optional[RestartPolicy]:
    if not raw or not raw.get("Name"):
        return None
    return RestartPolicy(
        name=raw["Name"],
        maximum_retry_count=int(raw.get("MaximumRetryCount") or 0),
    )


def _networks(raw: Optional[Dict[str, Any]]) -> Dict[str, NetworkInfo]:
    networks: Dict[str, NetworkInfo] = {}
    for name, config in (raw or {}).items():
        config = config or {}
        networks[name] = NetworkInfo(
            network_id=config.get("NetworkID", "") or "",
            gateway=config.get("Gateway", "") or "",
            ip_address=config.get("IPAddress", "") or "",
            mac_address=config.get("MacAddress", "") or "",
        )
    return networks


def _port_bindings(raw: Optional[Dict[str, Any]]) -> List[PortBinding]:
    result: List[PortBinding] = []
    for container_port, mappings in (raw or {}).items():
        if not mappings:
            # порт объявлен, но не опубликован на хосте
            result.append(PortBinding(container_port=container_port))
            continue
        for mapping in mappings:
            result.append(
                PortBinding(
                    container_port=container_port,
                    host_ip=mapping.get("HostIp"),
                    host_port=mapping.get("HostPort"),
                )
            )
    return result


def _mounts(raw: Optional[List[Dict[str, Any]]]) -> List[MountInfo]:
    return [
        MountInfo(
            type=mount.get("Type", "") or "",
            source=mount.get("Source", "") or "",
            destination=mount.get("Destination", "") or "",
            mode=mount.get("Mode", "") or "",
            rw=bool(mount.get("RW", False)),
        )
        for mount in raw or []
    ]
