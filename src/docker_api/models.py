"""Структуры данных для описания объектов Docker и ответов API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from src.docker_api.exceptions import status_for_error


@dataclass(slots=True, frozen=True)
class ContainerSummary:
    """Краткое представление контейнера из списка."""

    id: str  # короткий идентификатор, 12 hex-символов
    name: str
    image: str
    state: str
    status: str
    health: str = "none"
    created: int = 0  # unix-время создания
    compose_project: str = ""
    compose_service: str = ""
    is_self: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Сериализует модель в dict."""

        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "state": self.state,
            "status": self.status,
            "health": self.health,
            "created": self.created,
            "is_self": self.is_self,
            "compose_project": self.compose_project,
            "compose_service": self.compose_service,
        }


@dataclass(slots=True, frozen=True)
class RestartPolicy:
    name: str
    maximum_retry_count: int = 0


@dataclass(slots=True, frozen=True)
class NetworkInfo:
    network_id: str
    gateway: str = ""
    ip_address: str = ""
    mac_address: str = ""


@dataclass(slots=True, frozen=True)
class PortBinding:
    container_port: str
    host_ip: Optional[str] = None
    host_port: Optional[str] = None


@dataclass(slots=True, frozen=True)
class MountInfo:
    type: str  # bind, volume, tmpfs
    source: str
    destination: str
    mode: str = ""
    rw: bool = False


@dataclass(slots=True, frozen=True)
class ContainerDetail(ContainerSummary):
    """Полное описание контейнера (результат inspect)."""

    restart_policy: Optional[RestartPolicy] = None
    env: Tuple[str, ...] = ()
    networks: Dict[str, NetworkInfo] = field(default_factory=dict)
    ports: Tuple[PortBinding, ...] = ()
    mounts: Tuple[MountInfo, ...] = ()
    hostname: str = ""

    def to_dict(self) -> Dict[str, Any]:
        payload = ContainerSummary.to_dict(self)
        payload.update(
            {
                "restart_policy": (
                    {
                        "name": self.restart_policy.name,
                        "maximum_retry_count": self.restart_policy.maximum_retry_count,
                    }
                    if self.restart_policy
                    else None
                ),
                "env": list(self.env),
                "networks": {
                    name: {
                        "network_id": network.network_id,
                        "gateway": network.gateway,
                        "ip_address": network.ip_address,
                        "mac_address": network.mac_address,
                    }
                    for name, network in self.networks.items()
                },
                "ports": [
                    {
                        "container_port": port.container_port,
                        "host_ip": port.host_ip,
                        "host_port": port.host_port,
                    }
                    for port in self.ports
                ],
                "mounts": [
                    {
                        "type": mount.type,
                        "source": mount.source,
                        "destination": mount.destination,
                        "mode": mount.mode,
                        "rw": mount.rw,
                    }
                    for mount in self.mounts
                ],
                "hostname": self.hostname,
            }
        )
        return payload


@dataclass(slots=True, frozen=True)
class VolumeSummary:
    """Том Docker и контейнеры, которые его монтируют."""

    name: str
    driver: str
    mountpoint: str
    created_at: str  # RFC3339 с наносекундами, как отдаёт daemon
    scope: str
    containers: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "driver": self.driver,
            "mountpoint": self.mountpoint,
            "created_at": self.created_at,
            "scope": self.scope,
            "containers": list(self.containers),
        }


@dataclass(slots=True, frozen=True)
class VolumeFileEntry:
    """Файл или каталог внутри тома (строка вывода ls)."""

    name: str
    path: str
    is_directory: bool
    size: int
    mode: str
    mod_time: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "is_directory": self.is_directory,
            "size": self.size,
            "mode": self.mode,
            "mod_time": self.mod_time,
        }


@dataclass(slots=True, frozen=True)
class VolumeFileContent:
    path: str
    content: bytes
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.content.decode("utf-8", errors="replace"),
            "size": self.size,
        }


@dataclass(slots=True, frozen=True)
class SelfIdentity:
    """Результат определения собственного контейнера, неизменен после старта."""

    in_container: bool = False
    container_id: str = ""  # короткая форма или пустая строка


@dataclass(slots=True)
class ApiResponse:
    """Единый конверт ответа HTTP API."""

    success: bool
    message: Optional[str] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.message:
            payload["message"] = self.message
        if self.data is not None:
            payload["data"] = _serialize(self.data)
        return payload

    @classmethod
    def from_error(cls, exc: BaseException) -> "ApiResponse":
        return cls(success=False, message=str(exc))

    @staticmethod
    def status_for(exc: BaseException) -> int:
        return status_for_error(exc)


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value
