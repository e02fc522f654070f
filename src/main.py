"""Точка входа и сборка сервисов Docker Simple Panel.

HTTP/WebSocket-слой получает готовый `PanelServices` и открывает сессии
стриминга логов через `PanelServices.open_log_session`.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src import __version__
from src.docker_api.exceptions import DockerAPIError
from src.docker_api.identity import detect_self_identity
from src.docker_api.log_stream import LogSocket, LogStreamSession
from src.docker_api.manager import ClientFactory, DockerManager
from src.docker_api.models import SelfIdentity
from src.settings.exceptions import SettingsError
from src.settings.observers import LoggingSettingsObserver, LogLevelObserver
from src.settings.registry import SettingsRegistry
from src.utils.concurrency import CancelScope
from src.utils.logger import configure_logging
from src.utils.paths import CONFIG_FILE_NAME, LOGS_DIR_NAME, resolve_base_dir

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PanelServices:
    """Набор сервисов, которые разделяют все запросы панели."""

    settings: SettingsRegistry
    identity: SelfIdentity
    manager: DockerManager

    def open_log_session(
        self,
        socket: LogSocket,
        container_id: str,
        scope: Optional[CancelScope] = None,
    ) -> LogStreamSession:
        """Создаёт сессию стриминга логов с параметрами из группы streaming."""

        streaming = self.settings.get_group("streaming")
        return LogStreamSession(
            self.manager,
            socket,
            container_id,
            scope=scope,
            keepalive_interval=float(streaming.get("keepalive_interval_sec")),
            queue_size=streaming.get("line_queue_size"),
        )

    def close(self) -> None:
        self.manager.close()


def initialize_workdir(base_dir: Path) -> bool:
    """Создаёт рабочую структуру (<base>/logs)."""

    try:
        (base_dir / LOGS_DIR_NAME).mkdir(parents=True, exist_ok=True)
        return True
    except OSError as exc:
        LOGGER.error("Не удалось инициализировать рабочую директорию: %s", exc)
        return False


def initialize_settings(config_path: Path) -> SettingsRegistry:
    """Создаёт реестр настроек и загружает config.json."""

    registry = SettingsRegistry(config_path)
    registry.load_from_disk()
    return registry


def setup_logging_from_settings(base_dir: Path, settings: SettingsRegistry) -> None:
    """Настраивает логирование в соответствии с LoggingSettings."""

    logging_settings = settings.get_group("logging")
    if not logging_settings.get("enabled"):
        logging.disable(logging.CRITICAL)
        return

    logging.disable(logging.NOTSET)
    configure_logging(
        log_dir=base_dir / LOGS_DIR_NAME,
        level_name=logging_settings.get("level"),
        max_bytes=logging_settings.get("max_file_size_mb") * 1024 * 1024,
        backup_count=logging_settings.get("max_archived_files"),
    )


def build_services(
    settings: SettingsRegistry,
    *,
    identity: Optional[SelfIdentity] = None,
    client_factory: Optional[ClientFactory] = None,
) -> PanelServices:
    """Определяет собственный контейнер и подключает менеджер к настройкам."""

    docker_settings = settings.get_group("docker")
    resolved_identity = identity if identity is not None else detect_self_identity()
    manager = DockerManager(
        docker_settings.get("socket"),
        identity=resolved_identity,
        client_factory=client_factory,
        explorer_image=lambda: settings.get_value("docker", "volume_explorer_image"),
        timeout=docker_settings.get("client_timeout_sec"),
    )
    settings.register_change_handler("docker", "socket", manager.restart_with_socket)
    settings.register_observer(LoggingSettingsObserver())
    settings.register_observer(LogLevelObserver())
    return PanelServices(settings=settings, identity=resolved_identity, manager=manager)


def main() -> int:
    """Готовит окружение и проверяет доступность Docker daemon."""

    base_dir = resolve_base_dir()
    if not initialize_workdir(base_dir):
        return 1
    configure_logging(base_dir / LOGS_DIR_NAME)

    try:
        settings = initialize_settings(base_dir / CONFIG_FILE_NAME)
    except SettingsError as exc:
        LOGGER.error("Не удалось загрузить настройки: %s", exc)
        return 1
    setup_logging_from_settings(base_dir, settings)
    LOGGER.info("Запуск Docker Simple Panel версии %s", __version__)

    try:
        services = build_services(settings)
    except DockerAPIError as exc:
        LOGGER.error("Docker client initialization failed: %s", exc)
        return 1
    try:
        services.manager.ping()
    except DockerAPIError as exc:
        LOGGER.error("Docker daemon is unreachable: %s", exc)
        return 1
    finally:
        services.close()
    LOGGER.info("Docker daemon reachable via %s", services.manager.get_socket_path())
    return 0


if __name__ == "__main__":
    sys.exit(main())
