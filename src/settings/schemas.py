"""Дефолтная схема config.json панели."""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_SOCKET_PATH = "/var/run/docker.sock"
DEFAULT_EXPLORER_IMAGE = "ghcr.io/dev-zapi/docker-simple-panel:latest"

# DEFAULT_CONFIG служит шаблоном для начального config.json
DEFAULT_CONFIG: Dict[str, Any] = {
    "version": "1.0.0",
    "docker": {
        "socket": DEFAULT_SOCKET_PATH,
        "volume_explorer_image": DEFAULT_EXPLORER_IMAGE,
        "client_timeout_sec": 60,
    },
    "logging": {
        "enabled": True,
        "level": "INFO",
        "max_file_size_mb": 10,
        "max_archived_files": 5,
    },
    "streaming": {
        "keepalive_interval_sec": 30,
        "line_queue_size": 100,
    },
}
