"""Определение контейнера, внутри которого запущена панель.

Проверка выполняется один раз при старте процесса:

1. наличие маркера `/.dockerenv`;
2. строки cgroup-файла: сегмент `/docker/<id>` даёт и признак, и идентификатор,
   сегменты оркестраторов (`/kubepods`, `/containerd/`) дают только признак;
3. если признак есть, а идентификатора нет, используется переменная HOSTNAME длиной 12 или 64.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Mapping, Optional

from src.docker_api.models import SelfIdentity
from src.utils.helpers import SHORT_ID_LENGTH, short_id

LOGGER = logging.getLogger(__name__)

DOCKERENV_PATH = Path("/.dockerenv")
CGROUP_PATH = Path("/proc/1/cgroup")

_DOCKER_SEGMENT = "/docker/"
_ORCHESTRATOR_SEGMENTS = ("/kubepods", "/containerd/")
_CONTAINER_ID = re.compile(r"^(?:[0-9a-fA-F]{64}|[0-9a-fA-F]{12})$")
_HOSTNAME_LENGTHS = (SHORT_ID_LENGTH, 64)


def detect_self_identity(
    *,
    marker_path: Path = DOCKERENV_PATH,
    cgroup_path: Path = CGROUP_PATH,
    environ: Optional[Mapping[str, str]] = None,
) -> SelfIdentity:
    """Возвращает SelfIdentity текущего процесса."""

    env = os.environ if environ is None else environ
    in_container = marker_path.exists()
    container_id = ""

    try:
        with cgroup_path.open(encoding="utf-8", errors="replace") as handle:
            for line in handle:
                if _DOCKER_SEGMENT in line:
                    in_container = True
                    candidate = _id_after_docker_segment(line)
                    if candidate:
                        container_id = candidate
                        break
                    continue
                if any(segment in line for segment in _ORCHESTRATOR_SEGMENTS):
                    in_container = True
    except OSError as exc:
        LOGGER.debug("Cannot read %s: %s", cgroup_path, exc)

    if in_container and not container_id:
        hostname = env.get("HOSTNAME", "")
        if len(hostname) in _HOSTNAME_LENGTHS:
            container_id = short_id(hostname)

    identity = SelfIdentity(in_container=in_container, container_id=container_id)
    if identity.in_container:
        LOGGER.info("Running inside container (ID: %s)", identity.container_id or "unknown")
    else:
        LOGGER.info("Running outside container environment")
    return identity


def _id_after_docker_segment(line: str) -> str:
    tail = line.split(_DOCKER_SEGMENT, 1)[1].strip()
    segment = tail.split("/", 1)[0]
    if _CONTAINER_ID.match(segment):
        return short_id(segment)
    return ""
