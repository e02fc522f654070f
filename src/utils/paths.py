"""Централизованное описание путей приложения."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

HOME_ENV = "DSP_HOME"
WORKDIR_NAME = ".dspanel"
CONFIG_FILE_NAME = "config.json"
LOGS_DIR_NAME = "logs"


def resolve_base_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Рабочая директория панели: `$DSP_HOME/.dspanel` или `~/.dspanel`."""

    env = os.environ if environ is None else environ
    return Path(env.get(HOME_ENV) or Path.home()) / WORKDIR_NAME
