"""Реестр настроек панели с JSON-хранилищем и обработчиками изменений."""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from src.settings.exceptions import SettingsIOError, SettingsNotFoundError
from src.settings.groups import DockerSettings, LoggingSettings, SettingsGroup, StreamingSettings
from src.settings.observers import ChangeHandler, SettingsObserver
from src.settings.schemas import DEFAULT_CONFIG

LOGGER = logging.getLogger(__name__)


class SettingsRegistry:
    """Управляет группами настроек; экземпляр создаётся и передаётся явно.

    Изменение значения проходит три шага: валидация, вызов обработчика
    изменения (вне блокировки реестра) и фиксация. Если обработчик выбросил
    исключение, значение не меняется, а исключение уходит вызывающему.
    """

    def __init__(self, config_path: Path) -> None:
        self._file_path = config_path
        self._lock = threading.Lock()
        self._settings: Dict[str, SettingsGroup] = {
            group.group_name: group
            for group in (DockerSettings(), LoggingSettings(), StreamingSettings())
        }
        self._observers: List[SettingsObserver] = []
        self._handlers: Dict[Tuple[str, str], ChangeHandler] = {}
        self._metadata: Dict[str, Any] = {}
        self._dirty = False
        self._extract_metadata(DEFAULT_CONFIG)

    @property
    def config_path(self) -> Path:
        return self._file_path

    @property
    def dirty(self) -> bool:
        return self._dirty

    # --------------------------------------------------------------------- API
    def get_value(self, group: str, key: str) -> Any:
        settings_group = self._require_group(group)
        with self._lock:
            return settings_group.get(key)

    def set_value(self, group: str, key: str, value: Any, *, persist: bool = False) -> None:
        """Проверяет, применяет и сохраняет новое значение."""

        settings_group = self._require_group(group)
        settings_group.check(key, value)
        with self._lock:
            old_value = settings_group.get(key)
            handler = self._handlers.get((group, key))

        if handler is not None:
            handler(value)

        with self._lock:
            settings_group.set(key, value)
            self._dirty = True
            observers = list(self._observers)
        if persist:
            self.save_to_disk()
        self._notify(observers, group, key, old_value, value)

    def get_group(self, group: str) -> SettingsGroup:
        return self._require_group(group)

    def register_change_handler(self, group: str, key: str, handler: ChangeHandler) -> None:
        """Назначает обработчик, который должен принять новое значение до фиксации."""

        self._require_group(group)._require_key(key)
        with self._lock:
            self._handlers[(group, key)] = handler

    def unregister_change_handler(self, group: str, key: str) -> None:
        with self._lock:
            self._handlers.pop((group, key), None)

    def register_observer(self, observer: SettingsObserver) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unregister_observer(self, observer: SettingsObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def save_to_disk(self, path: Optional[Path] = None) -> None:
        target = path or self._file_path
        with self._lock:
            payload = dict(self._metadata)
            for name, group in self._settings.items():
                payload[name] = group.to_dict()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise SettingsIOError(target, str(exc)) from exc
        self._dirty = False

    def load_from_disk(self, path: Optional[Path] = None) -> None:
        """Читает config.json, дополняя отсутствующие ключи значениями по умолчанию.

        Обработчики изменений при загрузке не вызываются.
        """

        target = path or self._file_path
        if not target.exists():
            LOGGER.info("Config file %s not found, writing defaults.", target)
            self.save_to_disk(target)
            return
        try:
            content = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SettingsIOError(target, str(exc)) from exc
        if not isinstance(content, dict):
            raise SettingsIOError(target, "top-level JSON value must be an object")

        merged = self._merge_with_defaults(content)
        with self._lock:
            self._extract_metadata(merged)
            for name, group in self._settings.items():
                group_data = merged.get(name, {})
                if isinstance(group_data, dict):
                    group.from_dict(group_data)
        self._dirty = False

    def reset_to_defaults(self) -> None:
        with self._lock:
            for group in self._settings.values():
                group.reset_to_defaults()
            self._dirty = True

    # ----------------------------------------------------------------- helpers
    def _notify(
        self,
        observers: List[SettingsObserver],
        group: str,
        key: str,
        old_value: Any,
        new_value: Any,
    ) -> None:
        for observer in observers:
            try:
                observer.on_setting_changed(group, key, old_value, new_value)
            except Exception as exc:
                LOGGER.error("Observer %s failed: %s", observer, exc, exc_info=True)

    def _require_group(self, group: str) -> SettingsGroup:
        try:
            return self._settings[group]
        except KeyError:
            raise SettingsNotFoundError(group, None) from None

    def _merge_with_defaults(self, incoming: Dict[str, Any]) -> Dict[str, Any]:
        base = copy.deepcopy(DEFAULT_CONFIG)
        for key, value in incoming.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key].update(value)
            else:
                base[key] = value
        return base

    def _extract_metadata(self, data: Dict[str, Any]) -> None:
        self._metadata = {key: value for key, value in data.items() if key not in self._settings}
