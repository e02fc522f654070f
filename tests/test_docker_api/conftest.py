"""Общие фейки docker-py для тестов слоя docker_api."""

from __future__ import annotations

import io
import struct
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from docker.errors import APIError, NotFound
from requests.exceptions import ConnectionError as RequestsConnectionError

from src.docker_api.client import DockerClientWrapper


def frame(stream: int, payload: bytes) -> bytes:
    return struct.pack(">BxxxL", stream, len(payload)) + payload


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self.raw = io.BytesIO(body)
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeAPI:
    """Низкоуровневый APIClient с записью вызовов."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []
        self.container_list: List[Dict[str, Any]] = []
        self.inspect_data: Dict[str, Dict[str, Any]] = {}
        self.volume_list: List[Dict[str, Any]] = []
        self.log_bodies: Dict[str, bytes] = {}
        self.default_log_body = b""
        self.errors: Dict[str, Exception] = {}
        self.created = 0
        self.responses: List[FakeResponse] = []

    def _record(self, name: str, /, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        error = self.errors.get(name)
        if error is not None:
            raise error

    def called(self, name: str) -> List[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    def ping(self) -> bool:
        self._record("ping")
        return True

    def containers(self, all: bool = False) -> List[Dict[str, Any]]:
        self._record("containers", all=all)
        return self.container_list

    def inspect_container(self, container_id: str) -> Dict[str, Any]:
        self._record("inspect_container", container_id)
        if container_id not in self.inspect_data:
            raise NotFound(f"No such container: {container_id}")
        return self.inspect_data[container_id]

    def start(self, container_id: str) -> None:
        self._record("start", container_id)

    def stop(self, container_id: str, timeout: Optional[int] = None) -> None:
        self._record("stop", container_id, timeout=timeout)

    def restart(self, container_id: str, timeout: Optional[int] = None) -> None:
        self._record("restart", container_id, timeout=timeout)

    def volumes(self) -> Dict[str, Any]:
        self._record("volumes")
        return {"Volumes": self.volume_list}

    def remove_volume(self, name: str, force: bool = False) -> None:
        self._record("remove_volume", name, force=force)

    def create_host_config(self, binds: List[str]) -> Dict[str, Any]:
        return {"Binds": binds}

    def create_container(self, image: str, **kwargs: Any) -> Dict[str, str]:
        self._record("create_container", image, **kwargs)
        self.created += 1
        return {"Id": f"tmp{self.created:061d}"}

    def wait(self, container_id: str, condition: str = "") -> Dict[str, int]:
        self._record("wait", container_id, condition=condition)
        return {"StatusCode": 0}

    def remove_container(self, container_id: str, force: bool = False) -> None:
        self._record("remove_container", container_id, force=force)

    # внутренние методы, которыми пользуется open_log_stream
    def _url(self, template: str, *args: str) -> str:
        return template.format(*args)

    def _get(self, url: str, params: Dict[str, Any], stream: bool = False) -> FakeResponse:
        self._record("logs", url, params=params, stream=stream)
        container_id = url.split("/")[2]
        response = FakeResponse(self.log_bodies.get(container_id, self.default_log_body))
        self.responses.append(response)
        return response

    def _raise_for_status(self, response: FakeResponse) -> None:
        return None

    def _get_raw_response_socket(self, response: FakeResponse) -> None:
        return None

    def _disable_socket_timeout(self, sock: Any) -> None:
        return None


class FakeRawClient:
    def __init__(self, api: FakeAPI) -> None:
        self.api = api
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_frame() -> Callable[[int, bytes], bytes]:
    return frame


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def client(fake_api: FakeAPI) -> DockerClientWrapper:
    return DockerClientWrapper("/var/run/docker.sock", raw_client=FakeRawClient(fake_api))


def api_error(status: int, message: str) -> APIError:
    response = type(
        "Response", (), {"status_code": status, "reason": message, "url": "http://docker"}
    )()
    return APIError(message, response=response, explanation=message)


@pytest.fixture
def make_api_error() -> Callable[[int, str], APIError]:
    return api_error


class FakeClientFactory:
    """Создаёт клиентов поверх отдельных FakeAPI и запоминает их по пути сокета."""

    def __init__(self) -> None:
        self.apis: Dict[str, FakeAPI] = {}
        self.raws: List[FakeRawClient] = []
        self.failing: set[str] = set()

    def __call__(self, path: str) -> DockerClientWrapper:
        api = FakeAPI()
        if path in self.failing:
            api.errors["ping"] = RequestsConnectionError("connection refused")
        raw = FakeRawClient(api)
        self.apis[path] = api
        self.raws.append(raw)
        return DockerClientWrapper(path, raw_client=raw)


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()
