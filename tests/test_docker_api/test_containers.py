"""Тесты функций работы с контейнерами."""

from __future__ import annotations

import pytest
from docker.errors import NotFound
from requests.exceptions import ConnectionError as RequestsConnectionError

from src.docker_api import containers
from src.docker_api.client import DockerClientWrapper
from src.docker_api.exceptions import ContainerNotFoundError, RuntimeUnavailableError

FULL_ID = "a1b2c3d4e5f6" + "0" * 52
STOPPED_ID = "ffeeddccbbaa" + "1" * 52


@pytest.fixture
def populated(fake_api):
    fake_api.container_list = [
        {
            "Id": FULL_ID,
            "Names": ["/web"],
            "Image": "nginx:latest",
            "State": "running",
            "Status": "Up 2 hours",
            "Created": 1700000000,
            "Labels": {
                "com.docker.compose.project": "shop",
                "com.docker.compose.service": "web",
            },
        },
        {
            "Id": STOPPED_ID,
            "Names": [],
            "Image": "redis",
            "State": "exited",
            "Status": "Exited (0)",
            "Created": 1690000000,
            "Labels": None,
        },
    ]
    fake_api.inspect_data[FULL_ID] = {
        "Id": FULL_ID,
        "Name": "/web",
        "Created": "2024-01-15T10:30:00.123456789Z",
        "State": {"Status": "running", "Health": {"Status": "healthy"}},
        "Config": {
            "Image": "nginx:latest",
            "Env": ["A=1"],
            "Hostname": "a1b2c3d4e5f6",
            "Labels": {"com.docker.compose.project": "shop"},
        },
        "HostConfig": {"RestartPolicy": {"Name": "always", "MaximumRetryCount": 0}},
        "NetworkSettings": {
            "Networks": {"bridge": {"NetworkID": "n1", "IPAddress": "172.17.0.2"}},
            "Ports": {
                "80/tcp": [{"HostIp": "0.0.0.0", "HostPort": "8080"}],
                "443/tcp": None,
            },
        },
        "Mounts": [
            {"Type": "volume", "Source": "/var/lib/x", "Destination": "/data", "RW": True}
        ],
    }
    return fake_api


def test_list_containers_maps_summary(populated, client: DockerClientWrapper) -> None:
    items = containers.list_containers(client)

    assert [item.id for item in items] == ["a1b2c3d4e5f6", "ffeeddccbbaa"]
    web, stopped = items
    assert web.name == "web"
    assert web.health == "healthy"
    assert web.compose_project == "shop"
    assert web.compose_service == "web"
    assert web.created == 1700000000
    assert stopped.name == "unknown"
    assert stopped.health == "none"
    assert stopped.compose_project == ""


def test_health_is_inspected_only_for_running(populated, client: DockerClientWrapper) -> None:
    containers.list_containers(client)
    inspected = [args[0] for args, _ in populated.called("inspect_container")]
    assert inspected == [FULL_ID]


def test_health_lookup_failure_is_none(populated, client: DockerClientWrapper) -> None:
    del populated.inspect_data[FULL_ID]
    items = containers.list_containers(client)
    assert items[0].health == "none"


def test_list_containers_unreachable(fake_api, client: DockerClientWrapper) -> None:
    fake_api.errors["containers"] = RequestsConnectionError("refused")
    with pytest.raises(RuntimeUnavailableError):
        containers.list_containers(client)


def test_get_container_detail(populated, client: DockerClientWrapper) -> None:
    detail = containers.get_container_detail(client, FULL_ID)

    assert detail.id == "a1b2c3d4e5f6"
    assert detail.name == "web"
    assert detail.status == "running"
    assert detail.health == "healthy"
    assert detail.created == 1705314600
    assert detail.restart_policy is not None and detail.restart_policy.name == "always"
    assert detail.env == ("A=1",)
    assert detail.networks["bridge"].ip_address == "172.17.0.2"
    assert {port.container_port for port in detail.ports} == {"80/tcp", "443/tcp"}
    unpublished = next(port for port in detail.ports if port.container_port == "443/tcp")
    assert unpublished.host_port is None
    assert detail.mounts[0].destination == "/data"
    payload = detail.to_dict()
    assert payload["ports"][0]["host_port"] == "8080"
    assert payload["is_self"] is False


def test_get_container_detail_not_found(client: DockerClientWrapper) -> None:
    with pytest.raises(ContainerNotFoundError):
        containers.get_container_detail(client, "missing")


def test_stop_and_restart_use_grace_period(fake_api, client: DockerClientWrapper) -> None:
    containers.stop_container(client, "abc")
    containers.restart_container(client, "abc")
    assert fake_api.called("stop") == [(("abc",), {"timeout": 10})]
    assert fake_api.called("restart") == [(("abc",), {"timeout": 10})]


def test_start_container_translates_not_found(fake_api, client: DockerClientWrapper) -> None:
    fake_api.errors["start"] = NotFound("No such container: abc")
    with pytest.raises(ContainerNotFoundError) as info:
        containers.start_container(client, "abc")
    assert info.value.http_status == 404


def test_stream_logs_requests_tail_and_timestamps(fake_api, client: DockerClientWrapper) -> None:
    stream = containers.stream_logs(client, "abc", follow=True)
    (url,), kwargs = fake_api.called("logs")[0]
    assert url == "/containers/abc/logs"
    assert kwargs["params"]["tail"] == "100"
    assert kwargs["params"]["timestamps"] == 1
    assert kwargs["params"]["follow"] == 1
    assert kwargs["stream"] is True
    stream.close()
    stream.close()
    assert stream.closed
    assert fake_api.responses[0].closed
    assert stream.read(10) == b""
