"""Тесты определения собственного контейнера."""

from __future__ import annotations

from pathlib import Path

from src.docker_api.identity import detect_self_identity

LONG_ID = "3f4e5d6c7b8a" + "9" * 52


def _detect(tmp_path: Path, *, marker: bool = False, cgroup: str | None = None, env=None):
    marker_path = tmp_path / ".dockerenv"
    if marker:
        marker_path.write_text("", encoding="utf-8")
    cgroup_path = tmp_path / "cgroup"
    if cgroup is not None:
        cgroup_path.write_text(cgroup, encoding="utf-8")
    return detect_self_identity(
        marker_path=marker_path, cgroup_path=cgroup_path, environ=env or {}
    )


def test_outside_container(tmp_path: Path) -> None:
    identity = _detect(tmp_path, cgroup="0::/user.slice/session-1.scope\n")
    assert identity.in_container is False
    assert identity.container_id == ""


def test_id_from_docker_cgroup_line(tmp_path: Path) -> None:
    identity = _detect(tmp_path, cgroup=f"12:memory:/docker/{LONG_ID}\n")
    assert identity.in_container is True
    assert identity.container_id == "3f4e5d6c7b8a"


def test_orchestrator_line_sets_flag_only(tmp_path: Path) -> None:
    identity = _detect(tmp_path, cgroup="1:name=systemd:/kubepods/besteffort/pod1\n")
    assert identity.in_container is True
    assert identity.container_id == ""


def test_marker_with_hostname_fallback(tmp_path: Path) -> None:
    identity = _detect(tmp_path, marker=True, env={"HOSTNAME": "ABCDEF123456"})
    assert identity.in_container is True
    assert identity.container_id == "abcdef123456"


def test_hostname_of_other_length_is_ignored(tmp_path: Path) -> None:
    identity = _detect(tmp_path, marker=True, env={"HOSTNAME": "my-host"})
    assert identity.in_container is True
    assert identity.container_id == ""


def test_hostname_not_used_outside_container(tmp_path: Path) -> None:
    identity = _detect(tmp_path, env={"HOSTNAME": "abcdef123456"})
    assert identity.in_container is False
    assert identity.container_id == ""


def test_cgroup_id_preferred_over_hostname(tmp_path: Path) -> None:
    identity = _detect(
        tmp_path,
        marker=True,
        cgroup=f"0::/docker/{LONG_ID}\n",
        env={"HOSTNAME": "aaaaaaaaaaaa"},
    )
    assert identity.container_id == "3f4e5d6c7b8a"
