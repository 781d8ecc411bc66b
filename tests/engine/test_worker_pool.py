from __future__ import annotations

from threading import Lock

import pytest

from zonefetch.engine import CancelToken, Channel, DownloadAndParseTask, RemoteEntry, WorkerPool
from zonefetch.errors import SessionError


def closed_jobs(*names: str) -> Channel[RemoteEntry]:
    jobs: Channel[RemoteEntry] = Channel()
    for name in names:
        jobs.put(RemoteEntry(name))
    jobs.close()
    return jobs


def make_task(sink: list[str]) -> DownloadAndParseTask:
    lock = Lock()

    def emit(line: str) -> None:
        with lock:
            sink.append(line)

    return DownloadAndParseTask(remote_path="/zonefiles", emit=emit)


def test_every_entry_processed_exactly_once(fake_remote, zone_payload) -> None:
    files = {f"z{i}.zone": zone_payload(f"h{i}.example. IN A 10.0.0.{i}") for i in range(20)}
    remote = fake_remote(files)
    lines: list[str] = []
    pool = WorkerPool(4, remote.factory, make_task(lines))
    outcomes = pool.run(closed_jobs(*files))
    assert sorted(outcome.name for outcome in outcomes) == sorted(files)
    assert all(outcome.ok for outcome in outcomes)
    assert sorted(remote.retrieved) == sorted(files)
    assert len(lines) == 20


def test_one_session_per_worker_reused_and_closed(fake_remote, zone_payload) -> None:
    files = {f"z{i}.zone": zone_payload(f"h{i}.example. IN A 10.0.0.{i}") for i in range(6)}
    remote = fake_remote(files)
    WorkerPool(1, remote.factory, make_task([])).run(closed_jobs(*files))
    assert len(remote.sessions) == 1
    assert remote.sessions[0].closed


def test_broken_session_is_replaced(fake_remote, zone_payload) -> None:
    files = {name: zone_payload(f"{name}.example. IN A 192.0.2.1") for name in ("a", "b", "c")}
    remote = fake_remote(files)
    remote.drop_connection.add("b")
    outcomes = WorkerPool(1, remote.factory, make_task([])).run(closed_jobs("a", "b", "c"))
    by_name = {outcome.name: outcome for outcome in outcomes}
    assert by_name["a"].ok and by_name["c"].ok
    assert by_name["b"].status == "failed"
    assert len(remote.sessions) == 2
    assert all(session.closed for session in remote.sessions)


def test_unavailable_session_fails_entries_without_hanging(fake_remote) -> None:
    remote = fake_remote({"a": b"", "b": b""})
    remote.connect_error = SessionError("cannot connect to ftp.invalid:21")
    outcomes = WorkerPool(2, remote.factory, make_task([])).run(closed_jobs("a", "b"))
    assert sorted(outcome.name for outcome in outcomes) == ["a", "b"]
    assert all(outcome.reason.startswith("session unavailable") for outcome in outcomes)


def test_unexpected_task_error_is_contained(fake_remote, zone_payload) -> None:
    remote = fake_remote({"a": zone_payload("a.example. IN A 192.0.2.1"), "b": zone_payload("b.example. IN A 192.0.2.2")})

    def emit(line: str) -> None:
        if line.startswith("a."):
            raise RuntimeError("sink exploded")

    task = DownloadAndParseTask(remote_path="/zonefiles", emit=emit)
    seen: list[str] = []
    outcomes = WorkerPool(1, remote.factory, task, on_outcome=lambda o: seen.append(o.name)).run(closed_jobs("a", "b"))
    by_name = {outcome.name: outcome for outcome in outcomes}
    assert by_name["a"].reason == "RuntimeError: sink exploded"
    assert by_name["b"].ok
    assert seen == ["a", "b"]


def test_pool_rejects_invalid_size(fake_remote) -> None:
    with pytest.raises(ValueError):
        WorkerPool(0, fake_remote().factory, make_task([]))


def test_cancelled_pool_skips_remaining_entries(fake_remote, zone_payload) -> None:
    files = {name: zone_payload(f"{name}.example. IN A 192.0.2.1") for name in ("a", "b")}
    remote = fake_remote(files)
    token = CancelToken()
    token.cancel("shutting down")
    outcomes = WorkerPool(1, remote.factory, make_task([]), cancel=token).run(closed_jobs("a", "b"))
    assert [outcome.status for outcome in outcomes] == ["cancelled", "cancelled"]
    assert remote.sessions == []
