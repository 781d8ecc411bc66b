from __future__ import annotations

from zonefetch.engine import CancelToken, DownloadAndParseTask, RemoteEntry
from zonefetch.engine.task import origin_from_name


def make_task(lines: list[str], **kwargs) -> DownloadAndParseTask:
    return DownloadAndParseTask(remote_path="/zonefiles", emit=lines.append, **kwargs)


def test_compressed_entry_is_decompressed_and_parsed(fake_remote, gzip_payload) -> None:
    remote = fake_remote({"A.gz": gzip_payload("a.example. IN A 1.2.3.4", "B.EXAMPLE. IN A 5.6.7.8")})
    emitted: list[str] = []
    outcome = make_task(emitted).process(RemoteEntry("A.gz", 100), remote.factory())
    assert outcome.ok
    assert outcome.records == 2
    assert emitted == ["a.example. IN A 1.2.3.4", "B.EXAMPLE. IN A 5.6.7.8"]


def test_plain_entry_is_parsed_directly(fake_remote, zone_payload) -> None:
    remote = fake_remote({"B.txt": zone_payload("b.example. 60 IN TXT \"hi\"")})
    emitted: list[str] = []
    outcome = make_task(emitted).process(RemoteEntry("B.txt"), remote.factory())
    assert outcome.ok
    assert emitted == ['b.example. 60 IN TXT "hi"']
    assert remote.retrieved == ["B.txt"]


def test_record_errors_do_not_abort_the_entry(fake_remote, zone_payload) -> None:
    remote = fake_remote({"c.zone": zone_payload("ok.example. IN A 1.1.1.1", "broken IN A nope", "ok2.example. IN A 2.2.2.2")})
    emitted: list[str] = []
    outcome = make_task(emitted).process(RemoteEntry("c.zone"), remote.factory())
    assert outcome.ok
    assert outcome.records == 2
    assert outcome.record_errors == 1


def test_corrupt_header_fails_entry_without_output(fake_remote) -> None:
    remote = fake_remote({"bad.gz": b"this is not gzip at all"})
    emitted: list[str] = []
    outcome = make_task(emitted).process(RemoteEntry("bad.gz"), remote.factory())
    assert outcome.status == "failed"
    assert outcome.reason.startswith("DecompressionInitError")
    assert not outcome.session_broken
    assert emitted == []


def test_refused_retrieval_fails_entry(fake_remote) -> None:
    remote = fake_remote({"gone.zone": b""})
    remote.refuse.add("gone.zone")
    outcome = make_task([]).process(RemoteEntry("gone.zone"), remote.factory())
    assert outcome.status == "failed"
    assert outcome.reason.startswith("RetrievalError")
    assert not outcome.session_broken


def test_connection_loss_flags_session(fake_remote) -> None:
    remote = fake_remote({"x.zone": b""})
    remote.drop_connection.add("x.zone")
    outcome = make_task([]).process(RemoteEntry("x.zone"), remote.factory())
    assert outcome.status == "failed"
    assert outcome.session_broken


def test_midstream_failure_keeps_already_emitted_records(fake_remote, zone_payload) -> None:
    remote = fake_remote({"d.zone": zone_payload("a.example. IN A 1.1.1.1", "b.example. IN A 2.2.2.2")})
    remote.break_midstream.add("d.zone")
    emitted: list[str] = []
    session = remote.factory()
    outcome = make_task(emitted).process(RemoteEntry("d.zone"), session)
    assert outcome.status == "failed"
    assert outcome.reason.startswith("StreamError")
    assert outcome.records == 2
    assert outcome.session_broken
    assert len(emitted) == 2


def test_cancellation_stops_between_records(fake_remote, zone_payload) -> None:
    remote = fake_remote({"e.zone": zone_payload("a.example. IN A 1.1.1.1", "b.example. IN A 2.2.2.2")})
    token = CancelToken()
    emitted: list[str] = []

    def emit(line: str) -> None:
        emitted.append(line)
        token.cancel("stop")

    task = DownloadAndParseTask(remote_path="/zonefiles", emit=emit, cancel=token)
    outcome = task.process(RemoteEntry("e.zone"), remote.factory())
    assert outcome.status == "cancelled"
    assert outcome.reason == "stop"
    assert emitted == ["a.example. IN A 1.1.1.1"]


def test_origin_from_filename(fake_remote, gzip_payload) -> None:
    assert origin_from_name("com.zone.gz") == "com."
    assert origin_from_name("example.net.txt") == "example.net."
    assert origin_from_name(".gz") == ""

    remote = fake_remote({"org.zone.gz": gzip_payload("www IN A 192.0.2.7")})
    emitted: list[str] = []
    outcome = make_task(emitted, origin_from_filename=True).process(RemoteEntry("org.zone.gz"), remote.factory())
    assert outcome.ok
    assert emitted == ["www.org. IN A 192.0.2.7"]
