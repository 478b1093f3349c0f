import pytest
from flask import Flask, Response, request

from conftest import GOOD, FakeUpstream
from cors_proxy import traffic
from cors_proxy.traffic import ResponseCapture, dump_request


def _messages(records, prefix):
    return [r["message"] for r in records if r["message"].startswith(prefix)]


def test_request_and_response_are_logged(client, session, log_records):
    session.reply = FakeUpstream(201, b'{"id":9}', [("Content-Type", "application/json")])
    client.post(
        "/items?dry=1",
        data=b'{"name":"x"}',
        headers={"Origin": GOOD, "Content-Type": "application/json"},
        buffered=True,
    )

    (incoming,) = _messages(log_records, "Incoming Request:")
    assert "POST /items?dry=1 HTTP/1.1\r\n" in incoming
    assert "Host: localhost\r\n" in incoming
    assert "Origin: http://good.example\r\n" in incoming
    assert incoming.endswith('\r\n\r\n{"name":"x"}')

    assert _messages(log_records, "Outgoing Response:") == [
        'Outgoing Response: Status 201, Body: {"id":9}'
    ]
    assert session.calls[0]["data"] == b'{"name":"x"}'


def test_denied_requests_are_logged(client, log_records):
    client.get("/data", headers={"Origin": "http://evil.example"}, buffered=True)
    assert _messages(log_records, "Outgoing Response:") == [
        "Outgoing Response: Status 403, Body: CORS origin denied\n"
    ]


def test_logging_disabled_emits_nothing(make_client, log_records):
    make_client(traffic_log=False).get("/data", buffered=True)
    assert _messages(log_records, "Incoming Request:") == []
    assert _messages(log_records, "Outgoing Response:") == []


@pytest.mark.parametrize("path, origin", [("/data", GOOD), ("/data", "http://evil.example"), ("/gone", GOOD)])
def test_logging_does_not_change_client_bytes(make_client, session, path, origin):
    session.reply = FakeUpstream(
        200,
        chunks=[b"one,", b"two"],
        headers=[("Content-Type", "text/csv"), ("ETag", '"v1"')],
    )
    seen = []
    for enabled in (True, False):
        response = make_client(allowed_origins=GOOD, traffic_log=enabled).get(
            path, headers={"Origin": origin}, buffered=True
        )
        seen.append((response.status_code, sorted(response.headers.items()), response.data))
    assert seen[0] == seen[1]


def test_dump_failure_does_not_abort_request(client, session, log_records, monkeypatch):
    def broken(request):
        raise OSError("body unreadable")

    monkeypatch.setattr(traffic, "dump_request", broken)
    response = client.get("/data", headers={"Origin": GOOD})

    assert response.status_code == 200
    assert len(session.calls) == 1
    failures = [r for r in log_records if r["message"] == "Failed to dump request"]
    assert failures and failures[0]["level"].name == "ERROR"


def test_dump_request_keeps_body_for_forwarding():
    app = Flask(__name__)
    with app.test_request_context("/p/a%20b", method="PATCH", data=b"\xffraw", headers={"X-A": "1"}):
        dumped = dump_request(request)
        assert dumped.startswith("PATCH /p/a%20b HTTP/1.1\r\nHost: localhost\r\n")
        assert "X-A: 1\r\n" in dumped
        assert dumped.endswith("\r\n\r\n\ufffdraw")
        assert request.get_data() == b"\xffraw"


def test_capture_defaults_to_200_and_tees_chunks():
    capture = ResponseCapture()
    assert capture.status_code == 200

    out = list(capture.tee(iter([b"a", b"bc"])))
    assert out == [b"a", b"bc"]
    assert capture.body == b"abc"


def test_capture_attach_records_status():
    capture = ResponseCapture()
    response = capture.attach(Response("nope", 404))
    assert capture.status_code == 404
    assert b"".join(response.response) == b"nope"
    assert capture.body == b"nope"


def test_each_request_gets_its_own_capture(client, session, log_records):
    session.reply = FakeUpstream(200, b"same", [("Content-Type", "text/plain")])
    client.get("/a", headers={"Origin": GOOD}, buffered=True)
    client.get("/b", headers={"Origin": GOOD}, buffered=True)
    assert _messages(log_records, "Outgoing Response:") == [
        "Outgoing Response: Status 200, Body: same",
        "Outgoing Response: Status 200, Body: same",
    ]
