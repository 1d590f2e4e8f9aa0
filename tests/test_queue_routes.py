"""Tests for login, distributor and display routes"""

import base64
import json
from pathlib import Path

from fastapi.testclient import TestClient
from itsdangerous import URLSafeTimedSerializer

from qticket.auth.display_link import encode_display_link
from qticket.auth.session import session_tag
from qticket.models.session import Session


def create_test_app(tmp_dir: Path, clock):
    from qticket.utils.config import ServerSettings, Settings
    from web.context import ServerContext
    from web.main import create_app

    settings = Settings(server=ServerSettings(data_dir=str(tmp_dir)))
    return create_app(ServerContext(settings, clock), start_scheduler=False)


def _login(client, queue="Clinic-A", password="abcd1234"):
    return client.post("/auth/login", data={"queueName": queue, "password": password})


def test_login_creates_queue_and_sets_cookie(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))

    res = _login(client)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["queue"] == "Clinic-A"
    assert body["created"] is True
    assert body["distributorUrl"].startswith("/distributor/Clinic-A?token=")
    assert "qticket_session" in client.cookies

    assert _login(client).json()["created"] is False


def test_login_errors(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))

    res = _login(client, queue="bad/name")
    assert res.status_code == 400
    assert "Queue name can only contain" in res.json()["detail"]

    _login(client)
    res = _login(client, password="wrong123")
    assert res.status_code == 401
    assert res.json() == {"detail": "Invalid password for existing queue", "redirect": "/login"}


def test_distributor_flow_with_session_cookie(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)

    for expected in (1, 2, 3):
        res = client.post("/distributor/Clinic-A/issue")
        assert res.status_code == 200, res.text
        assert res.json()["ticket"]["number"] == expected
    assert res.json()["message"] == "Queue 3 generated"
    assert "/display?queue=" in res.json()["ticket"]["displayUrl"]

    res = client.post("/distributor/Clinic-A/call")
    assert res.json()["message"] == "Calling Queue 1"

    status = client.get("/distributor/Clinic-A").json()
    assert (status["nextIssued"], status["calling"], status["outstanding"]) == (3, 1, 2)


def test_distributor_requires_auth(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    res = client.get("/distributor/Clinic-A")
    assert res.status_code == 401
    assert res.json() == {"detail": "Not logged in", "redirect": "/login"}


def test_deep_link_token_grants_access(tmp_path, clock):
    app = create_test_app(tmp_path, clock)
    token = _login(TestClient(app)).json()["token"]

    fresh = TestClient(app)
    assert fresh.get("/distributor/Clinic-A", params={"token": token}).status_code == 200
    res = fresh.get("/distributor/Clinic-A", params={"token": token + "x"})
    assert res.status_code == 401
    assert res.json()["redirect"] == "/login"


def test_session_for_other_queue_is_rejected(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)
    _login(TestClient(client.app), queue="Clinic-B", password="efgh5678")

    res = client.get("/distributor/Clinic-B")
    assert res.status_code == 401
    assert res.json()["detail"] == "Session belongs to a different queue"


def test_session_expires(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)
    clock.advance(hours=9)
    res = client.get("/distributor/Clinic-A")
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired or invalid"


def test_reset_needs_confirmation(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)
    client.post("/distributor/Clinic-A/issue")

    res = client.post("/distributor/Clinic-A/reset")
    assert res.json()["message"] == "Reset cancelled"
    assert res.json()["status"]["nextIssued"] == 1

    res = client.post("/distributor/Clinic-A/reset", params={"confirm": "true"})
    assert res.json()["message"] == "All queues have been reset!"
    assert res.json()["status"]["nextIssued"] == 0


def test_delete_queue_redirects_to_login(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)

    res = client.request("DELETE", "/distributor/Clinic-A", params={"confirm": "true"})
    assert res.status_code == 200
    assert res.json()["redirect"] == "/login"
    assert res.json()["status"] is None

    assert client.get("/queue-auth.json").status_code == 404
    assert client.get("/distributor/Clinic-A").status_code == 401


def test_patient_display_link(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)
    for _ in range(3):
        client.post("/distributor/Clinic-A/issue")
    client.post("/distributor/Clinic-A/call")
    clock.advance(minutes=3)

    queue_param, number_param = encode_display_link("Clinic-A", 3)
    res = client.get("/display", params={"queue": queue_param, "number": number_param})
    assert res.status_code == 200, res.text
    view = res.json()
    assert view["calling"] == 1
    assert view["viewer"]["ahead"] == 2
    assert view["viewer"]["message"] == "2 ahead"
    assert view["viewer"]["wait"] == "3m 0s"


def test_display_link_for_unknown_queue(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    queue_param, number_param = encode_display_link("Nope", 1)
    res = client.get("/display", params={"queue": queue_param, "number": number_param})
    assert res.status_code == 401
    assert res.json()["detail"] == "Queue not found"


def test_public_display_banner(tmp_path, clock):
    client = TestClient(create_test_app(tmp_path, clock))
    _login(client)
    assert client.get("/display/Clinic-A").json()["banner"] == "Waiting for first call"

    client.post("/distributor/Clinic-A/issue")
    client.post("/distributor/Clinic-A/call")
    assert client.get("/display/Clinic-A").json() == {
        "queueName": "Clinic-A",
        "calling": 1,
        "banner": "Now calling 1",
    }
    assert client.get("/display/Unknown").status_code == 404


def _session_document(clock, queue="Clinic-A"):
    now = clock()
    return Session(queue_name=queue, login_time=now, tag=session_tag(queue, now)).to_document()


def test_hand_built_session_cookie_is_rejected(tmp_path, clock):
    app = create_test_app(tmp_path, clock)
    _login(TestClient(app))

    intruder = TestClient(app)
    raw = json.dumps(_session_document(clock)).encode("utf-8")
    intruder.cookies.set("qticket_session", base64.urlsafe_b64encode(raw).decode("ascii"))

    res = intruder.request("DELETE", "/distributor/Clinic-A", params={"confirm": "true"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired or invalid"
    assert TestClient(app).get("/queue-auth.json").status_code == 200


def test_cookie_signed_with_other_key_is_rejected(tmp_path, clock):
    app = create_test_app(tmp_path, clock)
    _login(TestClient(app))

    intruder = TestClient(app)
    forged = URLSafeTimedSerializer("guessed-secret", salt="qticket-session").dumps(_session_document(clock))
    intruder.cookies.set("qticket_session", forged)

    res = intruder.post("/distributor/Clinic-A/issue")
    assert res.status_code == 401
    assert res.json()["redirect"] == "/login"
