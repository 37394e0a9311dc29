import json

import pytest

from fhome_protocol import FhomeFrame, FhomeRequest, ParseError


def test_frame_envelope():
    frame = FhomeFrame(b'{"action_name": "xevent", "request_token": "T1", "status": "ok", "source": "server"}')
    assert frame.action_name == "xevent"
    assert frame.request_token == "T1"
    assert frame.status == "ok"
    assert frame.source == "server"
    assert not frame.has_error_status


def test_frame_accepts_str():
    frame = FhomeFrame('{"action_name": "statustoucheschanged"}')
    assert frame.raw_data == b'{"action_name": "statustoucheschanged"}'
    assert frame.request_token is None
    assert frame.status is None


@pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b'{"status": "ok"}', b'{"action_name": 7}'])
def test_frame_rejects_malformed(raw):
    with pytest.raises(ParseError):
        FhomeFrame(raw)


def test_error_status():
    assert FhomeFrame.from_json_data({"action_name": "x", "status": "bad token"}).has_error_status
    assert not FhomeFrame.from_json_data({"action_name": "x", "status": ""}).has_error_status


def test_decode_returns_fresh_copy():
    frame = FhomeFrame.from_json_data({"action_name": "touches", "response": {"Cells": [1]}})
    data = frame.decode()
    data["response"]["Cells"].append(2)
    assert frame.decode()["response"]["Cells"] == [1]
    nested = frame.get("response")
    nested["Cells"].clear()
    assert frame.get("response") == {"Cells": [1]}


def test_matches():
    frame = FhomeFrame.from_json_data({"action_name": "xevent", "request_token": "T1"})
    assert frame.matches("xevent", "T1")
    assert frame.matches("xevent", None)
    assert frame.matches(None, None)
    assert not frame.matches("xevent", "T2")
    assert not frame.matches("touches", "T1")


def test_is_addressed_to():
    with_token = FhomeFrame.from_json_data({"action_name": "xevent", "request_token": "T1", "status": "denied"})
    assert with_token.is_addressed_to("xevent", "T1")
    assert not with_token.is_addressed_to("xevent", "T2")

    without_token = FhomeFrame.from_json_data({"action_name": "xevent", "status": "denied"})
    assert without_token.is_addressed_to("xevent", "T2")
    assert not without_token.is_addressed_to("touches", "T2")

    # a wait with no filter is addressed by everything
    assert with_token.is_addressed_to(None, None)


def test_request_json():
    request = FhomeRequest("get_my_resources", "ABCDEFGHIJKLM", email="a@b.com")
    assert json.loads(request.to_json()) == {
        "action_name": "get_my_resources",
        "email": "a@b.com",
        "request_token": "ABCDEFGHIJKLM",
    }


def test_authenticated_request_carries_credentials():
    request = FhomeRequest.authenticated("xevent", "T1", login="a@b.com", password_hash="HASH", cell_id="260")
    data = request.json_data
    assert data["login"] == "a@b.com"
    assert data["password"] == "HASH"
    assert data["cell_id"] == "260"


def test_request_str_redacts_password():
    request = FhomeRequest("open_client_session", "T1", email="a@b.com", password="secret")
    assert "secret" not in str(request)
    assert "a@b.com" in str(request)
