import json

import pytest

from tasksync.errors import MalformedPayloadError
from tasksync.schemas import RawPayload, TaskSnapshot, decode_payload, encode_payload


def test_full_snapshot_decodes_as_task():
    text = json.dumps({
        "id": "t1",
        "title": "Hello",
        "description": "",
        "completed": False,
        "created_at": "2026-01-02T03:04:05",
        "updated_at": "2026-01-02T03:04:05",
        "is_deleted": False,
        "sync_status": "pending",
        "server_id": None,
        "last_synced_at": None,
    })

    payload = decode_payload(text)

    assert isinstance(payload, TaskSnapshot)
    assert payload.kind == "task"
    body = payload.to_request_body()
    assert "kind" not in body
    assert body["title"] == "Hello"
    assert body["created_at"] == "2026-01-02T03:04:05"


def test_partial_object_falls_back_to_raw():
    payload = decode_payload('{"completed": true}')

    assert isinstance(payload, RawPayload)
    assert payload.to_request_body() == {"completed": True}


def test_empty_payload():
    assert decode_payload("") == RawPayload()
    assert decode_payload(None).to_request_body() == {}


@pytest.mark.parametrize("text", ["{not json", "[1, 2]", '"text"', "42"])
def test_malformed_payload(text):
    with pytest.raises(MalformedPayloadError):
        decode_payload(text)


def test_encode_payload():
    assert encode_payload(None) == ""
    assert json.loads(encode_payload({"a": 1})) == {"a": 1}
    with pytest.raises(TypeError):
        encode_payload("not a dict")
