"""Tests for the remote authority client, using httpx.MockTransport"""

import json

import httpx
import pytest

from tasksync.errors import RemoteApplicationError, RemoteConnectivityError
from tasksync.schemas import RawPayload, TaskSnapshot
from tasksync.services.remote_client import RemoteClient

BASE_URL = "http://remote.test/api"


def make_client(handler):
    return RemoteClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def requests_seen():
    return []


def recording(requests_seen, status_code=200, **kwargs):
    def handler(request):
        requests_seen.append(request)
        return httpx.Response(status_code, **kwargs)
    return handler


def test_create_posts_snapshot(requests_seen):
    client = make_client(recording(requests_seen, 201, json={"id": "remote-1"}))
    snapshot = TaskSnapshot(id="t1", title="Hello")

    client.apply("create", snapshot, "t1")

    (request,) = requests_seen
    assert request.method == "POST"
    assert request.url == "http://remote.test/api/tasks"
    body = json.loads(request.content)
    assert body["id"] == "t1"
    assert body["title"] == "Hello"
    assert "kind" not in body


def test_update_puts_to_task_url(requests_seen):
    client = make_client(recording(requests_seen))

    client.apply("update", RawPayload(data={"completed": True}), "t1")

    (request,) = requests_seen
    assert request.method == "PUT"
    assert request.url.path == "/api/tasks/t1"
    assert json.loads(request.content) == {"completed": True}


def test_delete(requests_seen):
    client = make_client(recording(requests_seen, 204))

    client.apply("delete", RawPayload(), "t1")

    (request,) = requests_seen
    assert request.method == "DELETE"
    assert request.url.path == "/api/tasks/t1"


def test_rejection_uses_remote_message(requests_seen):
    client = make_client(recording(requests_seen, 409, json={"message": "conflict"}))

    with pytest.raises(RemoteApplicationError) as exc_info:
        client.apply("create", RawPayload(), "t1")

    assert str(exc_info.value) == "API Error: conflict"
    assert exc_info.value.status_code == 409


def test_rejection_without_json_body(requests_seen):
    client = make_client(recording(requests_seen, 500, text="oops"))

    with pytest.raises(RemoteApplicationError) as exc_info:
        client.apply("update", RawPayload(), "t1")

    assert str(exc_info.value).startswith("API Error:")
    assert exc_info.value.status_code == 500


def test_unknown_operation_is_application_failure(requests_seen):
    client = make_client(recording(requests_seen))

    with pytest.raises(RemoteApplicationError, match="Unknown operation"):
        client.apply("archive", RawPayload(), "t1")
    assert requests_seen == []


@pytest.mark.parametrize("error_cls", [httpx.ConnectError, httpx.ReadTimeout])
def test_transport_failure_is_connectivity_failure(error_cls):
    def handler(request):
        raise error_cls("unreachable", request=request)

    with pytest.raises(RemoteConnectivityError, match="unreachable"):
        make_client(handler).apply("create", RawPayload(), "t1")


@pytest.mark.parametrize(
    "status_code, expected",
    [(200, True), (404, True), (401, True), (500, False), (503, False)],
)
def test_probe_connectivity_by_status(requests_seen, status_code, expected):
    client = make_client(recording(requests_seen, status_code))

    assert client.probe_connectivity() is expected
    assert requests_seen[0].url.path == "/api/health"


def test_probe_connectivity_never_raises():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert make_client(handler).probe_connectivity() is False


def test_probe_connectivity_malformed_base_url():
    assert RemoteClient(base_url="http://[::1").probe_connectivity() is False
