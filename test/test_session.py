import asyncio

import pytest
from forge_chat_client.errors import (
    UNKNOWN_ERROR_MESSAGE,
    PollingTimeoutError,
    TaskFailureError,
    TransportError,
    describe_error,
)
from forge_chat_client.models import PollerState, PollingConfig
from forge_chat_client.session import ChatSession


def _session(server, config) -> ChatSession:
    session = ChatSession(server.base_url, config)
    session.credential = "key123"
    session.prompt = "hello"
    return session


def test_can_submit_requires_inputs_and_idle():
    session = ChatSession()
    assert not session.can_submit

    session.credential = "key123"
    assert not session.can_submit

    session.prompt = "hello"
    assert session.can_submit

    session.loading = True
    assert not session.can_submit


@pytest.mark.asyncio
async def test_send_success_builds_tree(server, config):
    session = _session(server, config)

    response = await session.send()

    assert response == {"metadata": {"status": "succeeded"}, "data": {"x": 1}}
    assert session.error is None
    assert not session.loading
    assert session.tree.text == "Object"
    assert not session.tree.expanded


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "setup, message",
    [
        ({"final_status": "failed"}, "Task failed"),
        ({"final_status": "cancelled"}, "Task cancelled"),
        ({"pending_polls": 100}, "Polling timed out"),
        ({"poll_error_status": 502}, "HTTP error! status: 502"),
        ({"api_key": "other"}, "HTTP error! status: 401"),
    ],
)
async def test_send_reports_errors(server, config, setup, message):
    for name, value in setup.items():
        setattr(server, name, value)
    session = _session(server, config)

    response = await session.send()

    assert response is None
    assert session.error == message
    assert session.tree is None
    assert not session.loading


@pytest.mark.asyncio
async def test_malformed_body_reported_with_its_message(server, config):
    server.malformed_polls = True
    session = _session(server, config)

    await session.send()

    assert "unexpected mimetype" in session.error


@pytest.mark.asyncio
async def test_new_submission_clears_previous_state(server, config):
    server.final_status = "failed"
    session = _session(server, config)
    await session.send()
    assert session.error == "Task failed"

    server.final_status = "succeeded"
    server.poll_count = 0
    await session.send()

    assert session.error is None
    assert session.response["data"] == {"x": 1}


def test_describe_error():
    assert describe_error(TransportError(404)) == "HTTP error! status: 404"
    assert describe_error(TaskFailureError("cancelled")) == "Task cancelled"
    assert describe_error(PollingTimeoutError(60)) == "Polling timed out"
    assert describe_error(ValueError("bad json")) == "bad json"
    assert describe_error(RuntimeError()) == UNKNOWN_ERROR_MESSAGE


def test_polling_timeout_is_a_timeout_error():
    assert isinstance(PollingTimeoutError(3), TimeoutError)


@pytest.mark.asyncio
async def test_cancel_ends_in_error_message(server):
    server.pending_polls = 100
    session = _session(server, PollingConfig(max_attempts=3, interval=30))

    sending = asyncio.create_task(session.send())
    while session.poller is None or session.poller.state is not PollerState.polling:
        await asyncio.sleep(0.01)
    session.cancel()
    await asyncio.wait_for(sending, timeout=5)

    assert session.error == "Polling for task abc was cancelled"
    assert not session.loading
