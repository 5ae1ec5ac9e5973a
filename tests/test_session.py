"""Tests for chat_client.api and chat_client.session."""

import asyncio
import json

import httpx
import pytest

from chat_client.api import ApiError, ConversationApi
from chat_client.session import ERROR_NOTICE, ChatSession, MessageStatus

CONVERSATION = {
    "id": "7b7e0c55-1f7c-4b8e-9a8a-0f1f2d3c4b5a",
    "title": "Octopus facts",
    "threadId": "thread-1",
    "messageCount": 2,
    "messages": [
        {"content": "Tell me about octopuses", "sender": "user", "timestamp": "2024-05-01T10:00:00Z"},
        {"content": "They have three hearts.", "sender": "ai", "timestamp": "2024-05-01T10:00:02Z"},
    ],
    "createdAt": "2024-05-01T10:00:00Z",
    "updatedAt": "2024-05-01T10:00:02Z",
}


def reply_body(thread_id="thread-new", text="Hi there!", title="Greeting"):
    return {
        "success": True,
        "response": text,
        "threadId": thread_id,
        "conversationId": "7b7e0c55-1f7c-4b8e-9a8a-0f1f2d3c4b5a",
        "messageCount": 2,
        "conversationTitle": title,
        "isNewConversation": True,
    }


def make_api(handler):
    return ConversationApi(base_url="http://test/api", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_api_raises_with_server_error_message():
    def handler(request):
        return httpx.Response(404, json={"success": False, "error": "Conversation not found"})

    async with make_api(handler) as api:
        with pytest.raises(ApiError) as exc_info:
            await api.get_conversation("missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Conversation not found"


@pytest.mark.asyncio
async def test_api_omits_thread_id_for_new_conversation():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=reply_body())

    async with make_api(handler) as api:
        await api.send_message("Hello")
        await api.send_message("Hello again", "thread-1")

    assert seen == [{"message": "Hello"}, {"message": "Hello again", "threadId": "thread-1"}]


@pytest.mark.asyncio
async def test_select_replaces_local_messages():
    def handler(request):
        assert request.url.path == "/api/conversations/thread-1"
        return httpx.Response(200, json={"success": True, "data": CONVERSATION})

    async with make_api(handler) as api:
        session = ChatSession(api)
        session.messages = ["stale"]

        assert await session.select("thread-1") is True

    assert session.active_thread_id == "thread-1"
    assert session.title == "Octopus facts"
    assert [m.content for m in session.messages] == ["Tell me about octopuses", "They have three hearts."]


@pytest.mark.asyncio
async def test_select_failure_sets_error():
    def handler(request):
        return httpx.Response(404, json={"success": False, "error": "Conversation not found"})

    async with make_api(handler) as api:
        session = ChatSession(api)
        assert await session.select("gone") is False

    assert session.messages == []
    assert session.last_error == "Failed to load conversation"


def test_new_conversation_clears_state():
    session = ChatSession(api=None)
    session.active_thread_id = "thread-1"
    session.messages = ["something"]
    session.last_error = "boom"

    session.new_conversation()

    assert session.active_thread_id is None
    assert session.messages == []
    assert session.last_error is None


@pytest.mark.asyncio
async def test_send_adopts_server_thread_id():
    def handler(request):
        return httpx.Response(200, json=reply_body())

    async with make_api(handler) as api:
        session = ChatSession(api)
        assert await session.send("Hello") is True

    assert session.active_thread_id == "thread-new"
    assert session.title == "Greeting"
    assert [(m.sender, m.content, m.status) for m in session.messages] == [
        ("user", "Hello", MessageStatus.CONFIRMED),
        ("ai", "Hi there!", MessageStatus.CONFIRMED),
    ]
    assert session.is_sending is False


@pytest.mark.asyncio
async def test_send_shows_pending_message_while_in_flight():
    release = asyncio.Event()
    snapshots = []

    async def handler(request):
        await release.wait()
        return httpx.Response(200, json=reply_body())

    async with make_api(handler) as api:
        session = ChatSession(api)
        task = asyncio.create_task(session.send("Hello"))
        await asyncio.sleep(0)
        snapshots.append([(m.content, m.status) for m in session.messages])

        # a second send while one is in flight is refused
        assert await session.send("Again") is False

        release.set()
        assert await task is True

    assert snapshots[0] == [("Hello", MessageStatus.PENDING)]
    assert len(session.messages) == 2


@pytest.mark.asyncio
async def test_send_failure_keeps_user_message_and_adds_notice():
    def handler(request):
        return httpx.Response(500, json={"success": False, "error": "Failed to generate a response"})

    async with make_api(handler) as api:
        session = ChatSession(api)
        session.active_thread_id = "thread-1"
        assert await session.send("Hello") is False

    user, notice = session.messages
    assert user.content == "Hello"
    assert user.status == MessageStatus.FAILED
    assert notice.content == ERROR_NOTICE
    assert notice.is_error_notice is True
    assert session.last_error == "Failed to send message. Please try again."
    assert session.active_thread_id == "thread-1"


@pytest.mark.asyncio
async def test_reply_for_abandoned_thread_is_discarded():
    release = asyncio.Event()

    async def handler(request):
        await release.wait()
        return httpx.Response(200, json=reply_body(thread_id="thread-1"))

    async with make_api(handler) as api:
        session = ChatSession(api)
        session.active_thread_id = "thread-1"
        task = asyncio.create_task(session.send("Hello"))
        await asyncio.sleep(0)

        session.new_conversation()
        release.set()

        assert await task is False

    assert session.active_thread_id is None
    assert session.messages == []


@pytest.mark.asyncio
async def test_delete_active_conversation_resets_state():
    def handler(request):
        return httpx.Response(404, json={"success": False, "error": "Conversation not found"})

    async with make_api(handler) as api:
        session = ChatSession(api)
        session.active_thread_id = "thread-1"
        session.conversations = [{"threadId": "thread-1"}, {"threadId": "thread-2"}]

        await session.delete("thread-1")

    assert session.active_thread_id is None
    assert session.conversations == [{"threadId": "thread-2"}]


@pytest.mark.asyncio
async def test_refresh_directory_and_search():
    def handler(request):
        summary = {k: v for k, v in CONVERSATION.items() if k != "messages"}
        pagination = {"current": 1, "total": 1, "count": 1, "totalRecords": 1}
        return httpx.Response(200, json={"success": True, "data": [summary], "pagination": pagination})

    async with make_api(handler) as api:
        session = ChatSession(api)
        listed = await session.refresh_directory()
        found = await session.search("octopus")

    assert listed[0]["threadId"] == "thread-1"
    assert found[0]["title"] == "Octopus facts"
    assert session.pagination["totalRecords"] == 1


@pytest.mark.asyncio
async def test_api_rejects_redirect_and_non_json_bodies():
    def handler(request):
        if request.url.path.endswith("/redirected"):
            return httpx.Response(307, headers={"location": "http://test/api/conversations"})
        return httpx.Response(200, text="<html>proxy page</html>")

    async with make_api(handler) as api:
        with pytest.raises(ApiError) as redirect:
            await api.get_conversation("redirected")
        with pytest.raises(ApiError) as html:
            await api.list_conversations()

    assert redirect.value.status_code == 307
    assert html.value.status_code == 200


@pytest.mark.asyncio
async def test_select_blank_thread_id_makes_no_request():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"success": True, "data": CONVERSATION})

    async with make_api(handler) as api:
        session = ChatSession(api)
        assert await session.select("") is False
        assert await session.select("   ") is False

    assert requests == []
    assert session.active_thread_id is None
    assert session.last_error == "Failed to load conversation"


@pytest.mark.asyncio
async def test_failed_select_keeps_previous_conversation():
    def handler(request):
        if request.url.path == "/api/conversations/thread-1":
            return httpx.Response(200, json={"success": True, "data": CONVERSATION})
        return httpx.Response(404, json={"success": False, "error": "Conversation not found"})

    async with make_api(handler) as api:
        session = ChatSession(api)
        await session.select("thread-1")
        assert await session.select("gone") is False

    assert session.active_thread_id == "thread-1"
    assert session.title == "Octopus facts"
    assert len(session.messages) == 2
    assert session.last_error == "Failed to load conversation"
