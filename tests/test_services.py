"""Tests for the chat LLM client, email sender and submission store."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import redis
from openai import APIConnectionError

from fotofi.core.config import settings
from fotofi.services.email import render_verification_email, send_verification_email
from fotofi.services.llm_client import ChatLLMClient, LLMError
from fotofi.services.submissions import RedisSubmissionStore, SubmissionStoreError


def chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


@pytest.fixture
def mock_openai():
    with patch("fotofi.services.llm_client.AsyncOpenAI") as mock_cls:
        yield mock_cls.return_value


@pytest.mark.asyncio
async def test_stream_reply_yields_deltas(mock_openai):
    mock_openai.chat.completions.create = AsyncMock(
        return_value=FakeStream([chunk("Hel"), SimpleNamespace(choices=[]), chunk(None), chunk("lo")])
    )
    client = ChatLLMClient(model="test-model")

    deltas = [delta async for delta in client.stream_reply("Be nice.", [{"role": "user", "content": "Hi"}])]

    assert deltas == ["Hel", "lo"]
    kwargs = mock_openai.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["stream"] is True
    assert kwargs["messages"][0] == {"role": "system", "content": "Be nice."}


@pytest.mark.asyncio
async def test_stream_reply_wraps_api_errors(mock_openai):
    mock_openai.chat.completions.create = AsyncMock(
        side_effect=APIConnectionError(request=httpx.Request("POST", "https://llm.test"))
    )
    client = ChatLLMClient()

    with pytest.raises(LLMError):
        async for _ in client.stream_reply("Be nice.", []):
            pass


@pytest.mark.asyncio
async def test_stream_reply_disabled(monkeypatch):
    monkeypatch.setattr(settings, "LLM_ENABLED", False)
    client = ChatLLMClient()

    with pytest.raises(LLMError):
        async for _ in client.stream_reply("Be nice.", []):
            pass


def test_render_verification_email_contains_link():
    html = render_verification_email("https://app.test/verify?token=abc")

    assert 'href="https://app.test/verify?token=abc"' in html


@pytest.mark.asyncio
async def test_send_verification_email_skipped_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")

    with patch("fotofi.services.email.httpx.AsyncClient") as mock_client:
        await send_verification_email("a@example.com", "tok")

    mock_client.assert_not_called()


@pytest.mark.asyncio
async def test_send_verification_email_posts_to_provider(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(settings, "APP_BASE_URL", "https://app.test/")

    with patch("fotofi.services.email.httpx.AsyncClient") as mock_client:
        client = mock_client.return_value.__aenter__.return_value
        client.post = AsyncMock(return_value=MagicMock())

        await send_verification_email("a@example.com", "tok")

    kwargs = client.post.call_args.kwargs
    assert kwargs["json"]["to"] == ["a@example.com"]
    assert "https://app.test/api/auth/verify-email?token=tok" in kwargs["json"]["html"]
    assert kwargs["headers"]["Authorization"] == "Bearer re_test"


@pytest.mark.asyncio
async def test_send_verification_email_failure_is_not_raised(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")

    with patch("fotofi.services.email.httpx.AsyncClient") as mock_client:
        client = mock_client.return_value.__aenter__.return_value
        client.post = AsyncMock(side_effect=httpx.ConnectError("down"))

        await send_verification_email("a@example.com", "tok")


def test_redis_submission_store_saves_json():
    redis_client = MagicMock()
    store = RedisSubmissionStore(redis_client)

    store.save("abc", "Sam", "sam@example.com", "data:image/png;base64,AAAA")

    key, value = redis_client.set.call_args.args
    assert key == "abc"
    data = json.loads(value)
    assert data["name"] == "Sam"
    assert data["facePhoto"] == "data:image/png;base64,AAAA"
    assert isinstance(data["timestamp"], int)


def test_redis_submission_store_wraps_errors():
    redis_client = MagicMock()
    redis_client.set.side_effect = redis.ConnectionError("down")
    store = RedisSubmissionStore(redis_client)

    with pytest.raises(SubmissionStoreError):
        store.save("abc", "Sam", "sam@example.com", "x")
