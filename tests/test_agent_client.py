"""Tests for the HTTP agent client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from tdd_assist.agent_client import HttpAgentClient, extract_content, strip_code_fences
from tdd_assist.config import AgentConfig
from tdd_assist.errors import AgentClientError


def make_client(response=None, side_effect=None, **config):
    session = MagicMock()
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = response
    settings = AgentConfig(endpoint="http://agent.local/generate", model="test-model", api_key="sekret", **config)
    return HttpAgentClient(settings, session=session), session


def json_response(data):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = data
    return response


class TestExtractContent:

    def test_plain_string(self):
        assert extract_content("code") == "code"

    def test_dict_with_content(self):
        assert extract_content({"content": "code", "model": "x"}) == "code"

    def test_object_with_content(self):
        assert extract_content(SimpleNamespace(content="code")) == "code"

    def test_unsupported_shape(self):
        with pytest.raises(AgentClientError):
            extract_content({"text": "code"})


class TestStripCodeFences:

    def test_fenced_block_with_language(self):
        assert strip_code_fences("Here:\n```python\nprint(1)\n```\nDone") == "print(1)"

    def test_first_block_wins(self):
        assert strip_code_fences("```js\na()\n```\n```js\nb()\n```") == "a()"

    def test_unfenced_text_is_trimmed(self):
        assert strip_code_fences("  print(1)\n") == "print(1)"


class TestHttpAgentClient:
    """Tests for the HttpAgentClient class."""

    def test_send_message_posts_prompt(self):
        client, session = make_client(json_response({"content": "def add(a, b): ..."}))

        result = asyncio.run(client.send_message("write add"))

        assert result == "def add(a, b): ..."
        _, kwargs = session.post.call_args
        assert session.post.call_args.args[0] == "http://agent.local/generate"
        assert kwargs["json"] == {"model": "test-model", "prompt": "write add"}
        assert kwargs["headers"]["Authorization"] == "Bearer sekret"

    def test_missing_endpoint(self):
        client = HttpAgentClient(AgentConfig(endpoint=""), session=MagicMock())

        with pytest.raises(AgentClientError, match="No agent endpoint"):
            asyncio.run(client.send_message("hi"))

    def test_transport_error_is_wrapped_and_redacted(self):
        error = requests.ConnectionError('failed with "Authorization": "Bearer sekret"')
        client, _ = make_client(side_effect=error)

        with pytest.raises(AgentClientError) as excinfo:
            asyncio.run(client.send_message("hi"))

        assert "sekret" not in str(excinfo.value)
        assert "[REDACTED]" in str(excinfo.value)

    def test_http_error_status(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        client, _ = make_client(response)

        with pytest.raises(AgentClientError, match="500 Server Error"):
            asyncio.run(client.send_message("hi"))

    def test_invalid_json_body(self):
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        client, _ = make_client(response)

        with pytest.raises(AgentClientError, match="invalid JSON"):
            asyncio.run(client.send_message("hi"))

    def test_response_must_match_schema(self):
        client, _ = make_client(json_response({"text": "missing content"}))

        with pytest.raises(AgentClientError, match="validation error"):
            asyncio.run(client.send_message("hi"))
