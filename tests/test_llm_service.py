"""
Unit tests for the chat completion client.
"""

from unittest.mock import MagicMock

import pytest
import requests

from src.rulesheet.errors import GenerationError
from src.rulesheet.llm_service import ChatCompletionService
from src.rulesheet.prompt import SYSTEM_PROMPT, USER_PROMPT_PREFIX


def completion_response(content, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.text = "error body"
    response.json.return_value = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 42},
    }
    return response


@pytest.fixture
def http():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(http, settings):
    return ChatCompletionService(
        api_key="sk-test", model="gpt-test", base_url="https://llm.example/v1/",
        session=http, settings=settings,
    )


class TestChatCompletionService:
    def test_summary_request(self, client, http):
        http.post.return_value = completion_response("  ## Catan (1995)\n* Roll  \n")

        markdown = client.generate_summary("Roll two dice each turn.")

        assert markdown == "## Catan (1995)\n* Roll"
        args, kwargs = http.post.call_args
        assert args[0] == "https://llm.example/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == "gpt-test"
        assert "temperature" not in kwargs["json"]
        messages = kwargs["json"]["messages"]
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[1] == {"role": "user", "content": USER_PROMPT_PREFIX + "Roll two dice each turn."}

    def test_temperature_is_sent_when_configured(self, http, settings):
        client = ChatCompletionService(api_key="sk-test", temperature=0.2, session=http, settings=settings)
        http.post.return_value = completion_response("## Azul")

        client.generate_chat_completion([{"role": "user", "content": "hi"}])

        assert http.post.call_args.kwargs["json"]["temperature"] == 0.2

    def test_missing_key(self, http, settings):
        client = ChatCompletionService(api_key="", session=http, settings=settings)

        with pytest.raises(GenerationError):
            client.generate_summary("text")

        http.post.assert_not_called()

    def test_error_status(self, client, http):
        http.post.return_value = completion_response("", status_code=500)

        with pytest.raises(GenerationError, match="500"):
            client.generate_summary("text")

    def test_timeout(self, client, http):
        http.post.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(GenerationError, match="timed out"):
            client.generate_summary("text")

    def test_connection_error(self, client, http):
        http.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(GenerationError):
            client.generate_summary("text")

    def test_malformed_response(self, client, http):
        response = completion_response("")
        response.json.return_value = {"choices": []}
        http.post.return_value = response

        with pytest.raises(GenerationError, match="Unexpected"):
            client.generate_summary("text")

    def test_empty_content(self, client, http):
        http.post.return_value = completion_response("   ")

        with pytest.raises(GenerationError, match="empty"):
            client.generate_summary("text")
