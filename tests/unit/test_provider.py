"""Tests for DirectProviderBackend"""

import pytest
from unittest.mock import Mock, patch

from docrouter.config import AIBackendConfig
from docrouter.errors import AIBackendError, TransientAPIError
from docrouter.llm.provider import (
    ANTHROPIC_URL, DEEPSEEK_URL, DirectProviderBackend, is_deepseek
)
from docrouter.models import DEFAULT_MODEL


def _response(status_code=200, json_data=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data if json_data is not None else {}
    return response


ANTHROPIC_BODY = {"content": [{"type": "text", "text": '{"suggestedPath": "7_SOPRALLUOGHI/"}'}]}


class TestDirectProviderBackend:
    """Test direct provider calls"""

    @pytest.fixture
    def backend(self):
        return DirectProviderBackend(AIBackendConfig(backend="direct", max_retries=2))

    @patch('requests.Session.post')
    def test_anthropic_request(self, mock_post, backend):
        mock_post.return_value = _response(json_data=ANTHROPIC_BODY)

        result = backend.classify("prompt", "sk-ant-key", "claude-sonnet-4-20250514")

        assert result == '{"suggestedPath": "7_SOPRALLUOGHI/"}'
        call_args = mock_post.call_args
        assert call_args[0][0] == ANTHROPIC_URL
        assert call_args[1]["headers"]["x-api-key"] == "sk-ant-key"
        assert call_args[1]["json"]["max_tokens"] == 800
        assert call_args[1]["json"]["messages"] == [{"role": "user", "content": "prompt"}]

    @patch('requests.Session.post')
    def test_non_claude_model_replaced(self, mock_post, backend):
        mock_post.return_value = _response(json_data=ANTHROPIC_BODY)

        backend.classify("prompt", "sk-ant-key", "gpt-4")

        assert mock_post.call_args[1]["json"]["model"] == DEFAULT_MODEL

    @patch('requests.Session.post')
    def test_deepseek_request(self, mock_post, backend):
        mock_post.return_value = _response(json_data={"choices": [{"message": {"content": "{}"}}]})

        result = backend.classify("prompt", "sk-deepseek", "deepseek-chat")

        assert result == "{}"
        assert mock_post.call_args[0][0] == DEEPSEEK_URL
        assert mock_post.call_args[1]["headers"]["Authorization"] == "Bearer sk-deepseek"

    def test_missing_key(self, backend):
        with pytest.raises(AIBackendError, match="API Key mancante"):
            backend.classify("prompt", "", DEFAULT_MODEL)

    @patch('docrouter.errors.time.sleep')
    @patch('requests.Session.post')
    def test_retries_transient_errors(self, mock_post, mock_sleep, backend):
        mock_post.side_effect = [
            _response(503, {"error": {"message": "overloaded"}}),
            _response(json_data=ANTHROPIC_BODY),
        ]

        result = backend.classify("prompt", "sk-ant-key", DEFAULT_MODEL)

        assert result == '{"suggestedPath": "7_SOPRALLUOGHI/"}'
        assert mock_post.call_count == 2
        mock_sleep.assert_called_once()

    @patch('docrouter.errors.time.sleep')
    @patch('requests.Session.post')
    def test_gives_up_after_retries(self, mock_post, mock_sleep, backend):
        mock_post.return_value = _response(503, {"error": {"message": "overloaded"}})

        with pytest.raises(TransientAPIError, match="overloaded"):
            backend.classify("prompt", "sk-ant-key", DEFAULT_MODEL)

        assert mock_post.call_count == 3

    @patch('requests.Session.post')
    def test_auth_error_not_retried(self, mock_post, backend):
        mock_post.return_value = _response(401, {"error": {"message": "invalid x-api-key"}})

        with pytest.raises(AIBackendError, match="invalid x-api-key"):
            backend.classify("prompt", "sk-ant-bad", DEFAULT_MODEL)

        assert mock_post.call_count == 1

    @patch('requests.Session.post')
    def test_empty_content_blocks(self, mock_post, backend):
        mock_post.return_value = _response(json_data={"content": []})

        with pytest.raises(AIBackendError, match="no content"):
            backend.classify("prompt", "sk-ant-key", DEFAULT_MODEL)

    @pytest.mark.parametrize("body", [
        {"choices": [{"message": "plain text"}]},
        {"choices": ["plain text"]},
        {"choices": [{"message": {"content": 42}}]},
        {"content": [{"type": "text", "text": 42}]},
        {"content": [{"type": "text", "text": "{}"}, {"type": "text", "text": None}]},
        ["not", "an", "object"],
    ])
    @patch('requests.Session.post')
    def test_malformed_body_is_backend_error(self, mock_post, backend, body):
        mock_post.return_value = _response(json_data=body)

        with pytest.raises(AIBackendError, match="Invalid response format"):
            backend.classify("prompt", "sk-deepseek", "deepseek-chat")

    @patch.dict('os.environ', {"ANTHROPIC_API_KEY": "sk-ant-env"}, clear=True)
    def test_environment_key(self, backend):
        assert backend.resolve_environment_key() == "sk-ant-env"

    @patch.dict('os.environ', {}, clear=True)
    def test_no_environment_key(self, backend):
        assert backend.resolve_environment_key() is None

    @patch('requests.Session.post')
    def test_connection_success(self, mock_post, backend):
        mock_post.return_value = _response(json_data=ANTHROPIC_BODY)

        assert backend.test_connection("sk-ant-key", DEFAULT_MODEL) is True
        assert mock_post.call_args[1]["json"]["max_tokens"] == 10

    @patch('requests.Session.post')
    def test_connection_rejected(self, mock_post, backend):
        mock_post.return_value = _response(401, {"error": {"message": "invalid"}})
        assert backend.test_connection("sk-ant-bad", DEFAULT_MODEL) is False


class TestIsDeepseek:
    """Test provider detection"""

    def test_by_model(self):
        assert is_deepseek("sk-ant-key", "deepseek-reasoner")

    def test_by_key(self):
        assert is_deepseek("sk-1234", None)

    def test_anthropic(self):
        assert not is_deepseek("sk-ant-1234", "claude-sonnet-4-20250514")
