"""Tests for agentrelay.providers.claude module."""

import json

import pytest

from agentrelay.config.platforms import AgentPlatform
from agentrelay.providers.base import DiscoveryResult
from agentrelay.providers.claude import ClaudeEventNormalizer, ClaudeProvider, _flatten_tool_result
from agentrelay.providers.errors import ErrorCode, ProviderError
from agentrelay.providers.types import (
    ErrorMessage,
    ExecuteOptions,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from tests.fakes import make_scripted_provider


class TestClaudeProvider:
    """Tests for ClaudeProvider configuration."""

    def test_identity(self):
        provider = ClaudeProvider()
        assert provider.name == "claude"
        assert provider.platform == AgentPlatform.CLAUDE
        assert provider.create_message_filter() is None

    def test_alias_is_expanded(self):
        args = ClaudeProvider().build_cli_args(ExecuteOptions(model="sonnet", prompt="hi"))
        assert args == [
            "-p",
            "--output-format",
            "stream-json",
            "--verbose",
            "--model",
            "claude-sonnet-4-5-20250929",
            "--dangerously-skip-permissions",
        ]

    def test_read_only_keeps_permission_prompts(self):
        args = ClaudeProvider().build_cli_args(ExecuteOptions(model="opus", prompt="hi", read_only=True))
        assert "--dangerously-skip-permissions" not in args

    def test_full_model_id_passed_through(self):
        args = ClaudeProvider().build_cli_args(ExecuteOptions(model="claude-haiku-4-5-20251001", prompt="hi"))
        assert args[args.index("--model") + 1] == "claude-haiku-4-5-20251001"

    def test_stored_oauth_credentials(self, tmp_path, monkeypatch):
        creds = tmp_path / ".credentials.json"
        creds.write_text(json.dumps({"claudeAiOauth": {"accessToken": "tok"}}))
        monkeypatch.setattr(ClaudeProvider, "credential_files", (str(creds),))
        provider = ClaudeProvider()
        provider._discovery = DiscoveryResult(cli_path=None)
        assert provider.check_auth() is True

    def test_unreadable_credentials_are_ignored(self, tmp_path, monkeypatch):
        creds = tmp_path / ".credentials.json"
        creds.write_text("{not json")
        monkeypatch.setattr(ClaudeProvider, "credential_files", (str(creds),))
        provider = ClaudeProvider()
        provider._discovery = DiscoveryResult(cli_path=None)
        assert provider.has_stored_credentials() is False


class TestClaudeEventNormalizer:
    """Tests for ClaudeEventNormalizer."""

    def test_assistant_text_and_tool_use(self):
        event = {
            "type": "assistant",
            "session_id": "abc",
            "message": {
                "content": [
                    {"type": "text", "text": "Reading it"},
                    {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "a.py"}},
                    {"type": "thinking", "thinking": "..."},
                ]
            },
        }
        message = ClaudeEventNormalizer().normalize(event)
        assert message.session_id == "abc"
        assert message.content == [
            TextBlock(text="Reading it"),
            ToolUseBlock(name="Read", tool_use_id="toolu_1", input={"file_path": "a.py"}),
        ]

    def test_user_tool_results(self):
        event = {
            "type": "user",
            "message": {
                "content": [
                    {"type": "tool_result", "tool_use_id": "toolu_1", "content": [{"type": "text", "text": "line"}]}
                ]
            },
        }
        message = ClaudeEventNormalizer().normalize(event)
        assert message.content == [ToolResultBlock(tool_use_id="toolu_1", content="line")]

    def test_user_text_prompt_echo_is_dropped(self):
        assert ClaudeEventNormalizer().normalize({"type": "user", "message": {"content": "hello"}}) is None

    def test_result_success(self):
        message = ClaudeEventNormalizer().normalize({"type": "result", "subtype": "success", "result": "done"})
        assert message == ResultMessage(result="done")

    def test_result_error_subtype(self):
        message = ClaudeEventNormalizer().normalize({"type": "result", "subtype": "error_max_turns"})
        assert message == ErrorMessage(error="Claude run ended with error_max_turns")

    def test_result_is_error(self):
        message = ClaudeEventNormalizer().normalize(
            {"type": "result", "subtype": "success", "is_error": True, "result": "API Error: 500"}
        )
        assert message == ErrorMessage(error="API Error: 500")

    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            ("plain", "plain"),
            ([{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}], "a\nb"),
            (None, ""),
            ({"k": 1}, '{"k": 1}'),
        ],
    )
    def test_flatten_tool_result(self, content, expected):
        assert _flatten_tool_result(content) == expected


class TestClaudeExecution:
    """End-to-end tests through a scripted claude process."""

    def test_session_from_system_init(self):
        lines = [
            {"type": "system", "subtype": "init", "session_id": "sess-1"},
            {"type": "assistant", "message": {"content": [{"type": "text", "text": "Hi"}]}},
            {"type": "result", "subtype": "success", "result": "Hi"},
        ]
        provider = make_scripted_provider(ClaudeProvider, lines)
        messages = list(provider.execute(ExecuteOptions(model="sonnet", prompt="hello")))
        assert [m.type for m in messages] == ["assistant", "result"]
        assert all(m.session_id == "sess-1" for m in messages)

    def test_rate_limit_failure(self):
        provider = make_scripted_provider(ClaudeProvider, [], exit_code=1, stderr="429 Too Many Requests")
        with pytest.raises(ProviderError) as exc_info:
            list(provider.execute(ExecuteOptions(model="sonnet", prompt="hello")))
        assert exc_info.value.code is ErrorCode.RATE_LIMITED
        assert exc_info.value.recoverable is True
