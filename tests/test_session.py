from unittest.mock import patch

import pytest

from conftest import StubBridge, StubClient, failed_execution, ok_generation
from data_types import ConversationTurn, ExecutionResult
from errors import ConfigError, ConjureError
from library import ScriptLibrary
from session import CopilotSession, build_session, format_code
from settings import SettingsStore


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GOOGLE_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    store = SettingsStore(str(tmp_path / "settings.json"))
    store.set_model_selection("openai", "gpt-4.1")
    store.set_api_key("openai", "sk-test")
    return store


def _session(settings, client=None, bridge=None, library=None):
    client = client or StubClient([ok_generation()])
    bridge = bridge or StubBridge([ExecutionResult(success=True, result="done")], summary="Comp: Main")
    return CopilotSession(settings, client, bridge, library=library)


def test_submit_records_transcript(settings):
    session = _session(settings)
    result = session.submit("  fade in the title  ")

    assert result.success is True
    assert [t.role for t in session.history.turns] == ["user", "assistant"]
    assert session.history.turns[0].content == "fade in the title"
    assert session.history.turns[1].content == format_code("var x = 1;")
    assert session.is_processing is False


def test_submit_uses_selected_provider_and_comp_context(settings):
    client = StubClient([ok_generation()])
    _session(settings, client=client).submit("add a null")

    request = client.requests[0]
    assert request.provider == "openai"
    assert request.model == "gpt-4.1"
    assert request.api_key == "sk-test"
    assert request.comp_context == "Comp: Main"


def test_comp_context_can_be_disabled(settings):
    settings.set("include_comp_context", False)
    client = StubClient([ok_generation()])
    _session(settings, client=client).submit("add a null")
    assert client.requests[0].comp_context is None


def test_history_excludes_in_flight_prompt(settings):
    client = StubClient([ok_generation()])
    session = _session(settings, client=client)
    session.submit("first")
    session.submit("second")

    second = client.requests[-1]
    assert second.prompt == "second"
    assert [t.content for t in second.history] == ["first", format_code("var x = 1;")]


def test_history_turns_zero_is_stateless(settings):
    settings.set("history_turns", 0)
    client = StubClient([ok_generation()])
    session = _session(settings, client=client)
    session.submit("first")
    session.submit("second")
    assert client.requests[-1].history == []


def test_failure_message_includes_error_and_code(settings):
    settings.set("max_retries", 2)
    bridge = StubBridge([failed_execution("layer is null")])
    session = _session(settings, bridge=bridge)

    result = session.submit("rename layers")

    assert result.success is False
    message = session.history.turns[-1].content
    assert message.startswith("Failed after 2 attempt(s).")
    assert "Last error: layer is null" in message
    assert format_code("var x = 1;") in message


def test_missing_api_key_raises_before_run(settings):
    settings.set_api_key("openai", "")
    client = StubClient([ok_generation()])
    session = _session(settings, client=client)

    with pytest.raises(ConfigError):
        session.submit("anything")
    assert client.requests == []
    assert session.history.turns == []


def test_empty_prompt_is_rejected(settings):
    with pytest.raises(ValueError):
        _session(settings).submit("   ")


def test_concurrent_submit_is_rejected(settings):
    session = _session(settings)
    session.is_processing = True
    with pytest.raises(ConjureError):
        session.submit("again")


def test_save_and_run_library_script(settings, tmp_path):
    library = ScriptLibrary(str(tmp_path / "library.json"))
    bridge = StubBridge([ExecutionResult(success=True, result="done")])
    session = _session(settings, bridge=bridge, library=library)

    result = session.submit("fade in the title")
    entry = session.save_script(result, name="Fade title", prompt="fade in the title", category="Animation")
    assert entry["code"] == "var x = 1;"

    outcome = session.run_library_script(entry["id"])

    assert outcome.success is True
    assert library.get_by_id(entry["id"])["use_count"] == 1
    assert session.history.turns[-2] == ConversationTurn("user", "Running library script: Fade title")
    assert session.history.turns[-1].content == "Script executed successfully.\nResult: done"


def test_run_unknown_library_script(settings, tmp_path):
    session = _session(settings, library=ScriptLibrary(str(tmp_path / "library.json")))
    with pytest.raises(KeyError):
        session.run_library_script("nope")


def test_build_session_configures_logging_and_wires_collaborators(settings):
    from ai_client import GenerationClient
    from knowledge import KnowledgeBase
    from sandbox import HostProcessBridge

    with patch("session.setup_logging") as setup_logging:
        session = build_session(settings, log_level="debug")

    setup_logging.assert_called_once_with("debug")
    assert session.settings is settings
    assert isinstance(session.client, GenerationClient)
    assert isinstance(session.client.knowledge, KnowledgeBase)
    assert isinstance(session.bridge, HostProcessBridge)
    assert isinstance(session.library, ScriptLibrary)
