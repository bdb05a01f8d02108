import logging
from typing import Any, Dict, List, Optional

from ai_client import GenerationClient, Provider
from config import CORPUS_URL, HOST_COMMAND, KNOWLEDGE_FILE, setup_logging
from data_types import ExecutionResult, RefineResult, GenerationResult, RunResult
from errors import ConfigError, ConjureError
from history import ConversationHistory
from knowledge import KnowledgeBase
from library import ScriptLibrary
from retry_engine import RetryEngine, RunObserver
from sandbox import HostProcessBridge
from settings import SettingsStore

logger = logging.getLogger(__name__)

# ==========================================
# Copilot Session
# ==========================================


def format_code(code: str) -> str:
    return "```javascript\n" + code + "\n```"


class CopilotSession:
    """Chat-level orchestration: one transcript, one run at a time.

    `bridge` executes code and may also provide summarize() for composition context.
    """

    def __init__(
        self,
        settings: SettingsStore,
        client: GenerationClient,
        bridge: Any,
        engine: Optional[RetryEngine] = None,
        history: Optional[ConversationHistory] = None,
        library: Optional[ScriptLibrary] = None,
    ):
        self.settings = settings
        self.client = client
        self.bridge = bridge
        self.engine = engine or RetryEngine(client, bridge)
        self.history = history or ConversationHistory()
        self.library = library
        self.is_processing = False

    def _selection(self):
        selection = self.settings.get_model_selection()
        provider = Provider.parse(selection["provider"])
        api_key = self.settings.get_api_key(provider.value)
        if not api_key:
            raise ConfigError(f"Please set your {provider.display_name} API key in settings first.")
        return provider, selection["model"], api_key

    def comp_context(self) -> str:
        if not self.settings.get("include_comp_context", True):
            return ""
        summarize = getattr(self.bridge, "summarize", None)
        return summarize() if summarize else ""

    def submit(self, prompt: str, observer: Optional[RunObserver] = None) -> RunResult:
        prompt = prompt.strip()
        if not prompt:
            raise ValueError("Prompt is empty.")
        if self.is_processing:
            raise ConjureError("A run is already in progress.")
        provider, model, api_key = self._selection()

        self.is_processing = True
        try:
            self.history.append("user", prompt)
            context = self.history.build_context(self.settings.get("history_turns"))
            result = self.engine.run(
                prompt,
                provider.value,
                model,
                api_key,
                comp_context=self.comp_context() or None,
                history=context,
                max_retries=self.settings.get("max_retries"),
                observer=observer,
            )
            self._record(result)
            return result
        finally:
            self.is_processing = False

    def _record(self, result: RunResult) -> None:
        last = result.last_attempt
        if result.success:
            self.history.append("assistant", last.raw_response or format_code(last.code))
            return

        message = f"Failed after {result.total_attempts} attempt(s)."
        if result.final_error:
            message += "\n\nLast error: " + result.final_error
        if last is not None and last.code:
            message += "\n\n" + format_code(last.code)
        self.history.append("assistant", message)

    def refine(self, prompt: str) -> RefineResult:
        provider, model, api_key = self._selection()
        return self.client.refine(prompt, provider.value, model, api_key, comp_context=self.comp_context() or None)

    def explain(self, code: str) -> GenerationResult:
        provider, model, api_key = self._selection()
        return self.client.explain(code, provider.value, model, api_key)

    # ---- Library ----

    def save_script(self, result: RunResult, name: str, prompt: str = "", category: str = "Other",
                    tags: Optional[List[str]] = None) -> Dict[str, Any]:
        if self.library is None:
            raise ConfigError("No script library configured.")
        if not result.success:
            raise ValueError("Only successful runs can be saved.")
        return self.library.save(result.final_code, name=name, description=prompt, category=category,
                                 tags=tags, prompt=prompt)

    def run_library_script(self, script_id: str) -> ExecutionResult:
        if self.library is None:
            raise ConfigError("No script library configured.")
        script = self.library.get_by_id(script_id)
        if script is None:
            raise KeyError(script_id)

        self.library.record_usage(script_id)
        self.history.append("user", "Running library script: " + script["name"])
        result = self.bridge.execute(script["code"])
        if result.success:
            message = "Script executed successfully."
            if result.result:
                message += "\nResult: " + result.result
        else:
            message = "Script failed: " + (result.error or "unknown error")
        self.history.append("assistant", message)
        return result


def build_session(settings: Optional[SettingsStore] = None, log_level: Optional[str] = None) -> CopilotSession:
    """Wires the default collaborators from config."""
    setup_logging(log_level)
    settings = settings or SettingsStore()
    knowledge = KnowledgeBase(KNOWLEDGE_FILE, CORPUS_URL)
    client = GenerationClient(knowledge=knowledge)
    bridge = HostProcessBridge()
    if not bridge.is_ready:
        logger.warning("Host runner not found (CONJURE_HOST_COMMAND=%r); scripts will not execute", HOST_COMMAND)
    return CopilotSession(settings, client, bridge, library=ScriptLibrary())
