import re
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import anthropic
import openai
import requests

from config import MAX_TOKENS, PROVIDERS, REQUEST_TIMEOUT
from data_types import ConversationTurn, GenerationRequest, GenerationResult, RefineResult
from errors import ConfigError, GenerationError

logger = logging.getLogger(__name__)

# ==========================================
# System Prompts
# ==========================================

SYSTEM_PROMPT = "\n".join([
    "You are an expert After Effects ExtendScript developer.",
    "You write scripts that run inside Adobe After Effects via ExtendScript (ES3-based JavaScript).",
    "",
    "CRITICAL RULES:",
    "1. Use ONLY ExtendScript ES3 syntax: var (not let/const), function expressions (not arrows), "
    "string concatenation (not template literals).",
    "2. Return EXACTLY ONE code block wrapped in ```javascript ... ```.",
    "3. Always wrap operations in try/catch for error handling.",
    "4. Use app.project.activeItem to access the active composition.",
    "5. Check that activeItem exists and is a CompItem before using it.",
    "6. Do NOT use modern JavaScript features: no let, const, =>, `template`, for...of, destructuring, "
    "spread, Promise, async/await.",
    "7. Do NOT use alert() or confirm(); return results as strings instead.",
    "8. Use standard ExtendScript APIs only. Refer to the After Effects Scripting Guide.",
    "9. Do NOT call app.beginUndoGroup() or app.endUndoGroup(); the host wraps every script in an undo group.",
    "",
    "When composition context is provided, use it to write more precise scripts.",
    "If asked to modify specific layers, reference them by index or name from the context.",
])

EXPLAIN_PROMPT = "\n".join([
    "You are an After Effects ExtendScript expert teacher.",
    "Explain the following script in plain English, step by step.",
    "Focus on what it does, which AE objects it manipulates, and any non-obvious techniques.",
    "Keep explanations concise: 3-8 points. No code in your response.",
    "Format as a numbered list.",
])

REFINE_PROMPT = "\n".join([
    "You refine vague After Effects requests into clear, specific instructions.",
    "The user wrote a brief or unclear prompt. Rewrite it so an AI can generate precise ExtendScript.",
    "",
    "Rules:",
    "- Add specific details: layer names, durations in seconds, hex colors, pixel values, property names",
    "- If comp context is provided, reference actual layer names from it",
    "- Keep the original intent but remove all ambiguity",
    "- Return ONLY the refined prompt text. No code. No explanation. No quotes around it.",
])

CODE_BLOCK_RE = re.compile(r"```(?:javascript|jsx|extendscript)?\s*\n?([\s\S]*?)```")
CODE_HINTS = ("app.project", "var ")


def extract_code(text: str) -> str:
    """Extracts ExtendScript from a fenced block, falling back to code-looking text."""
    if not text:
        return ""
    match = CODE_BLOCK_RE.search(text)
    if match and match.group(1):
        return match.group(1).strip()
    if any(hint in text for hint in CODE_HINTS):
        return text.strip()
    return ""


# ==========================================
# Provider Backends
# ==========================================


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: Any) -> "Provider":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(f"Unknown provider: {value!r}") from None

    @property
    def display_name(self) -> str:
        return PROVIDERS[self.value]["name"]

    @property
    def default_model(self) -> str:
        return PROVIDERS[self.value]["default_model"]

    @property
    def models(self) -> List[str]:
        return [model_id for model_id, _ in PROVIDERS[self.value]["models"]]


def _api_error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


class ProviderBackend(ABC):
    """One provider's request/response shape behind a common complete() call."""

    provider: Provider
    assistant_role = "assistant"

    def __init__(self, max_tokens: int = MAX_TOKENS, timeout: float = REQUEST_TIMEOUT):
        self.max_tokens = max_tokens
        self.timeout = timeout

    def map_role(self, role: str) -> str:
        return self.assistant_role if role == "assistant" else "user"

    def map_history(self, history: List[ConversationTurn]) -> List[Dict[str, Any]]:
        return [{"role": self.map_role(turn.role), "content": turn.content} for turn in history]

    @abstractmethod
    def complete(
        self,
        system: str,
        user_message: str,
        history: List[ConversationTurn],
        model: str,
        api_key: str,
    ) -> str:
        """Returns the reply text. Raises GenerationError on transport or envelope failure."""


class AnthropicBackend(ProviderBackend):
    provider = Provider.ANTHROPIC

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> anthropic.Anthropic:
        # Retries belong to the retry engine: one network call per request.
        return anthropic.Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)

    def complete(self, system, user_message, history, model, api_key):
        messages = self.map_history(history) + [{"role": "user", "content": user_message}]
        try:
            response = self.client_factory(api_key).messages.create(
                model=model,
                max_tokens=self.max_tokens,
                system=system,
                messages=messages,
            )
        except anthropic.AnthropicError as e:
            raise GenerationError(_api_error_message(e)) from e

        content = getattr(response, "content", None)
        if content is None:
            raise GenerationError("Malformed Anthropic response: missing content")
        for block in content:
            if getattr(block, "type", None) == "text":
                return block.text or ""
        return ""


class OpenAIBackend(ProviderBackend):
    provider = Provider.OPENAI

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.client_factory = client_factory or self._default_client

    def _default_client(self, api_key: str) -> openai.OpenAI:
        return openai.OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)

    def complete(self, system, user_message, history, model, api_key):
        messages = [{"role": "system", "content": system}]
        messages += self.map_history(history)
        messages.append({"role": "user", "content": user_message})
        try:
            response = self.client_factory(api_key).chat.completions.create(
                model=model,
                max_tokens=self.max_tokens,
                messages=messages,
            )
        except openai.OpenAIError as e:
            raise GenerationError(_api_error_message(e)) from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise GenerationError("Malformed OpenAI response: no choices")
        try:
            return choices[0].message.content or ""
        except AttributeError as e:
            raise GenerationError(f"Malformed OpenAI response: {e}") from e


class GoogleBackend(ProviderBackend):
    provider = Provider.GOOGLE
    assistant_role = "model"
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models/"

    def __init__(self, session: Optional[requests.Session] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.session = session or requests.Session()

    def map_history(self, history):
        return [{"role": self.map_role(turn.role), "parts": [{"text": turn.content}]} for turn in history]

    def complete(self, system, user_message, history, model, api_key):
        contents = self.map_history(history)
        contents.append({"role": "user", "parts": [{"text": user_message}]})
        body = {
            "system_instruction": {"parts": [{"text": system}]},
            "contents": contents,
            "generationConfig": {"maxOutputTokens": self.max_tokens},
        }
        try:
            response = self.session.post(
                self.BASE_URL + model + ":generateContent",
                params={"key": api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GenerationError(f"Network error: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError(f"HTTP {response.status_code}: {response.text[:500]}") from e
        if not isinstance(data, dict):
            raise GenerationError("Malformed Gemini response: expected a JSON object")
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else None
            raise GenerationError(message or str(error))
        if response.status_code >= 400:
            raise GenerationError(f"HTTP {response.status_code}: {response.text[:500]}")

        candidates = data.get("candidates") or []
        try:
            if candidates and candidates[0].get("content"):
                return candidates[0]["content"]["parts"][0].get("text", "")
        except (KeyError, IndexError, AttributeError, TypeError) as e:
            raise GenerationError(f"Malformed Gemini response: {e}") from e
        return ""


def default_backends(**kwargs: Any) -> Dict[Provider, ProviderBackend]:
    return {
        Provider.ANTHROPIC: AnthropicBackend(**kwargs),
        Provider.OPENAI: OpenAIBackend(**kwargs),
        Provider.GOOGLE: GoogleBackend(**kwargs),
    }


# ==========================================
# Generation Client
# ==========================================


class GenerationClient:
    """Uniform generate/refine/explain facade over the provider backends.

    `knowledge` is anything with a `retrieve(text) -> str` method, normally a
    knowledge.KnowledgeBase. Without it no knowledge section is injected.
    """

    def __init__(self, knowledge: Optional[Any] = None, backends: Optional[Dict[Provider, ProviderBackend]] = None):
        self.knowledge = knowledge
        self.backends = backends or default_backends()

    def backend_for(self, provider: Any) -> ProviderBackend:
        key = Provider.parse(provider)
        backend = self.backends.get(key)
        if backend is None:
            raise ConfigError(f"No backend configured for provider: {key.value}")
        return backend

    def build_user_message(self, request: GenerationRequest) -> str:
        sections = []
        if self.knowledge is not None:
            knowledge = self.knowledge.retrieve(request.prompt)
            if knowledge:
                sections.append(knowledge)
        if request.comp_context:
            sections.append("Current composition context:\n" + request.comp_context)
        if request.retry_context:
            sections.append(request.retry_context)
        sections.append(request.prompt)
        return "\n\n".join(sections)

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Sends one generation request. Raises ConfigError for an unknown provider;
        every other failure is reported as GenerationResult(success=False)."""
        backend = self.backend_for(request.provider)
        user_message = self.build_user_message(request)
        return self._send(backend, SYSTEM_PROMPT, user_message, request.history, request.model, request.api_key)

    def refine(
        self,
        prompt: str,
        provider: str,
        model: str,
        api_key: str,
        comp_context: Optional[str] = None,
    ) -> RefineResult:
        backend = self.backend_for(provider)
        user_message = 'Refine this After Effects request:\n\n"' + prompt + '"'
        if comp_context:
            user_message += "\n\nComposition context:\n" + comp_context

        result = self._send(backend, REFINE_PROMPT, user_message, [], model, api_key)
        if not result.success:
            return RefineResult(success=False, error=result.error)
        refined = re.sub(r"```[\s\S]*?```", "", result.raw_response).strip()
        refined = re.sub(r"^[\"']|[\"']$", "", refined).strip()
        return RefineResult(success=True, refined=refined)

    def explain(self, code: str, provider: str, model: str, api_key: str) -> GenerationResult:
        backend = self.backend_for(provider)
        user_message = "Explain this ExtendScript:\n\n```javascript\n" + code + "\n```"
        result = self._send(backend, EXPLAIN_PROMPT, user_message, [], model, api_key)
        if not result.success:
            return result
        return GenerationResult(success=True, raw_response=result.raw_response)

    def _send(
        self,
        backend: ProviderBackend,
        system: str,
        user_message: str,
        history: List[ConversationTurn],
        model: str,
        api_key: str,
    ) -> GenerationResult:
        logger.debug("Sending request to %s model=%s history=%d", backend.provider.value, model, len(history))
        try:
            text = backend.complete(system, user_message, history, model, api_key)
        except GenerationError as e:
            logger.warning("%s generation failed: %s", backend.provider.display_name, e)
            return GenerationResult(success=False, error=str(e))
        return GenerationResult(success=True, code=extract_code(text), raw_response=text)
