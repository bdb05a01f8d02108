import logging
from typing import Any, Callable, List, Optional

from config import DEFAULT_MAX_RETRIES
from data_types import Attempt, ConversationTurn, ExecutionResult, FailureKind, GenerationRequest, RunResult
from errors import ConfigError

logger = logging.getLogger(__name__)

# ==========================================
# Generate -> Execute -> Retry Loop
# ==========================================

# Only a wrong script is worth another round. An unreachable model or a bad
# provider selection ends the run immediately.
RETRYABLE_FAILURES = frozenset([FailureKind.EMPTY_CODE, FailureKind.EXECUTION])

EMPTY_CODE_ERROR = "AI response did not contain a code block."

STATUS_GENERATING = "generating"
STATUS_RETRYING = "retrying"


def build_retry_prompt(original_prompt: str, failed_code: str, error_message: Optional[str]) -> str:
    return "\n".join([
        "The previous script failed with this error:",
        "",
        "ERROR: " + (error_message or "unknown error"),
        "",
        "FAILED CODE:",
        "```javascript",
        failed_code,
        "```",
        "",
        "ORIGINAL REQUEST: " + original_prompt,
        "",
        "Please fix the script. Remember: ExtendScript uses ES3 syntax only "
        "(var, not let/const; no arrow functions; no template literals).",
    ])


class RunObserver:
    """Progress hooks for a run. Exceptions raised here are logged and ignored."""

    def on_attempt(self, attempt_number: int, max_attempts: int, status: str) -> None:
        pass

    def on_code(self, code: str, attempt_number: int) -> None:
        pass


class RetryEngine:
    """Drives one request through bounded generate/execute rounds.

    `client` provides generate(GenerationRequest) -> GenerationResult and
    `bridge` provides execute(code) -> ExecutionResult.
    """

    def __init__(self, client: Any, bridge: Any, max_retries: int = DEFAULT_MAX_RETRIES):
        self.client = client
        self.bridge = bridge
        self.max_retries = max_retries

    def run(
        self,
        prompt: str,
        provider: str,
        model: str,
        api_key: str,
        comp_context: Optional[str] = None,
        history: Optional[List[ConversationTurn]] = None,
        max_retries: Optional[int] = None,
        observer: Optional[RunObserver] = None,
    ) -> RunResult:
        """Runs until a script succeeds, a terminal failure occurs or the budget is spent.

        Never raises; every outcome is reported through the returned RunResult.
        A budget of zero or less still makes one attempt.
        """
        budget = self.max_retries if max_retries is None else max_retries
        max_attempts = max(1, budget)
        observer = observer or RunObserver()
        attempts: List[Attempt] = []

        for number in range(1, max_attempts + 1):
            retry_context = None
            if attempts:
                previous = attempts[-1]
                retry_context = build_retry_prompt(prompt, previous.code, previous.error)

            status = STATUS_RETRYING if attempts else STATUS_GENERATING
            logger.info("Attempt %d/%d (%s)", number, max_attempts, status)
            self._notify(observer.on_attempt, number, max_attempts, status)

            request = GenerationRequest(
                prompt=prompt,
                provider=provider,
                model=model,
                api_key=api_key,
                comp_context=comp_context,
                retry_context=retry_context,
                history=list(history or []),
            )
            attempt = self._attempt(number, request, observer)
            attempts.append(attempt)

            if attempt.success:
                logger.info("Attempt %d succeeded", number)
                break
            logger.warning("Attempt %d failed (%s): %s", number, attempt.failure.value, attempt.error)
            if attempt.failure not in RETRYABLE_FAILURES:
                break

        return RunResult(attempts=tuple(attempts))

    def _attempt(self, number: int, request: GenerationRequest, observer: RunObserver) -> Attempt:
        try:
            generation = self.client.generate(request)
        except ConfigError as e:
            return Attempt(number=number, error=str(e), failure=FailureKind.CONFIG)
        except Exception as e:
            logger.exception("Generation client raised")
            return Attempt(number=number, error=f"AI generation failed: {e}", failure=FailureKind.GENERATION)

        if not generation.success:
            return Attempt(
                number=number,
                error="AI generation failed: " + (generation.error or "unknown error"),
                failure=FailureKind.GENERATION,
            )

        code = generation.code
        if not code:
            return Attempt(
                number=number,
                raw_response=generation.raw_response,
                error=EMPTY_CODE_ERROR,
                failure=FailureKind.EMPTY_CODE,
            )

        self._notify(observer.on_code, code, number)
        execution = self._execute(code)

        if execution.success:
            return Attempt(
                number=number,
                code=code,
                raw_response=generation.raw_response,
                success=True,
                result=execution.result,
            )

        error = execution.error or "Script failed without an error message."
        if execution.line is not None:
            error += f" (line {execution.line})"
        return Attempt(
            number=number,
            code=code,
            raw_response=generation.raw_response,
            error=error,
            failure=FailureKind.EXECUTION,
        )

    def _execute(self, code: str) -> ExecutionResult:
        try:
            return self.bridge.execute(code)
        except Exception as e:
            logger.exception("Execution bridge raised")
            return ExecutionResult(success=False, error=f"Execution bridge error: {e}", transport_error=True)

    @staticmethod
    def _notify(callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Run observer raised; ignoring")
