from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# ==========================================
# Core Data Models
# ==========================================


class FailureKind(str, Enum):
    CONFIG = "config"
    GENERATION = "generation"
    EMPTY_CODE = "empty_code"
    EXECUTION = "execution"


@dataclass(frozen=True)
class Attempt:
    """Represents a single generate-then-execute step of a run."""
    number: int
    code: str = ""
    raw_response: str = ""
    success: bool = False
    result: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[FailureKind] = None


@dataclass(frozen=True)
class RunResult:
    """Terminal outcome of a run, derived entirely from its attempt history."""
    attempts: Tuple[Attempt, ...]

    @property
    def success(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].success

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    @property
    def last_attempt(self) -> Optional[Attempt]:
        return self.attempts[-1] if self.attempts else None

    @property
    def final_code(self) -> Optional[str]:
        return self.attempts[-1].code if self.success else None

    @property
    def final_result(self) -> Optional[str]:
        return self.attempts[-1].result if self.success else None

    @property
    def final_error(self) -> Optional[str]:
        if self.success or not self.attempts:
            return None
        return self.attempts[-1].error

    @property
    def last_code(self) -> str:
        """Most recent non-empty code, kept for inspection even on failure."""
        for attempt in reversed(self.attempts):
            if attempt.code:
                return attempt.code
        return ""


@dataclass(frozen=True)
class ConversationTurn:
    role: str  # "user" | "assistant" | "system"
    content: str


@dataclass
class GenerationRequest:
    prompt: str
    provider: str
    model: str
    api_key: str
    comp_context: Optional[str] = None
    retry_context: Optional[str] = None
    history: List[ConversationTurn] = field(default_factory=list)


@dataclass
class GenerationResult:
    success: bool
    code: str = ""
    raw_response: str = ""
    error: Optional[str] = None


@dataclass
class RefineResult:
    success: bool
    refined: str = ""
    error: Optional[str] = None


@dataclass
class ExecutionResult:
    """Outcome reported by the host. transport_error marks a bridge failure
    as opposed to the script itself raising."""
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None
    line: Optional[int] = None
    transport_error: bool = False


# ==========================================
# Knowledge Corpus
# ==========================================


@dataclass(frozen=True)
class Atom:
    class_name: str
    member: Optional[str] = None
    signature: Optional[str] = None
    return_type: Optional[str] = None
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Atom":
        return cls(
            class_name=data["className"],
            member=data.get("member"),
            signature=data.get("signature"),
            return_type=data.get("returnType"),
            description=data.get("description"),
            tags=tuple(data.get("tags") or ()),
        )


@dataclass(frozen=True)
class Recipe:
    title: str
    code: str
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recipe":
        return cls(title=data["title"], code=data.get("code", ""), tags=tuple(data.get("tags") or ()))


@dataclass(frozen=True)
class Gotcha:
    title: str
    description: str
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Gotcha":
        return cls(
            title=data["title"],
            description=data.get("description", ""),
            tags=tuple(data.get("tags") or ()),
        )


@dataclass(frozen=True)
class KnowledgeCorpus:
    """Entry position within each sequence is its identity in the index."""
    atoms: Tuple[Atom, ...] = ()
    recipes: Tuple[Recipe, ...] = ()
    gotchas: Tuple[Gotcha, ...] = ()
    version: str = "unknown"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeCorpus":
        return cls(
            atoms=tuple(Atom.from_dict(a) for a in data.get("atoms") or ()),
            recipes=tuple(Recipe.from_dict(r) for r in data.get("recipes") or ()),
            gotchas=tuple(Gotcha.from_dict(g) for g in data.get("gotchas") or ()),
            version=str(data.get("version", "unknown")),
        )
