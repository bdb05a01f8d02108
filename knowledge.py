import os
import re
import json
import logging
import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple

import requests

from api_docs import SEED_CORPUS
from data_types import KnowledgeCorpus

logger = logging.getLogger(__name__)

# ==========================================
# Keyword Index & Retrieval
# ==========================================

# Common words that match too broadly in the index
STOP_WORDS = frozenset([
    "the", "and", "for", "that", "with", "this", "from", "have", "all", "can",
    "will", "make", "like", "just", "want", "need", "get", "set", "use", "add",
    "new", "each", "how", "its",
])

# Chunks scoring below this are noise; a single exact keyword hit qualifies.
MIN_SCORE = 3
EXACT_MATCH_SCORE = 3
PREFIX_MATCH_SCORE = 1

DEFAULT_MAX_ATOMS = 5
DEFAULT_MAX_RECIPES = 2
DEFAULT_MAX_GOTCHAS = 3


class ChunkType(str, Enum):
    ATOM = "atom"
    RECIPE = "recipe"
    GOTCHA = "gotcha"


class ChunkRef(NamedTuple):
    type: ChunkType
    index: int


def tokenize(text: str) -> List[str]:
    """Lowercased query keywords, stop words and short words removed, first occurrence kept."""
    words = re.sub(r"[^a-z0-9\s]", " ", text.lower()).split()
    seen = set()
    keywords = []
    for word in words:
        if len(word) <= 2 or word in STOP_WORDS or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


def _title_words(title: str) -> List[str]:
    return [w for w in title.lower().split() if len(w) > 3]


def build_index(corpus: KnowledgeCorpus) -> Dict[str, Set[ChunkRef]]:
    index: Dict[str, Set[ChunkRef]] = defaultdict(set)

    for i, atom in enumerate(corpus.atoms):
        keywords = [atom.class_name.lower()]
        if atom.member:
            keywords.append(atom.member.lower())
        keywords.extend(t.lower() for t in atom.tags)
        for kw in keywords:
            index[kw].add(ChunkRef(ChunkType.ATOM, i))

    for chunk_type, entries in ((ChunkType.RECIPE, corpus.recipes), (ChunkType.GOTCHA, corpus.gotchas)):
        for i, entry in enumerate(entries):
            keywords = [t.lower() for t in entry.tags] + _title_words(entry.title)
            for kw in keywords:
                index[kw].add(ChunkRef(chunk_type, i))

    return dict(index)


def _score(index: Dict[str, Set[ChunkRef]], text: str) -> Dict[ChunkType, Dict[int, int]]:
    scores: Dict[ChunkType, Dict[int, int]] = {t: defaultdict(int) for t in ChunkType}
    for word in tokenize(text):
        for ref in index.get(word, ()):
            scores[ref.type][ref.index] += EXACT_MATCH_SCORE
        for kw, refs in index.items():
            if kw != word and kw.startswith(word):
                for ref in refs:
                    scores[ref.type][ref.index] += PREFIX_MATCH_SCORE
    return scores


def _top_n(scores: Dict[int, int], n: int) -> List[int]:
    # Ties keep corpus order.
    ranked = sorted((i for i, s in scores.items() if s >= MIN_SCORE), key=lambda i: (-scores[i], i))
    return ranked[:n]


class KnowledgeIndex:
    """In-memory inverted index over a knowledge corpus.

    The corpus and its index are swapped together in a single assignment,
    so a retrieval racing a reload sees either the old or the new state.
    """

    def __init__(self, corpus: Optional[KnowledgeCorpus] = None):
        self._state: Optional[Tuple[KnowledgeCorpus, Dict[str, Set[ChunkRef]]]] = None
        if corpus is not None:
            self.load(corpus)

    @property
    def is_ready(self) -> bool:
        return self._state is not None

    @property
    def corpus(self) -> Optional[KnowledgeCorpus]:
        state = self._state
        return state[0] if state else None

    def load(self, corpus: KnowledgeCorpus) -> None:
        self._state = (corpus, build_index(corpus))
        logger.debug("Indexed knowledge corpus %s", corpus.version)

    # Rebuilt wholesale; never updated incrementally.
    reload = load

    def clear(self) -> None:
        self._state = None

    def keywords(self) -> List[str]:
        state = self._state
        return sorted(state[1]) if state else []

    def score(self, text: str) -> Dict[ChunkType, Dict[int, int]]:
        state = self._state
        return _score(state[1] if state else {}, text)

    def retrieve(
        self,
        text: str,
        max_atoms: Optional[int] = None,
        max_recipes: Optional[int] = None,
        max_gotchas: Optional[int] = None,
    ) -> str:
        """Formats the best matching chunks for prompt injection, or returns ''."""
        state = self._state
        if state is None:
            return ""
        corpus, index = state

        scores = _score(index, text)
        atoms = [corpus.atoms[i] for i in _top_n(scores[ChunkType.ATOM], max_atoms or DEFAULT_MAX_ATOMS)]
        recipes = [corpus.recipes[i] for i in _top_n(scores[ChunkType.RECIPE], max_recipes or DEFAULT_MAX_RECIPES)]
        gotchas = [corpus.gotchas[i] for i in _top_n(scores[ChunkType.GOTCHA], max_gotchas or DEFAULT_MAX_GOTCHAS)]

        if not atoms and not recipes and not gotchas:
            return ""

        parts = []
        if atoms:
            parts.append("=== API ===")
            for atom in atoms:
                line = atom.class_name
                if atom.member:
                    line += "." + atom.member
                if atom.signature:
                    line += atom.signature
                if atom.return_type:
                    line += " -> " + atom.return_type
                if atom.description:
                    line += " — " + atom.description
                parts.append(line)

        if recipes:
            parts.append("\n=== PATTERNS ===")
            for recipe in recipes:
                parts.append(recipe.title + ":\n" + recipe.code)

        if gotchas:
            parts.append("\n=== AVOID ===")
            for gotcha in gotchas:
                parts.append("- " + gotcha.title + ": " + gotcha.description)

        return "\n".join(parts)


# ==========================================
# Corpus Loading (cache -> download -> seed)
# ==========================================


class KnowledgeBase:
    """Owns a KnowledgeIndex and the cache-then-download path feeding it."""

    def __init__(
        self,
        cache_path: str,
        url: str,
        session: Optional[requests.Session] = None,
        index: Optional[KnowledgeIndex] = None,
        timeout: float = 30.0,
        use_seed: bool = True,
    ):
        self.cache_path = cache_path
        self.url = url
        self.session = session or requests.Session()
        self.index = index or KnowledgeIndex()
        self.timeout = timeout
        self.use_seed = use_seed
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self.index.is_ready

    def ensure_loaded(self) -> bool:
        """Loads the corpus on first use. Returns whether retrieval is available."""
        if self.index.is_ready:
            return True
        with self._lock:
            if self.index.is_ready:
                return True
            corpus = self._parse(self._load_cache(), "cache")
            if corpus is None:
                corpus = self._fetch()
            if corpus is None and self.use_seed:
                logger.info("Using bundled seed knowledge corpus")
                corpus = KnowledgeCorpus.from_dict(SEED_CORPUS)
            if corpus is None:
                return False
            self.index.load(corpus)
            return True

    def update(self) -> bool:
        """Forces a fresh download. The current corpus stays if the download fails."""
        with self._lock:
            corpus = self._fetch()
            if corpus is None:
                return False
            self.index.reload(corpus)
            return True

    def retrieve(self, text: str, **options: Any) -> str:
        if not self.ensure_loaded():
            return ""
        return self.index.retrieve(text, **options)

    def stats(self) -> Optional[Dict[str, Any]]:
        corpus = self.index.corpus
        if corpus is None:
            return None
        return {
            "atoms": len(corpus.atoms),
            "recipes": len(corpus.recipes),
            "gotchas": len(corpus.gotchas),
            "version": corpus.version,
        }

    def _load_cache(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.cache_path):
            return None
        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load knowledge cache %s: %s", self.cache_path, e)
            return None
        if not isinstance(data, dict) or not data.get("atoms"):
            logger.warning("Ignoring knowledge cache without atoms: %s", self.cache_path)
            return None
        return data

    def _download(self) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(
                self.url,
                headers={"User-Agent": "AE-Conjure/1.0"},
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.warning("Knowledge download error: %s", e)
            return None

        if response.status_code != 200:
            logger.warning("Knowledge download failed, status %s", response.status_code)
            return None
        try:
            data = response.json()
        except ValueError as e:
            logger.warning("Knowledge download parse error: %s", e)
            return None
        if not isinstance(data, dict):
            logger.warning("Knowledge download is not a corpus document")
            return None
        return data

    def _fetch(self) -> Optional[KnowledgeCorpus]:
        """Downloads and parses the corpus; only a usable document is cached."""
        data = self._download()
        corpus = self._parse(data, "download")
        if corpus is not None:
            self._save_cache(data)
        return corpus

    @staticmethod
    def _parse(data: Optional[Dict[str, Any]], source: str) -> Optional[KnowledgeCorpus]:
        if data is None:
            return None
        try:
            return KnowledgeCorpus.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("Malformed knowledge corpus from %s: %r", source, e)
            return None

    def _save_cache(self, data: Dict[str, Any]) -> None:
        try:
            os.makedirs(os.path.dirname(self.cache_path) or ".", exist_ok=True)
            with open(self.cache_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning("Failed to cache knowledge corpus: %s", e)
