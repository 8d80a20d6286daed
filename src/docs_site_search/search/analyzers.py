"""Tokenization for the site search stack.

This module mirrors Whoosh's composable tokenizer/filter design without
pulling in heavy dependencies. One ``Analyzer`` instance is built from the
search options and shared by the index builder and the query engine so both
sides always normalize text the same way.

Splitting rule: after lowercasing, a token is a maximal run of characters
matching ``[^\\W_]+`` (Unicode letters and digits). Every other character,
including ``_``, ``+``, ``-``, ``&``, ``.`` and ``/``, is a boundary, so
``"C++"`` yields ``["c"]`` and ``"Pointers & References"`` yields
``["pointers", "references"]``.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Iterator, MutableMapping, Sequence
from dataclasses import dataclass, field
import hashlib
import re
from typing import TYPE_CHECKING, Any, Protocol


if TYPE_CHECKING:
    from docs_site_search.config import SearchConfig


TOKEN_PATTERN = r"[^\W_]+"


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int
    attributes: MutableMapping[str, Any] = field(default_factory=dict)

    def copy_with(self, **updates: Any) -> Token:
        data = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
            "attributes": dict(self.attributes),
        }
        data.update(updates)
        return Token(**data)


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields alphanumeric runs."""

    def __init__(self, pattern: str = TOKEN_PATTERN, flags: int = re.UNICODE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class MinLengthFilter:
    """Drops tokens shorter than ``min_length`` characters."""

    def __init__(self, min_length: int = 1) -> None:
        self.min_length = min_length

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if len(token.text) >= self.min_length:
                yield token


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Collection[str] | None = None) -> None:
        self.stopwords = frozenset(word.lower() for word in (stopwords or ()))

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


class StemFilter:
    """Applies a stemming callable, dropping tokens it reduces to nothing."""

    def __init__(self, stem: Callable[[str], str]) -> None:
        self.stem = stem

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stemmed = self.stem(token.text)
            if not stemmed:
                continue
            if stemmed == token.text:
                yield token
            else:
                yield token.copy_with(text=stemmed)


ENGLISH_STOPWORDS = frozenset(
    {
        "a",
        "an",
        "and",
        "are",
        "as",
        "at",
        "be",
        "but",
        "by",
        "for",
        "if",
        "in",
        "into",
        "is",
        "it",
        "no",
        "not",
        "of",
        "on",
        "or",
        "such",
        "that",
        "the",
        "their",
        "then",
        "there",
        "these",
        "they",
        "this",
        "to",
        "was",
        "will",
        "with",
    }
)

_SUFFIX_RULES: tuple[tuple[str, str], ...] = (
    ("ization", "ize"),
    ("ational", "ate"),
    ("fulness", "ful"),
    ("ousness", "ous"),
    ("iveness", "ive"),
    ("tional", "tion"),
    ("biliti", "ble"),
    ("lessli", "less"),
    ("entli", "ent"),
    ("enci", "ence"),
    ("anci", "ance"),
    ("izer", "ize"),
    ("abli", "able"),
    ("alli", "al"),
    ("ator", "ate"),
    ("alism", "al"),
    ("aliti", "al"),
    ("ousli", "ous"),
    ("ation", "ate"),
    ("ness", ""),
    ("ment", ""),
)

_SIMPLE_SUFFIXES: tuple[str, ...] = ("ingly", "edly", "ing", "ed", "ly", "es", "s")


def porter_stem(word: str) -> str:
    """Very small Porter-like stemmer suited for short post excerpts."""

    candidate = _strip_complex_suffix(word)
    if candidate:
        return candidate
    fallback = _strip_simple_suffix(word)
    if fallback:
        return fallback
    return word


def identity_stem(word: str) -> str:
    return word


def _strip_complex_suffix(lower: str) -> str | None:
    for suffix, replacement in _SUFFIX_RULES:
        if lower.endswith(suffix) and len(lower) - len(suffix) >= 2:
            candidate = lower[: -len(suffix)] + replacement
            if len(candidate) >= 2:
                return candidate
    return None


def _strip_simple_suffix(lower: str) -> str | None:
    for suffix in _SIMPLE_SUFFIXES:
        if lower.endswith(suffix) and len(lower) - len(suffix) >= 2:
            candidate = lower[: -len(suffix)]
            if len(candidate) >= 2:
                return candidate
    return None


_STEMMERS: dict[str, Callable[[str], str]] = {
    "none": identity_stem,
    "porter": porter_stem,
}

STEMMER_NAMES = frozenset(_STEMMERS)


def get_stemmer(stemmer: str | Callable[[str], str] | None) -> Callable[[str], str]:
    """Resolve a stemmer name or callable, defaulting to identity."""

    if stemmer is None:
        return identity_stem
    if callable(stemmer):
        return stemmer
    normalized = stemmer.lower()
    if normalized not in _STEMMERS:
        msg = f"Unknown stemmer '{stemmer}'. Available: {sorted(_STEMMERS)}"
        raise ValueError(msg)
    return _STEMMERS[normalized]


def _stemmer_label(stem: Callable[[str], str]) -> str:
    for name, known in _STEMMERS.items():
        if stem is known:
            return name
    module = getattr(stem, "__module__", "") or ""
    qualname = getattr(stem, "__qualname__", "") or type(stem).__qualname__
    # Lambdas and nested functions share a qualname; only the object tells them apart.
    if "<" in qualname:
        return f"{module}:{qualname}@{id(stem):x}"
    return f"{module}:{qualname}"


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> Iterator[Token]:
        stream: Iterable[Token] = self.tokenizer(text.lower())
        for token_filter in self.filters:
            stream = token_filter(stream)
        for position, token in enumerate(stream):  # renumber positions post-filtering
            token.position = position
            yield token


class Analyzer:
    """Lowercase, split, filter and stem text into index terms.

    The analyzer holds no mutable state, so ``tokenize`` is restartable: each
    call returns a fresh lazy iterator over the same terms.
    """

    def __init__(
        self,
        *,
        min_token_length: int = 1,
        stop_words: Collection[str] | None = None,
        stemmer: str | Callable[[str], str] | None = None,
    ) -> None:
        if min_token_length < 1:
            raise ValueError("min_token_length must be >= 1")
        self.min_token_length = min_token_length
        self.stop_words = frozenset(word.lower() for word in (stop_words or ()))
        self.stem = get_stemmer(stemmer)
        filters: list[TokenFilter] = [MinLengthFilter(min_token_length), StopFilter(self.stop_words)]
        if self.stem is not identity_stem:
            filters.append(StemFilter(self.stem))
        self.pipeline = AnalyzerPipeline(RegexTokenizer(), filters)
        self.fingerprint = self._compute_fingerprint()

    @classmethod
    def from_config(cls, config: SearchConfig) -> Analyzer:
        return cls(
            min_token_length=config.min_token_length,
            stop_words=config.stop_words,
            stemmer=config.stemmer,
        )

    def analyze(self, text: str) -> Iterator[Token]:
        """Yield tokens with positions and character offsets."""
        if not text:
            return iter(())
        return self.pipeline(text)

    def tokenize(self, text: str) -> Iterator[str]:
        """Yield normalized terms for ``text``."""
        return (token.text for token in self.analyze(text))

    def __call__(self, text: str) -> list[str]:
        return list(self.tokenize(text))

    def _compute_fingerprint(self) -> str:
        parts = [
            TOKEN_PATTERN,
            f"min={self.min_token_length}",
            "stop=" + ",".join(sorted(self.stop_words)),
            f"stem={_stemmer_label(self.stem)}",
        ]
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]

    def __repr__(self) -> str:
        return (
            f"Analyzer(min_token_length={self.min_token_length}, "
            f"stop_words={len(self.stop_words)}, stem={_stemmer_label(self.stem)!r})"
        )


def tokenize(text: str, analyzer: Analyzer | None = None) -> Iterator[str]:
    """Tokenize ``text`` with ``analyzer`` or the default configuration."""

    return (analyzer or _DEFAULT_ANALYZER).tokenize(text)


_DEFAULT_ANALYZER = Analyzer()
