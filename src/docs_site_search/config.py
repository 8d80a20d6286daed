"""Configuration for docs-site-search using Pydantic.

Search options are passed explicitly into build and query calls as a
``SearchConfig`` value; nothing is read from ambient global state. The
recognized option names of the site's search widget (``fieldWeights``,
``minTokenLength``, ``stopWords``, ``stemmer``, ``matchMode``,
``resultLimit``) are accepted verbatim through camelCase aliases.

Process-level settings for the command line (log level, default feed and
snapshot paths) live in ``Settings`` and are loaded from the environment.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from docs_site_search.errors import ConfigurationError
from docs_site_search.search.analyzers import ENGLISH_STOPWORDS, STEMMER_NAMES


Stemmer = Callable[[str], str]


def _configuration_error(exc: PydanticValidationError) -> ConfigurationError:
    errors = exc.errors()
    first = errors[0] if errors else {}
    option = ".".join(str(part) for part in first.get("loc", ())) or None
    reason = first.get("msg", str(exc))
    message = f"Invalid search option '{option}': {reason}" if option else f"Invalid search options: {reason}"
    return ConfigurationError(message, option=option)


class _ConfigModel(BaseModel):
    """Immutable config model; ``load_search_config`` maps its failures to ``ConfigurationError``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class FieldWeights(_ConfigModel):
    """Per-field weights applied when scoring matches."""

    title: Annotated[
        float,
        Field(gt=0.0, description="Weight of title matches (highest by default)"),
    ] = 3.0

    excerpt: Annotated[
        float,
        Field(gt=0.0, description="Weight of excerpt matches"),
    ] = 1.0

    tags: Annotated[
        float,
        Field(gt=0.0, description="Weight of tag matches"),
    ] = 2.0

    categories: Annotated[
        float,
        Field(gt=0.0, description="Weight of category matches"),
    ] = 1.5

    def for_field(self, name: str) -> float:
        return float(getattr(self, name))


class RankingConfig(_ConfigModel):
    """BM25 term-frequency saturation knobs."""

    k1: Annotated[
        float,
        Field(ge=0.0, le=3.0, description="Term frequency saturation; 0 makes tf binary"),
    ] = 1.2

    b: Annotated[
        float,
        Field(ge=0.0, le=1.0, description="Field length normalization; 0 disables it"),
    ] = 0.75


class SearchConfig(_ConfigModel):
    """Options shared by index construction and query evaluation."""

    field_weights: Annotated[
        FieldWeights,
        Field(description="Relative weight of each indexed field"),
    ] = Field(default_factory=FieldWeights)

    min_token_length: Annotated[
        int,
        Field(ge=1, description="Tokens shorter than this are discarded"),
    ] = 1

    stop_words: Annotated[
        frozenset[str],
        Field(description="Tokens dropped during tokenization (empty keeps domain terms like 'c')"),
    ] = frozenset()

    stemmer: Annotated[
        str | Stemmer | None,
        Field(description="Stemming hook: None, a bundled stemmer name, or a callable"),
    ] = None

    match_mode: Annotated[
        Literal["any", "all"],
        Field(description="'any' keeps documents matching min_match terms; 'all' requires every term"),
    ] = "any"

    min_match: Annotated[
        int,
        Field(ge=1, description="Minimum distinct query terms a candidate must match in 'any' mode"),
    ] = 1

    result_limit: Annotated[
        int | None,
        Field(ge=1, description="Maximum results returned; None is unlimited"),
    ] = None

    ranking: Annotated[
        RankingConfig,
        Field(description="Scoring constants"),
    ] = Field(default_factory=RankingConfig)

    @field_validator("stop_words", mode="before")
    @classmethod
    def _normalize_stop_words(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            if value.lower() == "english":
                return frozenset(ENGLISH_STOPWORDS)
            raise ValueError("stop words must be a collection of strings or the preset 'english'")
        return frozenset(str(word).lower() for word in value)

    @field_validator("stemmer", mode="before")
    @classmethod
    def _check_stemmer(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.lower()
            if normalized not in STEMMER_NAMES:
                raise ValueError(f"unknown stemmer '{value}'. Available: {sorted(STEMMER_NAMES)}")
            return normalized
        return value


def load_search_config(data: SearchConfig | Mapping[str, Any] | None = None) -> SearchConfig:
    """Return a validated ``SearchConfig`` from a mapping of options."""

    if data is None:
        return SearchConfig()
    if isinstance(data, SearchConfig):
        return data
    try:
        return SearchConfig.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise _configuration_error(exc) from exc


class Settings(BaseSettings):
    """Process settings loaded from ``DOCS_SITE_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCS_SITE_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")
    feed_path: Path | None = Field(default=None, description="Default document store feed (lunr-store.js or JSON)")
    snapshot_path: Path | None = Field(default=None, description="Default index snapshot location")
    result_limit: int | None = Field(default=10, ge=1, description="Default number of results printed by the CLI")
