"""Grammar configuration for minilang, loaded from YAML."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field, fields
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_GRAMMAR_RESOURCE = "grammar.yaml"


class GrammarConfigError(Exception):
    """Raised when a grammar file is missing, malformed or inconsistent."""


@dataclass(frozen=True)
class ParserOptions:
    """Switches for the optional parts of the grammar."""

    fn_requires_return_type: bool = True
    method_requires_return_type: bool = False


@dataclass(frozen=True)
class GrammarConfig:
    """Keyword set and parser options for one grammar."""

    keywords: frozenset[str]
    options: ParserOptions = field(default_factory=ParserOptions)


def _parse_keywords(raw: Any, origin: str) -> frozenset[str]:
    if not isinstance(raw, list):
        raise GrammarConfigError(f"{origin}: 'keywords' must be a list")
    words: set[str] = set()
    for item in raw:
        if not isinstance(item, str) or not item or any(ch.isspace() for ch in item):
            raise GrammarConfigError(f"{origin}: invalid keyword {item!r}")
        words.add(item)
    return frozenset(words)


def _parse_options(raw: Any, origin: str) -> ParserOptions:
    if raw is None:
        return ParserOptions()
    if not isinstance(raw, dict):
        raise GrammarConfigError(f"{origin}: 'parser' must be a mapping")
    known = {f.name for f in fields(ParserOptions)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise GrammarConfigError(f"{origin}: unknown parser options: {', '.join(unknown)}")
    for key, value in raw.items():
        if not isinstance(value, bool):
            raise GrammarConfigError(f"{origin}: parser option {key!r} must be true or false")
    return ParserOptions(**raw)


def grammar_from_mapping(data: Any, origin: str = "<mapping>") -> GrammarConfig:
    """Build a :class:`GrammarConfig` from already-decoded YAML data."""
    if not isinstance(data, dict):
        raise GrammarConfigError(f"{origin}: grammar must be a mapping")
    if "keywords" not in data:
        raise GrammarConfigError(f"{origin}: missing 'keywords'")
    return GrammarConfig(
        keywords=_parse_keywords(data["keywords"], origin),
        options=_parse_options(data.get("parser"), origin),
    )


def load_grammar(path: str | Path | None = None) -> GrammarConfig:
    """Load a grammar file, or the packaged default when *path* is None."""
    if path is None:
        origin = f"minilang/{DEFAULT_GRAMMAR_RESOURCE}"
        text = resources.files("minilang").joinpath(DEFAULT_GRAMMAR_RESOURCE).read_text(
            encoding="utf-8"
        )
    else:
        origin = str(path)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise GrammarConfigError(f"{origin}: cannot read grammar file: {e}") from e
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise GrammarConfigError(f"{origin}: invalid YAML: {e}") from e
    config = grammar_from_mapping(data, origin)
    logger.debug("loaded grammar from %s with %d keywords", origin, len(config.keywords))
    return config


@functools.lru_cache(maxsize=1)
def default_grammar() -> GrammarConfig:
    """Return the packaged grammar, loaded once."""
    return load_grammar()
