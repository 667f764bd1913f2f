# File: laragen/utils.py
"""
Laragen - Naming Transforms & File Helpers
============================================
String transformation and file I/O utilities shared by every stage of the
generation pipeline.

Naming strategy:
- Every conversion is memoised with ``lru_cache``; classification asks for
  the same handful of names over and over.
- The conversions mirror the host framework's conventions: a model ``OrderItem``
  lives in table ``order_items``; a table ``post_tag`` maps back to model
  ``PostTag``.
- Pluralisation is rule-based English.  It is the *only* heuristic used to
  guess an implicit foreign-key target (``author_id`` → ``authors``), so
  irregular nouns outside the table below (``leaf``, ``hero``, ``movie``)
  will be guessed wrong.

Source files are replaced through a sibling temp file, never rewritten in
place.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.utils")

# ---------------------------------------------------------------------------
# Word splitting and inflection tables
# ---------------------------------------------------------------------------

_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]+")
# "getHTTPResponse" → get / HTTP / Response; digits stay on their word ("oauth2")
_WORD_RE: re.Pattern[str] = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?=[A-Z][a-z]|\b)|[A-Z]+\d*|\d+")

_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "analysis": "analyses",
    "criterion": "criteria",
    "status": "statuses",
    "address": "addresses",
    "bus": "buses",
    "campus": "campuses",
    "virus": "viruses",
    "bonus": "bonuses",
    "alias": "aliases",
    "quiz": "quizzes",
    # uncountable
    "media": "media",
    "news": "news",
    "series": "series",
    "equipment": "equipment",
    "information": "information",
    "feedback": "feedback",
    "metadata": "metadata",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {plural: single for single, plural in _IRREGULAR_PLURALS.items()}


@functools.lru_cache(maxsize=None)
def _words(name: str) -> Tuple[str, ...]:
    """Lower-case words of *name*, split on separators and case changes."""
    return tuple(w.lower() for w in _WORD_RE.findall(_SEPARATOR_RE.sub(" ", name)))


# ---------------------------------------------------------------------------
# Case conversion
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    ``snake_case`` form of *name*, whatever its current casing.

    Examples:
        >>> to_snake_case("OrderItem")
        'order_item'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("post-tag")
        'post_tag'
    """
    return "_".join(_words(name))


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    ``StudlyCase`` for class names.

        >>> to_pascal_case("order_item")
        'OrderItem'
    """
    return "".join(w.capitalize() for w in _words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """``camelCase`` for relation method names: ``post_tags`` → ``postTags``."""
    words: Tuple[str, ...] = _words(name)
    if not words:
        return ""
    return words[0] + "".join(w.capitalize() for w in words[1:])


@functools.lru_cache(maxsize=None)
def to_kebab_case(name: str) -> str:
    return "-".join(_words(name))


# ---------------------------------------------------------------------------
# Inflection
# ---------------------------------------------------------------------------


def _with_case_of(template: str, word: str) -> str:
    return word[:1].upper() + word[1:] if template[:1].isupper() else word


def _split_last_word(name: str) -> Tuple[str, str]:
    """
    ``order_item`` → (``order_``, ``item``); ``OrderItem`` → (``Order``, ``Item``).

    Inflection only ever touches the final word.
    """
    if "_" in name:
        head, _, tail = name.rpartition("_")
        return head + "_", tail
    parts: List[str] = _WORD_RE.findall(name)
    if len(parts) > 1 and "".join(parts) == name:
        return name[: -len(parts[-1])], parts[-1]
    return "", name


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Rule-based English plural of the last word of *name*.

    Examples:
        >>> to_plural("category")
        'categories'
        >>> to_plural("OrderItem")
        'OrderItems'
        >>> to_plural("person")
        'people'
    """
    if not name:
        return ""
    prefix, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_PLURALS:
        return prefix + _with_case_of(word, _IRREGULAR_PLURALS[lower])
    if lower in _IRREGULAR_SINGULARS:
        return name
    if lower.endswith(("sh", "ch", "x", "z", "ss", "us", "is")):
        return name + "es"
    if lower.endswith("s"):
        return name
    if len(lower) > 1 and lower.endswith("y") and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """Inverse of :func:`to_plural`; ``post_tag`` is left alone."""
    if not name:
        return ""
    prefix, word = _split_last_word(name)
    lower: str = word.lower()

    if lower in _IRREGULAR_SINGULARS:
        return prefix + _with_case_of(word, _IRREGULAR_SINGULARS[lower])
    if lower in _IRREGULAR_PLURALS or lower.endswith(("ss", "us", "is")):
        return name
    if len(lower) > 3 and lower.endswith("ies"):
        return name[:-3] + "y"
    if lower.endswith(("sses", "shes", "ches", "xes")):
        return name[:-2]
    if lower.endswith("s"):
        return name[:-1]
    return name


# ---------------------------------------------------------------------------
# Framework conventions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def model_to_table(model_name: str) -> str:
    """``OrderItem`` → ``order_items``."""
    return to_snake_case(to_plural(model_name))


@functools.lru_cache(maxsize=None)
def table_to_model(table_name: str) -> str:
    """``order_items`` → ``OrderItem``."""
    return to_pascal_case(to_singular(table_name))


@functools.lru_cache(maxsize=None)
def model_to_route_name(model_name: str) -> str:
    """``OrderItem`` → ``order-items``."""
    return to_kebab_case(to_plural(model_name))


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path* as UTF-8, creating parent directories.

    The atomic form goes through a sibling temp file and ``os.replace`` so a
    model class is never left half written.  Returns the byte count; raises
    ``OSError`` after removing the temp file.
    """
    data: bytes = content.encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)

    if not atomic:
        path.write_bytes(data)
    else:
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as handle:
            staged: Path = Path(handle.name)
        try:
            staged.write_bytes(data)
            os.replace(staged, path)
        except OSError:
            staged.unlink(missing_ok=True)
            raise

    logger.debug("Wrote %s (%d bytes)", path, len(data))
    return len(data)


def read_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Hex SHA-256 of the UTF-8 encoding of *content*."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Line count; a trailing newline does not open a new line."""
    return len(content.splitlines())


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


class Timer:
    """
    Wall-clock timer for pipeline steps::

        with Timer("relationships") as t:
            ...
        report.elapsed = t.elapsed
    """

    __slots__ = ("label", "_started", "elapsed")

    def __init__(self, label: str = "step") -> None:
        self.label: str = label
        self._started: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.elapsed = time.perf_counter() - self._started
        logger.debug("%s took %.4fs", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label} {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_kebab_case",
    "to_plural",
    "to_singular",
    "model_to_table",
    "table_to_model",
    "model_to_route_name",
    "write_file",
    "read_file",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("laragen.utils loaded (%d public symbols)", len(__all__))
