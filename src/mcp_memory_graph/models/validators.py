"""Shared Pydantic types and validators for reuse across models.

Centralises tag normalisation, range-clamped floats, namespace and
identifier constraints, and Literal enums so every model speaks the same language.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BeforeValidator, Field

# ---------------------------------------------------------------------------
# Tag normalisation
# ---------------------------------------------------------------------------


def normalize_tags(v: Any) -> list[str]:
    """Accept ``str | list | set | None`` and return a clean, de-duplicated ``list[str]``.

    * ``"a, b, c"`` → ``["a", "b", "c"]``
    * ``["a", None, " b ", "a"]`` → ``["a", "b"]``
    * ``None`` → ``[]``

    Tags form a set; first-seen order is kept so stored payloads are stable.
    """
    if v is None:
        return []
    if isinstance(v, str):
        items = [t.strip() for t in v.split(",")]
    elif isinstance(v, list | tuple | set | frozenset):
        items = [str(item).strip() for item in v if item is not None]
    else:
        return []
    return list(dict.fromkeys(t for t in items if t))


Tags = Annotated[list[str], BeforeValidator(normalize_tags)]
"""Flexible tag input: accepts str, list, set, or None and always outputs list[str]."""


# ---------------------------------------------------------------------------
# String constraints
# ---------------------------------------------------------------------------


def _require_text(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be empty or whitespace")
    return v


NonEmptyText = Annotated[str, Field(min_length=1), AfterValidator(_require_text)]
"""Non-empty string; surrounding whitespace is kept but blank strings are rejected."""

Namespace = NonEmptyText
"""Isolation key partitioning all memories and edges."""

MemoryId = Annotated[str, Field(min_length=1)]
"""Opaque memory or edge identifier."""


# ---------------------------------------------------------------------------
# Numeric types
# ---------------------------------------------------------------------------

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]
"""Float clamped to [0.0, 1.0] for weights and normalised scores."""


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

RelationType = Literal["updates", "extends", "derives", "mentions"]

# str (not Literal): user-defined source types are allowed
DEFAULT_SOURCE_TYPE = "agent"
