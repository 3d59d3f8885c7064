"""Bounded summaries for oversized step arrays.

A step's ``candidates`` and ``filtered`` arrays can hold thousands of elements.
Above a per-step limit they are replaced by a Summary: the first ``limit``
elements, the true element count, and min/max/average for numeric fields seen
on the sample. Statistics describe the sample only, never the full array.

Every consumer that needs an element count goes through ``count_items`` so
that raw lists and summaries are counted identically.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, JsonValue
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

SUMMARY_DISCRIMINATOR = "isSummary"
DEFAULT_SUMMARY_LIMIT = 100


class FieldStatistics(BaseModel):
    """Min/max/average of one numeric field across a summary sample."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    average: float


class Summary(BaseModel):
    """Stand-in for a sequence longer than its summarization limit."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    is_summary: Literal[True] = True
    total: int
    sample: list[Any] = Field(default_factory=list)
    sample_size: int
    statistics: dict[str, FieldStatistics] | None = None

    def to_json(self) -> dict[str, JsonValue]:
        """Wire representation with camelCase keys."""
        return to_jsonable_python(self, by_alias=True, fallback=str)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _fields_of(item: Any) -> Mapping[str, Any] | None:
    if isinstance(item, Mapping):
        return cast(Mapping[str, Any], item)
    if isinstance(item, BaseModel):
        return item.model_dump()
    return None


def compute_statistics(sample: Sequence[Any]) -> dict[str, FieldStatistics] | None:
    """Per-field numeric statistics over ``sample``.

    Fields are taken from the first element; only fields holding a number there
    are considered. Elements missing a field, or holding a non-number, are
    skipped for that field.
    """
    if not sample:
        return None
    first = _fields_of(sample[0])
    if first is None:
        return None

    rows = [_fields_of(item) for item in sample]
    stats: dict[str, FieldStatistics] = {}
    for key, first_value in first.items():
        if not _is_number(first_value):
            continue
        values = [row[key] for row in rows if row is not None and _is_number(row.get(key))]
        stats[key] = FieldStatistics(
            min=min(values),
            max=max(values),
            average=sum(values) / len(values),
        )
    return stats or None


def summarize_sequence(items: Any, limit: int = DEFAULT_SUMMARY_LIMIT) -> Any:
    """Return ``items`` unchanged, or a Summary when it is longer than ``limit``.

    Sampling is deterministic: the first ``limit`` elements in original order.
    Non-sequences, strings, bytes and ``None`` pass through untouched. Empty
    sequences are returned as-is for any limit. A limit of zero or less
    summarizes any non-empty sequence to an empty sample.
    """
    if items is None or isinstance(items, str | bytes | bytearray) or not isinstance(items, Sequence):
        return items
    seq = cast(Sequence[Any], items)
    if not seq or len(seq) <= limit:
        return items

    sample_size = max(limit, 0)
    sample = list(seq[:sample_size])
    return Summary(
        total=len(seq),
        sample=sample,
        sample_size=sample_size,
        statistics=compute_statistics(sample),
    )


def is_summary(value: Any) -> bool:
    """True for a Summary model or its wire form (``{"isSummary": true, ...}``)."""
    if isinstance(value, Summary):
        return True
    return isinstance(value, Mapping) and cast(Mapping[str, Any], value).get(SUMMARY_DISCRIMINATOR) is True


def count_items(value: Any) -> int | None:
    """Element count of a raw list or a Summary; ``None`` if it is neither.

    For a Summary this is ``total`` (the pre-summarization length), not the
    sample length.
    """
    if isinstance(value, Summary):
        return value.total
    if is_summary(value):
        total = cast(Mapping[str, Any], value).get("total")
        return total if isinstance(total, int) and not isinstance(total, bool) else None
    if isinstance(value, list | tuple):
        return len(cast(Sequence[Any], value))
    return None


__all__ = [
    "DEFAULT_SUMMARY_LIMIT",
    "SUMMARY_DISCRIMINATOR",
    "FieldStatistics",
    "Summary",
    "compute_statistics",
    "count_items",
    "is_summary",
    "summarize_sequence",
]
