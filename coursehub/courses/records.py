"""
Record helpers shared by the entity services
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional

from coursehub.store.base import Document

Record = Dict[str, Any]

_WHITESPACE = re.compile(r"\s+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_record(document: Optional[Document], **extra: Any) -> Optional[Record]:
    """Flatten a stored document into ``{"id": ..., **fields}``"""
    if document is None:
        return None
    record = {"id": document.id, **document.data}
    record.update({k: v for k, v in extra.items() if v is not None})
    return record


def to_records(documents: Iterable[Document], **extra: Any) -> List[Record]:
    return [to_record(doc, **extra) for doc in documents]


def order_key(record: Record) -> float:
    """Missing or non-numeric ``order`` sorts as 0"""
    try:
        return float(record.get("order") or 0)
    except (TypeError, ValueError):
        return 0.0


def sort_by_order(records: List[Record]) -> List[Record]:
    # sorted() is stable, so ties keep their read order
    return sorted(records, key=order_key)


def dedupe(records: Iterable[Record], key: Callable[[Record], Hashable]) -> List[Record]:
    """Keep the first record for every key"""
    seen = set()
    unique = []
    for record in records:
        k = key(record)
        if k in seen:
            continue
        seen.add(k)
        unique.append(record)
    return unique


def module_id_from_title(title: str) -> str:
    """``"Intro to Python"`` -> ``"intro_to_python"``"""
    return _WHITESPACE.sub("_", title.strip().lower())


def clean_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset fields and the document id from an update payload"""
    return {k: v for k, v in patch.items() if v is not None and k != "id"}


def matches_term(record: Record, term: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring match over the given text fields"""
    needle = term.lower()
    for name in fields:
        value = record.get(name)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


def percentage(part: float, whole: float, digits: int = 1) -> float:
    """``part / whole`` as a percentage; 0.0 when ``whole`` is 0"""
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)
