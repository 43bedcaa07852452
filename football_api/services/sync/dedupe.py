"""Collapse provider records that share an external reference."""
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
KeyFn = Callable[[Any], Optional[Hashable]]


def field_key(name: str) -> KeyFn:
    """Key function reading one field, normalized to a stripped string."""
    def key(record: Dict[str, Any]) -> Optional[str]:
        value = record.get(name) if isinstance(record, dict) else None
        if value is None:
            return None
        value = str(value).strip()
        return value or None
    return key


def dedupe(records: Iterable[T], key_fn: KeyFn) -> List[T]:
    """
    Keep the first record for each key, preserving provider order.

    Duplicates are normal provider behaviour and are dropped silently.
    Records without a key are kept as-is so the mapper can report them.
    """
    seen = set()
    unique = []
    for record in records:
        key = key_fn(record)
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        unique.append(record)
    return unique
