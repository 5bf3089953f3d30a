from __future__ import annotations

from typing import Iterable, List, Sequence

from catalog_cache.domain.catalog import Record


def filter_records(records: Iterable[Record], term: str, fields: Sequence[str]) -> List[Record]:
    """Case-insensitive substring match of ``term`` over ``fields``.

    A blank term returns every record in its original order. Any other term
    is matched as typed, surrounding whitespace included. Pure and
    synchronous: it only ever looks at the records it is given.
    """

    if not (term or "").strip():
        return list(records)
    needle = term.casefold()

    matched: List[Record] = []
    for record in records:
        for name in fields:
            value = record.get(name)
            if value is not None and needle in str(value).casefold():
                matched.append(record)
                break
    return matched


__all__ = ["filter_records"]
