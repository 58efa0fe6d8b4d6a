"""Generic filtering, sorting, and case-insensitive search utilities."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy import Select, and_, or_
from sqlalchemy.orm import InstrumentedAttribute


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    model: Any,
    sort: Optional[str],
) -> Select:
    """
    Parse a sort string like ``"-created_at"`` and apply ORDER BY.

    * Leading ``-`` → DESC; otherwise ASC.
    * Unknown columns are ignored (the value comes straight from a query string).
    """
    if not sort:
        return query

    descending = sort.startswith("-")
    col = _get_column(model, sort.lstrip("-"))
    if col is None:
        return query
    return query.order_by(col.desc() if descending else col.asc())


# ── Generic filtering ──────────────────────────────────────────────

def apply_filters(
    query: Select,
    model: Any,
    filters: dict[str, Any],
) -> Select:
    """
    Apply a dict of filter parameters to a SQLAlchemy ``Select``.

    Key suffixes determine the operator:

    ============  ==================
    Suffix        Operator
    ============  ==================
    (none)        ``==``
    ``__ilike``   case-insensitive LIKE (wraps ``%…%``)
    ``__from``    ``>=``
    ``__to``      ``<=``
    ``__in``      ``IN (…)``
    ``__ne``      ``!=``
    ============  ==================

    ``None`` values are silently skipped.
    """
    conditions: list = []

    for key, value in filters.items():
        if value is None:
            continue

        if key.endswith("__ilike"):
            col = _get_column(model, key.removesuffix("__ilike"))
            if col is not None:
                conditions.append(col.ilike(f"%{value}%"))

        elif key.endswith("__from"):
            col = _get_column(model, key.removesuffix("__from"))
            if col is not None:
                conditions.append(col >= value)

        elif key.endswith("__to"):
            col = _get_column(model, key.removesuffix("__to"))
            if col is not None:
                conditions.append(col <= value)

        elif key.endswith("__in"):
            col = _get_column(model, key.removesuffix("__in"))
            if col is not None:
                conditions.append(col.in_(value))

        elif key.endswith("__ne"):
            col = _get_column(model, key.removesuffix("__ne"))
            if col is not None:
                conditions.append(col != value)

        else:
            col = _get_column(model, key)
            if col is not None:
                conditions.append(col == value)

    if conditions:
        query = query.where(and_(*conditions))

    return query


# ── Search ──────────────────────────────────────────────────────────

def apply_search(
    query: Select,
    model: Any,
    search: Optional[str],
    columns: Sequence[str],
) -> Select:
    """OR together ``ILIKE %search%`` over *columns*."""
    if not search or not search.strip():
        return query

    search = search.strip()
    like_conds = [
        col.ilike(f"%{search}%")
        for col in (_get_column(model, name) for name in columns)
        if col is not None
    ]
    if not like_conds:
        return query
    return query.where(or_(*like_conds))


# ── Internal helper ─────────────────────────────────────────────────

def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    """Safely retrieve a mapped column attribute by name."""
    return getattr(model, name, None)
