"""Raw journal record normalization into canonical :class:`Trade` objects.

Source databases are user-customizable: column names drift ("R Multiple",
"R-multiple", "Multiple") and the same concept may be a select in one journal
and free text in another.  Instead of ad hoc lookups, every canonical
field is described by a row of :data:`FIELD_MAP`: an ordered list of
lookups, each a set of candidate name fragments plus the value-kind the
source column must declare.  A single resolver walks that table.

Raw record shape (one per trade)::

    {
        "id": "abc",
        "properties": {
            "Date":    {"type": "date", "date": {"start": "2024-03-01"}},
            "Pair":    {"type": "select", "select": {"name": "EURUSD"}},
            "R Multiple": {"type": "number", "number": 1.5},
            "Setup":   {"type": "multi_select", "multi_select": [{"name": "Sweep"}]},
            "Comment": {"type": "rich_text", "rich_text": [{"plain_text": "..."}]},
            "Charts":  {"type": "files", "files": [{"file": {"url": "..."}}]},
        },
    }

Nothing in this module raises on malformed input: unknown shapes resolve
to ``None`` (or ``[]`` for list fields).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from trading_journal.core.enums import FieldKind

from .record import Trade, classify_outcome

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Mapping table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Lookup:
    """Candidate name fragments that must carry a given value-kind."""

    candidates: tuple[str, ...]
    kind: FieldKind


@dataclass(frozen=True)
class FieldRule:
    """How to resolve one canonical field."""

    field: str
    lookups: tuple[Lookup, ...]

    @property
    def multi_valued(self) -> bool:
        return self.lookups[0].kind in _LIST_KINDS


_LIST_KINDS = frozenset({FieldKind.MULTI_SELECT, FieldKind.FILES})

_PAIR = ("pair", "symbol", "instrument")

FIELD_MAP: tuple[FieldRule, ...] = (
    FieldRule("date", (Lookup(("date", "traded", "entry", "opened"), FieldKind.DATE),)),
    FieldRule("pair", (
        Lookup(_PAIR, FieldKind.SELECT),
        Lookup(_PAIR, FieldKind.RICH_TEXT),
        Lookup(_PAIR, FieldKind.TITLE),
    )),
    FieldRule("direction", (Lookup(("direction", "side", "bias"), FieldKind.SELECT),)),
    FieldRule("outcome", (Lookup(("outcome", "result"), FieldKind.SELECT),)),
    FieldRule("r_multiple", (
        Lookup(("multiple", "r multiple", "r-multiple"), FieldKind.NUMBER),
    )),
    FieldRule("session", (Lookup(("session",), FieldKind.SELECT),)),
    FieldRule("htf_context", (Lookup(("htf",), FieldKind.SELECT),)),
    FieldRule("timeframe", (
        Lookup(("entry time", "entry tf", "timeframe"), FieldKind.SELECT),
    )),
    FieldRule("confluences", (
        Lookup(("ltf", "confluence", "setup", "tags"), FieldKind.MULTI_SELECT),
    )),
    FieldRule("comment", (Lookup(("comment", "note", "review"), FieldKind.RICH_TEXT),)),
    FieldRule("grade", (Lookup(("grade",), FieldKind.SELECT),)),
    FieldRule("images", (
        Lookup(("files", "chart", "screenshot", "image"), FieldKind.FILES),
    )),
)


# ---------------------------------------------------------------------------
# Kind-specific extractors
# ---------------------------------------------------------------------------

def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text_runs(runs: Any) -> str | None:
    parts = [
        r.get("plain_text") or ""
        for r in _as_list(runs)
        if isinstance(r, Mapping)
    ]
    return "".join(parts) if parts else None


def _extract_select(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        name = payload.get("name")
        return name if isinstance(name, str) and name else None
    return None


def _extract_multi_select(payload: Any) -> list[str]:
    return [
        o["name"]
        for o in _as_list(payload)
        if isinstance(o, Mapping) and isinstance(o.get("name"), str) and o["name"]
    ]


def _extract_number(payload: Any) -> float | None:
    if isinstance(payload, bool):
        return None
    if isinstance(payload, (int, float)):
        value = float(payload)
    elif isinstance(payload, str):
        try:
            value = float(payload.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def _extract_date_string(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        start = payload.get("start")
        return start if isinstance(start, str) else None
    if isinstance(payload, str):
        return payload
    return None


def _extract_files(payload: Any) -> list[str]:
    urls: list[str] = []
    for entry in _as_list(payload):
        if not isinstance(entry, Mapping):
            continue
        url = None
        for source in ("file", "external"):
            ref = entry.get(source)
            if isinstance(ref, Mapping) and ref.get("url"):
                url = ref["url"]
                break
        if url:
            urls.append(url)
    return urls


_EXTRACTORS = {
    FieldKind.DATE: _extract_date_string,
    FieldKind.NUMBER: _extract_number,
    FieldKind.SELECT: _extract_select,
    FieldKind.MULTI_SELECT: _extract_multi_select,
    FieldKind.RICH_TEXT: _text_runs,
    FieldKind.TITLE: _text_runs,
    FieldKind.FILES: _extract_files,
}


def parse_date(value: str | None) -> date | None:
    """Parse an ISO date or datetime string; ``None`` if it isn't one."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def _declared_kind(prop: Any) -> str | None:
    if isinstance(prop, Mapping):
        kind = prop.get("type")
        return kind if isinstance(kind, str) else None
    return None


def resolve_field(properties: Mapping[str, Any], rule: FieldRule) -> Any:
    """Resolve one canonical field from a record's properties.

    Lookups are tried in order; within a lookup each candidate is tried
    in order against every source column (in record order).  The first
    column whose lowercased name contains the candidate *and* whose
    declared kind matches supplies the value.  A match carrying an empty
    value does not count, so the search moves on.
    """
    for lookup in rule.lookups:
        extract = _EXTRACTORS[lookup.kind]
        for candidate in lookup.candidates:
            needle = candidate.lower()
            for name, prop in properties.items():
                if not isinstance(name, str) or needle not in name.lower():
                    continue
                if _declared_kind(prop) != lookup.kind.value:
                    continue
                value = extract(prop.get(lookup.kind.value))
                if value not in (None, "", []):
                    return value
    return [] if rule.multi_valued else None


def normalize_record(record: Any) -> Trade:
    """Convert one raw record into a :class:`Trade`.  Never raises."""
    if not isinstance(record, Mapping):
        logger.debug("Skipping non-mapping record of type %s", type(record).__name__)
        return Trade()

    props = record.get("properties")
    if not isinstance(props, Mapping):
        props = {}

    values = {rule.field: resolve_field(props, rule) for rule in FIELD_MAP}
    outcome_raw = values.pop("outcome")
    values["date"] = parse_date(values["date"])

    record_id = record.get("id")
    return Trade(
        id=str(record_id) if record_id is not None else "",
        outcome=classify_outcome(outcome_raw),
        outcome_raw=outcome_raw,
        **values,
    )


def normalize_records(records: Iterable[Any]) -> list[Trade]:
    """Normalize a batch, preserving order."""
    trades = [normalize_record(r) for r in records]
    if not trades:
        return trades
    undated = sum(1 for t in trades if t.date is None)
    if undated:
        logger.info("Normalized %d records, %d without a usable date", len(trades), undated)
    return trades
