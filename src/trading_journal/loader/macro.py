"""Macro series processing.

Raw observations arrive FRED-style: ``{"date": "2024-01-01", "value":
"310.326"}`` with ``"."`` marking a missing value.  They are cleaned into
:class:`MacroObservation` rows with year-over-year and period-over-period
changes, then condensed into the short human-readable context the AI
assistant receives.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# Observations per year, for YoY changes.
_PERIODS_PER_YEAR = {"A191RL1Q225SBEA": 4}


@dataclass(frozen=True)
class MacroObservation:
    date: str
    value: float
    yoy_pct: float | None = None
    mom: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "value": self.value,
            "yoy_pct": self.yoy_pct,
            "mom": self.mom,
        }


def _to_float(raw: Any) -> float | None:
    if isinstance(raw, bool) or raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_observations(
    raw: Iterable[Any], *, periods_per_year: int = 12,
) -> list[MacroObservation]:
    """Clean raw observations and attach YoY / MoM changes.

    Rows without a numeric value are dropped before changes are computed.
    """
    rows: list[tuple[str, float]] = []
    for obs in raw:
        if not isinstance(obs, Mapping):
            continue
        value = _to_float(obs.get("value"))
        if value is None:
            continue
        rows.append((str(obs.get("date", "")), value))

    out: list[MacroObservation] = []
    for i, (day, value) in enumerate(rows):
        yoy = None
        if i >= periods_per_year:
            base = rows[i - periods_per_year][1]
            if base:
                yoy = (value / base - 1.0) * 100.0
        mom = value - rows[i - 1][1] if i > 0 else None
        out.append(MacroObservation(date=day, value=value, yoy_pct=yoy, mom=mom))
    return out


def periods_per_year(series_id: str) -> int:
    return _PERIODS_PER_YEAR.get(series_id, 12)


def _last(series: list[MacroObservation] | None) -> MacroObservation | None:
    return series[-1] if series else None


def build_macro_context(
    series: Mapping[str, list[MacroObservation]],
    as_of: date | None = None,
) -> dict[str, str]:
    """Condense the latest readings into display strings."""
    cpi = _last(series.get("CPIAUCSL"))
    core = _last(series.get("CPILFESL"))
    unrate = _last(series.get("UNRATE"))
    nfp = _last(series.get("PAYEMS"))
    gdp = _last(series.get("A191RL1Q225SBEA"))
    fed = _last(series.get("FEDFUNDS"))

    def pct(value: float | None, places: int) -> str:
        return f"{value:.{places}f}%" if value is not None else UNKNOWN

    return {
        "fed_rate": pct(fed.value if fed else None, 2),
        "cpi_yoy": pct(cpi.yoy_pct if cpi else None, 1),
        "core_cpi_yoy": pct(core.yoy_pct if core else None, 1),
        "nfp_mom": f"{round(nfp.mom)}K" if nfp and nfp.mom is not None else UNKNOWN,
        "unemployment": pct(unrate.value if unrate else None, 1),
        "gdp_qoq": pct(gdp.value if gdp else None, 1),
        "as_of": (as_of or date.today()).isoformat(),
    }
