# modules/regulation/sla.py
"""SLA compliance of regulated guides.

A guide is compliant or not according to its SLA situation flag; guides the
regulation system never flagged fall back to a configurable default. Results
are broken down by guide type, by handler (regulator) and by week, and the
share of automated vs. human handling is tracked on the same weekly buckets.
"""
import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.aggregation import pct, top_n
from core.records import ClaimRecord, handler_display_name, handler_key

logger = logging.getLogger(__name__)

REGULATED_LATE = "REGULADA_COM_ATRASO"
REGULATED_ON_TIME = "REGULADA_NO_PRAZO"
UNCLASSIFIED_GUIDE_TYPE = "NÃO CLASSIFICADO"

# Automated identities cannot collide with normalized names (letters and spaces)
AI_KEY = "#ai"
ROBOTIC_KEY = "#robotic"
UNKNOWN_HANDLER_KEY = "#unknown"


class HandlerClass(str, Enum):
    AI = "ai"
    ROBOTIC = "robotic"
    HUMAN = "human"
    OTHER = "other"


def is_compliant(claim: ClaimRecord, default_compliant: bool = True) -> bool:
    if claim.sla_situation == REGULATED_LATE:
        return False
    if claim.sla_situation == REGULATED_ON_TIME:
        return True
    if claim.auto_regulated:
        return True
    return default_compliant


def week_start(value: Union[str, date, datetime, None]) -> Optional[str]:
    """ISO date of the Sunday starting the week that contains `value`."""
    if value is None:
        return None
    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    else:
        try:
            day = date.fromisoformat(str(value)[:10])
        except ValueError:
            return None
    days_since_sunday = (day.weekday() + 1) % 7
    return (day - timedelta(days=days_since_sunday)).isoformat()


def attribute_handlers(
    claim: ClaimRecord,
    automated_name: str,
    robotic_name: str,
    robotic_keys: Iterable[str],
) -> Tuple[HandlerClass, List[Tuple[str, str, bool]]]:
    """Classify who handled a guide.

    Returns the guide-level class and one (key, display name, automated)
    entry per attributed handler.
    """
    if not claim.handlers:
        if claim.auto_regulated:
            return HandlerClass.AI, [(AI_KEY, automated_name, True)]
        return HandlerClass.OTHER, []

    guide_class = HandlerClass.HUMAN
    entries = []
    for name in claim.handlers:
        key = handler_key(name) or UNKNOWN_HANDLER_KEY
        if key in robotic_keys:
            guide_class = HandlerClass.ROBOTIC
            entries.append((ROBOTIC_KEY, robotic_name, True))
        else:
            entries.append((key, handler_display_name(name) or "Regulador Desconhecido", False))
    return guide_class, entries


def _tally(buckets: Dict[str, Dict], key: str, compliant: bool, **first_seen) -> None:
    bucket = buckets.get(key)
    if bucket is None:
        bucket = buckets[key] = {**first_seen, "total": 0, "compliant": 0}
    bucket["total"] += 1
    if compliant:
        bucket["compliant"] += 1


def _rates(bucket: Dict) -> Dict:
    return {
        **bucket,
        "non_compliant": bucket["total"] - bucket["compliant"],
        "compliance_pct": pct(bucket["compliant"], bucket["total"]),
    }


def evaluate_sla(
    claims: List[ClaimRecord],
    default_compliant: bool = True,
    automated_name: str = "IA",
    robotic_name: str = "RPA",
    robotic_aliases: Iterable[str] = (),
) -> Dict:
    robotic_keys = {handler_key(alias) for alias in robotic_aliases} - {""}

    by_type: Dict[str, Dict] = {}
    by_week: Dict[str, Dict] = {}
    by_handler: Dict[str, Dict] = {}
    class_counts = {cls: 0 for cls in HandlerClass}
    timeline: Dict[str, Dict] = {}
    total = 0
    compliant_total = 0

    for claim in claims:
        compliant = is_compliant(claim, default_compliant)
        total += 1
        compliant_total += compliant

        guide_type = claim.guide_type or UNCLASSIFIED_GUIDE_TYPE
        _tally(by_type, guide_type, compliant, guide_type=guide_type.replace("_", " "))

        guide_class, entries = attribute_handlers(claim, automated_name, robotic_name, robotic_keys)
        class_counts[guide_class] += 1
        for key, name, automated in entries:
            _tally(by_handler, key, compliant, name=name, automated=automated)

        week = week_start(claim.regulation_date)
        if week is None:
            continue
        _tally(by_week, week, compliant, week=week)
        counts = timeline.setdefault(week, {"week": week, "ai": 0, "robotic": 0, "others": 0})
        if guide_class is HandlerClass.AI:
            counts["ai"] += 1
        elif guide_class is HandlerClass.ROBOTIC:
            counts["robotic"] += 1
        else:
            counts["others"] += 1

    labels = {
        HandlerClass.AI: automated_name,
        HandlerClass.ROBOTIC: robotic_name,
        HandlerClass.HUMAN: "Reguladores",
        HandlerClass.OTHER: "Outros",
    }
    logger.info("SLA evaluation: %d guides, %d within SLA", total, compliant_total)
    return {
        "total": total,
        "compliant": compliant_total,
        "compliance_pct": pct(compliant_total, total),
        "by_guide_type": top_n([_rates(b) for b in by_type.values()], "total"),
        "weekly_trend": [_rates(by_week[week]) for week in sorted(by_week)],
        "handlers": top_n([_rates(b) for b in by_handler.values()], "total"),
        "automation_share": [
            {"handler_class": cls.value, "label": labels[cls], "count": count, "share_pct": pct(count, total)}
            for cls, count in class_counts.items()
        ],
        "automation_timeline": [timeline[week] for week in sorted(timeline)],
    }
