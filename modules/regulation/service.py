# modules/regulation/service.py
import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from config.settings import get_settings
from core.aggregation import DENIAL_THRESHOLD, safe_div, top_n
from core.database import fetch_guides, fetch_guides_for_sla
from core.records import ClaimRecord, LineItem, build_records
from modules.regulation.sla import evaluate_sla

logger = logging.getLogger(__name__)

UNKNOWN_PROVIDER = "Prestador Não Informado"
UNKNOWN_GUIDE_TYPE = "Tipo Não Informado"


def denied_items(claim: ClaimRecord) -> List[LineItem]:
    return [item for item in claim.items if item.denied > DENIAL_THRESHOLD]


def list_denied_claims(claims: List[ClaimRecord]) -> List[Dict]:
    rows = []
    for claim in claims:
        items = denied_items(claim)
        if not items:
            continue
        rows.append({
            "guide_number": claim.guide_number,
            "request_date": claim.request_date,
            "regulation_date": claim.regulation_date,
            "status": claim.status or "Status N/A",
            "provider": claim.provider,
            "total_denied": sum(item.denied for item in items),
            "items": [
                {
                    "code": item.code or "N/A",
                    "description": item.description or "Descrição não disponível",
                    "quantity_requested": item.quantity_requested,
                    "quantity_authorized": item.quantity_authorized,
                    "quantity_denied": item.resolved_quantity_denied,
                    "unit_price": item.unit_price,
                    "denied": item.denied,
                }
                for item in items
            ],
        })
    return top_n(rows, "total_denied")


def _accumulate(buckets: Dict[str, Dict], key: str, amount: float, **first_seen) -> None:
    bucket = buckets.get(key)
    if bucket is None:
        bucket = buckets[key] = {**first_seen, "denied": 0.0, "count": 0}
    bucket["denied"] += amount
    bucket["count"] += 1


def summarize_denials(claims: List[ClaimRecord], top: int = 10) -> Dict:
    total_denied = 0.0
    claim_count = 0
    largest = 0.0
    procedures: Dict[str, Dict] = {}
    providers: Dict[str, Dict] = {}
    guide_types: Dict[str, Dict] = {}

    for claim in claims:
        items = denied_items(claim)
        if not items:
            continue
        claim_denied = 0.0
        for item in items:
            code = item.code or "N/A"
            _accumulate(procedures, code, item.denied, code=code, description=item.description or "N/A")
            claim_denied += item.denied

        total_denied += claim_denied
        claim_count += 1
        largest = max(largest, claim_denied)

        provider = claim.provider if claim.provider != "N/A" else UNKNOWN_PROVIDER
        _accumulate(providers, provider, claim_denied, provider=provider)
        guide_type = claim.guide_type or UNKNOWN_GUIDE_TYPE
        _accumulate(guide_types, guide_type, claim_denied, guide_type=guide_type)

    logger.info("Denial statistics: %d guides with denials, total %.2f", claim_count, total_denied)
    return {
        "total_denied": total_denied,
        "claim_count": claim_count,
        "average_denial": safe_div(total_denied, claim_count),
        "largest_denial": largest,
        "top_procedures": top_n(
            [{"code": b["code"], "description": b["description"], "denied": b["denied"], "occurrences": b["count"]}
             for b in procedures.values()],
            "denied", top,
        ),
        "top_providers": top_n(
            [{"provider": b["provider"], "denied": b["denied"], "claims": b["count"]} for b in providers.values()],
            "denied", top,
        ),
        "guide_types": top_n(
            [{"guide_type": b["guide_type"], "denied": b["denied"], "claims": b["count"]} for b in guide_types.values()],
            "denied",
        ),
    }


# ---------------------------------------------------------------------------
# Request entry points
# ---------------------------------------------------------------------------


def run_denied_guides(search: Optional[str], start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
    docs = fetch_guides(start_date, end_date, search=search)
    return list_denied_claims(build_records(docs, kind="guide"))


def run_denial_statistics(start_date: Optional[date], end_date: Optional[date]) -> Dict:
    docs = fetch_guides(start_date, end_date)
    return summarize_denials(build_records(docs, kind="guide"), top=get_settings().TOP_N)


def run_sla_performance(start_date: Optional[date], end_date: Optional[date]) -> Dict:
    settings = get_settings()
    docs = fetch_guides_for_sla(start_date, end_date)
    return evaluate_sla(
        build_records(docs, kind="guide"),
        default_compliant=settings.SLA_DEFAULT_COMPLIANT,
        automated_name=settings.AUTOMATED_HANDLER_NAME,
        robotic_name=settings.ROBOTIC_HANDLER_NAME,
        robotic_aliases=settings.ROBOTIC_HANDLER_ALIASES,
    )


async def run_regulation_dashboard(start_date: Optional[date], end_date: Optional[date]) -> Tuple[Dict, Dict]:
    """Denial statistics and SLA performance, read concurrently."""
    return await asyncio.gather(
        asyncio.to_thread(run_denial_statistics, start_date, end_date),
        asyncio.to_thread(run_sla_performance, start_date, end_date),
    )
