# modules/billing/service.py
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from config.settings import get_settings
from core.aggregation import DENIAL_THRESHOLD, grouped_sums, pct, top_n
from core.database import fetch_billing_processes
from core.records import first_present, normalize_text, parse_amount

logger = logging.getLogger(__name__)

FINALIZED_STATUS = re.compile(r"tramitado|assinado|arquivado|finalizado", re.IGNORECASE)
PRODUCTIVE_STATUS = re.compile(r"tramitado|assinado", re.IGNORECASE)

PROCESS_COLUMNS = [
    'provider', 'treatment', 'responsible', 'status', 'status_key', 'status_card',
    'presented', 'released', 'denied',
]


class StatusCard(str, Enum):
    PARA_ANALISE = "para_analise"
    EM_ANALISE = "em_analise"
    TRAMITADO = "tramitado"
    ARQUIVADO = "arquivado"


# First matching keyword wins; anything else is still waiting for analysis
STATUS_CARD_KEYWORDS = [
    ("arquivado", StatusCard.ARQUIVADO),
    ("tramitado", StatusCard.TRAMITADO),
    ("assinado", StatusCard.TRAMITADO),
    ("finalizado", StatusCard.TRAMITADO),
    ("concluido", StatusCard.TRAMITADO),
    ("em analise", StatusCard.EM_ANALISE),
]

ANALYZED_CARDS = {StatusCard.TRAMITADO, StatusCard.ARQUIVADO}

_PRODUCTION_ISO = re.compile(r"^(\d{4})-(\d{2})$")


def status_card(status: Any) -> StatusCard:
    text = normalize_text(status)
    for keyword, card in STATUS_CARD_KEYWORDS:
        if keyword in text:
            return card
    return StatusCard.PARA_ANALISE


def normalize_production(production: Optional[str]) -> Optional[str]:
    """Accept "YYYY-MM" (month inputs) as well as the stored "MM/YYYY"."""
    if not production:
        return None
    match = _PRODUCTION_ISO.match(production.strip())
    if match:
        return f"{match.group(2)}/{match.group(1)}"
    return production.strip()


def resolve_process(row: Dict[str, Any]) -> Dict[str, Any]:
    presented = parse_amount(first_present(row.get('valorCapa'), row.get('valorInformado'), default=0))
    released = parse_amount(row.get('valorLiberado'))
    explicit_denial = parse_amount(row.get('valorGlosa'))
    status = str(first_present(row.get('status'), default=''))

    if explicit_denial > DENIAL_THRESHOLD:
        denied = explicit_denial
    elif FINALIZED_STATUS.search(status):
        denied = max(0.0, presented - released)
    else:
        denied = 0.0

    return {
        'provider': str(first_present(row.get('credenciado'), default='')).strip(),
        'treatment': str(first_present(row.get('tratamento'), default='')).strip(),
        'responsible': str(first_present(row.get('responsavel'), default='')).strip(),
        'status': status,
        'status_key': status.lower(),
        'status_card': status_card(status).value,
        'presented': presented,
        'released': released,
        'denied': denied,
    }


def prepare_processes(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        [resolve_process(row) for row in rows if isinstance(row, dict)],
        columns=PROCESS_COLUMNS,
    )


def summarize_billing(rows: List[Dict[str, Any]], top: int = 10) -> Dict:
    df = prepare_processes(rows)
    count = len(df)

    kpis = {
        'total_presented': float(df['presented'].sum()),
        'total_released': float(df['released'].sum()),
        'total_denied': float(df['denied'].sum()),
        'count': count,
    }

    status_stats = [
        {'status': row['status_key'], 'total_value': row['presented'], 'quantity': row['quantity']}
        for row in grouped_sums(df, 'status_key', ['presented'], count_as='quantity')
    ]

    cards = {card: {'card': card.value, 'quantity': 0, 'value': 0.0} for card in StatusCard}
    for row in grouped_sums(df, 'status_card', ['presented'], count_as='quantity'):
        card = cards[StatusCard(row['status_card'])]
        card['quantity'] = row['quantity']
        card['value'] = row['presented']
    status_cards = [{**card, 'pct': pct(card['quantity'], count, 1)} for card in cards.values()]

    named = df[df['provider'] != '']
    top_denied = top_n(
        [{'provider': r['provider'], 'denied': r['denied']}
         for r in grouped_sums(named[named['denied'] > 0], 'provider', ['denied'])],
        'denied', top,
    )
    top_volume = top_n(
        [{'provider': r['provider'], 'presented': r['presented']}
         for r in grouped_sums(named, 'provider', ['presented'])],
        'presented', top,
    )

    treatments = top_n(
        [{'treatment': r['treatment'], 'total_value': r['presented'], 'quantity': r['quantity']}
         for r in grouped_sums(df[df['treatment'] != ''], 'treatment', ['presented'], count_as='quantity')],
        'total_value',
    )

    is_productive = df['status'].map(lambda s: bool(PRODUCTIVE_STATUS.search(s))).astype(bool)
    productive = df[(df['responsible'] != '') & is_productive]
    if not productive.empty:
        productive = productive.assign(
            value=productive['presented'].where(productive['presented'] > 0, productive['released'])
        )
    productivity = top_n(
        [{'responsible': r['responsible'], 'total_value': r['value'], 'quantity': r['quantity']}
         for r in grouped_sums(productive, 'responsible', ['value'], count_as='quantity')],
        'quantity',
    )

    logger.info("Billing summary: %d processes, presented %.2f, denied %.2f",
                count, kpis['total_presented'], kpis['total_denied'])
    return {
        'kpis': kpis,
        'status_stats': status_stats,
        'status_cards': status_cards,
        'top_denied_providers': top_denied,
        'top_volume_providers': top_volume,
        'treatments': treatments,
        'productivity': productivity,
    }


def analysis_progress(rows: List[Dict[str, Any]]) -> Dict:
    total = 0
    analyzed = 0
    for row in rows:
        if not isinstance(row, dict):
            continue
        total += 1
        if status_card(row.get('status')) in ANALYZED_CARDS:
            analyzed += 1
    return {
        'total_processes': total,
        'analyzed_processes': analyzed,
        'analyzed_pct': pct(analyzed, total, 1),
    }


def run_billing_analysis(production: Optional[str]) -> Dict:
    rows = fetch_billing_processes(normalize_production(production))
    return summarize_billing(rows, top=get_settings().TOP_N)


def run_analysis_progress(production: Optional[str]) -> Dict:
    return analysis_progress(fetch_billing_processes(normalize_production(production)))
