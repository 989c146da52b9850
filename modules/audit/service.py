# modules/audit/service.py
import logging
import math
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

from config.settings import get_settings
from core.aggregation import DENIAL_THRESHOLD, grouped_sums, pct, safe_div, top_n
from core.database import fetch_audit_documents
from core.records import ClaimRecord, build_records, normalize_text

logger = logging.getLogger(__name__)

MAX_SCATTER_POINTS = 50
MAX_REASONS = 5
MONTHS_SHOWN = 6
LONG_STAY_DAYS = 365

# Values that mean "no reason given"; compared after normalize_text
PLACEHOLDER_REASONS = frozenset(normalize_text(r) for r in (
    "",
    "sem justificativa",
    "não justificado",
    "n/a",
    "na",
    "null",
    "none",
    "-",
    "não informado",
    "sem motivo",
    "não se aplica",
    "não especificado",
))


class Category(str, Enum):
    MEDICAMENTO = "MEDICAMENTO"
    TAXAS = "TAXAS"
    MATERIAIS = "MATERIAIS"
    MATERIAIS_ESPECIAIS = "MATERIAIS_ESPECIAIS"
    HONORARIOS = "HONORARIOS"
    SADT = "SADT"
    DIETAS = "DIETAS"
    GASES = "GASES"
    PACOTES = "PACOTES"
    OUTROS = "OUTROS"
    NAO_DETALHADO = "NAO_DETALHADO"


CATEGORY_LABELS: Dict[Category, str] = {
    Category.MEDICAMENTO: "Medicamentos",
    Category.TAXAS: "Taxas Hospitalares",
    Category.MATERIAIS: "Materiais",
    Category.MATERIAIS_ESPECIAIS: "Materiais Especiais",
    Category.HONORARIOS: "Honorários Médicos",
    Category.SADT: "Procedimentos",
    Category.DIETAS: "Dietas",
    Category.GASES: "Gases Medicinais",
    Category.PACOTES: "Pacotes",
    Category.OUTROS: "Outros",
    Category.NAO_DETALHADO: "Não Detalhado",
}


def category_label(code: Optional[str]) -> str:
    """Display name for a category code.

    Unknown codes are shown as written, with underscores turned into spaces.
    """
    if not code:
        return CATEGORY_LABELS[Category.OUTROS]
    try:
        return CATEGORY_LABELS[Category(code.strip().upper())]
    except ValueError:
        return code.replace("_", " ").strip()


def is_placeholder_reason(reason: Optional[str]) -> bool:
    if not isinstance(reason, str):
        return True
    return normalize_text(reason) in PLACEHOLDER_REASONS


def length_of_stay(admission: Optional[datetime], discharge: Optional[datetime]) -> Optional[int]:
    """Whole days between admission and discharge (rounded up), None if unusable."""
    if admission is None or discharge is None:
        return None
    days = math.ceil((discharge - admission).total_seconds() / 86400)
    if days < 0:
        return None
    return days


def _month_key(moment: Optional[datetime]) -> Optional[str]:
    if moment is None or moment.year < 2000:
        return None
    return f"{moment.year:04d}-{moment.month:02d}"


def summarize_audit(claims: List[ClaimRecord], top: int = 10) -> Dict:
    claim_rows = []
    item_rows = []
    stays = []
    scatter = []

    for claim in claims:
        submitted = claim.total_submitted
        denied = claim.total_denied
        approved = claim.total_approved
        claim_rows.append({
            "provider": claim.provider,
            "auditor": claim.auditor,
            "submitted": submitted,
            "denied": denied,
            "approved": approved,
            "month": _month_key(claim.audit_date),
        })

        if claim.items:
            for item in claim.items:
                item_rows.append({
                    "category": item.category or Category.OUTROS.value,
                    "code": item.code,
                    "description": item.description,
                    "submitted": item.submitted,
                    "denied": item.denied,
                    "approved": item.approved,
                    "reason": item.denial_reason,
                })
        else:
            item_rows.append({
                "category": Category.NAO_DETALHADO.value,
                "code": None,
                "description": None,
                "submitted": submitted,
                "denied": denied,
                "approved": approved,
                "reason": None,
            })

        stay = length_of_stay(claim.admission_date, claim.discharge_date)
        if stay is None:
            if claim.admission_date and claim.discharge_date:
                logger.warning("Inverted stay dates on guide %s (provider %s)", claim.guide_number, claim.provider)
            continue
        if stay > LONG_STAY_DAYS:
            logger.warning("Long stay (%d days) on guide %s", stay, claim.guide_number)
        stays.append(stay)
        if submitted and len(scatter) < MAX_SCATTER_POINTS:
            scatter.append({
                "length_of_stay": stay,
                "submitted": submitted,
                "specialty": claim.specialty or "N/A",
            })

    claims_df = pd.DataFrame(
        claim_rows, columns=["provider", "auditor", "submitted", "denied", "approved", "month"]
    )
    items_df = pd.DataFrame(
        item_rows, columns=["category", "code", "description", "submitted", "denied", "approved", "reason"]
    )

    count = len(claims_df)
    total_submitted = float(claims_df["submitted"].sum())
    total_denied = float(claims_df["denied"].sum())
    total_approved = float(claims_df["approved"].sum())

    kpis = {
        "total_submitted": total_submitted,
        "total_denied": total_denied,
        "total_approved": total_approved,
        "claim_count": count,
        "average_length_of_stay": round(safe_div(sum(stays), len(stays)), 1),
        "average_cost": safe_div(total_approved, count),
        "average_denial": safe_div(total_denied, count),
        "denial_rate_pct": pct(total_denied, total_submitted),
    }

    # providers
    providers = top_n(
        grouped_sums(claims_df, "provider", ["denied", "submitted"], count_as="claims"),
        "denied", top,
    )

    # auditors
    has_auditor = claims_df["auditor"].fillna("").astype(str).str.strip() != ""
    auditors = top_n(
        grouped_sums(claims_df[has_auditor], "auditor", ["denied"], count_as="claims"),
        "denied", top,
    )

    # procedures
    coded = items_df[items_df["code"].notna() & (items_df["denied"] > DENIAL_THRESHOLD)]
    procedures = []
    if not coded.empty:
        grouped = (
            coded.assign(_rows=1)
            .groupby("code", sort=False, as_index=False)
            .agg(description=("description", "first"), denied=("denied", "sum"), occurrences=("_rows", "sum"))
        )
        procedures = [
            {
                "code": row["code"],
                "description": row["description"] if isinstance(row["description"], str) else "N/A",
                "denied": float(row["denied"]),
                "occurrences": int(row["occurrences"]),
            }
            for row in grouped.to_dict(orient="records")
        ]
    procedures = top_n(procedures, "denied", top)

    # categories
    categories = [
        {
            **row,
            "label": category_label(row["category"]),
            "denial_share_pct": pct(row["denied"], total_denied),
        }
        for row in grouped_sums(items_df, "category", ["submitted", "denied", "approved"])
    ]
    categories = top_n(categories, "denied")

    # denial reasons
    has_reason = ~items_df["reason"].map(is_placeholder_reason).astype(bool)
    with_reason = items_df[(items_df["denied"] > DENIAL_THRESHOLD) & has_reason]
    reasons = top_n(
        [
            {"reason": row["reason"], "denied": row["denied"]}
            for row in grouped_sums(with_reason, "reason", ["denied"])
        ],
        "denied", MAX_REASONS,
    )

    # monthly evolution
    dated = claims_df[claims_df["month"].notna()]
    monthly = []
    if not dated.empty:
        by_month = (
            dated.assign(_rows=1)
            .groupby("month", sort=True, as_index=False)
            .agg(submitted=("submitted", "sum"), denied=("denied", "sum"), claims=("_rows", "sum"))
            .tail(MONTHS_SHOWN)
        )
        monthly = [
            {
                "month": row["month"],
                "submitted": float(row["submitted"]),
                "denied": float(row["denied"]),
                "claims": int(row["claims"]),
            }
            for row in by_month.to_dict(orient="records")
        ]

    logger.info(
        "Audit summary: %d claims, submitted %.2f, denied %.2f, %d stays",
        count, total_submitted, total_denied, len(stays),
    )
    return {
        "kpis": kpis,
        "charts": {
            "providers": providers,
            "auditors": auditors,
            "procedures": procedures,
            "categories": categories,
            "reasons": reasons,
            "monthly": monthly,
            "scatter": scatter,
        },
    }


def run_audit_dashboard(start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict:
    settings = get_settings()
    docs = fetch_audit_documents(start_date, end_date)
    claims = build_records(docs, kind="audit")
    return summarize_audit(claims, top=settings.TOP_N)
