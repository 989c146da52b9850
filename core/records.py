# core/records.py
"""Claim and line-item records shared by the three dashboards.

Raw documents come from the database with loosely typed fields (numbers stored
as text in Brazilian format, missing dates, nested objects that may be absent).
Everything is normalized here so the aggregation code can assume clean values:
amounts are non-negative floats, dates are naive UTC datetimes or None.
"""
from __future__ import annotations

import logging
import math
import numbers
import re
import unicodedata
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

NOT_INFORMED = "N/A"

_NON_LETTERS = re.compile(r"[^a-z\s]")
_NON_LETTERS_DISPLAY = re.compile(r"[^\w\s]|[\d_]")
_SPACES = re.compile(r"\s+")
# "1.234" or "12.345.678": dots grouping thousands, no decimal part
_THOUSANDS_ONLY = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_number(value: Any, default: float = 0.0) -> float:
    """Parse numbers stored as int/float or text ("1.234,56", "1.234", "1234.56", "R$ 10").

    Text with a comma is Brazilian format. Without one, dot-grouped thousands
    ("1.234") are whole numbers and anything else is read as a plain float, so
    a value like "1.5" stays 1.5.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, numbers.Real):
        number = float(value)
    else:
        text = str(value).strip().replace("R$", "").replace(" ", "")
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        elif _THOUSANDS_ONLY.match(text):
            text = text.replace(".", "")
        try:
            number = float(text)
        except ValueError:
            return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def parse_amount(value: Any) -> float:
    """Monetary value, never negative."""
    return max(0.0, parse_number(value))


def parse_datetime(value: Any) -> Optional[datetime]:
    """Naive UTC datetime, or None when the value is missing or unparseable."""
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.tz_convert(None).to_pydatetime()


def first_present(*candidates: Any, default: Any = None) -> Any:
    """Return the first candidate that is neither None nor a blank string."""
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, float) and math.isnan(candidate):
            continue
        if isinstance(candidate, str) and not candidate.strip():
            continue
        return candidate
    return default


def normalize_text(value: Any) -> str:
    """Lowercase, accent-free, single-spaced form used for comparisons only."""
    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _SPACES.sub(" ", stripped.casefold()).strip()


def handler_key(name: Any) -> str:
    """Grouping key for handler names: letters and single spaces only."""
    return _SPACES.sub(" ", _NON_LETTERS.sub("", normalize_text(name))).strip()


def handler_display_name(name: Any) -> str:
    """Original-case name with digits and punctuation removed."""
    if name is None:
        return ""
    return _SPACES.sub(" ", _NON_LETTERS_DISPLAY.sub("", str(name))).strip()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class LineItem(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    submitted: float = 0.0
    denied: float = 0.0
    approved: float = 0.0
    unit_price: float = 0.0
    denial_reason: Optional[str] = None
    quantity_requested: float = 0.0
    quantity_authorized: float = 0.0
    quantity_denied: Optional[float] = None

    @field_validator("submitted", "denied", "approved", "unit_price",
                     "quantity_requested", "quantity_authorized", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return parse_amount(value)

    @field_validator("quantity_denied", mode="before")
    @classmethod
    def _optional_quantity(cls, value: Any) -> Optional[float]:
        if first_present(value) is None:
            return None
        quantity = parse_amount(value)
        return quantity or None

    @field_validator("code", "description", "category", "denial_reason", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @property
    def resolved_quantity_denied(self) -> float:
        if self.quantity_denied is not None:
            return self.quantity_denied
        return max(0.0, self.quantity_requested - self.quantity_authorized)


class ClaimRecord(BaseModel):
    guide_number: str = NOT_INFORMED
    guide_type: Optional[str] = None
    status: Optional[str] = None
    provider: str = NOT_INFORMED
    auditor: Optional[str] = None
    specialty: Optional[str] = None
    patient: Optional[str] = None

    submitted: float = 0.0
    denied: float = 0.0
    approved: float = 0.0

    admission_date: Optional[datetime] = None
    discharge_date: Optional[datetime] = None
    audit_date: Optional[datetime] = None
    request_date: Optional[datetime] = None
    regulation_date: Optional[datetime] = None

    sla_situation: Optional[str] = None
    auto_regulated: bool = False
    handlers: List[str] = Field(default_factory=list)

    items: List[LineItem] = Field(default_factory=list)

    @field_validator("submitted", "denied", "approved", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> float:
        return parse_amount(value)

    @field_validator("admission_date", "discharge_date", "audit_date",
                     "request_date", "regulation_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    @field_validator("auto_regulated", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return value is True

    @field_validator("guide_number", "provider", mode="before")
    @classmethod
    def _label(cls, value: Any) -> str:
        return str(first_present(value, default=NOT_INFORMED))

    @field_validator("guide_type", "status", "auditor", "specialty", "patient",
                     "sla_situation", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @field_validator("handlers", mode="before")
    @classmethod
    def _handlers(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        names = []
        for entry in value:
            name = entry.get("nomeRegulador") if isinstance(entry, dict) else entry
            names.append(str(first_present(name, default="Regulador Desconhecido")))
        return names

    # -- amount resolution ---------------------------------------------------

    def resolved(self, field: str) -> float:
        """Itemized claims are the sum of their items; others use claim totals."""
        if self.items:
            return sum(getattr(item, field) for item in self.items)
        return getattr(self, field)

    @property
    def total_submitted(self) -> float:
        return self.resolved("submitted")

    @property
    def total_denied(self) -> float:
        return self.resolved("denied")

    @property
    def total_approved(self) -> float:
        return self.resolved("approved")

    # -- document mapping ----------------------------------------------------

    @classmethod
    def from_audit_document(cls, doc: Dict[str, Any]) -> "ClaimRecord":
        """Map an `auditoria` document (nested auditoria/atendimento/prestador)."""
        aud = _as_dict(doc.get("auditoria"))
        atend = _as_dict(doc.get("atendimento"))
        prest = _as_dict(doc.get("prestador"))

        raw_items = aud.get("itens") or {}
        if isinstance(raw_items, dict):
            raw_items = list(raw_items.values())
        items = [
            LineItem(
                code=item.get("codigo"),
                description=item.get("descricao"),
                category=item.get("tipo"),
                submitted=item.get("valorApresentado"),
                denied=item.get("valorGlosado"),
                approved=item.get("valorApurado"),
                denial_reason=item.get("motivoDeGlosa"),
            )
            # entries without a type (e.g. the embedded report) are not items
            for item in raw_items
            if isinstance(item, dict) and item.get("tipo")
        ]

        return cls(
            guide_number=first_present(doc.get("numeroGuia"), doc.get("_id"), doc.get("id")),
            provider=first_present(prest.get("nomeFantasia"), prest.get("nomePrestador")),
            auditor=first_present(aud.get("nomeEnfermeiroResponsavel")),
            specialty=first_present(atend.get("especialidade")),
            patient=first_present(atend.get("nomePaciente")),
            submitted=aud.get("valorTotalApresentado"),
            denied=aud.get("valorTotalGlosado"),
            approved=aud.get("valorTotalApurado"),
            admission_date=atend.get("dataInternacao"),
            discharge_date=atend.get("dataAlta"),
            audit_date=aud.get("dataAuditoria"),
            items=items,
        )

    @classmethod
    def from_guide_document(cls, doc: Dict[str, Any]) -> "ClaimRecord":
        """Map a `guias` (regulation) document."""
        raw_items = doc.get("itensGuia") or []
        items = [
            LineItem(
                code=item.get("codigo"),
                description=item.get("descricao"),
                submitted=first_present(item.get("valorSolicitado"), item.get("valorApresentado")),
                denied=item.get("valorNegado"),
                unit_price=item.get("valorUnitarioProcedimento"),
                quantity_requested=item.get("quantSolicitada"),
                quantity_authorized=item.get("quantAutorizada"),
                quantity_denied=item.get("quantNegada"),
            )
            for item in raw_items
            if isinstance(item, dict)
        ]
        prestador = doc.get("prestador")
        if isinstance(prestador, dict):
            prestador = first_present(prestador.get("nomeFantasia"), prestador.get("nomePrestador"))

        return cls(
            guide_number=first_present(doc.get("autorizacaoGuia"), doc.get("_id"), doc.get("id")),
            guide_type=first_present(doc.get("tipoDeGuia")),
            status=first_present(doc.get("statusRegulacao")),
            provider=prestador,
            request_date=doc.get("dataSolicitacao"),
            regulation_date=doc.get("dataRegulacao"),
            sla_situation=first_present(doc.get("situacaoSla")),
            auto_regulated=doc.get("reguladaAutomaticamente"),
            handlers=doc.get("reguladores"),
            items=items,
        )


def build_records(docs: List[Dict[str, Any]], kind: str) -> List[ClaimRecord]:
    """Map raw documents, skipping (and logging) any that cannot be read."""
    mapper = ClaimRecord.from_audit_document if kind == "audit" else ClaimRecord.from_guide_document
    records = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        try:
            records.append(mapper(doc))
        except ValueError as e:
            logger.warning("Skipping unreadable %s document %s: %s", kind, doc.get("_id") or doc.get("id"), e)
    return records
