import logging

import pytest

from core.records import ClaimRecord, LineItem, build_records
from modules.audit.service import (
    category_label, is_placeholder_reason, length_of_stay, summarize_audit,
)


@pytest.fixture
def claims(audit_docs):
    return build_records(audit_docs, kind="audit")


def test_two_claim_scenario():
    claims = [
        ClaimRecord(guide_number="A", submitted=1000, denied=100),
        ClaimRecord(guide_number="B", submitted=500, denied=0),
    ]
    kpis = summarize_audit(claims)["kpis"]
    assert kpis["total_submitted"] == 1500
    assert kpis["total_denied"] == 100
    assert kpis["average_denial"] == 50
    assert kpis["claim_count"] == 2


def test_category_denials_add_up_to_total(claims):
    extra = ClaimRecord(
        guide_number="C", submitted=10, denied=3,
        items=[LineItem(category="GASES", submitted=10, denied=1.1), LineItem(submitted=5, denied=2.2)],
    )
    result = summarize_audit(claims + [extra])
    category_total = sum(row["denied"] for row in result["charts"]["categories"])
    assert category_total == pytest.approx(result["kpis"]["total_denied"])


def test_unitemized_claims_are_not_detailed(claims):
    categories = {row["category"]: row for row in summarize_audit(claims)["charts"]["categories"]}
    assert categories["NAO_DETALHADO"]["submitted"] == 500
    assert categories["NAO_DETALHADO"]["label"] == "Não Detalhado"
    assert categories["MEDICAMENTO"]["denied"] == 60
    assert categories["MEDICAMENTO"]["denial_share_pct"] == 60.0


@pytest.mark.parametrize("reason", ["Não Informado", "nao informado", "NAO INFORMADO ", "N/A", "-", None])
def test_placeholder_reasons(reason):
    assert is_placeholder_reason(reason)


def test_real_reason_is_kept():
    assert not is_placeholder_reason("Quantidade acima do prescrito")


def test_reasons_chart_excludes_placeholders(claims):
    reasons = summarize_audit(claims)["charts"]["reasons"]
    assert reasons == [{"reason": "Quantidade acima do prescrito", "denied": 60.0}]


def test_inverted_stay_is_skipped_but_money_counts(claims):
    result = summarize_audit(claims)
    # only A1 (3 days, 2 hours -> 4 days) has a usable stay
    assert result["kpis"]["average_length_of_stay"] == 4.0
    assert result["kpis"]["total_submitted"] == 1500
    assert [p["length_of_stay"] for p in result["charts"]["scatter"]] == [4]


def test_length_of_stay_rounds_up():
    from datetime import datetime
    assert length_of_stay(datetime(2024, 1, 1), datetime(2024, 1, 1)) == 0
    assert length_of_stay(datetime(2024, 1, 1), datetime(2024, 1, 2, 1)) == 2
    assert length_of_stay(datetime(2024, 1, 2), datetime(2024, 1, 1)) is None
    assert length_of_stay(None, datetime(2024, 1, 1)) is None


def test_empty_input_yields_zeros():
    result = summarize_audit([])
    assert result["kpis"] == {
        "total_submitted": 0.0,
        "total_denied": 0.0,
        "total_approved": 0.0,
        "claim_count": 0,
        "average_length_of_stay": 0.0,
        "average_cost": 0.0,
        "average_denial": 0.0,
        "denial_rate_pct": 0.0,
    }
    assert all(chart == [] for chart in result["charts"].values())


def test_rankings(claims):
    charts = summarize_audit(claims, top=1)["charts"]
    assert charts["providers"] == [
        {"provider": "Hospital Central", "denied": 100.0, "submitted": 1000.0, "claims": 1}
    ]
    assert [a["auditor"] for a in charts["auditors"]] == ["Ana Souza"]
    assert charts["procedures"][0]["code"] == "90001"
    assert charts["procedures"][0]["occurrences"] == 1


def test_monthly_series_is_ascending(claims):
    monthly = summarize_audit(claims)["charts"]["monthly"]
    assert [m["month"] for m in monthly] == ["2024-03", "2024-04"]
    assert monthly[0]["claims"] == 1


def test_category_labels():
    assert category_label("HONORARIOS") == "Honorários Médicos"
    assert category_label("materiais_especiais") == "Materiais Especiais"
    assert category_label("ORTESES_PROTESES") == "ORTESES PROTESES"
    assert category_label(None) == "Outros"


def test_rounding_noise_is_not_a_denial():
    claim = ClaimRecord(
        guide_number="N",
        items=[LineItem(code="1", category="TAXAS", submitted=10, denied=0.005, denial_reason="Glosa técnica")],
    )
    charts = summarize_audit([claim])["charts"]
    assert charts["procedures"] == []
    assert charts["reasons"] == []


def test_long_stay_is_kept_and_logged(caplog):
    from datetime import datetime
    long_stay = ClaimRecord(
        guide_number="L", submitted=200,
        admission_date=datetime(2023, 1, 1), discharge_date=datetime(2024, 2, 5),
    )
    short_stay = ClaimRecord(
        guide_number="S", submitted=100,
        admission_date=datetime(2024, 1, 1), discharge_date=datetime(2024, 1, 11),
    )
    with caplog.at_level(logging.WARNING, logger="modules.audit.service"):
        result = summarize_audit([long_stay, short_stay])

    assert result["kpis"]["average_length_of_stay"] == 205.0
    assert [p["length_of_stay"] for p in result["charts"]["scatter"]] == [400, 10]
    assert any("Long stay (400 days) on guide L" in r.getMessage() for r in caplog.records)
