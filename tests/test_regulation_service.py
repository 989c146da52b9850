import asyncio

import pytest

from core.records import ClaimRecord, LineItem, build_records
from modules.regulation import service
from modules.regulation.service import list_denied_claims, summarize_denials


@pytest.fixture
def claims(guide_docs):
    return build_records(guide_docs, kind="guide")


def test_denied_claims_are_ranked_by_denied_value(claims):
    rows = list_denied_claims(claims)
    assert [row["guide_number"] for row in rows] == ["G-200", "G-100"]
    first_item = rows[1]["items"][0]
    assert rows[1]["total_denied"] == 200
    assert len(rows[1]["items"]) == 1
    assert first_item["code"] == "30101"
    assert first_item["quantity_denied"] == 2
    assert first_item["unit_price"] == 100


def test_items_at_rounding_noise_are_not_denials():
    claim = ClaimRecord(guide_number="X", items=[LineItem(denied=0.01)])
    assert list_denied_claims([claim]) == []


def test_denial_statistics(claims):
    stats = summarize_denials(claims)
    assert stats["total_denied"] == 550
    assert stats["claim_count"] == 2
    assert stats["average_denial"] == 275
    assert stats["largest_denial"] == 350
    assert stats["top_procedures"] == [
        {"code": "30101", "description": "Consulta", "denied": 550.0, "occurrences": 2}
    ]
    assert [p["provider"] for p in stats["top_providers"]] == ["Clínica Norte", "Hospital Central"]
    assert [g["guide_type"] for g in stats["guide_types"]] == ["SADT", "INTERNACAO"]


def test_denial_statistics_unknown_provider_and_type():
    claim = ClaimRecord(items=[LineItem(code="1", denied=10)])
    stats = summarize_denials([claim])
    assert stats["top_providers"][0]["provider"] == "Prestador Não Informado"
    assert stats["guide_types"][0]["guide_type"] == "Tipo Não Informado"


def test_empty_statistics():
    stats = summarize_denials([])
    assert stats["average_denial"] == 0.0
    assert stats["top_procedures"] == []


def test_top_limits_rankings():
    claims = [
        ClaimRecord(provider=f"P{i}", items=[LineItem(code=str(i), denied=i + 1)])
        for i in range(5)
    ]
    stats = summarize_denials(claims, top=3)
    assert [p["provider"] for p in stats["top_providers"]] == ["P4", "P3", "P2"]
    assert len(stats["top_procedures"]) == 3


def test_dashboard_combines_statistics_and_sla(monkeypatch, guide_docs):
    calls = []

    def fake_fetch_guides(start_date, end_date, search=None):
        calls.append("guides")
        return guide_docs

    def fake_fetch_sla(start_date, end_date):
        calls.append("sla")
        return guide_docs

    monkeypatch.setattr(service, "fetch_guides", fake_fetch_guides)
    monkeypatch.setattr(service, "fetch_guides_for_sla", fake_fetch_sla)

    stats, sla = asyncio.run(service.run_regulation_dashboard(None, None))
    assert sorted(calls) == ["guides", "sla"]
    assert stats["total_denied"] == 550
    assert sla["total"] == 3
