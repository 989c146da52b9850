import os

import pytest

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")

from config.settings import get_settings  # noqa: E402


@pytest.fixture
def settings_env(monkeypatch):
    """Set environment overrides and rebuild the cached settings around the test."""
    def apply(**overrides):
        for key, value in overrides.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        return get_settings()

    yield apply
    get_settings.cache_clear()


@pytest.fixture
def audit_docs():
    return [
        {
            "_id": "A1",
            "prestador": {"nomeFantasia": "Hospital Central"},
            "atendimento": {
                "dataInternacao": "2024-03-01T08:00:00Z",
                "dataAlta": "2024-03-04T10:00:00Z",
                "especialidade": "Cardiologia",
                "nomePaciente": "Paciente 1",
            },
            "auditoria": {
                "dataAuditoria": "2024-03-10T12:00:00Z",
                "nomeEnfermeiroResponsavel": "Ana Souza",
                "valorTotalApresentado": "1.000,00",
                "valorTotalGlosado": "100,00",
                "valorTotalApurado": "900,00",
                "itens": {
                    "0": {
                        "tipo": "MEDICAMENTO",
                        "codigo": "90001",
                        "descricao": "Dipirona",
                        "valorApresentado": "600,00",
                        "valorGlosado": "60,00",
                        "valorApurado": "540,00",
                        "motivoDeGlosa": "Quantidade acima do prescrito",
                    },
                    "1": {
                        "tipo": "TAXAS",
                        "codigo": "60001",
                        "descricao": "Taxa de sala",
                        "valorApresentado": "400,00",
                        "valorGlosado": "40,00",
                        "valorApurado": "360,00",
                        "motivoDeGlosa": "Não Informado",
                    },
                    "relatorio": {"texto": "parecer da auditoria"},
                },
            },
        },
        {
            "_id": "A2",
            "prestador": {"nomeFantasia": "Clínica Norte"},
            "atendimento": {
                "dataInternacao": "2024-04-05T00:00:00Z",
                "dataAlta": "2024-04-01T00:00:00Z",
                "especialidade": "Ortopedia",
            },
            "auditoria": {
                "dataAuditoria": "2024-04-12T09:00:00Z",
                "nomeEnfermeiroResponsavel": "Bruno Lima",
                "valorTotalApresentado": 500,
                "valorTotalGlosado": 0,
                "valorTotalApurado": 500,
            },
        },
    ]


@pytest.fixture
def guide_docs():
    return [
        {
            "autorizacaoGuia": "G-100",
            "tipoDeGuia": "INTERNACAO",
            "statusRegulacao": "AUTORIZADA_PARCIALMENTE",
            "prestador": "Hospital Central",
            "dataSolicitacao": "2024-05-01T10:00:00Z",
            "dataRegulacao": "2024-05-02T10:00:00Z",
            "situacaoSla": "REGULADA_NO_PRAZO",
            "reguladores": [{"nomeRegulador": "Maria Silva"}],
            "itensGuia": [
                {
                    "codigo": "30101",
                    "descricao": "Consulta",
                    "valorSolicitado": 200,
                    "valorNegado": 200,
                    "valorUnitarioProcedimento": 100,
                    "quantSolicitada": 2,
                    "quantAutorizada": 0,
                },
                {
                    "codigo": "30102",
                    "descricao": "Exame",
                    "valorSolicitado": 50,
                    "valorNegado": 0,
                    "quantSolicitada": 1,
                    "quantAutorizada": 1,
                },
            ],
        },
        {
            "autorizacaoGuia": "G-200",
            "tipoDeGuia": "SADT",
            "statusRegulacao": "NEGADA",
            "prestador": {"nomeFantasia": "Clínica Norte"},
            "dataSolicitacao": "2024-05-03T10:00:00Z",
            "dataRegulacao": "2024-05-04T10:00:00Z",
            "situacaoSla": "REGULADA_COM_ATRASO",
            "reguladores": [{"nomeRegulador": "Robô Regulação"}],
            "itensGuia": [
                {
                    "codigo": "30101",
                    "descricao": "Consulta",
                    "valorNegado": "350,00",
                    "valorUnitarioProcedimento": "350,00",
                    "quantSolicitada": 1,
                    "quantAutorizada": 0,
                    "quantNegada": 1,
                },
            ],
        },
        {
            "autorizacaoGuia": "G-300",
            "tipoDeGuia": "SADT",
            "statusRegulacao": "AUTORIZADA",
            "prestador": "Clínica Norte",
            "dataRegulacao": "2024-05-05T10:00:00Z",
            "reguladaAutomaticamente": True,
            "itensGuia": [{"codigo": "40101", "valorNegado": 0}],
        },
    ]


@pytest.fixture
def billing_rows():
    return [
        {
            "credenciado": "Hospital Central",
            "tratamento": "Internação",
            "responsavel": "Carla",
            "status": "Tramitado",
            "valorCapa": "1.000,00",
            "valorLiberado": "800,00",
        },
        {
            "credenciado": "Hospital Central",
            "tratamento": "Internação",
            "responsavel": "Carla",
            "status": "Assinado",
            "valorCapa": 500,
            "valorLiberado": 500,
            "valorGlosa": 50,
        },
        {
            "credenciado": "Clínica Norte",
            "tratamento": "Fisioterapia",
            "responsavel": "Diego",
            "status": "Em análise",
            "valorInformado": "300,00",
        },
        {
            "credenciado": "Clínica Norte",
            "tratamento": "Fisioterapia",
            "status": "Arquivado",
            "valorCapa": 200,
            "valorLiberado": 150,
        },
    ]
