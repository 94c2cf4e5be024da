"""
Тесты для моделей данных ObraMap
"""

from datetime import date, datetime, timezone

import pytest

from modules.obras.models import (
    ConstructionPhase, Goals, Lead, LeadStage, Partner, PARTNER_PRODUCTS, Proposal,
    Region, STAGE_PIN_COLORS, Task, TaskStatus, TaskType, TERMINAL_STAGES,
    month_key, parse_datetime, parse_enum, require_exhaustive,
)


class TestEnumTables:
    """Тесты для таблиц по перечислениям"""

    def test_tables_cover_every_value(self):
        """Таблицы метаданных покрывают все значения перечислений"""
        assert set(TERMINAL_STAGES) == set(LeadStage)
        assert set(STAGE_PIN_COLORS) == set(LeadStage)
        assert set(PARTNER_PRODUCTS) == set(Partner)

    def test_terminal_stages(self):
        """Завершенные этапы"""
        assert LeadStage.CLOSED.is_terminal
        assert LeadStage.LOST.is_terminal
        assert LeadStage.INACTIVE.is_terminal
        assert not LeadStage.NEGOTIATION.is_terminal

    def test_require_exhaustive_reports_missing(self):
        """Проверка полноты таблицы сообщает о пропусках"""
        with pytest.raises(TypeError) as exc_info:
            require_exhaustive({TaskStatus.PENDING: 1}, TaskStatus)
        assert "DONE" in str(exc_info.value)


class TestParsing:
    """Тесты для хелперов преобразования"""

    def test_parse_enum_unknown_value_uses_default(self):
        """Неизвестное значение перечисления заменяется значением по умолчанию"""
        assert parse_enum(LeadStage, "Desconhecido", LeadStage.LEAD) == LeadStage.LEAD
        assert parse_enum(LeadStage, "Fechado", LeadStage.LEAD) == LeadStage.CLOSED

    def test_parse_datetime_zulu(self):
        """Разбор даты с суффиксом Z"""
        parsed = parse_datetime("2024-03-10T12:30:00Z")
        assert parsed == datetime(2024, 3, 10, 12, 30, tzinfo=timezone.utc)

    def test_parse_datetime_naive_is_utc(self):
        """Дата без часового пояса считается UTC"""
        parsed = parse_datetime("2024-03-10T12:30:00")
        assert parsed.tzinfo == timezone.utc

    def test_parse_datetime_invalid(self):
        """Некорректная дата дает None"""
        assert parse_datetime("ontem") is None
        assert parse_datetime(None) is None

    def test_month_key(self):
        """Ключ месяца YYYY-MM"""
        assert month_key(date(2024, 3, 5)) == "2024-03"


class TestLeadDocument:
    """Тесты для преобразования объекта в документ и обратно"""

    def test_from_document(self):
        """Объект из документа хранилища"""
        lead = Lead.from_document({
            "id": "abc",
            "userId": "u1",
            "nome": "Residencial Aurora",
            "construtora": "Construtora X",
            "lat": -19.9,
            "lng": -43.9,
            "etapa": "Negociação",
            "fase": "Estrutura",
            "dataCadastro": "2024-01-15",
            "lastUpdated": "2024-02-01T10:00:00Z",
            "tarefas": [{
                "id": "t1", "obraId": "abc", "titulo": "Ligar", "data": "2024-02-02T09:00:00Z",
                "tipo": "Ligação", "status": "Pendente",
            }],
        })

        assert lead.id == "abc"
        assert lead.stage == LeadStage.NEGOTIATION
        assert lead.phase == ConstructionPhase.STRUCTURE
        assert lead.registration_date == date(2024, 1, 15)
        assert lead.tasks[0].type == TaskType.CALL
        assert lead.contacts == []

    def test_to_document_keeps_keys(self):
        """Документ объекта сохраняет имена полей"""
        lead = Lead(id="abc", user_id="u1", name="Obra", builder="B", lat=1.0, lng=2.0,
                    last_updated=datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc))

        document = lead.to_document()

        assert document["nome"] == "Obra"
        assert document["etapa"] == "Lead"
        assert document["lastUpdated"] == "2024-02-01T10:00:00Z"
        assert "id" not in document

    def test_proposal_single_product_legacy(self):
        """Старое поле с одним продуктом читается как список"""
        proposal = Proposal.from_document({
            "id": "p1", "representada": "Roca", "produto": "Porcelanato", "valor": "1500.5",
            "data": "2024-03-01",
        })
        assert proposal.partner == Partner.ROCA
        assert proposal.products == ["Porcelanato"]
        assert proposal.value == 1500.5
        assert proposal.attachment is None

    def test_task_status_default(self):
        """Статус задачи по умолчанию"""
        task = Task.from_document({"id": "t", "titulo": "X", "data": "2024-03-01T00:00:00Z", "tipo": "Visita"})
        assert task.status == TaskStatus.PENDING


class TestGoalsAndRegion:
    """Тесты для целей и регионов"""

    def test_goals_from_document_skips_unknown_partner(self):
        """Цели неизвестного бренда пропускаются"""
        goals = Goals.from_document({
            "id": "2024-03", "vendasTotais": 10000, "visitas": 20, "ligacoes": 40,
            "porRepresentada": {"Roca": 5000, "Desconhecida": 100},
        })
        assert goals.month == "2024-03"
        assert goals.partner_target(Partner.ROCA) == 5000
        assert goals.partner_target(Partner.MGM) == 0.0
        assert len(goals.by_partner) == 1

    def test_region_points_accept_pairs(self):
        """Вершины региона из пар координат"""
        region = Region.from_document({"id": "r1", "points": [[1, 2], {"lat": 3, "lng": 4}], "color": "red"})
        assert [(p.lat, p.lng) for p in region.points] == [(1.0, 2.0), (3.0, 4.0)]
