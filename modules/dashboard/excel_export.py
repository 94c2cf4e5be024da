"""
Экспорт панели показателей и списка объектов в Excel
"""

from pathlib import Path
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from loguru import logger

from modules.dashboard.aggregation import DashboardView, FigureUnit, GoalFigure
from modules.dashboard.formatters import format_date, format_month
from modules.obras.models import Lead

CURRENCY_FORMAT = '"R$" #,##0.00'
PERCENT_FORMAT = "0%"


class DashboardExcelExporter:
    """Экспорт показателей месяца и объектов в Excel."""

    def __init__(self, output_directory: Path) -> None:
        """
        Инициализация экспортера.

        Args:
            output_directory: Каталог, в который будет сохранен Excel-файл.
        """
        self.output_directory = output_directory

    def export(self, view: DashboardView, leads: List[Lead], filename: str) -> Path:
        """
        Экспортирует показатели и список объектов в Excel-файл.

        Args:
            view: Рассчитанные показатели месяца.
            leads: Объекты пользователя.
            filename: Имя файла (без пути).

        Returns:
            Путь к созданному файлу.
        """
        self.output_directory.mkdir(parents=True, exist_ok=True)
        output_path = self.output_directory / filename

        wb = Workbook()
        ws = wb.active
        ws.title = "Painel"
        self._write_dashboard(ws, view)

        leads_ws = wb.create_sheet("Obras")
        self._write_leads(leads_ws, leads)

        wb.save(output_path)
        logger.info(f"Экспорт панели {view.month} сохранен: {output_path}")
        return output_path

    def _write_dashboard(self, ws, view: DashboardView) -> None:
        """Запись показателей месяца"""
        ws["A1"] = f"Painel de Resultados - {format_month(view.month)}"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")
        ws["A1"].alignment = Alignment(horizontal="center")

        row = 3
        self._write_headers(ws, row, ["Indicador", "Realizado", "Meta", "Atingido"])
        row += 1
        figures = [
            ("Vendas fechadas", view.closed_value),
            ("Visitas realizadas", view.visits),
            ("Ligações realizadas", view.calls),
        ]
        for partner, figure in view.closed_value_by_partner.items():
            figures.append((f"Vendas {partner.value}", figure))
        for label, figure in figures:
            self._write_figure_row(ws, row, label, figure)
            row += 1

        row += 1
        self._write_headers(ws, row, ["Etapa", "Obras"])
        row += 1
        for stage, count in view.stage_distribution.items():
            ws.cell(row=row, column=1, value=stage.value)
            ws.cell(row=row, column=2, value=count)
            row += 1

        row += 1
        self._write_headers(ws, row, ["Representada", "Propostas", "Valor"])
        row += 1
        for partner, proposals in view.proposals_by_partner.items():
            ws.cell(row=row, column=1, value=partner.value)
            ws.cell(row=row, column=2, value=proposals.count)
            ws.cell(row=row, column=3, value=proposals.value).number_format = CURRENCY_FORMAT
            row += 1

        self._set_column_widths(ws, {"A": 28, "B": 18, "C": 18, "D": 12})

    def _write_figure_row(self, ws, row: int, label: str, figure: GoalFigure) -> None:
        thin_border = self._get_thin_border()
        cells = [
            ws.cell(row=row, column=1, value=label),
            ws.cell(row=row, column=2, value=figure.total),
            ws.cell(row=row, column=3, value=figure.target),
            ws.cell(row=row, column=4, value=figure.attainment),
        ]
        for cell in cells:
            cell.border = thin_border
        if figure.unit == FigureUnit.CURRENCY:
            cells[1].number_format = CURRENCY_FORMAT
            cells[2].number_format = CURRENCY_FORMAT
        cells[3].number_format = PERCENT_FORMAT

    def _write_leads(self, ws, leads: List[Lead]) -> None:
        """Запись списка объектов"""
        headers = [
            "Obra", "Construtora", "Etapa", "Fase", "Cadastro",
            "Última atualização", "Propostas", "Valor propostas", "Latitude", "Longitude",
        ]
        self._write_headers(ws, 1, headers)
        thin_border = self._get_thin_border()

        for row, lead in enumerate(leads, start=2):
            values = [
                lead.name,
                lead.builder,
                lead.stage.value,
                lead.phase.value,
                format_date(lead.registration_date),
                format_date(lead.last_updated),
                len(lead.proposals),
                sum(p.value for p in lead.proposals),
                lead.lat,
                lead.lng,
            ]
            for col, value in enumerate(values, start=1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = thin_border
                if col == 8:
                    cell.number_format = CURRENCY_FORMAT

        self._set_column_widths(ws, {
            "A": 30, "B": 25, "C": 18, "D": 16, "E": 12,
            "F": 18, "G": 10, "H": 18, "I": 12, "J": 12,
        })

    def _write_headers(self, ws, row: int, headers: List[str]) -> None:
        header_fill = PatternFill("solid", fgColor="BDD7EE")
        thin_border = self._get_thin_border()
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.fill = header_fill
            cell.border = thin_border

    @staticmethod
    def _set_column_widths(ws, widths) -> None:
        for col, width in widths.items():
            ws.column_dimensions[col].width = width

    @staticmethod
    def _get_thin_border() -> Border:
        """Создание тонкой рамки"""
        return Border(
            left=Side(style="thin", color="000000"),
            right=Side(style="thin", color="000000"),
            top=Side(style="thin", color="000000"),
            bottom=Side(style="thin", color="000000"),
        )
