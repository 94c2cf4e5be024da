"""
Раздел "Dashboard": показатели месяца относительно целей
"""

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from PyQt5.QtCore import pyqtSignal
from PyQt5.QtWidgets import (
    QComboBox, QFileDialog, QFrame, QGridLayout, QHBoxLayout, QLabel, QProgressBar,
    QPushButton, QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget,
)
from loguru import logger

from modules.auth.messages import user_message
from modules.dashboard.aggregation import (
    DashboardView, DisplayMode, GoalFigure, render_figure, render_target,
)
from modules.dashboard.excel_export import DashboardExcelExporter
from modules.dashboard.formatters import format_currency, format_month
from modules.dashboard.goals_dialog import GoalsDialog
from modules.dashboard.model import DashboardModel
from modules.obras.models import Goals
from modules.styles.general_styles import (
    apply_button_style, apply_frame_style, apply_label_style, apply_progress_style,
)
from ui.workers import BackgroundCalls


class FigureCard(QFrame):
    """Карточка показателя с индикатором выполнения цели"""

    def __init__(self, title: str, parent: Optional[QWidget] = None):
        super().__init__(parent)
        apply_frame_style(self, "card")
        layout = QVBoxLayout(self)
        title_label = QLabel(title)
        apply_label_style(title_label, "small")
        layout.addWidget(title_label)
        self.value_label = QLabel("-")
        apply_label_style(self.value_label, "figure")
        layout.addWidget(self.value_label)
        self.progress = QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setTextVisible(False)
        apply_progress_style(self.progress)
        layout.addWidget(self.progress)
        self.target_label = QLabel()
        apply_label_style(self.target_label, "small")
        layout.addWidget(self.target_label)

    def show_figure(self, figure: GoalFigure, mode: DisplayMode) -> None:
        self.value_label.setText(render_figure(figure, mode))
        self.progress.setValue(int(round(figure.progress * 100)))
        self.target_label.setText(f"Meta: {render_target(figure)}")


class DashboardWidget(QWidget):
    """Панель показателей с выбором месяца и режимом отображения"""

    notice = pyqtSignal(str)

    def __init__(self, model: DashboardModel, export_dir: Path, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.model = model
        self.exporter = DashboardExcelExporter(export_dir)
        self.cards: Dict[str, FigureCard] = {}
        self.calls = BackgroundCalls(self)
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)

        header = QHBoxLayout()
        title = QLabel("Dashboard")
        apply_label_style(title, "h2")
        header.addWidget(title)
        header.addStretch()

        self.month_combo = QComboBox()
        self.month_combo.activated.connect(self._on_month_selected)
        header.addWidget(self.month_combo)

        self.btn_mode = QPushButton("Ver em %")
        apply_button_style(self.btn_mode, "secondary")
        self.btn_mode.clicked.connect(self._on_toggle_mode)
        header.addWidget(self.btn_mode)

        self.btn_goals = QPushButton("Editar metas")
        apply_button_style(self.btn_goals, "secondary")
        self.btn_goals.clicked.connect(self._on_edit_goals)
        header.addWidget(self.btn_goals)

        btn_export = QPushButton("Exportar Excel")
        apply_button_style(btn_export, "primary")
        btn_export.clicked.connect(self._on_export)
        header.addWidget(btn_export)
        layout.addLayout(header)

        cards = QHBoxLayout()
        for key, title_text in (
            ("closed", "Vendas fechadas"),
            ("visits", "Visitas realizadas"),
            ("calls", "Ligações realizadas"),
        ):
            card = FigureCard(title_text)
            self.cards[key] = card
            cards.addWidget(card)
        layout.addLayout(cards)

        tables = QGridLayout()
        self.stage_table = self._create_table(["Etapa", "Obras"])
        tables.addWidget(self.stage_table, 0, 0)
        self.partner_table = self._create_table(
            ["Representada", "Propostas", "Valor propostas", "Vendas no mês", "Meta"]
        )
        tables.addWidget(self.partner_table, 0, 1)
        layout.addLayout(tables)

    @staticmethod
    def _create_table(headers) -> QTableWidget:
        table = QTableWidget()
        table.setColumnCount(len(headers))
        table.setHorizontalHeaderLabels(headers)
        table.horizontalHeader().setStretchLastSection(True)
        table.setEditTriggers(QTableWidget.NoEditTriggers)
        table.verticalHeader().setVisible(False)
        return table

    # ---------- Данные ----------

    def reload(self) -> None:
        """Пересчет после изменения списка объектов (цели уже загружены)"""
        if self.model.goals is None:
            return
        self.model.refresh()
        self._fill_months([self.model.month])
        self._render()
        self.calls.run(
            self.model.available_months,
            on_success=self._fill_months,
            on_error=lambda error: logger.warning(f"Не удалось получить список месяцев: {error}"),
        )

    def _fill_months(self, months: List[str]) -> None:
        self.month_combo.clear()
        for month in months:
            self.month_combo.addItem(format_month(month), month)
        self.month_combo.setCurrentIndex(self.month_combo.findData(self.model.month))

    def _render(self) -> None:
        view: Optional[DashboardView] = self.model.view
        if view is None:
            return
        mode = self.model.mode
        self.cards["closed"].show_figure(view.closed_value, mode)
        self.cards["visits"].show_figure(view.visits, mode)
        self.cards["calls"].show_figure(view.calls, mode)
        self.btn_mode.setText("Ver valores" if mode == DisplayMode.PERCENT else "Ver em %")

        self.stage_table.setRowCount(len(view.stage_distribution))
        for row, (stage, count) in enumerate(view.stage_distribution.items()):
            self.stage_table.setItem(row, 0, QTableWidgetItem(stage.value))
            self.stage_table.setItem(row, 1, QTableWidgetItem(str(count)))

        self.partner_table.setRowCount(len(view.proposals_by_partner))
        for row, (partner, proposals) in enumerate(view.proposals_by_partner.items()):
            closed = view.closed_value_by_partner[partner]
            values = [
                partner.value,
                str(proposals.count),
                format_currency(proposals.value),
                render_figure(closed, mode),
                render_target(closed),
            ]
            for col, value in enumerate(values):
                self.partner_table.setItem(row, col, QTableWidgetItem(value))

    # ---------- Обработчики ----------

    def _on_month_selected(self, index: int) -> None:
        month = self.month_combo.itemData(index)
        if not month or month == self.model.month:
            return
        self.month_combo.setEnabled(False)

        def on_loaded(goals: Goals) -> None:
            self.month_combo.setEnabled(True)
            self.model.apply_month(month, goals)
            self._render()

        def on_error(error: Exception) -> None:
            self.month_combo.setEnabled(True)
            self.notice.emit(user_message(error))
            self.month_combo.setCurrentIndex(self.month_combo.findData(self.model.month))

        self.calls.run(self.model.load_month_goals, month, on_success=on_loaded, on_error=on_error)

    def _on_toggle_mode(self) -> None:
        self.model.toggle_mode()
        self._render()

    def _on_edit_goals(self) -> None:
        if self.model.goals is None:
            return
        dialog = GoalsDialog(self.model.goals, self)
        if not dialog.exec_():
            return
        self.btn_goals.setEnabled(False)
        self.calls.run(
            self.model.store_goals, dialog.goals,
            on_success=self._on_goals_saved,
            on_error=self._on_goals_error,
        )

    def _on_goals_saved(self, goals: Goals) -> None:
        self.btn_goals.setEnabled(True)
        self.model.apply_goals(goals)
        self._render()

    def _on_goals_error(self, error: Exception) -> None:
        self.btn_goals.setEnabled(True)
        self.notice.emit("Não foi possível atualizar as metas. " + user_message(error))

    def _on_export(self) -> None:
        if self.model.view is None:
            return
        default_name = f"obramap_{self.model.month}_{date.today():%Y%m%d}.xlsx"
        path, _ = QFileDialog.getSaveFileName(
            self, "Exportar Excel", str(self.exporter.output_directory / default_name), "Excel (*.xlsx)"
        )
        if not path:
            return
        target = Path(path)
        self.exporter.output_directory = target.parent
        try:
            self.exporter.export(self.model.view, self.model.leads, target.name)
        except OSError as e:
            logger.error(f"Ошибка экспорта в Excel: {e}", exc_info=True)
            self.notice.emit("Não foi possível salvar o arquivo Excel.")
            return
        self.notice.emit(f"Arquivo salvo em {target}")
