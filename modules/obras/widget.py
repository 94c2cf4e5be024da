"""
Раздел "Obras": список объектов с фильтрами
"""

from typing import List, Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtGui import QColor
from PyQt5.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QPushButton, QTableWidget, QTableWidgetItem,
    QVBoxLayout, QWidget,
)

from modules.dashboard.formatters import format_currency, format_date
from modules.obras.lead_service import filter_leads
from modules.obras.models import ConstructionPhase, Lead, LeadStage, STAGE_PIN_COLORS
from modules.styles.general_styles import apply_button_style, apply_label_style

COLUMNS = ["Obra", "Construtora", "Etapa", "Fase", "Propostas", "Atualizada em"]


class LeadsWidget(QWidget):
    """Таблица объектов пользователя"""

    edit_requested = pyqtSignal(str)
    show_on_map_requested = pyqtSignal(str)
    new_lead_requested = pyqtSignal()

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.leads: List[Lead] = []
        self.visible_leads: List[Lead] = []
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)

        header = QHBoxLayout()
        title = QLabel("Obras")
        apply_label_style(title, "h2")
        header.addWidget(title)
        header.addStretch()

        self.stage_filter = QComboBox()
        self.stage_filter.addItem("Todas as etapas", None)
        for stage in LeadStage:
            self.stage_filter.addItem(stage.value, stage)
        self.stage_filter.currentIndexChanged.connect(self._refresh)
        header.addWidget(self.stage_filter)

        self.phase_filter = QComboBox()
        self.phase_filter.addItem("Todas as fases", None)
        for phase in ConstructionPhase:
            self.phase_filter.addItem(phase.value, phase)
        self.phase_filter.currentIndexChanged.connect(self._refresh)
        header.addWidget(self.phase_filter)

        btn_new = QPushButton("Nova obra")
        apply_button_style(btn_new, "primary")
        btn_new.clicked.connect(self.new_lead_requested.emit)
        header.addWidget(btn_new)

        btn_map = QPushButton("Ver no mapa")
        apply_button_style(btn_map, "secondary")
        btn_map.clicked.connect(self._on_show_on_map)
        header.addWidget(btn_map)
        layout.addLayout(header)

        self.table = QTableWidget()
        self.table.setColumnCount(len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.cellDoubleClicked.connect(self._on_double_click)
        layout.addWidget(self.table)

        self.summary_label = QLabel()
        apply_label_style(self.summary_label, "small")
        layout.addWidget(self.summary_label)

    def set_leads(self, leads: List[Lead]) -> None:
        self.leads = leads
        self._refresh()

    def _refresh(self) -> None:
        self.visible_leads = filter_leads(
            self.leads, self.stage_filter.currentData(), self.phase_filter.currentData()
        )
        self.table.setRowCount(len(self.visible_leads))
        for row, lead in enumerate(self.visible_leads):
            proposals_value = sum(p.value for p in lead.proposals)
            values = [
                lead.name,
                lead.builder,
                lead.stage.value,
                lead.phase.value,
                f"{len(lead.proposals)} ({format_currency(proposals_value)})",
                format_date(lead.last_updated),
            ]
            for col, value in enumerate(values):
                item = QTableWidgetItem(value)
                if col == 2:
                    item.setForeground(QColor(STAGE_PIN_COLORS[lead.stage]))
                item.setData(Qt.UserRole, lead.id)
                self.table.setItem(row, col, item)
        self.summary_label.setText(f"{len(self.visible_leads)} de {len(self.leads)} obras")

    def _selected_lead_id(self) -> Optional[str]:
        rows = self.table.selectionModel().selectedRows()
        if not rows:
            return None
        return self.visible_leads[rows[0].row()].id

    def _on_double_click(self, row: int, _column: int) -> None:
        self.edit_requested.emit(self.visible_leads[row].id)

    def _on_show_on_map(self) -> None:
        lead_id = self._selected_lead_id()
        if lead_id:
            self.show_on_map_requested.emit(lead_id)
