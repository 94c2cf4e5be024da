"""
Раздел "Tarefas": незавершенные задачи всех объектов
"""

from datetime import date
from typing import List, Optional, Tuple

from PyQt5.QtCore import pyqtSignal
from PyQt5.QtWidgets import (
    QCheckBox, QHBoxLayout, QLabel, QPushButton, QTableWidget, QTableWidgetItem,
    QVBoxLayout, QWidget,
)

from modules.dashboard.formatters import format_date
from modules.obras.lead_service import pending_tasks
from modules.obras.models import Lead, Task
from modules.styles.general_styles import apply_button_style, apply_label_style

COLUMNS = ["Data", "Tarefa", "Tipo", "Obra", "Descrição"]


class TasksWidget(QWidget):
    """Список задач с отметкой выполнения"""

    complete_requested = pyqtSignal(str, str)  # lead_id, task_id
    open_lead_requested = pyqtSignal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.leads: List[Lead] = []
        self.rows: List[Tuple[Lead, Task]] = []
        self._init_ui()

    def _init_ui(self) -> None:
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(16, 16, 16, 16)

        header = QHBoxLayout()
        title = QLabel("Tarefas")
        apply_label_style(title, "h2")
        header.addWidget(title)
        header.addStretch()

        self.today_only = QCheckBox("Somente hoje")
        self.today_only.toggled.connect(self._refresh)
        header.addWidget(self.today_only)

        btn_open = QPushButton("Abrir obra")
        apply_button_style(btn_open, "secondary")
        btn_open.clicked.connect(self._on_open_lead)
        header.addWidget(btn_open)

        btn_done = QPushButton("Concluir")
        apply_button_style(btn_done, "primary")
        btn_done.clicked.connect(self._on_complete)
        header.addWidget(btn_done)
        main_layout.addLayout(header)

        self.table = QTableWidget()
        self.table.setColumnCount(len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        main_layout.addWidget(self.table)

    def set_leads(self, leads: List[Lead]) -> None:
        self.leads = leads
        self._refresh()

    def _refresh(self) -> None:
        rows = pending_tasks(self.leads)
        if self.today_only.isChecked():
            today = date.today()
            rows = [(lead, task) for lead, task in rows if task.due.astimezone().date() == today]
        self.rows = rows
        self.table.setRowCount(len(rows))
        for row, (lead, task) in enumerate(rows):
            for col, value in enumerate([
                format_date(task.due), task.title, task.type.value, lead.name, task.description,
            ]):
                self.table.setItem(row, col, QTableWidgetItem(value))

    def _selected(self) -> Optional[Tuple[Lead, Task]]:
        selected = self.table.selectionModel().selectedRows()
        return self.rows[selected[0].row()] if selected else None

    def _on_complete(self) -> None:
        selected = self._selected()
        if selected:
            lead, task = selected
            self.complete_requested.emit(lead.id, task.id)

    def _on_open_lead(self) -> None:
        selected = self._selected()
        if selected:
            self.open_lead_requested.emit(selected[0].id)
