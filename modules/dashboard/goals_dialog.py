"""
Диалог редактирования целей месяца
"""

import copy
from typing import Dict, Optional

from PyQt5.QtWidgets import (
    QDialog, QDialogButtonBox, QDoubleSpinBox, QFormLayout, QLabel, QSpinBox, QVBoxLayout, QWidget,
)

from modules.dashboard.formatters import format_month
from modules.obras.models import Goals, Partner
from modules.styles.general_styles import apply_label_style
from modules.styles.ui_config import configure_dialog

MAX_VALUE = 1_000_000_000


def _currency_spin(value: float) -> QDoubleSpinBox:
    spin = QDoubleSpinBox()
    spin.setRange(0, MAX_VALUE)
    spin.setDecimals(2)
    spin.setPrefix("R$ ")
    spin.setValue(value)
    return spin


class GoalsDialog(QDialog):
    """Цели: общая сумма продаж, визиты, звонки и продажи по брендам"""

    def __init__(self, goals: Goals, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.goals = copy.deepcopy(goals)
        configure_dialog(self, f"Metas - {format_month(goals.month)}", "medium")
        self._partner_spins: Dict[Partner, QDoubleSpinBox] = {}
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self.total_sales = _currency_spin(self.goals.total_sales)
        form.addRow("Vendas totais", self.total_sales)
        self.visits = QSpinBox()
        self.visits.setRange(0, 100000)
        self.visits.setValue(self.goals.visits)
        form.addRow("Visitas", self.visits)
        self.calls = QSpinBox()
        self.calls.setRange(0, 100000)
        self.calls.setValue(self.goals.calls)
        form.addRow("Ligações", self.calls)
        layout.addLayout(form)

        partners_title = QLabel("Vendas por representada")
        apply_label_style(partners_title, "h2")
        layout.addWidget(partners_title)
        partners_form = QFormLayout()
        for partner in Partner:
            spin = _currency_spin(self.goals.partner_target(partner))
            self._partner_spins[partner] = spin
            partners_form.addRow(partner.value, spin)
        layout.addLayout(partners_form)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _on_accept(self) -> None:
        self.goals.total_sales = self.total_sales.value()
        self.goals.visits = self.visits.value()
        self.goals.calls = self.calls.value()
        self.goals.by_partner = {
            partner: spin.value() for partner, spin in self._partner_spins.items() if spin.value() > 0
        }
        self.accept()
