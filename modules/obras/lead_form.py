"""
Форма объекта: данные, контакты, задачи, КП и фото

Форма редактирует копию объекта; исходный объект меняется только после
успешного сохранения. Новые фото до сохранения лишь показываются
локально.
"""

import copy
from datetime import timezone
from pathlib import Path
from typing import Optional

from PyQt5.QtCore import QDate, QDateTime, QSize, Qt, QUrl
from PyQt5.QtGui import QDesktopServices, QIcon, QPixmap
from PyQt5.QtWidgets import (
    QComboBox,
    QDateEdit,
    QDateTimeEdit,
    QDialog,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)
from loguru import logger

from core.exceptions import ValidationError
from modules.auth.messages import user_message
from modules.dashboard.formatters import format_currency, format_date
from modules.obras.lead_service import LeadService, navigation_url
from modules.obras.models import (
    ConstructionPhase, Lead, LeadStage, PARTNER_PRODUCTS, Partner, Photo, TaskStatus, TaskType,
)
from modules.obras.photo_staging import PendingFile, StagedAttachments
from modules.styles.general_styles import apply_button_style, apply_label_style
from modules.styles.ui_config import configure_dialog
from ui.workers import BackgroundCalls

THUMBNAIL_SIZE = 96
IMAGE_FILTER = "Imagens (*.png *.jpg *.jpeg *.webp)"


class LeadFormDialog(QDialog):
    """Диалог создания и редактирования объекта"""

    def __init__(self, lead: Lead, lead_service: LeadService, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.original = lead
        self.lead = copy.deepcopy(lead)
        self.lead_service = lead_service
        self.photos = StagedAttachments(persisted=list(self.lead.photos))
        self.saved_lead: Optional[Lead] = None
        self.calls = BackgroundCalls(self)

        title = "Editar obra" if lead.id else "Nova obra"
        configure_dialog(self, title, "lead_form")
        self._init_ui()
        self._load_lead()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)

        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_general_tab(), "Dados")
        self.tabs.addTab(self._build_contacts_tab(), "Contatos")
        self.tabs.addTab(self._build_tasks_tab(), "Tarefas")
        self.tabs.addTab(self._build_proposals_tab(), "Propostas")
        self.tabs.addTab(self._build_photos_tab(), "Fotos")
        layout.addWidget(self.tabs)

        buttons = QHBoxLayout()
        self.btn_navigate = QPushButton("Como chegar")
        apply_button_style(self.btn_navigate, "secondary")
        self.btn_navigate.clicked.connect(self._on_navigate)
        buttons.addWidget(self.btn_navigate)
        buttons.addStretch()

        btn_cancel = QPushButton("Cancelar")
        apply_button_style(btn_cancel, "secondary")
        btn_cancel.clicked.connect(self.reject)
        buttons.addWidget(btn_cancel)

        self.btn_save = QPushButton("Salvar")
        apply_button_style(self.btn_save, "primary")
        self.btn_save.clicked.connect(self._on_save)
        buttons.addWidget(self.btn_save)
        layout.addLayout(buttons)

    # ---------- Вкладки ----------

    def _build_general_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        self.name_edit = QLineEdit()
        form.addRow("Nome da obra *", self.name_edit)
        self.builder_edit = QLineEdit()
        form.addRow("Construtora *", self.builder_edit)

        self.stage_combo = QComboBox()
        for stage in LeadStage:
            self.stage_combo.addItem(stage.value, stage)
        form.addRow("Etapa", self.stage_combo)

        self.phase_combo = QComboBox()
        for phase in ConstructionPhase:
            self.phase_combo.addItem(phase.value, phase)
        form.addRow("Fase da obra", self.phase_combo)

        self.coords_label = QLabel()
        apply_label_style(self.coords_label, "small")
        form.addRow("Coordenadas", self.coords_label)
        self.dates_label = QLabel()
        apply_label_style(self.dates_label, "small")
        form.addRow("Cadastro / atualização", self.dates_label)
        return page

    def _build_contacts_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.contacts_table = self._create_table(["Nome", "Telefone", "Email", "Cargo"])
        layout.addWidget(self.contacts_table)

        form = QHBoxLayout()
        self.contact_name = QLineEdit()
        self.contact_name.setPlaceholderText("Nome")
        self.contact_phone = QLineEdit()
        self.contact_phone.setPlaceholderText("Telefone")
        self.contact_email = QLineEdit()
        self.contact_email.setPlaceholderText("Email")
        self.contact_role = QLineEdit()
        self.contact_role.setPlaceholderText("Cargo")
        for field in (self.contact_name, self.contact_phone, self.contact_email, self.contact_role):
            form.addWidget(field)
        layout.addLayout(form)

        layout.addLayout(self._row_buttons(self._on_add_contact, self._on_remove_contact))
        return page

    def _build_tasks_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.tasks_table = self._create_table(["Título", "Tipo", "Data", "Status"])
        layout.addWidget(self.tasks_table)

        form = QHBoxLayout()
        self.task_title = QLineEdit()
        self.task_title.setPlaceholderText("Título")
        self.task_type = QComboBox()
        for task_type in TaskType:
            self.task_type.addItem(task_type.value, task_type)
        self.task_due = QDateTimeEdit(QDateTime.currentDateTime())
        self.task_due.setCalendarPopup(True)
        self.task_due.setDisplayFormat("dd/MM/yyyy HH:mm")
        self.task_description = QLineEdit()
        self.task_description.setPlaceholderText("Descrição")
        for field in (self.task_title, self.task_type, self.task_due, self.task_description):
            form.addWidget(field)
        layout.addLayout(form)

        buttons = self._row_buttons(self._on_add_task, self._on_remove_task)
        btn_done = QPushButton("Concluir")
        apply_button_style(btn_done, "secondary")
        btn_done.clicked.connect(self._on_complete_task)
        buttons.insertWidget(1, btn_done)
        layout.addLayout(buttons)
        return page

    def _build_proposals_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.proposals_table = self._create_table(["Representada", "Produtos", "Valor", "Data", "Anexo"])
        layout.addWidget(self.proposals_table)

        form = QFormLayout()
        self.partner_combo = QComboBox()
        for partner in Partner:
            self.partner_combo.addItem(partner.value, partner)
        self.partner_combo.currentIndexChanged.connect(self._fill_products)
        form.addRow("Representada", self.partner_combo)
        self.products_list = QListWidget()
        self.products_list.setMaximumHeight(90)
        form.addRow("Produtos", self.products_list)
        self.proposal_value = QDoubleSpinBox()
        self.proposal_value.setRange(0, 1_000_000_000)
        self.proposal_value.setDecimals(2)
        self.proposal_value.setPrefix("R$ ")
        form.addRow("Valor", self.proposal_value)
        self.proposal_date = QDateEdit(QDate.currentDate())
        self.proposal_date.setCalendarPopup(True)
        self.proposal_date.setDisplayFormat("dd/MM/yyyy")
        form.addRow("Data", self.proposal_date)
        layout.addLayout(form)
        self._fill_products()

        buttons = self._row_buttons(self._on_add_proposal, self._on_remove_proposal)
        self.btn_attach = QPushButton("Anexar arquivo")
        apply_button_style(self.btn_attach, "secondary")
        self.btn_attach.clicked.connect(self._on_attach_to_proposal)
        buttons.insertWidget(1, self.btn_attach)
        layout.addLayout(buttons)
        return page

    def _build_photos_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.photos_list = QListWidget()
        self.photos_list.setViewMode(QListWidget.IconMode)
        self.photos_list.setIconSize(QSize(THUMBNAIL_SIZE, THUMBNAIL_SIZE))
        self.photos_list.setResizeMode(QListWidget.Adjust)
        layout.addWidget(self.photos_list)
        layout.addLayout(self._row_buttons(self._on_add_photos, self._on_remove_photo))
        return page

    @staticmethod
    def _create_table(headers) -> QTableWidget:
        table = QTableWidget()
        table.setColumnCount(len(headers))
        table.setHorizontalHeaderLabels(headers)
        table.horizontalHeader().setStretchLastSection(True)
        table.setSelectionBehavior(QTableWidget.SelectRows)
        table.setEditTriggers(QTableWidget.NoEditTriggers)
        return table

    @staticmethod
    def _row_buttons(on_add, on_remove) -> QHBoxLayout:
        row = QHBoxLayout()
        btn_add = QPushButton("Adicionar")
        apply_button_style(btn_add, "primary")
        btn_add.clicked.connect(on_add)
        row.addWidget(btn_add)
        btn_remove = QPushButton("Remover")
        apply_button_style(btn_remove, "secondary")
        btn_remove.clicked.connect(on_remove)
        row.addWidget(btn_remove)
        row.addStretch()
        return row

    # ---------- Заполнение ----------

    def _load_lead(self) -> None:
        self.name_edit.setText(self.lead.name)
        self.builder_edit.setText(self.lead.builder)
        self.stage_combo.setCurrentIndex(self.stage_combo.findData(self.lead.stage))
        self.phase_combo.setCurrentIndex(self.phase_combo.findData(self.lead.phase))
        self.coords_label.setText(f"{self.lead.lat:.6f}, {self.lead.lng:.6f}")
        self.dates_label.setText(
            f"{format_date(self.lead.registration_date)} / {format_date(self.lead.last_updated)}"
        )
        self.btn_attach.setEnabled(self.lead.id is not None)
        self._refresh_contacts()
        self._refresh_tasks()
        self._refresh_proposals()
        self._refresh_photos()

    def _fill_table(self, table: QTableWidget, rows) -> None:
        table.setRowCount(len(rows))
        for row_index, values in enumerate(rows):
            for col, value in enumerate(values):
                table.setItem(row_index, col, QTableWidgetItem(str(value)))

    def _refresh_contacts(self) -> None:
        self._fill_table(self.contacts_table, [
            (c.name, c.phone, c.email, c.role) for c in self.lead.contacts
        ])

    def _refresh_tasks(self) -> None:
        self._fill_table(self.tasks_table, [
            (t.title, t.type.value, format_date(t.due), t.status.value) for t in self.lead.tasks
        ])

    def _refresh_proposals(self) -> None:
        self._fill_table(self.proposals_table, [
            (p.partner.value, ", ".join(p.products), format_currency(p.value),
             format_date(p.date), "Sim" if p.attachment else "-")
            for p in self.lead.proposals
        ])

    def _refresh_photos(self) -> None:
        self.photos_list.clear()
        for photo in self.photos.persisted:
            item = QListWidgetItem(Path(photo.ref_path).name)
            pixmap = QPixmap(self._local_path(photo.url))
            if not pixmap.isNull():
                item.setIcon(QIcon(pixmap))
            item.setData(Qt.UserRole, photo)
            self.photos_list.addItem(item)
        for pending in self.photos.pending:
            item = QListWidgetItem(f"{pending.source_path.name} (novo)")
            if pending.preview is not None:
                item.setIcon(QIcon(pending.preview))
            item.setData(Qt.UserRole, pending)
            self.photos_list.addItem(item)

    @staticmethod
    def _local_path(url: str) -> str:
        return url[len("file://"):] if url.startswith("file://") else url

    def _fill_products(self) -> None:
        self.products_list.clear()
        partner = self.partner_combo.currentData()
        for product in PARTNER_PRODUCTS[partner]:
            item = QListWidgetItem(product)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Unchecked)
            self.products_list.addItem(item)

    def _selected_row(self, table: QTableWidget) -> int:
        rows = table.selectionModel().selectedRows()
        return rows[0].row() if rows else -1

    def _warn(self, text: str) -> None:
        QMessageBox.warning(self, "ObraMap", text)

    # ---------- Контакты, задачи, КП ----------

    def _on_add_contact(self) -> None:
        try:
            LeadService.add_contact(
                self.lead, self.contact_name.text(), self.contact_phone.text(),
                self.contact_email.text(), self.contact_role.text(),
            )
        except ValidationError as e:
            self._warn(str(e))
            return
        for field in (self.contact_name, self.contact_phone, self.contact_email, self.contact_role):
            field.clear()
        self._refresh_contacts()

    def _on_remove_contact(self) -> None:
        row = self._selected_row(self.contacts_table)
        if row >= 0:
            LeadService.remove_contact(self.lead, self.lead.contacts[row].id)
            self._refresh_contacts()

    def _on_add_task(self) -> None:
        due = self.task_due.dateTime().toPyDateTime().astimezone(timezone.utc)
        try:
            LeadService.add_task(
                self.lead, self.task_title.text(), due, self.task_type.currentData(),
                self.task_description.text(),
            )
        except ValidationError as e:
            self._warn(str(e))
            return
        self.task_title.clear()
        self.task_description.clear()
        self._refresh_tasks()

    def _on_remove_task(self) -> None:
        row = self._selected_row(self.tasks_table)
        if row >= 0:
            LeadService.remove_task(self.lead, self.lead.tasks[row].id)
            self._refresh_tasks()

    def _on_complete_task(self) -> None:
        row = self._selected_row(self.tasks_table)
        if row >= 0 and self.lead.tasks[row].status != TaskStatus.DONE:
            LeadService.complete_task(self.lead, self.lead.tasks[row].id)
            self._refresh_tasks()

    def _on_add_proposal(self) -> None:
        products = [
            self.products_list.item(i).text()
            for i in range(self.products_list.count())
            if self.products_list.item(i).checkState() == Qt.Checked
        ]
        try:
            LeadService.add_proposal(
                self.lead, self.partner_combo.currentData(), products,
                self.proposal_value.value(), self.proposal_date.date().toPyDate(),
            )
        except ValidationError as e:
            self._warn(str(e))
            return
        self.proposal_value.setValue(0)
        self._fill_products()
        self._refresh_proposals()

    def _on_remove_proposal(self) -> None:
        row = self._selected_row(self.proposals_table)
        if row >= 0:
            LeadService.remove_proposal(self.lead, self.lead.proposals[row].id)
            self._refresh_proposals()

    def _on_attach_to_proposal(self) -> None:
        row = self._selected_row(self.proposals_table)
        if row < 0:
            self._warn("Selecione uma proposta.")
            return
        proposal = self.lead.proposals[row]
        if proposal.id not in {p.id for p in self.original.proposals}:
            self._warn("Salve a obra antes de anexar arquivos a uma nova proposta.")
            return
        path, _ = QFileDialog.getOpenFileName(self, "Anexar arquivo à proposta")
        if not path:
            return
        attachment = StagedAttachments(
            persisted=[proposal.attachment] if proposal.attachment else [],
            folder="propostas",
        )
        attachment.stage(Path(path))
        self._run_in_background(
            self.lead_service.attach_to_proposal, self.lead, proposal, attachment,
            on_success=self._on_attachment_saved,
        )

    def _on_attachment_saved(self, _result) -> None:
        # Объект уже записан вместе с вложением
        self.saved_lead = self.lead
        self._refresh_proposals()

    # ---------- Фото ----------

    def _on_add_photos(self) -> None:
        paths, _ = QFileDialog.getOpenFileNames(self, "Adicionar fotos", "", IMAGE_FILTER)
        for path in paths:
            pixmap = QPixmap(path)
            preview = pixmap.scaled(THUMBNAIL_SIZE, THUMBNAIL_SIZE, Qt.KeepAspectRatio) if not pixmap.isNull() else None
            self.photos.stage(Path(path), preview)
        if paths:
            self._refresh_photos()

    def _on_remove_photo(self) -> None:
        item = self.photos_list.currentItem()
        if item is None:
            return
        data = item.data(Qt.UserRole)
        if isinstance(data, PendingFile):
            self.photos.discard(data)
        elif isinstance(data, Photo):
            self.photos.remove_persisted(data)
        self._refresh_photos()

    # ---------- Сохранение ----------

    def _on_navigate(self) -> None:
        QDesktopServices.openUrl(QUrl(navigation_url(self.lead)))

    def _on_save(self) -> None:
        self.lead.name = self.name_edit.text().strip()
        self.lead.builder = self.builder_edit.text().strip()
        stage = self.stage_combo.currentData()
        if stage != self.lead.stage:
            LeadService.set_stage(self.lead, stage)
        self.lead.phase = self.phase_combo.currentData()
        try:
            LeadService.validate(self.lead)
        except ValidationError as e:
            self._warn(str(e))
            return
        self.btn_save.setEnabled(False)
        self._run_in_background(
            self.lead_service.save_lead, self.lead, self.photos,
            on_success=self._on_saved,
            on_error=lambda _: self.btn_save.setEnabled(True),
        )

    def _on_saved(self, lead: Lead) -> None:
        logger.info(f"Объект {lead.id} сохранен из формы")
        self.saved_lead = lead
        self.accept()

    def _run_in_background(self, call, *args, on_success, on_error=None) -> None:
        def handle_error(error: Exception) -> None:
            self._warn(user_message(error))
            if on_error is not None:
                on_error(error)

        self.calls.run(call, *args, on_success=on_success, on_error=handle_error)
