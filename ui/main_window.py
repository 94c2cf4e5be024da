import copy
from typing import List, Optional

from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QVBoxLayout,
    QLabel, QPushButton, QStackedWidget, QFrame, QSizePolicy, QMessageBox, QApplication
)
from PyQt5.QtCore import pyqtSignal
from loguru import logger

from config.settings import config
from core.auth_provider import AuthProvider, AuthSession
from core.blob_store import BlobStore
from core.database import DatabaseManager
from core.document_store import DocumentStore
from core.session import SessionContext
from modules.auth.messages import user_message
from modules.auth.profile_widget import ProfileWidget
from modules.dashboard.goals_repository import GoalsRepository
from modules.dashboard.model import DashboardModel
from modules.dashboard.widget import DashboardWidget
from modules.map.geolocation import GeolocationService
from modules.map.map_widget import MapWidget
from modules.map.region_repository import RegionRepository
from modules.map.region_service import RegionService
from modules.obras.aging_service import LeadAgingService
from modules.obras.lead_form import LeadFormDialog
from modules.obras.lead_repository import LeadRepository
from modules.obras.lead_service import LeadService
from modules.obras.models import GeoPoint, Lead
from modules.obras.widget import LeadsWidget
from modules.styles.general_styles import (
    SIZES, apply_button_style, apply_frame_style, apply_label_style, apply_sidebar_button_style
)
from modules.styles.ui_config import configure_window
from modules.tasks.widget import TasksWidget
from services.session_loader import SessionLoader, UserData
from ui.workers import BackgroundCalls, DataLoadThread

NOTICE_TIMEOUT_MS = 10000


class MainWindow(QMainWindow):
    """Главное окно: карта, объекты, задачи, панель показателей и профиль"""

    logged_out = pyqtSignal()

    def __init__(self, db_manager: DatabaseManager, auth_provider: AuthProvider,
                 session_context: SessionContext):
        super().__init__()
        configure_window(self, "ObraMap")

        session = session_context.session
        if session is None:
            raise RuntimeError("Главное окно открывается только после входа")
        self.session: AuthSession = session
        self.auth_provider = auth_provider
        self.session_context = session_context
        self.session_context.session_changed.connect(self._on_session_changed)

        # Один и тот же список передается всем разделам и модели панели
        self.leads: List[Lead] = []
        self.calls = BackgroundCalls(self)
        self._load_thread: Optional[DataLoadThread] = None
        self._logging_out = False

        self._build_services(db_manager)
        self.init_ui()
        self._load_data()

    def _build_services(self, db_manager: DatabaseManager) -> None:
        store = DocumentStore(db_manager)
        self.lead_repo = LeadRepository(store)
        self.lead_service = LeadService(self.lead_repo, BlobStore(config.storage.root_dir))
        self.region_service = RegionService(RegionRepository(store), self.session.uid)
        self.geolocation = GeolocationService(config.map)
        goals_repo = GoalsRepository(store)
        self.dashboard_model = DashboardModel(goals_repo, self.session.uid, self.leads)
        self.loader = SessionLoader(
            store,
            self.auth_provider,
            self.lead_repo,
            self.region_service.repository,
            goals_repo,
            LeadAgingService(self.lead_repo),
        )

    def init_ui(self):
        """Инициализация пользовательского интерфейса"""
        central_widget = QWidget()
        main_layout = QVBoxLayout(central_widget)
        main_layout.setSpacing(0)
        main_layout.setContentsMargins(0, 0, 0, 0)

        # --------- Верхняя панель ----------
        topbar = QFrame()
        apply_frame_style(topbar, 'topbar')
        top_layout = QHBoxLayout(topbar)
        top_layout.setContentsMargins(30, 8, 40, 8)

        title = QLabel("ObraMap")
        apply_label_style(title, 'h2')
        top_layout.addWidget(title)
        top_layout.addStretch()

        self.user_label = QLabel(self.session.display_name or self.session.email)
        apply_label_style(self.user_label, 'small')
        top_layout.addWidget(self.user_label)

        btn_new = QPushButton("Nova obra")
        apply_button_style(btn_new, 'secondary')
        btn_new.clicked.connect(self._on_new_lead_here)
        top_layout.addWidget(btn_new)

        btn_reload = QPushButton("Atualizar")
        apply_button_style(btn_reload, 'secondary')
        btn_reload.clicked.connect(self._load_data)
        top_layout.addWidget(btn_reload)
        main_layout.addWidget(topbar)

        # ----------- Боковая панель + контент -----------
        content_layout = QHBoxLayout()
        content_layout.setSpacing(0)
        content_layout.setContentsMargins(0, 0, 0, 0)

        sidebar = QFrame()
        sidebar.setFixedWidth(SIZES['sidebar_width'])
        apply_frame_style(sidebar, 'sidebar')
        side_layout = QVBoxLayout(sidebar)
        side_layout.setContentsMargins(16, 30, 16, 20)

        self.map_widget = MapWidget(self.region_service, self.geolocation)
        self.map_widget.lead_form_requested.connect(self._on_lead_form_requested)
        self.map_widget.lead_selected.connect(self._open_lead)
        self.map_widget.notice.connect(self.show_notice)

        self.leads_widget = LeadsWidget()
        self.leads_widget.edit_requested.connect(self._open_lead)
        self.leads_widget.show_on_map_requested.connect(self._on_show_on_map)
        self.leads_widget.new_lead_requested.connect(self._on_new_lead_here)

        self.tasks_widget = TasksWidget()
        self.tasks_widget.complete_requested.connect(self._on_complete_task)
        self.tasks_widget.open_lead_requested.connect(self._open_lead)

        self.dashboard_widget = DashboardWidget(self.dashboard_model, config.storage.root_dir / "exports")
        self.dashboard_widget.notice.connect(self.show_notice)

        self.profile_widget = ProfileWidget(self.auth_provider)
        self.profile_widget.logout_requested.connect(self._on_logout)

        sections = [
            ('Mapa', self.map_widget),
            ('Obras', self.leads_widget),
            ('Tarefas', self.tasks_widget),
            ('Dashboard', self.dashboard_widget),
            ('Perfil', self.profile_widget),
        ]

        self.stacked = QStackedWidget()
        self.stacked.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
        self.buttons = []
        for i, (name, widget) in enumerate(sections):
            btn = QPushButton(name)
            btn.setCheckable(True)
            btn.setAutoExclusive(True)
            btn.clicked.connect(lambda checked, n=i: self.on_section_clicked(n))
            apply_sidebar_button_style(btn)
            side_layout.addWidget(btn)
            self.stacked.addWidget(widget)
            self.buttons.append(btn)

        self.buttons[0].setChecked(True)
        side_layout.addStretch()

        content_layout.addWidget(sidebar)
        content_layout.addWidget(self.stacked)
        main_layout.addLayout(content_layout)
        self.setCentralWidget(central_widget)

    def on_section_clicked(self, index: int):
        """Обработка клика на раздел в боковом меню"""
        self.stacked.setCurrentIndex(index)
        self.buttons[index].setChecked(True)

    def show_notice(self, text: str) -> None:
        """Сообщение пользователю в строке состояния"""
        if text:
            self.statusBar().showMessage(text, NOTICE_TIMEOUT_MS)

    # ---------- Загрузка данных ----------

    def _load_data(self) -> None:
        if self._load_thread is not None and self._load_thread.isRunning():
            logger.debug("Загрузка данных уже выполняется, пропускаем")
            return
        self.statusBar().showMessage("Carregando dados...")
        self._load_thread = DataLoadThread(self.loader, self.session, parent=self)
        self._load_thread.loaded.connect(self._on_data_loaded)
        self._load_thread.error_occurred.connect(self._on_load_error)
        self._load_thread.start()

    def _on_data_loaded(self, data: UserData) -> None:
        logger.info(
            f"Данные пользователя {data.user.id} загружены: объектов {len(data.leads)}, "
            f"регионов {len(data.regions)}"
        )
        self.statusBar().clearMessage()
        self.leads[:] = data.leads
        self.dashboard_model.goals = data.goals
        self.dashboard_model.month = data.goals.month
        self.map_widget.set_regions(data.regions)
        self.profile_widget.set_user(data.user)
        self.user_label.setText(data.user.full_name or data.user.email)
        self._refresh_sections()
        for notice in data.notices:
            self.show_notice(notice)

    def _on_load_error(self, error: Exception) -> None:
        self.statusBar().clearMessage()
        QMessageBox.warning(self, "ObraMap", user_message(error))

    def _refresh_sections(self) -> None:
        self.map_widget.set_leads(self.leads)
        self.leads_widget.set_leads(self.leads)
        self.tasks_widget.set_leads(self.leads)
        self.dashboard_widget.reload()

    def _replace_lead(self, lead: Lead) -> None:
        for i, existing in enumerate(self.leads):
            if existing.id == lead.id:
                self.leads[i] = lead
                break
        else:
            self.leads.append(lead)
        self._refresh_sections()

    def _find_lead(self, lead_id: str) -> Optional[Lead]:
        return next((lead for lead in self.leads if lead.id == lead_id), None)

    # ---------- Объекты ----------

    def _on_lead_form_requested(self, point: GeoPoint) -> None:
        lead = LeadService.new_lead_at(self.session.uid, point.lat, point.lng)
        self._show_lead_form(lead)

    def _on_new_lead_here(self) -> None:
        center = self.map_widget.canvas.viewport.center
        self._on_lead_form_requested(center)

    def _open_lead(self, lead_id: str) -> None:
        lead = self._find_lead(lead_id)
        if lead is None:
            logger.warning(f"Объект {lead_id} не найден в загруженном списке")
            return
        self._show_lead_form(lead)

    def _show_lead_form(self, lead: Lead) -> None:
        dialog = LeadFormDialog(lead, self.lead_service, self)
        dialog.exec_()
        if dialog.saved_lead is not None:
            self._replace_lead(dialog.saved_lead)

    def _on_show_on_map(self, lead_id: str) -> None:
        lead = self._find_lead(lead_id)
        if lead is None:
            return
        self.on_section_clicked(0)
        self.map_widget.fly_to(lead)

    def _on_complete_task(self, lead_id: str, task_id: str) -> None:
        lead = self._find_lead(lead_id)
        if lead is None:
            return
        updated = copy.deepcopy(lead)
        if not LeadService.complete_task(updated, task_id):
            return
        self.calls.run(
            self.lead_service.save_lead, updated,
            on_success=self._replace_lead,
            on_error=lambda error: self.show_notice(user_message(error)),
        )

    # ---------- Сессия ----------

    def _on_logout(self) -> None:
        self.auth_provider.sign_out()

    def _on_session_changed(self, session: Optional[AuthSession]) -> None:
        if session is None:
            logger.info(f"Пользователь {self.session.uid} вышел, главное окно закрывается")
            self.session_context.session_changed.disconnect(self._on_session_changed)
            self._logging_out = True
            self.close()
            self.logged_out.emit()

    def closeEvent(self, event):
        """Закрытие окна без выхода из аккаунта завершает приложение"""
        super().closeEvent(event)
        if not self._logging_out:
            QApplication.quit()
