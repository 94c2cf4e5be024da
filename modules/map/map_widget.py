"""
Раздел "Mapa": холст с объектами, регионами и маршрутом

Нажатие на карту открывает форму нового объекта (или добавляет вершину
при рисовании региона), нажатие на метку открывает объект, правый клик
по региону предлагает удалить его.
"""

from datetime import date
from typing import List, Optional

from PyQt5.QtCore import QPointF, Qt, pyqtSignal
from PyQt5.QtGui import QBrush, QColor, QPainter, QPen, QPolygonF
from PyQt5.QtWidgets import (
    QComboBox, QHBoxLayout, QMessageBox, QPushButton, QVBoxLayout, QWidget,
)
from loguru import logger

from core.exceptions import ValidationError
from modules.auth.messages import user_message
from modules.map.geolocation import GeolocationService
from modules.map.region_editor import RegionEditor, TapAction
from modules.map.region_service import RegionService
from modules.map.route import RouteState
from modules.map.viewport import Viewport
from modules.obras.lead_service import filter_leads, visits_due_on
from modules.obras.models import (
    ConstructionPhase, GeoPoint, Lead, LeadStage, Region, STAGE_PIN_COLORS,
)
from modules.styles.general_styles import COLORS, apply_button_style
from ui.workers import BackgroundCalls

PIN_RADIUS = 7
CLICK_TOLERANCE = 4


class MapCanvas(QWidget):
    """Отрисовка карты и обработка мыши"""

    tapped = pyqtSignal(object)  # GeoPoint
    lead_clicked = pyqtSignal(str)
    context_requested = pyqtSignal(object)  # GeoPoint

    def __init__(self, center: GeoPoint, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.viewport = Viewport(center, self.width(), self.height())
        self.leads: List[Lead] = []
        self.regions: List[Region] = []
        self.drawing_points: List[GeoPoint] = []
        self.route: List[tuple] = []
        self.position: Optional[GeoPoint] = None
        self._press_pos = None
        self._last_pos = None
        self.setMinimumSize(400, 300)
        self.setMouseTracking(False)

    # ---------- Отрисовка ----------

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        self.viewport.resize(self.width(), self.height())
        super().resizeEvent(event)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.fillRect(self.rect(), QColor("#EEF2F7"))

        for region in self.regions:
            self._draw_polygon(painter, region.points, QColor(region.color), closed=True)

        if self.drawing_points:
            self._draw_polygon(painter, self.drawing_points, QColor(COLORS['primary']), closed=False)
            painter.setBrush(QBrush(QColor(COLORS['white'])))
            for point in self.drawing_points:
                x, y = self.viewport.to_screen(point)
                painter.drawEllipse(QPointF(x, y), 4, 4)

        if len(self.route) > 1:
            painter.setPen(QPen(QColor(COLORS['primary']), 3, Qt.DashLine))
            painter.drawPolyline(QPolygonF([
                QPointF(*self.viewport.to_screen(GeoPoint(lat, lng))) for lat, lng in self.route
            ]))

        painter.setPen(QPen(QColor("#1F2937"), 1))
        for lead in self.leads:
            x, y = self.viewport.to_screen(lead.position)
            painter.setBrush(QBrush(QColor(STAGE_PIN_COLORS[lead.stage])))
            painter.drawEllipse(QPointF(x, y), PIN_RADIUS, PIN_RADIUS)

        if self.position is not None:
            x, y = self.viewport.to_screen(self.position)
            painter.setBrush(QBrush(QColor("#3B82F6")))
            painter.setPen(QPen(QColor(COLORS['white']), 2))
            painter.drawEllipse(QPointF(x, y), 6, 6)
        painter.end()

    def _draw_polygon(self, painter: QPainter, points: List[GeoPoint], color: QColor, closed: bool) -> None:
        polygon = QPolygonF([QPointF(*self.viewport.to_screen(p)) for p in points])
        painter.setPen(QPen(color, 2))
        if closed:
            fill = QColor(color)
            fill.setAlpha(50)
            painter.setBrush(QBrush(fill))
            painter.drawPolygon(polygon)
        else:
            painter.setBrush(Qt.NoBrush)
            painter.drawPolyline(polygon)

    # ---------- Мышь ----------

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        self._press_pos = event.pos()
        self._last_pos = event.pos()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._last_pos is not None and event.buttons() & Qt.LeftButton:
            delta = event.pos() - self._last_pos
            self.viewport.pan(delta.x(), delta.y())
            self._last_pos = event.pos()
            self.update()
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        moved = self._press_pos is not None and (
            (event.pos() - self._press_pos).manhattanLength() > CLICK_TOLERANCE
        )
        self._press_pos = None
        self._last_pos = None
        if not moved:
            point = self.viewport.to_geo(event.x(), event.y())
            if event.button() == Qt.RightButton:
                self.context_requested.emit(point)
            elif event.button() == Qt.LeftButton:
                lead = self._lead_at(event.x(), event.y())
                if lead is not None and not self.drawing_points:
                    self.lead_clicked.emit(lead.id)
                else:
                    self.tapped.emit(point)
        super().mouseReleaseEvent(event)

    def wheelEvent(self, event) -> None:  # type: ignore[override]
        self.viewport.zoom_by(1.25 if event.angleDelta().y() > 0 else 0.8)
        self.update()

    def _lead_at(self, x: float, y: float) -> Optional[Lead]:
        for lead in reversed(self.leads):
            px, py = self.viewport.to_screen(lead.position)
            if (px - x) ** 2 + (py - y) ** 2 <= (PIN_RADIUS + 2) ** 2:
                return lead
        return None


class MapWidget(QWidget):
    """Карта с фильтрами, рисованием регионов и маршрутом дня"""

    lead_form_requested = pyqtSignal(object)  # GeoPoint
    lead_selected = pyqtSignal(str)
    notice = pyqtSignal(str)

    def __init__(self, region_service: RegionService, geolocation: GeolocationService,
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.region_service = region_service
        self.geolocation = geolocation
        self.editor = RegionEditor()
        self.route_state = RouteState()
        self.leads: List[Lead] = []
        self.calls = BackgroundCalls(self)

        # Центр по умолчанию, пока сервис геолокации не ответил
        self.canvas = MapCanvas(GeoPoint(*geolocation.map_config.default_position))
        self._init_ui()
        self.calls.run(geolocation.initial_position, on_success=self._on_position_found)

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QHBoxLayout()
        toolbar.setContentsMargins(8, 8, 8, 8)

        self.stage_filter = QComboBox()
        self.stage_filter.addItem("Todas as etapas", None)
        for stage in LeadStage:
            self.stage_filter.addItem(stage.value, stage)
        self.stage_filter.currentIndexChanged.connect(self._refresh_canvas)
        toolbar.addWidget(self.stage_filter)

        self.phase_filter = QComboBox()
        self.phase_filter.addItem("Todas as fases", None)
        for phase in ConstructionPhase:
            self.phase_filter.addItem(phase.value, phase)
        self.phase_filter.currentIndexChanged.connect(self._refresh_canvas)
        toolbar.addWidget(self.phase_filter)
        toolbar.addStretch()

        self.btn_draw = QPushButton("Desenhar região")
        self.btn_draw.clicked.connect(self._on_start_drawing)
        self.btn_save_region = QPushButton("Salvar região")
        self.btn_save_region.clicked.connect(self._on_save_region)
        self.btn_cancel_region = QPushButton("Cancelar")
        self.btn_cancel_region.clicked.connect(self._on_cancel_drawing)
        self.btn_regions = QPushButton("Ocultar regiões")
        self.btn_regions.clicked.connect(self._on_toggle_regions)
        self.btn_route = QPushButton("Rota de hoje")
        self.btn_route.clicked.connect(self._on_toggle_route)
        self.btn_locate = QPushButton("Minha localização")
        self.btn_locate.clicked.connect(self._on_recenter)

        for btn in (self.btn_draw, self.btn_save_region, self.btn_cancel_region,
                    self.btn_regions, self.btn_route, self.btn_locate):
            apply_button_style(btn, "secondary")
            toolbar.addWidget(btn)
        layout.addLayout(toolbar)

        self.canvas.tapped.connect(self._on_tap)
        self.canvas.lead_clicked.connect(self.lead_selected.emit)
        self.canvas.context_requested.connect(self._on_context)
        layout.addWidget(self.canvas)
        self._update_drawing_buttons()

    # ---------- Данные ----------

    def set_leads(self, leads: List[Lead]) -> None:
        self.leads = leads
        self._refresh_canvas()

    def set_regions(self, regions: List[Region]) -> None:
        self.region_service.regions = regions
        self._refresh_canvas()

    def fly_to(self, lead: Lead) -> None:
        self.canvas.viewport.fly_to(lead.position)
        self.canvas.update()

    def _refresh_canvas(self) -> None:
        self.canvas.leads = filter_leads(
            self.leads, self.stage_filter.currentData(), self.phase_filter.currentData()
        )
        self.canvas.regions = self.region_service.regions if self.region_service.visible else []
        self.canvas.drawing_points = self.editor.points
        self.canvas.route = self.route_state.polyline
        self.canvas.update()

    def _update_drawing_buttons(self) -> None:
        drawing = self.editor.is_drawing
        self.btn_draw.setVisible(not drawing)
        self.btn_save_region.setVisible(drawing)
        self.btn_cancel_region.setVisible(drawing)

    # ---------- Обработчики ----------

    def _on_tap(self, point: GeoPoint) -> None:
        outcome = self.editor.handle_tap(point)
        if outcome.action == TapAction.OPEN_LEAD_FORM:
            self.lead_form_requested.emit(outcome.point)
        else:
            self._refresh_canvas()

    def _on_start_drawing(self) -> None:
        try:
            self.editor.start_drawing()
        except ValidationError as e:
            self.notice.emit(str(e))
            return
        self._update_drawing_buttons()
        self._refresh_canvas()

    def _on_save_region(self) -> None:
        region = self.region_service.draft_region(self.editor)
        self._update_drawing_buttons()
        self._refresh_canvas()
        if region is None:
            self.notice.emit("Região descartada: marque pelo menos 3 pontos.")
            return
        self.calls.run(
            self.region_service.store_region, region,
            on_success=self._on_region_saved,
            on_error=self._on_region_error,
        )

    def _on_region_saved(self, region: Region) -> None:
        self.region_service.remember_region(region)
        self._refresh_canvas()

    def _on_region_error(self, error: Exception) -> None:
        logger.error(f"Не удалось сохранить регион: {error}")
        self.notice.emit(user_message(error))

    def _on_cancel_drawing(self) -> None:
        self.editor.cancel()
        self._update_drawing_buttons()
        self._refresh_canvas()

    def _on_context(self, point: GeoPoint) -> None:
        if not self.region_service.visible or self.editor.is_drawing:
            return
        region = self.region_service.region_at(point)
        if region is None:
            return
        if self.region_service.confirm_delete(region.id, self._confirm_region_delete) is None:
            return
        self.calls.run(
            self.region_service.remove_region, region.id,
            on_success=self._on_region_deleted,
            on_error=lambda error: self.notice.emit(user_message(error)),
        )

    def _on_region_deleted(self, region_id: str) -> None:
        self.region_service.forget_region(region_id)
        self._refresh_canvas()

    def _confirm_region_delete(self, region: Region) -> bool:
        answer = QMessageBox.question(
            self, "Excluir região", "Deseja excluir esta região?",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
        )
        return answer == QMessageBox.Yes

    def _on_toggle_regions(self) -> None:
        visible = self.region_service.toggle_visibility()
        self.btn_regions.setText("Ocultar regiões" if visible else "Mostrar regiões")
        self._refresh_canvas()

    def _on_toggle_route(self) -> None:
        if self.route_state.is_visible:
            self.route_state.clear()
            self.btn_route.setText("Rota de hoje")
        else:
            stops = visits_due_on(self.leads, date.today())
            if not stops:
                self.notice.emit("Nenhuma visita agendada para hoje.")
                return
            self.route_state.show(stops)
            self.btn_route.setText("Limpar rota")
        self._refresh_canvas()

    def _on_recenter(self) -> None:
        self.btn_locate.setEnabled(False)
        self.calls.run(
            self.geolocation.recenter,
            on_success=self._on_recentered,
            on_error=self._on_recenter_failed,
        )

    def _on_recentered(self, position) -> None:
        self.btn_locate.setEnabled(True)
        self._on_position_found(position)

    def _on_recenter_failed(self, error: Exception) -> None:
        self.btn_locate.setEnabled(True)
        self.notice.emit(user_message(error))

    def _on_position_found(self, position) -> None:
        lat, lng = position
        self.canvas.position = GeoPoint(lat, lng)
        self.canvas.viewport.fly_to(self.canvas.position)
        self.canvas.update()
