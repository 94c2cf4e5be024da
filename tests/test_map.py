"""
Тесты для редактора регионов, маршрута и проекции карты
"""

from unittest.mock import Mock

import pytest

from core.exceptions import DatabaseQueryError, ValidationError
from modules.map.region_editor import (
    REGION_PALETTE, RegionEditor, TapAction, palette_color,
)
from modules.map.region_service import RegionService, point_in_polygon
from modules.map.route import RouteState, build_route
from modules.map.viewport import MAX_ZOOM, MIN_ZOOM, Viewport
from modules.obras.models import GeoPoint, Lead, Region

SQUARE = [GeoPoint(0, 0), GeoPoint(0, 10), GeoPoint(10, 10), GeoPoint(10, 0)]


class TestRegionEditor:
    """Тесты для машины состояний рисования"""

    def test_tap_while_idle_opens_lead_form(self):
        """Нажатие вне рисования открывает форму объекта"""
        editor = RegionEditor()

        outcome = editor.handle_tap(GeoPoint(1, 2))

        assert outcome.action == TapAction.OPEN_LEAD_FORM
        assert outcome.point == GeoPoint(1, 2)
        assert editor.points == []

    def test_tap_while_drawing_adds_vertex(self):
        """Нажатие при рисовании добавляет вершину"""
        editor = RegionEditor()
        editor.start_drawing()

        outcome = editor.handle_tap(GeoPoint(1, 2))

        assert outcome.action == TapAction.VERTEX_ADDED
        assert editor.points == [GeoPoint(1, 2)]

    def test_two_points_discarded(self):
        """Полигон из двух точек отбрасывается"""
        editor = RegionEditor()
        editor.start_drawing()
        editor.handle_tap(GeoPoint(0, 0))
        editor.handle_tap(GeoPoint(1, 1))

        assert editor.save(0) is None
        assert not editor.is_drawing
        assert editor.points == []

    def test_three_points_kept_in_order(self):
        """Вершины сохраняются в порядке нажатий"""
        editor = RegionEditor()
        editor.start_drawing()
        points = [GeoPoint(0, 0), GeoPoint(0, 1), GeoPoint(1, 1)]
        for point in points:
            editor.handle_tap(point)

        region = editor.save(0)

        assert region.points == points
        assert region.color == "blue"
        assert region.id is None
        assert not editor.is_drawing

    def test_seventh_region_reuses_first_color(self):
        """Палитра цветов повторяется по кругу"""
        assert palette_color(6) == REGION_PALETTE[0]
        assert palette_color(1) == "green"

    def test_start_twice_fails(self):
        """Повторный старт рисования запрещен"""
        editor = RegionEditor()
        editor.start_drawing()

        with pytest.raises(ValidationError):
            editor.start_drawing()

    def test_cancel(self):
        """Отмена сбрасывает рисование"""
        editor = RegionEditor()
        editor.start_drawing()
        editor.handle_tap(GeoPoint(0, 0))

        editor.cancel()

        assert not editor.is_drawing
        assert editor.handle_tap(GeoPoint(0, 0)).action == TapAction.OPEN_LEAD_FORM


class TestRegionService:
    """Тесты для сервиса регионов"""

    @pytest.fixture
    def mock_repo(self):
        repo = Mock()
        repo.list_regions = Mock(return_value=[Region("r1", SQUARE, "blue")])

        def add_region(user_id, region):
            region.id = "novo"
            return "novo"

        repo.add_region = Mock(side_effect=add_region)
        repo.delete_region = Mock()
        return repo

    @pytest.fixture
    def service(self, mock_repo):
        service = RegionService(mock_repo, "u1")
        service.load()
        return service

    def test_finish_drawing_saves_with_next_color(self, service, mock_repo):
        """Регион сохраняется со следующим цветом палитры"""
        editor = RegionEditor()
        editor.start_drawing()
        for point in SQUARE[:3]:
            editor.handle_tap(point)

        region = service.finish_drawing(editor)

        assert region.id == "novo"
        assert region.color == "green"
        assert service.regions[-1] is region
        mock_repo.add_region.assert_called_once_with("u1", region)

    def test_short_polygon_not_saved(self, service, mock_repo):
        """Короткий полигон не записывается"""
        editor = RegionEditor()
        editor.start_drawing()
        editor.handle_tap(GeoPoint(0, 0))

        assert service.finish_drawing(editor) is None
        mock_repo.add_region.assert_not_called()

    def test_failed_save_not_added(self, service, mock_repo):
        """Регион с ошибкой записи не добавляется в список"""
        mock_repo.add_region.side_effect = DatabaseQueryError("falha")
        editor = RegionEditor()
        editor.start_drawing()
        for point in SQUARE:
            editor.handle_tap(point)

        with pytest.raises(DatabaseQueryError):
            service.finish_drawing(editor)
        assert len(service.regions) == 1

    def test_store_region_leaves_list_to_caller(self, service, mock_repo):
        """Запись региона в фоне не меняет список; он дополняется отдельно"""
        editor = RegionEditor()
        editor.start_drawing()
        for point in SQUARE:
            editor.handle_tap(point)
        region = service.draft_region(editor)

        stored = service.store_region(region)

        assert stored.id == "novo"
        assert len(service.regions) == 1
        service.remember_region(stored)
        assert service.regions[-1] is stored

    def test_remove_region_leaves_list_to_caller(self, service, mock_repo):
        """Удаление в хранилище не меняет список до forget_region"""
        region = service.confirm_delete("r1", confirm=lambda r: True)

        assert service.remove_region(region.id) == "r1"
        mock_repo.delete_region.assert_called_once_with("u1", "r1")
        assert len(service.regions) == 1
        service.forget_region("r1")
        assert service.regions == []

    def test_confirm_delete_declined(self, service, mock_repo):
        """Отказ в подтверждении не возвращает регион"""
        assert service.confirm_delete("r1", confirm=lambda r: False) is None
        mock_repo.delete_region.assert_not_called()

    def test_delete_requires_confirmation(self, service, mock_repo):
        """Удаление региона только после подтверждения"""
        assert not service.delete_region("r1", confirm=lambda region: False)
        mock_repo.delete_region.assert_not_called()
        assert len(service.regions) == 1

        assert service.delete_region("r1", confirm=lambda region: True)
        mock_repo.delete_region.assert_called_once_with("u1", "r1")
        assert service.regions == []

    def test_delete_unknown_region(self, service, mock_repo):
        """Неизвестный регион не удаляется"""
        confirm = Mock(return_value=True)

        assert not service.delete_region("x", confirm)
        confirm.assert_not_called()

    def test_region_at(self, service):
        """Поиск региона по точке"""
        assert service.region_at(GeoPoint(5, 5)).id == "r1"
        assert service.region_at(GeoPoint(20, 5)) is None

    def test_toggle_visibility(self, service):
        """Переключение видимости регионов"""
        assert service.toggle_visibility() is False
        assert service.toggle_visibility() is True

    def test_point_in_polygon(self):
        """Попадание точки в полигон"""
        assert point_in_polygon(GeoPoint(1, 1), SQUARE)
        assert not point_in_polygon(GeoPoint(-1, 1), SQUARE)
        assert not point_in_polygon(GeoPoint(1, 1), [])


class TestRoute:
    """Тесты для маршрута дня"""

    def test_route_follows_lead_order(self):
        """Маршрут в порядке объектов"""
        leads = [
            Lead(id="b", user_id="u", name="B", builder="x", lat=2.0, lng=2.0),
            Lead(id="a", user_id="u", name="A", builder="x", lat=1.0, lng=1.0),
        ]

        assert build_route(leads) == [(2.0, 2.0), (1.0, 1.0)]

    def test_route_state(self):
        """Показ и сброс маршрута"""
        state = RouteState()
        assert not state.is_visible

        state.show([Lead(id="a", user_id="u", name="A", builder="x", lat=1.0, lng=1.0)])
        assert state.is_visible

        state.clear()
        assert state.polyline == []

    def test_empty_route_is_hidden(self):
        """Пустой маршрут не показывается"""
        state = RouteState()
        state.show([])
        assert not state.is_visible


class TestViewport:
    """Тесты для проекции карты"""

    def test_center_maps_to_middle(self):
        """Центр карты в середине холста"""
        viewport = Viewport(GeoPoint(-19.9, -43.9), 800, 600)

        assert viewport.to_screen(GeoPoint(-19.9, -43.9)) == (400, 300)

    def test_to_geo_inverts_to_screen(self):
        """Обратное преобразование координат"""
        viewport = Viewport(GeoPoint(-19.9, -43.9), 800, 600)
        point = GeoPoint(-19.95, -43.85)

        back = viewport.to_geo(*viewport.to_screen(point))

        assert back.lat == pytest.approx(point.lat)
        assert back.lng == pytest.approx(point.lng)

    def test_pan_moves_center(self):
        """Сдвиг карты меняет центр"""
        viewport = Viewport(GeoPoint(0, 0), 800, 600, zoom=100)

        viewport.pan(0, 100)

        assert viewport.center.lat == pytest.approx(1.0)

    def test_zoom_is_clamped(self):
        """Масштаб ограничен"""
        viewport = Viewport(GeoPoint(0, 0), 800, 600)

        viewport.zoom_by(1e9)
        assert viewport.zoom == MAX_ZOOM
        viewport.zoom_by(1e-9)
        assert viewport.zoom == MIN_ZOOM

    def test_fly_to(self):
        """Переход к точке"""
        viewport = Viewport(GeoPoint(0, 0), 800, 600)

        viewport.fly_to(GeoPoint(5, 6), zoom=4000)

        assert viewport.center == GeoPoint(5, 6)
        assert viewport.zoom == pytest.approx(4000)
