"""
Масштабирование интерфейса по DPI экрана
"""
from PyQt5.QtWidgets import QApplication


class GlobalScaling:
    """Коэффициент масштабирования интерфейса (один на приложение)"""

    _instance = None
    _scale_factor = 1.0

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(GlobalScaling, cls).__new__(cls)
            cls._instance._calculate_scale_factor()
        return cls._instance

    def _calculate_scale_factor(self):
        app = QApplication.instance()
        screen = app.primaryScreen() if app else None
        if screen is None:
            # Приложение еще не создано (например, в тестах)
            self._scale_factor = 1.0
            return

        dpi = screen.logicalDotsPerInch()
        screen_width = screen.availableGeometry().width()
        if dpi > 140:
            self._scale_factor = 1.3 if screen_width <= 1366 else 1.2
        elif dpi > 110:
            self._scale_factor = 1.1
        else:
            self._scale_factor = 1.0

    def get_scale_factor(self):
        return self._scale_factor

    def scale_size(self, size):
        return int(size * self._scale_factor)


def get_scale_factor():
    return GlobalScaling().get_scale_factor()


def scale_size(size):
    return GlobalScaling().scale_size(size)
