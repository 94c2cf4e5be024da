"""
Централизованная настройка окон и диалогов PyQt5
"""

from typing import Optional

from PyQt5.QtWidgets import QDialog, QMainWindow


class WindowConfig:
    """Стандартные размеры окон и диалогов"""

    DIALOG_SIZES = {
        "small": (400, 300),
        "medium": (600, 450),
        "large": (800, 650),
        "auth": (420, 420),
        "lead_form": (760, 720),
    }

    MIN_SIZES = {
        "dialog": (380, 260),
        "window": (960, 640),
    }

    @staticmethod
    def configure_dialog(
        dialog: QDialog,
        title: str,
        size_preset: Optional[str] = None,
    ) -> None:
        """
        Настройка диалогового окна.

        Args:
            dialog: Экземпляр QDialog
            title: Заголовок окна
            size_preset: Предустановленный размер (ключ DIALOG_SIZES)
        """
        dialog.setWindowTitle(title)
        if size_preset in WindowConfig.DIALOG_SIZES:
            dialog.resize(*WindowConfig.DIALOG_SIZES[size_preset])
        dialog.setMinimumSize(*WindowConfig.MIN_SIZES["dialog"])

    @staticmethod
    def configure_window(window: QMainWindow, title: str) -> None:
        window.setWindowTitle(title)
        window.setMinimumSize(*WindowConfig.MIN_SIZES["window"])


def configure_dialog(dialog: QDialog, title: str, size_preset: Optional[str] = None) -> None:
    """Настройка диалогового окна."""
    WindowConfig.configure_dialog(dialog, title, size_preset)


def configure_window(window: QMainWindow, title: str) -> None:
    """Настройка главного окна приложения."""
    WindowConfig.configure_window(window, title)
