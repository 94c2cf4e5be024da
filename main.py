import sys

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import QApplication, QDialog, QMessageBox
from loguru import logger

from config.settings import config


def setup_logging():
    """Консоль и файл с ротацией"""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if config.logging.debug else config.logging.level,
        format="{time:HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        colorize=True
    )
    config.logging.log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        config.logging.log_dir / "obramap_{time:YYYY-MM-DD}.log",
        level=config.logging.level,
        rotation="10 MB",
        retention="14 days",
        encoding="utf-8"
    )


class Application:
    """Цикл вход -> главное окно -> выход"""

    def __init__(self, app: QApplication):
        # Модули интерфейса импортируются после создания QApplication: стили зависят от экрана
        from core.auth_provider import AuthProvider
        from core.database import DatabaseManager
        from core.mailer import Mailer
        from core.schema import ensure_schema
        from core.session import SessionContext

        self.app = app
        self.db_manager = DatabaseManager(config.database)
        self.auth_provider = AuthProvider(self.db_manager, Mailer(config.smtp), config.auth)
        self.db_manager.connect()
        ensure_schema(self.db_manager)

        self.session_context = SessionContext()
        self.session_context.attach(self.auth_provider)
        self.window = None

    def show_login(self) -> bool:
        from modules.auth.login_dialog import LoginDialog
        from ui.main_window import MainWindow

        dialog = LoginDialog(self.auth_provider)
        if dialog.exec_() != QDialog.Accepted or not self.session_context.is_authenticated:
            logger.info("Вход отменен пользователем")
            return False

        self.window = MainWindow(self.db_manager, self.auth_provider, self.session_context)
        self.window.logged_out.connect(self._on_logged_out)
        self.window.show()
        return True

    def _on_logged_out(self):
        self.window.deleteLater()
        self.window = None
        if not self.show_login():
            self.app.quit()

    def shutdown(self):
        self.session_context.detach()
        self.db_manager.disconnect()


if __name__ == "__main__":
    # ВКЛЮЧАЕМ ВЫСОКИЙ DPI SCALING ПЕРВЫМ ДЕЛОМ
    if hasattr(Qt, 'AA_EnableHighDpiScaling'):
        QApplication.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    if hasattr(Qt, 'AA_UseHighDpiPixmaps'):
        QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps, True)

    setup_logging()
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    from core.exceptions import ConfigurationError, GatewayError

    try:
        application = Application(app)
    except ConfigurationError as e:
        logger.error(f"Ошибка конфигурации: {e}")
        QMessageBox.critical(None, "ObraMap", "Configuração incompleta: defina OBRAMAP_TOKEN_SECRET.")
        sys.exit(1)
    except GatewayError as e:
        logger.error(f"Не удалось подготовить БД: {e}")
        QMessageBox.critical(None, "ObraMap", "Não foi possível conectar ao banco de dados.")
        sys.exit(1)

    if not application.show_login():
        application.shutdown()
        sys.exit(0)

    exit_code = app.exec_()
    application.shutdown()
    sys.exit(exit_code)
