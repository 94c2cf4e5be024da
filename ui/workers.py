"""
Фоновые потоки для обращений к удаленному хранилищу
"""

from typing import Any, Callable, List, Optional

from PyQt5.QtCore import QThread, pyqtSignal
from loguru import logger

from core.auth_provider import AuthSession
from services.session_loader import SessionLoader


class DataLoadThread(QThread):
    """Поток загрузки данных пользователя после входа"""

    loaded = pyqtSignal(object)  # UserData
    error_occurred = pyqtSignal(object)  # исключение

    def __init__(self, loader: SessionLoader, session: AuthSession, parent=None):
        super().__init__(parent)
        self.loader = loader
        self.session = session

    def run(self):
        try:
            self.loaded.emit(self.loader.load(self.session))
        except Exception as error:
            logger.error(f"Ошибка загрузки данных пользователя {self.session.uid}: {error}", exc_info=True)
            self.error_occurred.emit(error)


class GatewayCallThread(QThread):
    """Поток для одиночного вызова (сохранение объекта, загрузка целей и т.п.)"""

    succeeded = pyqtSignal(object)  # результат вызова
    error_occurred = pyqtSignal(object)  # исключение

    def __init__(self, call: Callable[..., Any], *args: Any, parent=None, **kwargs: Any):
        super().__init__(parent)
        self.call = call
        self.args = args
        self.kwargs = kwargs

    def run(self):
        name = getattr(self.call, "__name__", repr(self.call))
        try:
            self.succeeded.emit(self.call(*self.args, **self.kwargs))
        except Exception as error:
            logger.error(f"Ошибка фонового вызова {name}: {error}")
            self.error_occurred.emit(error)


class BackgroundCalls:
    """
    Запуск GatewayCallThread из виджета

    Ссылки на потоки хранятся до их завершения; результат и ошибка
    приходят в поток интерфейса через сигналы.
    """

    def __init__(self, parent):
        self.parent = parent
        self._threads: List[GatewayCallThread] = []

    @property
    def busy(self) -> bool:
        return any(thread.isRunning() for thread in self._threads)

    def run(
        self,
        call: Callable[..., Any],
        *args: Any,
        on_success: Callable[[Any], None],
        on_error: Optional[Callable[[Exception], None]] = None
    ) -> GatewayCallThread:
        thread = GatewayCallThread(call, *args, parent=self.parent)
        thread.succeeded.connect(on_success)
        if on_error is not None:
            thread.error_occurred.connect(on_error)
        thread.finished.connect(lambda: self._forget(thread))
        self._threads.append(thread)
        thread.start()
        return thread

    def _forget(self, thread: GatewayCallThread) -> None:
        if thread in self._threads:
            self._threads.remove(thread)
