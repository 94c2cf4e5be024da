"""
Контекст сессии пользователя

Единственная подписка на события провайдера аутентификации устанавливается
при старте приложения (attach) и снимается при выходе (detach). Текущий
пользователь передается в сервисы явно, через этот объект.
"""

from typing import Callable, Optional

from PyQt5.QtCore import QObject, pyqtSignal
from loguru import logger

from core.auth_provider import AuthProvider, AuthSession


class SessionContext(QObject):
    """Текущая сессия и уведомление о ее смене"""

    session_changed = pyqtSignal(object)  # AuthSession или None

    def __init__(self, parent=None):
        super().__init__(parent)
        self._session: Optional[AuthSession] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def user_id(self) -> Optional[str]:
        return self._session.uid if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def attach(self, auth_provider: AuthProvider) -> None:
        """Подписка на провайдер (ровно одна на время жизни приложения)"""
        if self._unsubscribe is not None:
            logger.warning("Контекст сессии уже подписан на провайдер аутентификации")
            return
        self._unsubscribe = auth_provider.subscribe(self._on_session_changed)
        self._on_session_changed(auth_provider.current_session)
        logger.debug("Контекст сессии подписан на провайдер аутентификации")

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.debug("Контекст сессии отписан от провайдера аутентификации")

    def _on_session_changed(self, session: Optional[AuthSession]) -> None:
        self._session = session
        self.session_changed.emit(session)
