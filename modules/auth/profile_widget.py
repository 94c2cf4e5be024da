"""
Раздел "Perfil": данные пользователя, смена пароля и выход
"""

from typing import Optional

from PyQt5.QtCore import pyqtSignal
from PyQt5.QtWidgets import (
    QFormLayout, QFrame, QLabel, QLineEdit, QPushButton, QVBoxLayout, QWidget,
)

from core.auth_provider import AuthProvider
from modules.auth.messages import user_message
from modules.obras.models import User
from modules.styles.general_styles import apply_button_style, apply_frame_style, apply_label_style
from ui.workers import BackgroundCalls


class ProfileWidget(QWidget):
    """Профиль текущего пользователя"""

    logout_requested = pyqtSignal()

    def __init__(self, auth_provider: AuthProvider, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.auth_provider = auth_provider
        self.calls = BackgroundCalls(self)
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)

        title = QLabel("Perfil")
        apply_label_style(title, "h2")
        layout.addWidget(title)

        card = QFrame()
        apply_frame_style(card, "card")
        card_layout = QFormLayout(card)
        self.name_label = QLabel("-")
        self.email_label = QLabel("-")
        card_layout.addRow("Nome", self.name_label)
        card_layout.addRow("Email", self.email_label)
        layout.addWidget(card)

        password_title = QLabel("Alterar senha")
        apply_label_style(password_title, "h2")
        layout.addWidget(password_title)

        form = QFormLayout()
        self.old_password = QLineEdit()
        self.old_password.setEchoMode(QLineEdit.Password)
        form.addRow("Senha atual", self.old_password)
        self.new_password = QLineEdit()
        self.new_password.setEchoMode(QLineEdit.Password)
        form.addRow("Nova senha", self.new_password)
        self.confirm_password = QLineEdit()
        self.confirm_password.setEchoMode(QLineEdit.Password)
        form.addRow("Confirmar nova senha", self.confirm_password)
        layout.addLayout(form)

        self.btn_change = QPushButton("Alterar senha")
        apply_button_style(self.btn_change, "primary")
        self.btn_change.clicked.connect(self._on_change_password)
        layout.addWidget(self.btn_change)

        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        layout.addWidget(self.message_label)

        layout.addStretch()

        btn_logout = QPushButton("Sair")
        apply_button_style(btn_logout, "danger")
        btn_logout.clicked.connect(self.logout_requested.emit)
        layout.addWidget(btn_logout)

    def set_user(self, user: Optional[User]) -> None:
        self.name_label.setText(user.full_name if user else "-")
        self.email_label.setText(user.email if user else "-")

    def _show_message(self, text: str, is_error: bool) -> None:
        apply_label_style(self.message_label, "error" if is_error else "success")
        self.message_label.setText(text)

    def _on_change_password(self) -> None:
        if self.new_password.text() != self.confirm_password.text():
            self._show_message("As senhas não coincidem.", True)
            return
        self.btn_change.setEnabled(False)
        self.calls.run(
            self.auth_provider.change_password, self.old_password.text(), self.new_password.text(),
            on_success=self._on_password_changed,
            on_error=self._on_password_error,
        )

    def _on_password_changed(self, _result) -> None:
        self.btn_change.setEnabled(True)
        for field in (self.old_password, self.new_password, self.confirm_password):
            field.clear()
        self._show_message("Senha alterada com sucesso!", False)

    def _on_password_error(self, error: Exception) -> None:
        self.btn_change.setEnabled(True)
        self._show_message(user_message(error), True)
