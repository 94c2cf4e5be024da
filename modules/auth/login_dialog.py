"""
Диалог входа: вход, регистрация, подтверждение e-mail и восстановление пароля
"""

from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)
from loguru import logger

from core.auth_provider import AuthProvider
from core.exceptions import AuthError
from modules.auth.messages import (
    RESET_SENT_MESSAGE, VERIFICATION_FAILED_MESSAGE, VERIFICATION_SENT_MESSAGE,
    password_reset_message, user_message,
)
from modules.styles.general_styles import apply_button_style, apply_label_style
from modules.styles.ui_config import configure_dialog
from ui.workers import BackgroundCalls

PAGE_LOGIN, PAGE_SIGNUP, PAGE_FORGOT, PAGE_VERIFY = range(4)


class LoginDialog(QDialog):
    """Окно аутентификации; закрывается с accept() после успешного входа"""

    def __init__(self, auth_provider: AuthProvider, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.auth_provider = auth_provider
        self._unverified_email: Optional[str] = None
        self.calls = BackgroundCalls(self)
        configure_dialog(self, "ObraMap", "auth")
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        title = QLabel("ObraMap")
        title.setAlignment(Qt.AlignCenter)
        apply_label_style(title, "h1")
        layout.addWidget(title)

        self.subtitle = QLabel("Faça login para continuar")
        self.subtitle.setAlignment(Qt.AlignCenter)
        apply_label_style(self.subtitle, "small")
        layout.addWidget(self.subtitle)

        self.pages = QStackedWidget()
        self.pages.addWidget(self._build_login_page())
        self.pages.addWidget(self._build_signup_page())
        self.pages.addWidget(self._build_forgot_page())
        self.pages.addWidget(self._build_verify_page())
        layout.addWidget(self.pages)

        self.error_label = QLabel()
        self.error_label.setWordWrap(True)
        apply_label_style(self.error_label, "error")
        layout.addWidget(self.error_label)

        self.success_label = QLabel()
        self.success_label.setWordWrap(True)
        apply_label_style(self.success_label, "success")
        layout.addWidget(self.success_label)

    # ---------- Страницы ----------

    def _build_login_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()

        self.login_email = QLineEdit()
        self.login_email.setPlaceholderText("seu@email.com")
        form.addRow("Email", self.login_email)

        password_row = QHBoxLayout()
        self.login_password = QLineEdit()
        self.login_password.setEchoMode(QLineEdit.Password)
        self.login_password.setPlaceholderText("Sua senha")
        self.login_password.returnPressed.connect(self._on_login)
        password_row.addWidget(self.login_password)
        btn_show = QPushButton("👁")
        btn_show.setCheckable(True)
        btn_show.toggled.connect(
            lambda checked: self.login_password.setEchoMode(QLineEdit.Normal if checked else QLineEdit.Password)
        )
        password_row.addWidget(btn_show)
        form.addRow("Senha", password_row)
        layout.addLayout(form)

        self.btn_resend = QPushButton("Reenviar e-mail de verificação")
        apply_button_style(self.btn_resend, "link")
        self.btn_resend.clicked.connect(self._on_resend_verification)
        self.btn_resend.hide()
        layout.addWidget(self.btn_resend)

        btn_login = QPushButton("Entrar")
        apply_button_style(btn_login, "primary")
        btn_login.clicked.connect(self._on_login)
        layout.addWidget(btn_login)

        links = QHBoxLayout()
        for text, page_index in (
            ("Esqueceu a senha?", PAGE_FORGOT),
            ("Cadastre-se", PAGE_SIGNUP),
            ("Tenho um código de verificação", PAGE_VERIFY),
        ):
            btn = QPushButton(text)
            apply_button_style(btn, "link")
            btn.clicked.connect(lambda checked, p=page_index: self._show_page(p))
            links.addWidget(btn)
        layout.addLayout(links)
        return page

    def _build_signup_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()
        self.signup_name = QLineEdit()
        form.addRow("Nome completo", self.signup_name)
        self.signup_email = QLineEdit()
        form.addRow("Email", self.signup_email)
        self.signup_password = QLineEdit()
        self.signup_password.setEchoMode(QLineEdit.Password)
        form.addRow("Senha", self.signup_password)
        self.signup_confirm = QLineEdit()
        self.signup_confirm.setEchoMode(QLineEdit.Password)
        form.addRow("Confirmar senha", self.signup_confirm)
        layout.addLayout(form)

        btn_signup = QPushButton("Cadastrar")
        apply_button_style(btn_signup, "primary")
        btn_signup.clicked.connect(self._on_sign_up)
        layout.addWidget(btn_signup)
        layout.addWidget(self._back_button())
        return page

    def _build_forgot_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()
        self.forgot_email = QLineEdit()
        form.addRow("Email", self.forgot_email)
        layout.addLayout(form)

        btn_send = QPushButton("Enviar link de redefinição")
        apply_button_style(btn_send, "primary")
        btn_send.clicked.connect(self._on_send_reset)
        layout.addWidget(btn_send)

        reset_form = QFormLayout()
        self.reset_code = QLineEdit()
        reset_form.addRow("Código", self.reset_code)
        self.reset_password = QLineEdit()
        self.reset_password.setEchoMode(QLineEdit.Password)
        reset_form.addRow("Nova senha", self.reset_password)
        layout.addLayout(reset_form)

        btn_reset = QPushButton("Redefinir senha")
        apply_button_style(btn_reset, "secondary")
        btn_reset.clicked.connect(self._on_reset_password)
        layout.addWidget(btn_reset)
        layout.addWidget(self._back_button())
        return page

    def _build_verify_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()
        self.verify_code = QLineEdit()
        form.addRow("Código de verificação", self.verify_code)
        layout.addLayout(form)

        btn_verify = QPushButton("Confirmar e-mail")
        apply_button_style(btn_verify, "primary")
        btn_verify.clicked.connect(self._on_verify_email)
        layout.addWidget(btn_verify)
        layout.addWidget(self._back_button())
        return page

    def _back_button(self) -> QPushButton:
        btn = QPushButton("Voltar para o login")
        apply_button_style(btn, "link")
        btn.clicked.connect(lambda: self._show_page(PAGE_LOGIN))
        return btn

    def _show_page(self, index: int) -> None:
        subtitles = {
            PAGE_LOGIN: "Faça login para continuar",
            PAGE_SIGNUP: "Crie sua conta",
            PAGE_FORGOT: "Digite seu e-mail para receber o link de redefinição",
            PAGE_VERIFY: "Digite o código enviado para o seu e-mail",
        }
        self.subtitle.setText(subtitles[index])
        self.pages.setCurrentIndex(index)
        self._set_messages()

    def _set_messages(self, error: str = "", success: str = "") -> None:
        self.error_label.setText(error)
        self.success_label.setText(success)

    # ---------- Обработчики ----------

    def _run(self, call, *args, on_success, on_error=None) -> None:
        """Вызов провайдера в фоне; форма заблокирована до ответа"""
        self.pages.setEnabled(False)

        def done(result) -> None:
            self.pages.setEnabled(True)
            on_success(result)

        def failed(error: Exception) -> None:
            self.pages.setEnabled(True)
            if on_error is not None:
                on_error(error)
            else:
                self._set_messages(error=user_message(error))

        self.calls.run(call, *args, on_success=done, on_error=failed)

    def _on_login(self) -> None:
        self._set_messages()
        self.btn_resend.hide()
        email = self.login_email.text()

        def on_error(error: Exception) -> None:
            if isinstance(error, AuthError) and error.code == "auth/email-not-verified":
                self._unverified_email = email
                self.btn_resend.show()
            self._set_messages(error=user_message(error))

        self._run(
            self.auth_provider.sign_in, email, self.login_password.text(),
            on_success=lambda _session: self.accept(),
            on_error=on_error,
        )

    def _on_resend_verification(self) -> None:
        if not self._unverified_email:
            return

        def on_sent(_result) -> None:
            self._unverified_email = None
            self.btn_resend.hide()
            self._set_messages(success=VERIFICATION_SENT_MESSAGE)

        def on_error(error: Exception) -> None:
            logger.warning(f"Не удалось повторно отправить письмо: {error}")
            self._set_messages(error=VERIFICATION_FAILED_MESSAGE)

        self._run(self.auth_provider.resend_verification, self._unverified_email,
                  on_success=on_sent, on_error=on_error)

    def _on_sign_up(self) -> None:
        if not self.signup_name.text().strip():
            self._set_messages(error="Informe seu nome completo.")
            return
        if self.signup_password.text() != self.signup_confirm.text():
            self._set_messages(error="As senhas não coincidem.")
            return

        def on_signed_up(_uid) -> None:
            self._show_page(PAGE_VERIFY)
            self._set_messages(
                success="Cadastro realizado! Enviamos um e-mail de verificação para você."
            )

        self._run(
            self.auth_provider.sign_up,
            self.signup_email.text(), self.signup_password.text(), self.signup_name.text(),
            on_success=on_signed_up,
        )

    def _on_verify_email(self) -> None:
        def on_verified(_uid) -> None:
            self._show_page(PAGE_LOGIN)
            self._set_messages(success="E-mail verificado! Faça login para continuar.")

        self._run(self.auth_provider.verify_email, self.verify_code.text().strip(),
                  on_success=on_verified)

    def _on_send_reset(self) -> None:
        self._run(
            self.auth_provider.send_password_reset, self.forgot_email.text(),
            on_success=lambda _result: self._set_messages(success=RESET_SENT_MESSAGE),
            on_error=lambda error: self._set_messages(error=password_reset_message(error)),
        )

    def _on_reset_password(self) -> None:
        def on_reset(_result) -> None:
            self._show_page(PAGE_LOGIN)
            self._set_messages(success="Senha redefinida! Faça login com a nova senha.")

        self._run(
            self.auth_provider.reset_password, self.reset_code.text().strip(), self.reset_password.text(),
            on_success=on_reset,
        )
