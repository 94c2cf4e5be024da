"""
Провайдер аутентификации ObraMap

Регистрация с подтверждением e-mail, вход, выход, сброс и смена пароля.
Учетные записи хранятся в таблице auth_accounts, одноразовые ссылки
(подтверждение, сброс) подписываются JWT.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import jwt
from loguru import logger
from werkzeug.security import generate_password_hash, check_password_hash

from config.settings import AuthConfig
from core.database import DatabaseManager
from core.exceptions import AuthError, ConfigurationError
from core.mailer import Mailer

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PURPOSE_VERIFY = "verify-email"
PURPOSE_RESET = "reset-password"


@dataclass
class AuthSession:
    """Активная сессия пользователя"""
    uid: str
    email: str
    display_name: str
    email_verified: bool = True


SessionListener = Callable[[Optional[AuthSession]], None]


class AuthProvider:
    """Аутентификация по e-mail и паролю"""

    def __init__(self, db_manager: DatabaseManager, mailer: Mailer, auth_config: AuthConfig):
        """
        Raises:
            ConfigurationError: Не задан секрет подписи токенов (OBRAMAP_TOKEN_SECRET)
        """
        if not auth_config.token_secret:
            raise ConfigurationError("Не задан OBRAMAP_TOKEN_SECRET: подписывать токены нечем")
        self.db_manager = db_manager
        self.mailer = mailer
        self.auth_config = auth_config
        self._session: Optional[AuthSession] = None
        self._listeners: List[SessionListener] = []

    @property
    def current_session(self) -> Optional[AuthSession]:
        return self._session

    # ---------- Подписка на смену сессии ----------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Подписка на событие смены сессии

        Returns:
            Функция отписки
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Optional[AuthSession]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    # ---------- Регистрация и вход ----------

    def sign_up(self, email: str, password: str, display_name: str) -> str:
        """
        Регистрация новой учетной записи (ожидает подтверждения e-mail)

        Returns:
            Идентификатор созданной учетной записи

        Raises:
            AuthError: auth/invalid-email, auth/weak-password, auth/email-already-in-use
        """
        email = self._normalize_email(email)
        self._check_password_strength(password)

        if self._find_account(email):
            raise AuthError("auth/email-already-in-use")

        uid = uuid.uuid4().hex
        self.db_manager.execute_update(
            """
            INSERT INTO auth_accounts (uid, email, display_name, password_hash)
            VALUES (%s, %s, %s, %s)
            """,
            (uid, email, display_name.strip(), generate_password_hash(password))
        )
        logger.info(f"Создана учетная запись {uid} для {email}")
        self._send_verification(uid, email)
        return uid

    def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Вход по e-mail и паролю

        Raises:
            AuthError: auth/invalid-email, auth/invalid-credential, auth/user-disabled,
                auth/email-not-verified
        """
        email = self._normalize_email(email)
        account = self._find_account(email)
        if not account or not check_password_hash(account["password_hash"], password):
            raise AuthError("auth/invalid-credential")
        if account.get("disabled"):
            raise AuthError("auth/user-disabled")
        if not account.get("email_verified"):
            logger.info(f"Вход отклонен: e-mail {email} не подтвержден")
            raise AuthError("auth/email-not-verified")

        session = AuthSession(
            uid=account["uid"],
            email=account["email"],
            display_name=account.get("display_name") or "",
        )
        logger.info(f"Пользователь {session.uid} вошел в систему")
        self._set_session(session)
        return session

    def sign_out(self) -> None:
        if self._session:
            logger.info(f"Пользователь {self._session.uid} вышел из системы")
        self._set_session(None)

    # ---------- Подтверждение e-mail ----------

    def resend_verification(self, email: str) -> bool:
        """Повторная отправка письма подтверждения"""
        account = self._find_account(self._normalize_email(email))
        if not account:
            raise AuthError("auth/user-not-found")
        if account.get("email_verified"):
            return False
        return self._send_verification(account["uid"], account["email"])

    def verify_email(self, token: str) -> str:
        """Подтверждение e-mail по токену из письма"""
        uid = self._decode_token(token, PURPOSE_VERIFY)
        affected = self.db_manager.execute_update(
            """
            UPDATE auth_accounts
            SET email_verified = TRUE, updated_at = CURRENT_TIMESTAMP
            WHERE uid = %s
            """,
            (uid,)
        )
        if not affected:
            raise AuthError("auth/invalid-token")
        logger.info(f"E-mail учетной записи {uid} подтвержден")
        return uid

    # ---------- Пароли ----------

    def send_password_reset(self, email: str) -> bool:
        email = self._normalize_email(email)
        account = self._find_account(email)
        if not account:
            raise AuthError("auth/user-not-found")
        token = self._encode_token(
            account["uid"], PURPOSE_RESET, timedelta(minutes=self.auth_config.reset_ttl_minutes)
        )
        body = (
            "Recebemos um pedido para redefinir a sua senha do ObraMap.\n\n"
            f"Código de redefinição:\n{token}\n\n"
            "Se você não fez este pedido, ignore este e-mail."
        )
        return self.mailer.send(email, "ObraMap - redefinição de senha", body)

    def reset_password(self, token: str, new_password: str) -> None:
        uid = self._decode_token(token, PURPOSE_RESET)
        self._check_password_strength(new_password)
        self._store_password(uid, new_password)
        logger.info(f"Пароль учетной записи {uid} сброшен")

    def change_password(self, old_password: str, new_password: str) -> None:
        """
        Смена пароля с повторной аутентификацией

        Raises:
            AuthError: auth/requires-recent-login (нет сессии),
                auth/invalid-credential (неверный старый пароль), auth/weak-password
        """
        if not self._session:
            raise AuthError("auth/requires-recent-login")
        account = self._find_account(self._session.email)
        if not account or not check_password_hash(account["password_hash"], old_password):
            raise AuthError("auth/invalid-credential")
        self._check_password_strength(new_password)
        self._store_password(account["uid"], new_password)
        logger.info(f"Пароль пользователя {account['uid']} изменен")

    # ---------- Внутренние хелперы ----------

    @staticmethod
    def _normalize_email(email: str) -> str:
        value = (email or "").strip().lower()
        if not EMAIL_RE.match(value):
            raise AuthError("auth/invalid-email")
        return value

    def _check_password_strength(self, password: str) -> None:
        if len(password or "") < self.auth_config.min_password_length:
            raise AuthError("auth/weak-password")

    def _find_account(self, email: str) -> Optional[Dict[str, Any]]:
        rows = self.db_manager.execute_query(
            """
            SELECT uid, email, display_name, password_hash, email_verified, disabled
            FROM auth_accounts
            WHERE email = %s
            """,
            (email,)
        )
        return rows[0] if rows else None

    def _store_password(self, uid: str, password: str) -> None:
        self.db_manager.execute_update(
            """
            UPDATE auth_accounts
            SET password_hash = %s, updated_at = CURRENT_TIMESTAMP
            WHERE uid = %s
            """,
            (generate_password_hash(password), uid)
        )

    def _send_verification(self, uid: str, email: str) -> bool:
        token = self._encode_token(
            uid, PURPOSE_VERIFY, timedelta(hours=self.auth_config.verification_ttl_hours)
        )
        body = (
            "Bem-vindo ao ObraMap!\n\n"
            f"Use o código abaixo para confirmar o seu e-mail:\n{token}\n"
        )
        return self.mailer.send(email, "ObraMap - confirme seu e-mail", body)

    def _encode_token(self, uid: str, purpose: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": uid, "purpose": purpose, "iat": now, "exp": now + ttl, "iss": "obramap"}
        return jwt.encode(payload, self.auth_config.token_secret, algorithm="HS256")

    def _decode_token(self, token: str, purpose: str) -> str:
        try:
            payload = jwt.decode(
                token, self.auth_config.token_secret, algorithms=["HS256"], issuer="obramap"
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Недействительный токен ({purpose}): {e}")
            raise AuthError("auth/invalid-token") from e
        if payload.get("purpose") != purpose or not payload.get("sub"):
            raise AuthError("auth/invalid-token")
        return payload["sub"]
