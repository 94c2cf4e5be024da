"""
Сообщения об ошибках для пользователя (pt-BR)
"""

from typing import Dict

from loguru import logger

from core.exceptions import (
    AuthError, BlobStorageError, GeolocationError, NetworkError, PermissionDeniedError,
    ProfileSetupError, ValidationError,
)

GENERIC_MESSAGE = "Ocorreu um erro. Por favor, tente novamente."

AUTH_MESSAGES: Dict[str, str] = {
    "auth/invalid-email": "O formato do e-mail é inválido.",
    "auth/user-disabled": "Este usuário foi desabilitado.",
    "auth/user-not-found": "E-mail ou senha inválidos.",
    "auth/wrong-password": "E-mail ou senha inválidos.",
    "auth/invalid-credential": "E-mail ou senha inválidos.",
    "auth/email-already-in-use": "Este e-mail já está cadastrado.",
    "auth/weak-password": "A senha é muito fraca. Use pelo menos 6 caracteres.",
    "auth/operation-not-allowed": "O cadastro por e-mail/senha não está habilitado.",
    "auth/email-not-verified": (
        "Seu e-mail ainda não foi verificado. Por favor, verifique sua caixa de entrada."
    ),
    "auth/requires-recent-login": "Por segurança, entre novamente antes de alterar a senha.",
    "auth/invalid-token": "O link é inválido ou expirou. Solicite um novo.",
}

PERMISSION_MESSAGE = (
    "Permissão negada. Verifique as regras de segurança do seu banco de dados."
)
NETWORK_MESSAGE = "Não foi possível conectar ao servidor. Verifique sua conexão e tente novamente."
UPLOAD_MESSAGE = "Não foi possível enviar os arquivos. Tente novamente."
GEOLOCATION_MESSAGE = "Não foi possível obter sua localização atual."
PROFILE_SETUP_MESSAGE = (
    "Não foi possível configurar seu perfil no banco de dados. "
    "Verifique as permissões e tente fazer login novamente."
)

# Сообщения формы восстановления пароля
RESET_NOT_FOUND_MESSAGE = "E-mail não encontrado."
RESET_SENT_MESSAGE = "E-mail de redefinição de senha enviado! Verifique sua caixa de entrada."
VERIFICATION_SENT_MESSAGE = "Um novo e-mail de verificação foi enviado com sucesso!"
VERIFICATION_FAILED_MESSAGE = "Não foi possível reenviar o e-mail. Tente novamente mais tarde."


def auth_message(code: str) -> str:
    message = AUTH_MESSAGES.get(code)
    if message is None:
        logger.error(f"Неизвестный код ошибки аутентификации: {code}")
        return GENERIC_MESSAGE
    return message


def password_reset_message(error: Exception) -> str:
    """Сообщение формы восстановления пароля"""
    if isinstance(error, AuthError) and error.code in ("auth/user-not-found", "auth/invalid-email"):
        return RESET_NOT_FOUND_MESSAGE
    return user_message(error)


def user_message(error: Exception) -> str:
    """
    Текст ошибки для показа пользователю

    Args:
        error: Пойманное исключение

    Returns:
        Сообщение на португальском
    """
    if isinstance(error, AuthError):
        return auth_message(error.code)
    if isinstance(error, ProfileSetupError):
        return PROFILE_SETUP_MESSAGE
    if isinstance(error, PermissionDeniedError):
        return PERMISSION_MESSAGE
    if isinstance(error, NetworkError):
        return NETWORK_MESSAGE
    if isinstance(error, BlobStorageError):
        return UPLOAD_MESSAGE
    if isinstance(error, GeolocationError):
        return GEOLOCATION_MESSAGE
    if isinstance(error, ValidationError):
        return str(error)
    logger.error(f"Необработанная ошибка: {error!r}")
    return GENERIC_MESSAGE
