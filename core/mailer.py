"""
Отправка служебных писем (подтверждение e-mail, сброс пароля)
"""

import smtplib
from email.mime.text import MIMEText

from loguru import logger

from config.settings import SmtpConfig


class Mailer:
    """Отправитель писем через SMTP"""

    def __init__(self, smtp_config: SmtpConfig):
        self.smtp_config = smtp_config

    def send(self, to_email: str, subject: str, body: str) -> bool:
        """
        Отправка письма

        Returns:
            True если письмо отправлено, False если SMTP не настроен или недоступен
        """
        if not self.smtp_config.is_configured:
            logger.warning(f"SMTP не настроен, письмо для {to_email} не отправлено: {subject}")
            logger.debug(f"Текст письма для {to_email}:\n{body}")
            return False

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.smtp_config.sender
        msg["To"] = to_email

        try:
            with smtplib.SMTP(self.smtp_config.host, self.smtp_config.port, timeout=10) as smtp:
                smtp.starttls()
                smtp.login(self.smtp_config.user, self.smtp_config.password)
                smtp.sendmail(self.smtp_config.sender, [to_email], msg.as_string())
            logger.info(f"Письмо отправлено: {to_email} ({subject})")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Ошибка отправки письма {to_email}: {e}")
            return False
