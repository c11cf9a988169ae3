"""Operator directory — вход оператора в консоль.

Учётные записи передаются из конфигурации (Settings.OPERATORS),
а не зашиты в код. Проверка пароля — простое сравнение: усиление
аутентификации не входит в задачи консоли.
"""

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field


class OperatorRole(str, Enum):
    """Роль оператора."""

    ADMIN = "admin"
    WORKER = "worker"


class Operator(BaseModel):
    """Вошедший оператор (без пароля)."""

    username: str = Field(..., min_length=1, description="Логин")
    display_name: str = Field(..., min_length=1, description="Имя для журнала (created_by)")
    role: OperatorRole = Field(..., description="Роль")

    model_config = {"frozen": True}


class OperatorAccount(Operator):
    """Учётная запись оператора из конфигурации."""

    password: str = Field(..., min_length=1, description="Пароль")

    def public(self) -> Operator:
        """Данные оператора без пароля."""
        return Operator(username=self.username, display_name=self.display_name, role=self.role)


class AuthenticationError(ValueError):
    """Неверный логин или пароль."""


class OperatorDirectory:
    """Справочник операторов для входа в консоль."""

    def __init__(self, accounts: Iterable[OperatorAccount]):
        self._accounts = {account.username.strip().lower(): account for account in accounts}

    def authenticate(self, username: str, password: str) -> Operator:
        """Проверка логина и пароля.

        Логин сравнивается без учёта регистра и пробелов по краям,
        пароль — точно.

        Raises:
            AuthenticationError: Если логин неизвестен или пароль неверный
        """
        account = self._accounts.get(username.strip().lower())
        if account is None or account.password != password:
            raise AuthenticationError("Invalid username or password")
        return account.public()

    def __len__(self) -> int:
        return len(self._accounts)
