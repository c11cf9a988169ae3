"""
Тесты для справочника операторов
"""

import pytest
from pydantic import ValidationError

from src.desk.operators import (
    AuthenticationError,
    Operator,
    OperatorAccount,
    OperatorDirectory,
    OperatorRole,
)


@pytest.fixture
def directory() -> OperatorDirectory:
    return OperatorDirectory(
        [
            OperatorAccount(username="Anna", display_name="Анна", role=OperatorRole.ADMIN, password="s3cret"),
            OperatorAccount(username="oleg", display_name="Олег", role="worker", password="pass"),
        ]
    )


class TestAuthenticate:
    def test_success(self, directory) -> None:
        operator = directory.authenticate("anna", "s3cret")
        assert isinstance(operator, Operator)
        assert not isinstance(operator, OperatorAccount)
        assert operator.display_name == "Анна"
        assert operator.role == OperatorRole.ADMIN

    def test_username_case_and_whitespace_insensitive(self, directory) -> None:
        assert directory.authenticate("  OLEG ", "pass").username == "oleg"

    def test_password_exact(self, directory) -> None:
        with pytest.raises(AuthenticationError):
            directory.authenticate("anna", "S3CRET")
        with pytest.raises(AuthenticationError):
            directory.authenticate("anna", " s3cret")

    def test_unknown_user(self, directory) -> None:
        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            directory.authenticate("root", "s3cret")

    def test_authentication_error_is_value_error(self) -> None:
        assert issubclass(AuthenticationError, ValueError)

    def test_empty_directory_rejects_all(self) -> None:
        directory = OperatorDirectory([])
        assert len(directory) == 0
        with pytest.raises(AuthenticationError):
            directory.authenticate("anna", "s3cret")

    def test_len(self, directory) -> None:
        assert len(directory) == 2


class TestOperatorModels:
    def test_invalid_role(self) -> None:
        with pytest.raises(ValidationError):
            OperatorAccount(username="x", display_name="x", role="root", password="p")

    def test_public_drops_password(self) -> None:
        account = OperatorAccount(username="x", display_name="X", role="worker", password="p")
        assert "password" not in account.public().model_dump()
