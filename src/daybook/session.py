"""Who is using the desk: explicit login/logout instead of ambient state."""

from __future__ import annotations

import hmac
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog

from daybook.config import get_settings
from daybook.errors import AuthenticationError, PermissionDeniedError
from daybook.models import Employee

logger = structlog.get_logger(__name__)


class Role(str, Enum):
    """Access profiles of the application."""

    ADMIN = "admin"
    CASHIER = "caixa"
    EMPLOYEE = "employee"


@dataclass
class Session:
    """Current role and, for employees, which employee is logged in.

    ``identity`` is the caller id recorded as ``closedBy`` on closings.
    """

    identity: str = "anonymous"
    role: Role | None = None
    employee_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.role is not None

    def login(
        self,
        role: Role | str,
        pin: str | None = None,
        employee_id: str | None = None,
        roster: Iterable[Employee] = (),
    ) -> Role:
        """Switch the session to ``role``.

        Admin and cashier need their shared PIN; employees pick themselves
        from the roster.

        Raises:
            AuthenticationError: Wrong PIN, unknown role or unknown employee.
        """
        try:
            selected = Role(role)
        except ValueError as e:
            raise AuthenticationError("PIN/Dados incorretos.") from e

        settings = get_settings()
        if selected is Role.EMPLOYEE:
            if not employee_id or not any(e.id == employee_id for e in roster):
                raise AuthenticationError("ID do Funcionário inválido.")
            self.employee_id = employee_id
        else:
            expected = settings.admin_pin if selected is Role.ADMIN else settings.caixa_pin
            if pin is None or not hmac.compare_digest(
                pin.encode(), expected.get_secret_value().encode()
            ):
                raise AuthenticationError("PIN/Dados incorretos.")
            self.employee_id = None

        self.role = selected
        logger.info("session_login", role=selected.value, identity=self.identity)
        return selected

    def logout(self) -> None:
        logger.info("session_logout", role=self.role.value if self.role else None)
        self.role = None
        self.employee_id = None

    def require(self, *roles: Role) -> None:
        if self.role not in roles:
            raise PermissionDeniedError(
                f"Requires one of: {', '.join(r.value for r in roles)}"
            )
