from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import Role, SalaryStatus
from .model import SalarySubmission, User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_by_salary_status(self, status: SalaryStatus, *, limit: int = 200) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        full_name: str,
        username: str,
        password_hash: str,
        roles: frozenset[Role],
        department: Optional[str],
        designation: Optional[str],
        hourly_rate: Optional[Decimal],
    ) -> int:
        raise NotImplementedError

    def set_roles(self, user_id: int, roles: frozenset[Role]) -> bool:
        raise NotImplementedError

    def set_hourly_rate(self, user_id: int, hourly_rate: Optional[Decimal]) -> bool:
        raise NotImplementedError

    def save_salary(
        self,
        user_id: int,
        salary: SalarySubmission,
        *,
        expected_status: SalaryStatus,
        monthly_salary: Optional[Decimal],
        hourly_rate: Optional[Decimal],
    ) -> bool:
        """Write the submission and the profile pay figures together.

        Applies only while the stored salary status still equals
        ``expected_status``.
        """

        raise NotImplementedError
