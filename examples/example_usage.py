"""Example: drive the service layer directly (no Flask).

Approves the oldest pending claim as the demo manager and prints the frozen total.
"""

import importlib

from config import get_settings_module

from src.claims_system.claims_system.container import build_container
from src.claims_system.claims_system.core.enums import SubmissionKind


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, holidays=getattr(settings, "HOLIDAYS", ""))

    manager = container.users_repo.get_by_username("manager")
    reviewer = container.auth_service.principal_for(manager.user_id)

    pending = container.submission_service.list_pending(reviewer, limit=1)
    claims = pending[SubmissionKind.CLAIM.collection]
    if not claims:
        print("No pending claims.")
        return

    approved = container.submission_service.approve(reviewer, SubmissionKind.CLAIM, claims[0].submission_id)
    print(approved.as_dict())


if __name__ == "__main__":
    main()
