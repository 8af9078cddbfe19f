"""UserService: accounts and role membership."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from forumkit.services.base import BaseService
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import traced

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """Create and look up users."""

    @traced
    def create_user(
        self, name: str, *, roles: Iterable[str] = (), is_approved: bool = True
    ) -> ServiceResult:
        op = "create_user"
        name = name.strip()
        if not name:
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION_FAILED, "User name is required"
            )
        with self._store.transaction() as txn:
            if txn.users.get_by_name(name) is not None:
                return ServiceResult.failure(
                    op, ErrorCode.VALIDATION_FAILED, f"User name already taken: {name}"
                )
            user_id = txn.users.create(name, is_approved=is_approved, roles=roles)
            user = txn.users.get(user_id)

        assert user is not None
        logger.info("Created user %s (%s)", user_id, name)
        return ServiceResult(ok=True, op=op, data={"user": user.model_dump(mode="json")})

    @traced
    def get_user(self, user_id: int) -> ServiceResult:
        with self._store.connect() as txn:
            user = txn.users.get(user_id)
        if user is None:
            return ServiceResult.failure(
                "get_user", ErrorCode.NOT_FOUND, f"User {user_id} not found"
            )
        return ServiceResult(ok=True, op="get_user", data={"user": user.model_dump(mode="json")})
