"""Tenant resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from forumkit.config.settings import ForumSettings


class TenantService:
    """Resolves the tenant id stamped on search-index payloads."""

    def __init__(self, settings: ForumSettings) -> None:
        self._tenant_id = settings.tenant.id

    def get_tenant(self) -> str:
        return self._tenant_id
