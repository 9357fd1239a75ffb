"""Project CRUD with owner/collaborator access rules."""

import logging
from typing import Any

from mcp_system.access import require_member, require_owner
from mcp_system.errors import ValidationError
from mcp_system.models import PROJECT_STATUSES, Project
from mcp_system.storage import Storage

logger = logging.getLogger(__name__)

_UPDATABLE = ("name", "description", "status", "config", "tags", "collaborators")


class ProjectService:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    async def create_project(
        self,
        user_id: str,
        name: str,
        description: str = "",
        config: dict[str, Any] | None = None,
        tags: list[str] | None = None,
    ) -> Project:
        if not name or not name.strip():
            raise ValidationError("Project name is required")
        row = await self._storage.insert("projects", {
            "name": name.strip(),
            "description": description or "",
            "owner_id": user_id,
            "collaborators": [],
            "status": "active",
            "config": config or {},
            "tags": tags or [],
        })
        logger.info("Project %s created by %s", row["id"], user_id)
        return Project.from_row(row)

    async def list_projects(self, user_id: str) -> list[Project]:
        """Projects the user owns or collaborates on, most recently updated first."""
        rows = await self._storage.select("projects", order_by="updated_at", descending=True)
        projects = [Project.from_row(r) for r in rows]
        return [p for p in projects if p.is_member(user_id)]

    async def get_project(self, user_id: str, project_id: str) -> Project:
        return await require_member(self._storage, project_id, user_id)

    async def update_project(self, user_id: str, project_id: str, **changes: Any) -> Project:
        """Owner-only partial update. Unknown or None-valued fields are ignored."""
        await require_owner(self._storage, project_id, user_id)
        updates = {k: v for k, v in changes.items() if k in _UPDATABLE and v is not None}
        if "name" in updates and not str(updates["name"]).strip():
            raise ValidationError("Project name cannot be empty")
        if "status" in updates and updates["status"] not in PROJECT_STATUSES:
            raise ValidationError(f"Invalid status: {updates['status']}")
        row = await self._storage.update("projects", project_id, updates)
        logger.info("Project %s updated: %s", project_id, ", ".join(sorted(updates)) or "no fields")
        return Project.from_row(row)

    async def delete_project(self, user_id: str, project_id: str) -> None:
        await require_owner(self._storage, project_id, user_id)
        await self._storage.delete("projects", project_id)
        logger.info("Project %s deleted by %s", project_id, user_id)
