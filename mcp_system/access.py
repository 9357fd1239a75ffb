"""Project membership checks and per-user API key lookup."""

from mcp_system.errors import AuthorizationError, ConfigurationError
from mcp_system.models import Project, User
from mcp_system.storage import Storage


async def require_member(storage: Storage, project_id: str, user_id: str) -> Project:
    """Return the project if user_id owns it or collaborates on it.

    Raises NotFoundError for a missing project, AuthorizationError otherwise.
    """
    project = Project.from_row(await storage.get("projects", project_id))
    if not project.is_member(user_id):
        raise AuthorizationError(f"No access to project {project_id}")
    return project


async def require_owner(storage: Storage, project_id: str, user_id: str) -> Project:
    project = Project.from_row(await storage.get("projects", project_id))
    if project.owner_id != user_id:
        raise AuthorizationError("Only the project owner can modify this project")
    return project


async def api_key_for(storage: Storage, user_id: str, provider_name: str) -> str:
    """Return the caller's stored key for provider_name or raise ConfigurationError."""
    user = User.from_row(await storage.get("users", user_id))
    key = ((user.api_keys or {}).get(provider_name) or "").strip()
    if not key:
        raise ConfigurationError(provider_name)
    return key
