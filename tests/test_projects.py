"""Tests for mcp_system/projects.py and mcp_system/access.py."""

import pytest

from mcp_system.access import api_key_for
from mcp_system.errors import AuthorizationError, ConfigurationError, NotFoundError, ValidationError
from mcp_system.projects import ProjectService
from tests.conftest import OUTSIDER_ID


@pytest.fixture
def service(storage) -> ProjectService:
    return ProjectService(storage)


async def test_create_project(service, owner):
    project = await service.create_project(owner, "  Portfolio  ", tags=["web"])
    assert project.name == "Portfolio"
    assert project.owner_id == owner
    assert project.status == "active"
    assert project.tags == ["web"]
    assert project.collaborators == []


async def test_create_project_requires_name(service, owner):
    with pytest.raises(ValidationError):
        await service.create_project(owner, "   ")


async def test_list_only_member_projects(service, owner, project):
    await service.create_project(OUTSIDER_ID, "Otro")
    assert [p.id for p in await service.list_projects(owner)] == [project.id]


async def test_collaborator_can_read_but_not_modify(service, owner, project):
    await service.update_project(owner, project.id, collaborators=[OUTSIDER_ID])

    fetched = await service.get_project(OUTSIDER_ID, project.id)
    assert fetched.id == project.id
    with pytest.raises(AuthorizationError):
        await service.update_project(OUTSIDER_ID, project.id, name="Robado")
    with pytest.raises(AuthorizationError):
        await service.delete_project(OUTSIDER_ID, project.id)


async def test_outsider_cannot_read(service, project):
    with pytest.raises(AuthorizationError):
        await service.get_project(OUTSIDER_ID, project.id)


async def test_update_project_fields(service, owner, project):
    updated = await service.update_project(owner, project.id, status="archived", description="Nueva", owner_id="x")
    assert updated.status == "archived"
    assert updated.description == "Nueva"
    assert updated.owner_id == owner


async def test_update_project_rejects_bad_status(service, owner, project):
    with pytest.raises(ValidationError, match="Invalid status"):
        await service.update_project(owner, project.id, status="paused")


async def test_delete_project(service, owner, project):
    await service.delete_project(owner, project.id)
    with pytest.raises(NotFoundError):
        await service.get_project(owner, project.id)


async def test_api_key_for(storage, owner):
    assert await api_key_for(storage, owner, "claude") == "sk-ant-test-000000"
    with pytest.raises(ConfigurationError, match="API key not configured for claude"):
        await api_key_for(storage, OUTSIDER_ID, "claude")


async def test_api_key_for_null_stored_key(storage):
    await storage.insert("users", {"id": "legacy", "email": "legacy@example.com", "api_keys": {"claude": None}})
    with pytest.raises(ConfigurationError, match="API key not configured for claude"):
        await api_key_for(storage, "legacy", "claude")
