"""Shared pytest fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, ModelConfig, load_config
from mcp_system.models import GenerationOptions, LLMResponse, Project
from mcp_system.projects import ProjectService
from mcp_system.providers.base import AIProvider
from mcp_system.storage import InMemoryStorage
from mcp_system.users import UserService

OWNER_ID = "user-owner"
OUTSIDER_ID = "user-outsider"


def make_response(provider: str, content: str, prompt_tokens: int = 12, completion_tokens: int = 30) -> LLMResponse:
    return LLMResponse(
        content=content,
        model=f"{provider}-mock-model",
        provider=provider,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        response_time_ms=5,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        super().__init__(
            ModelConfig(
                name=provider_name,
                sdk="test",
                model="mock-model",
                api_key_env="TEST_API_KEY",
                max_tokens=1024,
                temperature=0.5,
            ),
            "test-key",
        )
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[method-assign]
            return_value=make_response(provider_name, response_content)
        )

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> LLMResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self.name(), self._response_content)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    config = load_config()
    config.defaults.output_dir = tmp_path / "output"
    return config


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
async def owner(storage: InMemoryStorage) -> str:
    users = UserService(storage, {"claude", "chatgpt"})
    await users.create_user("owner@example.com", "Owner", user_id=OWNER_ID)
    await users.update_api_keys(OWNER_ID, {"claude": "sk-ant-test-000000", "chatgpt": "sk-openai-test-0000"})
    await users.create_user("outsider@example.com", "Outsider", user_id=OUTSIDER_ID)
    return OWNER_ID


@pytest.fixture
async def project(storage: InMemoryStorage, owner: str) -> Project:
    return await ProjectService(storage).create_project(
        owner, "Tienda online", "Una tienda de ropa con carrito de compras"
    )


@pytest.fixture
def mock_providers() -> dict[str, MockProvider]:
    return {
        "claude": MockProvider("claude", "<html><body>Tienda</body></html>"),
        "chatgpt": MockProvider("chatgpt", "Buen trabajo. Puntuación: 8/10"),
    }


@pytest.fixture
def provider_factory(mock_providers: dict[str, MockProvider]):
    def factory(name: str, api_key: str) -> MockProvider:
        return mock_providers[name]

    return factory
