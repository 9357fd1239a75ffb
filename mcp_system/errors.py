"""Error taxonomy shared by the orchestrators and the result envelope."""


class MCPError(Exception):
    """Base for every error the orchestration layer raises on purpose."""

    status_code = 500
    kind = "server_error"


class ValidationError(MCPError):
    """Malformed input, e.g. a missing required field."""

    status_code = 400
    kind = "validation_error"


class ConfigurationError(MCPError):
    """The caller has no API key for the provider a role requires."""

    status_code = 400
    kind = "configuration_error"

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"API key not configured for {provider_name}")


class AuthorizationError(MCPError):
    """Caller is not the owner or a collaborator of the project."""

    status_code = 403
    kind = "authorization_error"


class NotFoundError(MCPError):
    """Referenced row does not exist."""

    status_code = 404
    kind = "not_found"

    def __init__(self, table: str, row_id: str) -> None:
        self.table = table
        self.row_id = row_id
        super().__init__(f"{table} not found: {row_id}")


class ConflictError(MCPError):
    """A conditional write lost against a concurrent writer."""

    status_code = 409
    kind = "conflict"
