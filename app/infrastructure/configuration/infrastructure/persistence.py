"""Document store infrastructure settings."""

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class PersistenceSettings(InfrastructureSettings):
    """Document store configuration.

    Environment Variables:
        PERSISTENCE_BACKEND: 'memory' (tests, local development) or 'dynamodb'
        PERSISTENCE_TABLE_PREFIX: Prefix prepended to every table name
        PERSISTENCE_CREATE_TABLES: Create missing DynamoDB tables at startup

    Example:
        ```python
        settings = get_settings()
        if settings.persistence.backend == "dynamodb":
            ...
        ```
    """

    backend: str = Field(
        default="memory",
        alias="PERSISTENCE_BACKEND",
        description="Document store backend: 'memory' or 'dynamodb'",
    )
    table_prefix: str = Field(
        default="pms-localization-",
        alias="PERSISTENCE_TABLE_PREFIX",
        description="Prefix for DynamoDB table names",
    )
    create_tables: bool = Field(
        default=False,
        alias="PERSISTENCE_CREATE_TABLES",
        description="Create missing tables and indexes at startup",
    )

    @field_validator("backend", mode="after")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "dynamodb"):
            raise ValueError(f"Unknown persistence backend: {v}")
        return v
