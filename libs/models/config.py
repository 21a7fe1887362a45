# =============================================================================
# Configuration Models Module
# =============================================================================
# Provides Pydantic Settings models for the tracking engine:
# - MongoSettings: MongoDB connection for the audit collections
# - LensSettings: Tracking behaviour (log cap, retries, lookups, namespaces)
# =============================================================================

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

__all__ = [
    "MongoSettings",
    "LensSettings",
]


# =============================================================================
# MongoDB Settings (Audit Document Store)
# =============================================================================

class MongoSettings(BaseSettings):
    """
    Configuration for MongoDB (build and migration audit store).

    Maps environment variables with prefix "MONGO_":
    - MONGO_HOST → host
    - MONGO_PORT → port
    - MONGO_INITDB_ROOT_USERNAME → username
    - MONGO_INITDB_ROOT_PASSWORD → password
    - MONGO_DATABASE → database
    - MONGO_AUTH_SOURCE → auth_source

    Attributes:
        host: MongoDB host (default: "mongodb")
        port: MongoDB port (default: 27017)
        username: MongoDB username (maps from MONGO_INITDB_ROOT_USERNAME)
        password: MongoDB password (maps from MONGO_INITDB_ROOT_PASSWORD)
        database: Database name (default: "build_lens")
        auth_source: Authentication source (default: "admin")
    """

    host: str = Field("mongodb", validation_alias="MONGO_HOST", description="MongoDB host")
    port: int = Field(27017, validation_alias="MONGO_PORT", description="MongoDB port")
    username: str = Field(..., validation_alias="MONGO_INITDB_ROOT_USERNAME", description="MongoDB username")
    password: str = Field(..., validation_alias="MONGO_INITDB_ROOT_PASSWORD", description="MongoDB password")
    database: str = Field("build_lens", validation_alias="MONGO_DATABASE", description="Database name")
    auth_source: str = Field("admin", validation_alias="MONGO_AUTH_SOURCE", description="Authentication source")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    @property
    def connection_string(self) -> str:
        """
        Build MongoDB connection URI.

        Format: mongodb://[username]:[password]@[host]:[port]/[database]?authSource=[auth_source]
        """
        return (
            f"mongodb://{self.username}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?authSource={self.auth_source}"
        )


# =============================================================================
# Lens Settings (Tracking Behaviour)
# =============================================================================

class LensSettings(BaseSettings):
    """
    Tracking engine configuration, passed explicitly to store constructors.

    Maps environment variables with prefix "LENS_":
    - LENS_CONNECTION → connection
    - LENS_LOG_CAP → log_cap
    - LENS_WRITE_RETRIES → write_retries
    - LENS_PREFIX_LOOKUP → prefix_lookup
    - LENS_TIMEOUT_MS → timeout_ms
    - LENS_NAMESPACES → namespaces (JSON object)

    Attributes:
        connection: Name of the document store connection (default: "mongodb")
        log_cap: Maximum log entries kept per build record (default: 10)
        write_retries: Optimistic-concurrency retry budget per build write
        prefix_lookup: Allow short-id lookups through the indexed record_id copy
        timeout_ms: Server selection and socket timeout for store calls
        namespaces: Model namespace → index namespace, for model qualification
    """

    connection: str = Field("mongodb", validation_alias="LENS_CONNECTION", description="Document store connection name")
    log_cap: int = Field(10, ge=1, validation_alias="LENS_LOG_CAP", description="Log entries kept per build record")
    write_retries: int = Field(5, ge=1, validation_alias="LENS_WRITE_RETRIES", description="Conditional update retry budget")
    prefix_lookup: bool = Field(True, validation_alias="LENS_PREFIX_LOOKUP", description="Enable short-id prefix lookups")
    timeout_ms: int = Field(5000, ge=1, validation_alias="LENS_TIMEOUT_MS", description="Store call timeout in milliseconds")
    namespaces: dict[str, str] = Field(default_factory=dict, validation_alias="LENS_NAMESPACES", description="Model namespace to index namespace mapping")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
