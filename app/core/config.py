import sys

from pydantic import field_validator
from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "Production"

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    ADMIN_ROLE: str = "it_admin"
    ALLOW_ANON_LOCAL: bool = False
    ALLOW_ANON_HEALTH: bool = False

    AZURE_TENANT_ID: str = ""
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    MANAGED_IDENTITY_CLIENT_ID: str = ""
    USE_MANAGED_IDENTITY: bool = False
    DIRECTORY_CREDENTIALS: list[str] = ["client_secret", "managed_identity", "default"]

    GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"
    MANAGERS_GROUP_ID: str = ""
    MANAGERS_GROUP_NAME: str = "dyn-user-e5s"
    DIRECTORY_TIMEOUT_SECONDS: float = 10.0
    DIRECTORY_CACHE_TTL_SECONDS: float = 300.0

    AZURE_STORAGE_CONNECTION_STRING: str = ""
    AZURE_QUEUE_NAME: str = ""
    QUEUE_TIMEOUT_SECONDS: float = 10.0

    SUBMIT_BATCH_SIZE: int = 5
    FORMAT_START_DATE: bool = True

    DATA_DIR: str = "data"

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @field_validator("AZURE_QUEUE_NAME")
    @classmethod
    def _lower_queue_name(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("ADMIN_ROLE")
    @classmethod
    def _normalize_admin_role(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("SUBMIT_BATCH_SIZE")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SUBMIT_BATCH_SIZE must be at least 1")
        return value

    @field_validator("DIRECTORY_TIMEOUT_SECONDS", "DIRECTORY_CACHE_TTL_SECONDS", "QUEUE_TIMEOUT_SECONDS")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts and TTLs must be positive")
        return value

    @property
    def queue_configured(self) -> bool:
        return bool(self.AZURE_STORAGE_CONNECTION_STRING and self.AZURE_QUEUE_NAME)

    @property
    def local_bypass(self) -> bool:
        return self.ALLOW_ANON_LOCAL and self.ENVIRONMENT == "Development"


settings = Settings()
