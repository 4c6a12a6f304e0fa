from dataclasses import dataclass
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = "dev"
    PORT: int = 8080
    LOG_JSON: bool = True
    # Downstream Direktiv instance
    DIREKTIV_ENDPOINT: str = ""
    DIREKTIV_NAMESPACE: str = ""
    DIREKTIV_TOKEN: str = ""  # Mounted secrets usually end with a newline
    FORWARD_TIMEOUT: float = 30.0
    MAX_EVENT_SIZE: int = 1048576
    # Reject events whose ce-id/ce-source/ce-specversion/ce-type are empty
    REQUIRE_FIELDS: bool = False

    def forwarder_config(self) -> "ForwarderConfig":
        return ForwarderConfig(
            endpoint=self.DIREKTIV_ENDPOINT,
            namespace=self.DIREKTIV_NAMESPACE,
            token=self.DIREKTIV_TOKEN,
            timeout=self.FORWARD_TIMEOUT,
        )


@dataclass(frozen=True)
class ForwarderConfig:
    """Downstream settings handed to the forwarder once at startup."""

    endpoint: str
    namespace: str
    token: str
    timeout: float = 30.0

    @property
    def broadcast_url(self) -> str:
        return f"{self.endpoint}/api/namespaces/{self.namespace}/broadcast"

    @property
    def auth_token(self) -> str:
        """Token with a single trailing newline removed."""
        if self.token.endswith("\n"):
            return self.token[:-1]
        return self.token

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.namespace)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
