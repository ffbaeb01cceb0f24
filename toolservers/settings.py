from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingCredentialError(RuntimeError):
    """Raised at startup when an adapter's API credential is absent."""

    def __init__(self, env_var: str):
        super().__init__(f"{env_var} environment variable is required")
        self.env_var = env_var


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="TOOLSERVERS_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    # Applied to every outbound HTTP client (GitHub, npm, Slack).
    http_timeout_seconds: float = Field(default=20.0, validation_alias="HTTP_TIMEOUT_SECONDS")

    # Slack
    slack_token: str | None = Field(default=None, validation_alias="SLACK_TOKEN")
    slack_api_url: str = Field(default="https://slack.com/api", validation_alias="SLACK_API_URL")
    # Delay after a join/invite before the guarded operation runs.
    slack_settle_seconds: float = Field(default=2.0, validation_alias="SLACK_SETTLE_SECONDS")
    slack_members_page_limit: int = Field(default=200, validation_alias="SLACK_MEMBERS_PAGE_LIMIT")

    # GitHub
    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")
    github_api_url: str = Field(default="https://api.github.com", validation_alias="GITHUB_API_URL")

    # npm
    npm_registry_url: str = Field(
        default="https://registry.npmjs.org", validation_alias="NPM_REGISTRY_URL"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    def require_credential(self, env_var: str) -> str:
        """
        Return the configured token for `env_var` or raise MissingCredentialError.

        Tokens are only checked for presence; they are never validated against the upstream API here.
        """
        values = {
            "SLACK_TOKEN": self.slack_token,
            "GITHUB_TOKEN": self.github_token,
        }
        if env_var not in values:
            raise KeyError(env_var)
        tok = str(values[env_var] or "").strip()
        if not tok:
            raise MissingCredentialError(env_var)
        return tok

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "log_level": self.log_level,
            "http_timeout_seconds": self.http_timeout_seconds,
            "slack": {
                "slack_token_configured": _has(self.slack_token),
                "slack_api_url": self.slack_api_url,
                "slack_settle_seconds": self.slack_settle_seconds,
                "slack_members_page_limit": self.slack_members_page_limit,
            },
            "github": {
                "github_token_configured": _has(self.github_token),
                "github_api_url": self.github_api_url,
            },
            "npm": {
                "npm_registry_url": self.npm_registry_url,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

