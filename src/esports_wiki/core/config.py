from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # DB
    database_url: str = Field(
        default="sqlite+pysqlite:///./esports_wiki.db",
        validation_alias="DATABASE_URL",
    )
    db_echo: bool = False

    # wiki api
    wiki_base_url: str = "https://liquipedia.net"
    user_agent: str = "EsportsWikiSync/1.0 (esports-wiki@example.com)"
    request_timeout_s: float = 20.0
    connect_timeout_s: float = 10.0

    # minimum spacing per rate class
    standard_interval_s: float = 2.0
    intensive_interval_s: float = 30.0
    bulk_query_interval_s: float = 5.0

    throttle_base_delay_s: float = 2.0
    throttle_max_retries: int = 3

    # spacing between sub-resource fetches inside one job
    politeness_delay_s: float = 5.0
    fallback_limit: int = 20

    games: list[str] = Field(default_factory=lambda: ["dota2", "counterstrike", "leagueoflegends"])
    fetch_html: bool = True
    max_roster_teams: int = 16
    search_similarity: float = 0.6

    log_level: str = "INFO"
    log_file: str | None = None

    # -----------------------------
    # Required-value helpers
    # -----------------------------

    def require_user_agent(self) -> str:
        if not self.user_agent.strip():
            raise RuntimeError(
                "USER_AGENT is not set. The wiki API rejects anonymous clients; "
                "set it in the environment or .env file."
            )
        return self.user_agent


settings = Settings()
