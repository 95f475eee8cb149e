from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    ENV: str = "prod"

    DATABASE_URL: str

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 1800

    ALLOWED_HOSTS: str = "localhost,127.0.0.1"
    SECURITY_HEADERS_ENABLED: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text|json

    # Internal callers (game session, duel session, account linking)
    SERVICE_JWT_SECRET: str
    SERVICE_JWT_MINUTES: int = 5

    # Period windows are cut in this timezone
    RANKINGS_TIMEZONE: str = "UTC"
    GAME_TYPE_ALLOWLIST: str = ""

    DUEL_BASE_POINTS: int = 3
    DUEL_CATCH_UP_BONUS: int = 3
    DUEL_NOTIFICATIONS_ENABLED: bool = True

    RANKINGS_DEFAULT_LIMIT: int = 100
    TOP_GAMES_DEFAULT_LIMIT: int = 10
    DUEL_LEADERBOARD_DEFAULT_LIMIT: int = 50
    MAX_PAGE_SIZE: int = 200

    def allowed_game_types(self) -> set[str]:
        return {g.strip() for g in self.GAME_TYPE_ALLOWLIST.split(",") if g.strip()}

settings = Settings()
