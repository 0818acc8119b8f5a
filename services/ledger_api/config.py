"""Configuration management for the Ledger API service."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service configuration
    SERVICE_NAME: str = "ledger-api"
    API_VERSION: str = "v1"
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Ledger configuration
    AUTHORITY: str = "owner"
    GENESIS_DESCRIPTION: str = "GENESIS"

    # Header carrying the caller principal, set by the authenticating proxy
    CALLER_HEADER: str = "X-Caller-Id"

    # Rate limiting (ballot submission)
    RATE_LIMIT: str = "1000/second"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Event publishing (RabbitMQ)
    EVENTS_PUBLISH_ENABLED: bool = False
    RABBITMQ_HOST: str = "rabbitmq"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_EXCHANGE: str = "ledger.events"
    RABBITMQ_ROUTING_PREFIX: str = "ledger"
    RABBITMQ_POOL_SIZE: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def rabbitmq_url(self) -> str:
        """Generate RabbitMQ connection URL."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}/"
        )


settings = Settings()
