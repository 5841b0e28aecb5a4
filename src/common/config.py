from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    # Local profile store
    database_url: str = "sqlite:///data/servicebus_explorer.db"

    # Service Bus transport
    service_bus_use_websocket: bool = False

    # Listing retries (queues, topics, subscriptions)
    listing_max_retries: int = 5
    listing_initial_delay_ms: int = 1000

    # Browsing
    receive_wait_ms: int = 5000
    default_max_messages: int = 10
    max_batch_size: int = 250
    date_filter_lookahead_hours: int = 24

    # Server
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    azure_sdk_log_level: str = "WARNING"
    log_format: str = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


config = Config()
