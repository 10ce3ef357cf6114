from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from pantry.schemas.inventory import QuantityStrategy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="pantry-service", validation_alias="APP_NAME")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Database ("memory://" selects the in-process store)
    database_url: str = Field(
        default="sqlite:///./pantry.db",
        validation_alias="DATABASE_URL"
    )
    run_migrations: bool = Field(default=True, validation_alias="RUN_MIGRATIONS")
    db_connect_max_retries: int = Field(default=30, validation_alias="DB_CONNECT_MAX_RETRIES")
    db_connect_retry_delay: float = Field(default=2.0, validation_alias="DB_CONNECT_RETRY_DELAY")

    # Product lookup API (Open Food Facts v2)
    product_api_base_url: str = Field(
        default="https://world.openfoodfacts.org/api/v2",
        validation_alias="PRODUCT_API_BASE_URL"
    )
    product_api_fields: str = Field(
        default="product_name,brands,image_url",
        validation_alias="PRODUCT_API_FIELDS"
    )
    product_api_timeout: float = Field(default=10.0, validation_alias="PRODUCT_API_TIMEOUT")
    product_api_user_agent: str = Field(
        default="pantry-service/1.0 (barcode inventory)",
        validation_alias="PRODUCT_API_USER_AGENT"
    )

    # Network reachability: "probe", "online" or "offline"
    network_mode: str = Field(
        default="probe",
        pattern="^(probe|online|offline)$",
        validation_alias="NETWORK_MODE"
    )
    network_probe_host: str = Field(
        default="world.openfoodfacts.org",
        validation_alias="NETWORK_PROBE_HOST"
    )
    network_probe_port: int = Field(default=443, validation_alias="NETWORK_PROBE_PORT")
    network_probe_timeout: float = Field(default=3.0, validation_alias="NETWORK_PROBE_TIMEOUT")

    # Inventory
    quantity_strategy: QuantityStrategy = Field(
        default=QuantityStrategy.LEDGER,
        validation_alias="QUANTITY_STRATEGY"
    )


settings = Settings()
