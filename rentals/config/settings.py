from pydantic_settings import BaseSettings
from typing import Optional

from rentals.errors import ConfigurationError


class Settings(BaseSettings):
    # Application
    app_name: str = "Rentals API"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_driver: str = "postgresql+asyncpg"
    database_user: Optional[str] = None
    database_password: Optional[str] = None
    database_host: Optional[str] = None
    database_port: Optional[int] = None
    database_name: Optional[str] = None

    # Connection pool
    pool_min: int = 1
    pool_max: int = 10
    pool_increment: int = 1
    pool_timeout: float = 30.0

    # Object storage
    aws_region: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_public_base: Optional[str] = None

    # Geocoding
    geocoding_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_user_agent: str = "RentalsApp (ops@rentals.example)"
    geocoding_timeout: float = 10.0

    class Config:
        env_file = ".env"

    def pool_config(self):
        """Build the pool configuration, failing fast on missing credentials"""
        from rentals.pool import PoolConfig

        required = {
            "DATABASE_USER": self.database_user,
            "DATABASE_PASSWORD": self.database_password,
            "DATABASE_HOST": self.database_host,
            "DATABASE_NAME": self.database_name,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing {', '.join(missing)} environment variables."
            )

        return PoolConfig.create(
            driver=self.database_driver,
            user=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_name,
            pool_min=self.pool_min,
            pool_max=self.pool_max,
            pool_increment=self.pool_increment,
            pool_timeout=self.pool_timeout,
        )


settings = Settings()
