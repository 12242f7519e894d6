from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: str = "development"  # "development" | "production" | "test"

    database_url: str = "sqlite:///crud_users.db"
    db_connect_timeout: int = 10
    db_connect_retries: int = 3
    db_retry_delay_seconds: float = 5.0

    secret_key: str = "change-me-in-production"
    access_token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 10

    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = "/api/v1"

    rate_limit_enabled: bool = True
    rate_limit_window_minutes: int = 15
    rate_limit_max: int = 100

    cors_origin: str = "*"
    cors_methods: str = "GET,HEAD,PUT,PATCH,POST,DELETE"
    cors_credentials: bool = False

    max_body_bytes: int = 10 * 1024
    gzip_minimum_size: int = 1000

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    admin_username: str = "admin"
    admin_email: str = "admin@example.com"
    admin_phone: str = "0000000000"
    admin_password: str = ""

    class Config:
        env_prefix = "CRUD_USERS_"
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]

    @property
    def cors_method_list(self) -> list[str]:
        return [m.strip() for m in self.cors_methods.split(",") if m.strip()]


settings = Settings()
