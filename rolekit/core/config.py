"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "rolekit"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./rolekit.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SECONDS: int = 3600

    # Auth
    JWT_SECRET: str = "super-secret-jwt-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60

    # Roles & permissions
    RBAC_REGISTER_GATES: bool = True
    RBAC_CACHE_PERMISSIONS: bool = True
    RBAC_CACHE_TTL: int = 3600

    # Super Admin Seed
    SUPER_ADMIN_EMAIL: str = "admin@rolekit.local"
    SUPER_ADMIN_PASSWORD: str = "changeme123"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
