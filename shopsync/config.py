"""
Configuration management for the Shopify Insights backend
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Shopify Insights Backend"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"  # Empty = console only

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    frontend_url: str = "http://localhost:5173"

    # Database
    database_url: str = "sqlite:///./shopsync.db"
    database_echo: bool = False

    # Shopify Admin REST API
    shopify_api_version: str = "2024-10"
    shopify_page_size: int = 250  # Max allowed by Shopify
    shopify_request_timeout: float = 30.0
    shopify_min_request_interval: float = 0.5  # Shopify: 2 req/sec

    # Authentication
    session_duration_hours: int = 168
    password_min_length: int = 6

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
