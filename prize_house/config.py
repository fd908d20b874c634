"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class PrizeHouseConfig(BaseSettings):
    """Prize house kiosk configuration"""
    
    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "prize_house.db"
    storage_key: str = "chichi_prize_house_data_v2"
    
    # Admin gate
    admin_password: str = "1231"
    
    # Display configuration
    timestamp_format: str = "%Y/%m/%d %H:%M:%S"
    default_prize_image: str = (
        "https://images.unsplash.com/photo-1513151233558-d860c5398176"
        "?w=400&auto=format&fit=crop&q=60"
    )
    default_category: str = "一般"
    
    # Prize editor defaults
    draft_price: int = 10
    draft_stock: int = 1
    draft_category: str = "文具"
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    class Config:
        env_prefix = "PRIZE_HOUSE_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = PrizeHouseConfig()


def get_config() -> PrizeHouseConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> PrizeHouseConfig:
    """Reload configuration from environment"""
    global config
    config = PrizeHouseConfig()
    return config
