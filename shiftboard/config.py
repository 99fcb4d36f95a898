"""Application configuration settings."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Database Configuration
    database_url: str = "sqlite:///./shiftboard.db"
    db_pool_recycle: int = 3600
    
    # Application Settings
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api"
    
    # Wall-clock zone the roster is kept in (used for request expiry)
    timezone: str = "Asia/Ho_Chi_Minh"
    
    # Wildcard role labels: shifts open to any role, tasks for every role
    any_role_labels: List[str] = ["Bất kỳ", "Any"]
    all_roles_labels: List[str] = ["Tất cả", "All"]
    
    # Weekly draft rollover job
    rollover_enabled: bool = False
    rollover_day_of_week: str = "sun"
    rollover_hour: int = 18
    
    class Config:
        env_file = ".env"
        case_sensitive = False
    
    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")
    

# Global settings instance
settings = Settings()
