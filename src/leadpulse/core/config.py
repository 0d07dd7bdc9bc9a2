"""
Application configuration settings loaded from config.yaml
"""
import os
import yaml
from pathlib import Path
from typing import List, Optional, Dict
from pydantic import BaseModel, field_validator


class DatabasePoolConfig(BaseModel):
    """Database connection pool configuration"""
    size: int = 5  # Number of connections to maintain
    max_overflow: int = 0  # No connections beyond the fixed pool size
    timeout: int = 30  # Seconds to wait for a connection before failing
    recycle: int = 600  # Seconds before an idle connection is recycled
    echo: bool = False  # Log SQL queries


class DatabaseConfig(BaseModel):
    """Database configuration"""
    server: str = "localhost"
    user: str = "postgres"
    password: str = "postgres"
    db: str = "leadpulse"
    port: str = "5432"
    schema: str = "public"  # PostgreSQL schema name
    dsn: Optional[str] = None  # Full URL override (e.g. sqlite:///./leadpulse.db)
    ssl_mode: Optional[str] = "require"  # Ignored for local connections
    auto_create_tables: bool = True
    pool: DatabasePoolConfig = DatabasePoolConfig()

    @property
    def url(self) -> str:
        """Construct database URL"""
        if self.dsn:
            return self.dsn
        return f"postgresql://{self.user}:{self.password}@{self.server}:{self.port}/{self.db}"

    @property
    def is_local(self) -> bool:
        """True for localhost connections, which never use SSL"""
        return any(host in self.url for host in ("localhost", "127.0.0.1"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class GeoIPConfig(BaseModel):
    """Offline geolocation database configuration"""
    database_path: Optional[str] = None  # Path to a MaxMind GeoLite2/GeoIP2 City .mmdb file


class IntakeConfig(BaseModel):
    """Defaults applied to incoming form submissions"""
    default_case_type: str = "Final Expense"
    default_owner_id: str = "005TR00000CDuezYAD"
    pending_cert_url: str = "https://cert.trustedform.com/pending"


class AnalyticsConfig(BaseModel):
    """Analytics query configuration"""
    default_days: int = 30
    high_quality_threshold: int = 80
    top_countries_limit: int = 10
    recent_limit: int = 5
    map_limit: int = 100
    location_stats_limit: int = 50


class ExportConfig(BaseModel):
    """Export file configuration"""
    directory: str = "exports"
    cleanup_delay_seconds: int = 60
    filename_prefix: str = "submissions"


class SecurityConfig(BaseModel):
    """API key to role mapping used by the permission gate"""
    api_keys: Dict[str, str] = {}


class Settings(BaseModel):
    """Application settings loaded from config.yaml"""

    # Project settings
    project_name: str = "LeadPulse API"
    version: str = "1.0.0"
    description: str = "Lead form intake, enrichment and analytics API"
    api_v1_str: str = "/api/v1"

    # Database settings
    database: DatabaseConfig = DatabaseConfig()

    @property
    def DATABASE_URL(self) -> str:
        """Construct database URL"""
        return self.database.url

    geoip: GeoIPConfig = GeoIPConfig()
    intake: IntakeConfig = IntakeConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()
    export: ExportConfig = ExportConfig()

    # CORS settings
    backend_cors_origins: List[str] = []

    @field_validator("backend_cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        return []

    # Security settings
    security: SecurityConfig = SecurityConfig()

    # Logging
    log_level: str = "INFO"


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config.yaml file. If None, looks for config.yaml in:
                    1. The LEADPULSE_CONFIG environment variable
                    2. Current directory
                    3. Project root (src/../config.yaml)

    Returns:
        Settings: Loaded and validated settings
    """
    if config_path is None:
        config_path = os.environ.get("LEADPULSE_CONFIG")

    if config_path is None:
        current_dir = Path.cwd() / "config.yaml"
        if current_dir.exists():
            config_path = str(current_dir)
        else:
            # Try project root (assuming we're in src/leadpulse/core/)
            project_root = Path(__file__).parent.parent.parent.parent / "config.yaml"
            if project_root.exists():
                config_path = str(project_root)
            else:
                raise FileNotFoundError(
                    "config.yaml not found. Please create config.yaml in the project root."
                )

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, "r") as f:
        config_data = yaml.safe_load(f)

    if config_data is None:
        raise ValueError("Configuration file is empty or invalid")

    return Settings(**config_data)


# Load settings on module import
settings = load_config()
