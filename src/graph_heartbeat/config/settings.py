"""Application settings loader from YAML configuration."""
import os
import yaml
from importlib.resources import files
from pathlib import Path
from dataclasses import dataclass

from graph_heartbeat.utils.exceptions import ConfigError
from graph_heartbeat.utils.logger import LOG_LEVELS


def default_settings_path() -> Path:
    """config.yaml shipped inside the graph_heartbeat package."""
    return Path(str(files("graph_heartbeat").joinpath("config.yaml")))


@dataclass
class AppSettings:
    """Application-wide settings loaded from config.yaml."""
    
    # App info
    app_name: str
    app_version: str
    
    # Logging
    log_level: str
    log_max_file_size_mb: int
    log_backup_count: int
    logs_dir: str
    log_file: str
    
    # Graph
    graph_base_url: str
    authority_host: str
    delegated_scopes: list
    default_scope: str
    error_body_limit: int
    heartbeat_folder: str
    file_prefix: str
    
    # Workflow
    file_header: str
    mail_subject: str
    event_subject: str
    event_location: str
    event_start_offset_minutes: int
    event_duration_minutes: int
    
    # Notifier
    notifier_title: str
    notifier_summary: str
    notifier_theme_color: str
    notifier_failure_theme_color: str
    notifier_error_body_limit: int
    
    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            override = os.getenv("HEARTBEAT_SETTINGS")
            if override:
                config_path = Path(override)
            else:
                config_path = default_settings_path()
        
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")
        
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}")
        
        try:
            log_level = str(config["logging"]["level"]).upper()
            if log_level not in LOG_LEVELS:
                raise ConfigError(f"Unknown logging level in {config_path}: {log_level}")
            
            return cls(
                app_name=config["app"]["name"],
                app_version=str(config["app"]["version"]),
                log_level=log_level,
                log_max_file_size_mb=config["logging"]["max_file_size_mb"],
                log_backup_count=config["logging"]["backup_count"],
                logs_dir=config["logging"].get("logs_dir") or "",
                log_file=config["logging"]["log_file"],
                graph_base_url=config["graph"]["base_url"].rstrip("/"),
                authority_host=config["graph"]["authority_host"].rstrip("/"),
                delegated_scopes=list(config["graph"]["delegated_scopes"]),
                default_scope=config["graph"]["default_scope"],
                error_body_limit=config["graph"]["error_body_limit"],
                heartbeat_folder=config["graph"]["heartbeat_folder"],
                file_prefix=config["graph"]["file_prefix"],
                file_header=config["workflow"]["file_header"],
                mail_subject=config["workflow"]["mail_subject"],
                event_subject=config["workflow"]["event_subject"],
                event_location=config["workflow"]["event_location"],
                event_start_offset_minutes=config["workflow"]["event_start_offset_minutes"],
                event_duration_minutes=config["workflow"]["event_duration_minutes"],
                notifier_title=config["notifier"]["title"],
                notifier_summary=config["notifier"]["summary"],
                notifier_theme_color=str(config["notifier"]["theme_color"]),
                notifier_failure_theme_color=str(config["notifier"]["failure_theme_color"]),
                notifier_error_body_limit=config["notifier"]["error_body_limit"]
            )
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Missing or malformed setting in {config_path}: {e}")


# Global settings instance
_settings: AppSettings = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
