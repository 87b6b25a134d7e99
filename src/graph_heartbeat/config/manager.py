"""Runtime configuration from the environment (and an optional .env file)."""
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from graph_heartbeat.utils.logger import LOG_LEVELS

VARIANTS = ("full", "basic")
SCOPE_MODES = ("delegated", "default")
TARGET_MODES = ("me", "user")


@dataclass
class Config:
    """Identity and behaviour for one heartbeat run."""
    tenant_id: str
    client_id: str
    target_upn: str
    teams_webhook_url: str = ""
    variant: str = "full"
    scope_mode: str = "delegated"
    target_mode: str = "me"
    log_level: Optional[str] = None

    def redacted(self) -> dict:
        """Config as a dict safe to print (webhook URLs embed a secret)."""
        data = asdict(self)
        if data["teams_webhook_url"]:
            data["teams_webhook_url"] = "<set>"
        return data


class ConfigManager:
    """Loads configuration from environment variables."""
    
    def __init__(self, env_file: Optional[Path] = None):
        self.env_file = env_file
    
    def load_config(self) -> Config:
        """Load configuration, reading .env first without overriding real env vars."""
        if self.env_file is not None:
            load_dotenv(self.env_file)
        else:
            load_dotenv()
        
        return Config(
            tenant_id=os.getenv("TENANT_ID", "").strip(),
            client_id=os.getenv("CLIENT_ID", "").strip(),
            target_upn=os.getenv("TARGET_UPN", "").strip(),
            teams_webhook_url=os.getenv("TEAMS_WEBHOOK_URL", "").strip(),
            variant=os.getenv("HEARTBEAT_VARIANT", "full").strip().lower(),
            scope_mode=os.getenv("HEARTBEAT_SCOPE_MODE", "delegated").strip().lower(),
            target_mode=os.getenv("HEARTBEAT_TARGET_MODE", "me").strip().lower(),
            log_level=os.getenv("LOG_LEVEL", "").strip().upper() or None
        )
    
    def validate_config(self, config: Config) -> tuple[bool, str]:
        """Validate configuration values."""
        missing = [
            name for name, value in (
                ("TENANT_ID", config.tenant_id),
                ("CLIENT_ID", config.client_id),
                ("TARGET_UPN", config.target_upn),
            ) if not value
        ]
        if missing:
            return False, f"Missing required settings: {', '.join(missing)}"
        
        if config.variant not in VARIANTS:
            return False, f"HEARTBEAT_VARIANT must be one of {', '.join(VARIANTS)}"
        
        if config.scope_mode not in SCOPE_MODES:
            return False, f"HEARTBEAT_SCOPE_MODE must be one of {', '.join(SCOPE_MODES)}"
        
        if config.target_mode not in TARGET_MODES:
            return False, f"HEARTBEAT_TARGET_MODE must be one of {', '.join(TARGET_MODES)}"
        
        if config.log_level and config.log_level not in LOG_LEVELS:
            return False, f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}"
        
        if config.teams_webhook_url and not config.teams_webhook_url.startswith("https://"):
            return False, "TEAMS_WEBHOOK_URL must be an https URL"
        
        return True, "Configuration is valid"
