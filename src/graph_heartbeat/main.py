"""Main entry point: authenticate, run the heartbeat, notify, exit."""
import sys
import json
import argparse
from typing import Optional

from graph_heartbeat.config.manager import Config, ConfigManager, VARIANTS, SCOPE_MODES, TARGET_MODES
from graph_heartbeat.config.settings import AppSettings, get_settings
from graph_heartbeat.auth.device_code import DeviceCodeAuthenticator, resolve_scopes
from graph_heartbeat.graph.client import GraphClient
from graph_heartbeat.workflow.heartbeat import HeartbeatWorkflow
from graph_heartbeat.notifier.teams import TeamsNotifier
from graph_heartbeat.utils.logger import get_logger, configure_logging, LOG_LEVELS
from graph_heartbeat.utils.exceptions import AuthError, ConfigError

logger = get_logger()

EXIT_OK = 0
EXIT_FAILURE = 1


def build_authenticator(config: Config, settings: AppSettings) -> DeviceCodeAuthenticator:
    scopes = resolve_scopes(config.scope_mode, settings.delegated_scopes, settings.default_scope)
    return DeviceCodeAuthenticator(
        tenant_id=config.tenant_id,
        client_id=config.client_id,
        scopes=scopes,
        authority_host=settings.authority_host
    )


def build_workflow(config: Config, settings: AppSettings) -> HeartbeatWorkflow:
    client = GraphClient(
        base_url=settings.graph_base_url,
        error_body_limit=settings.error_body_limit
    )
    return HeartbeatWorkflow(
        client,
        settings,
        variant=config.variant,
        target_mode=config.target_mode
    )


def build_notifier(config: Config, settings: AppSettings) -> TeamsNotifier:
    return TeamsNotifier(
        webhook_url=config.teams_webhook_url,
        title=settings.notifier_title,
        theme_color=settings.notifier_theme_color,
        failure_theme_color=settings.notifier_failure_theme_color,
        summary=settings.notifier_summary,
        error_body_limit=settings.notifier_error_body_limit
    )


def run_heartbeat(
    config: Config,
    settings: AppSettings,
    authenticator: Optional[DeviceCodeAuthenticator] = None,
    workflow: Optional[HeartbeatWorkflow] = None,
    notifier: Optional[TeamsNotifier] = None
) -> int:
    """Run one heartbeat and return the process exit code."""
    authenticator = authenticator or build_authenticator(config, settings)
    workflow = workflow or build_workflow(config, settings)
    notifier = notifier or build_notifier(config, settings)
    
    try:
        logger.info("Acquiring Graph access token (device-code login)...")
        credential = authenticator.acquire_token()
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
        _notify(notifier, f"Authentication failed: {e}")
        return EXIT_FAILURE
    
    logger.info("Token acquired, calling Graph...")
    outcome = workflow.execute(credential.access_token, config.target_upn)
    
    if not outcome.succeeded:
        logger.error(f"Heartbeat failed at {outcome.failed_step}")
        _notify(notifier, f"Heartbeat failed at {outcome.failed_step}: {outcome.error.cause}")
        return EXIT_FAILURE
    
    _notify(notifier, outcome.report)
    logger.info(f"Heartbeat ({config.variant}) completed for {config.target_upn}")
    return EXIT_OK


def _notify(notifier: TeamsNotifier, outcome) -> None:
    """Notification never changes the exit code."""
    try:
        notifier.notify(outcome)
    except Exception as e:
        logger.warning(f"Notifier raised unexpectedly: {e}")


def _load_and_validate_config(args: argparse.Namespace) -> Config:
    """Load and validate configuration, applying CLI overrides."""
    config_manager = ConfigManager()
    config = config_manager.load_config()
    
    for field_name in ("variant", "scope_mode", "target_mode"):
        value = getattr(args, field_name)
        if value:
            setattr(config, field_name, value)
    
    is_valid, message = config_manager.validate_config(config)
    if not is_valid:
        logger.critical(f"Invalid configuration: {message}")
        sys.exit(EXIT_FAILURE)
    
    logger.info("Configuration loaded successfully")
    return config


def _configure_logging(settings: AppSettings, level: Optional[str]) -> None:
    configure_logging(
        log_level=level or settings.log_level,
        log_dir=settings.logs_dir or None,
        log_file=settings.log_file,
        max_file_size_mb=settings.log_max_file_size_mb,
        backup_count=settings.log_backup_count
    )


def check_config_command(config: Config, settings: AppSettings) -> None:
    """Print the resolved configuration without touching the network."""
    scopes = resolve_scopes(config.scope_mode, settings.delegated_scopes, settings.default_scope)
    print(json.dumps({
        "app": f"{settings.app_name} {settings.app_version}",
        "config": config.redacted(),
        "scopes": scopes,
        "graph_base_url": settings.graph_base_url,
    }, indent=2))


def main():
    """Main entry point for Graph Heartbeat."""
    parser = argparse.ArgumentParser(description="Microsoft Graph heartbeat probe")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "check-config"],
        default="run",
        help="Command to execute (default: run)"
    )
    parser.add_argument("--variant", choices=VARIANTS, help="full (mail + calendar) or basic workflow")
    parser.add_argument("--scope-mode", choices=SCOPE_MODES, help="Named delegated scopes or .default")
    parser.add_argument("--target-mode", choices=TARGET_MODES, help="Call /me or /users/{TARGET_UPN}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override the configured log level"
    )
    
    args = parser.parse_args()
    
    try:
        settings = get_settings()
    except ConfigError as e:
        logger.critical(str(e))
        sys.exit(EXIT_FAILURE)
    
    config = _load_and_validate_config(args)
    _configure_logging(settings, args.log_level or config.log_level)
    
    if args.command == "check-config":
        check_config_command(config, settings)
        return
    
    logger.info(f"{settings.app_name} {settings.app_version} starting...")
    
    try:
        exit_code = run_heartbeat(config, settings)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        exit_code = EXIT_FAILURE
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        exit_code = EXIT_FAILURE
    
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
