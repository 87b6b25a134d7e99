"""Logging infrastructure with workflow step context."""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StepContextFilter(logging.Filter):
    """Add workflow step context to log records."""
    
    def __init__(self):
        super().__init__()
        self.step: Optional[str] = None
    
    def filter(self, record):
        """Add step to record."""
        record.step = self.step or "system"
        return True


class HeartbeatLogger:
    """Centralized logging manager."""
    
    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Optional[str] = None,
        log_file: str = "heartbeat.log",
        max_file_size_mb: int = 10,
        backup_count: int = 30
    ):
        self.step_filter = StepContextFilter()
        self.log_file: Optional[Path] = None
        
        self.logger = logging.getLogger("graph_heartbeat")
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.propagate = False
        
        # Remove existing handlers
        self.logger.handlers.clear()
        
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [step:%(step)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(self.step_filter)
        self.logger.addHandler(console_handler)
        
        if log_dir:
            log_path = Path(log_dir).expanduser()
            log_path.mkdir(parents=True, exist_ok=True)
            self.log_file = log_path / log_file
            
            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(self.step_filter)
            self.logger.addHandler(file_handler)
    
    def set_step_context(self, step: Optional[str]):
        """Set current workflow step for logging."""
        self.step_filter.step = step
    
    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[HeartbeatLogger] = None


def configure_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    log_file: str = "heartbeat.log",
    max_file_size_mb: int = 10,
    backup_count: int = 30
) -> logging.Logger:
    """(Re)build the global logger, e.g. once settings are known."""
    global _logger_instance
    _logger_instance = HeartbeatLogger(
        log_level=log_level,
        log_dir=log_dir,
        log_file=log_file,
        max_file_size_mb=max_file_size_mb,
        backup_count=backup_count
    )
    return _logger_instance.get_logger()


def get_logger(log_level: str = "INFO") -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = HeartbeatLogger(log_level)
    return _logger_instance.get_logger()


def set_step_context(step: Optional[str]):
    """Set workflow step context for logging."""
    global _logger_instance
    if _logger_instance:
        _logger_instance.set_step_context(step)
