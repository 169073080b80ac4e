"""
Centralized Logging Configuration for ResumeRAG
"""
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any


def setup_logging(
    level: str = "INFO",
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Setup centralized logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_file: Enable rotating file logs under LOG_DIR (default logs/)
        format_style: Format style ('simple' or 'detailed')
    """
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    if enable_file:
        log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"resumerag_{datetime.now().strftime('%Y%m%d')}.log"

    formats = {
        "simple": "%(levelname)s - %(name)s - %(message)s",
        "detailed": "%(asctime)s | %(levelname)-8s | %(name)-30s | %(funcName)-20s:%(lineno)-4d | %(message)s"
    }

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": formats.get(format_style, formats["detailed"]),
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "simple": {
                "format": formats["simple"]
            }
        },
        "handlers": {},
        "loggers": {
            "": {  # Root logger
                "level": level,
                "handlers": [],
                "propagate": False
            },
            "pdfminer": {
                "level": "ERROR",
                "handlers": [],
                "propagate": True
            }
        }
    }

    config["handlers"]["console"] = {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": "simple" if format_style == "simple" else "detailed",
        "stream": "ext://sys.stdout"
    }
    config["loggers"][""]["handlers"].append("console")

    if enable_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "detailed",
            "filename": str(log_file),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8"
        }
        config["loggers"][""]["handlers"].append("file")

        error_log_file = log_dir / f"resumerag_errors_{datetime.now().strftime('%Y%m%d')}.log"
        config["handlers"]["error_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "detailed",
            "filename": str(error_log_file),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8"
        }
        config["loggers"][""]["handlers"].append("error_file")

    logging.config.dictConfig(config)

    logger = logging.getLogger("resumerag.logging")
    logger.info(f"Logging configured - Level: {level}, File: {enable_file}")
    if enable_file:
        logger.info(f"Log file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with consistent naming

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    if name.startswith("resumerag"):
        return logging.getLogger(name)
    return logging.getLogger(f"resumerag.{name}")


def configure_for_environment():
    """Configure logging based on environment variables"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if environment == "production":
        setup_logging(
            level=log_level,
            enable_file=True,
            format_style="detailed"
        )
    elif environment == "development":
        setup_logging(
            level="DEBUG",
            enable_file=True,
            format_style="detailed"
        )
    elif environment == "testing":
        setup_logging(
            level="WARNING",
            enable_file=False,
            format_style="simple"
        )
    else:
        setup_logging(level=log_level)


class PerformanceMonitor:
    """Context manager for monitoring performance with logging"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms (exceeded threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
