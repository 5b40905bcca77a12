from .system_logger import SystemLogger, JsonFormatter, configure_logging

__all__ = ["SystemLogger", "JsonFormatter", "configure_logging"]
