from .logger import log_debug, log_error, log_info, log_success, log_warning, setup_logging

__all__ = [
    "log_debug",
    "log_error",
    "log_info",
    "log_success",
    "log_warning",
    "setup_logging",
]
