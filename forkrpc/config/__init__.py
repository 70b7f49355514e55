from .logging import configure_logging, log_error
from .settings import ForkSettings

__all__ = ['configure_logging', 'log_error', 'ForkSettings']
