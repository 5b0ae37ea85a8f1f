# Common utilities
from zkauth.common.config import Config as Config
from zkauth.common.crypto import CryptoUtils as CryptoUtils
from zkauth.common.logging_utils import configure_logging as configure_logging
from zkauth.common.logging_utils import setup_logger as setup_logger

__all__ = ["Config", "CryptoUtils", "configure_logging", "setup_logger"]
