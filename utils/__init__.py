from utils.logger import logger
from utils.wait_helper import retry, wait_until

__all__ = [
    "logger",
    "wait_until",
    "retry",
]
