"""
Discovery Module

Locates bundler endpoints on the local machine and picks the primary
application instance each one exposes.
"""

from .scanner import PortScanner, DEFAULT_COMMON_PORTS
from .selector import select_main_instance

__all__ = [
    "PortScanner",
    "DEFAULT_COMMON_PORTS",
    "select_main_instance",
]
