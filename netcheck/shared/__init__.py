"""Shared utilities for netcheck agents and the observer."""

from netcheck.shared.base_service import BaseService
from netcheck.shared.bus import ReportBus
from netcheck.shared.logger import get_logger
from netcheck.shared.config import load_config
from netcheck.shared.api_client import DirectoryClient

__all__ = ["BaseService", "ReportBus", "get_logger", "load_config", "DirectoryClient"]
