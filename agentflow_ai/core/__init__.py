"""
Core utilities and configuration for agentflow-ai.

This package provides the settings model and the centralized logging
configuration shared by every other subpackage.
"""

from agentflow_ai.core.config import Settings, get_settings, settings
from agentflow_ai.core.logging_config import get_logger, setup_logging

__all__ = ["Settings", "get_logger", "get_settings", "settings", "setup_logging"]
