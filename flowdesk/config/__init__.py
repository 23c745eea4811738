"""
Configuration module for FlowDesk.
"""
from .settings import (
    FlowDeskConfig,
    get_config,
    load_config,
    reload_config
)

__all__ = [
    'FlowDeskConfig',
    'get_config',
    'load_config',
    'reload_config'
]
