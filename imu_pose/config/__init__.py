"""
config 모듈 - 설정 관리
"""

from .system_config import (
    FusionConfig,
    LocationConfig,
    EstimatorConfig,
    ReplayConfig,
    LoggingConfig,
    SystemConfig,
    load_config,
    create_default_config,
)

__all__ = [
    'FusionConfig',
    'LocationConfig',
    'EstimatorConfig',
    'ReplayConfig',
    'LoggingConfig',
    'SystemConfig',
    'load_config',
    'create_default_config',
]
