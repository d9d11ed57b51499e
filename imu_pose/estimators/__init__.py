"""
estimators 모듈 - pose 추정기 (오케스트레이터)

프로세서 변형 선택, 설정 전파, 측정 소스 생명주기, 리스너 변환을 담당합니다.
"""

from .events import (
    PoseSensorType,
    SourceKind,
    MeasurementSource,
)
from .base import FanOutSetting, BasePoseEstimator
from .pose_estimator import ProcessorVariant, PoseEstimator
from .relative_pose_estimator import RelativeProcessorVariant, RelativePoseEstimator

__all__ = [
    # Events
    'PoseSensorType',
    'SourceKind',
    'MeasurementSource',
    # Estimators
    'FanOutSetting',
    'BasePoseEstimator',
    'ProcessorVariant',
    'PoseEstimator',
    'RelativeProcessorVariant',
    'RelativePoseEstimator',
]
