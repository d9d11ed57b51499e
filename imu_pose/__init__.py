"""
imu_pose - IMU 기반 pose 추정 시스템

주요 특징:
- 중력/자이로/지자기 융합 자세 추정 (이상치 및 패닉 복구 포함)
- ECEF 관성 항법 기반 절대 pose (5가지 프로세서 변형)
- 추적 시작 대비 상대 pose (3가지 프로세서 변형)
- 설정 전파 및 측정 소스 생명주기를 관리하는 추정기

Version: 1.0
Author: FurSys AI Team
"""

__version__ = "1.0.0"
__author__ = "FurSys AI Team"

from .measurement.quaternion import Quaternion, slerp
from .measurement.frames import Location, NEDVelocity, EcefFrame, NedFrame, PoseTransformation

from .attitude.fusion import (
    AttitudeFuser,
    FusionState,
    FusedGeomagneticAttitudeProcessor,
    DoubleFusedGeomagneticAttitudeProcessor,
    LeveledRelativeAttitudeProcessor,
)

from .estimators import (
    PoseSensorType,
    SourceKind,
    MeasurementSource,
    ProcessorVariant,
    PoseEstimator,
    RelativeProcessorVariant,
    RelativePoseEstimator,
)

__all__ = [
    # Measurement
    'Quaternion',
    'slerp',
    'Location',
    'NEDVelocity',
    'EcefFrame',
    'NedFrame',
    'PoseTransformation',
    # Attitude
    'AttitudeFuser',
    'FusionState',
    'FusedGeomagneticAttitudeProcessor',
    'DoubleFusedGeomagneticAttitudeProcessor',
    'LeveledRelativeAttitudeProcessor',
    # Estimators
    'PoseSensorType',
    'SourceKind',
    'MeasurementSource',
    'ProcessorVariant',
    'PoseEstimator',
    'RelativeProcessorVariant',
    'RelativePoseEstimator',
]
