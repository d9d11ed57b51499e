"""
attitude 모듈 - 자세 융합 코어

중력/레벨링/자이로 적분/지자기 방위를 결합하여
이상치 및 패닉 처리를 포함한 드리프트 보정 자세를 추정합니다.
"""

from .gravity import BaseGravityProcessor, GravityProcessor, AccelerometerGravityProcessor
from .leveling import LevelingProcessor, AccurateLevelingProcessor
from .gyroscope import RelativeGyroscopeAttitudeProcessor, AccurateRelativeGyroscopeAttitudeProcessor
from .geomagnetic import GeomagneticAttitudeProcessor, magnetic_heading
from .fusion import (
    FusionState,
    AttitudeFuser,
    ForwardedAttribute,
    LeveledRelativeAttitudeProcessor,
    BaseFusedGeomagneticAttitudeProcessor,
    FusedGeomagneticAttitudeProcessor,
    DoubleFusedGeomagneticAttitudeProcessor,
    DEFAULT_INTERPOLATION_VALUE,
    DEFAULT_INDIRECT_INTERPOLATION_WEIGHT,
    DEFAULT_OUTLIER_THRESHOLD,
    DEFAULT_OUTLIER_PANIC_THRESHOLD,
    DEFAULT_PANIC_COUNTER_THRESHOLD,
)

__all__ = [
    # Gravity
    'BaseGravityProcessor',
    'GravityProcessor',
    'AccelerometerGravityProcessor',
    # Leveling
    'LevelingProcessor',
    'AccurateLevelingProcessor',
    # Gyroscope
    'RelativeGyroscopeAttitudeProcessor',
    'AccurateRelativeGyroscopeAttitudeProcessor',
    # Geomagnetic
    'GeomagneticAttitudeProcessor',
    'magnetic_heading',
    # Fusion
    'FusionState',
    'AttitudeFuser',
    'ForwardedAttribute',
    'LeveledRelativeAttitudeProcessor',
    'BaseFusedGeomagneticAttitudeProcessor',
    'FusedGeomagneticAttitudeProcessor',
    'DoubleFusedGeomagneticAttitudeProcessor',
    'DEFAULT_INTERPOLATION_VALUE',
    'DEFAULT_INDIRECT_INTERPOLATION_WEIGHT',
    'DEFAULT_OUTLIER_THRESHOLD',
    'DEFAULT_OUTLIER_PANIC_THRESHOLD',
    'DEFAULT_PANIC_COUNTER_THRESHOLD',
]
