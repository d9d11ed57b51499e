"""
processors 모듈 - pose 프로세서

자세 융합 결과와 비력 적분으로 프레임(위치/속도/자세)을 갱신합니다.
"""

from .absolute import (
    BaseEcefAbsolutePoseProcessor,
    AttitudeEcefAbsolutePoseProcessor,
    BaseFusedEcefAbsolutePoseProcessor,
    FusedEcefAbsolutePoseProcessor,
    AccelerometerFusedEcefAbsolutePoseProcessor,
    DoubleFusedEcefAbsolutePoseProcessor,
    AccelerometerDoubleFusedEcefAbsolutePoseProcessor,
)
from .relative import (
    BaseRelativePoseProcessor,
    AttitudeRelativePoseProcessor,
    BaseFusedRelativePoseProcessor,
    FusedRelativePoseProcessor,
    AccelerometerFusedRelativePoseProcessor,
)

__all__ = [
    # Absolute
    'BaseEcefAbsolutePoseProcessor',
    'AttitudeEcefAbsolutePoseProcessor',
    'BaseFusedEcefAbsolutePoseProcessor',
    'FusedEcefAbsolutePoseProcessor',
    'AccelerometerFusedEcefAbsolutePoseProcessor',
    'DoubleFusedEcefAbsolutePoseProcessor',
    'AccelerometerDoubleFusedEcefAbsolutePoseProcessor',
    # Relative
    'BaseRelativePoseProcessor',
    'AttitudeRelativePoseProcessor',
    'BaseFusedRelativePoseProcessor',
    'FusedRelativePoseProcessor',
    'AccelerometerFusedRelativePoseProcessor',
]
