"""
geodesy 모듈 - 측지/항법 기본 연산

WGS84 지구 모델, 프레임 변환, 지자기 모델, ECEF 관성 항법을 제공합니다.
"""

from .earth import (
    EARTH_ROTATION_RATE,
    STANDARD_GRAVITY,
    geodetic_to_ecef,
    ecef_to_geodetic,
    compute_c_ecef_to_ned,
    normal_gravity,
    gravity_norm,
    gravity_ned,
    gravity_ecef,
)
from .conversions import ned_to_ecef_frame, ecef_to_ned_frame, with_ned_rotation
from .magnetic import MagneticModel, WorldMagneticModel
from .navigator import navigate_ecef

__all__ = [
    'EARTH_ROTATION_RATE',
    'STANDARD_GRAVITY',
    'geodetic_to_ecef',
    'ecef_to_geodetic',
    'compute_c_ecef_to_ned',
    'normal_gravity',
    'gravity_norm',
    'gravity_ned',
    'gravity_ecef',
    'ned_to_ecef_frame',
    'ecef_to_ned_frame',
    'with_ned_rotation',
    'MagneticModel',
    'WorldMagneticModel',
    'navigate_ecef',
]
