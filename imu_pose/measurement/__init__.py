"""
measurement 모듈 - 측정 값 타입

센서 샘플, 동기화 측정, 프레임 및 자세 표현을 제공합니다.
"""

from .quaternion import Quaternion, slerp
from .triads import (
    Triad,
    AccelerationTriad,
    AngularSpeedTriad,
    MagneticFluxDensityTriad,
    SpeedTriad,
    SensorType,
    SensorAccuracy,
    AccelerometerMeasurement,
    GyroscopeMeasurement,
    MagnetometerMeasurement,
    GravityMeasurement,
    AttitudeMeasurement,
    enu_to_ned,
    ned_to_enu,
    enu_to_ned_attitude,
    ned_to_enu_attitude,
)
from .synced import (
    SyncedAttitudeAccelGyro,
    SyncedAccelGravityGyroMag,
    SyncedAccelGyroMag,
    SyncedAttitudeAccel,
    SyncedAccelGravityGyro,
    SyncedAccelGyro,
)
from .frames import Location, NEDVelocity, EcefFrame, NedFrame, PoseTransformation

__all__ = [
    # Rotation
    'Quaternion',
    'slerp',
    # Triads
    'Triad',
    'AccelerationTriad',
    'AngularSpeedTriad',
    'MagneticFluxDensityTriad',
    'SpeedTriad',
    'SensorType',
    'SensorAccuracy',
    # Samples
    'AccelerometerMeasurement',
    'GyroscopeMeasurement',
    'MagnetometerMeasurement',
    'GravityMeasurement',
    'AttitudeMeasurement',
    'enu_to_ned',
    'ned_to_enu',
    'enu_to_ned_attitude',
    'ned_to_enu_attitude',
    # Synced
    'SyncedAttitudeAccelGyro',
    'SyncedAccelGravityGyroMag',
    'SyncedAccelGyroMag',
    'SyncedAttitudeAccel',
    'SyncedAccelGravityGyro',
    'SyncedAccelGyro',
    # Frames
    'Location',
    'NEDVelocity',
    'EcefFrame',
    'NedFrame',
    'PoseTransformation',
]
