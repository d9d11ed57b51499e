"""
synced.py - 동기화된 측정 묶음

측정 소스가 타임스탬프 기준으로 묶어 전달하는 측정 형태입니다.
프로세서 계열마다 하나의 형태를 사용하며, 누락된 하위 샘플은 None 입니다.

Version: 1.0
Author: FurSys AI Team
"""

from dataclasses import dataclass, fields
from typing import Optional

from .triads import (
    AccelerometerMeasurement,
    AttitudeMeasurement,
    GravityMeasurement,
    GyroscopeMeasurement,
    MagnetometerMeasurement,
)


class _SyncedMeasurement:
    """하위 샘플 완전성 검사 공통 구현"""

    @property
    def is_complete(self) -> bool:
        """모든 하위 샘플이 존재하는지 여부"""
        return all(
            getattr(self, f.name) is not None
            for f in fields(self)
            if f.name != 'timestamp'
        )


@dataclass(frozen=True)
class SyncedAttitudeAccelGyro(_SyncedMeasurement):
    """자세 + 가속도계 + 자이로 (절대 자세 센서 계열)"""
    attitude: Optional[AttitudeMeasurement] = None
    accelerometer: Optional[AccelerometerMeasurement] = None
    gyroscope: Optional[GyroscopeMeasurement] = None
    timestamp: int = 0


@dataclass(frozen=True)
class SyncedAccelGravityGyroMag(_SyncedMeasurement):
    """가속도계 + 중력 + 자이로 + 자력계 (중력 레벨링 융합 계열)"""
    accelerometer: Optional[AccelerometerMeasurement] = None
    gravity: Optional[GravityMeasurement] = None
    gyroscope: Optional[GyroscopeMeasurement] = None
    magnetometer: Optional[MagnetometerMeasurement] = None
    timestamp: int = 0


@dataclass(frozen=True)
class SyncedAccelGyroMag(_SyncedMeasurement):
    """가속도계 + 자이로 + 자력계 (가속도계 레벨링 융합 계열)"""
    accelerometer: Optional[AccelerometerMeasurement] = None
    gyroscope: Optional[GyroscopeMeasurement] = None
    magnetometer: Optional[MagnetometerMeasurement] = None
    timestamp: int = 0


@dataclass(frozen=True)
class SyncedAttitudeAccel(_SyncedMeasurement):
    """상대 자세 + 가속도계"""
    attitude: Optional[AttitudeMeasurement] = None
    accelerometer: Optional[AccelerometerMeasurement] = None
    timestamp: int = 0


@dataclass(frozen=True)
class SyncedAccelGravityGyro(_SyncedMeasurement):
    """가속도계 + 중력 + 자이로"""
    accelerometer: Optional[AccelerometerMeasurement] = None
    gravity: Optional[GravityMeasurement] = None
    gyroscope: Optional[GyroscopeMeasurement] = None
    timestamp: int = 0


@dataclass(frozen=True)
class SyncedAccelGyro(_SyncedMeasurement):
    """가속도계 + 자이로"""
    accelerometer: Optional[AccelerometerMeasurement] = None
    gyroscope: Optional[GyroscopeMeasurement] = None
    timestamp: int = 0
