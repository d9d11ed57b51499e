"""
triads.py - 센서 측정 값 타입

가속도/각속도/자기장/속도 3축 값(triad)과 센서 샘플 타입을 정의합니다.

좌표 규약:
- 센서 샘플의 원시 값은 디바이스 ENU 축 (x: East, y: North, z: Up) 기준
- 모든 프로세서 내부 계산은 NED 축 (x: North, y: East, z: Down) 기준
- ENU <-> NED 변환: (x, y, z) -> (y, x, -z), 자기 자신이 역변환

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .quaternion import Quaternion


ENU_TO_NED = np.array([
    [0.0, 1.0, 0.0],
    [1.0, 0.0, 0.0],
    [0.0, 0.0, -1.0],
])


def enu_to_ned(vector: np.ndarray) -> np.ndarray:
    """ENU 벡터를 NED 로 변환 (역변환도 동일)"""
    v = np.asarray(vector, dtype=float)
    return np.array([v[1], v[0], -v[2]])


ned_to_enu = enu_to_ned


def enu_to_ned_attitude(attitude: Quaternion) -> Quaternion:
    """
    자세 쿼터니언의 ENU <-> NED 변환

    body/world 축을 모두 변환합니다: R' = M · R · M (M = M^-1)
    """
    matrix = ENU_TO_NED @ attitude.to_matrix() @ ENU_TO_NED
    return Quaternion.from_matrix(matrix).normalize()


ned_to_enu_attitude = enu_to_ned_attitude


class SensorType(Enum):
    """측정 소스가 보고하는 센서 종류"""
    ACCELEROMETER = 'accelerometer'
    ACCELEROMETER_UNCALIBRATED = 'accelerometer_uncalibrated'
    GYROSCOPE = 'gyroscope'
    GYROSCOPE_UNCALIBRATED = 'gyroscope_uncalibrated'
    MAGNETOMETER = 'magnetometer'
    MAGNETOMETER_UNCALIBRATED = 'magnetometer_uncalibrated'
    GRAVITY = 'gravity'
    ABSOLUTE_ATTITUDE = 'absolute_attitude'
    RELATIVE_ATTITUDE = 'relative_attitude'


class SensorAccuracy(Enum):
    """센서 정확도 등급"""
    UNRELIABLE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True)
class Triad:
    """3축 값 (x, y, z)"""
    x: float
    y: float
    z: float

    def to_array(self) -> np.ndarray:
        """numpy 배열로 변환 [x, y, z]"""
        return np.array([self.x, self.y, self.z], dtype=float)

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self.to_array()))

    def to_ned(self):
        """ENU 로 표현된 값을 NED 로 변환"""
        return type(self)(x=self.y, y=self.x, z=-self.z)

    @classmethod
    def from_array(cls, arr: np.ndarray):
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]))


@dataclass(frozen=True)
class AccelerationTriad(Triad):
    """가속도 / 비력 (m/s²)"""


@dataclass(frozen=True)
class AngularSpeedTriad(Triad):
    """각속도 (rad/s)"""


@dataclass(frozen=True)
class MagneticFluxDensityTriad(Triad):
    """자속 밀도 (T)"""


@dataclass(frozen=True)
class SpeedTriad(Triad):
    """속도 (m/s)"""


def _compensate(values: Tuple[float, float, float],
                bias: Optional[Tuple[float, float, float]]) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if bias is not None:
        arr = arr - np.asarray(bias, dtype=float)
    return arr


@dataclass(frozen=True)
class AccelerometerMeasurement:
    """
    가속도계 샘플 (ENU, m/s²)

    Attributes:
        ax, ay, az: 측정 비력
        bias: 추정 바이어스 (비보정 센서인 경우), None 이면 보정 안함
        timestamp: 나노초 타임스탬프
        accuracy: 센서 정확도
    """
    ax: float
    ay: float
    az: float
    bias: Optional[Tuple[float, float, float]] = None
    timestamp: int = 0
    accuracy: Optional[SensorAccuracy] = None

    def to_ned(self) -> np.ndarray:
        """바이어스 보정된 NED 비력"""
        return enu_to_ned(_compensate((self.ax, self.ay, self.az), self.bias))

    def to_triad(self) -> AccelerationTriad:
        return AccelerationTriad.from_array(self.to_ned())


@dataclass(frozen=True)
class GyroscopeMeasurement:
    """자이로스코프 샘플 (ENU, rad/s)"""
    wx: float
    wy: float
    wz: float
    bias: Optional[Tuple[float, float, float]] = None
    timestamp: int = 0
    accuracy: Optional[SensorAccuracy] = None

    def to_ned(self) -> np.ndarray:
        """바이어스 보정된 NED 각속도"""
        return enu_to_ned(_compensate((self.wx, self.wy, self.wz), self.bias))

    def to_triad(self) -> AngularSpeedTriad:
        return AngularSpeedTriad.from_array(self.to_ned())


@dataclass(frozen=True)
class MagnetometerMeasurement:
    """자력계 샘플 (ENU, T), hard_iron 은 보정 전 센서의 오프셋"""
    bx: float
    by: float
    bz: float
    hard_iron: Optional[Tuple[float, float, float]] = None
    timestamp: int = 0
    accuracy: Optional[SensorAccuracy] = None

    def to_ned(self) -> np.ndarray:
        return enu_to_ned(_compensate((self.bx, self.by, self.bz), self.hard_iron))

    def to_triad(self) -> MagneticFluxDensityTriad:
        return MagneticFluxDensityTriad.from_array(self.to_ned())


@dataclass(frozen=True)
class GravityMeasurement:
    """플랫폼 중력 추정 샘플 (ENU, m/s², 가속도계와 같은 부호 규약)"""
    gx: float
    gy: float
    gz: float
    timestamp: int = 0
    accuracy: Optional[SensorAccuracy] = None

    def to_ned(self) -> np.ndarray:
        return enu_to_ned(np.array([self.gx, self.gy, self.gz], dtype=float))

    def to_triad(self) -> AccelerationTriad:
        return AccelerationTriad.from_array(self.to_ned())


@dataclass(frozen=True)
class AttitudeMeasurement:
    """
    플랫폼 자세 샘플

    Attributes:
        attitude: body(ENU) -> world(ENU) 회전
        heading_accuracy: 방위 정확도 (라디안), 없으면 None
    """
    attitude: Quaternion
    heading_accuracy: Optional[float] = None
    timestamp: int = 0
    accuracy: Optional[SensorAccuracy] = None

    def attitude_ned(self) -> Quaternion:
        """body(NED) -> NED 회전"""
        return enu_to_ned_attitude(self.attitude)
