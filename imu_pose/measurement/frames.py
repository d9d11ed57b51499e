"""
frames.py - 위치/속도/프레임 값 타입

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict

from .quaternion import Quaternion


@dataclass(frozen=True)
class Location:
    """
    측지 위치 (WGS84)

    Attributes:
        latitude: 위도 (도)
        longitude: 경도 (도)
        height: 타원체고 (m)
    """
    latitude: float
    longitude: float
    height: float = 0.0

    @property
    def latitude_rad(self) -> float:
        return float(np.deg2rad(self.latitude))

    @property
    def longitude_rad(self) -> float:
        return float(np.deg2rad(self.longitude))


@dataclass(frozen=True)
class NEDVelocity:
    """NED 속도 (m/s)"""
    vn: float = 0.0
    ve: float = 0.0
    vd: float = 0.0

    def to_array(self) -> np.ndarray:
        return np.array([self.vn, self.ve, self.vd], dtype=float)

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self.to_array()))


def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class EcefFrame:
    """
    ECEF 프레임

    Attributes:
        position: ECEF 위치 [x, y, z] (m)
        velocity: ECEF 속도 [vx, vy, vz] (m/s)
        rotation: body -> ECEF 방향 코사인 행렬 (3x3)
        timestamp: 나노초 타임스탬프
    """
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    timestamp: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'position', _frozen_array(self.position))
        object.__setattr__(self, 'velocity', _frozen_array(self.velocity))
        object.__setattr__(self, 'rotation', _frozen_array(self.rotation))

    @property
    def attitude(self) -> Quaternion:
        """body -> ECEF 회전 쿼터니언"""
        return Quaternion.from_matrix(self.rotation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.position.tolist(),
            'velocity': self.velocity.tolist(),
            'attitude': self.attitude.to_array().tolist(),
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True, eq=False)
class NedFrame:
    """
    NED 프레임

    Attributes:
        location: 측지 위치
        velocity: NED 속도 [vn, ve, vd] (m/s)
        rotation: body -> NED 방향 코사인 행렬 (3x3)
        timestamp: 나노초 타임스탬프
    """
    location: Location
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    timestamp: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'velocity', _frozen_array(self.velocity))
        object.__setattr__(self, 'rotation', _frozen_array(self.rotation))

    @property
    def attitude(self) -> Quaternion:
        """body -> NED 회전 쿼터니언"""
        return Quaternion.from_matrix(self.rotation)


@dataclass(frozen=True, eq=False)
class PoseTransformation:
    """
    시작 프레임 대비 현재 프레임의 강체 변환 (ENU 좌표)

    Attributes:
        rotation: 회전
        translation: 이동 [x, y, z] (m)
    """
    rotation: Quaternion
    translation: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'translation', _frozen_array(self.translation))

    def as_matrix(self) -> np.ndarray:
        """4x4 동차 변환 행렬"""
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation.to_matrix()
        matrix[:3, 3] = self.translation
        return matrix

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """점 변환: R · p + t"""
        return self.rotation.rotate(point) + self.translation

    def to_dict(self) -> Dict[str, Any]:
        roll, pitch, yaw = self.rotation.to_euler()
        return {
            'translation': self.translation.tolist(),
            'quaternion': self.rotation.to_array().tolist(),
            'euler_deg': np.rad2deg([roll, pitch, yaw]).tolist(),
        }
