"""
leveling.py - 레벨링 (기울기 추정)

중력 벡터로부터 roll/pitch 를 추정합니다. yaw 는 0 으로 둡니다
(방위는 자력계 또는 자이로 적분이 채웁니다).

- LevelingProcessor: 정규화된 중력 방향만 사용하는 빠른 추정
- AccurateLevelingProcessor: 위치의 모델 중력 벡터에 측정 비력을 정렬하는 추정

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
import logging

from ..geodesy.earth import gravity_ned
from ..measurement.frames import Location
from ..measurement.quaternion import Quaternion

logger = logging.getLogger(__name__)


class LevelingProcessor:
    """빠른 레벨링"""

    def __init__(self):
        self._attitude = Quaternion.identity()
        self._roll = 0.0
        self._pitch = 0.0

    @property
    def attitude(self) -> Quaternion:
        """body -> NED 자세 (yaw = 0)"""
        return self._attitude

    @property
    def roll(self) -> float:
        return self._roll

    @property
    def pitch(self) -> float:
        return self._pitch

    def reset(self):
        self._attitude = Quaternion.identity()
        self._roll = 0.0
        self._pitch = 0.0

    def process(self, gravity: np.ndarray) -> Quaternion:
        """
        중력 벡터로 자세 추정

        Args:
            gravity: body NED 축 중력 (가속도계 부호 규약, 정지 시 [0, 0, -g])

        Returns:
            레벨링 자세
        """
        gx, gy, gz = np.asarray(gravity, dtype=float)
        self._roll = float(np.arctan2(-gy, -gz))
        self._pitch = float(np.arctan2(gx, np.sqrt(gy**2 + gz**2)))
        self._attitude = Quaternion.from_euler(self._roll, self._pitch, 0.0)
        return self._attitude


class AccurateLevelingProcessor(LevelingProcessor):
    """
    정밀 레벨링

    측정 중력 방향을 위치의 NED 모델 중력 방향으로 보내는 최소 회전을 구하고,
    그 회전의 roll/pitch 를 사용합니다.
    """

    def __init__(self, location: Optional[Location]):
        super().__init__()
        if location is None:
            raise ValueError("Accurate leveling requires a location")
        self.location = location

    @property
    def location(self) -> Location:
        return self._location

    @location.setter
    def location(self, value: Optional[Location]):
        if value is None:
            raise ValueError("Accurate leveling requires a location")
        self._location = value
        self._expected = -gravity_ned(value)
        self._expected /= np.linalg.norm(self._expected)

    def process(self, gravity: np.ndarray) -> Quaternion:
        measured = np.asarray(gravity, dtype=float)
        norm = np.linalg.norm(measured)
        if norm < 1e-12:
            logger.debug("Zero gravity vector, leveling skipped")
            return self._attitude

        measured = measured / norm
        axis = np.cross(measured, self._expected)
        sin_angle = np.linalg.norm(axis)
        cos_angle = float(np.dot(measured, self._expected))

        if sin_angle < 1e-12:
            if cos_angle > 0.0:
                rotation = Quaternion.identity()
            else:
                rotation = Quaternion.from_axis_angle(np.array([1.0, 0.0, 0.0]), np.pi)
        else:
            rotation = Quaternion.from_axis_angle(axis, float(np.arctan2(sin_angle, cos_angle)))

        self._roll, self._pitch, _ = rotation.to_euler()
        self._attitude = Quaternion.from_euler(self._roll, self._pitch, 0.0)
        return self._attitude
