"""
geomagnetic.py - 지자기 절대 자세

레벨링으로 roll/pitch 를, 기울기 보정된 자력계 방위로 yaw 를 구해
body -> NED 절대 자세를 추정합니다.
World Magnetic Model 사용 시 편각을 더해 진북 기준 yaw 를 만듭니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from datetime import date, datetime
from typing import Optional, Tuple, Union
import logging

from ..geodesy.magnetic import MagneticModel, WorldMagneticModel
from ..measurement.frames import Location
from ..measurement.quaternion import Quaternion
from ..measurement.triads import MagnetometerMeasurement
from .gravity import BaseGravityProcessor
from .leveling import AccurateLevelingProcessor, LevelingProcessor

logger = logging.getLogger(__name__)


def magnetic_heading(magnetic_field: np.ndarray, roll: float, pitch: float) -> float:
    """
    기울기 보정 자기 방위

    Args:
        magnetic_field: body NED 축 자기장
        roll, pitch: 레벨링 각도 (라디안)

    Returns:
        자북 기준 yaw (라디안)
    """
    mx, my, mz = np.asarray(magnetic_field, dtype=float)
    sin_roll, cos_roll = np.sin(roll), np.cos(roll)
    sin_pitch, cos_pitch = np.sin(pitch), np.cos(pitch)
    return float(np.arctan2(
        -my * cos_roll + mz * sin_roll,
        mx * cos_pitch + my * sin_pitch * sin_roll + mz * sin_pitch * cos_roll
    ))


def build_leveling_processor(use_accurate: bool, location: Optional[Location]) -> LevelingProcessor:
    """레벨링 프로세서 생성 (정밀 레벨링은 위치 필요)"""
    if use_accurate:
        return AccurateLevelingProcessor(location)
    return LevelingProcessor()


class GeomagneticAttitudeProcessor:
    """
    지자기 절대 자세 추정기

    Example:
        >>> processor = GeomagneticAttitudeProcessor(GravityProcessor(), location=loc)
        >>> if processor.process(gravity_measurement, magnetometer_measurement):
        ...     q = processor.attitude
    """

    def __init__(
        self,
        gravity_processor: BaseGravityProcessor,
        location: Optional[Location] = None,
        use_accurate_leveling: bool = False,
        magnetic_model: Optional[MagneticModel] = None,
        use_world_magnetic_model: bool = False,
        world_magnetic_model_date: Optional[Union[date, datetime]] = None
    ):
        """
        Args:
            gravity_processor: 레벨링용 중력 추정기
            location: 측지 위치 (정밀 레벨링, 편각, 중력 크기 보정에 사용)
            use_accurate_leveling: 정밀 레벨링 사용 여부
            magnetic_model: 지자기 모델 (None 이면 필요 시 WMM 생성)
            use_world_magnetic_model: 편각 보정 여부
            world_magnetic_model_date: 편각 기준 날짜 (None 이면 현재 시각)
        """
        self.gravity_processor = gravity_processor
        self._location = location
        self.gravity_processor.location = location
        self._use_accurate_leveling = use_accurate_leveling
        self._leveling = build_leveling_processor(use_accurate_leveling, location)
        self._magnetic_model = magnetic_model
        self.use_world_magnetic_model = use_world_magnetic_model
        self.world_magnetic_model_date = world_magnetic_model_date
        self._declination_cache: Optional[Tuple[Tuple[float, float, float, date], float]] = None
        self._attitude = Quaternion.identity()
        self._has_attitude = False

    @property
    def location(self) -> Optional[Location]:
        return self._location

    @location.setter
    def location(self, value: Optional[Location]):
        if value is None and self._use_accurate_leveling:
            raise ValueError("Accurate leveling requires a location")
        self._location = value
        self.gravity_processor.location = value
        if isinstance(self._leveling, AccurateLevelingProcessor):
            self._leveling.location = value

    @property
    def use_accurate_leveling(self) -> bool:
        return self._use_accurate_leveling

    @use_accurate_leveling.setter
    def use_accurate_leveling(self, value: bool):
        self._leveling = build_leveling_processor(value, self._location)
        self._use_accurate_leveling = value

    @property
    def adjust_gravity_norm(self) -> bool:
        return self.gravity_processor.adjust_gravity_norm

    @adjust_gravity_norm.setter
    def adjust_gravity_norm(self, value: bool):
        self.gravity_processor.adjust_gravity_norm = value

    @property
    def magnetic_model(self) -> Optional[MagneticModel]:
        return self._magnetic_model

    @magnetic_model.setter
    def magnetic_model(self, value: Optional[MagneticModel]):
        self._magnetic_model = value
        self._declination_cache = None

    @property
    def attitude(self) -> Quaternion:
        """body -> NED 절대 자세"""
        return self._attitude

    @property
    def has_attitude(self) -> bool:
        return self._has_attitude

    @property
    def gravity(self) -> np.ndarray:
        return self.gravity_processor.gravity

    def reset(self):
        self.gravity_processor.reset()
        self._leveling.reset()
        self._attitude = Quaternion.identity()
        self._has_attitude = False

    def process(self, leveling_measurement, magnetometer: MagnetometerMeasurement) -> bool:
        """
        자세 추정

        Args:
            leveling_measurement: 중력 추정기 입력 (중력 또는 가속도계 샘플)
            magnetometer: 자력계 샘플

        Returns:
            자세가 갱신되었는지 여부
        """
        if not self.gravity_processor.process(leveling_measurement):
            return False

        self._leveling.process(self.gravity_processor.gravity)
        roll = self._leveling.roll
        pitch = self._leveling.pitch

        yaw = magnetic_heading(magnetometer.to_ned(), roll, pitch)
        if self.use_world_magnetic_model:
            yaw += self.declination()

        self._attitude = Quaternion.from_euler(roll, pitch, yaw)
        self._has_attitude = True
        return True

    def declination(self) -> float:
        """현재 위치/날짜의 편각 (라디안)"""
        if self._location is None:
            raise ValueError("Magnetic declination requires a location")

        when = self.world_magnetic_model_date or datetime.now()
        day = when.date() if isinstance(when, datetime) else when
        # 편각은 위치에 대해 완만하게 변하므로 약 100 m 격자로 캐시
        key = (
            round(self._location.latitude, 3),
            round(self._location.longitude, 3),
            round(self._location.height, -2),
            day
        )
        if self._declination_cache is not None and self._declination_cache[0] == key:
            return self._declination_cache[1]

        if self._magnetic_model is None:
            self._magnetic_model = WorldMagneticModel()

        value = self._magnetic_model.declination(self._location, day)
        self._declination_cache = (key, value)
        logger.debug(f"Magnetic declination: {np.rad2deg(value):.3f} deg at {self._location}")
        return value
