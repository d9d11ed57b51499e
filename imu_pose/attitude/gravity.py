"""
gravity.py - 중력 추정

레벨링(기울기 추정)에 사용할 body 좌표 중력 벡터를 추정합니다.

- GravityProcessor: 플랫폼 중력 센서 값을 그대로 사용
- AccelerometerGravityProcessor: 가속도계 비력에서 Kalman 저역 통과로 중력 성분 추출

중력 벡터는 가속도계와 같은 부호 규약(정지 시 NED 에서 [0, 0, -g])을 따릅니다.
adjust_gravity_norm 이 켜져 있으면 추정값의 크기를 위치의 정규 중력으로 맞춥니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from filterpy.kalman import KalmanFilter
from typing import Optional
import logging

from ..geodesy.earth import gravity_norm
from ..measurement.frames import Location
from ..measurement.triads import AccelerometerMeasurement, GravityMeasurement

logger = logging.getLogger(__name__)


class BaseGravityProcessor:
    """중력 추정 공통 구현"""

    def __init__(self, location: Optional[Location] = None, adjust_gravity_norm: bool = True):
        self.location = location
        self.adjust_gravity_norm = adjust_gravity_norm
        self._gravity = np.zeros(3)
        self._timestamp = 0
        self._has_gravity = False

    @property
    def gravity(self) -> np.ndarray:
        """추정 중력 (NED body 축, m/s²)"""
        return self._gravity.copy()

    @property
    def gx(self) -> float:
        return float(self._gravity[0])

    @property
    def gy(self) -> float:
        return float(self._gravity[1])

    @property
    def gz(self) -> float:
        return float(self._gravity[2])

    @property
    def timestamp(self) -> int:
        return self._timestamp

    @property
    def has_gravity(self) -> bool:
        return self._has_gravity

    @property
    def expected_gravity_norm(self) -> float:
        """위치 기준 이론 중력 크기"""
        return gravity_norm(self.location)

    def reset(self):
        self._gravity = np.zeros(3)
        self._timestamp = 0
        self._has_gravity = False

    def process(self, measurement) -> bool:
        raise NotImplementedError

    def _set_gravity(self, gravity: np.ndarray, timestamp: int):
        if self.adjust_gravity_norm:
            norm = np.linalg.norm(gravity)
            if norm > 0.0:
                gravity = gravity / norm * self.expected_gravity_norm
        self._gravity = np.asarray(gravity, dtype=float)
        self._timestamp = timestamp
        self._has_gravity = True


class GravityProcessor(BaseGravityProcessor):
    """플랫폼 중력 센서 기반 중력 추정"""

    def process(self, measurement: GravityMeasurement) -> bool:
        self._set_gravity(measurement.to_ned(), measurement.timestamp)
        return True


class AccelerometerGravityProcessor(BaseGravityProcessor):
    """
    가속도계 기반 중력 추정

    상태 = 중력 벡터 (random walk), 측정 = 비력.
    측정 노이즈가 프로세스 노이즈보다 크므로 선형 가속도 성분이 걸러지는
    저역 통과 필터로 동작합니다.

    Example:
        >>> processor = AccelerometerGravityProcessor()
        >>> processor.process(accelerometer_measurement)
        >>> g = processor.gravity
    """

    def __init__(
        self,
        location: Optional[Location] = None,
        adjust_gravity_norm: bool = True,
        process_noise: float = 1e-3,
        measurement_noise: float = 0.5
    ):
        """
        Args:
            location: 측지 위치 (중력 크기 보정용)
            adjust_gravity_norm: 중력 크기 보정 여부
            process_noise: 중력 변화 분산 (샘플당)
            measurement_noise: 비력 측정 분산
        """
        super().__init__(location=location, adjust_gravity_norm=adjust_gravity_norm)
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self._init_filter()

        logger.info(
            f"AccelerometerGravityProcessor initialized: "
            f"q={process_noise}, r={measurement_noise}"
        )

    def _init_filter(self):
        self.kf = KalmanFilter(dim_x=3, dim_z=3)
        self.kf.F = np.eye(3)
        self.kf.H = np.eye(3)
        self.kf.Q = np.eye(3) * self.process_noise
        self.kf.R = np.eye(3) * self.measurement_noise
        self.kf.P = np.eye(3) * self.measurement_noise
        self._filter_initialized = False

    def reset(self):
        super().reset()
        self._init_filter()

    def process(self, measurement: AccelerometerMeasurement) -> bool:
        specific_force = measurement.to_ned()

        if not self._filter_initialized:
            self.kf.x = specific_force.reshape(3, 1)
            self._filter_initialized = True
        else:
            self.kf.predict()
            self.kf.update(specific_force.reshape(3, 1))

        self._set_gravity(self.kf.x.flatten(), measurement.timestamp)
        return True
