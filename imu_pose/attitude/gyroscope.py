"""
gyroscope.py - 자이로스코프 상대 자세 적분

추적 시작 시점(단위 자세) 대비 상대 자세를 자이로 각속도 적분으로 구합니다.

- RelativeGyroscopeAttitudeProcessor: 현재 각속도의 회전 벡터 1 스텝 적분 (빠름)
- AccurateRelativeGyroscopeAttitudeProcessor: 이전/중간/현재 각속도를 쓰는 RK4 적분

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
import logging

from ..measurement.quaternion import Quaternion
from ..measurement.triads import GyroscopeMeasurement

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1e9


class RelativeGyroscopeAttitudeProcessor:
    """
    빠른 상대 자세 적분

    첫 샘플은 시간 간격이 없으므로 False 를 반환하고 기준만 저장합니다.
    """

    def __init__(self):
        self.reset()

    @property
    def attitude(self) -> Quaternion:
        """시작 대비 body 상대 자세"""
        return self._attitude

    @property
    def time_interval_seconds(self) -> float:
        return self._time_interval

    @property
    def timestamp(self) -> Optional[int]:
        return self._previous_timestamp

    def reset(self):
        self._attitude = Quaternion.identity()
        self._previous_rate: Optional[np.ndarray] = None
        self._previous_timestamp: Optional[int] = None
        self._time_interval = 0.0

    def process(self, measurement: GyroscopeMeasurement) -> bool:
        """
        자이로 샘플 적분

        Returns:
            자세가 갱신되었는지 여부
        """
        rate = measurement.to_ned()
        timestamp = measurement.timestamp

        if self._previous_timestamp is None:
            self._previous_rate = rate
            self._previous_timestamp = timestamp
            return False

        dt = (timestamp - self._previous_timestamp) / NANOS_PER_SECOND
        if dt <= 0.0:
            logger.debug(f"Non-increasing gyroscope timestamp: {timestamp}")
            return False

        self._attitude = self._integrate(self._attitude, self._previous_rate, rate, dt)
        self._time_interval = dt
        self._previous_rate = rate
        self._previous_timestamp = timestamp
        return True

    def _integrate(
        self,
        attitude: Quaternion,
        previous_rate: np.ndarray,
        rate: np.ndarray,
        dt: float
    ) -> Quaternion:
        return (attitude * Quaternion.from_rotvec(rate * dt)).normalize()


def _omega(rate: np.ndarray) -> np.ndarray:
    """q = [w, x, y, z] 에 대한 각속도 행렬 (q̇ = ½ Ω(ω) q)"""
    w0, w1, w2 = rate
    return np.array([
        [0.0, -w0, -w1, -w2],
        [w0, 0.0, w2, -w1],
        [w1, -w2, 0.0, w0],
        [w2, w1, -w0, 0.0],
    ])


class AccurateRelativeGyroscopeAttitudeProcessor(RelativeGyroscopeAttitudeProcessor):
    """RK4 상대 자세 적분"""

    def _integrate(
        self,
        attitude: Quaternion,
        previous_rate: np.ndarray,
        rate: np.ndarray,
        dt: float
    ) -> Quaternion:
        q = attitude.to_array_wxyz()
        omega0 = _omega(previous_rate)
        omega_mid = _omega(0.5 * (previous_rate + rate))
        omega1 = _omega(rate)

        k1 = 0.5 * omega0 @ q
        k2 = 0.5 * omega_mid @ (q + 0.5 * dt * k1)
        k3 = 0.5 * omega_mid @ (q + 0.5 * dt * k2)
        k4 = 0.5 * omega1 @ (q + dt * k3)
        q = q + dt / 6.0 * (k1 + 2.0 * k2 + 2.0 * k3 + k4)

        return Quaternion.from_wxyz(q).normalize()
