"""
navigator.py - ECEF 관성 항법 1 스텝

이전 ECEF 프레임과 body 기준 비력/각속도로 Δt 후의 프레임을 계산합니다.
(자세: 지구 자전 보정 후 회전 벡터 적분, 속도: 코리올리 + 중력, 위치: 사다리꼴 적분)

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from scipy.spatial.transform import Rotation

from ..measurement.frames import EcefFrame
from .earth import EARTH_ROTATION_RATE, gravity_ecef

_OMEGA_IE = np.array([
    [0.0, -EARTH_ROTATION_RATE, 0.0],
    [EARTH_ROTATION_RATE, 0.0, 0.0],
    [0.0, 0.0, 0.0],
])


def navigate_ecef(
    time_interval: float,
    previous: EcefFrame,
    specific_force: np.ndarray,
    angular_rate: np.ndarray,
    timestamp: int = 0
) -> EcefFrame:
    """
    ECEF 항법 방정식 적분

    Args:
        time_interval: Δt (초)
        previous: 이전 프레임
        specific_force: body(NED 축) 비력 (m/s²)
        angular_rate: body(NED 축) 각속도 (rad/s)
        timestamp: 결과 프레임 타임스탬프

    Returns:
        갱신된 ECEF 프레임
    """
    if time_interval < 0.0:
        raise ValueError(f"Negative time interval: {time_interval}")

    f_b = np.asarray(specific_force, dtype=float)
    w_b = np.asarray(angular_rate, dtype=float)

    # 자세: 지구 자전만큼 되돌리고 body 회전 적용
    c_earth = Rotation.from_rotvec([0.0, 0.0, -EARTH_ROTATION_RATE * time_interval]).as_matrix()
    c_body = Rotation.from_rotvec(w_b * time_interval).as_matrix()
    old_rotation = previous.rotation
    new_rotation = c_earth @ old_rotation @ c_body

    # 평균 자세로 비력 변환
    f_e = 0.5 * (old_rotation + new_rotation) @ f_b

    old_velocity = previous.velocity
    new_velocity = old_velocity + time_interval * (
        f_e + gravity_ecef(previous.position) - 2.0 * _OMEGA_IE @ old_velocity
    )
    new_position = previous.position + 0.5 * time_interval * (old_velocity + new_velocity)

    return EcefFrame(
        position=new_position,
        velocity=new_velocity,
        rotation=new_rotation,
        timestamp=timestamp,
    )
