"""
conversions.py - NED <-> ECEF 프레임 변환

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np

from ..measurement.frames import EcefFrame, NedFrame
from .earth import compute_c_ecef_to_ned, ecef_to_geodetic, geodetic_to_ecef


def ned_to_ecef_frame(frame: NedFrame) -> EcefFrame:
    """NED 프레임을 ECEF 프레임으로 변환"""
    location = frame.location
    c_n_e = compute_c_ecef_to_ned(location.latitude_rad, location.longitude_rad).T
    return EcefFrame(
        position=geodetic_to_ecef(location),
        velocity=c_n_e @ frame.velocity,
        rotation=c_n_e @ frame.rotation,
        timestamp=frame.timestamp,
    )


def ecef_to_ned_frame(frame: EcefFrame) -> NedFrame:
    """ECEF 프레임을 NED 프레임으로 변환"""
    location = ecef_to_geodetic(frame.position)
    c_e_n = compute_c_ecef_to_ned(location.latitude_rad, location.longitude_rad)
    return NedFrame(
        location=location,
        velocity=c_e_n @ frame.velocity,
        rotation=c_e_n @ frame.rotation,
        timestamp=frame.timestamp,
    )


def with_ned_rotation(frame: EcefFrame, rotation_ned: np.ndarray) -> EcefFrame:
    """
    ECEF 프레임의 자세를 NED 기준 자세로 교체

    위치/속도는 유지하고, body -> NED 회전을 지정한 값으로 바꾼 뒤 ECEF 로 되돌립니다.
    """
    ned = ecef_to_ned_frame(frame)
    c_e_n = compute_c_ecef_to_ned(ned.location.latitude_rad, ned.location.longitude_rad)
    return EcefFrame(
        position=frame.position,
        velocity=frame.velocity,
        rotation=c_e_n.T @ np.asarray(rotation_ned, dtype=float),
        timestamp=frame.timestamp,
    )
