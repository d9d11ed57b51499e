"""
earth.py - 지구 모델 (WGS84)

측지 좌표 <-> ECEF 변환 (pyproj), ECEF -> NED 회전, 정규 중력 모델을 제공합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
from pyproj import Transformer

from ..measurement.frames import Location

# WGS84
EARTH_ROTATION_RATE = 7.292115e-5   # rad/s
STANDARD_GRAVITY = 9.80665          # m/s²

# EPSG:4979 (WGS84 3D 측지) <-> EPSG:4978 (WGS84 ECEF)
_LLA_TO_ECEF = Transformer.from_crs("epsg:4979", "epsg:4978", always_xy=True)
_ECEF_TO_LLA = Transformer.from_crs("epsg:4978", "epsg:4979", always_xy=True)


def geodetic_to_ecef(location: Location) -> np.ndarray:
    """측지 위치를 ECEF 좌표 [x, y, z] (m) 로 변환"""
    x, y, z = _LLA_TO_ECEF.transform(location.longitude, location.latitude, location.height)
    return np.array([x, y, z], dtype=float)


def ecef_to_geodetic(position: np.ndarray) -> Location:
    """ECEF 좌표를 측지 위치로 변환"""
    lon, lat, alt = _ECEF_TO_LLA.transform(float(position[0]), float(position[1]), float(position[2]))
    return Location(latitude=float(lat), longitude=float(lon), height=float(alt))


def compute_c_ecef_to_ned(lat: float, lon: float) -> np.ndarray:
    """
    ECEF -> NED 회전 행렬

    Args:
        lat: 위도 (라디안)
        lon: 경도 (라디안)

    Returns:
        3x3 회전 행렬 C_e^n
    """
    s_lat = np.sin(lat)
    c_lat = np.cos(lat)
    s_lon = np.sin(lon)
    c_lon = np.cos(lon)
    return np.array([
        [-s_lat * c_lon, -s_lat * s_lon, c_lat],
        [-s_lon, c_lon, 0.0],
        [-c_lat * c_lon, -c_lat * s_lon, -s_lat],
    ])


def normal_gravity(lat: float, h: float = 0.0) -> float:
    """
    정규 중력 크기 (Somigliana + 자유공기 보정)

    Args:
        lat: 위도 (라디안)
        h: 타원체고 (m)

    Returns:
        중력 크기 (m/s²)
    """
    sin_lat = np.sin(lat)
    g = (
        9.7803253359
        * (1 + 0.00193185265241 * sin_lat**2)
        / np.sqrt(1 - 0.00669437999013 * sin_lat**2)
    )
    return float(g - 3.086e-6 * h)


def gravity_norm(location: Optional[Location] = None) -> float:
    """위치의 정규 중력 크기, 위치가 없으면 표준 중력"""
    if location is None:
        return STANDARD_GRAVITY
    return normal_gravity(location.latitude_rad, location.height)


def gravity_ned(location: Location) -> np.ndarray:
    """
    NED 중력 벡터 [g_N, 0, g_D]

    북쪽 성분은 고도에 따른 정규 중력의 기울기 (-8.08e-9 · h · sin 2L) 입니다.
    """
    north = -8.08e-9 * location.height * np.sin(2.0 * location.latitude_rad)
    return np.array([north, 0.0, gravity_norm(location)])


def gravity_ecef(position: np.ndarray) -> np.ndarray:
    """ECEF 위치에서의 ECEF 중력 벡터"""
    location = ecef_to_geodetic(position)
    c_e_n = compute_c_ecef_to_ned(location.latitude_rad, location.longitude_rad)
    return c_e_n.T @ gravity_ned(location)
