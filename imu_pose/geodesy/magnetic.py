"""
magnetic.py - 지자기 모델

자력계 방위를 진북 기준으로 보정하기 위한 편각(declination)을 제공합니다.
기본 구현은 geomag 패키지의 World Magnetic Model(WMM) 을 사용합니다.

Version: 1.0
Author: FurSys AI Team
"""

import logging
from datetime import date, datetime
from typing import Optional, Union

import numpy as np

from ..measurement.frames import Location

logger = logging.getLogger(__name__)

_FEET_PER_METER = 1.0 / 0.3048


class MagneticModel:
    """
    지자기 모델 인터페이스

    하위 클래스는 declination() 을 구현합니다.
    """

    def declination(self, location: Location, when: Union[date, datetime]) -> float:
        """
        편각 계산

        Args:
            location: 측지 위치
            when: 기준 날짜

        Returns:
            편각 (라디안, 동쪽 양수)
        """
        raise NotImplementedError


class WorldMagneticModel(MagneticModel):
    """
    geomag 기반 WMM 지자기 모델

    Example:
        >>> model = WorldMagneticModel()
        >>> model.declination(Location(37.56, 126.97, 40.0), date.today())
    """

    def __init__(self, coefficients_file: Optional[str] = None):
        import geomag.geomag as gm

        self.coefficients_file = coefficients_file
        self._model = gm.GeoMag(coefficients_file) if coefficients_file else gm.GeoMag()
        logger.info(f"WorldMagneticModel initialized: coefficients={coefficients_file or 'bundled'}")

    def declination(self, location: Location, when: Union[date, datetime]) -> float:
        if isinstance(when, datetime):
            when = when.date()
        # geomag 고도 단위는 피트
        result = self._model.GeoMag(
            location.latitude,
            location.longitude,
            location.height * _FEET_PER_METER,
            when
        )
        return float(np.deg2rad(result.dec))
