"""
input 모듈 - 데이터 입력 처리

오프라인 센서 로그 로드 및 재생을 지원합니다.
"""

from .data_loader import SensorLogLoader, ReplayMeasurementSource

__all__ = ['SensorLogLoader', 'ReplayMeasurementSource']
