"""
events.py - 측정 소스 인터페이스 및 공개 이벤트 타입

추정기는 동기화된 측정을 전달하는 외부 측정 소스에 의존합니다.
소스는 start/stop 제어와 세 종류의 콜백을 제공합니다:
    synced_measurement_listener(source, measurement)
    accuracy_changed_listener(source, sensor_type, accuracy)
    buffer_filled_listener(source, sensor_type)

Version: 1.0
Author: FurSys AI Team
"""

from enum import Enum
from typing import Any, Callable, Optional
import logging

from ..measurement.triads import SensorAccuracy, SensorType

logger = logging.getLogger(__name__)


class PoseSensorType(Enum):
    """추정기 리스너에 전달되는 센서 종류"""
    ATTITUDE = 'attitude'
    ACCELEROMETER = 'accelerometer'
    GYROSCOPE = 'gyroscope'
    MAGNETOMETER = 'magnetometer'
    GRAVITY = 'gravity'

    @classmethod
    def from_sensor_type(cls, sensor_type: SensorType) -> Optional['PoseSensorType']:
        """소스 센서 종류를 공개 센서 종류로 변환"""
        return _SENSOR_TYPE_MAP.get(sensor_type)


_SENSOR_TYPE_MAP = {
    SensorType.ACCELEROMETER: PoseSensorType.ACCELEROMETER,
    SensorType.ACCELEROMETER_UNCALIBRATED: PoseSensorType.ACCELEROMETER,
    SensorType.GYROSCOPE: PoseSensorType.GYROSCOPE,
    SensorType.GYROSCOPE_UNCALIBRATED: PoseSensorType.GYROSCOPE,
    SensorType.MAGNETOMETER: PoseSensorType.MAGNETOMETER,
    SensorType.MAGNETOMETER_UNCALIBRATED: PoseSensorType.MAGNETOMETER,
    SensorType.GRAVITY: PoseSensorType.GRAVITY,
    SensorType.ABSOLUTE_ATTITUDE: PoseSensorType.ATTITUDE,
    SensorType.RELATIVE_ATTITUDE: PoseSensorType.ATTITUDE,
}


class SourceKind(Enum):
    """측정 소스 종류 (동기화 측정 형태)"""
    ATTITUDE = 'attitude'
    GRAVITY = 'gravity'
    ACCELEROMETER = 'accelerometer'


SyncedMeasurementListener = Callable[['MeasurementSource', Any], None]
AccuracyChangedListener = Callable[['MeasurementSource', SensorType, SensorAccuracy], None]
BufferFilledListener = Callable[['MeasurementSource', SensorType], None]


class MeasurementSource:
    """
    동기화 측정 소스

    기본 구현은 호출자가 notify_* 로 값을 밀어 넣는 수동 소스입니다.
    실행 중이 아닐 때의 측정은 전달하지 않습니다.

    Example:
        >>> source = MeasurementSource(SourceKind.GRAVITY)
        >>> source.synced_measurement_listener = on_measurement
        >>> source.start(0)
        >>> source.notify_measurement(measurement)
    """

    def __init__(self, kind: SourceKind):
        self.kind = kind
        self.synced_measurement_listener: Optional[SyncedMeasurementListener] = None
        self.accuracy_changed_listener: Optional[AccuracyChangedListener] = None
        self.buffer_filled_listener: Optional[BufferFilledListener] = None
        self._running = False
        self._start_timestamp = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def start_timestamp(self) -> int:
        return self._start_timestamp

    def start(self, start_timestamp: int = 0) -> bool:
        """
        수집 시작

        Returns:
            시작 성공 여부 (이미 실행 중이면 False)
        """
        if self._running:
            return False
        self._start_timestamp = start_timestamp
        self._running = True
        logger.debug(f"MeasurementSource({self.kind.value}) started at {start_timestamp}")
        return True

    def stop(self):
        """수집 중지 (여러 번 호출해도 안전)"""
        self._running = False

    def notify_measurement(self, measurement) -> bool:
        """동기화 측정 전달, 전달 여부 반환"""
        if not self._running or self.synced_measurement_listener is None:
            return False
        self.synced_measurement_listener(self, measurement)
        return True

    def notify_accuracy_changed(self, sensor_type: SensorType, accuracy: SensorAccuracy):
        if self.accuracy_changed_listener is not None:
            self.accuracy_changed_listener(self, sensor_type, accuracy)

    def notify_buffer_filled(self, sensor_type: SensorType):
        if self.buffer_filled_listener is not None:
            self.buffer_filled_listener(self, sensor_type)
