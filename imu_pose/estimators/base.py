"""
base.py - 추정기 공통 구현

- FanOutSetting: 설정 값을 해당 필드를 가진 모든 프로세서 변형에 기록
- BasePoseEstimator: 프로세서/소스 보관, start/stop 생명주기, 이벤트 변환

"모두에 쓰고, 활성 변형에서 읽는다": 비활성 변형도 항상 같은 설정을 가집니다.

Version: 1.0
Author: FurSys AI Team
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
import logging

from ..measurement.triads import SensorAccuracy, SensorType
from .events import MeasurementSource, PoseSensorType, SourceKind

logger = logging.getLogger(__name__)

# (estimator, sensor_type, accuracy)
OnAccuracyChanged = Callable[[Any, Optional[PoseSensorType], SensorAccuracy], None]
# (estimator, sensor_type)
OnBufferFilled = Callable[[Any, Optional[PoseSensorType]], None]

_UNSET = object()


class FanOutSetting:
    """
    여러 프로세서 변형으로 전파되는 설정 디스크립터

    Args:
        variants: 설정을 받는 프로세서 변형들
        locked_while_running: 실행 중 변경 시 RuntimeError
    """

    def __init__(self, variants: Iterable[Enum], locked_while_running: bool = False):
        self.variants: Tuple[Enum, ...] = tuple(variants)
        self.locked_while_running = locked_while_running
        self.name = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj._settings[self.name]

    def __set__(self, obj, value):
        if self.locked_while_running and obj.running:
            raise RuntimeError(f"Cannot change {self.name} while estimator is running")
        written = []
        try:
            for variant in self.variants:
                processor = obj._processors[variant]
                previous = getattr(processor, self.name, _UNSET)
                setattr(processor, self.name, value)
                written.append((processor, previous))
        except Exception:
            # 앞서 기록한 변형을 되돌려 모든 변형이 같은 값을 유지
            for processor, previous in reversed(written):
                if previous is _UNSET:
                    delattr(processor, self.name)
                else:
                    setattr(processor, self.name, previous)
            raise
        obj._settings[self.name] = value


class BasePoseEstimator:
    """
    pose 추정기 공통 구현

    하위 클래스는 _processors / _sources / _variant 를 준비한 뒤
    _wire_sources() 를 호출하고 _on_synced_measurement() 를 구현합니다.
    """

    def __init__(
        self,
        on_accuracy_changed: Optional[OnAccuracyChanged] = None,
        on_buffer_filled: Optional[OnBufferFilled] = None
    ):
        self.on_accuracy_changed = on_accuracy_changed
        self.on_buffer_filled = on_buffer_filled
        self._processors: Dict[Enum, Any] = {}
        self._sources: Dict[SourceKind, MeasurementSource] = {}
        self._settings: Dict[str, Any] = {}
        self._variant: Optional[Enum] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def variant(self):
        """생성 시 결정된 활성 프로세서 변형"""
        return self._variant

    @property
    def processors(self) -> Dict[Enum, Any]:
        return dict(self._processors)

    @property
    def sources(self) -> Dict[SourceKind, MeasurementSource]:
        return dict(self._sources)

    @property
    def active_processor(self):
        return self._processors[self._variant]

    @property
    def active_source(self) -> MeasurementSource:
        return self._sources[self._variant.source_kind]

    def _apply_settings(self, settings: Dict[str, Any]):
        """FanOutSetting 값 일괄 적용 (생성 시)"""
        for name, value in settings.items():
            setattr(self, name, value)

    def _wire_sources(self):
        for kind, source in self._sources.items():
            source.accuracy_changed_listener = self._on_accuracy_changed
            source.buffer_filled_listener = self._on_buffer_filled
            if kind is self._variant.source_kind:
                source.synced_measurement_listener = self._on_synced_measurement

    def start(self, start_timestamp: int = 0) -> bool:
        """
        추정 시작

        활성 프로세서만 초기화하고 활성 소스만 시작합니다.

        Args:
            start_timestamp: 시작 타임스탬프 (나노초)

        Returns:
            소스 시작 성공 여부

        Raises:
            RuntimeError: 이미 실행 중인 경우
        """
        if self._running:
            raise RuntimeError("Estimator is already running")

        self.active_processor.reset()
        self._running = bool(self.active_source.start(start_timestamp))
        logger.info(f"{type(self).__name__} start: variant={self._variant.name}, running={self._running}")
        return self._running

    def stop(self):
        """모든 소스 중지 (활성 여부와 무관)"""
        for source in self._sources.values():
            source.stop()
        if self._running:
            logger.info(f"{type(self).__name__} stopped")
        self._running = False

    def _on_synced_measurement(self, source: MeasurementSource, measurement):
        raise NotImplementedError

    def _on_accuracy_changed(self, source: MeasurementSource, sensor_type: SensorType,
                             accuracy: SensorAccuracy):
        listener = self.on_accuracy_changed
        if listener is None:
            return
        listener(self, PoseSensorType.from_sensor_type(sensor_type), accuracy)

    def _on_buffer_filled(self, source: MeasurementSource, sensor_type: SensorType):
        listener = self.on_buffer_filled
        if listener is None:
            return
        listener(self, PoseSensorType.from_sensor_type(sensor_type))
