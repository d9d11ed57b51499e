"""
relative_pose_estimator.py - 상대 pose 추정기

추적 시작 시점 대비 변환만 보고하는 추정기입니다.
세 가지 변형을 모두 생성하고 두 개의 선택 플래그로 활성 변형을 결정합니다.

Version: 1.0
Author: FurSys AI Team
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional
import logging

from ..config.system_config import FusionConfig, SystemConfig
from ..measurement.frames import Location, PoseTransformation
from ..measurement.triads import SpeedTriad
from ..processors.relative import (
    AccelerometerFusedRelativePoseProcessor,
    AttitudeRelativePoseProcessor,
    FusedRelativePoseProcessor,
)
from .base import BasePoseEstimator, FanOutSetting, OnAccuracyChanged, OnBufferFilled
from .events import MeasurementSource, SourceKind

logger = logging.getLogger(__name__)


class RelativeProcessorVariant(Enum):
    """상대 pose 프로세서 변형"""
    ATTITUDE = 'attitude'
    FUSED = 'fused'
    ACCELEROMETER_FUSED = 'accelerometer_fused'

    @classmethod
    def select(
        cls,
        use_attitude_sensor: bool,
        use_accelerometer_for_attitude_estimation: bool
    ) -> 'RelativeProcessorVariant':
        if use_attitude_sensor:
            return cls.ATTITUDE
        if use_accelerometer_for_attitude_estimation:
            return cls.ACCELEROMETER_FUSED
        return cls.FUSED

    @property
    def source_kind(self) -> SourceKind:
        return _SOURCE_KINDS[self]


_SOURCE_KINDS = {
    RelativeProcessorVariant.ATTITUDE: SourceKind.ATTITUDE,
    RelativeProcessorVariant.FUSED: SourceKind.GRAVITY,
    RelativeProcessorVariant.ACCELEROMETER_FUSED: SourceKind.ACCELEROMETER,
}

RELATIVE_FUSION_VARIANTS = (
    RelativeProcessorVariant.FUSED,
    RelativeProcessorVariant.ACCELEROMETER_FUSED,
)
ALL_RELATIVE_VARIANTS = tuple(RelativeProcessorVariant)

# 프로세서로 전파되는 융합 설정 필드 (적용 순서 유지)
RELATIVE_FUSION_FIELDS = (
    'use_indirect_interpolation',
    'interpolation_value',
    'indirect_interpolation_weight',
    'outlier_threshold',
    'outlier_panic_threshold',
    'panic_counter_threshold',
    'use_accurate_relative_gyroscope',
    'adjust_gravity_norm',
)

# (estimator, timestamp, transformation)
OnRelativePoseAvailable = Callable[['RelativePoseEstimator', int, PoseTransformation], None]


class RelativePoseEstimator(BasePoseEstimator):
    """
    상대 pose 추정기

    리스너는 매 처리 샘플마다 시작 대비 변환 (ENU) 을 받습니다.

    Example:
        >>> estimator = RelativePoseEstimator(
        ...     on_pose_available=lambda est, ts, tr: print(tr.translation)
        ... )
        >>> estimator.start(timestamp)
    """

    use_indirect_interpolation = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    interpolation_value = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    indirect_interpolation_weight = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    outlier_threshold = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    outlier_panic_threshold = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    panic_counter_threshold = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    use_accurate_leveling = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    use_accurate_relative_gyroscope = FanOutSetting(RELATIVE_FUSION_VARIANTS)
    location = FanOutSetting(ALL_RELATIVE_VARIANTS)
    adjust_gravity_norm = FanOutSetting(ALL_RELATIVE_VARIANTS, locked_while_running=True)

    def __init__(
        self,
        initial_speed: Optional[SpeedTriad] = None,
        location: Optional[Location] = None,
        use_attitude_sensor: bool = False,
        use_accelerometer_for_attitude_estimation: bool = False,
        use_accurate_leveling: bool = False,
        fusion_config: Optional[FusionConfig] = None,
        on_pose_available: Optional[OnRelativePoseAvailable] = None,
        on_accuracy_changed: Optional[OnAccuracyChanged] = None,
        on_buffer_filled: Optional[OnBufferFilled] = None,
        processors: Optional[Dict[RelativeProcessorVariant, Any]] = None,
        sources: Optional[Dict[SourceKind, MeasurementSource]] = None
    ):
        """
        Args:
            initial_speed: 시작 속도 (NED 축)
            location: 측지 위치 (정확한 레벨링 / 중력 크기 보정용, 선택)
            use_attitude_sensor: 플랫폼 상대 자세 센서 사용
            use_accelerometer_for_attitude_estimation: 가속도계 레벨링 사용
            use_accurate_leveling: 정확한 레벨링 사용 (location 필요)
            fusion_config: 융합 설정 (use_accurate_leveling 필드는 사용하지 않음)
            on_pose_available: 변환 갱신 리스너
            on_accuracy_changed: 센서 정확도 변경 리스너
            on_buffer_filled: 센서 버퍼 가득 참 리스너
            processors: 프로세서 변형 주입 (테스트용)
            sources: 측정 소스 주입
        """
        super().__init__(on_accuracy_changed=on_accuracy_changed, on_buffer_filled=on_buffer_filled)
        self.on_pose_available = on_pose_available

        config = fusion_config if fusion_config is not None else FusionConfig()
        config.validate()

        self._variant = RelativeProcessorVariant.select(
            use_attitude_sensor,
            use_accelerometer_for_attitude_estimation
        )

        if processors is None:
            processors = self._build_processors(initial_speed, location, config)
        self._processors = dict(processors)
        self._sources = dict(sources) if sources is not None else {
            kind: MeasurementSource(kind) for kind in SourceKind
        }

        # location 을 먼저 적용해야 정확한 레벨링 검사가 올바르게 동작
        settings = {'location': location}
        settings.update({name: getattr(config, name) for name in RELATIVE_FUSION_FIELDS})
        settings['use_accurate_leveling'] = use_accurate_leveling
        self._apply_settings(settings)

        if initial_speed is not None:
            self.initial_speed = initial_speed

        self._wire_sources()
        logger.info(f"RelativePoseEstimator initialized: variant={self._variant.name}")

    @staticmethod
    def _build_processors(
        initial_speed: Optional[SpeedTriad],
        location: Optional[Location],
        config: FusionConfig
    ) -> Dict[RelativeProcessorVariant, Any]:
        fusion = dict(
            initial_speed=initial_speed,
            location=location,
            adjust_gravity_norm=config.adjust_gravity_norm,
            use_accurate_relative_gyroscope=config.use_accurate_relative_gyroscope,
        )
        return {
            RelativeProcessorVariant.ATTITUDE: AttitudeRelativePoseProcessor(
                initial_speed=initial_speed,
                location=location,
                adjust_gravity_norm=config.adjust_gravity_norm
            ),
            RelativeProcessorVariant.FUSED: FusedRelativePoseProcessor(**fusion),
            RelativeProcessorVariant.ACCELEROMETER_FUSED: AccelerometerFusedRelativePoseProcessor(**fusion),
        }

    @classmethod
    def from_config(cls, config: SystemConfig, **kwargs) -> 'RelativePoseEstimator':
        """
        설정에서 추정기 생성

        위치가 없으면 정확한 레벨링을 끄고 경고를 남깁니다.
        """
        estimator_config = config.estimator
        location = estimator_config.location()
        use_accurate_leveling = config.fusion.use_accurate_leveling
        if use_accurate_leveling and location is None:
            logger.warning("Accurate leveling requires a location, falling back to basic leveling")
            use_accurate_leveling = False

        return cls(
            initial_speed=estimator_config.speed(),
            location=location,
            use_attitude_sensor=estimator_config.use_attitude_sensor,
            use_accelerometer_for_attitude_estimation=estimator_config.use_accelerometer_for_attitude_estimation,
            use_accurate_leveling=use_accurate_leveling,
            fusion_config=config.fusion,
            **kwargs
        )

    @property
    def initial_speed(self) -> SpeedTriad:
        return self.active_processor.initial_speed

    @initial_speed.setter
    def initial_speed(self, value: SpeedTriad):
        self.active_processor.initial_speed = value

    def _on_synced_measurement(self, source: MeasurementSource, measurement):
        processor = self.active_processor
        if not processor.process(measurement):
            return

        listener = self.on_pose_available
        if listener is not None:
            listener(self, measurement.timestamp, processor.pose_transformation)
