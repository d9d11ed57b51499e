"""
pose_estimator.py - 절대 pose 추정기 (오케스트레이터)

다섯 가지 프로세서 변형을 모두 생성하고, 세 개의 선택 플래그로 활성 변형
하나를 결정합니다. 융합 설정은 해당 필드를 가진 모든 변형에 기록되며,
측정은 활성 소스 -> 활성 프로세서로만 흐릅니다.

선택 우선순위:
    1. use_attitude_sensor                       -> ATTITUDE
    2. use_double_fused_attitude_processor       -> DOUBLE 계열 / 단일 FUSED 계열
    3. use_accelerometer_for_attitude_estimation -> 계열 내 가속도계 / 중력 레벨링

Version: 1.0
Author: FurSys AI Team
"""

from dataclasses import asdict
from enum import Enum
from typing import Any, Callable, Dict, Optional
import logging

from ..config.system_config import FusionConfig, SystemConfig
from ..geodesy.magnetic import MagneticModel, WorldMagneticModel
from ..measurement.frames import EcefFrame, Location, NEDVelocity, PoseTransformation
from ..processors.absolute import (
    AccelerometerDoubleFusedEcefAbsolutePoseProcessor,
    AccelerometerFusedEcefAbsolutePoseProcessor,
    AttitudeEcefAbsolutePoseProcessor,
    DoubleFusedEcefAbsolutePoseProcessor,
    FusedEcefAbsolutePoseProcessor,
)
from .base import BasePoseEstimator, FanOutSetting, OnAccuracyChanged, OnBufferFilled
from .events import MeasurementSource, SourceKind

logger = logging.getLogger(__name__)


class ProcessorVariant(Enum):
    """절대 pose 프로세서 변형"""
    ATTITUDE = 'attitude'
    FUSED = 'fused'
    ACCELEROMETER_FUSED = 'accelerometer_fused'
    DOUBLE_FUSED = 'double_fused'
    ACCELEROMETER_DOUBLE_FUSED = 'accelerometer_double_fused'

    @classmethod
    def select(
        cls,
        use_attitude_sensor: bool,
        use_double_fused_attitude_processor: bool,
        use_accelerometer_for_attitude_estimation: bool
    ) -> 'ProcessorVariant':
        """선택 플래그로 활성 변형 결정"""
        if use_attitude_sensor:
            return cls.ATTITUDE
        if use_double_fused_attitude_processor:
            if use_accelerometer_for_attitude_estimation:
                return cls.ACCELEROMETER_DOUBLE_FUSED
            return cls.DOUBLE_FUSED
        if use_accelerometer_for_attitude_estimation:
            return cls.ACCELEROMETER_FUSED
        return cls.FUSED

    @property
    def source_kind(self) -> SourceKind:
        return _SOURCE_KINDS[self]


_SOURCE_KINDS = {
    ProcessorVariant.ATTITUDE: SourceKind.ATTITUDE,
    ProcessorVariant.FUSED: SourceKind.GRAVITY,
    ProcessorVariant.DOUBLE_FUSED: SourceKind.GRAVITY,
    ProcessorVariant.ACCELEROMETER_FUSED: SourceKind.ACCELEROMETER,
    ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED: SourceKind.ACCELEROMETER,
}

FUSION_VARIANTS = (
    ProcessorVariant.FUSED,
    ProcessorVariant.ACCELEROMETER_FUSED,
    ProcessorVariant.DOUBLE_FUSED,
    ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED,
)
ALL_VARIANTS = tuple(ProcessorVariant)

# (estimator, current, previous, initial, timestamp, transformation)
OnPoseAvailable = Callable[
    ['PoseEstimator', EcefFrame, EcefFrame, EcefFrame, int, Optional[PoseTransformation]],
    None
]


class PoseEstimator(BasePoseEstimator):
    """
    ECEF 절대 pose 추정기

    Example:
        >>> estimator = PoseEstimator(
        ...     Location(37.5665, 126.9780, 40.0),
        ...     on_pose_available=lambda est, cur, prev, init, ts, tr: print(cur.position)
        ... )
        >>> estimator.start(timestamp)
        >>> estimator.active_source.notify_measurement(synced_measurement)
    """

    # 융합 설정 (네 가지 융합 변형)
    use_indirect_interpolation = FanOutSetting(FUSION_VARIANTS)
    interpolation_value = FanOutSetting(FUSION_VARIANTS)
    indirect_interpolation_weight = FanOutSetting(FUSION_VARIANTS)
    outlier_threshold = FanOutSetting(FUSION_VARIANTS)
    outlier_panic_threshold = FanOutSetting(FUSION_VARIANTS)
    panic_counter_threshold = FanOutSetting(FUSION_VARIANTS)
    use_accurate_leveling = FanOutSetting(FUSION_VARIANTS)
    use_accurate_relative_gyroscope = FanOutSetting(FUSION_VARIANTS)
    magnetic_model = FanOutSetting(FUSION_VARIANTS)
    use_world_magnetic_model = FanOutSetting(FUSION_VARIANTS)
    world_magnetic_model_date = FanOutSetting(FUSION_VARIANTS)
    adjust_gravity_norm = FanOutSetting(FUSION_VARIANTS, locked_while_running=True)

    # 기준 프레임 설정 (다섯 가지 변형 모두)
    use_leveled_relative_attitude_respect_start = FanOutSetting(ALL_VARIANTS, locked_while_running=True)

    def __init__(
        self,
        initial_location: Optional[Location] = None,
        initial_velocity: Optional[NEDVelocity] = None,
        use_attitude_sensor: bool = False,
        use_double_fused_attitude_processor: bool = True,
        use_accelerometer_for_attitude_estimation: bool = False,
        estimate_pose_transformation: bool = True,
        fusion_config: Optional[FusionConfig] = None,
        magnetic_model: Optional[MagneticModel] = None,
        on_pose_available: Optional[OnPoseAvailable] = None,
        on_accuracy_changed: Optional[OnAccuracyChanged] = None,
        on_buffer_filled: Optional[OnBufferFilled] = None,
        processors: Optional[Dict[ProcessorVariant, Any]] = None,
        sources: Optional[Dict[SourceKind, MeasurementSource]] = None
    ):
        """
        Args:
            initial_location: 시작 측지 위치 (processors 를 주입하지 않으면 필수)
            initial_velocity: 시작 NED 속도
            use_attitude_sensor: 플랫폼 절대 자세 센서 사용
            use_double_fused_attitude_processor: 이중 융합 계열 사용
            use_accelerometer_for_attitude_estimation: 가속도계 레벨링 사용
            estimate_pose_transformation: 시작 대비 변환 계산 여부
            fusion_config: 융합 설정 (None 이면 기본값)
            magnetic_model: 지자기 모델 (None 이면 필요 시 WMM)
            on_pose_available: pose 갱신 리스너
            on_accuracy_changed: 센서 정확도 변경 리스너
            on_buffer_filled: 센서 버퍼 가득 참 리스너
            processors: 프로세서 변형 주입 (테스트용)
            sources: 측정 소스 주입
        """
        super().__init__(on_accuracy_changed=on_accuracy_changed, on_buffer_filled=on_buffer_filled)
        self.on_pose_available = on_pose_available
        self.use_attitude_sensor = use_attitude_sensor
        self.use_double_fused_attitude_processor = use_double_fused_attitude_processor
        self.use_accelerometer_for_attitude_estimation = use_accelerometer_for_attitude_estimation

        config = fusion_config if fusion_config is not None else FusionConfig()
        config.validate()

        self._variant = ProcessorVariant.select(
            use_attitude_sensor,
            use_double_fused_attitude_processor,
            use_accelerometer_for_attitude_estimation
        )

        if processors is None:
            if initial_location is None:
                raise ValueError("initial_location is required")
            processors = self._build_processors(
                initial_location, initial_velocity, estimate_pose_transformation, config, magnetic_model
            )
        self._processors = dict(processors)
        self._sources = dict(sources) if sources is not None else {
            kind: MeasurementSource(kind) for kind in SourceKind
        }

        settings = asdict(config)
        settings.pop('magnetic_model_file')
        settings['magnetic_model'] = magnetic_model
        self._apply_settings(settings)

        if initial_location is not None:
            self.initial_location = initial_location
        if initial_velocity is not None:
            self.initial_velocity = initial_velocity
        self.estimate_pose_transformation = estimate_pose_transformation

        self._wire_sources()
        logger.info(f"PoseEstimator initialized: variant={self._variant.name}")

    @staticmethod
    def _build_processors(
        initial_location: Location,
        initial_velocity: Optional[NEDVelocity],
        estimate_pose_transformation: bool,
        config: FusionConfig,
        magnetic_model: Optional[MagneticModel]
    ) -> Dict[ProcessorVariant, Any]:
        common = dict(
            initial_location=initial_location,
            initial_velocity=initial_velocity,
            estimate_pose_transformation=estimate_pose_transformation,
        )
        fusion = dict(
            magnetic_model=magnetic_model,
            use_world_magnetic_model=config.use_world_magnetic_model,
            world_magnetic_model_date=config.world_magnetic_model_date,
            use_accurate_leveling=config.use_accurate_leveling,
            use_accurate_relative_gyroscope=config.use_accurate_relative_gyroscope,
            adjust_gravity_norm=config.adjust_gravity_norm,
        )
        return {
            ProcessorVariant.ATTITUDE: AttitudeEcefAbsolutePoseProcessor(**common),
            ProcessorVariant.FUSED: FusedEcefAbsolutePoseProcessor(**common, **fusion),
            ProcessorVariant.ACCELEROMETER_FUSED: AccelerometerFusedEcefAbsolutePoseProcessor(**common, **fusion),
            ProcessorVariant.DOUBLE_FUSED: DoubleFusedEcefAbsolutePoseProcessor(**common, **fusion),
            ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED: AccelerometerDoubleFusedEcefAbsolutePoseProcessor(
                **common, **fusion
            ),
        }

    @classmethod
    def from_config(cls, config: SystemConfig, **kwargs) -> 'PoseEstimator':
        """설정에서 추정기 생성 (kwargs 는 리스너/소스 등 추가 인자)"""
        estimator_config = config.estimator
        fusion = config.fusion
        if 'magnetic_model' not in kwargs and fusion.magnetic_model_file:
            kwargs['magnetic_model'] = WorldMagneticModel(fusion.magnetic_model_file)

        return cls(
            initial_location=estimator_config.location(),
            initial_velocity=estimator_config.velocity(),
            use_attitude_sensor=estimator_config.use_attitude_sensor,
            use_double_fused_attitude_processor=estimator_config.use_double_fused_attitude_processor,
            use_accelerometer_for_attitude_estimation=estimator_config.use_accelerometer_for_attitude_estimation,
            estimate_pose_transformation=estimator_config.estimate_pose_transformation,
            fusion_config=fusion,
            **kwargs
        )

    # 활성 프로세서 전용 설정 (비활성 변형은 실행되지 않음)
    @property
    def initial_location(self) -> Location:
        return self.active_processor.initial_location

    @initial_location.setter
    def initial_location(self, value: Location):
        self.active_processor.initial_location = value

    @property
    def initial_velocity(self) -> NEDVelocity:
        return self.active_processor.initial_velocity

    @initial_velocity.setter
    def initial_velocity(self, value: NEDVelocity):
        self.active_processor.initial_velocity = value

    @property
    def estimate_pose_transformation(self) -> bool:
        return self.active_processor.estimate_pose_transformation

    @estimate_pose_transformation.setter
    def estimate_pose_transformation(self, value: bool):
        self.active_processor.estimate_pose_transformation = value

    def _on_synced_measurement(self, source: MeasurementSource, measurement):
        processor = self.active_processor
        if not processor.process(measurement):
            return

        listener = self.on_pose_available
        if listener is None:
            return

        transformation = processor.pose_transformation if self.estimate_pose_transformation else None
        listener(
            self,
            processor.current_frame,
            processor.previous_frame,
            processor.initial_frame,
            measurement.timestamp,
            transformation
        )
