"""
absolute.py - ECEF 절대 자세(pose) 프로세서

자세 소스(플랫폼 자세 센서 또는 자세 융합 코어)로 방향을 갱신하고,
비력/각속도를 ECEF 항법 방정식으로 적분하여 위치/속도를 갱신합니다.

프레임:
    initial  - 추적 시작 프레임 (reset 전까지 불변)
    previous - 직전 프레임
    current  - 최신 프레임

변형:
    AttitudeEcefAbsolutePoseProcessor                  - 플랫폼 절대 자세
    FusedEcefAbsolutePoseProcessor                     - 중력 레벨링 융합
    AccelerometerFusedEcefAbsolutePoseProcessor        - 가속도계 레벨링 융합
    DoubleFusedEcefAbsolutePoseProcessor               - 중력 레벨링 이중 융합
    AccelerometerDoubleFusedEcefAbsolutePoseProcessor  - 가속도계 레벨링 이중 융합

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from datetime import date, datetime
from typing import Callable, Optional, Union
import logging

from ..attitude.fusion import (
    BaseFusedGeomagneticAttitudeProcessor,
    DoubleFusedGeomagneticAttitudeProcessor,
    ForwardedAttribute,
    FusedGeomagneticAttitudeProcessor,
)
from ..geodesy.conversions import ecef_to_ned_frame, ned_to_ecef_frame, with_ned_rotation
from ..geodesy.magnetic import MagneticModel
from ..geodesy.navigator import navigate_ecef
from ..measurement.frames import EcefFrame, Location, NEDVelocity, NedFrame, PoseTransformation
from ..measurement.quaternion import Quaternion
from ..measurement.synced import SyncedAccelGravityGyroMag, SyncedAccelGyroMag, SyncedAttitudeAccelGyro
from ..measurement.triads import (
    AccelerometerMeasurement,
    GyroscopeMeasurement,
    ned_to_enu,
    ned_to_enu_attitude,
)

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1e9

# (processor, current, previous, initial, timestamp, transformation)
ProcessedListener = Callable[
    ['BaseEcefAbsolutePoseProcessor', EcefFrame, EcefFrame, EcefFrame, int, Optional[PoseTransformation]],
    None
]


class BaseEcefAbsolutePoseProcessor:
    """
    ECEF 절대 pose 프로세서 공통 구현

    하위 클래스는 process() 에서 self._current_attitude 를 갱신한 뒤
    _process_pose() 를 호출합니다.
    """

    def __init__(
        self,
        initial_location: Location,
        initial_velocity: Optional[NEDVelocity] = None,
        estimate_pose_transformation: bool = True,
        processor_listener: Optional[ProcessedListener] = None
    ):
        """
        Args:
            initial_location: 시작 측지 위치
            initial_velocity: 시작 NED 속도 (None 이면 정지)
            estimate_pose_transformation: 시작 대비 변환 계산 여부
            processor_listener: 처리 완료 콜백
        """
        self._initial_location = initial_location
        self.initial_velocity = initial_velocity if initial_velocity is not None else NEDVelocity()
        self.estimate_pose_transformation = estimate_pose_transformation
        self.processor_listener = processor_listener
        self.use_leveled_relative_attitude_respect_start = True
        self._current_attitude = Quaternion.identity()
        self._clear_state()

    @property
    def initial_location(self) -> Location:
        return self._initial_location

    @initial_location.setter
    def initial_location(self, value: Location):
        self._initial_location = value

    @property
    def initial_frame(self) -> Optional[EcefFrame]:
        return self._initial_frame

    @property
    def previous_frame(self) -> Optional[EcefFrame]:
        return self._previous_frame

    @property
    def current_frame(self) -> Optional[EcefFrame]:
        return self._current_frame

    @property
    def initial_ned_frame(self) -> Optional[NedFrame]:
        return self._initial_ned_frame

    @property
    def previous_ned_frame(self) -> Optional[NedFrame]:
        return self._previous_ned_frame

    @property
    def current_ned_frame(self) -> Optional[NedFrame]:
        return self._current_ned_frame

    @property
    def pose_transformation(self) -> Optional[PoseTransformation]:
        """시작 대비 변환 (ENU), 추정하지 않으면 None"""
        return self._pose_transformation

    @property
    def time_interval_seconds(self) -> float:
        return self._time_interval

    @property
    def current_attitude(self) -> Quaternion:
        """body -> NED 자세"""
        return self._current_attitude

    def _clear_state(self):
        self._initial_frame: Optional[EcefFrame] = None
        self._previous_frame: Optional[EcefFrame] = None
        self._current_frame: Optional[EcefFrame] = None
        self._initial_ned_frame: Optional[NedFrame] = None
        self._previous_ned_frame: Optional[NedFrame] = None
        self._current_ned_frame: Optional[NedFrame] = None
        self._initial_attitude: Optional[Quaternion] = None
        self._pose_transformation: Optional[PoseTransformation] = None
        self._previous_timestamp: Optional[int] = None
        self._time_interval = 0.0

    def reset(self):
        """프레임 및 시간 상태 초기화"""
        self._clear_state()
        self._current_attitude = Quaternion.identity()

    def process(self, synced_measurement) -> bool:
        raise NotImplementedError

    def _is_out_of_order(self, timestamp: int) -> bool:
        """직전 처리 시각보다 이른 샘플이면 상태를 건드리지 않고 버림"""
        previous = self._previous_timestamp
        if previous is not None and timestamp < previous:
            logger.warning(
                f"{type(self).__name__}: dropping out-of-order sample {timestamp} (previous {previous})"
            )
            return True
        return False

    def _process_time_interval(self, timestamp: int) -> bool:
        if self._is_out_of_order(timestamp):
            return False
        previous = self._previous_timestamp
        self._previous_timestamp = timestamp
        if previous is None:
            return False
        self._time_interval = (timestamp - previous) / NANOS_PER_SECOND
        return True

    def _initialize_frame_if_needed(self, timestamp: int):
        if self._initial_frame is not None:
            return

        self._initial_ned_frame = NedFrame(
            location=self._initial_location,
            velocity=self.initial_velocity.to_array(),
            rotation=self._current_attitude.to_matrix(),
            timestamp=timestamp
        )
        self._initial_frame = ned_to_ecef_frame(self._initial_ned_frame)
        self._current_frame = self._initial_frame
        self._current_ned_frame = self._initial_ned_frame
        self._initial_attitude = self._current_attitude
        logger.info(
            f"{type(self).__name__}: initial frame set at "
            f"lat={self._initial_location.latitude:.6f}, lon={self._initial_location.longitude:.6f}"
        )

    def _process_pose(
        self,
        accelerometer: AccelerometerMeasurement,
        gyroscope: GyroscopeMeasurement,
        timestamp: int
    ) -> bool:
        previous_timestamp = self._previous_timestamp
        if not self._process_time_interval(timestamp):
            return False

        self._initialize_frame_if_needed(previous_timestamp)

        previous = self._current_frame
        previous_ned = self._current_ned_frame

        navigated = navigate_ecef(
            self._time_interval,
            previous,
            accelerometer.to_ned(),
            gyroscope.to_ned(),
            timestamp
        )

        # 드리프트 방지: 자세를 NED 기준 추정 자세로 재설정
        current = with_ned_rotation(navigated, self._current_attitude.to_matrix())

        self._previous_frame = previous
        self._previous_ned_frame = previous_ned
        self._current_frame = current
        self._current_ned_frame = ecef_to_ned_frame(current)

        if self.estimate_pose_transformation:
            self._pose_transformation = self._compute_transformation()
        else:
            self._pose_transformation = None

        if self.processor_listener is not None:
            self.processor_listener(
                self,
                self._current_frame,
                self._previous_frame,
                self._initial_frame,
                timestamp,
                self._pose_transformation
            )
        return True

    def _compute_transformation(self) -> PoseTransformation:
        if self.use_leveled_relative_attitude_respect_start:
            _, _, initial_yaw = self._initial_attitude.to_euler()
            roll, pitch, yaw = self._current_attitude.to_euler()
            rotation = Quaternion.from_euler(roll, pitch, yaw - initial_yaw)
        else:
            rotation = self._current_attitude

        # ECEF 위치 차이를 시작 body 축으로 표현
        ecef_diff = self._current_frame.position - self._initial_frame.position
        local_diff = self._initial_frame.rotation.T @ ecef_diff

        return PoseTransformation(
            rotation=ned_to_enu_attitude(rotation),
            translation=ned_to_enu(local_diff)
        )


class AttitudeEcefAbsolutePoseProcessor(BaseEcefAbsolutePoseProcessor):
    """플랫폼 절대 자세 센서 기반 pose 프로세서"""

    def process(self, synced_measurement: SyncedAttitudeAccelGyro) -> bool:
        if not synced_measurement.is_complete:
            return False
        if self._is_out_of_order(synced_measurement.timestamp):
            return False

        self._current_attitude = synced_measurement.attitude.attitude_ned()
        return self._process_pose(
            synced_measurement.accelerometer,
            synced_measurement.gyroscope,
            synced_measurement.timestamp
        )


class BaseFusedEcefAbsolutePoseProcessor(BaseEcefAbsolutePoseProcessor):
    """
    자세 융합 코어 기반 pose 프로세서 공통 구현

    융합 설정은 내부 자세 프로세서로 그대로 전달됩니다.
    처리 후 항법 위치를 자세 프로세서에 되먹임하여 정밀 레벨링과 편각이
    이동한 위치를 따르도록 합니다.
    """

    attitude_processor_class = FusedGeomagneticAttitudeProcessor
    use_accelerometer = False

    use_indirect_interpolation = ForwardedAttribute('attitude_processor')
    interpolation_value = ForwardedAttribute('attitude_processor')
    indirect_interpolation_weight = ForwardedAttribute('attitude_processor')
    outlier_threshold = ForwardedAttribute('attitude_processor')
    outlier_panic_threshold = ForwardedAttribute('attitude_processor')
    panic_counter_threshold = ForwardedAttribute('attitude_processor')
    use_accurate_leveling = ForwardedAttribute('attitude_processor')
    use_accurate_relative_gyroscope = ForwardedAttribute('attitude_processor')
    magnetic_model = ForwardedAttribute('attitude_processor')
    use_world_magnetic_model = ForwardedAttribute('attitude_processor')
    world_magnetic_model_date = ForwardedAttribute('attitude_processor')
    adjust_gravity_norm = ForwardedAttribute('attitude_processor')

    def __init__(
        self,
        initial_location: Location,
        initial_velocity: Optional[NEDVelocity] = None,
        estimate_pose_transformation: bool = True,
        processor_listener: Optional[ProcessedListener] = None,
        magnetic_model: Optional[MagneticModel] = None,
        use_world_magnetic_model: bool = False,
        world_magnetic_model_date: Optional[Union[date, datetime]] = None,
        use_accurate_leveling: bool = True,
        use_accurate_relative_gyroscope: bool = True,
        adjust_gravity_norm: bool = True
    ):
        super().__init__(
            initial_location,
            initial_velocity=initial_velocity,
            estimate_pose_transformation=estimate_pose_transformation,
            processor_listener=processor_listener
        )
        self.attitude_processor: BaseFusedGeomagneticAttitudeProcessor = self.attitude_processor_class(
            use_accelerometer=self.use_accelerometer,
            location=initial_location,
            adjust_gravity_norm=adjust_gravity_norm,
            use_accurate_leveling=use_accurate_leveling,
            use_accurate_relative_gyroscope=use_accurate_relative_gyroscope,
            magnetic_model=magnetic_model,
            use_world_magnetic_model=use_world_magnetic_model,
            world_magnetic_model_date=world_magnetic_model_date
        )

    @BaseEcefAbsolutePoseProcessor.initial_location.setter
    def initial_location(self, value: Location):
        self._initial_location = value
        self.attitude_processor.location = value

    @property
    def gravity(self) -> np.ndarray:
        return self.attitude_processor.gravity

    def reset(self):
        super().reset()
        self.attitude_processor.reset()
        self.attitude_processor.location = self._initial_location

    def _leveling_measurement(self, synced_measurement):
        if self.use_accelerometer:
            return synced_measurement.accelerometer
        return synced_measurement.gravity

    def process(self, synced_measurement) -> bool:
        if not synced_measurement.is_complete:
            return False
        if self._is_out_of_order(synced_measurement.timestamp):
            return False

        if not self.attitude_processor.process(
            self._leveling_measurement(synced_measurement),
            synced_measurement.gyroscope,
            synced_measurement.magnetometer
        ):
            return False

        self._current_attitude = self.attitude_processor.attitude
        if not self._process_pose(
            synced_measurement.accelerometer,
            synced_measurement.gyroscope,
            synced_measurement.timestamp
        ):
            return False

        self.attitude_processor.location = self._current_ned_frame.location
        return True


class FusedEcefAbsolutePoseProcessor(BaseFusedEcefAbsolutePoseProcessor):
    """중력 + 자이로 + 자력계 융합 (SyncedAccelGravityGyroMag)"""

    def process(self, synced_measurement: SyncedAccelGravityGyroMag) -> bool:
        return super().process(synced_measurement)


class AccelerometerFusedEcefAbsolutePoseProcessor(BaseFusedEcefAbsolutePoseProcessor):
    """가속도계 + 자이로 + 자력계 융합 (SyncedAccelGyroMag)"""

    use_accelerometer = True

    def process(self, synced_measurement: SyncedAccelGyroMag) -> bool:
        return super().process(synced_measurement)


class DoubleFusedEcefAbsolutePoseProcessor(BaseFusedEcefAbsolutePoseProcessor):
    """중력 레벨링 이중 융합 (SyncedAccelGravityGyroMag)"""

    attitude_processor_class = DoubleFusedGeomagneticAttitudeProcessor

    def process(self, synced_measurement: SyncedAccelGravityGyroMag) -> bool:
        return super().process(synced_measurement)


class AccelerometerDoubleFusedEcefAbsolutePoseProcessor(BaseFusedEcefAbsolutePoseProcessor):
    """가속도계 레벨링 이중 융합 (SyncedAccelGyroMag)"""

    attitude_processor_class = DoubleFusedGeomagneticAttitudeProcessor
    use_accelerometer = True

    def process(self, synced_measurement: SyncedAccelGyroMag) -> bool:
        return super().process(synced_measurement)
