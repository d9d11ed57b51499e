"""
relative.py - 상대 pose 프로세서

추적 시작 시점을 원점으로 하는 상대 pose 를 추정합니다.
중력을 뺀 가속도를 직전/현재 자세의 중간 자세로 회전시켜 속도/위치를 적분하며,
시작 대비 변환은 매 샘플 항상 계산합니다.

변형:
    AttitudeRelativePoseProcessor             - 플랫폼 상대 자세 + 가속도계
    FusedRelativePoseProcessor                - 중력 + 자이로 레벨링 상대 자세
    AccelerometerFusedRelativePoseProcessor   - 가속도계 + 자이로 레벨링 상대 자세

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Callable, Optional
import logging

from ..attitude.fusion import ForwardedAttribute, LeveledRelativeAttitudeProcessor
from ..attitude.gravity import AccelerometerGravityProcessor
from ..measurement.frames import Location, PoseTransformation
from ..measurement.quaternion import Quaternion, slerp
from ..measurement.synced import SyncedAccelGravityGyro, SyncedAccelGyro, SyncedAttitudeAccel
from ..measurement.triads import AccelerometerMeasurement, SpeedTriad, ned_to_enu, ned_to_enu_attitude

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1e9

# (processor, timestamp, transformation)
RelativeProcessedListener = Callable[['BaseRelativePoseProcessor', int, PoseTransformation], None]


class BaseRelativePoseProcessor:
    """
    상대 pose 프로세서 공통 구현

    하위 클래스는 process() 에서 self._current_attitude 와 self._gravity 를
    갱신한 뒤 _process_pose() 를 호출합니다.
    """

    def __init__(
        self,
        initial_speed: Optional[SpeedTriad] = None,
        processor_listener: Optional[RelativeProcessedListener] = None
    ):
        """
        Args:
            initial_speed: 시작 속도 (NED 축, None 이면 정지)
            processor_listener: 처리 완료 콜백
        """
        self.initial_speed = initial_speed if initial_speed is not None else SpeedTriad(0.0, 0.0, 0.0)
        self.processor_listener = processor_listener
        self._current_attitude = Quaternion.identity()
        self._gravity = np.zeros(3)
        self._clear_state()

    @property
    def location(self) -> Optional[Location]:
        raise NotImplementedError

    @property
    def adjust_gravity_norm(self) -> bool:
        raise NotImplementedError

    @property
    def pose_transformation(self) -> Optional[PoseTransformation]:
        """시작 대비 변환 (ENU), 첫 처리 전에는 None"""
        return self._pose_transformation

    @property
    def time_interval_seconds(self) -> float:
        return self._time_interval

    @property
    def current_attitude(self) -> Quaternion:
        return self._current_attitude

    @property
    def initial_attitude(self) -> Optional[Quaternion]:
        return self._initial_attitude

    @property
    def position(self) -> np.ndarray:
        """시작점 대비 위치 (NED 축, m)"""
        return self._position.copy()

    @property
    def velocity(self) -> np.ndarray:
        """속도 (NED 축, m/s)"""
        return self._velocity.copy()

    @property
    def gravity(self) -> np.ndarray:
        return self._gravity.copy()

    def _clear_state(self):
        self._initialized = False
        self._initial_attitude: Optional[Quaternion] = None
        self._previous_attitude: Optional[Quaternion] = None
        self._position = np.zeros(3)
        self._velocity = np.zeros(3)
        self._pose_transformation: Optional[PoseTransformation] = None
        self._previous_timestamp: Optional[int] = None
        self._time_interval = 0.0

    def reset(self):
        self._clear_state()
        self._current_attitude = Quaternion.identity()
        self._gravity = np.zeros(3)

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

    def _initialize_if_needed(self):
        if self._initialized:
            return
        self._initial_attitude = self._current_attitude
        self._previous_attitude = self._current_attitude
        self._velocity = self.initial_speed.to_array()
        self._position = np.zeros(3)
        self._initialized = True
        logger.info(f"{type(self).__name__}: relative pose tracking initialized")

    def _process_pose(self, accelerometer: AccelerometerMeasurement, timestamp: int) -> bool:
        if not self._process_time_interval(timestamp):
            return False

        self._initialize_if_needed()
        dt = self._time_interval

        # 직전/현재 자세의 중간 자세로 body 가속도를 회전
        average_attitude = slerp(self._previous_attitude, self._current_attitude, 0.5)
        body_acceleration = accelerometer.to_ned() - self._gravity
        acceleration = average_attitude.rotate(body_acceleration)

        old_velocity = self._velocity
        new_velocity = old_velocity + acceleration * dt
        self._position = self._position + 0.5 * (old_velocity + new_velocity) * dt
        self._velocity = new_velocity

        self._pose_transformation = PoseTransformation(
            rotation=ned_to_enu_attitude(self._current_attitude),
            translation=ned_to_enu(self._position)
        )

        if self.processor_listener is not None:
            self.processor_listener(self, timestamp, self._pose_transformation)

        self._previous_attitude = self._current_attitude
        return True


class AttitudeRelativePoseProcessor(BaseRelativePoseProcessor):
    """
    플랫폼 상대 자세 기반 상대 pose 프로세서

    중력은 가속도계 Kalman 저역 통과로 추정합니다.
    """

    adjust_gravity_norm = ForwardedAttribute('gravity_processor')

    def __init__(
        self,
        initial_speed: Optional[SpeedTriad] = None,
        processor_listener: Optional[RelativeProcessedListener] = None,
        location: Optional[Location] = None,
        adjust_gravity_norm: bool = True
    ):
        super().__init__(initial_speed=initial_speed, processor_listener=processor_listener)
        self.gravity_processor = AccelerometerGravityProcessor(
            location=location,
            adjust_gravity_norm=adjust_gravity_norm
        )

    @property
    def location(self) -> Optional[Location]:
        return self.gravity_processor.location

    @location.setter
    def location(self, value: Optional[Location]):
        self.gravity_processor.location = value

    def reset(self):
        super().reset()
        self.gravity_processor.reset()

    def process(self, synced_measurement: SyncedAttitudeAccel) -> bool:
        if not synced_measurement.is_complete:
            return False
        if self._is_out_of_order(synced_measurement.timestamp):
            return False

        if not self.gravity_processor.process(synced_measurement.accelerometer):
            return False

        self._gravity = self.gravity_processor.gravity
        self._current_attitude = synced_measurement.attitude.attitude_ned()
        return self._process_pose(synced_measurement.accelerometer, synced_measurement.timestamp)


class BaseFusedRelativePoseProcessor(BaseRelativePoseProcessor):
    """레벨링 상대 자세 기반 상대 pose 프로세서 공통 구현"""

    use_accelerometer = False

    use_indirect_interpolation = ForwardedAttribute('attitude_processor')
    interpolation_value = ForwardedAttribute('attitude_processor')
    indirect_interpolation_weight = ForwardedAttribute('attitude_processor')
    outlier_threshold = ForwardedAttribute('attitude_processor')
    outlier_panic_threshold = ForwardedAttribute('attitude_processor')
    panic_counter_threshold = ForwardedAttribute('attitude_processor')
    use_accurate_leveling = ForwardedAttribute('attitude_processor')
    use_accurate_relative_gyroscope = ForwardedAttribute('attitude_processor')
    location = ForwardedAttribute('attitude_processor')
    adjust_gravity_norm = ForwardedAttribute('attitude_processor')

    def __init__(
        self,
        initial_speed: Optional[SpeedTriad] = None,
        processor_listener: Optional[RelativeProcessedListener] = None,
        location: Optional[Location] = None,
        adjust_gravity_norm: bool = True,
        use_accurate_leveling: bool = False,
        use_accurate_relative_gyroscope: bool = True
    ):
        super().__init__(initial_speed=initial_speed, processor_listener=processor_listener)
        self.attitude_processor = LeveledRelativeAttitudeProcessor(
            use_accelerometer=self.use_accelerometer,
            location=location,
            adjust_gravity_norm=adjust_gravity_norm,
            use_accurate_leveling=use_accurate_leveling,
            use_accurate_relative_gyroscope=use_accurate_relative_gyroscope
        )

    def reset(self):
        super().reset()
        self.attitude_processor.reset()

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
            synced_measurement.gyroscope
        ):
            return False

        self._current_attitude = self.attitude_processor.attitude
        self._gravity = self.attitude_processor.gravity
        return self._process_pose(synced_measurement.accelerometer, synced_measurement.timestamp)


class FusedRelativePoseProcessor(BaseFusedRelativePoseProcessor):
    """중력 + 자이로 (SyncedAccelGravityGyro)"""

    def process(self, synced_measurement: SyncedAccelGravityGyro) -> bool:
        return super().process(synced_measurement)


class AccelerometerFusedRelativePoseProcessor(BaseFusedRelativePoseProcessor):
    """가속도계 + 자이로 (SyncedAccelGyro)"""

    use_accelerometer = True

    def process(self, synced_measurement: SyncedAccelGyro) -> bool:
        return super().process(synced_measurement)
