"""
fusion.py - 자세 융합 코어

자이로 적분(단기 전파)과 기준 자세(레벨링 또는 지자기)를 융합하여
드리프트가 보정된 자세를 추정합니다.

융합 상태 머신 (AttitudeFuser):
    NORMAL   - 기준과 일치, 설정된 보간으로 융합, 패닉 카운터 0
    OUTLIER  - 이상치 구간, 감쇠된 가중치로 융합
    PANICKED - 패닉 구간, 기준을 버리고 자이로 전파값 유지, 카운터 증가
    카운터가 임계값에 도달하면 다음 샘플에서 기준 자세로 재설정

불일치 판정은 |q_전파 · q_기준| (1 = 동일) 이 임계값 아래로 내려가는지로 합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, Union
import logging

from ..geodesy.magnetic import MagneticModel
from ..measurement.frames import Location
from ..measurement.quaternion import Quaternion, slerp
from ..measurement.triads import GyroscopeMeasurement, MagnetometerMeasurement
from .geomagnetic import GeomagneticAttitudeProcessor, build_leveling_processor
from .gravity import AccelerometerGravityProcessor, BaseGravityProcessor, GravityProcessor
from .gyroscope import AccurateRelativeGyroscopeAttitudeProcessor, RelativeGyroscopeAttitudeProcessor
from .leveling import AccurateLevelingProcessor

logger = logging.getLogger(__name__)

DEFAULT_INTERPOLATION_VALUE = 0.005
DEFAULT_INDIRECT_INTERPOLATION_WEIGHT = 0.01
DEFAULT_OUTLIER_THRESHOLD = 0.85
DEFAULT_OUTLIER_PANIC_THRESHOLD = 0.65
DEFAULT_PANIC_COUNTER_THRESHOLD = 60


class ForwardedAttribute:
    """
    내부 객체의 속성을 그대로 노출하는 디스크립터

    Example:
        >>> class Processor:
        ...     outlier_threshold = ForwardedAttribute('fuser')
    """

    def __init__(self, target: str, attribute: Optional[str] = None):
        self.target = target
        self.attribute = attribute

    def __set_name__(self, owner, name):
        if self.attribute is None:
            self.attribute = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return getattr(getattr(obj, self.target), self.attribute)

    def __set__(self, obj, value):
        setattr(getattr(obj, self.target), self.attribute, value)


class FusionState(Enum):
    """융합 상태"""
    NORMAL = 'normal'
    OUTLIER = 'outlier'
    PANICKED = 'panicked'


def build_gravity_processor(use_accelerometer: bool, location: Optional[Location],
                            adjust_gravity_norm: bool) -> BaseGravityProcessor:
    """레벨링 소스에 맞는 중력 추정기 생성"""
    if use_accelerometer:
        return AccelerometerGravityProcessor(location=location, adjust_gravity_norm=adjust_gravity_norm)
    return GravityProcessor(location=location, adjust_gravity_norm=adjust_gravity_norm)


def build_relative_gyroscope_processor(use_accurate: bool) -> RelativeGyroscopeAttitudeProcessor:
    if use_accurate:
        return AccurateRelativeGyroscopeAttitudeProcessor()
    return RelativeGyroscopeAttitudeProcessor()


class AttitudeFuser:
    """
    이상치/패닉 상태 머신을 가진 자세 융합기

    Example:
        >>> fuser = AttitudeFuser(panic_counter_threshold=10)
        >>> fused = fuser.fuse(delta, reference, time_interval=0.01)
        >>> fuser.state
        <FusionState.NORMAL: 'normal'>
    """

    def __init__(
        self,
        use_indirect_interpolation: bool = True,
        interpolation_value: float = DEFAULT_INTERPOLATION_VALUE,
        indirect_interpolation_weight: float = DEFAULT_INDIRECT_INTERPOLATION_WEIGHT,
        outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD,
        outlier_panic_threshold: float = DEFAULT_OUTLIER_PANIC_THRESHOLD,
        panic_counter_threshold: int = DEFAULT_PANIC_COUNTER_THRESHOLD,
        name: str = 'attitude'
    ):
        """
        Args:
            use_indirect_interpolation: 각속도 기반 간접 보간 사용 여부
            interpolation_value: 보간 계수 [0, 1]
            indirect_interpolation_weight: 간접 보간 가중치 (> 0)
            outlier_threshold: 이상치 임계값 (|dot|) [0, 1]
            outlier_panic_threshold: 패닉 임계값 (|dot|) [0, 1]
            panic_counter_threshold: 기준 재설정까지의 패닉 샘플 수 (> 0)
            name: 로그 식별 이름
        """
        self.use_indirect_interpolation = use_indirect_interpolation
        self.interpolation_value = interpolation_value
        self.indirect_interpolation_weight = indirect_interpolation_weight
        self.outlier_threshold = outlier_threshold
        self.outlier_panic_threshold = outlier_panic_threshold
        self.panic_counter_threshold = panic_counter_threshold
        self.name = name
        self.reset()

    @property
    def interpolation_value(self) -> float:
        return self._interpolation_value

    @interpolation_value.setter
    def interpolation_value(self, value: float):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Interpolation value must be in [0, 1]: {value}")
        self._interpolation_value = value

    @property
    def indirect_interpolation_weight(self) -> float:
        return self._indirect_interpolation_weight

    @indirect_interpolation_weight.setter
    def indirect_interpolation_weight(self, value: float):
        if value <= 0.0:
            raise ValueError(f"Indirect interpolation weight must be positive: {value}")
        self._indirect_interpolation_weight = value

    @property
    def outlier_threshold(self) -> float:
        return self._outlier_threshold

    @outlier_threshold.setter
    def outlier_threshold(self, value: float):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Outlier threshold must be in [0, 1]: {value}")
        self._outlier_threshold = value

    @property
    def outlier_panic_threshold(self) -> float:
        return self._outlier_panic_threshold

    @outlier_panic_threshold.setter
    def outlier_panic_threshold(self, value: float):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Outlier panic threshold must be in [0, 1]: {value}")
        self._outlier_panic_threshold = value

    @property
    def panic_counter_threshold(self) -> int:
        return self._panic_counter_threshold

    @panic_counter_threshold.setter
    def panic_counter_threshold(self, value: int):
        if value <= 0:
            raise ValueError(f"Panic counter threshold must be positive: {value}")
        self._panic_counter_threshold = value

    @property
    def state(self) -> FusionState:
        return self._state

    @property
    def panic_counter(self) -> int:
        return self._panic_counter

    @property
    def fused_attitude(self) -> Optional[Quaternion]:
        return self._fused

    def reset(self):
        """융합 상태 초기화 (다음 샘플은 기준 자세로 시작)"""
        self._fused: Optional[Quaternion] = None
        self._panic_counter = 0
        self._state = FusionState.NORMAL

    def slerp_factor(self, delta: Quaternion, time_interval: float) -> float:
        """보간 계수 (직접: 고정값, 간접: 회전 속도에 비례)"""
        if not self.use_indirect_interpolation or time_interval <= 0.0:
            return self._interpolation_value
        rotation_velocity = delta.rotation_angle / time_interval
        return min(
            self._interpolation_value + self._indirect_interpolation_weight * abs(rotation_velocity),
            1.0
        )

    def fuse(self, delta: Quaternion, reference: Quaternion, time_interval: float) -> Quaternion:
        """
        자이로 증분과 기준 자세 융합

        Args:
            delta: 직전 샘플 대비 body 회전 증분
            reference: 기준 자세 (레벨링 또는 지자기)
            time_interval: 샘플 간격 (초)

        Returns:
            융합 자세
        """
        reference = reference.normalize()

        if self._fused is None or self._panic_counter >= self._panic_counter_threshold:
            if self._fused is not None:
                logger.info(f"{self.name}: attitude reset to reference after {self._panic_counter} panic samples")
            self._fused = reference
            self._panic_counter = 0
            self._state = FusionState.NORMAL
            return self._fused

        propagated = (self._fused * delta).normalize()
        abs_dot = abs(propagated.dot(reference))

        if abs_dot < self._outlier_panic_threshold:
            self._panic_counter += 1
            self._state = FusionState.PANICKED
            logger.debug(f"{self.name}: panic counter increased to {self._panic_counter} (dot={abs_dot:.4f})")
            self._fused = propagated
        elif abs_dot < self._outlier_threshold:
            band = self._outlier_threshold - self._outlier_panic_threshold
            weight = (abs_dot - self._outlier_panic_threshold) / band if band > 0.0 else 0.0
            self._state = FusionState.OUTLIER
            logger.debug(f"{self.name}: outlier reference (dot={abs_dot:.4f}), weight={weight:.3f}")
            self._fused = slerp(propagated, reference, self.slerp_factor(delta, time_interval) * weight)
        else:
            self._state = FusionState.NORMAL
            self._panic_counter = 0
            self._fused = slerp(propagated, reference, self.slerp_factor(delta, time_interval))

        return self._fused


class LeveledRelativeAttitudeProcessor:
    """
    레벨링 상대 자세 추정기

    자이로 상대 자세를 레벨링(roll/pitch) 기준과 융합합니다.
    기준 자세의 yaw 는 자이로 상대 자세에서 가져오므로 결과 yaw 는 시작 시점 기준입니다.
    """

    use_indirect_interpolation = ForwardedAttribute('fuser')
    interpolation_value = ForwardedAttribute('fuser')
    indirect_interpolation_weight = ForwardedAttribute('fuser')
    outlier_threshold = ForwardedAttribute('fuser')
    outlier_panic_threshold = ForwardedAttribute('fuser')
    panic_counter_threshold = ForwardedAttribute('fuser')
    adjust_gravity_norm = ForwardedAttribute('gravity_processor')

    def __init__(
        self,
        use_accelerometer: bool = False,
        location: Optional[Location] = None,
        adjust_gravity_norm: bool = True,
        use_accurate_leveling: bool = False,
        use_accurate_relative_gyroscope: bool = True,
        fuser: Optional[AttitudeFuser] = None
    ):
        self.use_accelerometer = use_accelerometer
        self._location = location
        self.gravity_processor = build_gravity_processor(use_accelerometer, location, adjust_gravity_norm)
        self._use_accurate_leveling = use_accurate_leveling
        self._leveling = build_leveling_processor(use_accurate_leveling, location)
        self._use_accurate_relative_gyroscope = use_accurate_relative_gyroscope
        self._gyroscope = build_relative_gyroscope_processor(use_accurate_relative_gyroscope)
        self.fuser = fuser if fuser is not None else AttitudeFuser(name='leveled-relative')
        self._previous_relative = Quaternion.identity()

    @property
    def location(self) -> Optional[Location]:
        return self._location

    @location.setter
    def location(self, value: Optional[Location]):
        if value is None and self._use_accurate_leveling:
            raise ValueError("Accurate leveling requires a location")
        self._location = value
        self.gravity_processor.location = value
        if isinstance(self._leveling, AccurateLevelingProcessor):
            self._leveling.location = value

    @property
    def use_accurate_leveling(self) -> bool:
        return self._use_accurate_leveling

    @use_accurate_leveling.setter
    def use_accurate_leveling(self, value: bool):
        self._leveling = build_leveling_processor(value, self._location)
        self._use_accurate_leveling = value

    @property
    def use_accurate_relative_gyroscope(self) -> bool:
        return self._use_accurate_relative_gyroscope

    @use_accurate_relative_gyroscope.setter
    def use_accurate_relative_gyroscope(self, value: bool):
        self._gyroscope = build_relative_gyroscope_processor(value)
        self._previous_relative = Quaternion.identity()
        self._use_accurate_relative_gyroscope = value

    @property
    def attitude(self) -> Optional[Quaternion]:
        """융합 자세 (첫 융합 전에는 None)"""
        return self.fuser.fused_attitude

    @property
    def gravity(self) -> np.ndarray:
        return self.gravity_processor.gravity

    @property
    def time_interval_seconds(self) -> float:
        return self._gyroscope.time_interval_seconds

    def reset(self):
        self.gravity_processor.reset()
        self._leveling.reset()
        self._gyroscope.reset()
        self.fuser.reset()
        self._previous_relative = Quaternion.identity()

    def process(self, leveling_measurement, gyroscope: GyroscopeMeasurement) -> bool:
        """
        Args:
            leveling_measurement: 중력 또는 가속도계 샘플
            gyroscope: 자이로 샘플

        Returns:
            융합 자세가 갱신되었는지 여부
        """
        if not self.gravity_processor.process(leveling_measurement):
            return False
        if not self._gyroscope.process(gyroscope):
            return False

        relative = self._gyroscope.attitude
        delta = (self._previous_relative.inverse() * relative).normalize()
        self._previous_relative = relative

        self._leveling.process(self.gravity_processor.gravity)
        _, _, yaw = relative.to_euler()
        reference = Quaternion.from_euler(self._leveling.roll, self._leveling.pitch, yaw)

        self.fuser.fuse(delta, reference, self._gyroscope.time_interval_seconds)
        return True


class BaseFusedGeomagneticAttitudeProcessor:
    """
    지자기 절대 자세와 상대 자세를 융합하는 공통 구현

    하위 클래스는 _process_relative() 로 상대 자세와 샘플 간격을 제공합니다.
    """

    use_indirect_interpolation = ForwardedAttribute('fuser')
    interpolation_value = ForwardedAttribute('fuser')
    indirect_interpolation_weight = ForwardedAttribute('fuser')
    outlier_threshold = ForwardedAttribute('fuser')
    outlier_panic_threshold = ForwardedAttribute('fuser')
    panic_counter_threshold = ForwardedAttribute('fuser')
    magnetic_model = ForwardedAttribute('geomagnetic_processor')
    use_world_magnetic_model = ForwardedAttribute('geomagnetic_processor')
    world_magnetic_model_date = ForwardedAttribute('geomagnetic_processor')

    def __init__(
        self,
        use_accelerometer: bool = False,
        location: Optional[Location] = None,
        adjust_gravity_norm: bool = True,
        use_accurate_leveling: bool = False,
        use_accurate_relative_gyroscope: bool = True,
        magnetic_model: Optional[MagneticModel] = None,
        use_world_magnetic_model: bool = False,
        world_magnetic_model_date: Optional[Union[date, datetime]] = None,
        fuser: Optional[AttitudeFuser] = None
    ):
        self.use_accelerometer = use_accelerometer
        self.geomagnetic_processor = GeomagneticAttitudeProcessor(
            build_gravity_processor(use_accelerometer, location, adjust_gravity_norm),
            location=location,
            use_accurate_leveling=use_accurate_leveling,
            magnetic_model=magnetic_model,
            use_world_magnetic_model=use_world_magnetic_model,
            world_magnetic_model_date=world_magnetic_model_date
        )
        self._use_accurate_relative_gyroscope = use_accurate_relative_gyroscope
        self.fuser = fuser if fuser is not None else AttitudeFuser(name=type(self).__name__)
        self._previous_relative: Optional[Quaternion] = None

    @property
    def location(self) -> Optional[Location]:
        return self.geomagnetic_processor.location

    @location.setter
    def location(self, value: Optional[Location]):
        self.geomagnetic_processor.location = value

    @property
    def use_accurate_leveling(self) -> bool:
        return self.geomagnetic_processor.use_accurate_leveling

    @use_accurate_leveling.setter
    def use_accurate_leveling(self, value: bool):
        self.geomagnetic_processor.use_accurate_leveling = value

    @property
    def adjust_gravity_norm(self) -> bool:
        return self.geomagnetic_processor.adjust_gravity_norm

    @adjust_gravity_norm.setter
    def adjust_gravity_norm(self, value: bool):
        self.geomagnetic_processor.adjust_gravity_norm = value

    @property
    def use_accurate_relative_gyroscope(self) -> bool:
        return self._use_accurate_relative_gyroscope

    @use_accurate_relative_gyroscope.setter
    def use_accurate_relative_gyroscope(self, value: bool):
        self._use_accurate_relative_gyroscope = value
        self._previous_relative = None

    @property
    def attitude(self) -> Optional[Quaternion]:
        """융합된 body -> NED 절대 자세 (첫 융합 전에는 None)"""
        return self.fuser.fused_attitude

    @property
    def geomagnetic_attitude(self) -> Quaternion:
        return self.geomagnetic_processor.attitude

    @property
    def gravity(self) -> np.ndarray:
        return self.geomagnetic_processor.gravity

    @property
    def state(self) -> FusionState:
        return self.fuser.state

    @property
    def time_interval_seconds(self) -> float:
        raise NotImplementedError

    def reset(self):
        self.geomagnetic_processor.reset()
        self.fuser.reset()
        self._previous_relative = None

    def _process_relative(self, leveling_measurement,
                          gyroscope: GyroscopeMeasurement) -> Optional[Tuple[Quaternion, float]]:
        raise NotImplementedError

    def process(
        self,
        leveling_measurement,
        gyroscope: GyroscopeMeasurement,
        magnetometer: MagnetometerMeasurement
    ) -> bool:
        """
        Args:
            leveling_measurement: 중력 또는 가속도계 샘플
            gyroscope: 자이로 샘플
            magnetometer: 자력계 샘플

        Returns:
            융합 자세가 갱신되었는지 여부
        """
        if not self.geomagnetic_processor.process(leveling_measurement, magnetometer):
            return False

        result = self._process_relative(leveling_measurement, gyroscope)
        if result is None:
            return False

        relative, time_interval = result
        previous = self._previous_relative
        self._previous_relative = relative
        if previous is None:
            return False

        delta = (previous.inverse() * relative).normalize()
        self.fuser.fuse(delta, self.geomagnetic_processor.attitude, time_interval)
        return True


class FusedGeomagneticAttitudeProcessor(BaseFusedGeomagneticAttitudeProcessor):
    """지자기 절대 자세 + 자이로 상대 자세 융합"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._gyroscope = build_relative_gyroscope_processor(self._use_accurate_relative_gyroscope)

    @BaseFusedGeomagneticAttitudeProcessor.use_accurate_relative_gyroscope.setter
    def use_accurate_relative_gyroscope(self, value: bool):
        BaseFusedGeomagneticAttitudeProcessor.use_accurate_relative_gyroscope.fset(self, value)
        self._gyroscope = build_relative_gyroscope_processor(value)

    @property
    def time_interval_seconds(self) -> float:
        return self._gyroscope.time_interval_seconds

    def reset(self):
        super().reset()
        self._gyroscope.reset()

    def _process_relative(self, leveling_measurement, gyroscope):
        if not self._gyroscope.process(gyroscope):
            return None
        return self._gyroscope.attitude, self._gyroscope.time_interval_seconds


class DoubleFusedGeomagneticAttitudeProcessor(BaseFusedGeomagneticAttitudeProcessor):
    """지자기 절대 자세 + 레벨링 상대 자세 융합"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.relative_processor = LeveledRelativeAttitudeProcessor(
            use_accelerometer=self.use_accelerometer,
            location=self.geomagnetic_processor.location,
            adjust_gravity_norm=self.geomagnetic_processor.adjust_gravity_norm,
            use_accurate_leveling=self.geomagnetic_processor.use_accurate_leveling,
            use_accurate_relative_gyroscope=self._use_accurate_relative_gyroscope
        )

    @BaseFusedGeomagneticAttitudeProcessor.location.setter
    def location(self, value: Optional[Location]):
        BaseFusedGeomagneticAttitudeProcessor.location.fset(self, value)
        self.relative_processor.location = value

    @BaseFusedGeomagneticAttitudeProcessor.use_accurate_leveling.setter
    def use_accurate_leveling(self, value: bool):
        BaseFusedGeomagneticAttitudeProcessor.use_accurate_leveling.fset(self, value)
        self.relative_processor.use_accurate_leveling = value

    @BaseFusedGeomagneticAttitudeProcessor.adjust_gravity_norm.setter
    def adjust_gravity_norm(self, value: bool):
        BaseFusedGeomagneticAttitudeProcessor.adjust_gravity_norm.fset(self, value)
        self.relative_processor.adjust_gravity_norm = value

    @BaseFusedGeomagneticAttitudeProcessor.use_accurate_relative_gyroscope.setter
    def use_accurate_relative_gyroscope(self, value: bool):
        BaseFusedGeomagneticAttitudeProcessor.use_accurate_relative_gyroscope.fset(self, value)
        self.relative_processor.use_accurate_relative_gyroscope = value

    @property
    def time_interval_seconds(self) -> float:
        return self.relative_processor.time_interval_seconds

    def reset(self):
        super().reset()
        self.relative_processor.reset()

    def _process_relative(self, leveling_measurement, gyroscope):
        if not self.relative_processor.process(leveling_measurement, gyroscope):
            return None
        return self.relative_processor.attitude, self.relative_processor.time_interval_seconds
