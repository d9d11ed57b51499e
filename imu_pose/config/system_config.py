"""
system_config.py - 시스템 설정 관리

자세 융합 파라미터, 추정기 선택 플래그, 로그 재생, 로깅 설정을 통합 관리합니다.

Version: 1.0
Author: FurSys AI Team
"""

import yaml
from pathlib import Path
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
import logging

from ..measurement.frames import Location, NEDVelocity
from ..measurement.triads import SpeedTriad

logger = logging.getLogger(__name__)


@dataclass
class FusionConfig:
    """
    자세 융합 설정

    임계값은 |q_전파 · q_기준| 기준 (1 = 동일 자세) 입니다.
    """
    # 보간
    use_indirect_interpolation: bool = True
    interpolation_value: float = 0.005
    indirect_interpolation_weight: float = 0.01

    # 이상치 / 패닉
    outlier_threshold: float = 0.85
    outlier_panic_threshold: float = 0.65
    panic_counter_threshold: int = 60

    # 알고리즘 선택
    use_accurate_leveling: bool = True
    use_accurate_relative_gyroscope: bool = True

    # 지자기 모델
    use_world_magnetic_model: bool = False
    world_magnetic_model_date: Optional[date] = None  # None 이면 현재 날짜
    magnetic_model_file: Optional[str] = None         # None 이면 geomag 내장 WMM

    # 중력 / 기준 프레임
    adjust_gravity_norm: bool = True
    use_leveled_relative_attitude_respect_start: bool = True

    def validate(self):
        """값 범위 검사 (잘못된 값이면 ValueError)"""
        for name in ('interpolation_value', 'outlier_threshold', 'outlier_panic_threshold'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1]: {value}")
        if self.indirect_interpolation_weight <= 0.0:
            raise ValueError(f"indirect_interpolation_weight must be positive: {self.indirect_interpolation_weight}")
        if self.panic_counter_threshold <= 0:
            raise ValueError(f"panic_counter_threshold must be positive: {self.panic_counter_threshold}")


@dataclass
class LocationConfig:
    """측지 위치 설정 (도, 도, m)"""
    latitude: float = 0.0
    longitude: float = 0.0
    height: float = 0.0

    def to_location(self) -> Location:
        return Location(latitude=self.latitude, longitude=self.longitude, height=self.height)


@dataclass
class EstimatorConfig:
    """추정기 설정"""
    # 프로세서 선택 플래그 (생성 후 변경 불가)
    use_attitude_sensor: bool = False
    use_double_fused_attitude_processor: bool = True
    use_accelerometer_for_attitude_estimation: bool = False

    estimate_pose_transformation: bool = True

    # 초기 상태
    initial_location: Optional[LocationConfig] = field(default_factory=LocationConfig)
    initial_velocity: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])  # NED (m/s)

    def location(self) -> Optional[Location]:
        if self.initial_location is None:
            return None
        return self.initial_location.to_location()

    def velocity(self) -> NEDVelocity:
        vn, ve, vd = self.initial_velocity
        return NEDVelocity(vn=vn, ve=ve, vd=vd)

    def speed(self) -> SpeedTriad:
        vx, vy, vz = self.initial_velocity
        return SpeedTriad(x=vx, y=vy, z=vz)


@dataclass
class ReplayConfig:
    """센서 로그 재생 설정"""
    log_path: Optional[str] = None
    relative: bool = False
    max_sync_delay_ms: float = 20.0


@dataclass
class LoggingConfig:
    """로깅 설정"""
    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "imu_pose.log"


@dataclass
class SystemConfig:
    """imu_pose 시스템 전체 설정"""
    estimator: EstimatorConfig = field(default_factory=EstimatorConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def save(self, filepath: str):
        """설정을 YAML 파일로 저장"""
        config_dict = {
            'estimator': asdict(self.estimator),
            'fusion': asdict(self.fusion),
            'replay': asdict(self.replay),
            'logging': asdict(self.logging),
        }

        with open(filepath, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)

        logger.info(f"Config saved to {filepath}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SystemConfig':
        """딕셔너리에서 설정 생성"""
        estimator_dict = dict(d.get('estimator', {}) or {})
        if 'initial_location' in estimator_dict and estimator_dict['initial_location'] is not None:
            estimator_dict['initial_location'] = LocationConfig(**estimator_dict['initial_location'])

        fusion = FusionConfig(**(d.get('fusion', {}) or {}))
        fusion.validate()

        return cls(
            estimator=EstimatorConfig(**estimator_dict),
            fusion=fusion,
            replay=ReplayConfig(**(d.get('replay', {}) or {})),
            logging=LoggingConfig(**(d.get('logging', {}) or {})),
        )


def load_config(filepath: str) -> SystemConfig:
    """
    YAML 파일에서 설정 로드

    Args:
        filepath: 설정 파일 경로

    Returns:
        SystemConfig: 로드된 설정
    """
    path = Path(filepath)

    if not path.exists():
        logger.warning(f"Config file not found: {filepath}, using defaults")
        return SystemConfig()

    with open(path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        return SystemConfig()

    return SystemConfig.from_dict(config_dict)


def create_default_config(save_path: Optional[str] = None) -> SystemConfig:
    """
    기본 설정 생성

    Args:
        save_path: 저장 경로 (None이면 저장 안함)

    Returns:
        SystemConfig: 기본 설정
    """
    config = SystemConfig()

    if save_path:
        config.save(save_path)

    return config
