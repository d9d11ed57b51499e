"""
자세 융합 코어 단위 테스트

AttitudeFuser 상태 머신 (정상 / 이상치 / 패닉) 과
융합 자세 프로세서를 검증합니다.
"""

from datetime import date

import numpy as np
import pytest

from imu_pose.attitude.fusion import (
    AttitudeFuser,
    DoubleFusedGeomagneticAttitudeProcessor,
    FusedGeomagneticAttitudeProcessor,
    FusionState,
    LeveledRelativeAttitudeProcessor,
)
from imu_pose.geodesy.magnetic import MagneticModel
from imu_pose.measurement.frames import Location
from imu_pose.measurement.quaternion import Quaternion
from imu_pose.measurement.triads import (
    AccelerometerMeasurement,
    GravityMeasurement,
    GyroscopeMeasurement,
    MagnetometerMeasurement,
)


SEOUL = Location(latitude=37.5665, longitude=126.9780, height=40.0)
NS = 1_000_000_000
IDENTITY = Quaternion.identity()


def yaw(angle: float) -> Quaternion:
    return Quaternion.from_euler(0.0, 0.0, angle)


def stationary_samples(count: int, interval_ns: int = NS // 100):
    """정지, 수평, 북향 샘플 (gravity, accelerometer, gyroscope, magnetometer)"""
    for i in range(count):
        t = i * interval_ns
        yield (
            GravityMeasurement(0.0, 0.0, 9.81, timestamp=t),
            AccelerometerMeasurement(0.0, 0.0, 9.81, timestamp=t),
            GyroscopeMeasurement(0.0, 0.0, 0.0, timestamp=t),
            MagnetometerMeasurement(0.0, 20e-6, -40e-6, timestamp=t),
        )


class ZeroDeclinationModel(MagneticModel):
    def declination(self, location, when):
        return 0.0


class TestAttitudeFuserValidation:
    """융합 파라미터 검증 테스트"""

    @pytest.mark.parametrize('name,value', [
        ('interpolation_value', -0.1),
        ('interpolation_value', 1.1),
        ('indirect_interpolation_weight', 0.0),
        ('outlier_threshold', 1.5),
        ('outlier_panic_threshold', -0.2),
        ('panic_counter_threshold', 0),
    ])
    def test_invalid_values_raise(self, name, value):
        fuser = AttitudeFuser()
        with pytest.raises(ValueError):
            setattr(fuser, name, value)

    def test_invalid_constructor_value_raises(self):
        with pytest.raises(ValueError):
            AttitudeFuser(panic_counter_threshold=-1)

    def test_defaults(self):
        fuser = AttitudeFuser()
        assert fuser.use_indirect_interpolation
        assert fuser.interpolation_value == 0.005
        assert fuser.indirect_interpolation_weight == 0.01
        assert fuser.outlier_threshold == 0.85
        assert fuser.outlier_panic_threshold == 0.65
        assert fuser.panic_counter_threshold == 60


class TestAttitudeFuser:
    """융합 상태 머신 테스트"""

    def test_first_sample_adopts_reference(self):
        fuser = AttitudeFuser()
        reference = yaw(0.7)
        fused = fuser.fuse(IDENTITY, reference, 0.01)
        assert fused.angle_to(reference) == pytest.approx(0.0, abs=1e-6)
        assert fuser.state == FusionState.NORMAL

    def test_normal_slerp_towards_reference(self):
        fuser = AttitudeFuser(use_indirect_interpolation=False, interpolation_value=0.1)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)

        fused = fuser.fuse(IDENTITY, yaw(0.1), 0.01)

        assert fuser.state == FusionState.NORMAL
        assert fused.angle_to(IDENTITY) == pytest.approx(0.01, abs=1e-6)

    def test_gyro_delta_is_propagated(self):
        """기준과 같은 회전이 자이로에서 오면 기준과 일치"""
        fuser = AttitudeFuser()
        fuser.fuse(IDENTITY, IDENTITY, 0.01)
        fused = fuser.fuse(yaw(0.05), yaw(0.05), 0.01)
        assert fused.angle_to(yaw(0.05)) == pytest.approx(0.0, abs=1e-6)

    def test_outlier_attenuates_interpolation(self):
        """이상치 구간 가중치 = (dot - panic) / (outlier - panic)"""
        fuser = AttitudeFuser(use_indirect_interpolation=False, interpolation_value=0.1)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)

        angle = 2.0 * np.arccos(0.75)  # |dot| = 0.75
        fused = fuser.fuse(IDENTITY, yaw(angle), 0.01)

        assert fuser.state == FusionState.OUTLIER
        assert fuser.panic_counter == 0
        assert fused.angle_to(IDENTITY) == pytest.approx(0.1 * 0.5 * angle, abs=1e-6)

    def test_panic_keeps_propagated_attitude(self):
        fuser = AttitudeFuser(panic_counter_threshold=5)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)

        fused = fuser.fuse(IDENTITY, yaw(np.pi), 0.01)

        assert fuser.state == FusionState.PANICKED
        assert fuser.panic_counter == 1
        assert fused.angle_to(IDENTITY) == pytest.approx(0.0, abs=1e-6)

    def test_panic_recovery_after_threshold(self):
        """N 번 패닉 후 다음 샘플에서 기준으로 재설정"""
        threshold = 5
        fuser = AttitudeFuser(panic_counter_threshold=threshold)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)
        reference = yaw(np.pi)

        for _ in range(threshold):
            fused = fuser.fuse(IDENTITY, reference, 0.01)
        assert fuser.panic_counter == threshold
        assert fused.angle_to(IDENTITY) == pytest.approx(0.0, abs=1e-6)

        fused = fuser.fuse(IDENTITY, reference, 0.01)
        assert fused.angle_to(reference) == pytest.approx(0.0, abs=1e-6)
        assert fuser.panic_counter == 0
        assert fuser.state == FusionState.NORMAL

    def test_panic_counter_cleared_by_normal_sample(self):
        fuser = AttitudeFuser(panic_counter_threshold=5)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)
        fuser.fuse(IDENTITY, yaw(np.pi), 0.01)
        fuser.fuse(IDENTITY, IDENTITY, 0.01)
        assert fuser.panic_counter == 0

    def test_indirect_slerp_factor(self):
        fuser = AttitudeFuser(interpolation_value=0.005, indirect_interpolation_weight=0.01)
        assert fuser.slerp_factor(yaw(0.02), 0.01) == pytest.approx(0.005 + 0.01 * 2.0)

    def test_indirect_slerp_factor_clamped(self):
        fuser = AttitudeFuser()
        assert fuser.slerp_factor(yaw(3.0), 0.01) == 1.0

    def test_direct_slerp_factor(self):
        fuser = AttitudeFuser(use_indirect_interpolation=False, interpolation_value=0.2)
        assert fuser.slerp_factor(yaw(1.0), 0.01) == 0.2

    def test_reset(self):
        fuser = AttitudeFuser()
        fuser.fuse(IDENTITY, IDENTITY, 0.01)
        fuser.reset()
        assert fuser.fused_attitude is None
        assert fuser.panic_counter == 0


class TestLeveledRelativeAttitudeProcessor:
    """레벨링 상대 자세 테스트"""

    def test_stationary_level(self):
        processor = LeveledRelativeAttitudeProcessor()
        results = [processor.process(gravity, gyro) for gravity, _, gyro, _ in stationary_samples(5)]

        assert results == [False, True, True, True, True]
        assert processor.attitude.angle_to(IDENTITY) == pytest.approx(0.0, abs=1e-6)

    def test_accelerometer_leveling(self):
        processor = LeveledRelativeAttitudeProcessor(use_accelerometer=True)
        for _, accel, gyro, _ in stationary_samples(5):
            processor.process(accel, gyro)
        assert processor.attitude.angle_to(IDENTITY) == pytest.approx(0.0, abs=1e-6)

    def test_accurate_leveling_requires_location(self):
        with pytest.raises(ValueError):
            LeveledRelativeAttitudeProcessor(use_accurate_leveling=True)

    def test_forwarded_fuser_settings(self):
        processor = LeveledRelativeAttitudeProcessor()
        processor.outlier_threshold = 0.9
        assert processor.fuser.outlier_threshold == 0.9
        with pytest.raises(ValueError):
            processor.panic_counter_threshold = 0


class TestFusedGeomagneticAttitudeProcessor:
    """지자기 융합 자세 프로세서 테스트"""

    @pytest.mark.parametrize('processor_class', [
        FusedGeomagneticAttitudeProcessor,
        DoubleFusedGeomagneticAttitudeProcessor,
    ])
    def test_first_fused_sample(self, processor_class):
        """첫 두 샘플은 자이로 기준 설정에 사용"""
        processor = processor_class(location=SEOUL)
        results = [
            processor.process(gravity, gyro, mag)
            for gravity, _, gyro, mag in stationary_samples(4)
        ]
        assert results == [False, False, True, True]

    @pytest.mark.parametrize('processor_class', [
        FusedGeomagneticAttitudeProcessor,
        DoubleFusedGeomagneticAttitudeProcessor,
    ])
    def test_stationary_north_is_identity(self, processor_class):
        processor = processor_class(location=SEOUL, use_accurate_leveling=True)
        for gravity, _, gyro, mag in stationary_samples(10):
            processor.process(gravity, gyro, mag)
        assert processor.attitude.angle_to(IDENTITY) == pytest.approx(0.0, abs=1e-6)
        assert processor.state == FusionState.NORMAL

    def test_world_magnetic_model_settings_forwarded(self):
        model = ZeroDeclinationModel()
        processor = FusedGeomagneticAttitudeProcessor(location=SEOUL)
        processor.magnetic_model = model
        processor.use_world_magnetic_model = True
        processor.world_magnetic_model_date = date(2024, 6, 1)

        geomagnetic = processor.geomagnetic_processor
        assert geomagnetic.magnetic_model is model
        assert geomagnetic.use_world_magnetic_model
        assert geomagnetic.world_magnetic_model_date == date(2024, 6, 1)

    def test_double_fused_location_reaches_relative_processor(self):
        processor = DoubleFusedGeomagneticAttitudeProcessor(location=SEOUL)
        moved = Location(35.0, 129.0, 10.0)
        processor.location = moved
        assert processor.geomagnetic_processor.location == moved
        assert processor.relative_processor.location == moved

    def test_double_fused_accurate_leveling_reaches_relative_processor(self):
        processor = DoubleFusedGeomagneticAttitudeProcessor(location=SEOUL)
        processor.use_accurate_leveling = True
        assert processor.relative_processor.use_accurate_leveling

    def test_reset(self):
        processor = FusedGeomagneticAttitudeProcessor(location=SEOUL)
        for gravity, _, gyro, mag in stationary_samples(4):
            processor.process(gravity, gyro, mag)
        processor.reset()
        assert processor.attitude is None


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
