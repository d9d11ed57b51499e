"""
pose 추정기 (오케스트레이터) 단위 테스트

변형 선택, 설정 전파, 생명주기, 리스너 변환을 검증합니다.
"""

import logging

import pytest

from imu_pose.config.system_config import FusionConfig, SystemConfig
from imu_pose.estimators import (
    MeasurementSource,
    PoseEstimator,
    PoseSensorType,
    ProcessorVariant,
    RelativePoseEstimator,
    RelativeProcessorVariant,
    SourceKind,
)
from imu_pose.measurement.frames import Location, NEDVelocity
from imu_pose.measurement.quaternion import Quaternion
from imu_pose.measurement.synced import (
    SyncedAccelGravityGyro,
    SyncedAccelGyro,
    SyncedAccelGyroMag,
    SyncedAttitudeAccelGyro,
)
from imu_pose.measurement.triads import (
    AccelerometerMeasurement,
    AttitudeMeasurement,
    GravityMeasurement,
    GyroscopeMeasurement,
    MagnetometerMeasurement,
    SensorAccuracy,
    SensorType,
    SpeedTriad,
)
from imu_pose.processors.absolute import (
    AccelerometerDoubleFusedEcefAbsolutePoseProcessor,
    AttitudeEcefAbsolutePoseProcessor,
    DoubleFusedEcefAbsolutePoseProcessor,
)
from imu_pose.processors.relative import FusedRelativePoseProcessor


SEOUL = Location(latitude=37.5665, longitude=126.9780, height=40.0)
DT_NS = 10_000_000


class FakeProcessor:
    """호출 기록용 프로세서"""

    def __init__(self, result: bool = True):
        self.result = result
        self.processed = []
        self.reset_calls = 0
        self.transformation_reads = 0
        self.initial_location = None
        self.initial_velocity = None
        self.initial_speed = None
        self.estimate_pose_transformation = True
        self.current_frame = 'current'
        self.previous_frame = 'previous'
        self.initial_frame = 'initial'

    @property
    def pose_transformation(self):
        self.transformation_reads += 1
        return 'transformation'

    def process(self, measurement) -> bool:
        self.processed.append(measurement)
        return self.result

    def reset(self):
        self.reset_calls += 1


class FakeMeasurement:
    def __init__(self, timestamp: int):
        self.timestamp = timestamp


def fake_processors(variant_class):
    return {variant: FakeProcessor() for variant in variant_class}


def fake_sources():
    return {kind: MeasurementSource(kind) for kind in SourceKind}


class TestProcessorVariant:
    """절대 변형 선택 테스트"""

    @pytest.mark.parametrize('attitude,double,accelerometer,expected', [
        (True, True, True, ProcessorVariant.ATTITUDE),
        (True, False, False, ProcessorVariant.ATTITUDE),
        (False, True, True, ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED),
        (False, True, False, ProcessorVariant.DOUBLE_FUSED),
        (False, False, True, ProcessorVariant.ACCELEROMETER_FUSED),
        (False, False, False, ProcessorVariant.FUSED),
    ])
    def test_select(self, attitude, double, accelerometer, expected):
        assert ProcessorVariant.select(attitude, double, accelerometer) == expected

    def test_source_kinds(self):
        assert ProcessorVariant.ATTITUDE.source_kind == SourceKind.ATTITUDE
        assert ProcessorVariant.FUSED.source_kind == SourceKind.GRAVITY
        assert ProcessorVariant.DOUBLE_FUSED.source_kind == SourceKind.GRAVITY
        assert ProcessorVariant.ACCELEROMETER_FUSED.source_kind == SourceKind.ACCELEROMETER
        assert ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED.source_kind == SourceKind.ACCELEROMETER


class TestPoseEstimatorConstruction:
    """절대 추정기 생성 테스트"""

    def test_default_variant_is_double_fused(self):
        estimator = PoseEstimator(SEOUL)
        assert estimator.variant == ProcessorVariant.DOUBLE_FUSED
        assert len(estimator.processors) == 5
        assert isinstance(estimator.active_processor, DoubleFusedEcefAbsolutePoseProcessor)
        assert estimator.active_source.kind == SourceKind.GRAVITY
        assert not estimator.running

    def test_location_required(self):
        with pytest.raises(ValueError):
            PoseEstimator()

    def test_invalid_fusion_config(self):
        with pytest.raises(ValueError):
            PoseEstimator(SEOUL, fusion_config=FusionConfig(outlier_threshold=1.5))

    def test_fusion_config_reaches_all_fused_variants(self):
        config = FusionConfig(outlier_threshold=0.9, panic_counter_threshold=12)
        estimator = PoseEstimator(SEOUL, fusion_config=config)

        for variant, processor in estimator.processors.items():
            if variant == ProcessorVariant.ATTITUDE:
                assert not hasattr(processor, 'outlier_threshold')
                continue
            assert processor.outlier_threshold == 0.9
            assert processor.panic_counter_threshold == 12

    def test_initial_state_goes_to_active_processor(self):
        velocity = NEDVelocity(vn=1.0)
        estimator = PoseEstimator(
            SEOUL,
            initial_velocity=velocity,
            use_double_fused_attitude_processor=True,
            use_accelerometer_for_attitude_estimation=True
        )
        active = estimator.active_processor
        assert isinstance(active, AccelerometerDoubleFusedEcefAbsolutePoseProcessor)
        assert active.initial_velocity == velocity
        assert estimator.initial_location == SEOUL
        assert estimator.initial_velocity == velocity

    def test_from_config(self):
        config = SystemConfig()
        config.estimator.use_attitude_sensor = True
        config.fusion.interpolation_value = 0.02

        estimator = PoseEstimator.from_config(config)

        assert estimator.variant == ProcessorVariant.ATTITUDE
        assert isinstance(estimator.active_processor, AttitudeEcefAbsolutePoseProcessor)
        assert estimator.processors[ProcessorVariant.FUSED].interpolation_value == 0.02
        assert estimator.interpolation_value == 0.02

    def test_from_config_without_location(self):
        config = SystemConfig()
        config.estimator.initial_location = None
        with pytest.raises(ValueError):
            PoseEstimator.from_config(config)


class TestPoseEstimatorSettings:
    """설정 전파 테스트"""

    def setup_method(self):
        self.processors = fake_processors(ProcessorVariant)
        self.sources = fake_sources()
        self.estimator = PoseEstimator(processors=self.processors, sources=self.sources)

    def test_fusion_setting_written_to_fused_variants_only(self):
        self.estimator.outlier_panic_threshold = 0.5

        assert self.estimator.outlier_panic_threshold == 0.5
        for variant, processor in self.processors.items():
            if variant == ProcessorVariant.ATTITUDE:
                assert not hasattr(processor, 'outlier_panic_threshold')
            else:
                assert processor.outlier_panic_threshold == 0.5

    def test_respect_start_written_to_all_variants(self):
        self.estimator.use_leveled_relative_attitude_respect_start = False
        for processor in self.processors.values():
            assert processor.use_leveled_relative_attitude_respect_start is False

    def test_initial_location_only_on_active_processor(self):
        self.estimator.initial_location = SEOUL
        active = self.processors[ProcessorVariant.DOUBLE_FUSED]
        assert active.initial_location == SEOUL
        for variant, processor in self.processors.items():
            if variant != ProcessorVariant.DOUBLE_FUSED:
                assert processor.initial_location is None

    @pytest.mark.parametrize('name,value', [
        ('adjust_gravity_norm', False),
        ('use_leveled_relative_attitude_respect_start', False),
    ])
    def test_locked_settings_while_running(self, name, value):
        self.estimator.start(0)
        with pytest.raises(RuntimeError):
            setattr(self.estimator, name, value)

    def test_unlocked_setting_while_running(self):
        self.estimator.start(0)
        self.estimator.interpolation_value = 0.1
        assert self.processors[ProcessorVariant.FUSED].interpolation_value == 0.1

    def test_locked_setting_after_stop(self):
        self.estimator.start(0)
        self.estimator.stop()
        self.estimator.adjust_gravity_norm = False
        assert self.processors[ProcessorVariant.DOUBLE_FUSED].adjust_gravity_norm is False


class TestPoseEstimatorLifecycle:
    """start / stop 및 측정 전달 테스트"""

    def setup_method(self):
        self.processors = fake_processors(ProcessorVariant)
        self.sources = fake_sources()
        self.calls = []
        self.estimator = PoseEstimator(
            use_double_fused_attitude_processor=False,
            processors=self.processors,
            sources=self.sources,
            on_pose_available=lambda *args: self.calls.append(args)
        )
        self.active = self.processors[ProcessorVariant.FUSED]

    def test_start_resets_only_active_processor(self):
        assert self.estimator.start(123)
        assert self.estimator.running
        assert self.active.reset_calls == 1
        for variant, processor in self.processors.items():
            if variant != ProcessorVariant.FUSED:
                assert processor.reset_calls == 0

    def test_start_starts_only_active_source(self):
        self.estimator.start(123)
        assert self.sources[SourceKind.GRAVITY].running
        assert self.sources[SourceKind.GRAVITY].start_timestamp == 123
        assert not self.sources[SourceKind.ATTITUDE].running
        assert not self.sources[SourceKind.ACCELEROMETER].running

    def test_start_twice_raises(self):
        self.estimator.start(0)
        with pytest.raises(RuntimeError):
            self.estimator.start(0)

    def test_start_fails_when_source_fails(self):
        self.sources[SourceKind.GRAVITY].start(0)
        assert not self.estimator.start(0)
        assert not self.estimator.running

    def test_stop_stops_all_sources(self):
        self.sources[SourceKind.ATTITUDE].start(0)
        self.estimator.start(0)
        self.estimator.stop()

        assert not self.estimator.running
        for source in self.sources.values():
            assert not source.running

    def test_stop_when_not_running(self):
        self.estimator.stop()
        assert not self.estimator.running

    def test_measurement_goes_to_active_processor(self):
        self.estimator.start(0)
        measurement = FakeMeasurement(42)
        assert self.sources[SourceKind.GRAVITY].notify_measurement(measurement)

        assert self.active.processed == [measurement]
        for variant, processor in self.processors.items():
            if variant != ProcessorVariant.FUSED:
                assert processor.processed == []

    def test_inactive_source_not_wired(self):
        source = self.sources[SourceKind.ACCELEROMETER]
        source.start(0)
        assert not source.notify_measurement(FakeMeasurement(1))
        assert self.active.processed == []

    def test_listener_argument_order(self):
        self.estimator.start(0)
        self.sources[SourceKind.GRAVITY].notify_measurement(FakeMeasurement(42))

        assert self.calls == [
            (self.estimator, 'current', 'previous', 'initial', 42, 'transformation')
        ]

    def test_listener_not_called_when_not_processed(self):
        self.active.result = False
        self.estimator.start(0)
        self.sources[SourceKind.GRAVITY].notify_measurement(FakeMeasurement(42))
        assert self.calls == []

    def test_transformation_not_read_when_disabled(self):
        self.estimator.estimate_pose_transformation = False
        self.estimator.start(0)
        self.sources[SourceKind.GRAVITY].notify_measurement(FakeMeasurement(42))

        assert self.active.transformation_reads == 0
        assert self.calls[0][-1] is None

    def test_measurements_ignored_after_stop(self):
        self.estimator.start(0)
        self.estimator.stop()
        assert not self.sources[SourceKind.GRAVITY].notify_measurement(FakeMeasurement(1))
        assert self.active.processed == []


class TestPoseEstimatorEvents:
    """정확도 / 버퍼 이벤트 변환 테스트"""

    def setup_method(self):
        self.sources = fake_sources()
        self.accuracy_calls = []
        self.buffer_calls = []
        self.estimator = PoseEstimator(
            processors=fake_processors(ProcessorVariant),
            sources=self.sources,
            on_accuracy_changed=lambda *args: self.accuracy_calls.append(args),
            on_buffer_filled=lambda *args: self.buffer_calls.append(args)
        )

    @pytest.mark.parametrize('sensor_type,expected', [
        (SensorType.ACCELEROMETER_UNCALIBRATED, PoseSensorType.ACCELEROMETER),
        (SensorType.GYROSCOPE, PoseSensorType.GYROSCOPE),
        (SensorType.MAGNETOMETER_UNCALIBRATED, PoseSensorType.MAGNETOMETER),
        (SensorType.GRAVITY, PoseSensorType.GRAVITY),
        (SensorType.ABSOLUTE_ATTITUDE, PoseSensorType.ATTITUDE),
    ])
    def test_accuracy_changed_translation(self, sensor_type, expected):
        self.sources[SourceKind.GRAVITY].notify_accuracy_changed(sensor_type, SensorAccuracy.LOW)
        assert self.accuracy_calls == [(self.estimator, expected, SensorAccuracy.LOW)]

    def test_buffer_filled_translation(self):
        self.sources[SourceKind.ATTITUDE].notify_buffer_filled(SensorType.RELATIVE_ATTITUDE)
        assert self.buffer_calls == [(self.estimator, PoseSensorType.ATTITUDE)]

    def test_events_without_listener(self):
        self.estimator.on_accuracy_changed = None
        self.estimator.on_buffer_filled = None
        self.sources[SourceKind.GRAVITY].notify_accuracy_changed(SensorType.GRAVITY, SensorAccuracy.HIGH)
        self.sources[SourceKind.GRAVITY].notify_buffer_filled(SensorType.GRAVITY)
        assert self.accuracy_calls == []
        assert self.buffer_calls == []


class TestPoseEstimatorEndToEnd:
    """실제 프로세서 연동 테스트"""

    def test_attitude_sensor_pipeline(self):
        calls = []
        estimator = PoseEstimator(
            SEOUL,
            use_attitude_sensor=True,
            on_pose_available=lambda *args: calls.append(args)
        )
        assert estimator.start(0)

        source = estimator.active_source
        for i in range(3):
            t = (i + 1) * DT_NS
            source.notify_measurement(SyncedAttitudeAccelGyro(
                attitude=AttitudeMeasurement(attitude=Quaternion.identity(), timestamp=t),
                accelerometer=AccelerometerMeasurement(0.0, 0.0, 9.8, timestamp=t),
                gyroscope=GyroscopeMeasurement(0.0, 0.0, 0.0, timestamp=t),
                timestamp=t
            ))
        estimator.stop()

        assert len(calls) == 2
        est, current, previous, initial, timestamp, transformation = calls[-1]
        assert est is estimator
        assert timestamp == 3 * DT_NS
        assert current.timestamp == 3 * DT_NS
        assert initial.timestamp == DT_NS
        assert previous.timestamp == 2 * DT_NS
        assert transformation is not None


class TestRelativeProcessorVariant:
    """상대 변형 선택 테스트"""

    @pytest.mark.parametrize('attitude,accelerometer,expected', [
        (True, True, RelativeProcessorVariant.ATTITUDE),
        (True, False, RelativeProcessorVariant.ATTITUDE),
        (False, True, RelativeProcessorVariant.ACCELEROMETER_FUSED),
        (False, False, RelativeProcessorVariant.FUSED),
    ])
    def test_select(self, attitude, accelerometer, expected):
        assert RelativeProcessorVariant.select(attitude, accelerometer) == expected


class TestRelativePoseEstimator:
    """상대 추정기 테스트"""

    def test_default_construction_without_location(self):
        estimator = RelativePoseEstimator()
        assert estimator.variant == RelativeProcessorVariant.FUSED
        assert isinstance(estimator.active_processor, FusedRelativePoseProcessor)
        assert estimator.location is None
        assert not estimator.use_accurate_leveling

    def test_accurate_leveling_requires_location(self):
        with pytest.raises(ValueError):
            RelativePoseEstimator(use_accurate_leveling=True)

    def test_accurate_leveling_with_location(self):
        estimator = RelativePoseEstimator(location=SEOUL, use_accurate_leveling=True)
        for variant in (RelativeProcessorVariant.FUSED, RelativeProcessorVariant.ACCELEROMETER_FUSED):
            assert estimator.processors[variant].use_accurate_leveling

    def test_location_written_to_all_variants(self):
        estimator = RelativePoseEstimator()
        estimator.location = SEOUL
        for processor in estimator.processors.values():
            assert processor.location == SEOUL

    def test_adjust_gravity_norm_locked_while_running(self):
        estimator = RelativePoseEstimator(
            processors=fake_processors(RelativeProcessorVariant),
            sources=fake_sources()
        )
        estimator.start(0)
        with pytest.raises(RuntimeError):
            estimator.adjust_gravity_norm = False

    def test_initial_speed_only_on_active_processor(self):
        processors = fake_processors(RelativeProcessorVariant)
        speed = SpeedTriad(1.0, 0.0, 0.0)
        estimator = RelativePoseEstimator(
            initial_speed=speed,
            use_attitude_sensor=True,
            processors=processors,
            sources=fake_sources()
        )
        assert processors[RelativeProcessorVariant.ATTITUDE].initial_speed == speed
        assert processors[RelativeProcessorVariant.FUSED].initial_speed is None
        assert estimator.initial_speed == speed

    def test_listener_receives_transformation(self):
        processors = fake_processors(RelativeProcessorVariant)
        sources = fake_sources()
        calls = []
        estimator = RelativePoseEstimator(
            use_accelerometer_for_attitude_estimation=True,
            processors=processors,
            sources=sources,
            on_pose_available=lambda *args: calls.append(args)
        )
        estimator.start(0)
        sources[SourceKind.ACCELEROMETER].notify_measurement(FakeMeasurement(7))

        assert calls == [(estimator, 7, 'transformation')]
        assert processors[RelativeProcessorVariant.ACCELEROMETER_FUSED].processed

    def test_rejected_location_leaves_variants_unchanged(self):
        """한 변형이 거부하면 이미 기록된 변형도 이전 값으로 복원"""
        estimator = RelativePoseEstimator(location=SEOUL, use_accurate_leveling=True)
        with pytest.raises(ValueError):
            estimator.location = None

        assert estimator.location == SEOUL
        for processor in estimator.processors.values():
            assert processor.location == SEOUL

    def test_from_config_falls_back_without_location(self, caplog):
        config = SystemConfig()
        config.estimator.initial_location = None
        config.fusion.use_accurate_leveling = True

        with caplog.at_level(logging.WARNING):
            estimator = RelativePoseEstimator.from_config(config)

        assert not estimator.use_accurate_leveling
        assert 'Accurate leveling requires a location' in caplog.text

    def test_from_config_with_location(self):
        config = SystemConfig()
        config.estimator.initial_velocity = [0.5, 0.0, 0.0]
        estimator = RelativePoseEstimator.from_config(config)

        assert estimator.use_accurate_leveling
        assert estimator.location == config.estimator.location()
        assert estimator.initial_speed == SpeedTriad(0.5, 0.0, 0.0)

    def test_fused_pipeline(self):
        calls = []
        estimator = RelativePoseEstimator(on_pose_available=lambda *args: calls.append(args))
        estimator.start(0)

        for i in range(5):
            t = (i + 1) * DT_NS
            estimator.active_source.notify_measurement(SyncedAccelGravityGyro(
                accelerometer=AccelerometerMeasurement(0.0, 0.0, 9.80665, timestamp=t),
                gravity=GravityMeasurement(0.0, 0.0, 9.80665, timestamp=t),
                gyroscope=GyroscopeMeasurement(0.0, 0.0, 0.0, timestamp=t),
                timestamp=t
            ))

        assert len(calls) == 3
        assert all(transformation is not None for _, _, transformation in calls)



ABSOLUTE_FLAG_COMBINATIONS = [
    (True, False, False, ProcessorVariant.ATTITUDE),
    (False, False, False, ProcessorVariant.FUSED),
    (False, False, True, ProcessorVariant.ACCELEROMETER_FUSED),
    (False, True, False, ProcessorVariant.DOUBLE_FUSED),
    (False, True, True, ProcessorVariant.ACCELEROMETER_DOUBLE_FUSED),
]

RELATIVE_FLAG_COMBINATIONS = [
    (True, False, RelativeProcessorVariant.ATTITUDE),
    (False, False, RelativeProcessorVariant.FUSED),
    (False, True, RelativeProcessorVariant.ACCELEROMETER_FUSED),
]


def deliver_to_all_sources(sources, measurement):
    for source in sources.values():
        source.notify_measurement(measurement)


class TestActiveVariantRouting:
    """선택 플래그 조합별 활성 변형 단독 동작 테스트"""

    @pytest.mark.parametrize('attitude,double,accelerometer,expected', ABSOLUTE_FLAG_COMBINATIONS)
    def test_absolute_only_active_variant_used(self, attitude, double, accelerometer, expected):
        processors = fake_processors(ProcessorVariant)
        sources = fake_sources()
        calls = []
        estimator = PoseEstimator(
            SEOUL,
            use_attitude_sensor=attitude,
            use_double_fused_attitude_processor=double,
            use_accelerometer_for_attitude_estimation=accelerometer,
            processors=processors,
            sources=sources,
            on_pose_available=lambda *args: calls.append(args)
        )
        assert estimator.variant == expected
        assert estimator.active_source is sources[expected.source_kind]

        estimator.start(0)
        measurement = FakeMeasurement(11)
        deliver_to_all_sources(sources, measurement)

        for variant, processor in processors.items():
            if variant == expected:
                assert processor.reset_calls == 1
                assert processor.initial_location == SEOUL
                assert processor.processed == [measurement]
            else:
                assert processor.reset_calls == 0
                assert processor.initial_location is None
                assert processor.processed == []
        assert len(calls) == 1

    @pytest.mark.parametrize('attitude,accelerometer,expected', RELATIVE_FLAG_COMBINATIONS)
    def test_relative_only_active_variant_used(self, attitude, accelerometer, expected):
        processors = fake_processors(RelativeProcessorVariant)
        sources = fake_sources()
        speed = SpeedTriad(0.5, 0.0, 0.0)
        calls = []
        estimator = RelativePoseEstimator(
            initial_speed=speed,
            use_attitude_sensor=attitude,
            use_accelerometer_for_attitude_estimation=accelerometer,
            processors=processors,
            sources=sources,
            on_pose_available=lambda *args: calls.append(args)
        )
        assert estimator.variant == expected
        assert estimator.active_source is sources[expected.source_kind]

        estimator.start(0)
        measurement = FakeMeasurement(11)
        deliver_to_all_sources(sources, measurement)

        for variant, processor in processors.items():
            if variant == expected:
                assert processor.reset_calls == 1
                assert processor.initial_speed == speed
                assert processor.processed == [measurement]
            else:
                assert processor.reset_calls == 0
                assert processor.initial_speed is None
                assert processor.processed == []
        assert calls == [(estimator, 11, 'transformation')]

    @pytest.mark.parametrize('double', [False, True])
    def test_accelerometer_source_pipeline(self, double):
        calls = []
        estimator = PoseEstimator(
            SEOUL,
            use_double_fused_attitude_processor=double,
            use_accelerometer_for_attitude_estimation=True,
            on_pose_available=lambda *args: calls.append(args)
        )
        assert estimator.active_source.kind == SourceKind.ACCELEROMETER
        assert estimator.start(0)

        for i in range(10):
            t = (i + 1) * DT_NS
            estimator.active_source.notify_measurement(SyncedAccelGyroMag(
                accelerometer=AccelerometerMeasurement(0.0, 0.0, 9.8, timestamp=t),
                gyroscope=GyroscopeMeasurement(0.0, 0.0, 0.0, timestamp=t),
                magnetometer=MagnetometerMeasurement(0.0, 20e-6, -40e-6, timestamp=t),
                timestamp=t
            ))
        estimator.stop()

        # 넷째 샘플부터 pose 생성
        assert len(calls) == 7
        assert calls[-1][4] == 10 * DT_NS

    def test_relative_accelerometer_source_pipeline(self):
        calls = []
        estimator = RelativePoseEstimator(
            use_accelerometer_for_attitude_estimation=True,
            on_pose_available=lambda *args: calls.append(args)
        )
        assert estimator.active_source.kind == SourceKind.ACCELEROMETER
        assert estimator.start(0)

        for i in range(5):
            t = (i + 1) * DT_NS
            estimator.active_source.notify_measurement(SyncedAccelGyro(
                accelerometer=AccelerometerMeasurement(0.0, 0.0, 9.80665, timestamp=t),
                gyroscope=GyroscopeMeasurement(0.0, 0.0, 0.0, timestamp=t),
                timestamp=t
            ))

        assert len(calls) == 3
        assert all(transformation is not None for _, _, transformation in calls)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
