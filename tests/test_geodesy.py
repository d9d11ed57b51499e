"""
측지 / 항법 단위 테스트
"""

from datetime import date

import numpy as np
import pytest

from imu_pose.geodesy.earth import (
    STANDARD_GRAVITY,
    compute_c_ecef_to_ned,
    ecef_to_geodetic,
    geodetic_to_ecef,
    gravity_ecef,
    gravity_ned,
    gravity_norm,
)
from imu_pose.geodesy.conversions import ecef_to_ned_frame, ned_to_ecef_frame, with_ned_rotation
from imu_pose.geodesy.magnetic import MagneticModel
from imu_pose.geodesy.navigator import navigate_ecef
from imu_pose.measurement.frames import Location, NedFrame
from imu_pose.measurement.quaternion import Quaternion


SEOUL = Location(latitude=37.5665, longitude=126.9780, height=40.0)


class TestEarth:
    """지구 모델 테스트"""

    def test_equator_prime_meridian(self):
        """적도/본초자오선은 x 축 위 (WGS84 장반경)"""
        position = geodetic_to_ecef(Location(0.0, 0.0, 0.0))
        np.testing.assert_allclose(position, [6378137.0, 0.0, 0.0], atol=1e-3)

    def test_geodetic_roundtrip(self):
        location = ecef_to_geodetic(geodetic_to_ecef(SEOUL))
        assert location.latitude == pytest.approx(SEOUL.latitude, abs=1e-9)
        assert location.longitude == pytest.approx(SEOUL.longitude, abs=1e-9)
        assert location.height == pytest.approx(SEOUL.height, abs=1e-4)

    def test_c_ecef_to_ned_is_rotation(self):
        c = compute_c_ecef_to_ned(SEOUL.latitude_rad, SEOUL.longitude_rad)
        np.testing.assert_allclose(c @ c.T, np.eye(3), atol=1e-12)
        assert np.linalg.det(c) == pytest.approx(1.0)

    def test_gravity_norm_without_location(self):
        assert gravity_norm(None) == STANDARD_GRAVITY

    def test_gravity_norm_increases_towards_pole(self):
        assert gravity_norm(Location(80.0, 0.0)) > gravity_norm(Location(0.0, 0.0))

    def test_gravity_ned_points_down(self):
        g = gravity_ned(SEOUL)
        assert g[2] == pytest.approx(gravity_norm(SEOUL))
        assert g[1] == 0.0
        assert abs(g[0]) < 1e-5

    def test_gravity_ecef_points_to_center(self):
        """ECEF 중력은 대략 지구 중심 방향"""
        position = geodetic_to_ecef(SEOUL)
        g = gravity_ecef(position)
        cos_angle = np.dot(g, -position) / (np.linalg.norm(g) * np.linalg.norm(position))
        assert cos_angle > 0.99


class TestConversions:
    """프레임 변환 테스트"""

    def test_ned_ecef_roundtrip(self):
        rotation = Quaternion.from_euler(0.1, -0.05, 0.8).to_matrix()
        ned = NedFrame(location=SEOUL, velocity=np.array([1.0, 2.0, -0.5]), rotation=rotation, timestamp=7)

        back = ecef_to_ned_frame(ned_to_ecef_frame(ned))

        np.testing.assert_allclose(back.velocity, ned.velocity, atol=1e-6)
        np.testing.assert_allclose(back.rotation, ned.rotation, atol=1e-6)
        assert back.location.latitude == pytest.approx(SEOUL.latitude, abs=1e-9)
        assert back.timestamp == 7

    def test_with_ned_rotation_keeps_position(self):
        ecef = ned_to_ecef_frame(NedFrame(location=SEOUL))
        rotation = Quaternion.from_euler(0.0, 0.0, 1.0).to_matrix()

        updated = with_ned_rotation(ecef, rotation)

        np.testing.assert_array_equal(updated.position, ecef.position)
        np.testing.assert_allclose(ecef_to_ned_frame(updated).rotation, rotation, atol=1e-6)


class TestNavigator:
    """ECEF 관성 항법 테스트"""

    def test_stationary_body_stays_in_place(self):
        """정지 상태 (비력 = -중력) 에서 위치 유지"""
        frame = ned_to_ecef_frame(NedFrame(location=SEOUL))
        specific_force = -gravity_ned(SEOUL)
        angular_rate = compute_c_ecef_to_ned(SEOUL.latitude_rad, SEOUL.longitude_rad) @ np.array(
            [0.0, 0.0, 7.292115e-5]
        )

        for _ in range(100):
            frame = navigate_ecef(0.01, frame, specific_force, angular_rate)

        np.testing.assert_allclose(frame.position, geodetic_to_ecef(SEOUL), atol=1e-2)
        assert np.linalg.norm(frame.velocity) < 1e-2

    def test_zero_interval_keeps_frame(self):
        frame = ned_to_ecef_frame(NedFrame(location=SEOUL))
        result = navigate_ecef(0.0, frame, np.zeros(3), np.zeros(3), timestamp=5)
        np.testing.assert_array_equal(result.position, frame.position)
        assert result.timestamp == 5

    def test_negative_interval_raises(self):
        frame = ned_to_ecef_frame(NedFrame(location=SEOUL))
        with pytest.raises(ValueError):
            navigate_ecef(-0.1, frame, np.zeros(3), np.zeros(3))


class TestMagneticModel:
    """지자기 모델 인터페이스 테스트"""

    def test_base_model_not_implemented(self):
        with pytest.raises(NotImplementedError):
            MagneticModel().declination(SEOUL, date(2024, 1, 1))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
