"""
data_loader.py - 센서 로그 로더

CSV 센서 로그를 읽어 추정기가 요구하는 동기화 측정으로 변환합니다.

로그 형식 (헤더 포함, 타임스탬프는 나노초):
    timestamp,type,x,y,z,w
    1000000000,accelerometer,0.01,0.02,9.81,
    1000000000,gyroscope,0.0,0.0,0.001,
    1000000000,absolute_attitude,0.0,0.0,0.0,1.0

type 은 SensorType 값이며, w 는 자세 (x, y, z, w 쿼터니언) 행에서만 사용합니다.
가속도계 샘플을 기준으로, 각 센서의 직전 샘플이 max_sync_delay_ms 이내에
있을 때만 동기화 측정을 생성합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, Iterator, List, Optional
import logging

from ..estimators.events import MeasurementSource, SourceKind
from ..measurement.quaternion import Quaternion
from ..measurement.synced import (
    SyncedAccelGravityGyro,
    SyncedAccelGravityGyroMag,
    SyncedAccelGyro,
    SyncedAccelGyroMag,
    SyncedAttitudeAccel,
    SyncedAttitudeAccelGyro,
)
from ..measurement.triads import (
    AccelerometerMeasurement,
    AttitudeMeasurement,
    GravityMeasurement,
    GyroscopeMeasurement,
    MagnetometerMeasurement,
    SensorType,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('timestamp', 'type', 'x', 'y', 'z')

# 보정 / 미보정 센서는 같은 샘플 종류로 취급
_SAMPLE_KINDS = {
    SensorType.ACCELEROMETER: 'accelerometer',
    SensorType.ACCELEROMETER_UNCALIBRATED: 'accelerometer',
    SensorType.GYROSCOPE: 'gyroscope',
    SensorType.GYROSCOPE_UNCALIBRATED: 'gyroscope',
    SensorType.MAGNETOMETER: 'magnetometer',
    SensorType.MAGNETOMETER_UNCALIBRATED: 'magnetometer',
    SensorType.GRAVITY: 'gravity',
    SensorType.ABSOLUTE_ATTITUDE: 'absolute_attitude',
    SensorType.RELATIVE_ATTITUDE: 'relative_attitude',
}

# (동기화 측정 클래스, 필드 -> 샘플 종류)
_ABSOLUTE_SHAPES = {
    SourceKind.ATTITUDE: (SyncedAttitudeAccelGyro, {
        'attitude': 'absolute_attitude', 'gyroscope': 'gyroscope'}),
    SourceKind.GRAVITY: (SyncedAccelGravityGyroMag, {
        'gravity': 'gravity', 'gyroscope': 'gyroscope', 'magnetometer': 'magnetometer'}),
    SourceKind.ACCELEROMETER: (SyncedAccelGyroMag, {
        'gyroscope': 'gyroscope', 'magnetometer': 'magnetometer'}),
}

_RELATIVE_SHAPES = {
    SourceKind.ATTITUDE: (SyncedAttitudeAccel, {'attitude': 'relative_attitude'}),
    SourceKind.GRAVITY: (SyncedAccelGravityGyro, {'gravity': 'gravity', 'gyroscope': 'gyroscope'}),
    SourceKind.ACCELEROMETER: (SyncedAccelGyro, {'gyroscope': 'gyroscope'}),
}


def _build_sample(kind: str, row):
    """CSV 행을 센서 샘플로 변환"""
    timestamp = int(row.timestamp)
    if kind == 'accelerometer':
        return AccelerometerMeasurement(ax=row.x, ay=row.y, az=row.z, timestamp=timestamp)
    if kind == 'gyroscope':
        return GyroscopeMeasurement(wx=row.x, wy=row.y, wz=row.z, timestamp=timestamp)
    if kind == 'magnetometer':
        return MagnetometerMeasurement(bx=row.x, by=row.y, bz=row.z, timestamp=timestamp)
    if kind == 'gravity':
        return GravityMeasurement(gx=row.x, gy=row.y, gz=row.z, timestamp=timestamp)

    if np.isnan(row.w):
        raise ValueError(f"Attitude row at {timestamp} has no w component")
    attitude = Quaternion(row.x, row.y, row.z, row.w).normalize()
    return AttitudeMeasurement(attitude=attitude, timestamp=timestamp)


class SensorLogLoader:
    """
    CSV 센서 로그 로더

    Example:
        >>> loader = SensorLogLoader("./session/sensors.csv")
        >>> for measurement in loader.synced_measurements(SourceKind.GRAVITY):
        ...     estimator.active_source.notify_measurement(measurement)
    """

    def __init__(self, log_path: str, max_sync_delay_ms: float = 20.0):
        """
        Args:
            log_path: CSV 로그 경로
            max_sync_delay_ms: 기준 샘플과 다른 센서 샘플의 최대 시간차 (ms)

        Raises:
            FileNotFoundError: 로그 파일이 없는 경우
            ValueError: 필수 컬럼이 없거나 알 수 없는 센서 종류가 있는 경우
        """
        self.log_path = Path(log_path)
        self.max_sync_delay_ns = int(max_sync_delay_ms * 1e6)

        if not self.log_path.exists():
            raise FileNotFoundError(f"Sensor log not found: {log_path}")

        self._load()
        logger.info(
            f"SensorLogLoader: {len(self.df)} rows, "
            f"kinds={sorted(k for k, v in self._samples.items() if v)}"
        )

    def _load(self):
        df = pd.read_csv(self.log_path)

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Sensor log is missing columns: {missing}")
        if 'w' not in df.columns:
            df['w'] = np.nan

        known = {t.value for t in SensorType}
        unknown = sorted(set(df['type']) - known)
        if unknown:
            raise ValueError(f"Unknown sensor types in log: {unknown}")

        self.df = df.sort_values('timestamp', kind='stable').reset_index(drop=True)

        self._samples: Dict[str, List] = {kind: [] for kind in set(_SAMPLE_KINDS.values())}
        for row in self.df.itertuples(index=False):
            kind = _SAMPLE_KINDS[SensorType(row.type)]
            self._samples[kind].append(_build_sample(kind, row))

        self._timestamps = {
            kind: np.array([s.timestamp for s in samples], dtype=np.int64)
            for kind, samples in self._samples.items()
        }

    def __len__(self) -> int:
        return len(self.df)

    def samples(self, kind: str) -> List:
        """샘플 종류별 목록 (예: 'accelerometer', 'absolute_attitude')"""
        return list(self._samples.get(kind, []))

    def _latest_before(self, kind: str, timestamp: int):
        """timestamp 이하의 가장 최근 샘플 (허용 시간차 밖이면 None)"""
        timestamps = self._timestamps[kind]
        idx = int(np.searchsorted(timestamps, timestamp, side='right')) - 1
        if idx < 0:
            return None
        if timestamp - timestamps[idx] > self.max_sync_delay_ns:
            return None
        return self._samples[kind][idx]

    def synced_measurements(self, kind: SourceKind, relative: bool = False) -> Iterator:
        """
        동기화 측정 생성

        Args:
            kind: 측정 소스 종류
            relative: 상대 추정기용 측정 형태 여부

        Yields:
            완전한 동기화 측정 (불완전한 측정은 건너뜀)
        """
        shapes = _RELATIVE_SHAPES if relative else _ABSOLUTE_SHAPES
        synced_class, fields = shapes[kind]

        skipped = 0
        for accelerometer in self._samples['accelerometer']:
            values = {
                name: self._latest_before(sample_kind, accelerometer.timestamp)
                for name, sample_kind in fields.items()
            }
            if any(v is None for v in values.values()):
                skipped += 1
                continue

            yield synced_class(
                accelerometer=accelerometer,
                timestamp=accelerometer.timestamp,
                **values
            )

        if skipped:
            logger.debug(f"Skipped {skipped} incomplete synchronized measurements")


class ReplayMeasurementSource(MeasurementSource):
    """
    로그 재생 측정 소스

    replay() 호출 시 로더의 동기화 측정을 리스너로 전달합니다.
    """

    def __init__(self, kind: SourceKind, loader: SensorLogLoader, relative: bool = False):
        super().__init__(kind)
        self.loader = loader
        self.relative = relative

    def replay(self, limit: Optional[int] = None) -> int:
        """
        로그 재생

        Args:
            limit: 최대 전달 개수 (None 이면 전체)

        Returns:
            전달된 측정 수
        """
        delivered = 0
        for measurement in self.loader.synced_measurements(self.kind, relative=self.relative):
            if limit is not None and delivered >= limit:
                break
            if not self.notify_measurement(measurement):
                break
            delivered += 1

        logger.info(f"Replay finished: {delivered} measurements ({self.kind.value})")
        return delivered
