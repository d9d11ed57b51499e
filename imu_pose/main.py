#!/usr/bin/env python3
"""
main.py - imu_pose 로그 재생 실행

CSV 센서 로그를 재생하여 절대 (ECEF) 또는 상대 pose 를 추정하고
처리된 샘플마다 요약을 출력합니다.

사용법:
    # 절대 pose (설정 파일의 초기 위치 사용)
    imu_pose --log session/sensors.csv --config config.yaml

    # 상대 pose
    imu_pose --log session/sensors.csv --relative

Version: 1.0
Author: FurSys AI Team
"""

import argparse
import logging
import sys
from typing import Optional

import numpy as np

from .config.system_config import SystemConfig, load_config
from .estimators.events import SourceKind
from .estimators.pose_estimator import PoseEstimator
from .estimators.relative_pose_estimator import RelativePoseEstimator
from .input.data_loader import ReplayMeasurementSource, SensorLogLoader
from .measurement.frames import PoseTransformation

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: SystemConfig, level: Optional[str] = None):
    """로깅 설정 (level 이 주어지면 설정 파일 값보다 우선)"""
    handlers = [logging.StreamHandler()]
    if config.logging.log_to_file:
        handlers.append(logging.FileHandler(config.logging.log_file))

    logging.basicConfig(
        level=getattr(logging, (level or config.logging.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )


def format_transformation(transformation: Optional[PoseTransformation]) -> str:
    if transformation is None:
        return "transform=n/a"
    roll, pitch, yaw = np.degrees(transformation.rotation.to_euler())
    t = transformation.translation
    return (
        f"t=[{t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}] "
        f"rpy=[{roll:.1f}, {pitch:.1f}, {yaw:.1f}]"
    )


def build_sources(loader: SensorLogLoader, relative: bool):
    return {kind: ReplayMeasurementSource(kind, loader, relative=relative) for kind in SourceKind}


def run(config: SystemConfig, log_path: str, relative: bool, max_samples: Optional[int] = None) -> int:
    """
    로그 재생 실행

    Returns:
        추정기가 받은 측정 수
    """
    loader = SensorLogLoader(log_path, max_sync_delay_ms=config.replay.max_sync_delay_ms)
    sources = build_sources(loader, relative)
    poses = 0

    if relative:
        def on_relative_pose(estimator, timestamp, transformation):
            nonlocal poses
            poses += 1
            print(f"[{timestamp}] {format_transformation(transformation)}")

        estimator = RelativePoseEstimator.from_config(
            config, on_pose_available=on_relative_pose, sources=sources
        )
    else:
        def on_pose(estimator, current, previous, initial, timestamp, transformation):
            nonlocal poses
            poses += 1
            p = current.position
            print(
                f"[{timestamp}] ecef=[{p[0]:.3f}, {p[1]:.3f}, {p[2]:.3f}] "
                f"{format_transformation(transformation)}"
            )

        estimator = PoseEstimator.from_config(config, on_pose_available=on_pose, sources=sources)

    first_timestamp = int(loader.df['timestamp'].iloc[0]) if len(loader) > 0 else 0
    if not estimator.start(first_timestamp):
        logger.error("Failed to start measurement source")
        return 0

    try:
        delivered = estimator.active_source.replay(limit=max_samples)
    finally:
        estimator.stop()

    logger.info(f"Delivered {delivered} synchronized measurements, estimated {poses} poses")
    return delivered


def main():
    parser = argparse.ArgumentParser(description='Run imu_pose log replay')

    parser.add_argument(
        '--log',
        type=str,
        default=None,
        help='센서 로그 CSV 경로 (없으면 설정 파일의 replay.log_path)'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='설정 파일 경로'
    )
    parser.add_argument(
        '--relative',
        action='store_true',
        help='상대 pose 추정'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        help='로그 레벨 (DEBUG, INFO, WARNING, ...)'
    )
    parser.add_argument(
        '--max-samples',
        type=int,
        default=None,
        help='최대 처리 측정 수'
    )

    args = parser.parse_args()

    # 설정 로드
    if args.config:
        config = load_config(args.config)
    else:
        config = SystemConfig()

    setup_logging(config, args.log_level)

    log_path = args.log or config.replay.log_path
    if not log_path:
        parser.error("--log is required when the config has no replay.log_path")

    relative = args.relative or config.replay.relative

    logger.info(f"Replaying {log_path} (relative={relative})")
    run(config, log_path, relative, args.max_samples)

    return 0


if __name__ == '__main__':
    sys.exit(main())
