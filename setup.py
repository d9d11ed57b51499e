#!/usr/bin/env python3
"""
imu_pose Setup Script
"""

from setuptools import setup, find_packages

setup(
    name='imu_pose',
    version='1.0.0',
    description='IMU-based absolute (ECEF) and relative pose estimation',
    author='FurSys AI Team',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy>=1.20.0',
        'scipy>=1.7.0',
        'filterpy>=1.4.5',
        'pyyaml>=5.4.0',
        'pandas>=1.3.0',
        'pyproj>=3.0.0',
        'geomag',
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'imu_pose=imu_pose.main:main',
        ],
    },
)
