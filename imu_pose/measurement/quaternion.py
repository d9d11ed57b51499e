"""
quaternion.py - 자세 쿼터니언 값 타입

모든 프로세서가 공유하는 방향(orientation) 표현입니다.
scipy Rotation/Slerp 위에 얇게 얹은 불변 값 타입으로,
내부 처리는 쿼터니언, 사용자 표시는 오일러 각도로 제공합니다.

규약:
- 성분 순서: (x, y, z, w) - scipy 표준 (scalar-last)
- 오일러 각도: roll(X), pitch(Y), yaw(Z), 라디안, R = Rz(yaw)·Ry(pitch)·Rx(roll)
- 호출자는 정규화를 가정하지 않으며, 보간/적분 후 항상 normalize() 합니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from scipy.spatial.transform import Rotation, Slerp
from typing import Tuple
from dataclasses import dataclass


@dataclass(frozen=True)
class Quaternion:
    """
    쿼터니언 (x, y, z, w) - scipy 형식

    표현: q = w + xi + yj + zk
    단위 쿼터니언 조건: |q| = sqrt(x² + y² + z² + w²) = 1
    """
    x: float
    y: float
    z: float
    w: float

    def to_array(self) -> np.ndarray:
        """[x, y, z, w] 형식 (scipy 표준)"""
        return np.array([self.x, self.y, self.z, self.w], dtype=float)

    def to_array_wxyz(self) -> np.ndarray:
        """[w, x, y, z] 형식 (적분기 내부 상태용)"""
        return np.array([self.w, self.x, self.y, self.z], dtype=float)

    @property
    def norm(self) -> float:
        """쿼터니언 크기"""
        return float(np.linalg.norm(self.to_array()))

    @property
    def is_unit(self) -> bool:
        """단위 쿼터니언 여부"""
        return abs(self.norm - 1.0) < 1e-6

    def normalize(self) -> 'Quaternion':
        """단위 쿼터니언으로 정규화"""
        arr = self.to_array()
        norm = np.linalg.norm(arr)
        if norm < 1e-10:
            return Quaternion.identity()
        arr = arr / norm
        return Quaternion.from_array(arr)

    def conjugate(self) -> 'Quaternion':
        """켤레 쿼터니언 (회전의 역)"""
        return Quaternion(x=-self.x, y=-self.y, z=-self.z, w=self.w)

    def inverse(self) -> 'Quaternion':
        """역 쿼터니언"""
        sq_norm = float(np.dot(self.to_array(), self.to_array()))
        if sq_norm < 1e-20:
            return Quaternion.identity()
        c = self.conjugate()
        return Quaternion(x=c.x / sq_norm, y=c.y / sq_norm, z=c.z / sq_norm, w=c.w / sq_norm)

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        """해밀턴 곱 (회전 합성 self·other)"""
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z

        return Quaternion(
            x=w1*x2 + x1*w2 + y1*z2 - z1*y2,
            y=w1*y2 - x1*z2 + y1*w2 + z1*x2,
            z=w1*z2 + x1*y2 - y1*x2 + z1*w2,
            w=w1*w2 - x1*x2 - y1*y2 - z1*z2
        )

    def dot(self, other: 'Quaternion') -> float:
        """내적 (4차원)"""
        return float(np.dot(self.to_array(), other.to_array()))

    @property
    def rotation_angle(self) -> float:
        """회전 각도 (라디안, [0, pi])"""
        return float(np.linalg.norm(self.to_rotation().as_rotvec()))

    def angle_to(self, other: 'Quaternion') -> float:
        """다른 쿼터니언까지의 각도 (라디안)"""
        dot = np.clip(abs(self.normalize().dot(other.normalize())), 0.0, 1.0)
        return float(2 * np.arccos(dot))

    def to_rotation(self) -> Rotation:
        """scipy Rotation 으로 변환"""
        return Rotation.from_quat(self.normalize().to_array())

    def to_matrix(self) -> np.ndarray:
        """3x3 회전 행렬"""
        return self.to_rotation().as_matrix()

    def rotate(self, vector: np.ndarray) -> np.ndarray:
        """벡터 회전 (R · v)"""
        return self.to_rotation().apply(np.asarray(vector, dtype=float))

    def to_euler(self) -> Tuple[float, float, float]:
        """
        오일러 각도 추출

        Returns:
            (roll, pitch, yaw) 라디안
        """
        yaw, pitch, roll = self.to_rotation().as_euler('ZYX')
        return float(roll), float(pitch), float(yaw)

    def __repr__(self) -> str:
        return f"Quaternion(x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f}, w={self.w:.4f})"

    @classmethod
    def identity(cls) -> 'Quaternion':
        """단위 쿼터니언 (회전 없음)"""
        return cls(x=0.0, y=0.0, z=0.0, w=1.0)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> 'Quaternion':
        """[x, y, z, w] 배열에서 생성"""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]), w=float(arr[3]))

    @classmethod
    def from_wxyz(cls, arr: np.ndarray) -> 'Quaternion':
        """[w, x, y, z] 배열에서 생성"""
        return cls(x=float(arr[1]), y=float(arr[2]), z=float(arr[3]), w=float(arr[0]))

    @classmethod
    def from_rotation(cls, rotation: Rotation) -> 'Quaternion':
        """scipy Rotation 에서 생성"""
        return cls.from_array(rotation.as_quat())

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> 'Quaternion':
        """3x3 회전 행렬에서 생성"""
        return cls.from_rotation(Rotation.from_matrix(matrix))

    @classmethod
    def from_euler(cls, roll: float, pitch: float, yaw: float) -> 'Quaternion':
        """오일러 각도(라디안)에서 생성"""
        return cls.from_rotation(Rotation.from_euler('ZYX', [yaw, pitch, roll]))

    @classmethod
    def from_rotvec(cls, rotvec: np.ndarray) -> 'Quaternion':
        """회전 벡터(축 * 각도, 라디안)에서 생성"""
        return cls.from_rotation(Rotation.from_rotvec(np.asarray(rotvec, dtype=float)))

    @classmethod
    def from_axis_angle(cls, axis: np.ndarray, angle: float) -> 'Quaternion':
        """축-각도(라디안)에서 생성"""
        axis = np.asarray(axis, dtype=float)
        norm = np.linalg.norm(axis)
        if norm < 1e-12:
            return cls.identity()
        return cls.from_rotvec(axis / norm * angle)


def slerp(q0: Quaternion, q1: Quaternion, t: float) -> Quaternion:
    """
    두 쿼터니언 사이 구면 선형 보간 (SLERP)

    Args:
        q0: 시작 쿼터니언 (t=0)
        q1: 끝 쿼터니언 (t=1)
        t: 보간 파라미터 [0, 1]

    Returns:
        보간된 단위 쿼터니언
    """
    if t <= 0.0:
        return q0.normalize()
    if t >= 1.0:
        return q1.normalize()

    key_rots = Rotation.from_quat([q0.normalize().to_array(), q1.normalize().to_array()])
    interpolator = Slerp([0.0, 1.0], key_rots)
    return Quaternion.from_rotation(interpolator([t])[0]).normalize()
