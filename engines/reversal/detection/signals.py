"""
检测信号基础运算

归一化互相关、Sobel梯度幅值和标准差。
"""

import numpy as np
import cv2


def ncc(a: np.ndarray, b: np.ndarray) -> float:
    """
    归一化互相关

    NCC = sum((a-mean_a)*(b-mean_b)) / sqrt(sum((a-mean_a)^2) * sum((b-mean_b)^2))

    Args:
        a: 信号a（任意形状，按元素展平）
        b: 信号b，与a元素个数相同

    Returns:
        [-1, 1] 相关系数；空输入或任一信号为常数时返回0
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    
    if a.size != b.size:
        raise ValueError(f"信号长度必须相同: {a.size} != {b.size}")
    
    if a.size == 0:
        return 0.0
    
    da = a - a.mean()
    db = b - b.mean()
    
    denom = np.sqrt(np.sum(da * da) * np.sum(db * db))
    if denom < 1e-10:
        return 0.0
    
    return float(np.sum(da * db) / denom)


def sobel_magnitude(data: np.ndarray) -> np.ndarray:
    """
    3×3 Sobel 梯度幅值

    Args:
        data: 二维浮点数组

    Returns:
        与输入同形状的梯度幅值 float32
    """
    data = np.asarray(data, dtype=np.float32)
    gx = cv2.Sobel(data, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(data, cv2.CV_32F, 0, 1, ksize=3)
    return cv2.magnitude(gx, gy)


def stddev(data: np.ndarray) -> float:
    """总体标准差，空输入返回0"""
    data = np.asarray(data, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.std(data))
