"""
水印检测模块

该模块包含水印检测相关的组件。
"""

from .detector import WatermarkDetector, SPATIAL_WEIGHT, GRADIENT_WEIGHT, VARIANCE_WEIGHT
from .signals import ncc, sobel_magnitude, stddev

__all__ = [
    'WatermarkDetector',
    'SPATIAL_WEIGHT',
    'GRADIENT_WEIGHT',
    'VARIANCE_WEIGHT',
    'ncc',
    'sobel_magnitude',
    'stddev'
]
