"""
图像处理工具模块
"""

from .image_utils import (
    validate_rgb_image,
    rgb_to_luminance,
    load_rgb_image,
    save_rgb_image,
    calculate_psnr
)

from .metrics import (
    PerformanceTimer,
    BatchSummary,
    calculate_confidence_stats
)

__all__ = [
    # image_utils
    'validate_rgb_image',
    'rgb_to_luminance',
    'load_rgb_image',
    'save_rgb_image',
    'calculate_psnr',
    
    # metrics
    'PerformanceTimer',
    'BatchSummary',
    'calculate_confidence_stats'
]
