"""
标定掩码模块

该模块包含水印alpha掩码的标定数据与仓库。
"""

from .mask_repository import AlphaMask, MaskRepository, get_default_repository
from .calibration import load_calibration, render_sparkle, calculate_alpha_map

__all__ = [
    'AlphaMask',
    'MaskRepository',
    'get_default_repository',
    'load_calibration',
    'render_sparkle',
    'calculate_alpha_map'
]
