"""
标定数据模块

负责读取内嵌的水印标定参数，渲染星形alpha掩码，以及从截取的
参考PNG（黑底白色水印）中反推alpha掩码。
"""

import logging
from pathlib import Path
from typing import Dict, Any

import numpy as np
import yaml
from PIL import Image, UnidentifiedImageError

from ..errors import InitError

logger = logging.getLogger(__name__)

CALIBRATION_PATH = Path(__file__).with_name('calibration.yaml')

_REQUIRED_SPARKLE_KEYS = ('exponent', 'radius_ratio', 'peak_alpha', 'edge_alpha', 'supersample')


def load_calibration(path: Path = CALIBRATION_PATH) -> Dict[str, Any]:
    """
    读取标定参数文件

    Args:
        path: 标定YAML路径

    Returns:
        包含 sparkle 和 masks 两部分的字典

    Raises:
        InitError: 文件缺失或内容不完整
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise InitError(f"calibration data not found: {path}")
    except yaml.YAMLError as e:
        raise InitError(f"calibration data is malformed: {e}")
    
    if not isinstance(data, dict):
        raise InitError("calibration data must be a mapping")
    
    sparkle = data.get('sparkle')
    masks = data.get('masks')
    if not isinstance(sparkle, dict) or not isinstance(masks, dict):
        raise InitError("calibration data requires 'sparkle' and 'masks' sections")
    
    missing = [key for key in _REQUIRED_SPARKLE_KEYS if key not in sparkle]
    if missing:
        raise InitError(f"calibration data missing sparkle keys: {', '.join(missing)}")
    
    return data


def render_sparkle(size: int, exponent: float, radius_ratio: float,
                   peak_alpha: float, edge_alpha: float,
                   supersample: int = 4) -> np.ndarray:
    """
    渲染星形水印的alpha掩码

    星形轮廓满足 |u|^p + |v|^p = 1，其中 (u, v) 为以星形半径归一化的
    中心坐标。alpha 从中心的 peak_alpha 线性衰减到轮廓处的 edge_alpha，
    每个像素按 supersample×supersample 子采样取平均实现抗锯齿。

    Args:
        size: 掩码边长（像素）
        exponent: 轮廓指数 p，小于1时为内凹星形
        radius_ratio: 星形半径占掩码半边长的比例
        peak_alpha: 中心alpha
        edge_alpha: 轮廓处alpha
        supersample: 每像素子采样数

    Returns:
        (size, size) float32 掩码
    """
    if size <= 0 or supersample <= 0:
        raise ValueError(f"掩码尺寸和子采样数必须为正: {size}, {supersample}")
    
    n = size * supersample
    coords = (np.arange(n, dtype=np.float64) + 0.5) / supersample
    center = size / 2.0
    radius = radius_ratio * center
    u = np.abs(coords - center) / radius
    
    uu, vv = np.meshgrid(u, u)
    rho = uu ** exponent + vv ** exponent
    
    alpha = np.where(rho <= 1.0, edge_alpha + (peak_alpha - edge_alpha) * (1.0 - rho), 0.0)
    alpha = alpha.reshape(size, supersample, size, supersample).mean(axis=(1, 3))
    
    return alpha.astype(np.float32)


def calculate_alpha_map(png_path: Path) -> np.ndarray:
    """
    从参考截图计算alpha掩码

    参考图是水印渲染在纯黑背景上的截图。黑底上 pixel = alpha * 255，
    因此 alpha = max(R, G, B) / 255。

    Args:
        png_path: 参考PNG路径

    Returns:
        (H, W) float32 掩码

    Raises:
        InitError: 文件不存在或无法解码
    """
    try:
        with Image.open(png_path) as img:
            arr = np.asarray(img.convert('RGB'), dtype=np.float32)
    except FileNotFoundError:
        raise InitError(f"alpha map capture not found: {png_path}")
    except (UnidentifiedImageError, OSError) as e:
        raise InitError(f"failed to decode alpha map PNG {png_path}: {e}")
    
    logger.debug(f"Decoded alpha map capture {png_path} ({arr.shape[1]}x{arr.shape[0]})")
    return arr.max(axis=2) / 255.0
