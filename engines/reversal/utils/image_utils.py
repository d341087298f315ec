"""
图像处理工具函数
提供像素缓冲校验、灰度转换、图像读写和质量评估功能
"""

from pathlib import Path
from typing import Union

import numpy as np
import cv2
from PIL import Image


SAVE_FORMATS = {
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.png': 'PNG',
    '.webp': 'WEBP',
    '.bmp': 'BMP'
}


def validate_rgb_image(image: np.ndarray) -> None:
    """
    校验像素缓冲为 (H, W, 3) uint8 RGB 图像

    Raises:
        ValueError: 缓冲为空、形状或类型不符
    """
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise ValueError("输入图像为空")
    
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"输入图像必须是3通道RGB图像，当前形状: {image.shape}")
    
    if image.dtype != np.uint8:
        raise ValueError(f"输入图像必须是8位无符号整数，当前类型: {image.dtype}")


def rgb_to_luminance(region: np.ndarray) -> np.ndarray:
    """
    将RGB区域转换为 [0, 1] 浮点亮度

    亮度公式: 0.299*R + 0.587*G + 0.114*B

    Args:
        region: RGB格式图像 (H, W, 3)

    Returns:
        亮度图 (H, W) float32
    """
    gray = cv2.cvtColor(region.astype(np.float32), cv2.COLOR_RGB2GRAY)
    return gray / 255.0


def load_rgb_image(path: Union[str, Path]) -> np.ndarray:
    """
    读取图像文件为RGB像素缓冲

    Args:
        path: 图像路径

    Returns:
        (H, W, 3) uint8 数组
    """
    with Image.open(path) as img:
        return np.array(img.convert('RGB'), dtype=np.uint8)


def save_rgb_image(image: np.ndarray, path: Union[str, Path], jpeg_quality: int = 100) -> None:
    """
    按扩展名保存RGB像素缓冲

    JPEG 使用指定质量（默认100），PNG/WEBP/BMP 使用默认编码参数。

    Args:
        image: (H, W, 3) uint8 数组
        path: 输出路径
        jpeg_quality: JPEG质量

    Raises:
        ValueError: 不支持的输出格式
    """
    validate_rgb_image(image)
    
    path = Path(path)
    image_format = SAVE_FORMATS.get(path.suffix.lower())
    if image_format is None:
        raise ValueError(f"不支持的输出格式: {path.suffix or path.name}")
    
    pil_image = Image.fromarray(image)
    if image_format == 'JPEG':
        pil_image.save(path, format=image_format, quality=jpeg_quality)
    else:
        pil_image.save(path, format=image_format)


def calculate_psnr(original: np.ndarray, modified: np.ndarray,
                   max_value: float = 255.0) -> float:
    """
    计算两幅图像之间的峰值信噪比(PSNR)

    Args:
        original: 原始图像
        modified: 修改后的图像
        max_value: 像素最大值，默认255

    Returns:
        PSNR值(dB)，值越高表示质量越好
    """
    if original.shape != modified.shape:
        raise ValueError("两幅图像尺寸必须相同")
    
    # 计算均方误差(MSE)
    mse = np.mean((original.astype(float) - modified.astype(float)) ** 2)
    
    # 如果MSE为0，说明图像完全相同
    if mse == 0:
        return float('inf')
    
    return float(20 * np.log10(max_value / np.sqrt(mse)))
