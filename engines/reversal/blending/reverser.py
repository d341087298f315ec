"""
逆alpha混合模块

服务端以正向alpha混合叠加水印:
    watermarked = alpha * logo + (1 - alpha) * original

本模块实现逆运算以恢复原始像素:
    original = (watermarked - alpha * logo) / (1 - alpha)

舍入规则统一为四舍六入五成双（numpy.rint），先舍入再截断到 [0, 255]。
"""

import logging
from typing import Optional

import numpy as np

from ..config import RemovalConfig, Placement

logger = logging.getLogger(__name__)


class Reverser:
    """
    逆混合器

    只修改定位矩形内的像素，原地操作，不重新分配图像。
    alpha 低于 alpha_threshold 的像素保持不变；alpha 达到 max_alpha 的
    像素信息已被水印完全覆盖，无法恢复，同样保持不变。
    """
    
    def __init__(self, config: Optional[RemovalConfig] = None):
        """
        初始化逆混合器

        Args:
            config: 引擎配置，提供 logo_value / alpha_threshold / max_alpha
        """
        self.config = config if config else RemovalConfig()

    def apply(self, image: np.ndarray, placement: Placement, weights: np.ndarray) -> int:
        """
        对定位矩形执行逆混合

        Args:
            image: RGB图像 (H, W, 3) uint8，原地修改
            placement: 定位结果
            weights: 与覆盖区域同尺寸的alpha掩码

        Returns:
            实际发生变化的像素数
        """
        img_h, img_w = image.shape[:2]
        x0, y0, x1, y1 = placement.bounds(img_w, img_h)
        if x1 <= x0 or y1 <= y0:
            return 0
        
        alpha = np.asarray(weights[:y1 - y0, :x1 - x0], dtype=np.float64)
        active = (alpha >= self.config.alpha_threshold) & (alpha < self.config.max_alpha)
        if not np.any(active):
            return 0
        
        region = image[y0:y1, x0:x1]
        observed = region[active].astype(np.float64)
        a = alpha[active][:, np.newaxis]
        
        restored = (observed - a * self.config.logo_value) / (1.0 - a)
        restored = np.clip(np.rint(restored), 0, 255).astype(np.uint8)
        
        changed = np.any(restored != region[active], axis=1)
        region[active] = restored
        
        pixels_changed = int(np.count_nonzero(changed))
        logger.debug(f"Reverse blend touched {int(np.count_nonzero(active))} pixels, "
                     f"changed {pixels_changed}")
        
        return pixels_changed


def forward_blend(image: np.ndarray, placement: Placement, weights: np.ndarray,
                  logo_value: float = 255.0) -> None:
    """
    以服务端相同的方式原地叠加水印

    用于合成带水印的测试图像和演示。

    Args:
        image: RGB图像 (H, W, 3) uint8，原地修改
        placement: 定位结果
        weights: 与覆盖区域同尺寸的alpha掩码
        logo_value: 水印颜色值
    """
    img_h, img_w = image.shape[:2]
    x0, y0, x1, y1 = placement.bounds(img_w, img_h)
    if x1 <= x0 or y1 <= y0:
        return
    
    alpha = np.asarray(weights[:y1 - y0, :x1 - x0], dtype=np.float64)[:, :, np.newaxis]
    region = image[y0:y1, x0:x1].astype(np.float64)
    
    blended = alpha * logo_value + (1.0 - alpha) * region
    image[y0:y1, x0:x1] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
