"""
水印检测器模块

三阶段加权检测，判断定位矩形内是否存在星形水印：
1. 空间NCC (50%)：亮度与alpha掩码的相关性
2. 梯度NCC (30%)：Sobel边缘特征匹配
3. 方差分析 (20%)：水印叠加造成的纹理衰减
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..config import RemovalConfig, Anchor, Placement, DetectionResult
from ..utils.image_utils import rgb_to_luminance
from .signals import ncc, sobel_magnitude, stddev

logger = logging.getLogger(__name__)

SPATIAL_WEIGHT = 0.50
GRADIENT_WEIGHT = 0.30
VARIANCE_WEIGHT = 0.20


class WatermarkDetector:
    """
    水印检测器

    只读图像，对定位矩形计算融合置信度。alpha 低于阈值的像素不携带
    水印信号，在三项信号中均被排除。
    """
    
    def __init__(self, config: Optional[RemovalConfig] = None):
        """
        初始化检测器

        Args:
            config: 引擎配置
        """
        self.config = config if config else RemovalConfig()
        self.anchor = Anchor(self.config.anchor)

    def detect(self, image: np.ndarray, placement: Placement,
               weights: np.ndarray, threshold: float) -> DetectionResult:
        """
        检测水印

        空间相关性低于 min(threshold, spatial_gate) 时提前返回，
        置信度取 0.5 * spatial，梯度和方差信号不再计算。

        Args:
            image: RGB图像 (H, W, 3) uint8
            placement: 定位结果
            weights: 与覆盖区域同尺寸的alpha掩码
            threshold: 置信度阈值

        Returns:
            DetectionResult
        """
        result = DetectionResult(confidence=0.0, placement=placement)
        
        img_h, img_w = image.shape[:2]
        x0, y0, x1, y1 = placement.bounds(img_w, img_h)
        if x1 <= x0 or y1 <= y0:
            return result
        
        # 覆盖区域被图像边界裁剪时只取对应的掩码子区域
        alpha = np.asarray(weights[:y1 - y0, :x1 - x0], dtype=np.float32)
        gray = rgb_to_luminance(image[y0:y1, x0:x1])
        
        signal = alpha >= self.config.alpha_threshold
        if not np.any(signal):
            return result
        
        # 阶段1：空间NCC
        spatial = max(0.0, ncc(gray[signal], alpha[signal]))
        result.spatial_score = spatial
        
        gate = min(threshold, self.config.spatial_gate)
        if spatial < gate:
            result.confidence = float(np.clip(SPATIAL_WEIGHT * spatial, 0.0, 1.0))
            result.gated = True
            result.detected = result.confidence >= threshold
            logger.debug(f"Spatial gate rejected region: spatial={spatial:.3f} < {gate:.3f}")
            return result
        
        # 阶段2：梯度NCC
        image_grad = sobel_magnitude(gray)
        alpha_grad = sobel_magnitude(alpha)
        gradient = max(0.0, ncc(image_grad[signal], alpha_grad[signal]))
        result.gradient_score = gradient
        
        # 阶段3：方差分析
        variance = self._variance_score(image, (x0, y0, x1, y1), gray, alpha, signal)
        result.variance_score = variance
        
        confidence = (SPATIAL_WEIGHT * spatial
                      + GRADIENT_WEIGHT * gradient
                      + VARIANCE_WEIGHT * variance)
        
        result.confidence = float(np.clip(confidence, 0.0, 1.0))
        result.detected = result.confidence >= threshold
        
        logger.debug(f"Detection: confidence={result.confidence:.3f} "
                     f"spatial={spatial:.3f} gradient={gradient:.3f} variance={variance:.3f}")
        
        return result

    def _variance_score(self, image: np.ndarray, bounds: Tuple[int, int, int, int],
                        gray: np.ndarray, alpha: np.ndarray, signal: np.ndarray) -> float:
        """
        纹理衰减得分

        水印叠加使局部纹理标准差按 (1 - alpha) 缩小。观测衰减
        1 - std(区域) / std(参考区) 与掩码预测的衰减 mean(alpha) 之比
        即为得分。参考区近乎平坦时无法估计衰减，返回封顶得分。
        """
        reference = self._reference_region(image, bounds)
        if reference is None:
            return 0.0
        
        ref_std = stddev(reference)
        if ref_std < self.config.min_reference_stddev:
            return self.config.flat_reference_score
        
        expected = float(np.mean(alpha[signal]))
        if expected <= 0.0:
            return 0.0
        
        observed = 1.0 - stddev(gray[signal]) / ref_std
        return float(np.clip(observed / expected, 0.0, 1.0))

    def _reference_region(self, image: np.ndarray,
                          bounds: Tuple[int, int, int, int]) -> Optional[np.ndarray]:
        """
        选取不受水印影响的参考条带

        优先取覆盖区域朝图像内侧的竖直相邻条带（右下角锚定时为上方），
        高度不足时改取水平相邻条带。
        """
        img_h, img_w = image.shape[:2]
        x0, y0, x1, y1 = bounds
        roi_w, roi_h = x1 - x0, y1 - y0
        min_size = self.config.min_reference_height
        
        candidates = []
        
        if self.anchor in (Anchor.BOTTOM_RIGHT, Anchor.BOTTOM_LEFT):
            ref_h = min(y0, roi_h)
            candidates.append((ref_h, (x0, y0 - ref_h, x1, y0)))
        else:
            ref_h = min(img_h - y1, roi_h)
            candidates.append((ref_h, (x0, y1, x1, y1 + ref_h)))
        
        if self.anchor in (Anchor.BOTTOM_RIGHT, Anchor.TOP_RIGHT):
            ref_w = min(x0, roi_w)
            candidates.append((ref_w, (x0 - ref_w, y0, x0, y1)))
        else:
            ref_w = min(img_w - x1, roi_w)
            candidates.append((ref_w, (x1, y0, x1 + ref_w, y1)))
        
        for extent, (rx0, ry0, rx1, ry1) in candidates:
            if extent >= min_size:
                return rgb_to_luminance(image[ry0:ry1, rx0:rx1])
        
        return None
