"""
掩码仓库模块

在引擎构建时一次性加载两个标定alpha掩码（48×48 和 96×96），
加载时完成校验，之后只读共享。
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Optional

import cv2
import numpy as np

from ..config import RemovalConfig, SizeClass
from ..errors import InitError
from .calibration import CALIBRATION_PATH, load_calibration, render_sparkle, calculate_alpha_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AlphaMask:
    """
    标定alpha掩码

    weights 为只读的 (H, W) float32 数组，取值 [0, 1]。
    0 表示该像素不受水印影响，1 表示完全被水印颜色覆盖。
    """
    size_class: SizeClass
    weights: np.ndarray
    
    @property
    def size(self) -> int:
        return self.weights.shape[0]

    def resampled(self, width: int, height: int, interpolation: str = 'bilinear') -> np.ndarray:
        """
        将掩码映射到其他尺寸的覆盖区域

        只对掩码网格做坐标变换重采样，不改动图像本身。

        Args:
            width: 目标宽度
            height: 目标高度
            interpolation: 'bilinear' 或 'nearest'

        Returns:
            (height, width) float32 数组
        """
        if (height, width) == self.weights.shape:
            return self.weights
        
        flag = cv2.INTER_NEAREST if interpolation == 'nearest' else cv2.INTER_LINEAR
        resized = cv2.resize(self.weights, (width, height), interpolation=flag)
        return np.clip(resized, 0.0, 1.0)


class MaskRepository:
    """标定掩码仓库，构建后不可变"""
    
    def __init__(self, masks: Dict[SizeClass, AlphaMask]):
        missing = [sc.value for sc in SizeClass if sc not in masks]
        if missing:
            raise InitError(f"missing alpha masks for size classes: {', '.join(missing)}")
        self._masks = MappingProxyType(dict(masks))

    @classmethod
    def load(cls, config: Optional[RemovalConfig] = None,
             calibration_path: Path = CALIBRATION_PATH) -> 'MaskRepository':
        """
        加载并校验标定掩码

        未配置 mask_dir 时由内嵌标定参数渲染掩码；配置后从
        mask_dir 下的 bg_48.png / bg_96.png 截图反推掩码。

        Args:
            config: 引擎配置，提供期望的掩码尺寸和截图目录
            calibration_path: 标定参数文件路径

        Returns:
            MaskRepository实例

        Raises:
            InitError: 标定数据缺失或不合法
        """
        config = config if config else RemovalConfig()
        expected = {
            SizeClass.SMALL: config.small_size,
            SizeClass.LARGE: config.large_size
        }
        
        masks = {}
        if config.mask_dir:
            mask_dir = Path(config.mask_dir)
            for size_class, size in expected.items():
                weights = calculate_alpha_map(mask_dir / f"bg_{size}.png")
                masks[size_class] = cls._build_mask(size_class, weights, size)
            logger.info(f"Loaded captured alpha masks from {mask_dir}")
        else:
            calibration = load_calibration(calibration_path)
            sparkle = calibration['sparkle']
            for size_class, size in expected.items():
                native = calibration['masks'].get(size_class.value)
                if native != size:
                    raise InitError(
                        f"calibrated {size_class.value} mask is {native}px, expected {size}px")
                try:
                    weights = render_sparkle(
                        size,
                        exponent=sparkle['exponent'],
                        radius_ratio=sparkle['radius_ratio'],
                        peak_alpha=sparkle['peak_alpha'],
                        edge_alpha=sparkle['edge_alpha'],
                        supersample=sparkle['supersample']
                    )
                except (TypeError, ValueError) as e:
                    raise InitError(f"invalid sparkle calibration: {e}")
                masks[size_class] = cls._build_mask(size_class, weights, size)
            logger.info(f"Rendered calibrated alpha masks: "
                        f"{config.small_size}x{config.small_size}, "
                        f"{config.large_size}x{config.large_size}")
        
        return cls(masks)

    @staticmethod
    def _build_mask(size_class: SizeClass, weights: np.ndarray, size: int) -> AlphaMask:
        weights = np.array(weights, dtype=np.float32)
        
        if weights.shape != (size, size):
            raise InitError(
                f"{size_class.value} alpha mask has shape {weights.shape}, expected ({size}, {size})")
        
        if not np.all(np.isfinite(weights)):
            raise InitError(f"{size_class.value} alpha mask contains non-finite weights")
        
        if weights.min() < 0.0 or weights.max() > 1.0:
            raise InitError(
                f"{size_class.value} alpha mask weights outside [0, 1]: "
                f"[{weights.min():.4f}, {weights.max():.4f}]")
        
        if weights.max() == 0.0:
            raise InitError(f"{size_class.value} alpha mask is empty")
        
        weights.setflags(write=False)
        return AlphaMask(size_class=size_class, weights=weights)

    def get(self, size_class: SizeClass) -> AlphaMask:
        return self._masks[size_class]

    @property
    def size_classes(self):
        return tuple(self._masks.keys())


@lru_cache(maxsize=1)
def get_default_repository() -> MaskRepository:
    """获取默认标定掩码仓库单例"""
    return MaskRepository.load()
