"""
水印定位模块

根据图像尺寸选择标定掩码档位，并计算水印在图像中的覆盖矩形。
"""

import logging
from typing import Optional

import numpy as np

from ..config import RemovalConfig, SizeClass, Anchor, ScaleMode, Placement
from ..errors import UnsupportedSize
from ..masks.mask_repository import MaskRepository

logger = logging.getLogger(__name__)


class PlacementResolver:
    """
    定位解析器

    水印固定锚定在图像的某个角上（默认右下角），与图像边缘保持
    与掩码档位对应的边距。固定缩放模式下掩码按原生分辨率放置；
    比例缩放模式下覆盖区域和边距按图像短边与参考分辨率之比缩放。
    """
    
    def __init__(self, repository: MaskRepository, config: Optional[RemovalConfig] = None):
        """
        初始化定位解析器

        Args:
            repository: 标定掩码仓库
            config: 引擎配置
        """
        self.repository = repository
        self.config = config if config else RemovalConfig()
        self.anchor = Anchor(self.config.anchor)
        self.scale_mode = ScaleMode(self.config.scale_mode)

    def size_class_for(self, width: int, height: int) -> SizeClass:
        """
        按图像短边选择掩码档位

        短边大于断点（默认1024）时使用大掩码，否则使用小掩码。
        """
        if min(width, height) > self.config.large_min_dimension:
            return SizeClass.LARGE
        return SizeClass.SMALL

    def resolve(self, width: int, height: int,
                force_size: Optional[SizeClass] = None,
                region: Optional[Placement] = None) -> Placement:
        """
        计算水印覆盖矩形

        Args:
            width: 图像宽度
            height: 图像高度
            force_size: 强制使用的掩码档位
            region: 显式指定的定位，优先于自动计算

        Returns:
            Placement

        Raises:
            UnsupportedSize: 图像小于覆盖区域加边距，比例缩放后覆盖区域小于
                min_footprint，或显式区域完全落在图像外
        """
        if region is not None:
            return self._check_region(width, height, region)
        
        size_class = force_size if force_size else self.size_class_for(width, height)
        native = self.repository.get(size_class).size
        _, margin, reference = self.config.size_spec(size_class)
        
        scale = 1.0
        footprint = native
        if self.scale_mode == ScaleMode.PROPORTIONAL:
            scale = min(width, height) / float(reference)
            footprint = int(round(native * scale))
            margin = int(round(margin * scale))
            
            if footprint < self.config.min_footprint:
                raise UnsupportedSize(width, height, self.config.min_footprint)
        
        if width < footprint + margin or height < footprint + margin:
            raise UnsupportedSize(width, height, footprint)
        
        if self.anchor in (Anchor.BOTTOM_RIGHT, Anchor.TOP_RIGHT):
            x = width - footprint - margin
        else:
            x = margin
        
        if self.anchor in (Anchor.BOTTOM_RIGHT, Anchor.BOTTOM_LEFT):
            y = height - footprint - margin
        else:
            y = margin
        
        placement = Placement(
            size_class=size_class,
            x=x,
            y=y,
            width=footprint,
            height=footprint,
            scale=scale
        )
        
        logger.debug(f"Resolved {size_class.value} watermark at ({x}, {y}) "
                     f"size {footprint} scale {scale:.3f} for {width}x{height} image")
        
        return placement

    def _check_region(self, width: int, height: int, region: Placement) -> Placement:
        if region.x < 0 or region.y < 0 or region.width <= 0 or region.height <= 0:
            raise ValueError(f"显式区域必须位于图像坐标内且尺寸为正: {region}")
        
        if region.x >= width or region.y >= height:
            raise UnsupportedSize(width, height, max(region.width, region.height))
        
        return region

    def mask_for(self, placement: Placement) -> np.ndarray:
        """
        获取与覆盖区域同尺寸的掩码权重

        Args:
            placement: 定位结果

        Returns:
            (placement.height, placement.width) float32 数组
        """
        mask = self.repository.get(placement.size_class)
        return mask.resampled(placement.width, placement.height,
                              self.config.mask_interpolation)
