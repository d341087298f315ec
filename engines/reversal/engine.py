"""
水印逆混合引擎

组合定位解析器、检测器和逆混合器，对外提供 detect 与 remove 两个操作。
引擎在调用之间不保存任何可变状态，标定掩码仓库构建后只读共享，
可在多个线程中并发调用。
"""

import logging
from typing import Optional, Tuple

import numpy as np

from .config import RemovalConfig, SizeClass, Placement, ProcessOptions, DetectionResult, ProcessResult
from .masks.mask_repository import MaskRepository, get_default_repository
from .placement.placement_resolver import PlacementResolver
from .detection.detector import WatermarkDetector
from .blending.reverser import Reverser
from .utils.image_utils import validate_rgb_image
from .utils.metrics import PerformanceTimer

logger = logging.getLogger(__name__)


class WatermarkRemovalEngine:
    """
    水印逆混合引擎

    构建一次后可复用于任意数量的图像。
    """
    
    def __init__(self, config: Optional[RemovalConfig] = None,
                 repository: Optional[MaskRepository] = None):
        """
        初始化引擎

        Args:
            config: 引擎配置，None 时使用默认配置
            repository: 标定掩码仓库，None 时按配置加载

        Raises:
            InitError: 标定数据缺失或不合法
            ValueError: 配置无效
        """
        self.config = config if config else RemovalConfig()
        self.config.validate()
        
        if repository is None:
            repository = self._load_repository(self.config)
        self.repository = repository
        
        self.resolver = PlacementResolver(self.repository, self.config)
        self.detector = WatermarkDetector(self.config)
        self.reverser = Reverser(self.config)
        
        logger.info(f"WatermarkRemovalEngine initialized: "
                    f"threshold={self.config.confidence_threshold}, "
                    f"anchor={self.config.anchor}, scale_mode={self.config.scale_mode}")

    @staticmethod
    def _load_repository(config: RemovalConfig) -> MaskRepository:
        defaults = RemovalConfig()
        uses_defaults = (config.mask_dir is None
                         and config.small_size == defaults.small_size
                         and config.large_size == defaults.large_size)
        if uses_defaults:
            return get_default_repository()
        return MaskRepository.load(config)

    def default_options(self) -> ProcessOptions:
        """按引擎配置生成默认处理选项"""
        return ProcessOptions(confidence_threshold=self.config.confidence_threshold)

    def threshold_for(self, options: ProcessOptions) -> float:
        """返回本次调用生效的置信度阈值"""
        if options.confidence_threshold is not None:
            return options.confidence_threshold
        return self.config.confidence_threshold

    def watermark_size_for(self, width: int, height: int) -> SizeClass:
        """按图像尺寸选择掩码档位"""
        return self.resolver.size_class_for(width, height)

    def locate(self, image: np.ndarray,
               options: Optional[ProcessOptions] = None) -> Tuple[Placement, np.ndarray]:
        """
        计算水印定位及对应的掩码权重

        Raises:
            UnsupportedSize: 图像小于水印覆盖区域
        """
        validate_rgb_image(image)
        options = options if options else self.default_options()
        
        height, width = image.shape[:2]
        placement = self.resolver.resolve(width, height,
                                          force_size=options.force_size,
                                          region=options.region)
        return placement, self.resolver.mask_for(placement)

    def detect(self, image: np.ndarray,
               options: Optional[ProcessOptions] = None) -> DetectionResult:
        """
        检测水印（只读）

        Args:
            image: RGB图像 (H, W, 3) uint8
            options: 处理选项

        Returns:
            DetectionResult

        Raises:
            UnsupportedSize: 图像小于水印覆盖区域
        """
        options = options if options else self.default_options()
        placement, weights = self.locate(image, options)
        return self.detector.detect(image, placement, weights, self.threshold_for(options))

    def remove(self, image: np.ndarray,
               options: Optional[ProcessOptions] = None) -> ProcessResult:
        """
        原地去除水印

        force 为真时跳过检测直接逆混合；否则仅当置信度不低于阈值时
        才逆混合，低于阈值时返回 modified=False 并附带检测结果。

        Args:
            image: RGB图像 (H, W, 3) uint8，原地修改
            options: 处理选项

        Returns:
            ProcessResult

        Raises:
            UnsupportedSize: 图像小于水印覆盖区域
        """
        options = options if options else self.default_options()
        
        timer = PerformanceTimer('remove').start()
        placement, weights = self.locate(image, options)
        threshold = self.threshold_for(options)
        
        detection = None
        if not options.force:
            with timer.add_sub_timer('detect'):
                detection = self.detector.detect(image, placement, weights,
                                                 threshold)
            
            if detection.confidence < threshold:
                timer.stop()
                logger.debug(f"Skipping removal: confidence {detection.confidence:.3f} "
                             f"< threshold {threshold:.3f}")
                return ProcessResult(
                    modified=False,
                    detection=detection,
                    pixels_changed=0,
                    placement=placement,
                    metrics=timer.to_dict()
                )
        
        with timer.add_sub_timer('reverse'):
            pixels_changed = self.reverser.apply(image, placement, weights)
        timer.stop()
        
        return ProcessResult(
            modified=pixels_changed > 0,
            detection=detection,
            pixels_changed=pixels_changed,
            placement=placement,
            metrics=timer.to_dict()
        )

    def remove_copy(self, image: np.ndarray,
                    options: Optional[ProcessOptions] = None) -> Tuple[np.ndarray, ProcessResult]:
        """
        在副本上去除水印，输入图像保持不变

        Returns:
            (处理后的副本, ProcessResult)
        """
        validate_rgb_image(image)
        cleaned = image.copy()
        result = self.remove(cleaned, options)
        return cleaned, result
