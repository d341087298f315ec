"""
水印逆混合引擎配置模型

该模块定义了引擎配置、处理选项以及检测/处理结果的数据类。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple
import yaml


DEFAULT_CONFIDENCE_THRESHOLD = 0.35


class SizeClass(Enum):
    """标定掩码尺寸档位"""
    SMALL = "small"
    LARGE = "large"


class Anchor(Enum):
    """水印锚定角"""
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM_LEFT = "bottom-left"
    TOP_RIGHT = "top-right"
    TOP_LEFT = "top-left"


class ScaleMode(Enum):
    """掩码缩放模式"""
    FIXED = "fixed"
    PROPORTIONAL = "proportional"


@dataclass
class RemovalConfig:
    """引擎配置"""
    
    # 标定配置
    logo_value: float = 255.0
    alpha_threshold: float = 0.002
    max_alpha: float = 0.99
    mask_dir: Optional[str] = None
    
    # 定位配置
    small_size: int = 48
    small_margin: int = 32
    large_size: int = 96
    large_margin: int = 64
    large_min_dimension: int = 1024
    anchor: str = "bottom-right"
    scale_mode: str = "fixed"
    small_reference_dimension: int = 1024
    large_reference_dimension: int = 2048
    mask_interpolation: str = "bilinear"
    min_footprint: int = 24  # 比例缩放后允许的最小覆盖边长
    
    # 检测配置
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    spatial_gate: float = 0.25
    min_reference_height: int = 8
    min_reference_stddev: float = 5.0 / 255.0
    flat_reference_score: float = 1.0
    
    # 输出配置
    jpeg_quality: int = 100
    output_suffix: str = "_cleaned"
    
    # 批处理配置
    num_workers: int = 4
    
    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'RemovalConfig':
        """
        从字典创建配置对象

        Args:
            config_dict: 配置字典

        Returns:
            RemovalConfig实例
        """
        defaults = cls()
        calibration = config_dict.get('calibration', {})
        placement = config_dict.get('placement', {})
        detection = config_dict.get('detection', {})
        output = config_dict.get('output', {})
        batch = config_dict.get('batch', {})
        
        small = placement.get('small', {})
        large = placement.get('large', {})
        
        return cls(
            # 标定配置
            logo_value=calibration.get('logo_value', defaults.logo_value),
            alpha_threshold=calibration.get('alpha_threshold', defaults.alpha_threshold),
            max_alpha=calibration.get('max_alpha', defaults.max_alpha),
            mask_dir=calibration.get('mask_dir', defaults.mask_dir),
            
            # 定位配置
            small_size=small.get('size', defaults.small_size),
            small_margin=small.get('margin', defaults.small_margin),
            small_reference_dimension=small.get(
                'reference_dimension', defaults.small_reference_dimension),
            large_size=large.get('size', defaults.large_size),
            large_margin=large.get('margin', defaults.large_margin),
            large_reference_dimension=large.get(
                'reference_dimension', defaults.large_reference_dimension),
            large_min_dimension=placement.get('large_min_dimension', defaults.large_min_dimension),
            anchor=placement.get('anchor', defaults.anchor),
            scale_mode=placement.get('scale_mode', defaults.scale_mode),
            mask_interpolation=placement.get('mask_interpolation', defaults.mask_interpolation),
            min_footprint=placement.get('min_footprint', defaults.min_footprint),
            
            # 检测配置
            confidence_threshold=detection.get('confidence_threshold', defaults.confidence_threshold),
            spatial_gate=detection.get('spatial_gate', defaults.spatial_gate),
            min_reference_height=detection.get('min_reference_height', defaults.min_reference_height),
            min_reference_stddev=detection.get('min_reference_stddev', defaults.min_reference_stddev),
            flat_reference_score=detection.get('flat_reference_score', defaults.flat_reference_score),
            
            # 输出配置
            jpeg_quality=output.get('jpeg_quality', defaults.jpeg_quality),
            output_suffix=output.get('suffix', defaults.output_suffix),
            
            # 批处理配置
            num_workers=batch.get('num_workers', defaults.num_workers)
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'RemovalConfig':
        """
        从YAML文件加载配置

        Args:
            yaml_path: YAML配置文件路径

        Returns:
            RemovalConfig实例

        Raises:
            FileNotFoundError: 如果配置文件不存在
            ValueError: 如果配置文件格式错误
        """
        try:
            with open(yaml_path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"配置文件不存在: {yaml_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")
        
        if not isinstance(config_dict, dict):
            raise ValueError("配置文件必须包含字典格式的数据")
        
        # 提取watermark_removal部分，没有则直接使用根配置
        removal_config = config_dict.get('watermark_removal', config_dict)
        
        config = cls.from_dict(removal_config)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """
        转换为字典格式

        Returns:
            配置字典
        """
        return {
            'calibration': {
                'logo_value': self.logo_value,
                'alpha_threshold': self.alpha_threshold,
                'max_alpha': self.max_alpha,
                'mask_dir': self.mask_dir
            },
            'placement': {
                'small': {
                    'size': self.small_size,
                    'margin': self.small_margin,
                    'reference_dimension': self.small_reference_dimension
                },
                'large': {
                    'size': self.large_size,
                    'margin': self.large_margin,
                    'reference_dimension': self.large_reference_dimension
                },
                'large_min_dimension': self.large_min_dimension,
                'anchor': self.anchor,
                'scale_mode': self.scale_mode,
                'mask_interpolation': self.mask_interpolation,
                'min_footprint': self.min_footprint
            },
            'detection': {
                'confidence_threshold': self.confidence_threshold,
                'spatial_gate': self.spatial_gate,
                'min_reference_height': self.min_reference_height,
                'min_reference_stddev': self.min_reference_stddev,
                'flat_reference_score': self.flat_reference_score
            },
            'output': {
                'jpeg_quality': self.jpeg_quality,
                'suffix': self.output_suffix
            },
            'batch': {
                'num_workers': self.num_workers
            }
        }

    def to_yaml(self, yaml_path: str) -> None:
        """
        保存配置到YAML文件

        Args:
            yaml_path: YAML配置文件路径
        """
        config_dict = {
            'watermark_removal': self.to_dict()
        }
        
        with open(yaml_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False,
                      allow_unicode=True, sort_keys=False)

    def validate(self) -> bool:
        """
        验证配置的有效性

        Returns:
            配置是否有效

        Raises:
            ValueError: 配置无效时抛出
        """
        if self.logo_value <= 0 or self.logo_value > 255:
            raise ValueError(f"水印颜色值必须在(0, 255]之间: {self.logo_value}")
        
        if not 0 <= self.alpha_threshold < self.max_alpha <= 1:
            raise ValueError(
                f"alpha阈值必须满足 0 <= alpha_threshold < max_alpha <= 1: "
                f"{self.alpha_threshold}, {self.max_alpha}")
        
        if self.small_size <= 0 or self.large_size <= 0:
            raise ValueError(f"掩码尺寸必须为正整数: {self.small_size}, {self.large_size}")
        
        if self.small_margin < 0 or self.large_margin < 0:
            raise ValueError(f"边距不能为负: {self.small_margin}, {self.large_margin}")
        
        if self.anchor not in [a.value for a in Anchor]:
            raise ValueError(f"不支持的锚定位置: {self.anchor}")
        
        if self.scale_mode not in [m.value for m in ScaleMode]:
            raise ValueError(f"不支持的缩放模式: {self.scale_mode}")
        
        if self.mask_interpolation not in ['bilinear', 'nearest']:
            raise ValueError(f"不支持的掩码插值方式: {self.mask_interpolation}")
        
        if self.min_footprint < 1:
            raise ValueError(f"最小覆盖边长必须为正整数: {self.min_footprint}")
        
        if self.small_reference_dimension <= 0 or self.large_reference_dimension <= 0:
            raise ValueError("参考分辨率必须为正整数")
        
        if self.confidence_threshold < 0 or self.confidence_threshold > 1:
            raise ValueError(f"置信度阈值必须在0-1之间: {self.confidence_threshold}")
        
        if self.spatial_gate < 0 or self.spatial_gate > 1:
            raise ValueError(f"空间相关门限必须在0-1之间: {self.spatial_gate}")
        
        if self.flat_reference_score < 0 or self.flat_reference_score > 1:
            raise ValueError(f"平坦参考区得分必须在0-1之间: {self.flat_reference_score}")
        
        if self.jpeg_quality < 1 or self.jpeg_quality > 100:
            raise ValueError(f"JPEG质量必须在1-100之间: {self.jpeg_quality}")
        
        if self.num_workers < 1:
            raise ValueError(f"工作线程数必须至少为1: {self.num_workers}")
        
        return True

    def size_spec(self, size_class: SizeClass) -> Tuple[int, int, int]:
        """返回 (掩码尺寸, 边距, 参考分辨率)"""
        if size_class == SizeClass.LARGE:
            return self.large_size, self.large_margin, self.large_reference_dimension
        return self.small_size, self.small_margin, self.small_reference_dimension


@dataclass(frozen=True)
class Placement:
    """水印在图像中的定位结果"""
    size_class: SizeClass
    x: int
    y: int
    width: int
    height: int
    scale: float = 1.0
    
    def bounds(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """
        裁剪到图像范围内的矩形

        Returns:
            (x0, y0, x1, y1)，x1/y1 为开区间
        """
        x1 = min(self.x + self.width, image_width)
        y1 = min(self.y + self.height, image_height)
        return self.x, self.y, max(self.x, x1), max(self.y, y1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'size_class': self.size_class.value,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'scale': self.scale
        }


@dataclass(frozen=True)
class ProcessOptions:
    """单次调用的处理选项"""
    confidence_threshold: Optional[float] = None  # None 时使用引擎配置的阈值
    force: bool = False
    force_size: Optional[SizeClass] = None
    region: Optional[Placement] = None


@dataclass
class DetectionResult:
    """检测结果"""
    confidence: float
    placement: Placement
    spatial_score: float = 0.0
    gradient_score: float = 0.0
    variance_score: float = 0.0
    detected: bool = False
    gated: bool = False  # 空间相关性过低，跳过后两项信号
    
    @property
    def scores(self) -> Dict[str, float]:
        return {
            'spatial': self.spatial_score,
            'gradient': self.gradient_score,
            'variance': self.variance_score
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'confidence': self.confidence,
            'detected': self.detected,
            'gated': self.gated,
            'scores': self.scores,
            'placement': self.placement.to_dict()
        }


@dataclass
class ProcessResult:
    """处理结果"""
    modified: bool
    detection: Optional[DetectionResult] = None  # force模式下为None
    pixels_changed: int = 0
    placement: Optional[Placement] = None
    metrics: Dict[str, float] = field(default_factory=dict)
