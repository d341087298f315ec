"""
水印去除使用示例

演示如何使用WatermarkRemovalEngine检测并去除星形水印。
"""

import sys
from pathlib import Path

import numpy as np

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from engines.reversal import WatermarkRemovalEngine, RemovalConfig, ProcessOptions, SizeClass
from engines.reversal.blending import forward_blend
from engines.reversal.utils import calculate_psnr


def make_sample_image(width: int = 800, height: int = 600) -> np.ndarray:
    """生成渐变背景的示例图像"""
    x = np.linspace(40, 200, width)
    y = np.linspace(0, 30, height)[:, np.newaxis]
    gray = (x + y).astype(np.uint8)
    return np.stack([gray, gray * 0.8, gray * 0.6], axis=-1).astype(np.uint8)


def example_basic_usage():
    """基本使用示例"""
    print("=" * 60)
    print("示例1: 检测并去除水印")
    print("=" * 60)
    
    engine = WatermarkRemovalEngine()
    
    original = make_sample_image()
    image = original.copy()
    
    # 按服务端方式叠加水印
    placement, weights = engine.locate(image)
    forward_blend(image, placement, weights)
    print(f"\n叠加水印: {placement.size_class.value} @ ({placement.x}, {placement.y})")
    print(f"  - 叠加后PSNR: {calculate_psnr(original, image):.2f} dB")
    
    detection = engine.detect(image)
    print(f"\n检测结果: {'检测到水印' if detection.detected else '未检测到水印'}")
    print(f"  - 置信度: {detection.confidence:.3f}")
    print(f"  - 空间/梯度/方差: {detection.spatial_score:.3f} / "
          f"{detection.gradient_score:.3f} / {detection.variance_score:.3f}")
    
    result = engine.remove(image)
    print(f"\n去除结果: {'已修改' if result.modified else '未修改'}")
    print(f"  - 修改像素数: {result.pixels_changed}")
    print(f"  - 去除后PSNR: {calculate_psnr(original, image):.2f} dB")
    for name, elapsed in result.metrics.items():
        print(f"  - {name}: {elapsed * 1000:.2f} ms")


def example_clean_image():
    """无水印图像示例"""
    print("\n" + "=" * 60)
    print("示例2: 无水印图像保持不变")
    print("=" * 60)
    
    engine = WatermarkRemovalEngine()
    image = make_sample_image()
    
    cleaned, result = engine.remove_copy(image)
    print(f"\n置信度: {result.detection.confidence:.3f}")
    print(f"是否修改: {result.modified}")
    print(f"图像是否相同: {np.array_equal(cleaned, image)}")


def example_custom_config():
    """自定义配置示例"""
    print("\n" + "=" * 60)
    print("示例3: 自定义配置与强制模式")
    print("=" * 60)
    
    config = RemovalConfig(confidence_threshold=0.5, scale_mode="proportional")
    engine = WatermarkRemovalEngine(config)
    
    image = make_sample_image(1600, 1200)
    placement, weights = engine.locate(image)
    print(f"\n比例缩放定位: {placement.width}x{placement.height} "
          f"(scale={placement.scale:.3f})")
    
    options = ProcessOptions(force=True, force_size=SizeClass.LARGE)
    result = engine.remove(image, options)
    print(f"强制处理: 修改像素数 {result.pixels_changed}，检测结果 {result.detection}")


if __name__ == "__main__":
    example_basic_usage()
    example_clean_image()
    example_custom_config()
