"""
图像工具与性能指标测试
"""

import time

import pytest
import numpy as np
from PIL import Image

from engines.reversal.utils import (
    validate_rgb_image,
    rgb_to_luminance,
    load_rgb_image,
    save_rgb_image,
    calculate_psnr,
    PerformanceTimer,
    BatchSummary,
    calculate_confidence_stats
)


class TestImageUtils:
    """测试图像工具函数"""
    
    def test_luminance_weights(self):
        """测试亮度公式"""
        region = np.zeros((1, 3, 3), dtype=np.uint8)
        region[0, 0] = [255, 0, 0]
        region[0, 1] = [0, 255, 0]
        region[0, 2] = [0, 0, 255]
        
        gray = rgb_to_luminance(region)
        
        assert gray.shape == (1, 3)
        np.testing.assert_allclose(gray[0], [0.299, 0.587, 0.114], atol=1e-3)

    def test_validate_rejects_gray(self):
        """测试拒绝单通道图像"""
        with pytest.raises(ValueError):
            validate_rgb_image(np.zeros((10, 10), dtype=np.uint8))

    def test_validate_rejects_none(self):
        """测试拒绝空输入"""
        with pytest.raises(ValueError):
            validate_rgb_image(None)

    def test_png_save_load(self, tmp_path):
        """测试PNG无损保存"""
        image = np.random.RandomState(0).randint(0, 256, (20, 30, 3)).astype(np.uint8)
        path = tmp_path / "out.png"
        
        save_rgb_image(image, path)
        
        np.testing.assert_array_equal(load_rgb_image(path), image)

    def test_jpeg_quality(self, tmp_path):
        """测试JPEG质量参数"""
        image = np.random.RandomState(1).randint(0, 256, (64, 64, 3)).astype(np.uint8)
        high = tmp_path / "high.jpg"
        low = tmp_path / "low.jpg"
        
        save_rgb_image(image, high, jpeg_quality=100)
        save_rgb_image(image, low, jpeg_quality=10)
        
        assert high.stat().st_size > low.stat().st_size

    def test_load_converts_to_rgb(self, tmp_path):
        """测试灰度和RGBA图像读取为RGB"""
        path = tmp_path / "gray.png"
        Image.new('L', (8, 6), color=77).save(path)
        
        image = load_rgb_image(path)
        
        assert image.shape == (6, 8, 3)
        assert image.dtype == np.uint8
        assert np.all(image == 77)

    def test_unsupported_output_format(self, tmp_path):
        """测试不支持的输出格式"""
        with pytest.raises(ValueError):
            save_rgb_image(np.zeros((4, 4, 3), dtype=np.uint8), tmp_path / "out.gif")

    def test_psnr(self):
        """测试PSNR计算"""
        image = np.full((10, 10, 3), 100, dtype=np.uint8)
        noisy = image.copy()
        noisy[0, 0, 0] = 110
        
        assert calculate_psnr(image, image) == float('inf')
        assert calculate_psnr(image, noisy) > 40


class TestMetrics:
    """测试性能指标"""
    
    def test_timer_flattened_dict(self):
        """测试子计时器展平"""
        with PerformanceTimer("remove") as timer:
            with timer.add_sub_timer("detect"):
                time.sleep(0.01)
        
        data = timer.to_dict()
        
        assert set(data) == {"remove", "remove.detect"}
        assert data["remove"] >= data["remove.detect"] >= 0.01

    def test_timer_not_started(self):
        """测试未开始即停止"""
        with pytest.raises(ValueError):
            PerformanceTimer("x").stop()

    def test_confidence_stats(self):
        """测试置信度统计"""
        stats = calculate_confidence_stats([0.2, 0.4, 0.9])
        
        assert stats['mean'] == pytest.approx(0.5)
        assert stats['median'] == pytest.approx(0.4)
        assert calculate_confidence_stats([])['max'] == 0.0

    def test_batch_summary(self):
        """测试批处理汇总"""
        summary = BatchSummary()
        summary.add(True, False, 0.9, 0.1)
        summary.add(True, True, 0.1, 0.1)
        summary.add(False, False)
        
        assert (summary.processed, summary.skipped, summary.failed) == (1, 1, 1)
        assert summary.total == 3
        assert summary.has_failures
        assert summary.to_dict()['confidence_stats']['max'] == pytest.approx(0.9)
