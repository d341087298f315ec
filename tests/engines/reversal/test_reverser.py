"""
逆alpha混合单元测试
"""

import pytest
import numpy as np

from engines.reversal.config import RemovalConfig, SizeClass, Placement
from engines.reversal.masks import get_default_repository
from engines.reversal.blending import Reverser, forward_blend


@pytest.fixture
def reverser():
    return Reverser(RemovalConfig())


@pytest.fixture
def weights():
    return get_default_repository().get(SizeClass.SMALL).weights


@pytest.fixture
def placement():
    return Placement(SizeClass.SMALL, x=20, y=30, width=48, height=48)


class TestReverser:
    """测试Reverser类"""
    
    def test_round_trip(self, reverser, weights, placement):
        """测试正向混合后逆混合恢复原图（无截断时误差不超过舍入范围）"""
        rng = np.random.RandomState(0)
        original = rng.randint(0, 201, (120, 100, 3)).astype(np.uint8)
        image = original.copy()
        
        forward_blend(image, placement, weights)
        reverser.apply(image, placement, weights)
        
        diff = np.abs(image.astype(int) - original.astype(int))
        roi = diff[30:78, 20:68]
        low_alpha = weights <= 0.5
        
        assert roi[low_alpha].max() <= 1
        assert roi.max() <= 2

    def test_outside_region_untouched(self, reverser, weights, placement):
        """测试覆盖区域外像素不变"""
        image = np.random.RandomState(1).randint(0, 256, (120, 100, 3)).astype(np.uint8)
        before = image.copy()
        
        reverser.apply(image, placement, weights)
        
        mask = np.ones(image.shape[:2], dtype=bool)
        mask[30:78, 20:68] = False
        np.testing.assert_array_equal(image[mask], before[mask])

    def test_zero_alpha_untouched(self, reverser, weights, placement):
        """测试alpha低于阈值的像素不变"""
        image = np.random.RandomState(2).randint(0, 256, (120, 100, 3)).astype(np.uint8)
        before = image.copy()
        
        reverser.apply(image, placement, weights)
        
        inactive = weights < reverser.config.alpha_threshold
        roi, roi_before = image[30:78, 20:68], before[30:78, 20:68]
        np.testing.assert_array_equal(roi[inactive], roi_before[inactive])

    def test_saturated_alpha_untouched(self, reverser):
        """测试alpha达到上限的像素不变"""
        weights = np.array([[0.995, 0.5]], dtype=np.float32)
        placement = Placement(SizeClass.SMALL, x=0, y=0, width=2, height=1)
        image = np.full((1, 2, 3), 230, dtype=np.uint8)
        
        changed = reverser.apply(image, placement, weights)
        
        assert changed == 1
        assert image[0, 0].tolist() == [230, 230, 230]
        # (230 - 0.5 * 255) / 0.5 = 205
        assert image[0, 1].tolist() == [205, 205, 205]

    def test_clamped_to_zero(self, reverser):
        """测试结果截断到 [0, 255]"""
        weights = np.array([[0.5]], dtype=np.float32)
        placement = Placement(SizeClass.SMALL, x=0, y=0, width=1, height=1)
        image = np.full((1, 1, 3), 10, dtype=np.uint8)
        
        reverser.apply(image, placement, weights)
        
        assert image[0, 0].tolist() == [0, 0, 0]

    def test_round_half_to_even(self):
        """测试舍入为四舍六入五成双"""
        reverser = Reverser(RemovalConfig(logo_value=253.5))
        weights = np.array([[0.5]], dtype=np.float32)
        placement = Placement(SizeClass.SMALL, x=0, y=0, width=1, height=1)
        # (128 - 126.75) / 0.5 = 2.5, (129 - 126.75) / 0.5 = 4.5, (200 - 126.75) / 0.5 = 146.5
        image = np.array([[[128, 129, 200]]], dtype=np.uint8)
        
        reverser.apply(image, placement, weights)
        
        assert image[0, 0].tolist() == [2, 4, 146]

    def test_pixels_changed_count(self, reverser, weights, placement):
        """测试返回实际变化的像素数"""
        image = np.full((120, 100, 3), 200, dtype=np.uint8)
        
        changed = reverser.apply(image, placement, weights)
        
        active = (weights >= 0.002) & (weights < 0.99)
        assert 0 < changed <= int(np.count_nonzero(active))

    def test_clipped_placement(self, reverser, weights):
        """测试覆盖区域超出图像时只处理图像内部分"""
        image = np.full((50, 50, 3), 200, dtype=np.uint8)
        placement = Placement(SizeClass.SMALL, x=30, y=30, width=48, height=48)
        
        changed = reverser.apply(image, placement, weights)
        
        assert changed > 0
        assert np.all(image[:30, :, :] == 200)

    def test_empty_bounds(self, reverser, weights):
        """测试覆盖区域完全在图像外"""
        image = np.full((50, 50, 3), 200, dtype=np.uint8)
        placement = Placement(SizeClass.SMALL, x=60, y=60, width=48, height=48)
        
        assert reverser.apply(image, placement, weights) == 0


class TestForwardBlend:
    """测试正向混合"""
    
    def test_white_logo_brightens(self):
        """测试白色水印使像素变亮"""
        weights = np.array([[0.0, 0.5]], dtype=np.float32)
        placement = Placement(SizeClass.SMALL, x=0, y=0, width=2, height=1)
        image = np.full((1, 2, 3), 100, dtype=np.uint8)
        
        forward_blend(image, placement, weights)
        
        assert image[0, 0].tolist() == [100, 100, 100]
        # 0.5 * 255 + 0.5 * 100 = 177.5 -> 178
        assert image[0, 1].tolist() == [178, 178, 178]

    def test_forward_of_reversed_reproduces_input(self, reverser, weights, placement):
        """测试对逆混合结果再次正向混合可复现带水印像素（误差不超过1）"""
        rng = np.random.RandomState(5)
        watermarked = rng.randint(0, 201, (120, 100, 3)).astype(np.uint8)
        forward_blend(watermarked, placement, weights)
        image = watermarked.copy()
        
        reverser.apply(image, placement, weights)
        forward_blend(image, placement, weights)
        
        diff = np.abs(image.astype(int) - watermarked.astype(int))
        assert diff.max() <= 1
