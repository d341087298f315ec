"""
批处理器单元测试
"""

import pytest
import numpy as np
from PIL import Image
from unittest.mock import patch

from engines.batch import BatchProcessor
from engines.reversal import WatermarkRemovalEngine, ProcessOptions, RemovalConfig, SizeClass
from engines.reversal.blending import forward_blend
from engines.reversal.utils import load_rgb_image


def make_watermarked(engine, width=400, height=300, background=150):
    image = np.full((height, width, 3), background, dtype=np.uint8)
    placement, weights = engine.locate(image)
    forward_blend(image, placement, weights)
    return image


class TestBatchProcessor:
    """测试BatchProcessor类"""
    
    @pytest.fixture(scope="class")
    def engine(self):
        return WatermarkRemovalEngine()

    @pytest.fixture
    def processor(self, engine):
        return BatchProcessor(engine, num_workers=2)

    def test_defaults_from_engine(self, engine):
        """测试默认选项来自引擎配置"""
        processor = BatchProcessor(engine)
        
        assert processor.options.confidence_threshold == engine.config.confidence_threshold
        assert processor.num_workers == engine.config.num_workers

    def test_options_without_threshold_use_config(self, tmp_path):
        """测试选项未指定阈值时按引擎配置判断是否跳过"""
        engine = WatermarkRemovalEngine(RemovalConfig(confidence_threshold=0.0))
        processor = BatchProcessor(engine, ProcessOptions(force_size=SizeClass.SMALL))
        input_path = tmp_path / "plain.png"
        output_path = tmp_path / "plain_cleaned.png"
        Image.new('RGB', (400, 300), color=(128, 128, 128)).save(input_path)
        
        result = processor.process_file(input_path, output_path)
        
        assert result.success
        assert not result.skipped
        assert output_path.exists()

    def test_process_watermarked_file(self, engine, processor, tmp_path):
        """测试处理带水印文件"""
        input_path = tmp_path / "photo.png"
        output_path = tmp_path / "out" / "photo_cleaned.png"
        Image.fromarray(make_watermarked(engine)).save(input_path)
        
        result = processor.process_file(input_path, output_path)
        
        assert result.success
        assert not result.skipped
        assert result.confidence >= 0.35
        assert result.pixels_changed > 0
        assert result.processing_time > 0
        assert output_path.exists()
        
        cleaned = load_rgb_image(output_path)
        assert np.abs(cleaned.astype(int) - 150).max() <= 2

    def test_clean_file_skipped(self, processor, tmp_path):
        """测试无水印文件被跳过且不写输出"""
        input_path = tmp_path / "plain.png"
        output_path = tmp_path / "plain_cleaned.png"
        Image.new('RGB', (400, 300), color=(90, 90, 90)).save(input_path)
        
        result = processor.process_file(input_path, output_path)
        
        assert result.success
        assert result.skipped
        assert "No watermark detected" in result.message
        assert not output_path.exists()

    def test_small_file_skipped(self, processor, tmp_path):
        """测试过小图像被跳过"""
        input_path = tmp_path / "tiny.png"
        Image.new('RGB', (50, 50), color=(90, 90, 90)).save(input_path)
        
        result = processor.process_file(input_path, tmp_path / "tiny_cleaned.png")
        
        assert result.skipped
        assert "too small (50x50)" in result.message

    def test_corrupt_file_fails(self, processor, tmp_path):
        """测试损坏文件失败"""
        input_path = tmp_path / "broken.png"
        input_path.write_bytes(b"not an image")
        
        result = processor.process_file(input_path, tmp_path / "broken_cleaned.png")
        
        assert not result.success
        assert not result.skipped
        assert result.message.startswith("Failed to load")

    def test_unsupported_output_fails(self, engine, processor, tmp_path):
        """测试输出格式不支持时失败"""
        input_path = tmp_path / "photo.png"
        Image.fromarray(make_watermarked(engine)).save(input_path)
        
        result = processor.process_file(input_path, tmp_path / "photo.gif")
        
        assert not result.success
        assert result.message.startswith("Failed to save")

    def test_force_writes_clean_file(self, engine, tmp_path):
        """测试强制模式处理无水印文件"""
        processor = BatchProcessor(engine, ProcessOptions(force=True))
        input_path = tmp_path / "plain.jpg"
        output_path = tmp_path / "plain_cleaned.jpg"
        Image.new('RGB', (400, 300), color=(200, 200, 200)).save(input_path, quality=100)
        
        result = processor.process_file(input_path, output_path)
        
        assert result.success
        assert not result.skipped
        assert result.confidence == 0.0
        assert output_path.exists()

    def test_process_directory(self, engine, processor, tmp_path):
        """测试目录批处理"""
        input_dir = tmp_path / "in"
        output_dir = tmp_path / "out"
        input_dir.mkdir()
        
        Image.fromarray(make_watermarked(engine)).save(input_dir / "a.png")
        Image.new('RGB', (400, 300), color=(90, 90, 90)).save(input_dir / "b.PNG")
        (input_dir / "c.jpg").write_bytes(b"garbage")
        (input_dir / "notes.txt").write_text("ignored")
        (input_dir / "nested").mkdir()
        
        results = processor.process_directory(input_dir, output_dir)
        
        assert [r.path.name for r in results] == ["a.png", "b.PNG", "c.jpg"]
        assert (output_dir / "a.png").exists()
        assert not (output_dir / "b.PNG").exists()
        
        summary = processor.summarize(results)
        assert (summary.processed, summary.skipped, summary.failed) == (1, 1, 1)
        assert summary.has_failures

    def test_process_empty_directory(self, processor, tmp_path):
        """测试空目录"""
        output_dir = tmp_path / "out"
        
        results = processor.process_directory(tmp_path, output_dir)
        
        assert results == []
        assert output_dir.is_dir()
        assert not processor.summarize(results).has_failures

    def test_missing_directory(self, processor, tmp_path):
        """测试目录不存在"""
        results = processor.process_directory(tmp_path / "missing", tmp_path / "out")
        
        assert len(results) == 1
        assert not results[0].success
        assert "Failed to read directory" in results[0].message

    def test_decompression_bomb_in_directory(self, engine, processor, tmp_path, monkeypatch):
        """测试超大图像加载失败不中断目录批处理"""
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        Image.fromarray(make_watermarked(engine, 200, 200)).save(input_dir / "a.png")
        Image.new('RGB', (2000, 2000), color=(90, 90, 90)).save(input_dir / "b.png")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1_000_000)
        
        results = processor.process_directory(input_dir, tmp_path / "out")
        
        assert len(results) == 2
        assert results[0].success
        assert not results[1].success
        assert results[1].message.startswith("Failed to load")

    def test_unexpected_error_in_directory(self, engine, processor, tmp_path):
        """测试单个文件意外异常记为失败"""
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        Image.fromarray(make_watermarked(engine)).save(input_dir / "a.png")
        Image.fromarray(make_watermarked(engine)).save(input_dir / "b.png")
        
        with patch.object(engine, 'remove', side_effect=RuntimeError("boom")):
            results = processor.process_directory(input_dir, tmp_path / "out")
        
        assert [r.path.name for r in results] == ["a.png", "b.png"]
        assert all(not r.success for r in results)
        assert all("boom" in r.message for r in results)
        assert processor.summarize(results).failed == 2
