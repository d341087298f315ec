"""
Batch driver for watermark removal.
Loads image files, runs the reversal engine on each and writes the results,
processing directories in parallel with a thread pool.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from engines.reversal.engine import WatermarkRemovalEngine
from engines.reversal.config import ProcessOptions
from engines.reversal.errors import UnsupportedSize
from engines.reversal.utils.image_utils import load_rgb_image, save_rgb_image
from engines.reversal.utils.metrics import PerformanceTimer, BatchSummary
from shared.utils import FileUtils

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Outcome of processing a single image file."""
    path: Path
    success: bool = False
    skipped: bool = False
    confidence: float = 0.0
    message: str = ""
    pixels_changed: int = 0
    processing_time: float = 0.0


class BatchProcessor:
    """Runs the engine over files and directories."""
    
    def __init__(self, engine: WatermarkRemovalEngine,
                 options: Optional[ProcessOptions] = None,
                 num_workers: Optional[int] = None):
        self.engine = engine
        self.options = options if options else engine.default_options()
        self.num_workers = num_workers if num_workers else engine.config.num_workers

    def process_file(self, input_path: Union[str, Path],
                     output_path: Union[str, Path]) -> FileResult:
        """Load, detect, remove and save one image."""
        input_path = Path(input_path)
        output_path = Path(output_path)
        result = FileResult(path=input_path)
        
        with PerformanceTimer('process_file') as timer:
            self._process(input_path, output_path, result)
        result.processing_time = timer.elapsed_time
        
        return result

    def _process(self, input_path: Path, output_path: Path, result: FileResult) -> None:
        try:
            image = load_rgb_image(input_path)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            result.message = f"Failed to load: {e}"
            logger.error(f"Failed to load {input_path}: {e}")
            return
        
        try:
            process = self.engine.remove(image, self.options)
        except UnsupportedSize as e:
            result.success = True
            result.skipped = True
            result.message = f"Image too small ({e.width}x{e.height}) for {e.footprint}x{e.footprint} watermark"
            return
        
        detection = process.detection
        if detection is not None:
            result.confidence = detection.confidence
            if detection.confidence < self.engine.threshold_for(self.options):
                result.success = True
                result.skipped = True
                result.message = (
                    f"No watermark detected ({detection.confidence * 100:.0f}% confidence, "
                    f"spatial={detection.spatial_score:.2f}, grad={detection.gradient_score:.2f}, "
                    f"var={detection.variance_score:.2f})"
                )
                return
        
        result.pixels_changed = process.pixels_changed
        
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            save_rgb_image(image, output_path, jpeg_quality=self.engine.config.jpeg_quality)
        except (OSError, ValueError) as e:
            result.message = f"Failed to save: {e}"
            logger.error(f"Failed to save {output_path}: {e}")
            return
        
        result.success = True
        result.message = "Watermark removed"
        logger.info(f"Removed watermark: {input_path} -> {output_path} "
                    f"({process.pixels_changed} pixels changed)")

    def process_directory(self, input_dir: Union[str, Path],
                          output_dir: Union[str, Path]) -> List[FileResult]:
        """Process every supported image directly inside input_dir."""
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        
        try:
            input_files = sorted(
                p for p in input_dir.iterdir()
                if p.is_file() and FileUtils.is_supported_image(p)
            )
        except OSError as e:
            logger.error(f"Failed to read directory {input_dir}: {e}")
            return [FileResult(path=input_dir, message=f"Failed to read directory: {e}")]
        
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create output directory {output_dir}: {e}")
            return [FileResult(path=output_dir, message=f"Failed to create output directory: {e}")]
        
        logger.info(f"Processing {len(input_files)} files from {input_dir} to {output_dir}")
        
        results = []
        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            future_to_path = {
                executor.submit(self.process_file, input_file, output_dir / input_file.name): input_file
                for input_file in input_files
            }
            
            for future in as_completed(future_to_path):
                input_file = future_to_path[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    # 单个文件的意外错误记为失败，不中断整个批次
                    logger.error(f"Failed to process {input_file}: {e}")
                    results.append(FileResult(path=input_file, message=f"Failed to process: {e}"))
                logger.debug(f"Batch progress: {len(results)}/{len(future_to_path)} completed")
        
        return sorted(results, key=lambda r: r.path)

    @staticmethod
    def summarize(results: List[FileResult]) -> BatchSummary:
        """Aggregate processed / skipped / failed counts."""
        summary = BatchSummary()
        for r in results:
            summary.add(r.success, r.skipped, r.confidence, r.processing_time)
        return summary
