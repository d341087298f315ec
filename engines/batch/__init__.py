# Batch processing and command-line driver

from .batch_processor import BatchProcessor, FileResult

__all__ = ['BatchProcessor', 'FileResult']
