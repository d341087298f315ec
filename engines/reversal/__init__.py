# Watermark Reversal Engine

from .engine import WatermarkRemovalEngine
from .config import (
    RemovalConfig,
    ProcessOptions,
    Placement,
    DetectionResult,
    ProcessResult,
    SizeClass,
    Anchor,
    ScaleMode
)
from .errors import RemovalError, InitError, UnsupportedSize

__all__ = [
    'WatermarkRemovalEngine',
    'RemovalConfig',
    'ProcessOptions',
    'Placement',
    'DetectionResult',
    'ProcessResult',
    'SizeClass',
    'Anchor',
    'ScaleMode',
    'RemovalError',
    'InitError',
    'UnsupportedSize'
]
