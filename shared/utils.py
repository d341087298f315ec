"""
共享工具函数
提供文件格式判断、输出路径生成和日志配置等辅助类
"""

from pathlib import Path
from typing import List, Optional, Union
import logging
import sys


class FileUtils:
    """文件处理工具类"""
    
    SUPPORTED_IMAGE_FORMATS: List[str] = [".jpg", ".jpeg", ".png", ".webp", ".bmp"]
    
    @staticmethod
    def get_file_extension(filename: Union[str, Path]) -> str:
        """获取文件扩展名"""
        return Path(filename).suffix.lower()

    @staticmethod
    def is_supported_image(file_path: Union[str, Path]) -> bool:
        """检查文件是否为支持的图像格式（大小写不敏感）"""
        return FileUtils.get_file_extension(file_path) in FileUtils.SUPPORTED_IMAGE_FORMATS

    @staticmethod
    def default_output_path(input_path: Union[str, Path], suffix: str = "_cleaned") -> Path:
        """生成默认输出路径，例如 photo.jpg -> photo_cleaned.jpg"""
        input_path = Path(input_path)
        return input_path.parent / f"{input_path.stem}{suffix}{input_path.suffix}"


class LoggerUtils:
    """日志工具类"""
    
    @staticmethod
    def setup_logger(name: Optional[str] = None, level: str = 'INFO') -> logging.Logger:
        """设置日志记录器"""
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level.upper()))
        
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        
        return logger
