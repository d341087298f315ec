"""
水印逆混合引擎异常定义
"""


class RemovalError(Exception):
    """Base exception for watermark removal errors."""
    pass


class InitError(RemovalError):
    """标定数据缺失或损坏，引擎无法构建"""
    pass


class UnsupportedSize(RemovalError):
    """图像小于水印最小覆盖区域"""
    
    def __init__(self, width: int, height: int, footprint: int):
        self.width = width
        self.height = height
        self.footprint = footprint
        super().__init__(
            f"image too small ({width}x{height}) for {footprint}x{footprint} watermark"
        )
