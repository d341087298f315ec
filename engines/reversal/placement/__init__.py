"""
水印定位模块
"""

from .placement_resolver import PlacementResolver

__all__ = ['PlacementResolver']
