"""
逆alpha混合模块
"""

from .reverser import Reverser, forward_blend

__all__ = ['Reverser', 'forward_blend']
