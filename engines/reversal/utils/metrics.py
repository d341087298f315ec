"""
性能指标计算模块
提供处理时间统计、置信度统计和批处理汇总功能
"""

import time
import numpy as np
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field


@dataclass
class PerformanceTimer:
    """
    性能计时器
    用于统计检测、逆混合等各个阶段的处理时间
    """
    name: str
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    elapsed_time: float = 0.0
    sub_timers: Dict[str, 'PerformanceTimer'] = field(default_factory=dict)
    
    def start(self):
        """开始计时"""
        self.start_time = time.perf_counter()
        return self

    def stop(self):
        """停止计时"""
        if self.start_time is None:
            raise ValueError("Timer not started")
        self.end_time = time.perf_counter()
        self.elapsed_time = self.end_time - self.start_time
        return self

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def add_sub_timer(self, name: str) -> 'PerformanceTimer':
        """
        添加子计时器

        Args:
            name: 子计时器名称

        Returns:
            子计时器对象
        """
        timer = PerformanceTimer(name)
        self.sub_timers[name] = timer
        return timer

    def to_dict(self) -> Dict[str, float]:
        """
        展平为 {名称: 耗时} 字典，子计时器以 "父.子" 命名
        """
        result = {self.name: self.elapsed_time}
        for sub_timer in self.sub_timers.values():
            for key, value in sub_timer.to_dict().items():
                result[f"{self.name}.{key}"] = value
        return result


def calculate_confidence_stats(confidences: List[float]) -> Dict[str, float]:
    """
    计算置信度统计

    Args:
        confidences: 置信度列表

    Returns:
        包含置信度统计的字典
    """
    values = np.asarray(confidences, dtype=float)
    if values.size == 0:
        return {
            'mean': 0.0,
            'min': 0.0,
            'max': 0.0,
            'median': 0.0
        }
    
    return {
        'mean': float(np.mean(values)),
        'min': float(np.min(values)),
        'max': float(np.max(values)),
        'median': float(np.median(values))
    }


@dataclass
class BatchSummary:
    """批处理汇总：成功、跳过（未检测到水印或尺寸不支持）、失败计数"""
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    confidences: List[float] = field(default_factory=list)
    total_time: float = 0.0
    
    def add(self, success: bool, skipped: bool, confidence: float = 0.0,
            processing_time: float = 0.0) -> None:
        if skipped:
            self.skipped += 1
        elif success:
            self.processed += 1
        else:
            self.failed += 1
        
        if confidence > 0.0:
            self.confidences.append(confidence)
        self.total_time += processing_time

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.failed

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'processed': self.processed,
            'skipped': self.skipped,
            'failed': self.failed,
            'total': self.total,
            'total_time': self.total_time,
            'confidence_stats': calculate_confidence_stats(self.confidences)
        }
