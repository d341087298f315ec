"""
系统配置管理
从环境变量和 .env 文件读取运行参数，并合成引擎配置
"""

import dataclasses
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from engines.reversal.config import RemovalConfig


class RemovalSettings(BaseSettings):
    """水印去除配置"""
    config_path: Optional[str] = None
    confidence_threshold: Optional[float] = None
    mask_dir: Optional[str] = None
    num_workers: Optional[int] = None
    
    model_config = SettingsConfigDict(env_prefix="WATERMARK_")
    
    @field_validator('confidence_threshold')
    @classmethod
    def check_threshold(cls, v):
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError("置信度阈值必须在0-1之间")
        return v

    @field_validator('num_workers')
    @classmethod
    def check_workers(cls, v):
        if v is not None and v < 1:
            raise ValueError("工作线程数必须至少为1")
        return v


class MonitoringConfig(BaseSettings):
    """监控配置"""
    log_level: str = "INFO"
    
    model_config = SettingsConfigDict(env_prefix="MONITORING_")


class AppConfig(BaseSettings):
    """应用主配置"""
    app_name: str = "Gemini Watermark Removal"
    app_version: str = "0.1.0"
    
    # 子配置
    removal: RemovalSettings = Field(default_factory=RemovalSettings)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> AppConfig:
    """获取应用配置单例"""
    return AppConfig()


def build_removal_config(settings: Optional[RemovalSettings] = None) -> RemovalConfig:
    """
    合成引擎配置

    先加载 WATERMARK_CONFIG_PATH 指向的YAML（未设置时使用默认配置），
    再以环境变量中显式给出的值覆盖。

    Args:
        settings: 环境配置，None 时使用全局单例

    Returns:
        校验过的 RemovalConfig
    """
    settings = settings if settings else get_settings().removal
    
    if settings.config_path:
        config = RemovalConfig.from_yaml(settings.config_path)
    else:
        config = RemovalConfig()
    
    overrides = {}
    if settings.confidence_threshold is not None:
        overrides['confidence_threshold'] = settings.confidence_threshold
    if settings.mask_dir is not None:
        overrides['mask_dir'] = settings.mask_dir
    if settings.num_workers is not None:
        overrides['num_workers'] = settings.num_workers
    
    if overrides:
        config = dataclasses.replace(config, **overrides)
    
    config.validate()
    return config
