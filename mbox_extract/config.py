"""
配置模块 (Configuration Module)
==============================

从环境变量和 .env 文件加载运行配置：身份档案路径、身份片段列表、
并发数、进度与追踪日志频率等。
"""

from typing import List

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings

load_dotenv()

_VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def split_fragments(raw: str) -> List[str]:
    """Split a comma-separated environment value into trimmed, non-empty fragments."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    运行配置类，继承自 Pydantic BaseSettings，支持从环境变量自动加载（前缀 MBOX_）。

    属性:
        IDENTITY_PROFILE: 身份档案 YAML 路径（可选）
        IGNORED_SENDERS / MY_ADDRESSES / MY_NAMES: 逗号分隔的附加身份片段
        WORKERS: 解析线程数，1 表示顺序处理
        PROGRESS_EVERY: 每处理多少个消息块记录一次进度
        TRACE_EVERY: 每输出多少条记录打印一次追踪日志，0 表示关闭
        LOG_LEVEL: 项目日志级别
    """
    IDENTITY_PROFILE: str = ""
    IGNORED_SENDERS: str = ""
    MY_ADDRESSES: str = ""
    MY_NAMES: str = ""
    WORKERS: int = 1
    PROGRESS_EVERY: int = 1000
    TRACE_EVERY: int = 0
    LOG_LEVEL: str = "INFO"

    @field_validator("WORKERS", "PROGRESS_EVERY")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """WORKERS 与 PROGRESS_EVERY 必须为正整数。"""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("TRACE_EVERY")
    @classmethod
    def validate_trace_every(cls, v: int) -> int:
        if v < 0:
            raise ValueError("TRACE_EVERY must be >= 0 (0 disables tracing)")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_VALID_LOG_LEVELS)}, got {v!r}")
        return level

    class Config:
        env_file = ".env"
        env_prefix = "MBOX_"
        case_sensitive = False


# 全局单例，避免重复加载配置
_settings_instance = None


def get_settings() -> Settings:
    """
    获取配置单例。

    首次调用时创建 Settings 实例并缓存，后续调用返回同一实例。
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def reset_settings() -> None:
    """清除缓存的配置单例（测试或环境变量变更后使用）。"""
    global _settings_instance
    _settings_instance = None
