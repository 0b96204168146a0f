import os
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

import yaml

from mangaone.error.error_handler import InvalidConfigError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LONG_EDGE = 1200
DEFAULT_QUALITY = 0.8
COMPRESSION_MODES = ('stored', 'deflated')


@dataclass(frozen=True)
class ResizeConfig:
    """
    图片缩放参数

    Attributes:
        max_long_edge: 长边最大像素数
        quality: 重新编码质量 (0.0, 1.0]
    """
    max_long_edge: int = DEFAULT_MAX_LONG_EDGE
    quality: float = DEFAULT_QUALITY

    def __post_init__(self):
        edge = self.max_long_edge
        if isinstance(edge, bool) or not isinstance(edge, int) or edge <= 0:
            raise InvalidConfigError(f"长边尺寸必须是正整数: {edge!r}")
        quality = self.quality
        if isinstance(quality, bool) or not isinstance(quality, (int, float)):
            raise InvalidConfigError(f"质量参数必须是数字: {quality!r}")
        if not 0.0 < quality <= 1.0:
            raise InvalidConfigError(f"质量参数必须在 (0.0, 1.0] 范围内: {quality!r}")


@dataclass(frozen=True)
class ProcessorSettings:
    """处理器运行参数"""
    max_workers: int = 1
    compression: str = 'stored'
    log_dir: str = 'logs'
    console_enabled: bool = True

    def __post_init__(self):
        workers = self.max_workers
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise InvalidConfigError(f"线程数必须是不小于1的整数: {workers!r}")
        if self.compression not in COMPRESSION_MODES:
            raise InvalidConfigError(
                f"不支持的压缩方式: {self.compression!r}，可选: {', '.join(COMPRESSION_MODES)}"
            )


def _build(cls, section: Any, name: str, overrides: Optional[Dict[str, Any]] = None):
    """从配置段构造数据类，未知键视为错误"""
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise InvalidConfigError(f"配置段 {name} 必须是映射类型")
    allowed = {f.name for f in fields(cls)}
    unknown = set(section) - allowed
    if unknown:
        raise InvalidConfigError(f"配置段 {name} 包含未知参数: {', '.join(sorted(unknown))}")
    values = dict(section)
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**values)


def load_config(
    config_path: Optional[str] = None,
    resize_overrides: Optional[Dict[str, Any]] = None,
    processor_overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[ResizeConfig, ProcessorSettings]:
    """
    加载YAML配置文件

    文件格式:
        resize:
          max_long_edge: 1200
          quality: 0.8
        processor:
          max_workers: 4
          compression: stored

    Args:
        config_path: 配置文件路径，为None时使用默认值
        resize_overrides: 覆盖 resize 段的参数（值为None的忽略）
        processor_overrides: 覆盖 processor 段的参数（值为None的忽略）

    Returns:
        Tuple[ResizeConfig, ProcessorSettings]
    """
    data: Dict[str, Any] = {}
    if config_path:
        if os.path.exists(config_path):
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise InvalidConfigError(f"加载配置文件失败 {config_path}: {e}", e) from e
            if not isinstance(data, dict):
                raise InvalidConfigError(f"配置文件顶层必须是映射类型: {config_path}")
            logger.info(f"成功加载配置文件: {config_path}")
        else:
            logger.warning(f"配置文件不存在，使用默认配置: {config_path}")

    unknown = set(data) - {'resize', 'processor'}
    if unknown:
        raise InvalidConfigError(f"配置文件包含未知配置段: {', '.join(sorted(unknown))}")

    resize_config = _build(ResizeConfig, data.get('resize'), 'resize', resize_overrides)
    settings = _build(ProcessorSettings, data.get('processor'), 'processor', processor_overrides)
    return resize_config, settings
