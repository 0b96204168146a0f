import re
import sys
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Tuple

from loguru import logger
from rich.console import Console

# 日志消息中的面板标识，如 "[#process]"
PANEL_TAG_PATTERN = re.compile(r'^\[[#@][\w]+\]')

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}"

console = Console(stderr=True, highlight=False)


class InterceptHandler(logging.Handler):
    """把标准库 logging 的记录转发给 loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 跳过 logging 模块自身的栈帧，让 loguru 记录真实的调用位置
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def strip_panel_tag(message: str) -> str:
    """去掉消息开头的面板标识"""
    return PANEL_TAG_PATTERN.sub('', message, count=1)


def _console_sink(message) -> None:
    record = message.record
    style = {
        'WARNING': 'yellow',
        'ERROR': 'red',
        'CRITICAL': 'red bold',
        'SUCCESS': 'green',
    }.get(record['level'].name)
    console.print(strip_panel_tag(record['message']), style=style, markup=False)


def setup_logger(config: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
    """
    配置日志系统

    Args:
        config: 日志配置
            script_name: 脚本名称，用于日志目录（默认取启动脚本名）
            log_dir: 日志根目录（默认 logs）
            console_enabled: 是否输出到控制台（默认 True）
            level: 文件日志级别（默认 DEBUG）

    Returns:
        (logger, config_info): loguru logger 和包含 log_file/handler_ids 的信息字典
    """
    script_name = config.get('script_name') or Path(sys.argv[0]).stem or 'mangaone'
    log_dir = Path(config.get('log_dir') or 'logs')
    level = config.get('level', 'DEBUG')

    # 移除默认的sink
    logger.remove()

    # 日志目录结构: <log_dir>/<script_name>/<日期>/<时分秒>.log
    now = datetime.now()
    date_dir = log_dir / script_name / now.strftime('%Y%m%d')
    date_dir.mkdir(parents=True, exist_ok=True)
    log_file = date_dir / f"{now.strftime('%H%M%S')}.log"

    handler_ids = [
        logger.add(str(log_file), format=LOG_FORMAT, level=level, encoding='utf-8')
    ]
    if config.get('console_enabled', True):
        handler_ids.append(logger.add(_console_sink, level='INFO', format='{message}'))

    # 标准库日志统一转发到 loguru
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not isinstance(h, InterceptHandler)]
    root.addHandler(InterceptHandler())
    root.setLevel(logging.DEBUG)

    # 禁用第三方库的调试日志
    logging.getLogger('PIL').setLevel(logging.WARNING)

    config_info = {
        'log_file': str(log_file),
        'handler_ids': handler_ids,
    }
    return logger, config_info
