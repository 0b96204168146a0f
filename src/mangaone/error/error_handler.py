import functools
import logging
from typing import Callable, Any, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class ProcessError(Exception):
    """处理流程相关的自定义异常基类"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class CorruptArchiveError(ProcessError):
    """压缩包无法解析或已损坏"""
    pass


class EmptyArchiveError(ProcessError):
    """压缩包中没有可处理的图片"""
    pass


class DecodeError(ProcessError):
    """图片解码失败"""
    pass


class EncodeError(ProcessError):
    """图片重新编码失败"""
    pass


class ArchiveWriteError(ProcessError):
    """输出压缩包写入失败"""
    pass


class InvalidConfigError(ProcessError):
    """配置参数超出允许范围"""
    pass


class ProcessorBusyError(ProcessError):
    """已有任务正在处理中"""
    pass


def handle_stage_errors(
    error_type: Type[ProcessError],
    message: str,
    catch: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """
    阶段错误处理装饰器

    捕获指定的底层异常并转换为对应的 ProcessError 子类，
    已经是 ProcessError 的异常原样抛出。

    Args:
        error_type: 要抛出的异常类型
        message: 错误描述前缀
        catch: 需要转换的异常类型元组
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except ProcessError:
                raise
            except catch as e:
                logger.error(f"[#process]❌ {func.__qualname__} 执行出错: {e}")
                raise error_type(f"{message}: {e}", e) from e
        return wrapper
    return decorator
