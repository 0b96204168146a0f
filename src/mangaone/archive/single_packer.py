import struct
import logging
import warnings
import zipfile
from io import BytesIO
from typing import Iterable, NamedTuple, Tuple, Union

from mangaone.error.error_handler import ArchiveWriteError, handle_stage_errors

logger = logging.getLogger(__name__)

COMPRESSION_METHODS = {
    'stored': zipfile.ZIP_STORED,
    'deflated': zipfile.ZIP_DEFLATED,
}

_WRITE_ERRORS = (OSError, ValueError, TypeError, struct.error, zipfile.LargeZipFile)


class ProcessedEntry(NamedTuple):
    """待写入输出压缩包的条目"""
    path: str
    data: bytes


class SinglePacker:
    """输出压缩包打包工具

    按给定顺序把 (路径, 内容) 写入一个新的压缩包：
    1. 每个条目对应一条记录，记录名即压缩包内路径
    2. 不对重复路径去重，重复时两条都会写入并记录警告
    3. 整个压缩包在内存中生成
    """

    def __init__(self, compression: str = 'stored'):
        if compression not in COMPRESSION_METHODS:
            raise ValueError(f"不支持的压缩方式: {compression}")
        self.compression = COMPRESSION_METHODS[compression]

    @handle_stage_errors(ArchiveWriteError, '创建压缩包失败', _WRITE_ERRORS)
    def pack(self, entries: Iterable[Union[ProcessedEntry, Tuple[str, bytes]]]) -> bytes:
        """
        生成压缩包字节数据

        Args:
            entries: (路径, 内容) 序列

        Returns:
            bytes: 压缩包内容
        """
        buffer = BytesIO()
        seen = set()
        count = 0
        with zipfile.ZipFile(buffer, 'w', compression=self.compression) as zf:
            for path, data in entries:
                if path in seen:
                    logger.warning(f"[#file_ops]⚠️ 输出压缩包中出现重复路径，仍然写入: {path}")
                seen.add(path)
                with warnings.catch_warnings():
                    # 重复路径已经记录过，屏蔽 zipfile 自带的 Duplicate name 警告
                    warnings.simplefilter('ignore', UserWarning)
                    zf.writestr(path, data)
                count += 1

        logger.info(f"[#file_ops]📦 打包完成: {count} 个文件, {buffer.tell()} 字节")
        return buffer.getvalue()
