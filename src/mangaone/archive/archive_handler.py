"""
压缩包读取模块

功能：
1. 内存中直接解析压缩包内容
2. 支持多编码文件名自动识别
3. 目录条目单独标记，列表时只返回文件
"""

import zipfile
import zlib
import logging
from collections import OrderedDict
from io import BytesIO
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple

from mangaone.error.error_handler import CorruptArchiveError, handle_stage_errors

# ZIP 通用标志位: 文件名使用UTF-8编码
UTF8_FLAG = 0x800

_READ_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    EOFError,
    OSError,
    RuntimeError,
    NotImplementedError,
    ValueError,
)


class ArchiveEntry(NamedTuple):
    """压缩包中的单个条目"""
    path: str
    data: bytes
    is_dir: bool


class SourceArchive:
    """只读的压缩包内容，路径 -> 条目，保持压缩包索引中的顺序"""

    def __init__(self, entries: Mapping[str, ArchiveEntry]):
        self._entries = MappingProxyType(OrderedDict(entries))

    def list_entries(self) -> List[str]:
        """返回所有非目录条目的路径，保持原顺序"""
        return [path for path, entry in self._entries.items() if not entry.is_dir]

    def read(self, path: str) -> bytes:
        """读取条目内容"""
        return self._entries[path].data

    def is_dir(self, path: str) -> bool:
        return self._entries[path].is_dir

    @property
    def entries(self) -> Mapping[str, ArchiveEntry]:
        return self._entries

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ArchiveHandler:
    """压缩包解析器"""

    # 非UTF-8标记文件名的尝试顺序
    FILENAME_ENCODINGS = (
        'utf-8',        # 优先尝试UTF-8
        'gb18030',      # 中文扩展
        'big5',         # 繁体中文
        'shift-jis',    # 日文
        'euc-kr',       # 韩文
        'cp437',        # ZIP原始编码
    )

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @handle_stage_errors(CorruptArchiveError, '压缩包无法解析', _READ_ERRORS)
    def load(self, data: bytes) -> SourceArchive:
        """
        从字节数据解析压缩包

        :param data: 压缩包的完整字节内容
        :return: SourceArchive
        :raises CorruptArchiveError: 数据不是有效的压缩包或内容损坏
        """
        entries: Dict[str, ArchiveEntry] = OrderedDict()
        with zipfile.ZipFile(BytesIO(data)) as zf:
            for info in zf.infolist():
                path = self._entry_name(info)
                is_dir = info.is_dir() or path.endswith('/')
                payload = b'' if is_dir else zf.read(info)
                if path in entries:
                    self.logger.warning("[#file_ops]压缩包中存在重复条目，使用最后一个: %s", path)
                entries[path] = ArchiveEntry(path=path, data=payload, is_dir=is_dir)

        self.logger.info("[#file_ops]📦 解析压缩包完成，共 %d 个条目", len(entries))
        return SourceArchive(entries)

    def _entry_name(self, info: zipfile.ZipInfo) -> str:
        """获取条目路径，必要时重新识别文件名编码"""
        name = info.filename
        if not info.flag_bits & UTF8_FLAG:
            try:
                raw = info.orig_filename.encode('cp437')
            except UnicodeEncodeError:
                raw = None
            if raw is not None:
                name = self._decode_filename(raw)
        return name.replace('\\', '/')

    def _decode_filename(self, raw_bytes: bytes) -> str:
        """按编码列表依次尝试解码文件名"""
        for enc in self.FILENAME_ENCODINGS:
            try:
                return raw_bytes.decode(enc, errors='strict')
            except UnicodeDecodeError:
                continue

        # 最后尝试替换错误字符
        self.logger.warning("文件名解码失败，使用替换字符: %r", raw_bytes)
        return raw_bytes.decode('utf-8', errors='replace')
