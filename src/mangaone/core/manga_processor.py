"""
漫画压缩包处理流程

阶段:
1. extracting  解析压缩包并筛选图片
2. processing  逐张缩放/转换图片
3. compressing 重新打包为新的压缩包

状态只在本模块内按固定的转换路径修改，外部通过 state 快照或 subscribe 回调读取。
任一阶段出错整个任务失败，不会产生部分结果。
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator, List, Optional

from mangaone.archive.archive_handler import ArchiveHandler, SourceArchive
from mangaone.archive.single_packer import ProcessedEntry, SinglePacker
from mangaone.config.settings import ProcessorSettings, ResizeConfig
from mangaone.error.error_handler import (
    EmptyArchiveError,
    InvalidConfigError,
    ProcessError,
    ProcessorBusyError,
)
from mangaone.io.path_handler import PathHandler
from mangaone.pics.image_converter import ImageConverter, ProcessedImage
from mangaone.pics.image_filter import ImageFilter
from mangaone.utils.number_utils import percentage

logger = logging.getLogger(__name__)

EMPTY_ARCHIVE_MESSAGE = '压缩包中未找到图片，请确认ZIP中包含图片文件。'
UNEXPECTED_ERROR_MESSAGE = '处理过程中发生未知错误。'


class ProcessorStatus(str, Enum):
    IDLE = 'idle'
    EXTRACTING = 'extracting'
    PROCESSING = 'processing'
    COMPRESSING = 'compressing'
    DONE = 'done'
    ERROR = 'error'


ACTIVE_STATUSES = frozenset({
    ProcessorStatus.EXTRACTING,
    ProcessorStatus.PROCESSING,
    ProcessorStatus.COMPRESSING,
})
TERMINAL_STATUSES = frozenset({ProcessorStatus.DONE, ProcessorStatus.ERROR})


@dataclass(frozen=True)
class ProcessorState:
    """处理状态快照"""
    status: ProcessorStatus = ProcessorStatus.IDLE
    progress: int = 0
    error: Optional[str] = None
    result: Optional[bytes] = None
    file_name: str = ''
    file_count: int = 0
    processed_count: int = 0
    current_file: str = ''

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


INITIAL_STATE = ProcessorState()

StateListener = Callable[[ProcessorState], None]


class MangaProcessor:
    """压缩包缩图处理器，同一时间只运行一个任务"""

    def __init__(
        self,
        settings: Optional[ProcessorSettings] = None,
        converter: Optional[ImageConverter] = None,
        archive_handler: Optional[ArchiveHandler] = None,
        packer: Optional[SinglePacker] = None,
    ):
        self.settings = settings or ProcessorSettings()
        self.converter = converter or ImageConverter()
        self.archive_handler = archive_handler or ArchiveHandler()
        self.packer = packer or SinglePacker(self.settings.compression)

        self._lock = threading.RLock()
        self._state = INITIAL_STATE
        self._generation = 0
        self._future: Optional[Future] = None
        self._listeners: List[StateListener] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='manga_processor')

    # ------------------------------------------------------------------
    # 对外接口
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProcessorState:
        with self._lock:
            return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        订阅状态变化

        Args:
            listener: 每次状态变化时以新快照调用。extracting 快照在调用 submit 的线程中发出，之后的快照在工作线程中发出

        Returns:
            取消订阅的函数
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def submit(
        self,
        source_bytes: bytes,
        config: Optional[ResizeConfig] = None,
        source_name: str = 'archive.zip',
    ) -> Future:
        """
        提交一个压缩包进行处理（异步）

        Args:
            source_bytes: 压缩包字节内容
            config: 缩放参数，默认 1200px / 0.8
            source_name: 原始文件名，用于生成输出文件名

        Returns:
            Future: 完成后返回该任务的最终状态快照；任务被 reset 丢弃时返回 None

        Raises:
            InvalidConfigError: 配置无效，状态保持不变
            ProcessorBusyError: 已有任务正在处理
        """
        config = config if config is not None else ResizeConfig()
        if not isinstance(config, ResizeConfig):
            raise InvalidConfigError(f"无效的配置对象: {config!r}")
        data = bytes(source_bytes)

        with self._lock:
            if self._state.is_active:
                raise ProcessorBusyError(f"已有任务正在处理: {self._state.file_name}")
            self._generation += 1
            generation = self._generation
            self._publish(ProcessorState(
                status=ProcessorStatus.EXTRACTING,
                file_name=PathHandler.output_filename(source_name),
            ))
            logger.info(f"[#process]🔄 开始处理: {source_name} ({len(data)} 字节)")
            self._future = self._executor.submit(self._run, generation, data, config)
            return self._future

    def reset(self) -> None:
        """回到初始状态，正在运行的任务结果将被丢弃"""
        with self._lock:
            self._generation += 1
            if self._state is not INITIAL_STATE:
                logger.info(f"[#process]↩️ 重置处理器 (状态: {self._state.status.value})")
            self._publish(INITIAL_STATE)

    def wait(self, timeout: Optional[float] = None) -> Optional[ProcessorState]:
        """等待最近一次提交的任务结束"""
        with self._lock:
            future = self._future
        if future is None:
            return None
        return future.result(timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------------------------------------------------
    # 状态管理
    # ------------------------------------------------------------------

    def _publish(self, state: ProcessorState) -> None:
        """替换当前状态并通知订阅者，调用方需持有锁"""
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"[#process]状态回调执行出错: {e}")

    def _update(self, generation: int, **changes) -> bool:
        """
        更新指定任务的状态

        Returns:
            bool: 任务已被 reset 丢弃时返回False
        """
        with self._lock:
            if generation != self._generation:
                return False
            self._publish(replace(self._state, **changes))
            return True

    def _snapshot(self, generation: int) -> Optional[ProcessorState]:
        with self._lock:
            return self._state if generation == self._generation else None

    # ------------------------------------------------------------------
    # 处理流程
    # ------------------------------------------------------------------

    def _run(self, generation: int, data: bytes, config: ResizeConfig) -> Optional[ProcessorState]:
        try:
            archive = self.archive_handler.load(data)
            image_paths = ImageFilter.filter_images(archive.list_entries())
            if not image_paths:
                raise EmptyArchiveError(EMPTY_ARCHIVE_MESSAGE)

            if not self._update(generation, status=ProcessorStatus.PROCESSING, file_count=len(image_paths)):
                return None
            logger.info(f"[#process]找到 {len(image_paths)} 张图片")

            processed = self._process_images(generation, archive, image_paths, config)
            if processed is None:
                return None

            if not self._update(generation, status=ProcessorStatus.COMPRESSING, current_file=''):
                return None
            result = self.packer.pack(processed)

            if not self._update(
                generation,
                status=ProcessorStatus.DONE,
                result=result,
                processed_count=len(processed),
            ):
                return None
            logger.info(f"[#process]✅ 处理完成: {self.state.file_name} ({len(processed)} 张图片)")

        except ProcessError as e:
            logger.error(f"[#process]❌ {e.message}")
            self._fail(generation, e.message)
        except Exception as e:
            logger.exception(f"[#process]❌ 未预期的错误: {e}")
            self._fail(generation, f"{UNEXPECTED_ERROR_MESSAGE} ({e})")

        return self._snapshot(generation)

    def _fail(self, generation: int, message: str) -> None:
        """进入错误状态并丢弃本次任务的所有中间结果"""
        self._update(generation, status=ProcessorStatus.ERROR, error=message, result=None)

    def _process_images(
        self,
        generation: int,
        archive: SourceArchive,
        image_paths: List[str],
        config: ResizeConfig,
    ) -> Optional[List[ProcessedEntry]]:
        """按原顺序处理所有图片，任务被丢弃时返回None"""
        processed: List[ProcessedEntry] = []
        total = len(image_paths)
        pool = None
        if self.settings.max_workers > 1 and total > 1:
            pool = ThreadPoolExecutor(
                max_workers=min(self.settings.max_workers, total),
                thread_name_prefix='image_worker',
            )
        try:
            results = self._iter_results(pool, archive, image_paths, config)
            for index, path in enumerate(image_paths, start=1):
                filename = PathHandler.extract_filename(path)
                if not self._update(generation, current_file=filename):
                    return None
                logger.info(f"[#cur_progress]🔄 ({index}/{total}) {path}")

                image = next(results)
                processed.append(ProcessedEntry(
                    path=PathHandler.rewrite(path, image.filename),
                    data=image.data,
                ))
                if not self._update(
                    generation,
                    processed_count=index,
                    progress=percentage(index, total),
                ):
                    return None
        finally:
            if pool is not None:
                pool.shutdown(wait=False, cancel_futures=True)
        return processed

    def _iter_results(
        self,
        pool: Optional[ThreadPoolExecutor],
        archive: SourceArchive,
        image_paths: List[str],
        config: ResizeConfig,
    ) -> Iterator[ProcessedImage]:
        """按原顺序产出转换结果；有线程池时并行转换"""
        def transcode(path: str) -> ProcessedImage:
            return self.converter.transcode(archive.read(path), PathHandler.extract_filename(path), config)

        if pool is None:
            return (transcode(path) for path in image_paths)
        return pool.map(transcode, image_paths)
