from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from mangaone.core.manga_processor import ProcessorState, ProcessorStatus

STATUS_LABELS = {
    ProcessorStatus.IDLE: '等待中',
    ProcessorStatus.EXTRACTING: '📦 解压中',
    ProcessorStatus.PROCESSING: '🖼️ 处理图片',
    ProcessorStatus.COMPRESSING: '🗜️ 打包中',
    ProcessorStatus.DONE: '✅ 完成',
    ProcessorStatus.ERROR: '❌ 失败',
}


class ProgressView:
    """用 rich 进度条显示处理器状态，作为 MangaProcessor 的订阅者使用"""

    def __init__(self, console: Optional[Console] = None):
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.fields[status]}"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[current_file]}", style="cyan", markup=False),
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._task: Optional[TaskID] = None

    def __enter__(self):
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()

    def start_task(self, description: str) -> None:
        self._task = self.progress.add_task(
            description,
            total=None,
            status=STATUS_LABELS[ProcessorStatus.EXTRACTING],
            current_file='',
        )

    def __call__(self, state: ProcessorState) -> None:
        if self._task is None or state.status is ProcessorStatus.IDLE:
            return
        self.progress.update(
            self._task,
            total=state.file_count or None,
            completed=state.processed_count,
            status=STATUS_LABELS[state.status],
            current_file=state.current_file,
        )
        if state.is_terminal:
            self._task = None
