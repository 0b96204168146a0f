import os
import sys
import logging
from typing import List, Optional

from mangaone.config.settings import ResizeConfig, load_config
from mangaone.core.manga_processor import MangaProcessor, ProcessorState, ProcessorStatus
from mangaone.error.error_handler import InvalidConfigError
from mangaone.handler.input_handler import InputHandler
from mangaone.record.logger_config import setup_logger
from mangaone.tui.progress_view import ProgressView

logger = logging.getLogger(__name__)


def process_archive(
    processor: MangaProcessor,
    archive_path: str,
    config: ResizeConfig,
    output_dir: Optional[str] = None,
    view: Optional[ProgressView] = None,
) -> ProcessorState:
    """
    处理单个压缩包并把结果写到磁盘

    Args:
        processor: 处理器
        archive_path: 压缩包路径
        config: 缩放参数
        output_dir: 输出目录，None时写到源文件所在目录
        view: 进度显示

    Returns:
        ProcessorState: 任务的最终状态
    """
    with open(archive_path, 'rb') as f:
        data = f.read()

    if view is not None:
        view.start_task(os.path.basename(archive_path))
    processor.submit(data, config, source_name=os.path.basename(archive_path))
    state = processor.wait()

    if state.status is ProcessorStatus.DONE:
        target_dir = output_dir or os.path.dirname(os.path.abspath(archive_path))
        os.makedirs(target_dir, exist_ok=True)
        output_path = os.path.join(target_dir, state.file_name)
        with open(output_path, 'wb') as f:
            f.write(state.result)
        logger.info(
            f"[#file_ops]✅ 已保存: {output_path} "
            f"({len(data) / 1024 / 1024:.2f}MB -> {len(state.result) / 1024 / 1024:.2f}MB, {state.file_count} 张图片)"
        )
    else:
        logger.error(f"[#file_ops]❌ 处理失败 {archive_path}: {state.error}")

    processor.reset()
    return state


def main(argv: Optional[List[str]] = None) -> int:
    """主入口函数"""
    args = InputHandler.parse_arguments(argv)

    try:
        config, settings = load_config(
            args.config,
            resize_overrides={'max_long_edge': args.max_long_edge, 'quality': args.quality},
            processor_overrides={
                'max_workers': args.max_workers,
                'compression': args.compression,
                'log_dir': args.log_dir,
                'console_enabled': False if args.no_console else None,
            },
        )
    except InvalidConfigError as e:
        print(f"配置错误: {e.message}", file=sys.stderr)
        return 2

    setup_logger({
        'script_name': 'mangaone',
        'log_dir': settings.log_dir,
        'console_enabled': settings.console_enabled,
    })

    archives = InputHandler.get_input_paths(args.path)
    if not archives:
        logger.error('未提供任何有效的压缩包路径')
        return 1

    logger.info(
        f"[#process]当前配置: 长边 {config.max_long_edge}px, 质量 {config.quality}, "
        f"线程数 {settings.max_workers}, 压缩方式 {settings.compression}"
    )

    failed = 0
    with MangaProcessor(settings) as processor, ProgressView() as view:
        unsubscribe = processor.subscribe(view)
        try:
            for archive_path in archives:
                try:
                    state = process_archive(processor, archive_path, config, args.output_dir, view)
                except OSError as e:
                    logger.error(f"[#file_ops]❌ 读写文件失败 {archive_path}: {e}")
                    failed += 1
                    continue
                if state.status is not ProcessorStatus.DONE:
                    failed += 1
        finally:
            unsubscribe()

    logger.info(f"[#process]📊 共处理 {len(archives)} 个压缩包，失败 {failed} 个")
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
