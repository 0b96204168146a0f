import os
import argparse
import logging
from typing import List, Optional

from mangaone.config.settings import COMPRESSION_MODES
from mangaone.io.path_handler import PathHandler

logger = logging.getLogger(__name__)


class InputHandler:
    """命令行输入处理类"""

    @staticmethod
    def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
        parser = argparse.ArgumentParser(description='漫画压缩包批量缩图工具')
        parser.add_argument('path', nargs='*', help='要处理的压缩包或目录路径')

        resize_group = parser.add_argument_group('缩放参数')
        resize_group.add_argument('--max-long-edge', '-e', type=int, default=None,
                                  help='图片长边最大像素，默认为1200')
        resize_group.add_argument('--quality', '-q', type=float, default=None,
                                  help='重新编码质量 (0.0, 1.0]，默认为0.8')

        run_group = parser.add_argument_group('运行参数')
        run_group.add_argument('--config', '-c', type=str, default=None, help='YAML配置文件路径')
        run_group.add_argument('--output-dir', '-o', type=str, default=None,
                               help='输出目录，默认与源文件相同')
        run_group.add_argument('--max-workers', '-mw', type=int, default=None,
                               help='图片处理线程数，默认为1')
        run_group.add_argument('--compression', choices=COMPRESSION_MODES, default=None,
                               help='输出压缩包的压缩方式，默认为stored')
        run_group.add_argument('--log-dir', type=str, default=None, help='日志目录')
        run_group.add_argument('--no-console', action='store_true', help='不在控制台输出日志')

        return parser.parse_args(args)

    @staticmethod
    def get_input_paths(paths: List[str]) -> List[str]:
        """
        收集需要处理的压缩包路径

        目录会递归查找 .zip/.cbz 文件，其他文件跳过并记录警告。

        Args:
            paths: 命令行传入的路径列表

        Returns:
            List[str]: 压缩包路径列表（去重，保持顺序）
        """
        archives = []
        for raw_path in paths:
            path = raw_path.strip('"\'')
            if os.path.isdir(path):
                for root, dirs, files in os.walk(path):
                    dirs.sort()
                    for file in sorted(files):
                        if PathHandler.is_archive_name(file):
                            archives.append(os.path.join(root, file))
            elif os.path.isfile(path):
                if PathHandler.is_archive_name(path):
                    archives.append(path)
                else:
                    logger.warning(f"跳过非压缩包文件（仅支持 .zip/.cbz）: {path}")
            else:
                logger.warning(f"路径不存在: {path}")

        return list(dict.fromkeys(archives))
