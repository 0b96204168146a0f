import logging
from typing import Iterable, List

from mangaone.io.path_handler import PathHandler

logger = logging.getLogger(__name__)

# 支持的图片扩展名
SUPPORTED_IMAGE_EXTENSIONS = frozenset({
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif', '.svg'
})

# 需要排除的系统文件标记（区分大小写）
SYSTEM_FILE_PATTERNS = ('__MACOSX', '.DS_Store')


class ImageFilter:
    """压缩包条目过滤器，只根据路径判断，不读取内容"""

    @staticmethod
    def is_system_file(path: str) -> bool:
        """检查路径是否包含系统文件标记"""
        return any(pattern in path for pattern in SYSTEM_FILE_PATTERNS)

    @staticmethod
    def is_eligible_image(path: str) -> bool:
        """
        检查条目是否为需要处理的图片

        Args:
            path: 压缩包内路径

        Returns:
            bool: 不是系统文件且扩展名在支持列表中时返回True
        """
        if ImageFilter.is_system_file(path):
            return False
        return PathHandler.get_file_extension(path) in SUPPORTED_IMAGE_EXTENSIONS

    @staticmethod
    def filter_images(paths: Iterable[str]) -> List[str]:
        """按原顺序筛选出需要处理的图片路径"""
        images = []
        for path in paths:
            if ImageFilter.is_eligible_image(path):
                images.append(path)
            else:
                logger.debug(f"[#file_ops]跳过非图片条目: {path}")
        return images
