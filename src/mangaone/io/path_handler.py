import re

OUTPUT_FILE_SUFFIX = '_resized.zip'
ARCHIVE_EXTENSIONS = ('.zip', '.cbz')
_ARCHIVE_SUFFIX_PATTERN = re.compile(r'\.(zip|cbz)$', re.IGNORECASE)


class PathHandler:
    """压缩包内路径处理类，路径分隔符统一为 '/'"""

    @staticmethod
    def extract_filename(path: str) -> str:
        """
        获取路径中的文件名

        Args:
            path: 压缩包内路径，如 "folder/image.jpg"

        Returns:
            str: 文件名，如 "image.jpg"
        """
        return path.rsplit('/', 1)[-1] or path

    @staticmethod
    def extract_directory(path: str) -> str:
        """
        获取路径中的目录前缀（包含末尾的 '/'），没有目录时返回空字符串

        Args:
            path: 压缩包内路径，如 "folder/image.jpg"

        Returns:
            str: 目录前缀，如 "folder/"
        """
        return path[:path.rfind('/') + 1]

    @staticmethod
    def rewrite(original_path: str, new_filename: str) -> str:
        """
        用新文件名替换原路径中的文件名，保留目录结构

        Args:
            original_path: 原始路径
            new_filename: 新文件名

        Returns:
            str: 新路径
        """
        return PathHandler.extract_directory(original_path) + new_filename

    @staticmethod
    def get_file_extension(path: str) -> str:
        """获取文件扩展名（小写，包含点），没有扩展名时返回空字符串"""
        filename = PathHandler.extract_filename(path)
        index = filename.rfind('.')
        return filename[index:].lower() if index >= 0 else ''

    @staticmethod
    def replace_extension(filename: str, new_extension: str) -> str:
        """替换文件扩展名，没有扩展名时直接追加"""
        index = filename.rfind('.')
        stem = filename[:index] if index >= 0 else filename
        return stem + new_extension

    @staticmethod
    def is_archive_name(filename: str) -> bool:
        """判断文件名是否为支持的压缩包（.zip/.cbz，不区分大小写）"""
        return filename.lower().endswith(ARCHIVE_EXTENSIONS)

    @staticmethod
    def output_filename(input_filename: str) -> str:
        """
        根据输入文件名生成输出文件名

        "manga.cbz" -> "manga_resized.zip"

        Args:
            input_filename: 输入压缩包文件名（可带目录）

        Returns:
            str: 输出文件名
        """
        base = input_filename.replace('\\', '/').rsplit('/', 1)[-1]
        return _ARCHIVE_SUFFIX_PATTERN.sub('', base) + OUTPUT_FILE_SUFFIX
