"""
图片转换模块

功能：
1. 按长边限制等比缩小图片（不放大）
2. 按质量参数重新编码
3. PNG 强制转换为 JPEG 以减小体积，文件名同步改为 .jpg
4. SVG 矢量图只校验后原样保留，不栅格化，因此不受长边限制
"""

import logging
from io import BytesIO
from typing import Dict, NamedTuple, Tuple

from PIL import Image, ImageOps, ImageSequence, UnidentifiedImageError

from mangaone.config.settings import ResizeConfig
from mangaone.error.error_handler import DecodeError, EncodeError
from mangaone.io.path_handler import PathHandler
from mangaone.utils.number_utils import round_half_up

logger = logging.getLogger(__name__)

# 扩展名 -> Pillow 保存格式
FORMAT_BY_EXTENSION: Dict[str, str] = {
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.png': 'PNG',
    '.gif': 'GIF',
    '.bmp': 'BMP',
    '.webp': 'WEBP',
    '.tif': 'TIFF',
    '.tiff': 'TIFF',
}

# 支持质量参数的格式
QUALITY_FORMATS = frozenset({'JPEG', 'WEBP'})

# 强制转换规则: 源扩展名 -> (目标格式, 目标扩展名)
FORCED_CONVERSIONS: Dict[str, Tuple[str, str]] = {
    '.png': ('JPEG', '.jpg'),
}

SVG_EXTENSION = '.svg'
FLATTEN_BACKGROUND = (255, 255, 255)

# 高位深灰度模式，需要先压到 8 位再转换
HIGH_BIT_DEPTH_MODES = frozenset({'I', 'I;16', 'I;16B', 'I;16L', 'I;16N'})

_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)
_ENCODE_ERRORS = (OSError, ValueError, KeyError, TypeError)


class ProcessedImage(NamedTuple):
    """单张图片的处理结果"""
    data: bytes
    filename: str


def calculate_target_size(size: Tuple[int, int], max_long_edge: int) -> Tuple[int, int]:
    """
    计算缩放后的尺寸

    缩放比例 s = min(1.0, max_long_edge / max(width, height))，
    新尺寸为 round(width*s) x round(height*s)，每边至少1像素。

    Args:
        size: 原始 (宽, 高)
        max_long_edge: 长边上限

    Returns:
        Tuple[int, int]: 新的 (宽, 高)
    """
    width, height = size
    long_edge = max(width, height)
    if long_edge <= max_long_edge:
        return width, height
    scale = max_long_edge / long_edge
    return max(1, round_half_up(width * scale)), max(1, round_half_up(height * scale))


def quality_to_int(quality: float) -> int:
    """把 (0, 1] 的质量系数换算成编码器使用的 1-100"""
    return max(1, min(100, round_half_up(quality * 100)))


class ImageConverter:
    """图片缩放与格式转换器"""

    def transcode(self, raw: bytes, filename: str, config: ResizeConfig) -> ProcessedImage:
        """
        缩放并重新编码单张图片

        Args:
            raw: 原始图片字节
            filename: 图片文件名（用于判断格式）
            config: 缩放参数

        Returns:
            ProcessedImage: 新的图片数据和文件名

        Raises:
            DecodeError: 无法解码图片
            EncodeError: 重新编码失败
        """
        extension = PathHandler.get_file_extension(filename)
        if extension == SVG_EXTENSION:
            return self._passthrough_svg(raw, filename)

        if extension in FORCED_CONVERSIONS:
            target_format, new_extension = FORCED_CONVERSIONS[extension]
            new_filename = PathHandler.replace_extension(filename, new_extension)
        else:
            target_format = FORMAT_BY_EXTENSION.get(extension)
            new_filename = filename
        if target_format is None:
            raise DecodeError(f"不支持的图片格式: {filename}")

        image = self._decode(raw, filename)
        try:
            data = self._encode(image, filename, target_format, config)
        finally:
            image.close()

        logger.info(f"[#image]🖼️ {filename} -> {new_filename} ({len(raw)} -> {len(data)} 字节)")
        return ProcessedImage(data=data, filename=new_filename)

    def _decode(self, raw: bytes, filename: str) -> Image.Image:
        """解码图片并确保像素数据已加载"""
        try:
            image = Image.open(BytesIO(raw))
            image.load()
        except _DECODE_ERRORS as e:
            raise DecodeError(f"图片解码失败 {filename}: {e}", e) from e
        return image

    def _encode(self, image: Image.Image, filename: str, target_format: str, config: ResizeConfig) -> bytes:
        """缩放并编码为目标格式"""
        buffer = BytesIO()
        save_kwargs = {}
        if target_format in QUALITY_FORMATS:
            save_kwargs['quality'] = quality_to_int(config.quality)
        if target_format == 'JPEG':
            save_kwargs['optimize'] = True

        try:
            if target_format == 'GIF' and getattr(image, 'is_animated', False):
                self._save_animated_gif(image, buffer, config)
            else:
                frame = self._prepare_frame(image, target_format, config)
                frame.save(buffer, format=target_format, **save_kwargs)
        except _ENCODE_ERRORS as e:
            raise EncodeError(f"图片编码失败 {filename}: {e}", e) from e

        data = buffer.getvalue()
        if not data:
            raise EncodeError(f"图片编码结果为空: {filename}")
        return data

    def _prepare_frame(self, image: Image.Image, target_format: str, config: ResizeConfig) -> Image.Image:
        """处理方向、缩放并转换到目标格式可接受的色彩模式"""
        frame = ImageOps.exif_transpose(image)
        if target_format != 'TIFF' and frame.mode in HIGH_BIT_DEPTH_MODES:
            frame = self._to_8bit_gray(frame)
        target_size = calculate_target_size(frame.size, config.max_long_edge)
        if target_size != frame.size:
            frame = frame.resize(target_size, Image.LANCZOS)

        if target_format == 'JPEG':
            return self._to_jpeg_mode(frame)
        if target_format == 'WEBP' and frame.mode not in ('RGB', 'RGBA'):
            return frame.convert('RGBA' if self._has_alpha(frame) else 'RGB')
        if target_format == 'BMP' and frame.mode not in ('1', 'L', 'P', 'RGB', 'RGBA'):
            return frame.convert('RGBA' if self._has_alpha(frame) else 'RGB')
        return frame

    @staticmethod
    def _has_alpha(image: Image.Image) -> bool:
        return image.mode in ('RGBA', 'LA', 'PA') or (image.mode == 'P' and 'transparency' in image.info)

    @staticmethod
    def _to_8bit_gray(image: Image.Image) -> Image.Image:
        """16 位灰度按比例缩到 0-255，直接 convert 会把 255 以上的值截成白色"""
        return image.convert('I').point(lambda v: v * (1 / 256)).convert('L')

    def _to_jpeg_mode(self, image: Image.Image) -> Image.Image:
        """JPEG 不支持透明通道，透明部分铺白底"""
        if image.mode in ('RGB', 'L', 'CMYK'):
            return image
        if self._has_alpha(image):
            rgba = image.convert('RGBA')
            background = Image.new('RGBA', rgba.size, FLATTEN_BACKGROUND + (255,))
            return Image.alpha_composite(background, rgba).convert('RGB')
        return image.convert('RGB')

    def _save_animated_gif(self, image: Image.Image, buffer: BytesIO, config: ResizeConfig) -> None:
        """逐帧缩放动图，保留循环和帧时长"""
        target_size = calculate_target_size(image.size, config.max_long_edge)
        frames = []
        durations = []
        for frame in ImageSequence.Iterator(image):
            durations.append(frame.info.get('duration', image.info.get('duration', 100)))
            frame = frame.copy()
            if target_size != frame.size:
                frame = frame.resize(target_size, Image.LANCZOS)
            frames.append(frame)
        frames[0].save(
            buffer,
            format='GIF',
            save_all=True,
            append_images=frames[1:],
            duration=durations,
            loop=image.info.get('loop', 0),
        )

    def _passthrough_svg(self, raw: bytes, filename: str) -> ProcessedImage:
        """矢量图不需要缩放，校验后原样返回"""
        head = raw[:4096].lower()
        if b'<svg' not in head:
            raise DecodeError(f"SVG 文件无效: {filename}")
        logger.info(f"[#image]📐 矢量图保持原样: {filename}")
        return ProcessedImage(data=raw, filename=filename)
