"""本地图片校验: 格式、大小、长宽比"""
import base64
import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

from models.images import ImageAsset
from utils.exceptions import ImageValidationError
from utils.helpers import generate_id

ACCEPTED_IMAGE_TYPES = ("image/jpeg", "image/png")
MAX_IMAGE_BYTES = 4 * 1024 * 1024
MIN_IMAGE_RATIO = 1 / 3
MAX_IMAGE_RATIO = 3
REFERENCE_LIMIT = 8


def prepare_image_asset(data: bytes, content_type: Optional[str], name: str = "image") -> ImageAsset:
    """
    校验图片并转为 data URI
    :param data: 图片二进制数据
    :param content_type: MIME 类型，仅接受 jpeg/png
    :param name: 文件名
    :return: ImageAsset
    :raises ImageValidationError: kind 为 format / size / ratio
    """
    content_type = (content_type or "").lower()
    if content_type not in ACCEPTED_IMAGE_TYPES:
        raise ImageValidationError("format", "Only JPEG and PNG images are supported.")

    if len(data) > MAX_IMAGE_BYTES:
        raise ImageValidationError("size", "Images must be 4MB or smaller.")

    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        raise ImageValidationError("format", f"无法读取图片: {name}")

    ratio = width / height if height else 0
    if ratio < MIN_IMAGE_RATIO or ratio > MAX_IMAGE_RATIO:
        raise ImageValidationError("ratio", "Aspect ratio must be between 1:3 and 3:1.")

    encoded = base64.b64encode(data).decode("ascii")
    return ImageAsset(
        id=generate_id(),
        data_url=f"data:{content_type};base64,{encoded}",
        name=name,
        size=len(data),
        width=width,
        height=height,
    )
