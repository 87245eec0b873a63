"""尺寸计算服务

根据长宽比与分辨率档位计算服务商可接受的像素尺寸：
边长为 8 的倍数、落在 [16, 6000]、总像素不低于 1280x720，
比例限制在 1:3 ~ 3:1 之间。纯函数，相同输入恒得相同输出。
"""
import re
from enum import Enum
from typing import Tuple, Union

from models.images import AspectRatio, Dimensions, ResolutionTier
from utils.exceptions import InvalidAspectRatio, ValidationException
from utils.helpers import round_half_up

RESOLUTION_TO_LONG_SIDE = {
    ResolutionTier.P480: 854,
    ResolutionTier.P720: 1280,
}

DIMENSION_STEP = 8
MIN_DIMENSION = 16
MAX_DIMENSION = 6000
MIN_PIXELS = 1280 * 720
MAX_RATIO = 3  # 长边/短边

_ASPECT_RATIO_PATTERN = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$", re.ASCII)


def parse_aspect_ratio(aspect_ratio: Union[AspectRatio, str]) -> Tuple[int, int]:
    """解析 "W:H" 为正整数对"""
    text = aspect_ratio.value if isinstance(aspect_ratio, Enum) else aspect_ratio
    match = _ASPECT_RATIO_PATTERN.match(text) if isinstance(text, str) else None
    if not match:
        raise InvalidAspectRatio(aspect_ratio)

    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise InvalidAspectRatio(aspect_ratio)
    return width, height


def clamp_ratio(width: int, height: int) -> Tuple[int, int]:
    """超出 [1/3, 3] 的比例替换为 1:3 或 3:1，保留横竖方向"""
    if width * MAX_RATIO < height:
        return 1, MAX_RATIO
    if width > height * MAX_RATIO:
        return MAX_RATIO, 1
    return width, height


def snap_dimension(value: float) -> int:
    """向下吸附到 8 的倍数并限制在 [MIN_DIMENSION, MAX_DIMENSION]"""
    if value <= 0:
        return MIN_DIMENSION
    snapped = (int(value) // DIMENSION_STEP) * DIMENSION_STEP
    return max(MIN_DIMENSION, min(snapped, MAX_DIMENSION))


def _long_side_for(resolution: Union[ResolutionTier, str]) -> int:
    try:
        tier = ResolutionTier(resolution)
    except ValueError:
        raise ValidationException(f"不支持的分辨率: {resolution}", {"resolution": str(resolution)})
    return RESOLUTION_TO_LONG_SIDE[tier]


def _keep_ratio_in_range(long_side: int, short_side: int) -> int:
    # 短边向下吸附后可能使比例越过 1:3，上调到下一个 8 的倍数
    if short_side * MAX_RATIO < long_side:
        step = MAX_RATIO * DIMENSION_STEP
        short_side = min(-(-long_side // step) * DIMENSION_STEP, MAX_DIMENSION)
    return short_side


def compute_dimensions(aspect_ratio: Union[AspectRatio, str],
                       resolution: Union[ResolutionTier, str]) -> Dimensions:
    """
    计算输出尺寸
    :param aspect_ratio: 长宽比，如 "16:9"
    :param resolution: 分辨率档位，480p / 720p
    :return: Dimensions
    """
    ratio_w, ratio_h = clamp_ratio(*parse_aspect_ratio(aspect_ratio))
    target = _long_side_for(resolution)

    landscape = ratio_w >= ratio_h
    ratio_long, ratio_short = (ratio_w, ratio_h) if landscape else (ratio_h, ratio_w)

    def short_for(long_side: int) -> int:
        return round_half_up(long_side * ratio_short / ratio_long)

    long_side = target
    short_side = short_for(long_side)

    # 像素预算不足时按最小整数倍放大
    if long_side * short_side < MIN_PIXELS:
        multiplier = 2
        while (long_side * multiplier) * (short_side * multiplier) < MIN_PIXELS:
            multiplier += 1
        long_side *= multiplier
        short_side *= multiplier

    long_side = snap_dimension(long_side)
    short_side = _keep_ratio_in_range(long_side, snap_dimension(short_side))

    # 吸附可能让面积跌破预算，逐步加长长边；到达上限仍不足则按现状返回
    while long_side * short_side < MIN_PIXELS and long_side < MAX_DIMENSION:
        long_side = snap_dimension(long_side + DIMENSION_STEP)
        short_side = _keep_ratio_in_range(long_side, snap_dimension(short_for(long_side)))

    long_side = snap_dimension(long_side)
    short_side = snap_dimension(short_side)

    if landscape:
        return Dimensions(width=long_side, height=short_side)
    return Dimensions(width=short_side, height=long_side)
