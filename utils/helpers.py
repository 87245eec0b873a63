"""辅助函数"""
import math
import uuid


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整），与浏览器 Math.round 对正数的行为一致"""
    return int(math.floor(value + 0.5))


def generate_id() -> str:
    """生成记录ID"""
    return uuid.uuid4().hex
