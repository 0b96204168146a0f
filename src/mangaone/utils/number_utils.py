import math


def round_half_up(value: float) -> int:
    """四舍五入到整数（0.5 向上取整，而不是银行家舍入）"""
    return int(math.floor(value + 0.5))


def percentage(current: int, total: int) -> int:
    """
    计算进度百分比

    Args:
        current: 已完成数量
        total: 总数量

    Returns:
        int: 0-100 的整数百分比
    """
    if total <= 0:
        return 0
    return round_half_up(current / total * 100)
