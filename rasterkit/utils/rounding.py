import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3).
    Python's round() sends halves to the even neighbour instead.
    """
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def clamp(value, low, high):
    return max(low, min(high, value))
