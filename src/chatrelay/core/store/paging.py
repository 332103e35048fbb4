"""列表分页参数处理"""


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """把客户端 limit 收敛到 [1, maximum]，缺省使用 default

    超出上限时截断而不是报错。
    """
    if limit is None:
        return min(default, maximum)
    return max(1, min(limit, maximum))
