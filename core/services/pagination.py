import math


def paginate(qs, page: int = 1, limit: int = 10):
    """Slice ``qs`` and return ``(items, pagination)``.

    ``pagination`` is ``{current, pages, total}``.
    """
    page = max(1, int(page or 1))
    limit = max(1, int(limit or 10))
    total = qs.count()
    start = (page - 1) * limit
    items = list(qs[start:start + limit])
    return items, {'current': page, 'pages': math.ceil(total / limit), 'total': total}
