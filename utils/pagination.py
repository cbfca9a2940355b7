from typing import Dict, Tuple

DEFAULT_PAGE = 1
DEFAULT_SIZE = 10
MAX_SIZE = 100


def parse_page_params(query_params, default_size: int = DEFAULT_SIZE) -> Tuple[int, int]:
    """Read ?page= and ?size= from a request, falling back to sane defaults on junk input."""
    try:
        page = max(int(query_params.get("page", DEFAULT_PAGE)), 1)
    except (TypeError, ValueError):
        page = DEFAULT_PAGE
    try:
        size = min(max(int(query_params.get("size", default_size)), 1), MAX_SIZE)
    except (TypeError, ValueError):
        size = default_size
    return page, size


def paginate(queryset, page: int = DEFAULT_PAGE, size: int = DEFAULT_SIZE) -> Dict:
    """Offset pagination: limit=size, offset=(page-1)*size."""
    page = max(int(page or DEFAULT_PAGE), 1)
    size = max(int(size or DEFAULT_SIZE), 1)
    offset = (page - 1) * size
    total_count = queryset.count()
    return {
        "results": list(queryset[offset : offset + size]),
        "count": total_count,
        "total_pages": (total_count + size - 1) // size,
        "page": page,
        "size": size,
    }
