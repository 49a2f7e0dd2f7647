# lab_core/common/api/pagination.py
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    """
    Lab worklists run long on a busy day, so pages are larger than a typical
    admin list. `page_size` lets a client trim a page down.
    """

    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 500


def paginate(request, queryset, serializer_class, *, paginator: PageNumberPagination | None = None) -> Response:
    """
    Paginated list response: { count, next, previous, results }.
    Falls back to a bare list when pagination is disabled for the request.
    """
    p = paginator or DefaultPagination()
    page = p.paginate_queryset(queryset, request)
    if page is None:
        return Response(serializer_class(queryset, many=True).data)
    return p.get_paginated_response(serializer_class(page, many=True).data)
