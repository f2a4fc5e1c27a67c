from fastapi import Query
from typing import Annotated, Optional
from pydantic import BaseModel


class PaginationParams(BaseModel):
    """分页参数模型，超出范围的值由服务层收紧而不是拒绝"""
    page: int
    limit: Optional[int] = None


async def get_pagination_params(
    page: Annotated[int, Query(description="页码，从 1 开始")] = 1,
    limit: Annotated[Optional[int], Query(description="每页数量，最大 50")] = None
) -> PaginationParams:
    """获取分页参数依赖项"""
    return PaginationParams(page=page, limit=limit)
