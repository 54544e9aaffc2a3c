"""
Response envelope shared by the Integration and Admin APIs

Every endpoint answers with {success, message, error_code, data}; paged
lists add a pagination block.

Author: TM3
Date: 2025-12-03
"""
import math
from typing import Any, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.core.result import Result

CONFLICT_CODES = {"CODE_EXISTS", "SKU_EXISTS"}


class Pagination(BaseModel):
    page_number: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / page_size) if page_size else 0
        return cls(
            page_number=page,
            page_size=page_size,
            total_count=total,
            total_pages=total_pages,
            has_previous_page=page > 1,
            has_next_page=page < total_pages,
        )


class ApiResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error_code: Optional[str] = None
    data: Any = None
    pagination: Optional[Pagination] = None


def status_for_error(error_code: Optional[str]) -> int:
    """*_NOT_FOUND -> 404, duplicate keys -> 409, anything else -> 400"""
    if not error_code:
        return status.HTTP_400_BAD_REQUEST
    if error_code == "NOT_FOUND" or error_code.endswith("_NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    if error_code in CONFLICT_CODES or error_code.endswith("_EXISTS"):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def _json(body: ApiResponse, status_code: int) -> JSONResponse:
    content = body.model_dump()
    if body.pagination is None:
        content.pop("pagination")
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def ok(data: Any = None, message: Optional[str] = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return _json(ApiResponse(success=True, message=message, data=data), status_code)


def error(message: str, error_code: Optional[str] = None, status_code: Optional[int] = None) -> JSONResponse:
    return _json(
        ApiResponse(success=False, message=message, error_code=error_code),
        status_code or status_for_error(error_code),
    )


def paged(items: List[Any], total: int, page: int, page_size: int) -> JSONResponse:
    body = ApiResponse(success=True, data=items, pagination=Pagination.build(page, page_size, total))
    return _json(body, status.HTTP_200_OK)


def result_to_response(result: Result, message: Optional[str] = None,
                       success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Translate a service Result into the HTTP envelope"""
    if result.is_failure:
        return error(result.error_message, result.error_code)
    return ok(result.data, message, success_status)


def upsert_to_response(result: Result, entity: str) -> JSONResponse:
    """201 when the upsert created the record, 200 when it updated one"""
    if result.is_failure:
        return error(result.error_message, result.error_code)
    outcome = result.data
    if outcome.created:
        return ok(outcome.data, f"{entity} created", status.HTTP_201_CREATED)
    return ok(outcome.data, f"{entity} updated")


def paged_result_to_response(result: Result, page: int, page_size: int) -> JSONResponse:
    if result.is_failure:
        return error(result.error_message, result.error_code)
    items, total = result.data
    return paged(items, total, page, page_size)
