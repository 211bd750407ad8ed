from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request

from recordbook.core.errors import RecordbookError


ADMIN_KEY_HEADER = 'x-admin-key'


def resolve_admin_key(request: Request) -> str | None:
    header_value = request.headers.get(ADMIN_KEY_HEADER, '')
    if header_value:
        return header_value.strip()
    query_value = request.query_params.get('admin_key')
    if query_value:
        return query_value.strip()
    return None


def raise_http_error(exc: RecordbookError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.message or exc.__class__.__name__) from exc
