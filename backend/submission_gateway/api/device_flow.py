"""
GitHub Device Flow proxy.

Browsers cannot call github.com/login/* directly (no CORS), so these two
endpoints forward the request and return GitHub's status and payload
verbatim. Polling itself stays with the caller.
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from submission_gateway.config import settings
from submission_gateway.dtos.github import DeviceStartRequest, DeviceTokenRequest
from submission_gateway.middleware.auth import get_oauth_http
from submission_gateway.middleware.error_codes import error_body
from submission_gateway.services.device_flow import request_device_code, request_device_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Device Flow"])


@router.post("/github-device-start")
async def device_start(
    payload: DeviceStartRequest | None = Body(default=None),
    client_id: Optional[str] = Query(default=None),
    scope: Optional[str] = Query(default=None),
    http: httpx.AsyncClient = Depends(get_oauth_http),
):
    payload = payload or DeviceStartRequest()
    client_id = payload.client_id or client_id
    if not client_id:
        return JSONResponse(status_code=400, content=error_body("client_id required", 400))

    try:
        status_code, data = await request_device_code(
            http, client_id, payload.scope or scope or settings.GITHUB_DEVICE_SCOPE
        )
    except httpx.HTTPError as exc:
        logger.error("[Device Start] Error: %s", exc)
        return JSONResponse(status_code=500, content=error_body("proxy_failed", 500))
    return JSONResponse(status_code=status_code, content=data)


@router.post("/github-device-token")
async def device_token(
    payload: DeviceTokenRequest | None = Body(default=None),
    client_id: Optional[str] = Query(default=None),
    device_code: Optional[str] = Query(default=None),
    http: httpx.AsyncClient = Depends(get_oauth_http),
):
    payload = payload or DeviceTokenRequest()
    client_id = payload.client_id or client_id
    device_code = payload.device_code or device_code
    if not client_id or not device_code:
        return JSONResponse(
            status_code=400,
            content=error_body("client_id and device_code required", 400),
        )

    try:
        status_code, data = await request_device_token(http, client_id, device_code)
    except httpx.HTTPError as exc:
        logger.error("[Device Token] Error: %s", exc)
        return JSONResponse(status_code=500, content=error_body("proxy_failed", 500))
    return JSONResponse(status_code=status_code, content=data)
