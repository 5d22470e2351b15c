"""Operator API: credential management and cache control.

- GET  /api/pressmetrics/v1/admin/credentials                  sources + masked values
- POST /api/pressmetrics/v1/admin/credentials/{name}/regenerate new secret, shown once
- POST /api/pressmetrics/v1/admin/credentials/rotate-key        re-encrypt under a new key
- POST /api/pressmetrics/v1/admin/cache/flush                   drop all tier payloads

Every route requires an operator session.  Regenerating the bearer token
or rotating the key is refused (409) when that value comes from the
environment; the operator has to change the deployment instead.
"""

from __future__ import annotations

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pressmetrics.api.dependencies import get_exporter, require_operator
from pressmetrics.api.request_view import MetricsRequest
from pressmetrics.services.credentials import mask
from pressmetrics.services.exporter import Exporter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pressmetrics/v1/admin", tags=["admin"])


class CredentialOut(BaseModel):
    source: str
    masked: str | None


class CredentialsOut(BaseModel):
    encryption_key_source: str
    bearer_token: CredentialOut
    api_key: CredentialOut


class RegeneratedOut(BaseModel):
    name: str
    value: str


class StatusOut(BaseModel):
    status: str


@router.get("/credentials", response_model=CredentialsOut)
async def list_credentials(
    _operator: Annotated[MetricsRequest, Depends(require_operator)],
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> CredentialsOut:
    credentials = exporter.credentials
    sources = credentials.sources()
    return CredentialsOut(
        encryption_key_source=sources["encryption_key"],
        bearer_token=CredentialOut(
            source=sources["bearer_token"], masked=mask(await credentials.bearer_token())
        ),
        api_key=CredentialOut(
            source=sources["api_key"], masked=mask(await credentials.api_key())
        ),
    )


@router.post("/credentials/rotate-key", response_model=StatusOut)
async def rotate_key(
    _operator: Annotated[MetricsRequest, Depends(require_operator)],
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> StatusOut:
    await exporter.credentials.rotate_key()
    return StatusOut(status="rotated")


@router.post("/credentials/{name}/regenerate", response_model=RegeneratedOut)
async def regenerate_credential(
    name: Literal["bearer_token", "api_key"],
    _operator: Annotated[MetricsRequest, Depends(require_operator)],
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> RegeneratedOut:
    value = await exporter.credentials.regenerate(name)
    return RegeneratedOut(name=name, value=value)


@router.post("/cache/flush", response_model=StatusOut)
async def flush_cache(
    _operator: Annotated[MetricsRequest, Depends(require_operator)],
    exporter: Annotated[Exporter, Depends(get_exporter)],
) -> StatusOut:
    await exporter.cache.flush()
    return StatusOut(status="flushed")
