"""
DEPENDENCIES (Dependências)
============================

Funções que são injetadas nas rotas para validação.
"""

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src.config import Settings, get_settings
from src.infrastructure.jobs.message_dispatch_job import (
    MessageDispatchJob,
    get_message_dispatch_job,
)
from src.infrastructure.jobs.expired_pix_job import ExpiredPixJob, get_expired_pix_job

# Bearer opcional: o cron-job.org também pode mandar ?secret=
security = HTTPBearer(auto_error=False)


async def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    secret: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Valida o segredo do cron (header Authorization: Bearer ou ?secret=).

    Uso nas rotas:
        @router.get("/rota-do-cron", dependencies=[Depends(verify_cron_secret)])
    """
    provided = credentials.credentials if credentials else secret

    if not provided or not hmac.compare_digest(
        provided.encode("utf-8"), settings.cron_secret.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_dispatch_job() -> MessageDispatchJob:
    return get_message_dispatch_job()


def get_pix_job() -> ExpiredPixJob:
    return get_expired_pix_job()
