from fastapi import Depends, HTTPException, Request, status, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from app.core.config import settings
from app.core.security import decode_token
from app.services.bulk import BulkLookupService
from app.services.container import Services
from app.services.lookup import EmailLookupService
from app.services.results_store import ResultsStore
from app.services.verification import EmailVerifier

security = HTTPBearer(auto_error=False)


async def get_caller_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Resolve the caller's opaque identity from the JWT Bearer token.
    The X-User-Id header is only honoured when TRUST_GATEWAY_USER_HEADER is
    enabled, i.e. an authenticating gateway strips and sets it.
    No identity, no access.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials:
        payload = decode_token(credentials.credentials)
        if payload is None:
            raise credentials_exception
        user_id = payload.get("sub")
        if not user_id:
            raise credentials_exception
        return str(user_id)

    if settings.TRUST_GATEWAY_USER_HEADER and x_user_id and x_user_id.strip():
        return x_user_id.strip()

    raise credentials_exception


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return services


def get_lookup_service(services: Services = Depends(get_services)) -> EmailLookupService:
    return services.lookup


def get_bulk_service(services: Services = Depends(get_services)) -> BulkLookupService:
    return services.bulk


def get_verifier(services: Services = Depends(get_services)) -> EmailVerifier:
    return services.verifier


def get_results_store(services: Services = Depends(get_services)) -> ResultsStore:
    return services.results_store
