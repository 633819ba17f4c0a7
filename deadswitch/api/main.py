from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .. import config
from ..errors import (
    AccessDeniedError,
    DeadSwitchError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    StillAliveError,
    UnauthorizedError,
    ValidationError,
)
from ..identity import Principal
from ..keys import DerivationRequest
from ..logging_config import audit_log, set_request_id
from ..rate_limit import RateLimiter
from ..service import WillService, build_service
from ..util import b64e
from ..validation import decode_base64_field
from .models import (
    AckResponse,
    ClaimResponse,
    DeriveKeyRequest,
    DerivedKeyResponse,
    HeartbeatResponse,
    InheritanceInfo,
    RegisterWillRequest,
    UpdateSecretRequest,
    VaultBalanceResponse,
    VaultPublicKeyResponse,
    WillStatusResponse,
)

app = FastAPI(title="deadswitch")

# Most specific first: isinstance() picks the first match.
STATUS_CODES = (
    (NotFoundError, 404),
    (UnauthorizedError, 403),
    (AccessDeniedError, 403),
    (StillAliveError, 409),
    (ValidationError, 422),
    (RateLimitedError, 429),
    (ServiceUnavailableError, 503),
)

SERVICE: Optional[WillService] = None
claim_limiter = RateLimiter(config.CLAIM_RPM)
derive_limiter = RateLimiter(config.DERIVE_RPM)


def install_service(service: WillService) -> None:
    """Replace the process-wide service (tests, embedding)."""
    global SERVICE
    SERVICE = service
    claim_limiter.reset()
    derive_limiter.reset()


@app.on_event("startup")
def _startup():
    if SERVICE is None:
        install_service(build_service())


def get_service() -> WillService:
    if SERVICE is None:
        raise ServiceUnavailableError("Service not initialised")
    return SERVICE


def get_caller(request: Request) -> Principal:
    """The hosting environment authenticates the caller and sets this header."""
    return Principal.from_text(request.headers.get(config.CALLER_HEADER, ""))


def _rate_limit(limiter: RateLimiter, operation: str, caller: Principal) -> None:
    result = limiter.check(RateLimiter.key_for(operation, caller.text))
    if not result.allowed:
        audit_log.rate_limit_exceeded(caller.masked(), operation)
        raise RateLimitedError(retry_after=result.retry_after or 0.0)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = set_request_id(request.headers.get("X-Request-ID") or None)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(DeadSwitchError)
async def deadswitch_error_handler(request: Request, exc: DeadSwitchError):
    status = next((code for cls, code in STATUS_CODES if isinstance(exc, cls)), 500)
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(int(exc.retry_after) + 1)}
    return JSONResponse(status_code=status, content={"error": exc.code, "detail": exc.message}, headers=headers)


@app.get("/health")
def health():
    service = get_service()
    return {"status": "ok", "wills": service.registry.count(), "network": config.BITCOIN_NETWORK}


# ------------------------------------------------------------------
# Owner
# ------------------------------------------------------------------

@app.post("/wills", response_model=AckResponse)
def register_will(req: RegisterWillRequest, caller: Principal = Depends(get_caller)):
    secret = decode_base64_field(req.encrypted_secret_b64, "encrypted_secret_b64")
    message = get_service().register_will(
        caller, req.beneficiary, req.payout_address, req.heartbeat_interval_seconds, secret
    )
    return AckResponse(message=message)


@app.post("/wills/heartbeat", response_model=HeartbeatResponse)
def heartbeat(caller: Principal = Depends(get_caller)):
    return HeartbeatResponse(last_active=get_service().heartbeat(caller))


@app.put("/wills/secret", response_model=AckResponse)
def update_secret(req: UpdateSecretRequest, caller: Principal = Depends(get_caller)):
    ciphertext = decode_base64_field(req.ciphertext_b64, "ciphertext_b64")
    get_service().update_secret(caller, ciphertext)
    return AckResponse(message="Secret updated")


@app.get("/wills/me", response_model=WillStatusResponse)
def get_will_status(caller: Principal = Depends(get_caller)):
    return WillStatusResponse(**get_service().get_will_status(caller))


# ------------------------------------------------------------------
# Beneficiary
# ------------------------------------------------------------------

@app.get("/inheritances", response_model=List[InheritanceInfo])
def list_my_inheritances(caller: Principal = Depends(get_caller)):
    return [InheritanceInfo(**item) for item in get_service().list_my_inheritances(caller)]


@app.post("/inheritances/{owner}/claim", response_model=ClaimResponse)
def claim_inheritance(owner: str, background_tasks: BackgroundTasks, caller: Principal = Depends(get_caller)):
    _rate_limit(claim_limiter, "claim", caller)
    service = get_service()
    result = service.claim(caller, Principal.from_text(owner), settle=False)
    # Settlement runs after the response is sent; the secret never waits on it.
    if result.task is not None:
        background_tasks.add_task(service.orchestrator.settle, result.task)
    return ClaimResponse(owner=result.owner.text, secret_b64=b64e(result.secret), first_claim=result.first_claim)


# ------------------------------------------------------------------
# Keys and vault
# ------------------------------------------------------------------

@app.post("/keys/{owner}/derive", response_model=DerivedKeyResponse)
def derive_authorized_key(owner: str, req: DeriveKeyRequest, caller: Principal = Depends(get_caller)):
    _rate_limit(derive_limiter, "derive", caller)
    request = DerivationRequest(
        transport_public_key=decode_base64_field(req.transport_public_key_b64, "transport_public_key_b64"),
        context=[decode_base64_field(seg, "context_b64") for seg in req.context_b64],
    )
    encrypted = get_service().derive_authorized_key(caller, Principal.from_text(owner), request)
    return DerivedKeyResponse(encrypted_key_b64=b64e(encrypted))


@app.get("/vault/public_key", response_model=VaultPublicKeyResponse)
def get_vault_public_key(caller: Principal = Depends(get_caller)):
    return VaultPublicKeyResponse(public_key_hex=get_service().get_vault_public_key(caller))


@app.get("/vault/balance/{address}", response_model=VaultBalanceResponse)
def get_vault_balance(address: str):
    balance = get_service().get_vault_balance(address)
    return VaultBalanceResponse(address=address, network=config.BITCOIN_NETWORK, balance=balance)
