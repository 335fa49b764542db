from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from config import Settings
from errors import PackBackendError, SessionNotFoundError
from inventory import Inventory
from payments import to_minor_units
from platform_client import PlatformClient
from platform_schema import PlatformSchema, build_schema
from sessions import SessionPoller, VerificationSessionManager
from workflow import MintWorkflow, build_mint_workflow

auth_settings = Settings()
logging.basicConfig(level=getattr(logging, auth_settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("rps")

platform_client = PlatformClient(
    auth_settings.platform_url,
    auth_settings.enjin_api_token,
    timeout=auth_settings.request_timeout_seconds,
    pool_size=auth_settings.http_pool_size,
)

app = FastAPI(title="RPS Pack Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=auth_settings.cors_origin_list(),
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartAuthResponse(ApiModel):
    id: str
    qr_payload: str = Field(alias="qrPayload")
    expires_at: Optional[float] = Field(default=None, alias="expiresAt")


class CheckAuthResponse(ApiModel):
    address: Optional[str] = None
    balance: Optional[int] = None
    error: Optional[str] = None


class MintRequest(ApiModel):
    session_id: str = Field(alias="sessionId", min_length=1)


class MintedTokenView(ApiModel):
    id: int
    name: str


class MintResponse(ApiModel):
    success: bool = True
    minted_tokens: List[MintedTokenView] = Field(alias="mintedTokens")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    mint_request_id: Optional[str] = Field(default=None, alias="mintRequestId")
    mint_request_state: Optional[str] = Field(default=None, alias="mintRequestState")


class SupplyResponse(ApiModel):
    remaining: int


class CatalogResponse(ApiModel):
    tokens: List[MintedTokenView]
    pack_size: int = Field(alias="packSize")
    price: str
    price_minor_units: str = Field(alias="priceMinorUnits")


@app.exception_handler(PackBackendError)
async def pack_backend_error_handler(request: Request, exc: PackBackendError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_failed path=%s error=%s details=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{loc or 'body'}: {err.get('msg')}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "invalid_request", "details": "; ".join(problems)},
    )


def get_settings() -> Settings:
    return auth_settings


def get_platform(settings: Settings = Depends(get_settings)) -> PlatformSchema:
    return build_schema(settings.platform_schema, platform_client, callback_url=settings.auth_callback_url)


def get_session_manager(platform: PlatformSchema = Depends(get_platform)) -> VerificationSessionManager:
    return VerificationSessionManager(platform)


def get_session_poller(platform: PlatformSchema = Depends(get_platform)) -> SessionPoller:
    return SessionPoller(platform)


def get_mint_workflow(
    platform: PlatformSchema = Depends(get_platform),
    settings: Settings = Depends(get_settings),
) -> MintWorkflow:
    return build_mint_workflow(platform, settings)


def get_inventory(
    platform: PlatformSchema = Depends(get_platform),
    settings: Settings = Depends(get_settings),
) -> Inventory:
    return Inventory(platform, settings.collection_id, settings.catalog(), settings.max_supply_per_token)


@app.get("/", response_class=PlainTextResponse)
def root():
    return "RPS Auth Backend is running."


@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return {"status": "ok", "schema": settings.platform_schema}


@app.get("/start-auth", response_model=StartAuthResponse)
def start_auth(
    external_id: Optional[str] = Query(default=None, alias="externalId"),
    manager: VerificationSessionManager = Depends(get_session_manager),
):
    session = manager.create(external_id=external_id)
    return StartAuthResponse(id=session.id, qr_payload=session.qr_payload, expires_at=session.expires_at)


@app.get("/check-auth/{session_id}", response_model=CheckAuthResponse)
def check_auth(session_id: str, poller: SessionPoller = Depends(get_session_poller)):
    # Polling clients expect 200 + null address while the wallet is not linked; only
    # an unknown session is terminal.
    try:
        link = poller.check(session_id)
    except SessionNotFoundError as exc:
        return JSONResponse(status_code=404, content={"address": None, "error": exc.message})
    if link.error:
        return CheckAuthResponse(address=None, error="Failed to check auth status or wallet not linked.")
    return CheckAuthResponse(address=link.wallet_address, balance=link.balance)


@app.post("/mint", response_model=MintResponse)
def mint(req: MintRequest, workflow: MintWorkflow = Depends(get_mint_workflow)):
    result = workflow.run(req.session_id)
    return MintResponse(
        minted_tokens=[MintedTokenView(id=t.id, name=t.name) for t in result.minted_tokens],
        transaction_id=result.transaction_id,
        mint_request_id=result.request_id,
        mint_request_state=result.request_state,
    )


@app.get("/balances/{wallet}")
def balances(wallet: str, inventory: Inventory = Depends(get_inventory)):
    return inventory.balances(wallet)


@app.get("/supply", response_model=SupplyResponse)
def supply(inventory: Inventory = Depends(get_inventory)):
    return SupplyResponse(remaining=inventory.remaining_supply())


@app.get("/catalog", response_model=CatalogResponse)
def catalog(settings: Settings = Depends(get_settings)):
    tokens = [MintedTokenView(id=token_id, name=name) for token_id, name in sorted(settings.catalog().items())]
    return CatalogResponse(
        tokens=tokens,
        pack_size=settings.mint_count,
        price=settings.mint_cost_enj,
        price_minor_units=str(to_minor_units(settings.mint_cost_enj)),
    )


if __name__ == "__main__":
    import uvicorn

    # Hosts such as Render inject PORT.
    uvicorn.run("main:app", host="0.0.0.0", port=auth_settings.port)
