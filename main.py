import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from config import Settings, load_settings
from database import ensure_indexes, get_database
from errors import AuthenticationError, ValidationError, install_error_handlers
from potions import RecordStore
from schemas import LoginRequest, MessageResponse, Potion, RegisterRequest, escape_name
from security import (
    TokenService,
    clear_session_cookie,
    get_current_user,
    get_settings,
    get_token_service,
    set_session_cookie,
)
from users import CredentialStore

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Dependencies

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_credential_store(db: Database = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_record_store(db: Database = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


# Auth Routes
auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/register", status_code=201, response_model=MessageResponse)
def register(payload: RegisterRequest, users: CredentialStore = Depends(get_credential_store)):
    users.register(payload.name, payload.password)
    return MessageResponse(message="User created")


@auth_router.post("/login", response_model=MessageResponse)
def login(
    payload: LoginRequest,
    response: Response,
    users: CredentialStore = Depends(get_credential_store),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
):
    # names are stored escaped, see RegisterRequest
    name = escape_name(payload.name)
    user = users.find_by_name(name) if name else None
    if not user or not users.verify_password(user, payload.password.strip()):
        logger.info("Failed login for %r", name)
        raise AuthenticationError("Invalid credentials")
    token = tokens.issue({"sub": str(user["_id"]), "name": user["name"]})
    set_session_cookie(response, token, settings)
    logger.info("User %s logged in", user["name"])
    return MessageResponse(message="Logged in")


@auth_router.get("/logout", response_model=MessageResponse)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out")


# Potion Routes
potion_router = APIRouter(prefix="/potions", tags=["Potions"])


@potion_router.get("")
def list_potions(potions: RecordStore = Depends(get_record_store)) -> List[Dict[str, Any]]:
    return potions.list_all()


@potion_router.get("/names")
def list_potion_names(potions: RecordStore = Depends(get_record_store)) -> List[str]:
    return potions.list_names()


@potion_router.get("/vendor/{vendor_id}")
def list_vendor_potions(vendor_id: str, potions: RecordStore = Depends(get_record_store)):
    return potions.by_vendor(vendor_id)


@potion_router.get("/price-range")
def list_potions_in_price_range(
    min_price: float = Query(..., alias="min"),
    max_price: float = Query(..., alias="max"),
    potions: RecordStore = Depends(get_record_store),
):
    return potions.by_price_range(min_price, max_price)


@potion_router.get("/analytics/distinct-categories", tags=["Analytics"])
def distinct_categories(potions: RecordStore = Depends(get_record_store)):
    return {"distinctCategories": potions.distinct_category_count()}


@potion_router.get("/analytics/average-score-by-vendor", tags=["Analytics"])
def average_score_by_vendor(potions: RecordStore = Depends(get_record_store)):
    return potions.average_score_by_vendor()


@potion_router.get("/analytics/average-score-by-category", tags=["Analytics"])
def average_score_by_category(potions: RecordStore = Depends(get_record_store)):
    return potions.average_score_by_category()


@potion_router.get("/analytics/strength-flavor-ratio", tags=["Analytics"])
def strength_flavor_ratio(potions: RecordStore = Depends(get_record_store)):
    return potions.strength_flavor_ratio()


@potion_router.get("/analytics/search", tags=["Analytics"])
def search(
    group_by: Optional[str] = Query(None, alias="groupBy"),
    metric: Optional[str] = Query(None),
    field: Optional[str] = Query(None),
    potions: RecordStore = Depends(get_record_store),
):
    if not group_by or not metric or not field:
        raise ValidationError("Missing required query parameters: groupBy, metric, field")
    return potions.search(group_by, metric, field)


@potion_router.post("", status_code=201)
def create_potion(
    payload: Potion,
    current_user: Dict[str, Any] = Depends(get_current_user),
    potions: RecordStore = Depends(get_record_store),
):
    logger.debug("User %s creating potion %s", current_user.get("name"), payload.name)
    return potions.create(payload)


# App

def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(app.state.db)
        yield

    app = FastAPI(title="Potions API", lifespan=lifespan)
    app.state.settings = settings
    app.state.token_service = TokenService(settings)
    app.state.db = db if db is not None else get_database(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/")
    def root():
        return {"message": "Potions API running"}

    @app.get("/test")
    def test_database(request: Request):
        _db = request.app.state.db
        try:
            collections = _db.list_collection_names()
            return {"backend": "ok", "database": "ok", "collections": collections}
        except Exception as e:
            logger.warning("Database check failed: %s", e)
            return {"backend": "ok", "database": f"error: {e}"}

    app.include_router(auth_router)
    app.include_router(potion_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
