import logging
from typing import List, Literal, Optional
from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from settings import BACKEND_URL, CATALOG_TTL_SECONDS, PORT
from database import db
from storage import Storage, create_storage
from api_client import ApiError, BackendClient
from cart import CartStore, cart_key
from catalog import CatalogCache
from auth import AuthSession
from checkout import EmptyCartError, submit_order
from payment import callback_view, classify_payment
from orders import (
    admin_order_view,
    dashboard_stats,
    filter_keys,
    filter_orders,
    key_view,
    order_view,
    parse_key_batch,
    user_stats,
)
from schemas import (
    ApiModel,
    CreateGameInput,
    CreateGameKeysInput,
    Game,
    GameFilters,
    GameStatus,
    LoginInput,
    OrderStatus,
    ProfileUpdateInput,
    RegisterInput,
    StatusUpdate,
    UpdateGameInput,
    UserStatus,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Game Key Storefront")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

storage = create_storage(db)
backend = BackendClient()
catalog = CatalogCache(backend.list_active_games, ttl=CATALOG_TTL_SECONDS)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code or 502, content={"detail": exc.message})

# ----------------------- Dependencies -----------------------

def get_storage() -> Storage:
    return storage


def get_backend() -> BackendClient:
    return backend


def get_catalog() -> CatalogCache:
    return catalog


def get_session_id(x_session_id: Optional[str] = Header(None)) -> str:
    if not x_session_id:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header")
    return x_session_id


def get_cart(session_id: str = Depends(get_session_id), store: Storage = Depends(get_storage)) -> CartStore:
    return CartStore(store, cart_key(session_id))


def get_auth(session_id: str = Depends(get_session_id), store: Storage = Depends(get_storage)) -> AuthSession:
    return AuthSession(store, session_id)


def login_required(auth: AuthSession = Depends(get_auth)) -> AuthSession:
    if not auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return auth


def admin_required(auth: AuthSession = Depends(login_required)) -> AuthSession:
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Admin only")
    return auth

# ----------------------- Models -----------------------

class CartGameInput(ApiModel):
    game_id: int


class CartQuantityInput(ApiModel):
    game_id: int
    quantity: int


class AddKeysInput(ApiModel):
    game_id: int
    keys: str = Field(..., min_length=1, description="One key per line")


class SuccessResponse(BaseModel):
    success: bool = True

# ----------------------- Routes -----------------------
@app.get("/")
def root():
    return {"message": "Game Key Storefront running"}

@app.get("/test")
def test_backend(client: BackendClient = Depends(get_backend)):
    response = {
        "storefront": "✅ Running",
        "storage": "mongo" if db is not None else "memory",
        "backend_url": BACKEND_URL,
        "backend": "❌ Not Available",
    }
    try:
        games = client.list_active_games()
        response["backend"] = f"✅ Connected ({len(games)} active games)"
    except ApiError as e:
        response["backend"] = f"⚠️ Error: {e.message[:50]}"
    return response

# Auth
@app.post("/auth/login")
def login(payload: LoginInput, auth: AuthSession = Depends(get_auth), client: BackendClient = Depends(get_backend)):
    user = auth.login(client, payload)
    return {"user": user, "isAdmin": user.is_admin}

@app.post("/auth/register", response_model=SuccessResponse)
def register(payload: RegisterInput, auth: AuthSession = Depends(get_auth), client: BackendClient = Depends(get_backend)):
    auth.register(client, payload)
    return SuccessResponse()

@app.post("/auth/logout", response_model=SuccessResponse)
def logout(auth: AuthSession = Depends(get_auth)):
    auth.logout()
    return SuccessResponse()

@app.get("/auth/me")
def me(auth: AuthSession = Depends(get_auth)):
    return {"isAuthenticated": auth.is_authenticated, "isAdmin": auth.is_admin, "user": auth.user}

@app.post("/profile")
def update_profile(payload: ProfileUpdateInput, auth: AuthSession = Depends(login_required),
                   client: BackendClient = Depends(get_backend)):
    return {"user": auth.update_profile(client, payload)}

# Catalog
@app.get("/games", response_model=List[Game])
def list_games(
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: Literal["az", "za", "price_asc", "price_desc"] = "az",
    games: CatalogCache = Depends(get_catalog),
):
    filters = GameFilters(search=search, category=category, min_price=min_price, max_price=max_price, sort=sort)
    return games.games(filters)

@app.get("/games/categories", response_model=List[str])
def list_categories(games: CatalogCache = Depends(get_catalog)):
    return games.categories()

@app.get("/games/{game_id}", response_model=Game)
def get_game(game_id: int, client: BackendClient = Depends(get_backend)):
    return client.get_game(game_id)

# Cart
@app.get("/cart")
def get_cart_contents(cart: CartStore = Depends(get_cart)):
    return cart.summary()

@app.post("/cart/add")
def add_to_cart(payload: CartGameInput, cart: CartStore = Depends(get_cart),
                games: CatalogCache = Depends(get_catalog), client: BackendClient = Depends(get_backend)):
    active, _ = games.snapshot()
    game = next((g for g in active if g.id == payload.game_id), None)
    if game is None:
        game = client.get_game(payload.game_id)
    if game.status != GameStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Game is not available")
    cart.add_item(game)
    return cart.summary()

@app.post("/cart/remove")
def remove_from_cart(payload: CartGameInput, cart: CartStore = Depends(get_cart)):
    cart.remove_item(payload.game_id)
    return cart.summary()

@app.post("/cart/update")
def update_cart_quantity(payload: CartQuantityInput, cart: CartStore = Depends(get_cart)):
    cart.update_quantity(payload.game_id, payload.quantity)
    return cart.summary()

@app.post("/cart/clear")
def clear_cart(cart: CartStore = Depends(get_cart)):
    cart.clear_cart()
    return cart.summary()

# Checkout
@app.post("/checkout")
def checkout(cart: CartStore = Depends(get_cart), auth: AuthSession = Depends(login_required),
             client: BackendClient = Depends(get_backend)):
    try:
        result = submit_order(cart, client, auth.token)
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JSONResponse(
        content=result.to_dict(),
        headers={"Refresh": f"{result.redirect_delay}; url={result.payment_link}"},
    )

@app.get("/payment/callback")
def payment_callback(status: Optional[str] = None, payment_id: Optional[str] = None,
                     preference_id: Optional[str] = None):
    outcome = classify_payment(status)
    logger.info("Payment callback: status=%s payment_id=%s preference_id=%s", status, payment_id, preference_id)
    return callback_view(outcome)

# Orders
@app.get("/orders")
def my_orders(auth: AuthSession = Depends(login_required), client: BackendClient = Depends(get_backend)):
    return [order_view(o) for o in client.list_my_orders(auth.token)]

# ----------------------- Admin -----------------------
@app.get("/admin/dashboard")
def admin_dashboard(auth: AuthSession = Depends(admin_required), client: BackendClient = Depends(get_backend)):
    return dashboard_stats(
        client.list_all_games(auth.token),
        client.list_all_orders(auth.token),
        client.list_keys(auth.token),
        client.list_users(auth.token),
    )

@app.get("/admin/games", response_model=List[Game])
def admin_list_games(auth: AuthSession = Depends(admin_required), client: BackendClient = Depends(get_backend)):
    return client.list_all_games(auth.token)

@app.post("/admin/games", response_model=SuccessResponse)
def admin_create_game(payload: CreateGameInput, auth: AuthSession = Depends(admin_required),
                      client: BackendClient = Depends(get_backend), games: CatalogCache = Depends(get_catalog)):
    client.create_game(auth.token, payload)
    games.invalidate()
    return SuccessResponse()

@app.put("/admin/games/{game_id}", response_model=SuccessResponse)
def admin_update_game(game_id: int, payload: UpdateGameInput, auth: AuthSession = Depends(admin_required),
                      client: BackendClient = Depends(get_backend), games: CatalogCache = Depends(get_catalog)):
    client.update_game(auth.token, game_id, payload)
    games.invalidate()
    return SuccessResponse()

@app.delete("/admin/games/{game_id}", response_model=SuccessResponse)
def admin_delete_game(game_id: int, auth: AuthSession = Depends(admin_required),
                      client: BackendClient = Depends(get_backend), games: CatalogCache = Depends(get_catalog)):
    client.delete_game(auth.token, game_id)
    games.invalidate()
    return SuccessResponse()

@app.put("/admin/games/{game_id}/status", response_model=SuccessResponse)
def admin_update_game_status(game_id: int, payload: StatusUpdate, auth: AuthSession = Depends(admin_required),
                             client: BackendClient = Depends(get_backend), games: CatalogCache = Depends(get_catalog)):
    if payload.status not in list(GameStatus):
        raise HTTPException(status_code=400, detail="Invalid status")
    client.update_game_status(auth.token, game_id, payload.status)
    games.invalidate()
    return SuccessResponse()

@app.get("/admin/keys")
def admin_list_keys(status: Optional[int] = None, game_id: Optional[int] = None,
                    auth: AuthSession = Depends(admin_required), client: BackendClient = Depends(get_backend)):
    keys = filter_keys(client.list_keys(auth.token), status=status, game_id=game_id)
    return [key_view(k) for k in keys]

@app.post("/admin/keys", response_model=SuccessResponse)
def admin_add_keys(payload: AddKeysInput, auth: AuthSession = Depends(admin_required),
                   client: BackendClient = Depends(get_backend)):
    keys = parse_key_batch(payload.keys)
    if not keys:
        raise HTTPException(status_code=400, detail="Add at least one key")
    client.create_keys(auth.token, CreateGameKeysInput(game_id=payload.game_id, keys=keys))
    return SuccessResponse()

@app.get("/admin/orders")
def admin_list_orders(status: Optional[int] = None, auth: AuthSession = Depends(admin_required),
                      client: BackendClient = Depends(get_backend)):
    return [admin_order_view(o) for o in filter_orders(client.list_all_orders(auth.token), status)]

@app.put("/admin/orders/{order_id}/status", response_model=SuccessResponse)
def admin_update_order_status(order_id: int, payload: StatusUpdate, auth: AuthSession = Depends(admin_required),
                              client: BackendClient = Depends(get_backend)):
    if payload.status not in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        raise HTTPException(status_code=400, detail="Invalid status")
    client.update_order_status(auth.token, order_id, payload.status)
    return SuccessResponse()

@app.get("/admin/users")
def admin_list_users(auth: AuthSession = Depends(admin_required), client: BackendClient = Depends(get_backend)):
    users = client.list_users(auth.token)
    return {"users": users, "stats": user_stats(users)}

@app.put("/admin/users/{user_id}/status", response_model=SuccessResponse)
def admin_update_user_status(user_id: int, payload: StatusUpdate, auth: AuthSession = Depends(admin_required),
                             client: BackendClient = Depends(get_backend)):
    if payload.status not in list(UserStatus):
        raise HTTPException(status_code=400, detail="Invalid status")
    client.update_user_status(auth.token, user_id, payload.status)
    return SuccessResponse()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
