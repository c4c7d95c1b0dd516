import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.api.auth import router as auth_router
from app.api.group_budgets import router as group_budgets_router
from app.api.invitations import router as invitations_router
from app.api.users import router as users_router
from app.api.categories import router as categories_router
from app.api.transactions import router as transactions_router
from app.api.ewallet import router as ewallet_router
from app.core.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app.timing")

app = FastAPI(title="Group Budget API", version="0.1.0")

cors_origins = settings.cors_origins.split(",")


class TimingMiddleware:
    """Lightweight ASGI middleware; logs method, path, status and latency."""
    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        t0 = time.perf_counter()
        status_code = 0

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        await self.app(scope, receive, send_wrapper)
        ms = int((time.perf_counter() - t0) * 1000)
        method = scope.get("method", "?")
        path = scope.get("path", "?")
        qs = scope.get("query_string", b"").decode()
        qs_str = f"?{qs}" if qs else ""
        logger.info(f"{method} {path}{qs_str} -> {status_code} in {ms}ms")


app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router)
app.include_router(group_budgets_router)
app.include_router(invitations_router)
app.include_router(users_router)
app.include_router(categories_router)
app.include_router(transactions_router)
app.include_router(ewallet_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
