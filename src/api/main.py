"""
FastAPI backend: auth, contact REST API, and the realtime WebSocket channel.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI, WebSocket  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from neo4j import GraphDatabase  # noqa: E402

from api import auth, contacts  # noqa: E402
from api.settings import STORAGE_MEMORY, Settings  # noqa: E402
from contactly.application import AuthService, ContactService  # noqa: E402
from contactly.infrastructure import (  # noqa: E402
    AuthRejected,
    BcryptPasswordHasher,
    ConnectionState,
    InMemoryContactRepository,
    InMemoryUserRepository,
    Neo4jContactRepository,
    Neo4jUserRepository,
    RealtimeHub,
    TokenIssuer,
    ensure_constraints,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)
logger = logging.getLogger(__name__)


def _get_driver(settings: Settings):
    return GraphDatabase.driver(
        settings.neo4j_uri, auth=(settings.neo4j_user, settings.neo4j_password)
    )


def _build_repositories(app: FastAPI, settings: Settings):
    if settings.storage_backend == STORAGE_MEMORY:
        logger.warning("STORAGE_BACKEND=memory: users and contacts are lost on restart")
        return InMemoryUserRepository(), InMemoryContactRepository()
    app.state.driver = _get_driver(settings)
    ensure_constraints(app.state.driver)
    return Neo4jUserRepository(app.state.driver), Neo4jContactRepository(app.state.driver)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    tokens = TokenIssuer(
        settings.jwt_secret,
        settings.realtime_jwt_secret,
        session_ttl=settings.session_ttl,
        realtime_ttl=settings.realtime_ttl,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.driver = None
        try:
            users, contact_repo = _build_repositories(app, settings)
            app.state.auth_service = AuthService(
                users, BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
            )
            app.state.contact_service = ContactService(contact_repo)
            logger.info("Realtime channel: WS /ws (cookie %s)", auth.REALTIME_COOKIE)
            yield
        finally:
            if getattr(app.state, "driver", None) is not None:
                app.state.driver.close()

    app = FastAPI(title="Contactly API", lifespan=lifespan)
    app.state.settings = settings
    app.state.tokens = tokens
    app.state.hub = RealtimeHub(tokens)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(auth.router)
    app.include_router(contacts.router)

    @app.get("/health")
    def health():
        return {"status": "ok", "realtime_connections": app.state.hub.connection_count}

    @app.websocket("/ws")
    async def realtime(websocket: WebSocket):
        """Per-user change feed. Credential: realtime cookie, or ?token= as a fallback."""
        hub: RealtimeHub = websocket.app.state.hub
        credential = websocket.cookies.get(auth.REALTIME_COOKIE) or websocket.query_params.get(
            "token"
        )
        try:
            connection = await hub.handshake(credential, websocket)
        except AuthRejected as e:
            await hub.reject(websocket, e)
            return
        try:
            # Client frames carry nothing; keep reading so a disconnect is noticed promptly.
            while connection.state is ConnectionState.OPEN:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            hub.teardown(connection)

    return app


app = create_app()
