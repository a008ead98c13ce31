"""FastAPI app: the WebSocket endpoint that hosts Mafia rooms."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from api.config import Settings, get_settings
from api.gateway import SessionGateway

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    gateway = SessionGateway(timings=settings.timings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Mafia room server starting up...")
        yield
        gateway.shutdown()
        logger.info("Mafia room server shutting down.")

    app = FastAPI(title="Mafia Rooms", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.gateway = gateway

    @app.websocket("/ws")
    async def game_socket(websocket: WebSocket):
        await gateway.serve(websocket)

    return app


logging.basicConfig(level=get_settings().log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("api.main:app", host=settings.host, port=settings.port)
