"""
FastAPI control surface for playback and image edit sessions.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from ..config import SessionConfig, load_profiles
from ..errors import EngineUnavailableError, InvalidArgumentError, SessionNotFoundError
from ..runtime.gst_engine import is_available
from . import schemas
from .registry import SessionRegistry

LOG = logging.getLogger(__name__)


def create_app(
    *,
    registry: Optional[SessionRegistry] = None,
    config: Optional[SessionConfig] = None,
    lifespan: Optional[Callable[..., object]] = None,
) -> FastAPI:
    session_config = config or (registry.config if registry is not None else SessionConfig())
    sessions = registry or SessionRegistry(config=session_config)

    @asynccontextmanager
    async def app_lifespan(app_: FastAPI) -> AsyncIterator[None]:
        try:
            if lifespan is not None:
                async with lifespan(app_):
                    yield
            else:
                yield
        finally:
            LOG.info("Closing all sessions.")
            sessions.close_all()

    app = FastAPI(title="Media Session API", lifespan=app_lifespan)
    app.state.registry = sessions
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _not_found(exc: SessionNotFoundError) -> HTTPException:
        return HTTPException(status_code=404, detail=str(exc))

    @app.get("/healthz")
    async def healthz() -> dict:
        return {
            "status": "ok",
            "profile": session_config.profile,
            "gstreamer": is_available(),
            "sessions": sessions.counts(),
        }

    @app.get("/profiles")
    async def list_profiles() -> dict:
        return {"profiles": load_profiles(), "active": session_config.to_dict()}

    # ------------------------------------------------------------------ playback

    @app.post("/playback", status_code=201)
    async def open_playback(payload: schemas.PlaybackOpenRequest) -> dict:
        try:
            session = await asyncio.to_thread(
                sessions.open_playback,
                payload.uri,
                media_kind=payload.media_kind,
                title=payload.title,
                artist=payload.artist,
                artwork_ref=payload.artwork_ref,
                autostart=payload.autostart,
            )
        except EngineUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"id": session.session_id, "playback": session.snapshot.to_dict()}

    @app.get("/playback/{session_id}")
    async def get_playback(session_id: str) -> dict:
        try:
            session = sessions.get_playback(session_id)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        return {"id": session_id, "playback": session.snapshot.to_dict()}

    @app.post("/playback/{session_id}/command")
    async def playback_command(session_id: str, payload: schemas.PlaybackCommandRequest) -> dict:
        try:
            result = await asyncio.to_thread(
                sessions.apply_playback_command,
                session_id,
                payload.op,
                position_ms=payload.position_ms,
                ms=payload.ms,
                volume=payload.volume,
            )
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"id": session_id, **result}

    @app.delete("/playback/{session_id}")
    async def close_playback(session_id: str) -> dict:
        try:
            released = await asyncio.to_thread(sessions.close_playback, session_id)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        return {"id": session_id, "released": released}

    # ------------------------------------------------------------------ images

    @app.post("/images", status_code=201)
    async def open_image(payload: schemas.ImageOpenRequest) -> dict:
        try:
            session = await asyncio.to_thread(
                sessions.open_image,
                path=payload.path,
                data=payload.data,
                width=payload.width,
                height=payload.height,
                color=tuple(payload.color),
            )
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"id": session.session_id, "image": session.snapshot.to_dict()}

    @app.get("/images/{session_id}")
    async def get_image(session_id: str) -> dict:
        try:
            session = sessions.get_image(session_id)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        return {"id": session_id, "image": session.snapshot.to_dict()}

    @app.post("/images/{session_id}/command")
    async def image_command(session_id: str, payload: schemas.ImageCommandRequest) -> dict:
        params = payload.model_dump(exclude={"op"})
        try:
            result = await asyncio.to_thread(sessions.apply_image_command, session_id, payload.op, **params)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"id": session_id, **result}

    @app.get("/images/{session_id}/preview")
    async def image_preview(session_id: str) -> Response:
        try:
            content = await asyncio.to_thread(sessions.preview_png, session_id)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        return Response(content=content, media_type="image/png")

    @app.delete("/images/{session_id}")
    async def close_image(session_id: str) -> dict:
        try:
            closed = sessions.close_image(session_id)
        except SessionNotFoundError as exc:
            raise _not_found(exc) from exc
        return {"id": session_id, "closed": closed}

    return app
