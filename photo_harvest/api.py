"""
Photo Harvest API Server
========================

FastAPI surface over the session core: login, logout, the current session,
media upload and attachment taxonomy lookups. This is the calling layer that
realizes :class:`~photo_harvest.session.Redirect` outcomes as HTTP 302s and
maps core errors to responses.

Run directly:
    uvicorn photo_harvest.api:app --host 0.0.0.0 --port 8000

Configuration comes from the environment (see :mod:`photo_harvest.config`);
``APP_SECRET`` must be set before the first request.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.responses import Response

from photo_harvest.config import AppConfig
from photo_harvest.errors import DiscoveryError, RemoteApiError, SchemaViolation
from photo_harvest.session import CookieOptions, Redirect, SessionManager
from photo_harvest.session_codec import SessionCodec
from photo_harvest.wordpress_client import WordPressClient, build_upload_form

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger("photo_harvest.api")
logger.setLevel(logging.INFO)

if not logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter(
        "[%(asctime)s] %(name)s %(levelname)s: %(message)s", datefmt="%H:%M:%S",
    ))
    logger.addHandler(_h)


# ---------------------------------------------------------------------------
# Cookie jar over Starlette
# ---------------------------------------------------------------------------


class StarletteCookieJar:
    """Reads cookies from the request and queues writes for the response.

    The response is only known once the handler has decided what to return
    (JSON or a redirect), so writes are recorded and replayed by :meth:`apply`.
    """

    def __init__(self, request: Request) -> None:
        self._cookies = dict(request.cookies)
        self._pending: List[Tuple[str, str, Optional[str], CookieOptions]] = []

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set(self, name: str, value: str, options: CookieOptions) -> None:
        self._cookies[name] = value
        self._pending.append(("set", name, value, options))

    def delete(self, name: str, options: CookieOptions) -> None:
        self._cookies.pop(name, None)
        self._pending.append(("delete", name, None, options))

    def apply(self, response: Response) -> Response:
        for action, name, value, options in self._pending:
            if action == "set":
                response.set_cookie(name, value, **options.as_kwargs())
            else:
                response.delete_cookie(
                    name,
                    path=options.path,
                    secure=options.secure,
                    httponly=options.http_only,
                    samesite=options.same_site.value,
                )
        self._pending.clear()
        return response


# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


class AppState:
    """Process-wide collaborators, built once at start-up."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.codec = SessionCodec(config.secret)
        self.wp = WordPressClient(
            timeout=config.http_timeout,
            discovery_mode=config.discovery_mode,
            discovery_path=config.discovery_path,
        )

    def session_manager(self, jar: StarletteCookieJar) -> SessionManager:
        return SessionManager(
            self.codec,
            jar,
            self.config.cookie_options(),
            login_path=self.config.login_path,
        )


def get_state(request: Request) -> AppState:
    return request.app.state.photo_harvest


def get_jar(request: Request) -> StarletteCookieJar:
    return StarletteCookieJar(request)


def _redirect(outcome: Redirect, jar: StarletteCookieJar) -> Response:
    return jar.apply(RedirectResponse(outcome.location, status_code=outcome.status))


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


async def _remote_api_error(request: Request, exc: RemoteApiError) -> JSONResponse:
    status = exc.status if 400 <= exc.status < 500 else 502
    logger.warning("%s %s: remote API error: %s", request.method, request.url.path, exc)
    return JSONResponse(
        {"error": exc.code or "remote_error", "message": exc.message or str(exc)},
        status_code=status,
    )


async def _discovery_error(request: Request, exc: DiscoveryError) -> JSONResponse:
    return JSONResponse({"error": "discovery_failed", "message": str(exc)}, status_code=400)


async def _schema_violation(request: Request, exc: SchemaViolation) -> JSONResponse:
    logger.error("Remote response did not match %s", exc)
    return JSONResponse({"error": "bad_remote_response", "message": str(exc)}, status_code=502)


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "internal_error", "message": "Internal server error"}, status_code=500)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the FastAPI app. Without *config* it is read from the environment at start-up."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = AppState(config or AppConfig.from_env())
        app.state.photo_harvest = state
        logger.info("%s started (discovery=%s)", state.config.app_name, state.config.discovery_mode.value)
        try:
            yield
        finally:
            await state.wp.close()

    app = FastAPI(title="Photo Harvest", version="1.0.0", lifespan=lifespan)
    app.add_exception_handler(RemoteApiError, _remote_api_error)
    app.add_exception_handler(DiscoveryError, _discovery_error)
    app.add_exception_handler(SchemaViolation, _schema_violation)
    app.add_exception_handler(Exception, _unexpected_error)

    @app.post("/login")
    async def login(
        username: str = Form(...),
        password: str = Form(...),
        site_url: Optional[str] = Form(None),
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        site_url = site_url or state.config.wp_url
        if not site_url:
            raise HTTPException(status_code=400, detail="site_url is required")
        session = await state.wp.login(site_url, username, password)
        state.session_manager(jar).set_session(session)
        return jar.apply(RedirectResponse("/", status_code=302))

    @app.post("/logout")
    async def logout(
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        return _redirect(state.session_manager(jar).logout(), jar)

    @app.get("/logout")
    async def logout_page() -> Response:
        return RedirectResponse("/", status_code=302)

    @app.get("/session")
    async def current_session(
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        outcome = await state.session_manager(jar).verify(state.wp)
        if isinstance(outcome, Redirect):
            return _redirect(outcome, jar)
        return JSONResponse(outcome.value.to_user().model_dump(mode="json"))

    @app.post("/upload")
    async def upload(
        file: UploadFile = File(...),
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        outcome = state.session_manager(jar).require_session()
        if isinstance(outcome, Redirect):
            return _redirect(outcome, jar)
        session = outcome.value

        limit = state.config.max_file_size
        size = file.size
        if size is None:
            # Unknown size: read no more than one byte past the limit.
            size = len(await file.read(limit + 1))
            await file.seek(0)
        if size > limit:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds the {limit} byte limit",
            )
        form = build_upload_form(file.filename or "upload", file.file, file.content_type)
        source_url = await state.wp.upload(session.api_url, session.token, form)
        return JSONResponse({"source_url": source_url})

    @app.get("/taxonomies")
    async def taxonomies(
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        outcome = state.session_manager(jar).require_session()
        if isinstance(outcome, Redirect):
            return _redirect(outcome, jar)
        session = outcome.value
        found = await state.wp.get_taxonomies(session.api_url, session.token)
        return JSONResponse(found.model_dump(mode="json", by_alias=True))

    @app.get("/taxonomies/{slug}/terms")
    async def taxonomy_terms(
        slug: str,
        request: Request,
        state: AppState = Depends(get_state),
        jar: StarletteCookieJar = Depends(get_jar),
    ) -> Response:
        outcome = state.session_manager(jar).require_session()
        if isinstance(outcome, Redirect):
            return _redirect(outcome, jar)
        session = outcome.value
        found = await state.wp.get_taxonomies(session.api_url, session.token)
        if slug not in found.root:
            raise HTTPException(status_code=404, detail=f"Unknown taxonomy {slug!r}")
        params: Dict[str, Any] = dict(request.query_params)
        terms = await state.wp.get_taxonomy_terms(found[slug], session.token, params=params)
        return JSONResponse([term.model_dump(mode="json", by_alias=True) for term in terms])

    return app


app = create_app()
