"""
Edge app serving the generated statistics site.

Static assets are served as-is; cross-origin access is granted only to an
allow-list of origins, and preflight requests are answered without touching
the assets.
"""

import re
from collections.abc import Iterable
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from scverse_stats.config import get_setting

OriginPattern = str | re.Pattern[str]

ALLOWED_METHODS = "GET, OPTIONS"
CORS_POLICY_HEADERS = {
    "Access-Control-Allow-Methods": ALLOWED_METHODS,
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Requested-With",
}


def compile_origins(origins: Iterable[str]) -> list[OriginPattern]:
    """Compile allow-list entries; entries starting with '^' are regexes."""
    return [re.compile(o) if o.startswith("^") else o for o in origins]


def is_origin_allowed(origin: str | None, allowed: Iterable[OriginPattern]) -> bool:
    """Check an Origin header value against exact strings and regex patterns."""
    if not origin:
        return False
    for pattern in allowed:
        if isinstance(pattern, re.Pattern):
            if pattern.search(origin):
                return True
        elif origin == pattern:
            return True
    return False


def create_app(
    static_dir: Path | str, allowed_origins: Iterable[str] | None = None
) -> FastAPI:
    """
    Create the edge app for a directory of static assets.

    Args:
        static_dir: Directory holding the generated site (JSON, charts, HTML).
        allowed_origins: Origin allow-list. Defaults to the configured
            ``allowed_origins``.

    Returns:
        Configured FastAPI application.
    """
    if allowed_origins is None:
        allowed_origins = get_setting("allowed_origins") or []
    allowed = compile_origins(allowed_origins)

    app = FastAPI(
        title="scverse-stats", docs_url=None, redoc_url=None, openapi_url=None
    )

    @app.middleware("http")
    async def origin_filter(request: Request, call_next):
        origin = request.headers.get("origin")
        origin_allowed = is_origin_allowed(origin, allowed)

        if request.method == "OPTIONS":
            if origin_allowed:
                return Response(
                    status_code=204,
                    headers={
                        **CORS_POLICY_HEADERS,
                        "Access-Control-Allow-Origin": origin,
                    },
                )
            if origin:
                return PlainTextResponse(
                    "CORS policy: Origin not allowed.", status_code=403
                )
            return Response(status_code=204, headers={"Allow": ALLOWED_METHODS})

        response = await call_next(request)
        if origin_allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers.update(CORS_POLICY_HEADERS)
        return response

    app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    return app
