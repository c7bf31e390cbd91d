"""FastAPI app: GET /<secret_path> (share link), GET /bg.png, GET / and /index.html (status), 404 otherwise.

No auth beyond the unguessable slug; TLS is left to the platform's reverse proxy.
"""

import html
import logging
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse

from meshgate.config.settings import Settings
from meshgate.engine.supervisor import Supervisor
from meshgate.status_server.links import vless_link
from meshgate.status_server.self_check import derive_status

logger = logging.getLogger(__name__)

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

_SECRET_PAGE = """<!DOCTYPE html>
<html><head><meta charset="UTF-8"><title>meshgate</title></head>
<body style="font-family:system-ui;padding:1rem;">
  <h3>meshgate ({transport} mode)</h3>
  <p>Connect through the mesh network with this link:</p>
  <textarea style="width:100%;height:100px;" readonly>{link}</textarea>
  <p>{status}</p>
</body></html>"""


def create_app(settings: Settings, supervisor: Supervisor) -> FastAPI:
    """Build the status app. The secret route is fixed at build time from settings.web.secret_path."""
    app = FastAPI(title="meshgate", docs_url=None, redoc_url=None, openapi_url=None)
    static_dir = settings.web.static_dir

    def secret_page() -> HTMLResponse:
        """Share link for the proxy via the mesh IP."""
        status = derive_status(supervisor.status())
        body = _SECRET_PAGE.format(
            transport=html.escape(settings.proxy.transport.upper()),
            link=html.escape(vless_link(settings)),
            status=html.escape(status["text"]),
        )
        return HTMLResponse(body)

    app.add_api_route(f"/{settings.web.secret_path}", secret_page, methods=["GET"])

    @app.get("/bg.png")
    def get_background() -> Any:
        path = static_dir / "bg.png"
        if path.is_file():
            return FileResponse(path, media_type="image/png")
        return PlainTextResponse("Image Not Found", status_code=404)

    @app.get("/")
    @app.get("/index.html")
    def get_index() -> Any:
        """Static index.html when present, else a one-line status."""
        path = static_dir / "index.html"
        if path.is_file():
            return FileResponse(path, media_type="text/html; charset=utf-8")
        return PlainTextResponse(derive_status(supervisor.status())["text"])

    @app.api_route("/{path:path}", methods=_ALL_METHODS)
    def not_found(request: Request, path: str) -> PlainTextResponse:
        logger.debug("404 %s /%s", request.method, path)
        return PlainTextResponse("404", status_code=404)

    return app


def build_server(settings: Settings, app: FastAPI) -> uvicorn.Server:
    """uvicorn server on settings.web.host ("::" is dual stack) and settings.web.port."""
    config = uvicorn.Config(app, host=settings.web.host, port=settings.web.port, log_level="info")
    logger.info("Status server on [%s]:%s", settings.web.host, settings.web.port)
    return uvicorn.Server(config)
