"""Static landing page at ``/`` pointing humans at the metrics path."""

from __future__ import annotations

import html

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["landing"])

_PAGE = """<html>
<head><title>Nexmo Exporter</title></head>
<body>
<h1>Nexmo Exporter</h1>
<p><a href='{path}'>Metrics</a></p>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing(request: Request) -> HTMLResponse:
    path = html.escape(request.app.state.metrics_path, quote=True)
    return HTMLResponse(_PAGE.format(path=path))
