from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render(
    request: Request,
    name: str,
    context: Optional[dict[str, Any]] = None,
    status_code: int = 200,
) -> Response:
    """Renders a page with the current profile snapshot available as `user`."""
    session = getattr(request.state, "session", None)
    data = {"user": session.profile if session else None}
    data.update(context or {})
    return templates.TemplateResponse(request, name, data, status_code=status_code)
