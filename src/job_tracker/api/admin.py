"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import HTMLResponse

if TYPE_CHECKING:
    from job_tracker.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/jobs/active", dependencies=[Depends(require_admin)])
async def active_jobs(
    request: Request, search: str | None = None
) -> dict[str, object]:
    """Return jobs currently in progress across all technicians."""
    container: AppContainer = request.app.state.container
    return {"jobs": await container.admin_service.list_active_jobs(search)}


@router.get("/jobs/completed", dependencies=[Depends(require_admin)])
async def completed_jobs(
    request: Request, search: str | None = None, limit: int = 100
) -> dict[str, object]:
    """Return completed jobs, most recent first."""
    container: AppContainer = request.app.state.container
    return {"jobs": await container.admin_service.list_completed_jobs(search, limit)}


@router.get("/ui", response_class=HTMLResponse)
async def admin_ui() -> HTMLResponse:
    """Minimal admin UI that consumes the admin API."""
    return HTMLResponse(_ADMIN_UI_HTML)


_ADMIN_UI_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Job Tracker Admin</title>
    <style>
      body { font-family: ui-sans-serif, system-ui, sans-serif; margin: 2rem; }
      h1 { margin-bottom: 0.5rem; }
      .row { margin-bottom: 1rem; }
      input { padding: 0.4rem 0.6rem; width: 320px; }
      button { padding: 0.4rem 0.8rem; margin-right: 0.5rem; }
      pre { background: #f6f6f6; padding: 1rem; overflow: auto; }
    </style>
  </head>
  <body>
    <h1>Job Tracker Admin</h1>
    <div class="row">
      <label>Admin token</label><br />
      <input id="token" type="password" placeholder="X-Admin-Token" />
    </div>
    <div class="row">
      <label>Search</label><br />
      <input id="search" type="text" placeholder="Job type, site, address, contact" />
    </div>
    <div class="row">
      <button onclick="loadEndpoint('/admin/jobs/active')">Active jobs</button>
      <button onclick="loadEndpoint('/admin/jobs/completed')">Completed jobs</button>
    </div>
    <pre id="output">Ready.</pre>
    <script>
      async function loadEndpoint(path) {
        const token = document.getElementById('token').value;
        const search = document.getElementById('search').value;
        const output = document.getElementById('output');
        output.textContent = 'Loading...';
        const query = search ? '?search=' + encodeURIComponent(search) : '';
        const res = await fetch(path + query, {
          headers: { 'X-Admin-Token': token }
        });
        if (!res.ok) {
          output.textContent = 'Error: ' + res.status;
          return;
        }
        const data = await res.json();
        output.textContent = JSON.stringify(data, null, 2);
      }
    </script>
  </body>
</html>
"""
