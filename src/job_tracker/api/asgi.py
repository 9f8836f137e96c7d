"""ASGI entrypoint for the job tracker admin API."""

from job_tracker.api.app import create_app
from job_tracker.containers import build_container

app = create_app(build_container())
