"""ASGI entrypoint for the session registry admin API."""

from session_registry.api.app import create_app
from session_registry.containers import build_container

app = create_app(build_container())
