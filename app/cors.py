"""Cross-origin access to the public rate endpoints and the manual sync trigger."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from flask import Response, make_response, request

READ_METHODS = ("GET", "HEAD", "OPTIONS")
SYNC_METHODS = ("POST", "OPTIONS")
SYNC_PATH = "/rates/sync"
CORS_EXT_KEY = "cors_policy"


@dataclass(frozen=True)
class CorsPolicy:
    """Which origins may read rates and which may trigger a sync.

    The rate and health endpoints are read-only, so ``read_origins`` only
    ever unlocks ``GET``/``HEAD``. ``POST`` to the sync path is allowed for
    ``sync_origins`` alone; a ``*`` there is ignored.
    """

    read_origins: tuple[str, ...]
    sync_origins: tuple[str, ...]
    headers: tuple[str, ...]
    max_age: int
    sync_path: str = SYNC_PATH

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CorsPolicy:
        return cls(
            read_origins=_normalize_entries(config.get("CORS_ALLOWED_ORIGINS", ())),
            sync_origins=tuple(
                origin
                for origin in _normalize_entries(config.get("CORS_SYNC_ORIGINS", ()))
                if origin != "*"
            ),
            headers=_normalize_entries(config.get("CORS_ALLOWED_HEADERS", ("Content-Type",))),
            max_age=int(config.get("CORS_MAX_AGE", 600)),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.read_origins or self.sync_origins)

    def methods_for(self, path: str) -> tuple[str, ...]:
        return SYNC_METHODS if path == self.sync_path else READ_METHODS

    def allows(self, origin: str | None, path: str, method: str) -> bool:
        if not origin or method.upper() not in self.methods_for(path):
            return False
        if path == self.sync_path:
            return origin in self.sync_origins
        return "*" in self.read_origins or origin in self.read_origins

    def allow_origin_value(self, origin: str, path: str) -> str:
        if path != self.sync_path and "*" in self.read_origins:
            return "*"
        return origin


def init_cors(app) -> None:
    """Install the CORS policy built from ``CORS_*`` settings."""

    if CORS_EXT_KEY in app.extensions:
        return

    policy = CorsPolicy.from_config(app.config)
    app.extensions[CORS_EXT_KEY] = policy
    if not policy.enabled:
        return

    @app.before_request
    def handle_preflight():
        if request.method != "OPTIONS":
            return None
        origin = request.headers.get("Origin")
        requested = request.headers.get("Access-Control-Request-Method")
        if origin is None or requested is None:
            return None
        if not policy.allows(origin, request.path, requested):
            return make_response("", 403)

        response = make_response("", 204)
        _apply_origin_headers(response, policy.allow_origin_value(origin, request.path))
        response.headers["Access-Control-Allow-Methods"] = ", ".join(policy.methods_for(request.path))
        response.headers["Access-Control-Allow-Headers"] = ", ".join(
            _granted_headers(request.headers.get("Access-Control-Request-Headers"), policy.headers)
        )
        response.headers["Access-Control-Max-Age"] = str(policy.max_age)
        return response

    @app.after_request
    def apply_cors(response: Response):
        origin = request.headers.get("Origin")
        if origin and policy.allows(origin, request.path, request.method):
            _apply_origin_headers(response, policy.allow_origin_value(origin, request.path))
        return response


def _normalize_entries(raw: str | Iterable[str]) -> tuple[str, ...]:
    candidates = raw.split(",") if isinstance(raw, str) else list(raw)
    return tuple(item for item in ((value or "").strip() for value in candidates) if item)


def _granted_headers(requested: str | None, allowed: tuple[str, ...]) -> tuple[str, ...]:
    if not requested:
        return allowed
    permitted = {header.lower() for header in allowed}
    granted = tuple(header for header in _normalize_entries(requested) if header.lower() in permitted)
    return granted or allowed


def _apply_origin_headers(response: Response, allow_origin: str) -> None:
    response.headers["Access-Control-Allow-Origin"] = allow_origin
    vary = [item.strip() for item in (response.headers.get("Vary") or "").split(",") if item.strip()]
    if "Origin" not in vary:
        vary.append("Origin")
    response.headers["Vary"] = ", ".join(vary)
