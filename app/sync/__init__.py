"""Blueprint for manually triggered synchronization."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("sync", __name__)

from . import routes  # noqa: E402,F401
