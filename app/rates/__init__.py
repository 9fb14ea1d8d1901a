"""Reference-rate query blueprint."""

from __future__ import annotations

from flask_smorest import Blueprint

blp = Blueprint("Rates", __name__, description="Daily reference-rate queries")

from . import routes  # noqa: E402,F401
