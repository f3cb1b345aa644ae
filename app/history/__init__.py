"""History blueprint module."""

from __future__ import annotations

from flask_smorest import Blueprint

blp = Blueprint("History", __name__, description="Retained exchange rate history")

from . import routes  # noqa: E402,F401
