"""Vercel serverless entry point.

Exposes the FastAPI ``app`` so Vercel's Python runtime can serve it as an
ASGI handler. ``vercel.json`` rewrites every path to this function.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from mathtutor.main import app  # noqa: E402,F401
