"""Matching API service."""

from .app import build_app, build_sql_engine, router

__all__ = ["build_app", "build_sql_engine", "router"]
