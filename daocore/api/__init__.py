"""
DAO Core HTTP API.
"""

from daocore.api.app import create_app, run_server

__all__ = ["create_app", "run_server"]
