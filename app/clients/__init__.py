"""
Upstream API clients and the shared request queue.
"""
from .request_queue import RequestQueue
from .base import BaseAPIClient
from .tmdb_client import TMDBClient
from .top10_client import Top10Client

__all__ = [
    "RequestQueue",
    "BaseAPIClient",
    "TMDBClient",
    "Top10Client",
]
