from .base import DrawResultSource
from .http_api import HttpJsonDrawSource, HttpJsonDrawSourceConfig

__all__ = [
    "DrawResultSource",
    "HttpJsonDrawSource",
    "HttpJsonDrawSourceConfig",
]
