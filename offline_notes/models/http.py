"""Request and response models used by the fetch router."""

from enum import Enum
from typing import Dict
from urllib.parse import urldefrag

from pydantic import BaseModel, Field, field_validator


class RequestMode(str, Enum):
    """How the page issued a request."""

    NAVIGATE = "navigate"
    SAME_ORIGIN = "same-origin"
    CORS = "cors"
    NO_CORS = "no-cors"


class Request(BaseModel):
    """An outgoing resource request."""

    url: str
    method: str = Field(default="GET")
    mode: RequestMode = Field(default=RequestMode.CORS)
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("method")
    @classmethod
    def upper_method(cls, v):
        return v.upper()

    @property
    def cache_key(self) -> str:
        """URL used as the cache key (fragment stripped)."""
        return urldefrag(self.url)[0]

    @property
    def is_navigation(self) -> bool:
        return self.mode == RequestMode.NAVIGATE


class Response(BaseModel):
    """A resource response, either fresh from the network or cached."""

    url: str
    status: int = Field(default=200, ge=100, le=599)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = Field(default=b"")
    from_cache: bool = Field(default=False, description="Served from a cache partition")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def cached_copy(self) -> "Response":
        """Copy of this response marked as served from cache."""
        return self.model_copy(update={"from_cache": True})
