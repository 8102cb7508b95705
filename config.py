from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Application settings loaded from environment variables."""

    user_agent: str = Field(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
        alias="FETCH_USER_AGENT",
    )
    accept_language: str = Field("en-US,en;q=0.9", alias="FETCH_ACCEPT_LANGUAGE")
    html_accept: str = Field(
        "text/html,application/xhtml+xml,application/xml", alias="FETCH_HTML_ACCEPT"
    )
    json_accept: str = Field("application/json", alias="FETCH_JSON_ACCEPT")
    max_redirects: int = Field(5, alias="MAX_REDIRECTS", ge=0)
    request_timeout_seconds: Optional[float] = Field(15, alias="REQUEST_TIMEOUT_SECONDS")
    verify_tls: bool = Field(True, alias="VERIFY_TLS")
    transport_backend: Literal["socket", "httpx"] = Field("socket", alias="TRANSPORT_BACKEND")
    enable_cache: bool = Field(True, alias="ENABLE_CACHE")
    cache_file: str = Field("cache.json", alias="CACHE_FILE")
    cache_ttl_seconds: int = Field(0, alias="CACHE_TTL_SECONDS", ge=0)
    search_url_template: str = Field(
        "https://html.duckduckgo.com/html/?q={query}", alias="SEARCH_URL_TEMPLATE"
    )
    max_search_results: int = Field(10, alias="MAX_SEARCH_RESULTS", ge=1)
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @model_validator(mode="after")
    def disable_zero_timeout(self) -> "AppConfig":
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            self.request_timeout_seconds = None
        return self

    @model_validator(mode="after")
    def require_query_placeholder(self) -> "AppConfig":
        if "{query}" not in self.search_url_template:
            raise ValueError("SEARCH_URL_TEMPLATE must contain a {query} placeholder")
        return self
