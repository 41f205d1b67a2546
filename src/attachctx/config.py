"""ResolverConfig: deployment settings for URL building and AI limits."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

from attachctx.errors import ConfigurationError
from attachctx.serde import require_float, require_int, require_string

DEFAULT_DELIVERY_PATH = "src/FileDelivery/deliver.php"
DEFAULT_BAD_PATH_MARKER = "/Customizing/global/plugins/"
DEFAULT_PLUGIN_DOWNLOAD_PATH = (
    "Customizing/global/plugins/Services/COPage/PageComponent/AIChatPageComponent/download.php"
)
DEFAULT_REMOTE_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_AI_PAGES = 20

_ENV_PREFIX = "ATTACHCTX_"
_CUSTOMIZING_SUFFIX = re.compile(r"(/Customizing)(?=/|$).*", re.IGNORECASE)


def normalize_base_url(url: str) -> str:
    """Strip any ``/Customizing/...`` tail and trailing slashes from a base URL."""
    return _CUSTOMIZING_SUFFIX.sub("", url).rstrip("/")


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    """Settings shared by the resolver, the cache URL builder and the PDF extractor."""

    external_base_url: str = "http://localhost"
    delivery_path: str = DEFAULT_DELIVERY_PATH
    bad_path_marker: str = DEFAULT_BAD_PATH_MARKER
    plugin_download_path: str = DEFAULT_PLUGIN_DOWNLOAD_PATH
    remote_timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS
    max_ai_pages: int = DEFAULT_MAX_AI_PAGES

    def __post_init__(self) -> None:
        """Normalize URL parts and reject unusable limits."""
        base_url = normalize_base_url(self.external_base_url)
        if not base_url:
            raise ConfigurationError("external_base_url", "must not be empty.")
        if self.remote_timeout_seconds <= 0:
            raise ConfigurationError("remote_timeout_seconds", "must be > 0.")
        if self.max_ai_pages < 1:
            raise ConfigurationError("max_ai_pages", "must be >= 1.")
        object.__setattr__(self, "external_base_url", base_url)
        object.__setattr__(self, "delivery_path", self.delivery_path.strip("/"))
        object.__setattr__(self, "plugin_download_path", self.plugin_download_path.strip("/"))

    @property
    def delivery_base_url(self) -> str:
        """Return ``<external_base_url>/<delivery_path>``."""
        return f"{self.external_base_url}/{self.delivery_path}"

    def to_dict(self) -> dict[str, object]:
        """Serialize ResolverConfig to a plain dictionary."""
        return {
            "external_base_url": self.external_base_url,
            "delivery_path": self.delivery_path,
            "bad_path_marker": self.bad_path_marker,
            "plugin_download_path": self.plugin_download_path,
            "remote_timeout_seconds": self.remote_timeout_seconds,
            "max_ai_pages": self.max_ai_pages,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> ResolverConfig:
        """Deserialize ResolverConfig from a plain dictionary; missing keys keep defaults."""
        kwargs: dict[str, object] = {}
        for key in ("external_base_url", "delivery_path", "bad_path_marker", "plugin_download_path"):
            if key in value:
                kwargs[key] = require_string(value[key], field_name=f"ResolverConfig.{key}")
        if "remote_timeout_seconds" in value:
            kwargs["remote_timeout_seconds"] = require_float(
                value["remote_timeout_seconds"], field_name="ResolverConfig.remote_timeout_seconds"
            )
        if "max_ai_pages" in value:
            kwargs["max_ai_pages"] = require_int(value["max_ai_pages"], field_name="ResolverConfig.max_ai_pages")
        return cls(**kwargs)  # type: ignore[arg-type]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ResolverConfig:
        """Build a config from ``ATTACHCTX_*`` environment variables."""
        env = os.environ if environ is None else environ
        raw: dict[str, object] = {}
        names = {
            "external_base_url": "EXTERNAL_BASE_URL",
            "delivery_path": "DELIVERY_PATH",
            "bad_path_marker": "BAD_PATH_MARKER",
            "plugin_download_path": "PLUGIN_DOWNLOAD_PATH",
        }
        for key, suffix in names.items():
            text = env.get(_ENV_PREFIX + suffix)
            if text:
                raw[key] = text

        timeout = env.get(_ENV_PREFIX + "REMOTE_TIMEOUT")
        if timeout:
            try:
                raw["remote_timeout_seconds"] = float(timeout)
            except ValueError as exc:
                raise ConfigurationError("remote_timeout_seconds", f"not a number: {timeout!r}") from exc

        max_pages = env.get(_ENV_PREFIX + "MAX_AI_PAGES")
        if max_pages:
            try:
                raw["max_ai_pages"] = int(max_pages)
            except ValueError as exc:
                raise ConfigurationError("max_ai_pages", f"not an integer: {max_pages!r}") from exc
        return cls.from_dict(raw)
