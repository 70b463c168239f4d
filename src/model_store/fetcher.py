"""Model fetchers: obtain raw model JSON from a URL or a local file.

Fetchers only fetch and decode. Validation, caching and fallback live in
:class:`src.model_store.model_loader.ModelStore`.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from src.data_layer.exceptions import ModelFetchError, ModelParseError


class ModelFetcher(ABC):
    """Abstraction for retrieving raw model JSON."""

    @abstractmethod
    def fetch(self, source: str) -> Dict[str, Any]:
        """Return the decoded model JSON object found at *source*.

        Raises:
            ModelFetchError: If the source cannot be reached or read
            ModelParseError: If the payload is not a JSON object
        """
        ...


def _require_object(payload: Any, source: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ModelParseError(
            f"Model JSON from {source} must be an object, got {type(payload).__name__}",
            context={"source": source},
        )
    return payload


class HttpModelFetcher(ModelFetcher):
    """Fetch model JSON over HTTP(S).

    Usage:
        fetcher = HttpModelFetcher()
        raw = fetcher.fetch("https://example.com/static/data/js_model_data.json")
    """

    def __init__(self, timeout: float = 10, session: Optional[requests.Session] = None):
        """Initialize HTTP fetcher.

        Args:
            timeout: Request timeout in seconds
            session: Optional requests session (connection reuse, tests)
        """
        self.timeout = timeout
        self.session = session

    def fetch(self, source: str) -> Dict[str, Any]:
        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(source, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise ModelFetchError(source, "Model request timed out")
        except requests.exceptions.ConnectionError:
            raise ModelFetchError(source, "Failed to connect to model server")
        except requests.exceptions.RequestException as e:
            raise ModelFetchError(source, f"Request failed: {e}")

        if response.status_code != 200:
            raise ModelFetchError(
                source,
                f"Failed to load model: status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ModelParseError(
                f"Model response is not valid JSON: {e}", context={"source": source}
            ) from e
        return _require_object(payload, source)


class LocalFileFetcher(ModelFetcher):
    """Read model JSON bundled on disk."""

    def fetch(self, source: str) -> Dict[str, Any]:
        path = Path(source)
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except FileNotFoundError:
            raise ModelFetchError(source, f"Model file not found: {path}")
        except OSError as e:
            raise ModelFetchError(source, f"Cannot read model file: {e}")
        except json.JSONDecodeError as e:
            raise ModelParseError(
                f"Model file is not valid JSON: {e}", context={"source": source}
            ) from e
        return _require_object(payload, source)


class SourceDispatchFetcher(ModelFetcher):
    """Route http(s) sources to HTTP and everything else to the filesystem."""

    def __init__(self,
                 http: Optional[ModelFetcher] = None,
                 local: Optional[ModelFetcher] = None):
        self.http = http or HttpModelFetcher()
        self.local = local or LocalFileFetcher()

    def fetch(self, source: str) -> Dict[str, Any]:
        if source.startswith(("http://", "https://")):
            return self.http.fetch(source)
        return self.local.fetch(source)
