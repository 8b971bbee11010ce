"""
HTTP client for the remote DataNova analysis service.

This is the only module that talks to the network. httpx errors never leave
it: transport and HTTP-level problems become TransportFailure, bodies that are
not JSON become MalformedResponse.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from datanova.core.config import Settings
from datanova.core.errors import MalformedResponse, TransportFailure
from datanova.core.performance import track_performance
from datanova.core.sanitization import sanitize_for_logging
from datanova.core.schemas import ChartImage, ChartRequest, SummaryParams

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/analyze"
VISUALIZE_PATH = "/visualize"


class AnalysisClient:
    """
    Async client for the analyze / regenerate / visualize endpoints.

    A fresh httpx.AsyncClient is opened per call; pass `transport` to route
    calls somewhere other than the network (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AnalysisClient":
        return cls(settings.api_base_url, float(settings.request_timeout_seconds), transport=transport)

    async def _post(self, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, **kwargs)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"Analysis service returned HTTP {status} for {path}")
            raise TransportFailure(f"The service answered with HTTP {status}.", upstream_status=status) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Analysis service timed out after {self.timeout}s for {path}")
            raise TransportFailure("The service took too long to answer.") from e
        except httpx.HTTPError as e:
            logger.warning(f"Analysis service unreachable for {path}: {sanitize_for_logging(str(e))}")
            raise TransportFailure("The service could not be reached.") from e

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Analysis service sent a non-JSON body for {path}")
            raise MalformedResponse("The response body was not JSON.") from e

    @track_performance("service_upload")
    async def analyze_file(
        self,
        file_name: str,
        content: bytes,
        params: Optional[SummaryParams] = None,
    ) -> Any:
        """Upload a raw file for analysis."""
        files = {"file": (file_name, content, "text/csv")}
        data = params.as_form() if params else None
        return await self._post(ANALYZE_PATH, files=files, data=data)

    @track_performance("service_regenerate")
    async def regenerate(self, existing: Dict[str, Any], params: SummaryParams) -> Any:
        """Ask for a new summary of an already analyzed dataset."""
        body = {"existingData": existing, **params.as_form()}
        return await self._post(ANALYZE_PATH, json=body)

    @track_performance("service_visualize")
    async def visualize(self, request: ChartRequest, existing: Dict[str, Any]) -> ChartImage:
        """Request a chart image for a validated ChartRequest."""
        body = {**request.to_payload(), "data": existing}
        payload = await self._post(VISUALIZE_PATH, json=body)
        return ChartImage(chart_type=request.chart_type, ref=_image_ref(payload))


def _image_ref(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise MalformedResponse("Expected a JSON object with an image.")

    for key in ("image_url", "image"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            if value.startswith(("http://", "https://", "data:")):
                return value
            return f"data:image/png;base64,{value}"

    encoded = payload.get("image_base64")
    if isinstance(encoded, str) and encoded:
        return encoded if encoded.startswith("data:") else f"data:image/png;base64,{encoded}"

    raise MalformedResponse("The chart response did not contain an image.")
