"""
Shared fixtures: a fake analysis service behind httpx.MockTransport.
"""
import json
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from datanova.core.storage import InMemoryStorage
from datanova.core.performance import PerformanceMonitor
from datanova.services.client import AnalysisClient
from datanova.services.session import SessionStore
from datanova.services.upload import UploadCoordinator

SERVICE_URL = "http://analysis.test"
UPLOADED_AT = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

# 1x1 transparent PNG
PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="

SALES_CSV = b"Date,Region,CustomerName,Sales,Units\n2024-01-01,North,Acme,1200.5,3\n2024-01-02,South,Globex,980.0,2\n"


def analysis_payload(**overrides) -> Dict[str, Any]:
    """A complete upload response for sales.csv."""
    payload = {
        "columns": ["Date", "Region", "CustomerName", "Sales", "Units"],
        "row_count": 5000,
        "column_count": 5,
        "column_types": {
            "numeric": ["Sales", "Units"],
            "categorical": ["Region", "CustomerName"],
        },
        "summary": "Sales grew 12% quarter over quarter, led by the North region.",
        "insights": ["North is the top region", "Units and Sales are strongly correlated"],
        "resources": [{"title": "Reading sales trends", "url": "https://example.com/trends"}],
        "head": [
            {"Date": "2024-01-01", "Region": "North", "CustomerName": "Acme", "Sales": 1200.5, "Units": 3},
            {"Date": "2024-01-02", "Region": "South", "CustomerName": "Globex", "Sales": 980.0, "Units": 2},
        ],
        "stats": {"total_sales": 1523400.25, "missing_values": 0},
    }
    payload.update(overrides)
    return payload


def regeneration_payload(summary: str = "Executive brief: revenue is up 12%.") -> Dict[str, Any]:
    """A regeneration response that only carries refreshed narrative fields."""
    return {
        "summary": summary,
        "insights": ["Revenue up 12%", "North leads growth"],
    }


class FakeAnalysisService:
    """
    Stand-in for the remote service.

    Set `status` to answer with an HTTP error, `error` to raise a transport
    error, or `gate` to hold requests until the event is set.
    """

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self.analyze_response: Any = analysis_payload()
        self.regenerate_responses: List[Any] = [regeneration_payload()]
        self.visualize_response: Any = {"image_url": f"data:image/png;base64,{PNG_BASE64}"}
        self.status: Optional[int] = None
        self.error: Optional[Exception] = None
        self.raw_body: Optional[bytes] = None
        self.gate: Optional[asyncio.Event] = None

    def calls_to(self, kind: str) -> List[httpx.Request]:
        return [call for call in self.calls if self.kind_of(call) == kind]

    @staticmethod
    def kind_of(request: httpx.Request) -> str:
        if request.url.path == "/visualize":
            return "visualize"
        if request.headers.get("content-type", "").startswith("multipart/form-data"):
            return "upload"
        return "regenerate"

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        kind = self.kind_of(request)

        # Pick the body on arrival so held requests keep their own response
        if kind == "upload":
            body = self.analyze_response
        elif kind == "regenerate":
            index = min(len(self.calls_to("regenerate")) - 1, len(self.regenerate_responses) - 1)
            body = self.regenerate_responses[index]
        else:
            body = self.visualize_response

        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.status is not None:
            return httpx.Response(self.status, json={"detail": "service error"})
        if self.raw_body is not None:
            return httpx.Response(200, content=self.raw_body, headers={"content-type": "text/html"})

        return httpx.Response(200, content=json.dumps(body).encode(), headers={"content-type": "application/json"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def clear_metrics():
    PerformanceMonitor.clear_metrics()
    yield


@pytest.fixture
def service():
    return FakeAnalysisService()


@pytest.fixture
def analysis_client(service):
    return AnalysisClient(SERVICE_URL, timeout=5.0, transport=service.transport)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage):
    return SessionStore(storage)


@pytest.fixture
def uploader(store, analysis_client):
    return UploadCoordinator(store, analysis_client, clock=lambda: UPLOADED_AT)
