"""Tests for the HTTP surface."""

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from market_pipeline.api.app import create_app
from market_pipeline.api.deps import get_hit_list_finder
from market_pipeline.config.config import Config
from market_pipeline.joiners.datasets import DatasetStore

from .conftest import make_award_row, search_page

REPORT_BODY = {
    "inputs": {"businessType": "Small Business", "naicsCode": "541330", "zipCode": "30301"},
    "selectedAgencies": ["Network Contract Office 7"],
    "selectedAgencyData": [
        {
            "id": "Veterans Health Administration|Network Contract Office 7",
            "name": "Network Contract Office 7",
            "contractingOffice": "Network Contract Office 7",
            "subAgency": "Veterans Health Administration",
            "parentAgency": "Department of Veterans Affairs",
            "location": "GA",
            "spending": 400000,
            "contractCount": 2,
        }
    ],
}


def _client(datasets, fetcher, **kwargs) -> TestClient:
    config = Config(dataset_reload_minutes=0, min_agencies_target=1)
    app = create_app(config, store=DatasetStore(datasets=datasets), fetcher=fetcher)
    return TestClient(app, **kwargs)


@pytest.fixture
def client(datasets, fetcher):
    with _client(datasets, fetcher) as c:
        yield c


# ---------------------------------------------------------------------------
# Health / validation
# ---------------------------------------------------------------------------
def test_health(client, datasets):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["datasets"] == datasets.counts()


def test_invalid_naics_is_400(client):
    response = client.post("/api/usaspending/find-agencies", json={"businessType": "Small Business", "naicsCode": "12a"})
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]


def test_missing_naics_and_psc_is_400(client):
    response = client.post("/api/usaspending/find-hit-list", json={"businessType": "Small Business"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_empty_selected_agencies_is_400(client):
    body = {**REPORT_BODY, "selectedAgencies": []}
    response = client.post("/api/reports/generate-all", json=body)
    assert response.status_code == 400
    assert "selectedAgencies" in response.json()["error"]


# ---------------------------------------------------------------------------
# Search endpoints
# ---------------------------------------------------------------------------
@respx.mock
def test_find_agencies(client, search_url, sample_award_rows):
    respx.post(search_url).mock(return_value=search_page(sample_award_rows))

    response = client.post(
        "/api/usaspending/find-agencies", json={"businessType": "Small Business", "naicsCode": "541330"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["totalCount"] == 2
    assert data["agencies"][0]["contractingOffice"]
    assert "subAgency" in data["agencies"][0]


@respx.mock
def test_upstream_failure_is_502(client, search_url):
    respx.post(search_url).mock(return_value=httpx.Response(503))

    response = client.post(
        "/api/usaspending/find-agencies", json={"businessType": "Small Business", "naicsCode": "541330"}
    )

    assert response.status_code == 502
    assert response.json()["success"] is False


@respx.mock
def test_find_hit_list(client, search_url):
    respx.post(search_url).mock(return_value=search_page([make_award_row()]))

    response = client.post("/api/usaspending/find-hit-list", json={"businessType": "Small Business", "naicsCode": "541330"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [o["source"] for o in data["opportunities"]] == ["curated", "usaspending"]
    assert data["opportunities"][1]["winProbability"] == "high"
    assert data["metadata"]["curatedCount"] == 1


@respx.mock
def test_idv_search(client, search_url):
    respx.post(search_url).mock(
        return_value=httpx.Response(
            200,
            json={
                "results": [{"Award ID": "IDV1", "Recipient Name": "Big Prime Inc", "Award Amount": 5_000_000}],
                "page_metadata": {"hasNext": False, "total": 1},
            },
        )
    )

    response = client.post("/api/idv-search", json={"naicsCode": "541330", "limit": 10})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["contracts"][0]["recipientName"] == "Big Prime Inc"
    assert data["totalCount"] == 1


# ---------------------------------------------------------------------------
# Reports / directory
# ---------------------------------------------------------------------------
@respx.mock
def test_generate_all(client, search_url):
    respx.post(search_url).mock(return_value=httpx.Response(500))

    response = client.post("/api/reports/generate-all", json=REPORT_BODY)

    assert response.status_code == 200
    report = response.json()["report"]
    assert report["metadata"]["totalAgencies"] == 1
    assert report["governmentBuyers"]["agencies"][0]["command"] == "VA"
    assert report["idvContracts"]["contracts"] == []
    assert report["decemberSpend"]["opportunities"][0]["urgencyLevel"] == "high"


def test_contractor_directory(bundled_datasets, fetcher):
    with _client(bundled_datasets, fetcher) as client:
        response = client.get("/api/contractors", params={"naics": "541330", "limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert [c["company"] for c in data["contractors"]] == ["Leidos Inc", "Jacobs Engineering Group"]
    assert data["filteredCount"] == 3
    assert data["totalCount"] == 5


def test_contractor_directory_rejects_bad_params(client):
    response = client.get("/api/contractors", params={"limit": 0})
    assert response.status_code == 400
    assert "limit" in response.json()["error"]


def test_unhandled_error_is_500(datasets, fetcher):
    class BrokenFinder:
        async def find(self, inputs):
            raise RuntimeError("boom")

    client = _client(datasets, fetcher, raise_server_exceptions=False)
    client.app.dependency_overrides[get_hit_list_finder] = lambda: BrokenFinder()

    response = client.post("/api/usaspending/find-hit-list", json={"businessType": "Small Business", "naicsCode": "541330"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
