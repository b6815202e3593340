"""Tests for the eTenders client and its display helpers (requests mocked)."""

from datetime import date
from unittest.mock import patch, MagicMock
from urllib.parse import parse_qs

import pytest
import requests

from yewa.tenders.client import (
    build_release_params, map_province, fetch_releases, get_tender_by_ocid, search_tenders,
    format_currency, format_date, status_badge_variant, TenderApiError, TenderTimeoutError,
)


def _resp(status=200, payload=None, text=""):
    r = MagicMock()
    r.status_code = status
    if payload is None:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = payload
    r.text = text
    return r


def _upstream(status=200, payload=None):
    r = MagicMock()
    r.status_code = status
    r.ok = status < 400
    r.reason = "OK" if r.ok else "Service Unavailable"
    r.json.return_value = payload
    return r


class TestParams:
    def test_window_and_paging(self):
        params = build_release_params(2, 50, today=date(2026, 10, 19))
        assert params == {"PageNumber": 2, "PageSize": 50,
                          "dateFrom": "2026-07-21", "dateTo": "2026-10-19"}

    def test_province_mapped(self):
        params = build_release_params(province="gauteng", today=date(2026, 10, 19))
        assert params["province"] == "Gauteng"

    def test_all_province_omitted(self):
        assert "province" not in build_release_params(province="all")
        assert map_province(None) is None

    def test_unknown_province_passed_through(self):
        assert map_province("Atlantis") == "Atlantis"


class TestInProcessRelay:
    @pytest.fixture(autouse=True)
    def _no_external_relay(self, monkeypatch):
        monkeypatch.delenv("ETENDERS_PROXY_URL", raising=False)

    @patch("yewa.tenders.client.requests.post")
    @patch("yewa.api.proxies.requests.get")
    def test_calls_upstream_directly(self, mock_get, mock_post):
        mock_get.return_value = _upstream(payload={"releases": [{"ocid": "x"}]})
        assert fetch_releases(province="gauteng")["releases"] == [{"ocid": "x"}]
        url = mock_get.call_args.args[0]
        assert url.startswith("https://ocds-api.etenders.gov.za/api/OCDSReleases?")
        assert parse_qs(url.split("?", 1)[1])["province"] == ["Gauteng"]
        assert mock_get.call_args.kwargs["timeout"] == 30
        mock_post.assert_not_called()

    @patch("yewa.api.proxies.requests.get", side_effect=requests.exceptions.Timeout())
    def test_timeout_is_distinct(self, _):
        with pytest.raises(TenderTimeoutError, match="30 seconds"):
            fetch_releases()

    @patch("yewa.api.proxies.requests.get")
    def test_upstream_status_error(self, mock_get):
        mock_get.return_value = _upstream(status=503)
        with pytest.raises(TenderApiError, match="503") as exc:
            fetch_releases()
        assert not isinstance(exc.value, TenderTimeoutError)

    @patch("yewa.api.proxies.requests.get")
    def test_non_object_body(self, mock_get):
        mock_get.return_value = _upstream(payload=[1, 2])
        with pytest.raises(TenderApiError):
            fetch_releases()

    @patch("yewa.api.proxies.requests.get")
    def test_by_ocid(self, mock_get):
        mock_get.return_value = _upstream(payload={"releases": [{"ocid": "ocds-1/x"}]})
        assert get_tender_by_ocid("ocds-1/x")["ocid"] == "ocds-1/x"
        assert mock_get.call_args.args[0].endswith("/api/OCDSReleases/release/ocds-1%2Fx")


class TestExternalRelay:
    @pytest.fixture(autouse=True)
    def _external_relay(self, monkeypatch):
        monkeypatch.setenv("ETENDERS_PROXY_URL", "https://relay.example/etenders-proxy")

    @patch("yewa.tenders.client.requests.post")
    def test_success_goes_through_relay(self, mock_post):
        mock_post.return_value = _resp(payload={"releases": [{"ocid": "x"}]})
        data = fetch_releases(province="gauteng")
        assert data["releases"] == [{"ocid": "x"}]
        assert mock_post.call_args.args[0] == "https://relay.example/etenders-proxy"
        body = mock_post.call_args.kwargs["json"]
        assert body["path"] == "/api/OCDSReleases"
        qs = parse_qs(body["params"])
        assert qs["PageSize"] == ["2000"]
        assert qs["province"] == ["Gauteng"]
        assert mock_post.call_args.kwargs["timeout"] == 30

    @patch("yewa.tenders.client.requests.post")
    def test_missing_releases_key_defaults_empty(self, mock_post):
        mock_post.return_value = _resp(payload={"publisher": {}})
        assert fetch_releases()["releases"] == []

    @patch("yewa.tenders.client.requests.post", side_effect=requests.exceptions.Timeout())
    def test_timeout_is_distinct(self, _):
        with pytest.raises(TenderTimeoutError):
            fetch_releases()

    @patch("yewa.tenders.client.requests.post",
           side_effect=requests.exceptions.ConnectionError("refused"))
    def test_network_error(self, _):
        with pytest.raises(TenderApiError) as exc:
            fetch_releases()
        assert not isinstance(exc.value, TenderTimeoutError)

    @patch("yewa.tenders.client.requests.post")
    def test_relay_error_body(self, mock_post):
        mock_post.return_value = _resp(500, {"error": "API request failed: 503"})
        with pytest.raises(TenderApiError, match="503"):
            fetch_releases()

    @patch("yewa.tenders.client.requests.post")
    def test_error_body_with_200(self, mock_post):
        mock_post.return_value = _resp(200, {"error": "boom"})
        with pytest.raises(TenderApiError, match="boom"):
            fetch_releases()

    @patch("yewa.tenders.client.requests.post")
    def test_non_json(self, mock_post):
        mock_post.return_value = _resp(502, None, "<html>bad gateway</html>")
        with pytest.raises(TenderApiError):
            fetch_releases()

    @patch("yewa.tenders.client.requests.post")
    def test_first_release(self, mock_post):
        mock_post.return_value = _resp(payload={"releases": [{"ocid": "ocds-1/x"}]})
        assert get_tender_by_ocid("ocds-1/x")["ocid"] == "ocds-1/x"
        assert mock_post.call_args.kwargs["json"]["path"] == \
            "/api/OCDSReleases/release/ocds-1%2Fx"

    @patch("yewa.tenders.client.requests.post")
    def test_empty_package(self, mock_post):
        mock_post.return_value = _resp(payload={"releases": []})
        assert get_tender_by_ocid("missing") is None


class TestSearch:
    @patch("yewa.tenders.client.fetch_releases")
    def test_runs_pipeline(self, mock_fetch, make_release):
        mock_fetch.return_value = {"releases": [
            make_release(ocid="a", title="Water pipes"),
            make_release(ocid="b", title="Laptops"),
            make_release(ocid="c", with_tender=False),
        ]}
        result = search_tenders({"search_query": "water", "province": "all"})
        assert [r["ocid"] for r in result["items"]] == ["a"]
        mock_fetch.assert_called_once_with(province="all")


# ═══════════════════════════════════════════════════════════════════════
# Display helpers
# ═══════════════════════════════════════════════════════════════════════

class TestFormatting:
    @pytest.mark.parametrize("amount,currency,expected", [
        (1234.5, "ZAR", "R 1 234.5"),
        (1000000, None, "R 1 000 000"),
        (2500.00, "ZAR", "R 2 500"),
        (0.5, "ZAR", "R 0.5"),
        (99.99, "USD", "US$ 99.99"),
        (250, "XYZ", "XYZ 250"),
        (None, "ZAR", "R 0"),
    ])
    def test_currency(self, amount, currency, expected):
        assert format_currency(amount, currency) == expected

    def test_date(self):
        assert format_date("2026-03-05T10:00:00Z") == "5 March 2026"

    @pytest.mark.parametrize("value", [None, ""])
    def test_date_missing(self, value):
        assert format_date(value) == "Not specified"

    def test_date_unparseable_returned_raw(self):
        assert format_date("sometime soon") == "sometime soon"

    @pytest.mark.parametrize("status,variant", [
        ("active", "success"), ("Open", "success"), ("closed", "default"),
        ("complete", "default"), ("cancelled", "destructive"), ("withdrawn", "destructive"),
        ("planning", "warning"), ("pending", "warning"), ("unsuccessful", "default"),
        (None, "default"),
    ])
    def test_badge(self, status, variant):
        assert status_badge_variant(status) == variant
