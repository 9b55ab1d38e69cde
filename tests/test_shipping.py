"""Tests for the shipping address lookup."""


class TestCities:

    def test_prefix_match_ignores_case(self, client, external_apis):
        response = client.get("/shipping/cities", params={"region": "льв"})

        assert response.status_code == 200
        assert response.json() == ["Львів"]
        assert external_apis.address_calls[0]["calledMethod"] == "getCities"
        assert external_apis.address_calls[0]["apiKey"] == "test-api-key"

    def test_no_match(self, client):
        assert client.get("/shipping/cities", params={"region": "Одеса"}).json() == []

    def test_region_required(self, client):
        assert client.get("/shipping/cities").status_code == 422


class TestBranches:

    def test_post_offices(self, client, external_apis):
        response = client.get("/shipping/branches", params={"branch": "Львів", "type": "Відділення"})

        assert response.json() == [
            "Відділення №1: вул. Городоцька, 1",
            "Відділення №2: вул. Личаківська, 20",
        ]
        call = external_apis.address_calls[0]
        assert call["calledMethod"] == "getWarehouses"
        assert call["methodProperties"]["CityName"] == "Львів"

    def test_parcel_lockers(self, client):
        response = client.get("/shipping/branches", params={"branch": "Львів", "type": "Поштомат"})

        assert response.json() == ["Поштомат №100: вул. Зелена, 5"]


class TestUpstreamFailure:

    def test_api_reports_failure(self, client, external_apis):
        external_apis.address_success = False

        response = client.get("/shipping/cities", params={"region": "Льв"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Address lookup failed: getCities"
