"""Tests for shelves, their associations and the conjoint configuration."""

from __future__ import annotations


class TestShelves:
    def test_create_empty_shelf(self, auth_client):
        response = auth_client.post(
            "/api/shelves", json={"project_name": "Snack Aisle", "description": "Q3 test"}
        )
        assert response.status_code == 200
        shelf = response.json()
        assert shelf["project_name"] == "Snack Aisle"
        assert shelf["metrics"] == {"total_combinations": 1, "minimum_sample_size": 30}

    def test_project_name_required(self, auth_client):
        assert auth_client.post("/api/shelves", json={"project_name": ""}).status_code == 422

    def test_detail_lists_linked_items_in_order(self, auth_client, make_product, make_persona, make_question, make_shelf):
        first = make_product(product_name="First", price_levels=3)
        second = make_product(product_name="Second", price_levels=3)
        persona = make_persona()
        question = make_question()
        shelf = make_shelf(
            products=[second["id"], first["id"]],
            personas=[persona["id"]],
            questions=[question["id"]],
        )

        detail = auth_client.get(f"/api/shelves/{shelf['id']}").json()
        assert [p["product_name"] for p in detail["products"]] == ["Second", "First"]
        assert [p["id"] for p in detail["personas"]] == [persona["id"]]
        assert [q["id"] for q in detail["questions"]] == [question["id"]]
        assert detail["metrics"] == {"total_combinations": 9, "minimum_sample_size": 270}

    def test_linking_replaces_previous_links(self, auth_client, make_product, make_shelf):
        first = make_product()
        second = make_product()
        shelf = make_shelf(products=[first["id"], second["id"]])

        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/products", json={"product_ids": [second["id"]]}
        )
        assert [link["product_id"] for link in response.json()] == [second["id"]]

        products = auth_client.get(f"/api/shelves/{shelf['id']}/products").json()
        assert [p["id"] for p in products] == [second["id"]]

    def test_duplicate_ids_are_linked_once(self, auth_client, make_product, make_shelf):
        product = make_product(price_levels=3)
        shelf = make_shelf()

        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/products", json={"product_ids": [product["id"], product["id"]]}
        )
        assert [link["product_id"] for link in response.json()] == [product["id"]]
        assert auth_client.get(f"/api/shelves/{shelf['id']}").json()["metrics"]["total_combinations"] == 3

        config = auth_client.post(
            f"/api/shelves/{shelf['id']}/conjoint-configuration", json={"price_levels": 4}
        ).json()
        assert config["combination_count"] == 4

    def test_list_only_own_active_shelves(self, auth_client, other_client, make_shelf):
        mine = make_shelf(project_name="Mine")
        gone = make_shelf(project_name="Gone")
        other_client.post("/api/shelves", json={"project_name": "Theirs"})
        auth_client.delete(f"/api/shelves/{gone['id']}")

        names = [s["project_name"] for s in auth_client.get("/api/shelves").json()]
        assert names == [mine["project_name"]]

    def test_other_users_shelf_is_forbidden(self, auth_client, other_client, make_shelf, make_product):
        shelf = make_shelf()
        product = make_product()

        assert other_client.get(f"/api/shelves/{shelf['id']}").status_code == 403
        response = other_client.post(
            f"/api/shelves/{shelf['id']}/products", json={"product_ids": [product["id"]]}
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Unauthorized"
        assert other_client.delete(f"/api/shelves/{shelf['id']}").status_code == 403

    def test_unknown_shelf(self, auth_client):
        response = auth_client.get("/api/shelves/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Shelf not found"


class TestConjointConfiguration:
    def test_no_configuration_yet(self, auth_client, make_shelf):
        shelf = make_shelf()
        response = auth_client.get(f"/api/shelves/{shelf['id']}/conjoint-configuration")
        assert response.status_code == 200
        assert response.json() is None

    def test_save_and_read_latest(self, auth_client, make_product, make_shelf):
        shelf = make_shelf(products=[make_product()["id"], make_product()["id"]])
        url = f"/api/shelves/{shelf['id']}/conjoint-configuration"

        saved = auth_client.post(url, json={"price_levels": 4}).json()
        assert saved["combination_count"] == 16
        assert saved["estimated_duration"] == 480

        auth_client.post(url, json={"price_levels": 2})
        latest = auth_client.get(url).json()
        assert latest["price_levels"] == 2
        assert latest["combination_count"] == 4

    def test_invalid_levels(self, auth_client, make_product, make_shelf):
        shelf = make_shelf(products=[make_product()["id"]])
        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/conjoint-configuration", json={"price_levels": 1}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Price levels must be between 2 and 5"

    def test_empty_shelf(self, auth_client, make_shelf):
        shelf = make_shelf()
        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/conjoint-configuration", json={"price_levels": 3}
        )
        assert response.status_code == 400
        assert "at least one product" in response.json()["detail"]


class TestPriceVariants:
    def test_five_variants_per_product(self, auth_client, make_product, make_shelf):
        product = make_product(list_price=10.0)
        shelf = make_shelf(products=[product["id"]])

        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/variants",
            json={"products": [{"product_id": product["id"], "min_price_percent": -20, "max_price_percent": 20}]},
        )
        assert response.status_code == 200
        lineups = [v["product_lineup"] for v in response.json()]
        assert lineups == [
            [{"product_id": product["id"], "price": price}]
            for price in (800, 900, 1000, 1100, 1200)
        ]

    def test_unknown_product(self, auth_client, make_shelf):
        shelf = make_shelf()
        response = auth_client.post(
            f"/api/shelves/{shelf['id']}/variants",
            json={"products": [{"product_id": 999, "min_price_percent": -10, "max_price_percent": 10}]},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Product 999 not found"


class TestPanelists:
    def test_synthetic_panelists_are_my_personas(self, auth_client, other_client, make_persona):
        persona = make_persona(name="Mine", demographics={"1": 30})
        other_client.post("/api/personas", json={"name": "Theirs"})

        panelists = auth_client.get("/api/panelists/synthetic").json()
        assert panelists == [
            {"id": persona["id"], "name": "Mine", "type": "SYNTHETIC", "demographics": {"1": 30}}
        ]

    def test_human_panelists(self, auth_client):
        assert auth_client.get("/api/panelists/HUMAN").json() == []

    def test_invalid_kind(self, auth_client):
        response = auth_client.get("/api/panelists/robots")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid panelist type"
