"""Tests for persona management and per-variant persona simulation."""

from __future__ import annotations

from sqlmodel import select

from shelfsim.models import Respondent, SurveyResponse


class TestPersonas:
    def test_create_with_question_snapshot(self, make_persona, make_question):
        question = make_question(question="Household size", answer_type="SINGLE", options=["1", "2+"])
        persona = make_persona(
            demographics={str(question["id"]): "2+"},
            questions=[{
                "id": question["id"],
                "question": "Household size",
                "answer_type": "SINGLE",
                "options": ["1", "2+"],
            }],
        )
        assert persona["status"] == "ACTIVE"
        assert persona["demand_spaces"] == ["Lunchbox", "Movie night"]
        assert persona["questions"][0]["options"] == ["1", "2+"]

    def test_list_newest_first_without_deleted(self, auth_client, make_persona):
        first = make_persona(name="First")
        second = make_persona(name="Second")
        gone = make_persona(name="Gone")
        auth_client.put(f"/api/personas/{gone['id']}/delete")

        names = [p["name"] for p in auth_client.get("/api/personas").json()]
        assert names == [second["name"], first["name"]]

    def test_update(self, auth_client, make_persona):
        persona = make_persona()
        response = auth_client.put(
            f"/api/personas/{persona['id']}", json={"name": "Renamed", "demand_spaces": ["Gym"]}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["demand_spaces"] == ["Gym"]
        assert response.json()["demographic_screener"] == "Parent of two"

    def test_only_owner_can_change(self, other_client, make_persona):
        persona = make_persona()
        assert other_client.put(f"/api/personas/{persona['id']}", json={"name": "Mine"}).status_code == 403
        assert other_client.put(f"/api/personas/{persona['id']}/delete").status_code == 403

    def test_delete(self, auth_client, make_persona):
        persona = make_persona()
        response = auth_client.put(f"/api/personas/{persona['id']}/delete")
        assert response.status_code == 200
        assert response.json()["status"] == "DELETED"

    def test_unknown_persona(self, auth_client):
        response = auth_client.put("/api/personas/999", json={"name": "x"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Persona not found"


class TestGenerateDemographics:
    def test_requires_active_questions(self, auth_client):
        response = auth_client.post(
            "/api/personas/generate-demographics", json={"description": "Young urban shopper"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "No active questions found in the system"

    def test_returns_answers_and_questions(self, auth_client, make_question, simulator):
        question = make_question()
        simulator.demographics = {str(question["id"]): 27}

        response = auth_client.post(
            "/api/personas/generate-demographics", json={"description": "Young urban shopper"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["demographics"] == {str(question["id"]): 27}
        assert [q["id"] for q in body["questions"]] == [question["id"]]
        assert ("generate_demographics", "Young urban shopper") in simulator.calls


class TestSimulatePersona:
    def test_one_response_per_variant(self, auth_client, survey_shelf, session):
        shelf_id = survey_shelf["shelf"]["id"]
        persona_id = survey_shelf["persona"]["id"]
        auth_client.post(f"/api/shelves/{shelf_id}/create-survey")
        auth_client.post(f"/api/shelves/{shelf_id}/create-survey")

        response = auth_client.post(
            f"/api/personas/{persona_id}/simulate", json={"shelf_id": shelf_id}
        )
        assert response.status_code == 200
        responses = response.json()
        assert len(responses) == 2
        nuts = survey_shelf["products"][1]
        assert all(r["selected_product_id"] == nuts["id"] for r in responses)
        assert all(r["selected_price"] == 2000 for r in responses)

        respondent = session.get(Respondent, responses[0]["respondent_id"])
        assert respondent.persona_id == persona_id
        assert respondent.type.value == "SYNTHETIC"

    def test_other_users_shelf(self, auth_client, other_client, survey_shelf, session):
        auth_client.post(f"/api/shelves/{survey_shelf['shelf']['id']}/create-survey")
        persona = other_client.post("/api/personas", json={"name": "Theirs"}).json()

        response = other_client.post(
            f"/api/personas/{persona['id']}/simulate",
            json={"shelf_id": survey_shelf["shelf"]["id"]},
        )
        assert response.status_code == 403
        assert session.exec(select(SurveyResponse)).all() == []

    def test_shelf_without_variants(self, auth_client, survey_shelf):
        response = auth_client.post(
            f"/api/personas/{survey_shelf['persona']['id']}/simulate",
            json={"shelf_id": survey_shelf["shelf"]["id"]},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No shelf variants found for the given shelf"

    def test_model_failure_stores_nothing(self, auth_client, survey_shelf, simulator, session):
        shelf_id = survey_shelf["shelf"]["id"]
        auth_client.post(f"/api/shelves/{shelf_id}/create-survey")
        simulator.fail = True

        response = auth_client.post(
            f"/api/personas/{survey_shelf['persona']['id']}/simulate", json={"shelf_id": shelf_id}
        )
        assert response.status_code == 502
        assert session.exec(select(SurveyResponse)).all() == []
        assert session.exec(select(Respondent)).all() == []
