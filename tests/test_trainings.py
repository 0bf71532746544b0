"""
Training plan API tests: visibility is admin-only, the delete authorization
matrix, public listing and its cache.
"""
from uuid import uuid4

PLAN = {
    "trainingName": "Leg Day",
    "category": "Cardio",
    "trainingPlan": [
        {"exerciseName": "Squat", "sets": [{"repetitions": 10}, {"repetitions": 8}], "restTime": 90},
    ],
}


def _create(client, **fields):
    response = client.post("/api/v1/training", json={**PLAN, **fields})
    assert response.status_code == 200, response.text
    return response.json()["training"]


def _publish(admin, training_id, is_public=True):
    return admin.patch(f"/api/v1/training/{training_id}", json={"isPublic": is_public})


class TestCreate:

    def test_create_normalizes(self, alice):
        training = _create(alice)
        assert training["trainingName"] == "leg day"
        assert training["category"] == "cardio"
        assert training["isPublic"] is False
        assert training["trainingPlan"][0]["exerciseName"] == "Squat"
        assert training["trainingPlan"][0]["sets"] == [{"repetitions": 10}, {"repetitions": 8}]

    def test_missing_fields(self, alice):
        response = alice.post("/api/v1/training", json={"trainingName": "x", "category": "cardio"})
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide all required fields."

    def test_unknown_category(self, alice):
        response = alice.post("/api/v1/training", json={**PLAN, "category": "yoga"})
        assert response.status_code == 400

    def test_exercise_needs_name(self, alice):
        response = alice.post("/api/v1/training", json={**PLAN, "trainingPlan": [{"sets": []}]})
        assert response.status_code == 400
        assert response.json()["message"] == "Exercise name is required for each workout."

    def test_non_admin_cannot_create_public(self, alice):
        response = alice.post("/api/v1/training", json={**PLAN, "isPublic": True})
        assert response.status_code == 403

    def test_admin_can_create_public(self, admin):
        assert _create(admin, isPublic=True)["isPublic"] is True


class TestList:

    def test_empty_list_is_404(self, alice):
        response = alice.get("/api/v1/training")
        assert response.status_code == 404
        assert response.json()["message"] == "No training found for this user"

    def test_own_list(self, alice, bobby):
        _create(alice)
        _create(bobby, trainingName="Arms")
        body = alice.get("/api/v1/training").json()
        assert body["totalData"] == 1
        assert body["trainingData"][0]["trainingName"] == "leg day"

    def test_public_list_reflects_publish(self, alice, bobby, admin):
        training = _create(alice)

        before = bobby.get("/api/v1/training/public").json()
        assert before["totalData"] == 0

        assert _publish(admin, training["id"]).status_code == 200

        after = bobby.get("/api/v1/training/public").json()
        assert "from cache" not in after["message"]
        assert [t["id"] for t in after["trainingData"]] == [training["id"]]

    def test_owner_list_sees_visibility_change(self, alice, admin):
        training = _create(alice)
        alice.get("/api/v1/training")
        _publish(admin, training["id"])
        data = alice.get("/api/v1/training").json()["trainingData"]
        assert data[0]["isPublic"] is True

    def test_public_list_requires_auth(self, client):
        assert client.get("/api/v1/training/public").status_code == 401


class TestVisibility:

    def test_non_admin_forbidden_even_for_own_plan(self, alice):
        training = _create(alice)
        response = _publish(alice, training["id"])
        assert response.status_code == 403

    def test_non_admin_forbidden_before_lookup(self, alice):
        assert _publish(alice, str(uuid4())).status_code == 403

    def test_admin_missing_plan_is_404(self, admin):
        assert _publish(admin, str(uuid4())).status_code == 404

    def test_admin_unpublish(self, alice, admin):
        training = _create(alice)
        _publish(admin, training["id"])
        response = _publish(admin, training["id"], is_public=False)
        assert response.status_code == 200
        assert response.json()["training"]["isPublic"] is False

    def test_is_public_required(self, admin, alice):
        training = _create(alice)
        assert admin.patch(f"/api/v1/training/{training['id']}", json={}).status_code == 400


class TestDelete:

    def test_owner_deletes_private(self, alice):
        training = _create(alice)
        assert alice.delete(f"/api/v1/training/{training['id']}").status_code == 200
        assert alice.get("/api/v1/training").status_code == 404

    def test_stranger_cannot_delete_private(self, alice, bobby):
        training = _create(alice)
        assert bobby.delete(f"/api/v1/training/{training['id']}").status_code == 403

    def test_admin_cannot_delete_someone_elses_private(self, alice, admin):
        training = _create(alice)
        assert admin.delete(f"/api/v1/training/{training['id']}").status_code == 403

    def test_owner_cannot_delete_public(self, alice, admin):
        training = _create(alice)
        _publish(admin, training["id"])
        response = alice.delete(f"/api/v1/training/{training['id']}")
        assert response.status_code == 403
        assert response.json()["message"] == "Only an admin can delete a public training plan"

    def test_admin_deletes_public(self, alice, bobby, admin):
        training = _create(alice)
        _publish(admin, training["id"])
        bobby.get("/api/v1/training/public")

        assert admin.delete(f"/api/v1/training/{training['id']}").status_code == 200
        assert bobby.get("/api/v1/training/public").json()["totalData"] == 0

    def test_missing_is_404_not_403(self, bobby):
        assert bobby.delete(f"/api/v1/training/{uuid4()}").status_code == 404
