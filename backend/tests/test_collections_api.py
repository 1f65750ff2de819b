"""
Tests for the collection endpoints
"""
import uuid
from datetime import datetime

from fastapi.testclient import TestClient

from conftest import ProjectTree, bearer, login, register


def test_requests_need_a_session(app):
    response = TestClient(app).get("/api/projects")
    assert response.status_code == 401
    assert response.json() == {
        "error": "authentication",
        "kind": "authentication",
        "message": "Please sign in again.",
    }


def test_project_gets_owner_and_defaults(client, researcher, tree):
    project = tree.project("EV Study")

    assert project["owner_id"] == str(researcher["id"])
    assert project["status"] == "active"
    assert project["description"] == ""
    assert project["owner"]["full_name"] == "Alice Example"


def test_project_needs_a_profile(client):
    register(client, "noprofile@example.com")
    headers = bearer(login(client, "noprofile@example.com"))

    response = client.post("/api/projects", json={"name": "Orphan"}, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"] == "profile_missing"


def test_lists_are_newest_first(client, researcher, tree):
    first = tree.project("First")
    second = tree.project("Second")

    rows = client.get("/api/projects", headers=researcher["headers"]).json()
    assert [r["id"] for r in rows] == [second["id"], first["id"]]


def test_project_scope_applies_through_parent_chain(client, researcher, tree):
    ev = tree.project("EV Study")
    bikes = tree.project("Bike Study")
    ev_story = tree.story(tree.interview(ev["id"])["id"])
    tree.story(tree.interview(bikes["id"])["id"], title="Buying an e-bike")
    tree.force(ev_story["id"], "push")

    stories = client.get("/api/stories", params={"project_id": ev["id"]}, headers=researcher["headers"]).json()
    assert [s["id"] for s in stories] == [ev_story["id"]]

    forces = client.get("/api/forces", params={"project_id": bikes["id"]}, headers=researcher["headers"]).json()
    assert forces == []


def test_unknown_filter_is_rejected(client, researcher):
    response = client.get("/api/forces", params={"status": "active"}, headers=researcher["headers"])
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_filter"


def test_schema_errors_are_readable(client, researcher, tree):
    project = tree.project()
    response = client.post(
        "/api/interviews",
        json={"project_id": project["id"], "participant_name": "Old", "participant_age": 120},
        headers=researcher["headers"],
    )
    assert response.status_code == 422
    assert response.json()["kind"] == "validation"
    assert response.json()["message"].startswith("participant_age:")


def test_missing_parent(client, researcher):
    response = client.post(
        "/api/interviews",
        json={"project_id": str(uuid.uuid4()), "participant_name": "Dana"},
        headers=researcher["headers"],
    )
    assert response.status_code == 404
    assert response.json()["error"] == "missing_parent"


def test_duplicate_client_id_is_a_conflict(client, researcher):
    payload = {"id": str(uuid.uuid4()), "name": "Retried"}
    assert client.post("/api/projects", json=payload, headers=researcher["headers"]).status_code == 201

    response = client.post("/api/projects", json=payload, headers=researcher["headers"])
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_id"


def test_update_refreshes_timestamp(client, researcher, tree):
    project = tree.project()
    response = client.patch(
        f"/api/projects/{project['id']}",
        json={"status": "completed"},
        headers=researcher["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert datetime.fromisoformat(body["updated_at"]) > datetime.fromisoformat(project["updated_at"])
    assert body["created_at"] == project["created_at"]


def test_update_cannot_move_rows_or_clear_required_fields(client, researcher, tree):
    project = tree.project()
    other = tree.project("Other")
    interview = tree.interview(project["id"])
    headers = researcher["headers"]

    response = client.patch(f"/api/interviews/{interview['id']}", json={"project_id": other["id"]}, headers=headers)
    assert response.status_code == 422

    response = client.patch(f"/api/projects/{project['id']}", json={"name": None}, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"] == "required"


def test_update_missing_row(client, researcher):
    response = client.patch(f"/api/stories/{uuid.uuid4()}", json={"title": "Gone"}, headers=researcher["headers"])
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_delete_is_idempotent(client, researcher, tree):
    story = tree.story(tree.interview(tree.project()["id"])["id"])
    force = tree.force(story["id"], "pull")
    headers = researcher["headers"]

    assert client.delete(f"/api/forces/{force['id']}", headers=headers).status_code == 204
    assert client.delete(f"/api/forces/{force['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/forces/{force['id']}", headers=headers).status_code == 404


def test_force_group_defaults(client, researcher, tree):
    project = tree.project()
    first = tree.group(project["id"], "Push Group 1", "push")
    leftovers = tree.group(project["id"], "Push Leftovers", "push")
    explicit = tree.group(project["id"], "Pinned", "pull", position=0)

    assert first["position"] == 0
    assert first["is_leftover"] is False
    assert first["color"] == "#3B82F6"
    assert leftovers["position"] == 1
    assert leftovers["is_leftover"] is True

    rows = client.get("/api/force_groups", params={"project_id": project["id"]}, headers=researcher["headers"]).json()
    assert [g["name"] for g in rows] == ["Push Group 1", "Pinned", "Push Leftovers"]
    assert explicit["position"] == 0


def test_group_assignment_rules(client, researcher, tree):
    project = tree.project()
    elsewhere = tree.project("Elsewhere")
    story = tree.story(tree.interview(project["id"])["id"])
    push_group = tree.group(project["id"], "Cost", "push")
    pull_group = tree.group(project["id"], "Comfort", "pull")
    foreign_group = tree.group(elsewhere["id"], "Cost", "push")
    headers = researcher["headers"]

    push = tree.force(story["id"], "push", group_id=push_group["id"])
    assert push["group_id"] == push_group["id"]

    habit = tree.force(story["id"], "habit", "Used to refuelling")
    response = client.patch(f"/api/forces/{habit['id']}", json={"group_id": push_group["id"]}, headers=headers)
    assert response.json()["error"] == "ungroupable_force"

    response = client.patch(f"/api/forces/{push['id']}", json={"group_id": pull_group["id"]}, headers=headers)
    assert response.json()["error"] == "group_type_mismatch"

    response = client.patch(f"/api/forces/{push['id']}", json={"group_id": foreign_group["id"]}, headers=headers)
    assert response.json()["error"] == "cross_project"

    response = client.patch(f"/api/forces/{push['id']}", json={"group_id": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["group_id"] is None


def test_matrix_pair_conflict_and_project_check(client, researcher, tree):
    project = tree.project()
    elsewhere = tree.project("Elsewhere")
    story = tree.story(tree.interview(project["id"])["id"])
    group = tree.group(project["id"], "Cost", "push")
    foreign_group = tree.group(elsewhere["id"], "Cost", "push")
    headers = researcher["headers"]

    entry = tree.post("story_group_matrix", {"story_id": story["id"], "group_id": group["id"], "matches": True})
    assert entry["matches"] is True

    response = client.post(
        "/api/story_group_matrix",
        json={"story_id": story["id"], "group_id": group["id"], "matches": False},
        headers=headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_matrix_entry"

    response = client.post(
        "/api/story_group_matrix",
        json={"story_id": story["id"], "group_id": foreign_group["id"]},
        headers=headers,
    )
    assert response.json()["error"] == "cross_project"

    # Answers can be cleared back to "skipped"
    response = client.patch(f"/api/story_group_matrix/{entry['id']}", json={"matches": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["matches"] is None


def test_team_policy_shares_everything(client, tree, other_researcher):
    project = tree.project()
    headers = other_researcher["headers"]

    rows = client.get("/api/projects", headers=headers).json()
    assert [r["id"] for r in rows] == [project["id"]]
    response = client.post("/api/interviews", json={"project_id": project["id"], "participant_name": "Eve"},
                           headers=headers)
    assert response.status_code == 201


def test_owner_policy_isolates_projects(client, tree, other_researcher, owner_policy):
    project = tree.project()
    interview = tree.interview(project["id"])
    bob = ProjectTree(client, other_researcher["headers"])
    headers = other_researcher["headers"]

    assert client.get("/api/projects", headers=headers).json() == []
    assert client.get("/api/interviews", headers=headers).json() == []
    assert client.get(f"/api/projects/{project['id']}", headers=headers).status_code == 404
    assert client.patch(f"/api/interviews/{interview['id']}", json={"context": "x"},
                        headers=headers).status_code == 404

    response = client.post("/api/interviews", json={"project_id": project["id"], "participant_name": "Eve"},
                           headers=headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "authorization"

    # Deleting an invisible row does nothing
    assert client.delete(f"/api/projects/{project['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/projects/{project['id']}", headers=tree.headers).status_code == 200

    own = bob.project("Bob's own")
    assert [r["id"] for r in client.get("/api/projects", headers=headers).json()] == [own["id"]]


def test_health_and_metrics(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["components"]["database"]["status"] == "healthy"
    assert health.json()["access_policy"] == "team"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "jtbd_collection_writes_total" in metrics.text
