"""
Contracts, project tasks and client ad hoc requests over the API
"""
from datetime import datetime, timedelta

import pytest

from crm.models import Contract, Project, Task


# =============================================================================
# CONTRACTS
# =============================================================================

@pytest.fixture
def draft_contract(client, project, admin_headers):
    response = client.post("/api/contracts", json={
        "project_id": project.id,
        "content": "Scope: five page website.",
    }, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["contract"]


def send(client, contract, admin_headers):
    response = client.post(f"/api/contracts/{contract['id']}/send", headers=admin_headers)
    assert response.status_code == 200
    return response.json()["contract"]


class TestContracts:
    def test_client_defaults_to_project_owner(self, draft_contract, active_client):
        assert draft_contract["client_id"] == active_client.id
        assert draft_contract["status"] == "draft"

    def test_project_without_client_is_refused(self, client, db_session, admin_headers):
        orphan = Project(project_name="Internal", status="active", features=[], progress=0)
        db_session.add(orphan)
        db_session.commit()

        response = client.post("/api/contracts", json={"project_id": orphan.id, "content": "x"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Project has no client to contract with"

    def test_unknown_project(self, client, admin_headers):
        response = client.post("/api/contracts", json={"project_id": 999, "content": "x"}, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"

    def test_lifecycle_send_view_sign(self, client, draft_contract, admin_headers, client_headers):
        sent = send(client, draft_contract, admin_headers)
        assert sent["status"] == "sent"
        assert sent["sent_at"] is not None

        viewed = client.get(f"/api/contracts/me/{sent['id']}", headers=client_headers).json()["contract"]
        assert viewed["status"] == "viewed"

        signed = client.post(f"/api/contracts/me/{sent['id']}/sign", headers=client_headers)
        assert signed.status_code == 200
        assert signed.json()["contract"]["status"] == "signed"
        assert signed.json()["contract"]["signed_at"] is not None

    def test_drafts_are_hidden_from_the_client(self, client, draft_contract, client_headers):
        assert client.get("/api/contracts/me", headers=client_headers).json()["contracts"] == []

        response = client.get(f"/api/contracts/me/{draft_contract['id']}", headers=client_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "CONTRACT_NOT_FOUND"

    def test_other_client_cannot_sign(self, client, draft_contract, admin_headers, other_client_headers):
        send(client, draft_contract, admin_headers)
        response = client.post(f"/api/contracts/me/{draft_contract['id']}/sign", headers=other_client_headers)
        assert response.status_code == 404

    def test_draft_cannot_be_signed(self, client, draft_contract, client_headers, db_session):
        response = client.post(f"/api/contracts/me/{draft_contract['id']}/sign", headers=client_headers)
        assert response.status_code == 404

        db_session.expire_all()
        assert db_session.get(Contract, draft_contract["id"]).status == "draft"

    def test_past_expiry_cannot_be_signed(self, client, draft_contract, admin_headers, client_headers, db_session):
        send(client, draft_contract, admin_headers)
        record = db_session.get(Contract, draft_contract["id"])
        record.expires_at = datetime.utcnow() - timedelta(days=1)
        db_session.commit()

        response = client.post(f"/api/contracts/me/{draft_contract['id']}/sign", headers=client_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "This contract has expired"

    def test_only_drafts_are_edited(self, client, draft_contract, admin_headers):
        edited = client.put(f"/api/contracts/{draft_contract['id']}", json={"content": "Scope: six pages."}, headers=admin_headers)
        assert edited.json()["contract"]["content"] == "Scope: six pages."

        send(client, draft_contract, admin_headers)
        refused = client.put(f"/api/contracts/{draft_contract['id']}", json={"content": "Scope: one page."}, headers=admin_headers)
        assert refused.status_code == 400

    def test_reminders_count_up(self, client, draft_contract, admin_headers):
        refused = client.post(f"/api/contracts/{draft_contract['id']}/remind", headers=admin_headers)
        assert refused.status_code == 400

        send(client, draft_contract, admin_headers)
        client.post(f"/api/contracts/{draft_contract['id']}/remind", headers=admin_headers)
        reminded = client.post(f"/api/contracts/{draft_contract['id']}/remind", headers=admin_headers).json()["contract"]
        assert reminded["reminder_count"] == 2
        assert reminded["last_reminder_at"] is not None

    def test_signed_contract_cannot_expire(self, client, draft_contract, admin_headers, client_headers):
        send(client, draft_contract, admin_headers)
        client.post(f"/api/contracts/me/{draft_contract['id']}/sign", headers=client_headers)

        response = client.post(f"/api/contracts/{draft_contract['id']}/expire", headers=admin_headers)
        assert response.status_code == 400

    def test_amendment_is_a_new_draft(self, client, draft_contract, admin_headers, client_headers):
        send(client, draft_contract, admin_headers)
        client.post(f"/api/contracts/me/{draft_contract['id']}/sign", headers=client_headers)

        response = client.post(
            f"/api/contracts/{draft_contract['id']}/amendment",
            json={"content": "Adds a booking page."},
            headers=admin_headers,
        )
        assert response.status_code == 201
        amendment = response.json()["contract"]
        assert amendment["parent_contract_id"] == draft_contract["id"]
        assert amendment["status"] == "draft"
        assert amendment["content"] == "Adds a booking page."

    def test_amendment_without_body_copies_content(self, client, draft_contract, admin_headers):
        response = client.post(f"/api/contracts/{draft_contract['id']}/amendment", headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["contract"]["content"] == "Scope: five page website."

    def test_delete_cancels(self, client, draft_contract, admin_headers):
        response = client.delete(f"/api/contracts/{draft_contract['id']}", headers=admin_headers)
        assert response.json()["contract"]["status"] == "cancelled"

    def test_list_filters(self, client, draft_contract, project, admin_headers):
        listed = client.get("/api/contracts", params={"status": "draft"}, headers=admin_headers).json()["contracts"]
        assert [c["id"] for c in listed] == [draft_contract["id"]]
        assert listed[0]["project_name"] == "Acme Bakery Website"
        assert listed[0]["client_email"] == "owner@acme.example.com"

        assert client.get("/api/contracts", params={"status": "signed"}, headers=admin_headers).json()["contracts"] == []

    def test_invalid_status_filter(self, client, admin_headers):
        response = client.get("/api/contracts", params={"status": "shredded"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid contract status"

    def test_client_cannot_use_admin_routes(self, client, client_headers):
        assert client.get("/api/contracts", headers=client_headers).status_code == 403

    def test_project_with_contract_cannot_be_deleted(self, client, draft_contract, project, admin_headers):
        response = client.delete(f"/api/projects/{project.id}", headers=admin_headers)
        assert response.status_code == 400


# =============================================================================
# TASKS
# =============================================================================

def add_task(client, project, headers, **fields):
    body = {"title": "Build homepage"}
    body.update(fields)
    return client.post(f"/api/tasks/project/{project.id}", json=body, headers=headers)


class TestTasks:
    def test_create_and_list_by_due_date(self, client, project, admin_headers):
        add_task(client, project, admin_headers, title="Later", due_date="2026-05-01")
        add_task(client, project, admin_headers, title="Someday")
        add_task(client, project, admin_headers, title="Soon", due_date="2026-04-01")

        tasks = client.get("/api/tasks", headers=admin_headers).json()["tasks"]
        assert [t["title"] for t in tasks] == ["Soon", "Later", "Someday"]
        assert tasks[0]["project_name"] == "Acme Bakery Website"
        assert tasks[0]["status"] == "pending"

    def test_client_reads_own_project_tasks(self, client, project, admin_headers, client_headers, other_client_headers):
        add_task(client, project, admin_headers)
        assert len(client.get(f"/api/tasks/project/{project.id}", headers=client_headers).json()["tasks"]) == 1
        assert client.get(f"/api/tasks/project/{project.id}", headers=other_client_headers).status_code == 404

    def test_client_cannot_create(self, client, project, client_headers):
        assert add_task(client, project, client_headers).status_code == 403

    def test_milestone_must_belong_to_project(self, client, project, db_session, admin_headers):
        elsewhere = Project(project_name="Elsewhere", status="active", features=[], progress=0)
        db_session.add(elsewhere)
        db_session.commit()
        milestone = client.post(
            f"/api/projects/{elsewhere.id}/milestones", json={"title": "Launch"}, headers=admin_headers
        ).json()["milestone"]

        response = add_task(client, project, admin_headers, milestone_id=milestone["id"])
        assert response.status_code == 400
        assert response.json()["error"] == "Milestone does not belong to this project"

    def test_completion_is_stamped_and_cleared(self, client, project, admin_headers):
        task_id = add_task(client, project, admin_headers).json()["task"]["id"]

        done = client.put(f"/api/tasks/{task_id}", json={"status": "completed"}, headers=admin_headers).json()["task"]
        assert done["completed_at"] is not None

        reopened = client.put(f"/api/tasks/{task_id}", json={"status": "in_progress"}, headers=admin_headers).json()["task"]
        assert reopened["completed_at"] is None

    def test_unknown_status_filter_is_ignored(self, client, project, admin_headers):
        add_task(client, project, admin_headers)
        assert len(client.get("/api/tasks", params={"status": "whenever"}, headers=admin_headers).json()["tasks"]) == 1
        assert client.get("/api/tasks", params={"status": "blocked"}, headers=admin_headers).json()["tasks"] == []

    def test_delete(self, client, project, admin_headers, db_session):
        task_id = add_task(client, project, admin_headers).json()["task"]["id"]
        assert client.delete(f"/api/tasks/{task_id}", headers=admin_headers).status_code == 200
        assert db_session.query(Task).count() == 0

        missing = client.delete(f"/api/tasks/{task_id}", headers=admin_headers)
        assert missing.json()["code"] == "TASK_NOT_FOUND"


# =============================================================================
# AD HOC REQUESTS
# =============================================================================

@pytest.fixture
def submitted(client, project, client_headers):
    response = client.post("/api/ad-hoc-requests/me", json={
        "project_id": project.id,
        "title": "Add a gallery",
        "description": "A page with photos of the cakes.",
        "request_type": "feature",
        "urgency": "priority",
    }, headers=client_headers)
    assert response.status_code == 201
    return response.json()["request"]


class TestAdHocRequests:
    def test_submission_starts_submitted(self, submitted, active_client):
        assert submitted["status"] == "submitted"
        assert submitted["client_id"] == active_client.id
        assert submitted["urgency"] == "priority"

    def test_other_clients_project_is_not_found(self, client, project, other_client_headers):
        response = client.post("/api/ad-hoc-requests/me", json={
            "project_id": project.id, "title": "x", "description": "y", "request_type": "bug_fix",
        }, headers=other_client_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"

    def test_quote_needs_price(self, client, submitted, admin_headers):
        response = client.put(f"/api/ad-hoc-requests/{submitted['id']}", json={"status": "quoted"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "A quote needs a price"

    def test_client_approves_quote_without_seeing_notes(self, client, submitted, admin_headers, client_headers):
        client.put(f"/api/ad-hoc-requests/{submitted['id']}", json={
            "status": "quoted", "quoted_price": 450, "estimated_hours": 6, "admin_notes": "Reuse the lightbox",
        }, headers=admin_headers)

        mine = client.get("/api/ad-hoc-requests/me", headers=client_headers).json()["requests"][0]
        assert mine["quoted_price"] == 450
        assert mine["admin_notes"] is None

        approved = client.post(f"/api/ad-hoc-requests/me/{submitted['id']}/approve", headers=client_headers)
        assert approved.json()["request"]["status"] == "approved"

    def test_no_open_quote(self, client, submitted, client_headers):
        response = client.post(f"/api/ad-hoc-requests/me/{submitted['id']}/decline", headers=client_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "This request has no open quote"

    def test_other_client_cannot_answer(self, client, submitted, admin_headers, other_client_headers):
        client.put(f"/api/ad-hoc-requests/{submitted['id']}", json={"status": "quoted", "quoted_price": 100}, headers=admin_headers)
        response = client.post(f"/api/ad-hoc-requests/me/{submitted['id']}/approve", headers=other_client_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "REQUEST_NOT_FOUND"

    def test_admin_list_filters(self, client, submitted, admin_headers):
        listed = client.get("/api/ad-hoc-requests", params={"status": "submitted"}, headers=admin_headers).json()["requests"]
        assert listed[0]["client_name"] == "Olivia Owner"
        assert listed[0]["project_name"] == "Acme Bakery Website"

        response = client.get("/api/ad-hoc-requests", params={"status": "lost"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request status"

    def test_delete(self, client, submitted, admin_headers):
        assert client.delete(f"/api/ad-hoc-requests/{submitted['id']}", headers=admin_headers).status_code == 200
        assert client.get("/api/ad-hoc-requests", headers=admin_headers).json()["requests"] == []
