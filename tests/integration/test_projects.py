"""
Project and milestone endpoints, including client scoping
"""
from crm.models import Milestone, Project


class TestProjects:
    def test_admin_lists_with_client_fields(self, client, project, admin_headers):
        projects = client.get("/api/projects", headers=admin_headers).json()["projects"]
        assert len(projects) == 1
        assert projects[0]["client_email"] == "owner@acme.example.com"
        assert projects[0]["features"] == ["contact-form", "blog", "premium"]

    def test_owner_sees_own_project(self, client, project, client_headers):
        response = client.get(f"/api/projects/{project.id}", headers=client_headers)
        assert response.status_code == 200
        assert response.json()["project"]["project_name"] == "Acme Bakery Website"

    def test_other_client_gets_not_found(self, client, project, other_client_headers):
        response = client.get(f"/api/projects/{project.id}", headers=other_client_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PROJECT_NOT_FOUND"

        listed = client.get("/api/projects", headers=other_client_headers).json()["projects"]
        assert listed == []

    def test_clients_cannot_update(self, client, project, client_headers):
        response = client.put(f"/api/projects/{project.id}", json={"status": "completed"}, headers=client_headers)
        assert response.status_code == 403

    def test_progress_is_clamped(self, client, project, admin_headers):
        response = client.put(f"/api/projects/{project.id}", json={"progress": 140}, headers=admin_headers)
        assert response.json()["project"]["progress"] == 100

        response = client.put(f"/api/projects/{project.id}", json={"progress": -5}, headers=admin_headers)
        assert response.json()["project"]["progress"] == 0

    def test_update_normalizes_features(self, client, project, admin_headers):
        response = client.put(f"/api/projects/{project.id}", json={"features": "booking, gallery"}, headers=admin_headers)
        assert response.json()["project"]["features"] == ["booking", "gallery"]

    def test_invalid_status_is_rejected(self, client, project, admin_headers):
        response = client.put(f"/api/projects/{project.id}", json={"status": "finished"}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_delete_removes_milestones(self, client, project, admin_headers, db_session):
        client.post(f"/api/projects/{project.id}/milestones", json={"title": "Kickoff"}, headers=admin_headers)

        response = client.delete(f"/api/projects/{project.id}", headers=admin_headers)
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.get(Project, project.id) is None
        assert db_session.query(Milestone).count() == 0

    def test_delete_refused_while_invoices_exist(self, client, project, admin_headers, make_invoice):
        make_invoice(project)
        response = client.delete(f"/api/projects/{project.id}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestMilestones:
    def test_create_then_list_in_due_order(self, client, project, admin_headers):
        client.post(f"/api/projects/{project.id}/milestones",
                    json={"title": "Launch", "due_date": "2026-03-01"}, headers=admin_headers)
        created = client.post(f"/api/projects/{project.id}/milestones",
                              json={"title": "Design", "due_date": "2026-02-01", "deliverables": ["Mockups"]},
                              headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["milestone"]["deliverables"] == ["Mockups"]

        milestones = client.get(f"/api/projects/{project.id}/milestones", headers=admin_headers).json()["milestones"]
        assert [m["title"] for m in milestones] == ["Design", "Launch"]

    def test_completion_stamps_and_clears_date(self, client, project, admin_headers):
        milestone_id = client.post(f"/api/projects/{project.id}/milestones",
                                   json={"title": "Design"}, headers=admin_headers).json()["milestone"]["id"]
        url = f"/api/projects/{project.id}/milestones/{milestone_id}"

        done = client.put(url, json={"is_completed": True}, headers=admin_headers).json()["milestone"]
        assert done["is_completed"] is True
        assert done["completed_date"] is not None

        undone = client.put(url, json={"is_completed": False}, headers=admin_headers).json()["milestone"]
        assert undone["completed_date"] is None

    def test_owner_can_read_milestones(self, client, project, admin_headers, client_headers):
        client.post(f"/api/projects/{project.id}/milestones", json={"title": "Design"}, headers=admin_headers)
        response = client.get(f"/api/projects/{project.id}/milestones", headers=client_headers)
        assert len(response.json()["milestones"]) == 1

    def test_milestone_from_other_project(self, client, project, admin_headers):
        response = client.delete(f"/api/projects/{project.id}/milestones/999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "MILESTONE_NOT_FOUND"
