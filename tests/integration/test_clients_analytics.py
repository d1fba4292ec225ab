"""
Client directory, client profile and admin analytics
"""
from datetime import date

from crm.models import Lead


class TestClients:
    def test_list_counts_projects(self, client, project, admin_headers):
        clients = client.get("/api/clients", headers=admin_headers).json()["clients"]
        assert clients[0]["email"] == "owner@acme.example.com"
        assert clients[0]["project_count"] == 1

    def test_detail_includes_projects(self, client, project, active_client, admin_headers):
        body = client.get(f"/api/clients/{active_client.id}", headers=admin_headers).json()
        assert body["client"]["company_name"] == "Acme Bakery"
        assert [p["id"] for p in body["projects"]] == [project.id]

    def test_missing_client(self, client, admin_headers):
        response = client.get("/api/clients/999", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "CLIENT_NOT_FOUND"

    def test_me_is_for_clients(self, client, client_headers, admin_headers):
        assert client.get("/api/clients/me", headers=client_headers).json()["client"]["email"] == "owner@acme.example.com"
        assert client.get("/api/clients/me", headers=admin_headers).status_code == 403


class TestAnalytics:
    def test_overview_counters(self, client, project, admin_headers, make_invoice, db_session):
        db_session.add(Lead(contact_name="Dana", email="dana@bakery.example.com", status="new", features=[]))
        db_session.commit()
        make_invoice(project, total=300, paid=100, status="partial")
        make_invoice(project, total=50, paid=50, status="paid")
        make_invoice(project, total=999, status="draft")

        stats = client.get("/api/admin/dashboard/stats", headers=admin_headers).json()["stats"]
        assert stats["leads"]["new"] == 1
        assert stats["projects"] == {"total": 1, "active": 1}
        assert stats["revenue"] == {"outstanding": 200, "paid": 150}

    def test_analytics_series(self, client, project, admin_headers, make_invoice, db_session):
        db_session.add_all([
            Lead(contact_name="A", email="a@x.example.com", status="converted", source="intake_form", features=[]),
            Lead(contact_name="B", email="b@x.example.com", status="lost", source="contact_form", features=[]),
        ])
        db_session.commit()
        make_invoice(project, total=400)

        analytics = client.get("/api/admin/analytics", headers=admin_headers).json()["analytics"]
        assert analytics["conversion_rate"] == 50.0
        assert analytics["lead_sources"] == {"intake_form": 1, "contact_form": 1}
        assert analytics["projects_by_type"] == {"business-site": 1}
        assert analytics["monthly_revenue"] == [
            {"month": date.today().strftime("%Y-%m"), "invoiced": 400.0, "paid": 0.0}
        ]
