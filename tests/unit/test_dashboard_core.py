"""
Page model, caches, sequencing, dispatch and routing for the admin dashboard
"""
import pytest

from crm.dashboard.actions import ActionDispatcher, ActionPayloadError, UnknownActionError, as_amount, as_bool
from crm.dashboard.context import ModuleContext
from crm.dashboard.dom import Page, create_dom_cache
from crm.dashboard.layout import DASHBOARD_SELECTORS, build_admin_page
from crm.dashboard.loader import ModuleLoader
from crm.dashboard.modules.contracts import contract_actions
from crm.dashboard.modules.tasks import count_tasks
from crm.dashboard.project_details.controller import client_account_status
from crm.dashboard.project_details.invoices import InvoiceActions
from crm.dashboard.project_details.milestones import compute_progress
from crm.dashboard.render import render
from crm.dashboard.router import DEFAULT_BREADCRUMBS, TabRouter, resolve_tab
from crm.dashboard.store import ReadThroughCache, RequestSequencer


# =============================================================================
# DOM CACHE
# =============================================================================

class TestDOMCache:
    def test_lookup_is_memoized(self):
        page = Page()
        element = page.create("leads-table-body")
        dom = create_dom_cache(page, {"leads_table": "leads-table-body"})

        assert dom.get("leads_table") is element
        page.remove("leads-table-body")
        assert dom.get("leads_table") is element

    def test_misses_are_requeried(self):
        page = Page()
        dom = create_dom_cache(page, {"late": "late-element"})

        assert dom.get("late") is None
        element = page.create("late-element")
        assert dom.get("late") is element

    def test_invalidate_drops_cached_elements(self):
        page = Page()
        first = page.create("x")
        dom = create_dom_cache(page, {"x": "x"})
        dom.get("x")

        page.remove("x")
        second = page.create("x")
        dom.invalidate()
        assert dom.get("x") is second is not first

    def test_require_raises_for_unknown_key(self):
        dom = create_dom_cache(Page(), {})
        with pytest.raises(KeyError):
            dom.require("nothing")


# =============================================================================
# STORE
# =============================================================================

class TestReadThroughCache:
    async def test_loads_once_until_invalidated(self):
        calls = []

        async def loader():
            calls.append(1)
            return ["project"]

        cache = ReadThroughCache("projects_data", loader)
        assert cache.peek() is None
        assert await cache.get() == ["project"]
        assert await cache.get() == ["project"]
        assert len(calls) == 1

        cache.invalidate()
        assert not cache.loaded
        await cache.get()
        assert len(calls) == 2

    async def test_refresh_forces_a_load(self):
        values = iter([1, 2])

        async def loader():
            return next(values)

        cache = ReadThroughCache("numbers", loader)
        assert await cache.get() == 1
        assert await cache.get(refresh=True) == 2
        assert cache.peek() == 2


class TestRequestSequencer:
    def test_only_latest_ticket_is_current(self):
        sequencer = RequestSequencer()
        first = sequencer.issue("tab")
        second = sequencer.issue("tab")

        assert not sequencer.is_current("tab", first)
        assert sequencer.is_current("tab", second)
        assert sequencer.latest("tab") == second

    def test_channels_are_independent(self):
        sequencer = RequestSequencer()
        tab = sequencer.issue("tab")
        sequencer.issue("detail")
        assert sequencer.is_current("tab", tab)


class TestStaleRenders:
    def make_context(self):
        page = build_admin_page()
        dom = create_dom_cache(page, DASHBOARD_SELECTORS)
        return ModuleContext(None, page, dom, render, RequestSequencer(), lambda message, kind: None)

    def test_superseded_load_does_not_render(self):
        ctx = self.make_context()
        stale = ctx.for_ticket("tab", ctx.sequencer.issue("tab"))
        current = ctx.for_ticket("tab", ctx.sequencer.issue("tab"))

        assert not stale.render_into("system_status", "system.html", health={"status": "healthy"})
        assert ctx.dom.get("system_status").inner_html == ""

        assert current.render_into("system_status", "system.html", health={"status": "healthy"})
        assert "Healthy" in ctx.dom.get("system_status").inner_html

    def test_show_error_text(self):
        ctx = self.make_context()
        ctx.show_error("leads_table", "leads")
        assert ctx.dom.get("leads_table").text == "Error loading leads"


# =============================================================================
# ACTIONS
# =============================================================================

class TestActionDispatcher:
    async def test_dispatches_payload_to_handler(self):
        dispatcher = ActionDispatcher()
        seen = []

        @dispatcher.action("invite-lead")
        async def invite(lead_id):
            seen.append(lead_id)
            return "sent"

        assert await dispatcher.dispatch("invite-lead", {"lead_id": 7}) == "sent"
        assert seen == [7]

    async def test_handle_click_maps_dataset_keys(self):
        dispatcher = ActionDispatcher()
        seen = {}

        @dispatcher.action("record-payment")
        async def record(invoice_id, amount):
            seen.update(invoice_id=invoice_id, amount=amount)

        await dispatcher.handle_click({"action": "record-payment", "invoice-id": "3", "amount": "25"})
        assert seen == {"invoice_id": "3", "amount": "25"}

    async def test_confirm_gates_destructive_actions(self):
        deleted = []
        dispatcher = ActionDispatcher()
        dispatcher.register("delete-file", lambda file_id: _record(deleted, file_id), confirm="Delete this file?")

        assert await dispatcher.dispatch("delete-file", {"file_id": 1}, confirm=lambda message: False) is None
        assert deleted == []

        await dispatcher.dispatch("delete-file", {"file_id": 1}, confirm=lambda message: True)
        assert deleted == [1]

    async def test_confirm_gated_action_without_hook_is_refused(self):
        deleted = []
        dispatcher = ActionDispatcher()
        dispatcher.register("delete-file", lambda file_id: _record(deleted, file_id), confirm="Delete?")

        assert await dispatcher.dispatch("delete-file", {"file_id": 1}) is None
        assert deleted == []

    async def test_async_confirm_hook(self):
        deleted = []
        dispatcher = ActionDispatcher()
        dispatcher.register("delete-project", lambda: _record(deleted, "project"), confirm="Delete?")

        async def confirm(message):
            return message == "Delete?"

        assert await dispatcher.dispatch("delete-project", confirm=confirm) == "project"
        assert deleted == ["project"]
        assert dispatcher.requires_confirmation("delete-project")

    async def test_unknown_action(self):
        with pytest.raises(UnknownActionError):
            await ActionDispatcher().dispatch("nope")

    async def test_payload_mismatch(self):
        dispatcher = ActionDispatcher()

        @dispatcher.action("switch-tab")
        async def switch(tab):
            return tab

        with pytest.raises(ActionPayloadError):
            await dispatcher.dispatch("switch-tab", {"bogus": 1})

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("false", False), ("1", True), ("0", False), (True, True), (None, False),
    ])
    def test_as_bool(self, value, expected):
        assert as_bool(value) is expected

    def test_as_amount(self):
        assert as_amount("40.5") == 40.5
        assert as_amount(12) == 12.0

    @pytest.mark.parametrize("value", ["abc", "", None])
    def test_as_amount_rejects(self, value):
        with pytest.raises(ActionPayloadError, match="amount must be a number"):
            as_amount(value)


async def _record(target, value):
    target.append(value)
    return value


# =============================================================================
# ROUTER
# =============================================================================

class TestResolveTab:
    def test_group_resolves_to_default_child(self):
        assert resolve_tab("documents") == ("documents", "invoices")
        assert resolve_tab("work") == ("work", "projects")

    def test_child_tab_resolves_to_its_group(self):
        assert resolve_tab("contacts") == ("crm", "contacts")

    def test_standalone_tab(self):
        assert resolve_tab("analytics") == ("analytics", "analytics")

    def test_unknown(self):
        assert resolve_tab("nonexistent") is None


class TestTabRouter:
    @pytest.fixture
    def setup(self):
        page = build_admin_page()
        dom = create_dom_cache(page, DASHBOARD_SELECTORS)
        loads = []

        async def load_tab_data(tab):
            loads.append(tab)

        return page, TabRouter(page, dom, render, load_tab_data), loads

    async def test_switch_marks_tab_group_and_body(self, setup):
        page, router, loads = setup
        await router.switch_tab("leads")

        assert page.get_element_by_id("tab-leads").has_class("active")
        assert page.get_element_by_id("tab-btn-leads").has_class("active")
        assert page.get_element_by_id("group-btn-crm").has_class("active")
        assert not page.get_element_by_id("tab-overview").has_class("active")
        assert page.body.dataset == {"activeGroup": "crm", "activeTab": "leads"}
        assert page.title == "Leads"
        assert [c["label"] for c in router.breadcrumbs] == ["Dashboard", "CRM", "Leads"]
        assert loads == ["leads"]

    async def test_only_one_tab_is_active(self, setup):
        page, router, _ = setup
        await router.switch_tab("leads")
        await router.switch_tab("files")
        active = [e.id for e in page.query_all("tab-content") if e.has_class("active")]
        assert active == ["tab-files"]

    async def test_unknown_tab_keeps_previous_content(self, setup):
        page, router, loads = setup
        await router.switch_tab("projects")
        page.get_element_by_id("projects-table-body").set_html("<tr>kept</tr>")

        assert await router.switch_tab("does-not-exist") is None

        assert router.current_tab == "projects"
        assert page.get_element_by_id("tab-projects").has_class("active")
        assert page.get_element_by_id("projects-table-body").inner_html == "<tr>kept</tr>"
        assert router.breadcrumbs == DEFAULT_BREADCRUMBS
        assert loads == ["projects"]

    async def test_detail_tab_awaits_label(self, setup):
        _, router, _ = setup

        async def label():
            return "Acme Bakery"

        await router.switch_tab("client-detail", detail_label=label())
        assert [c["label"] for c in router.breadcrumbs] == ["Dashboard", "CRM", "Clients", "Acme Bakery"]
        assert router.breadcrumbs[2]["tab"] == "clients"

    async def test_breadcrumbs_render_clickable_spans(self, setup):
        page, router, _ = setup
        await router.switch_tab("invoices")
        html = page.get_element_by_id("breadcrumbs").inner_html
        assert 'data-action="switch-tab"' in html
        assert 'data-tab="overview"' in html


# =============================================================================
# PROJECT DETAIL HELPERS
# =============================================================================

class TestProgress:
    @pytest.mark.parametrize("completed,total,expected", [(0, 0, 0), (1, 2, 50), (1, 3, 33), (2, 3, 67), (3, 3, 100)])
    def test_round_of_completed_share(self, completed, total, expected):
        milestones = [{"is_completed": i < completed} for i in range(total)]
        assert compute_progress(milestones) == expected


class TestAccountStatus:
    def test_not_invited(self):
        assert client_account_status({"client_status": "pending"}) == "Not Invited"

    def test_invited_but_never_logged_in(self):
        assert client_account_status({"client_invitation_sent_at": "2026-01-01T00:00:00"}) == "Pending"

    def test_invited_and_logged_in(self):
        assert client_account_status({
            "client_invitation_sent_at": "2026-01-01T00:00:00",
            "client_last_login_at": "2026-01-02T00:00:00",
        }) == "Active"


# =============================================================================
# MODULE LOADER
# =============================================================================

class TestModuleLoader:
    async def test_import_is_memoized(self):
        loader = ModuleLoader()
        first = await loader.load("leads")
        second = await loader.load("leads")

        assert first is second
        assert loader.import_count == 1
        assert hasattr(first, "load_leads")

    async def test_unknown_module(self):
        with pytest.raises(KeyError):
            await ModuleLoader().load("payroll")

    async def test_work_and_document_modules(self):
        loader = ModuleLoader()
        assert hasattr(await loader.load("contracts"), "load_contracts")
        assert hasattr(await loader.load("tasks"), "load_tasks")
        assert hasattr(await loader.load("requests"), "load_requests")


# =============================================================================
# ROW HELPERS
# =============================================================================

class TestInvoiceActionsBase:
    def test_reload_must_be_provided(self):
        with pytest.raises(TypeError):
            InvoiceActions(None)


class TestContractActions:
    @pytest.mark.parametrize("status,expected", [
        ("draft", ["send-contract", "cancel-contract"]),
        ("sent", ["remind-contract", "expire-contract", "cancel-contract"]),
        ("viewed", ["remind-contract", "expire-contract", "cancel-contract"]),
        ("signed", ["amend-contract"]),
        ("expired", []),
        ("cancelled", []),
    ])
    def test_actions_follow_status(self, status, expected):
        assert contract_actions({"status": status}) == expected


class TestTaskCounts:
    def test_open_covers_unfinished_work(self):
        counts = count_tasks([
            {"status": "pending"}, {"status": "in_progress"}, {"status": "blocked"},
            {"status": "completed"}, {"status": "cancelled"},
        ])
        assert counts["open"] == 3
        assert counts["completed"] == 1

    def test_empty(self):
        assert count_tasks([])["open"] == 0
