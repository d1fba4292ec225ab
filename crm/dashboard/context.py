"""
The handle every dashboard module receives.

Modules never touch the controller. They fetch through ``ctx.api`` and write
through ``render_into``, ``set_text`` and ``show_error``, which resolve
container keys against the bound ``DOMCache``.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from crm.dashboard.api_client import APIClient
from crm.dashboard.dom import DOMCache, Page
from crm.dashboard.store import ReadThroughCache, RequestSequencer

logger = logging.getLogger(__name__)


class ModuleContext:
    """What a domain module gets handed: API access, the page and render helpers.

    A context bound to a ticket (see ``for_ticket``) refuses to render once a
    newer load has been issued on its channel.
    """

    def __init__(
        self,
        api: APIClient,
        page: Page,
        dom: DOMCache,
        render: Callable[..., str],
        sequencer: RequestSequencer,
        notify: Callable[[str, str], None],
        switch_tab: Optional[Callable[..., Awaitable[Any]]] = None,
        caches: Optional[Dict[str, ReadThroughCache]] = None,
        channel: Optional[str] = None,
        ticket: Optional[int] = None,
    ):
        self.api = api
        self.page = page
        self.dom = dom
        self.render = render
        self.sequencer = sequencer
        self.notify = notify
        self.switch_tab = switch_tab
        self.caches = caches if caches is not None else {}
        self.channel = channel
        self.ticket = ticket

    def for_ticket(self, channel: str, ticket: int) -> "ModuleContext":
        return ModuleContext(
            self.api, self.page, self.dom, self.render, self.sequencer, self.notify,
            switch_tab=self.switch_tab, caches=self.caches, channel=channel, ticket=ticket,
        )

    def with_dom(self, dom: DOMCache) -> "ModuleContext":
        """Same context rendering through another selector table."""
        return ModuleContext(
            self.api, self.page, dom, self.render, self.sequencer, self.notify,
            switch_tab=self.switch_tab, caches=self.caches, channel=self.channel, ticket=self.ticket,
        )

    def is_current(self) -> bool:
        if self.ticket is None:
            return True
        return self.sequencer.is_current(self.channel, self.ticket)

    def cache(self, name: str, loader: Callable[[], Awaitable[Any]]) -> ReadThroughCache:
        if name not in self.caches:
            self.caches[name] = ReadThroughCache(name, loader)
        return self.caches[name]

    def render_into(self, key: str, template: str, **context) -> bool:
        if not self.is_current():
            logger.debug("Discarding stale render of %s into %s", template, key)
            return False
        element = self.dom.get(key)
        if element is None:
            logger.warning("No container '%s' for %s", key, template)
            return False
        element.set_html(self.render(template, **context))
        return True

    def set_text(self, key: str, text: str) -> bool:
        if not self.is_current():
            return False
        element = self.dom.get(key)
        if element is None:
            return False
        element.set_text(text)
        return True

    def show_error(self, key: str, what: str) -> bool:
        return self.set_text(key, f"Error loading {what}")
