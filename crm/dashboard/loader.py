"""
Lazy loader for the per-domain dashboard modules.

A module is imported the first time a tab needs it; later calls return the
memoized namespace.
"""
import asyncio
import importlib
import logging
from types import ModuleType
from typing import Dict

logger = logging.getLogger(__name__)

MODULES = {
    "overview": "crm.dashboard.modules.overview",
    "analytics": "crm.dashboard.modules.analytics",
    "leads": "crm.dashboard.modules.leads",
    "contacts": "crm.dashboard.modules.contacts",
    "projects": "crm.dashboard.modules.projects",
    "clients": "crm.dashboard.modules.clients",
    "invoices": "crm.dashboard.modules.invoices",
    "contracts": "crm.dashboard.modules.contracts",
    "tasks": "crm.dashboard.modules.tasks",
    "requests": "crm.dashboard.modules.requests",
    "files": "crm.dashboard.modules.files",
    "messaging": "crm.dashboard.modules.messaging",
    "project_details": "crm.dashboard.project_details.controller",
}


class ModuleLoader:
    def __init__(self, modules: Dict[str, str] = MODULES):
        self.modules = dict(modules)
        self._loaded: Dict[str, ModuleType] = {}
        self.import_count = 0

    def is_loaded(self, name: str) -> bool:
        return name in self._loaded

    async def load(self, name: str) -> ModuleType:
        if name in self._loaded:
            return self._loaded[name]

        path = self.modules.get(name)
        if path is None:
            raise KeyError(f"Unknown dashboard module '{name}'")

        # Yield once so a load behaves like any other awaited fetch
        await asyncio.sleep(0)
        module = importlib.import_module(path)
        self.import_count += 1
        self._loaded[name] = module
        logger.debug("Loaded dashboard module %s", path)
        return module


_default_loader = ModuleLoader()


async def load_overview_module() -> ModuleType:
    return await _default_loader.load("overview")


async def load_analytics_module() -> ModuleType:
    return await _default_loader.load("analytics")


async def load_leads_module() -> ModuleType:
    return await _default_loader.load("leads")


async def load_contacts_module() -> ModuleType:
    return await _default_loader.load("contacts")


async def load_projects_module() -> ModuleType:
    return await _default_loader.load("projects")


async def load_clients_module() -> ModuleType:
    return await _default_loader.load("clients")


async def load_invoices_module() -> ModuleType:
    return await _default_loader.load("invoices")


async def load_files_module() -> ModuleType:
    return await _default_loader.load("files")


async def load_messaging_module() -> ModuleType:
    return await _default_loader.load("messaging")


async def load_project_details_module() -> ModuleType:
    return await _default_loader.load("project_details")


async def load_contracts_module() -> ModuleType:
    return await _default_loader.load("contracts")


async def load_tasks_module() -> ModuleType:
    return await _default_loader.load("tasks")


async def load_requests_module() -> ModuleType:
    return await _default_loader.load("requests")
