"""Shared fixtures: in-memory stores, failure injection and a test ACL resolver."""

from typing import Callable, Dict, Optional, Set

import pytest

from lbd_projects.acl import list_authorizations
from lbd_projects.collaborators import Principal
from lbd_projects.config import ServerConfig
from lbd_projects.lifecycle import ProjectService
from lbd_projects.naming import ResourceNaming
from lbd_projects.storage import MemoryDocumentStore, MemoryGraphStore

DOMAIN = "https://lbdserver.org"


class StoreUnavailable(RuntimeError):
    """Injected collaborator failure."""


class FailureInjection:
    """Makes selected store methods raise StoreUnavailable."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures: Dict[str, Callable[..., bool]] = {}
        self.calls: list = []

    def fail(self, method: str, when: Optional[Callable[..., bool]] = None) -> None:
        self.failures[method] = when or (lambda *args: True)

    def heal(self, method: str) -> None:
        self.failures.pop(method, None)

    def _check(self, method: str, *args) -> None:
        self.calls.append(method)
        when = self.failures.get(method)
        if when is not None and when(*args):
            raise StoreUnavailable(f"{method} unavailable")


class FlakyGraphStore(FailureInjection, MemoryGraphStore):

    def create_repository(self, title, project_id):
        self._check("create_repository", title, project_id)
        return super().create_repository(title, project_id)

    def delete_repository(self, project_id):
        self._check("delete_repository", project_id)
        return super().delete_repository(project_id)

    def create_named_graph(self, project_id, graph):
        self._check("create_named_graph", project_id, graph)
        return super().create_named_graph(project_id, graph)

    def delete_named_graph(self, context, project_id, auth_token=""):
        self._check("delete_named_graph", context, project_id)
        return super().delete_named_graph(context, project_id, auth_token)


class FlakyDocumentStore(FailureInjection, MemoryDocumentStore):

    def create_project_record(self, repo_url, project_id):
        self._check("create_project_record", repo_url, project_id)
        return super().create_project_record(repo_url, project_id)

    def delete_project_record(self, project_id):
        self._check("delete_project_record", project_id)
        return super().delete_project_record(project_id)

    def upload_document(self, project_id, data, owner):
        self._check("upload_document", project_id, data, owner)
        return super().upload_document(project_id, data, owner)

    def delete_document(self, file_id):
        self._check("delete_document", file_id)
        return super().delete_document(file_id)

    def persist(self, principal):
        self._check("persist", principal)
        return super().persist(principal)


class AclGraphResolver:
    """Grants the modes of every authorization naming the agent or the public class."""

    def __init__(self, graphs: MemoryGraphStore):
        self.graphs = graphs

    def resolve_effective_modes(self, principal, acl_url, resource_id) -> Set[str]:
        data = self.graphs.get_named_graph(acl_url, resource_id)
        modes: Set[str] = set()
        if not data:
            return modes
        for auth in list_authorizations(data, acl_url):
            if auth.is_public or (principal is not None and auth.agent == principal.uri):
                modes |= auth.modes
        return modes


@pytest.fixture
def config():
    return ServerConfig(domain_url=DOMAIN, snapshot_workers=4).validate()


@pytest.fixture
def naming(config):
    return ResourceNaming(config.base_url)


@pytest.fixture
def graphs():
    return FlakyGraphStore()


@pytest.fixture
def documents(naming):
    return FlakyDocumentStore(naming)


@pytest.fixture
def service(config, documents, graphs):
    return ProjectService(config, documents, graphs, permissions=AclGraphResolver(graphs))


@pytest.fixture
def alice():
    return Principal(uri="https://alice.example.org/profile/card#me", email="alice@example.org")


@pytest.fixture
def bob():
    return Principal(uri="https://bob.example.org/profile/card#me", email="bob@example.org")
