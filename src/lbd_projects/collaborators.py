"""
Collaborator contracts consumed by the lifecycle layer.

The document store, graph store and permission resolver are external
services. The lifecycle layer only talks to them through these protocols;
``lbd_projects.storage`` ships in-process implementations.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set, runtime_checkable

import polars as pl


@dataclass
class Principal:
    """An authenticated agent and the projects it owns."""
    uri: str
    email: str = ""
    projects: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "email": self.email, "projects": list(self.projects)}


# Permission checks for unauthenticated callers pass None as the principal.
ANONYMOUS: Optional[Principal] = None


@runtime_checkable
class DocumentStore(Protocol):
    """User, project and file records."""

    def create_project_record(self, repo_url: str, project_id: str) -> bool: ...

    def delete_project_record(self, project_id: str) -> bool: ...

    def upload_document(self, project_id: str, data: bytes, owner: str) -> str: ...

    def get_document(self, project_id: str, file_id: str) -> bytes: ...

    def delete_document(self, file_id: str) -> str: ...

    def list_files(self, project_id: str) -> List[Dict[str, Any]]: ...

    def list_all_project_records(self) -> List[Dict[str, Any]]: ...

    def append_project_to_principal(self, principal: Principal, project_id: str) -> None: ...

    def remove_project_from_principal(self, principal: Principal, project_id: str) -> None: ...

    def persist(self, principal: Principal) -> bool: ...


@runtime_checkable
class GraphStore(Protocol):
    """One RDF repository per project, holding named graphs."""

    def create_repository(self, title: str, project_id: str) -> bool: ...

    def delete_repository(self, project_id: str) -> bool: ...

    def create_named_graph(self, project_id: str, graph: Dict[str, Any]) -> str: ...

    def get_named_graph(
        self,
        context: str,
        project_id: str,
        auth_token: str = "",
        format: str = "turtle",
    ) -> str: ...

    def delete_named_graph(self, context: str, project_id: str, auth_token: str = "") -> bool: ...

    def get_all_named_graphs(self, project_id: str, auth_token: str = "") -> List[Dict[str, str]]: ...

    def query_repository(self, project_id: str, query: str) -> pl.DataFrame: ...

    def update_repository_sparql(self, project_id: str, update: str) -> bool: ...


@runtime_checkable
class PermissionResolver(Protocol):
    """Computes an agent's effective ACL modes on a resource."""

    def resolve_effective_modes(
        self,
        principal: Optional[Principal],
        acl_url: str,
        resource_id: str,
    ) -> Set[str]: ...
