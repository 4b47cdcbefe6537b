"""
Resource naming for LBD projects.

Pure functions that derive every URI used by the lifecycle layer from the
configured base URL and an identifier. No I/O.

Layout:
    {base}/{id}                 project repository
    {base}/{id}.meta            project metadata graph
    {base}/{id}/.acl            project ACL graph
    {base}/{id}/{fileId}        document
    {base}/{id}/graphs/{graphId} named graph
    {url}.meta                  metadata companion of any resource
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

META_SUFFIX = ".meta"
ACL_SEGMENT = ".acl"
GRAPHS_SEGMENT = "graphs"


def new_identifier() -> str:
    """Random UUID4 (122 random bits)."""
    return str(uuid.uuid4())


def meta_url(url: str) -> str:
    """Metadata companion of a resource URL."""
    return f"{url}{META_SUFFIX}"


def is_meta_url(url: str) -> bool:
    return url.endswith(META_SUFFIX)


def is_acl_url(url: str) -> bool:
    """True for `.../.acl` and `.../name.acl` contexts."""
    return url.rstrip("/").endswith(ACL_SEGMENT)


def is_internal_graph(context: str) -> bool:
    """Metadata and ACL graphs, which are never listed as project content."""
    return is_meta_url(context) or is_acl_url(context)


def base_uri(context: str) -> str:
    """Base URI used when parsing a graph stored under ``context``."""
    return f"{context}#"


@dataclass(frozen=True)
class CompanionPair:
    """A resource context paired with its metadata graph."""
    context: str
    meta_context: str

    @classmethod
    def for_context(cls, context: str) -> "CompanionPair":
        return cls(context=context, meta_context=meta_url(context))

    def to_dict(self) -> dict:
        return {"context": self.context, "meta_context": self.meta_context}


@dataclass(frozen=True)
class ProjectUrls:
    """All derived URIs of one project."""
    project_id: str
    repo_url: str
    meta_url: str
    acl_url: str

    @property
    def companion(self) -> CompanionPair:
        return CompanionPair(context=self.repo_url, meta_context=self.meta_url)


class ResourceNaming:
    """
    Derives canonical URIs from a base URL.

    Usage:
        naming = ResourceNaming("https://lbdserver.org/lbd")
        urls = naming.project(naming.new_project_id())
        naming.graph_url(urls.project_id, "g1")
    """

    def __init__(self, base_url: str):
        if not base_url:
            raise ValueError("base_url cannot be empty")
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def new_project_id() -> str:
        return new_identifier()

    def repo_url(self, project_id: str) -> str:
        return f"{self.base_url}/{project_id}"

    def project(self, project_id: str) -> ProjectUrls:
        repo = self.repo_url(project_id)
        return ProjectUrls(
            project_id=project_id,
            repo_url=repo,
            meta_url=meta_url(repo),
            acl_url=f"{repo}/{ACL_SEGMENT}",
        )

    def acl_url(self, project_id: str) -> str:
        return self.project(project_id).acl_url

    def file_url(self, project_id: str, file_id: str) -> str:
        return f"{self.repo_url(project_id)}/{file_id}"

    def graph_url(self, project_id: str, graph_id: str) -> str:
        return f"{self.repo_url(project_id)}/{GRAPHS_SEGMENT}/{graph_id}"

    def new_graph(self, project_id: str) -> CompanionPair:
        """Fresh named-graph context with its metadata companion."""
        return CompanionPair.for_context(self.graph_url(project_id, new_identifier()))
