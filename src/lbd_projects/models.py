"""
Request and response payloads of the lifecycle service.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Requests
# =============================================================================

class CreateProjectRequest(BaseModel):
    """Request to create a new project."""
    title: str = Field(..., description="Project title, also used as repository title")
    description: str = Field(default="", description="Human-readable description")
    open: bool = Field(default=False, description="Grant Read to every agent")


class AclChoice(BaseModel):
    """
    Which ACL governs a new document or named graph.

    - neither field set: the project ACL
    - ``acl``: an ACL graph that already exists in the project
    - ``acl_data``: a custom ACL uploaded with the resource, stored under
      ``acl_name``
    """
    acl: Optional[str] = Field(None, description="Context of an existing ACL graph")
    acl_name: Optional[str] = Field(None, description="Context for an uploaded custom ACL")
    acl_data: Optional[str] = Field(None, description="Turtle content of a custom ACL")


class ResourceRequest(BaseModel):
    """Descriptive fields shared by document uploads and new named graphs."""
    label: Optional[str] = Field(None, description="Label stored in the metadata graph")
    description: Optional[str] = Field(None, description="Description stored in the metadata graph")
    acl: AclChoice = Field(default_factory=AclChoice)


class NamedGraphRequest(ResourceRequest):
    """Request to create a named graph."""
    data: Optional[str] = Field(None, description="Turtle content; a seed triple is used when omitted")


# =============================================================================
# Responses
# =============================================================================

class ProjectCreated(BaseModel):
    """Result of project creation."""
    id: str
    metadata: str
    graphs: Dict[str, str] = Field(default_factory=dict)
    documents: Dict[str, str] = Field(default_factory=dict)
    message: str = "Project successfully created"


class ResourceCreated(BaseModel):
    """A new document or named graph with its metadata companion."""
    url: str
    meta_context: str
    meta_graph: str
    acl: str


class ProjectSnapshot(BaseModel):
    """Project metadata with the metadata of every document and named graph."""
    id: str
    metadata: str
    graphs: Dict[str, str] = Field(default_factory=dict)
    documents: Dict[str, str] = Field(default_factory=dict)
    permissions: List[str] = Field(default_factory=list)
    query_results: Optional[List[Dict[str, Any]]] = None


class ScopedRead(BaseModel):
    """Either the serialized graph, or a scoped query and its bindings."""
    context: str
    graph: Optional[str] = None
    query: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
