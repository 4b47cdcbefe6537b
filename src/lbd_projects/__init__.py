"""
LBD Projects: multi-store lifecycle coordination for linked-data projects.

Keeps projects, documents and named graphs consistent across a document
store and an RDF graph store with compensating rollback.
"""

__version__ = "0.1.0"

from lbd_projects.config import ServerConfig, load_config
from lbd_projects.naming import ResourceNaming, CompanionPair, new_identifier
from lbd_projects.acl import AclAuthorization, build_default_acl, ACL_READ, ACL_WRITE, ACL_CONTROL
from lbd_projects.query_scope import scope_query, is_read_query, ensure_read_query
from lbd_projects.saga import Saga, SagaStep, StepStatus, CancellationToken
from lbd_projects.lifecycle import ProjectService
from lbd_projects.models import AclChoice, CreateProjectRequest, NamedGraphRequest, ResourceRequest
from lbd_projects.collaborators import Principal, DocumentStore, GraphStore, PermissionResolver
from lbd_projects.errors import (
    LifecycleError,
    Unauthenticated,
    ValidationError,
    AclNotFound,
    InvalidQueryClass,
    GraphNotFound,
    StoreWriteFailed,
    StoreReadFailed,
    SagaFailed,
    SagaCompensationFailed,
    SagaCancelled,
    ProjectCreationFailed,
    ProjectDeletionFailed,
    PartialFailure,
)

__all__ = [
    "ServerConfig",
    "load_config",
    # Naming
    "ResourceNaming",
    "CompanionPair",
    "new_identifier",
    # ACL bootstrap
    "AclAuthorization",
    "build_default_acl",
    "ACL_READ",
    "ACL_WRITE",
    "ACL_CONTROL",
    # Query scoping
    "scope_query",
    "is_read_query",
    "ensure_read_query",
    # Saga
    "Saga",
    "SagaStep",
    "StepStatus",
    "CancellationToken",
    # Lifecycle
    "ProjectService",
    "AclChoice",
    "CreateProjectRequest",
    "NamedGraphRequest",
    "ResourceRequest",
    # Collaborators
    "Principal",
    "DocumentStore",
    "GraphStore",
    "PermissionResolver",
    # Errors
    "LifecycleError",
    "Unauthenticated",
    "ValidationError",
    "AclNotFound",
    "InvalidQueryClass",
    "GraphNotFound",
    "StoreWriteFailed",
    "StoreReadFailed",
    "SagaFailed",
    "SagaCompensationFailed",
    "SagaCancelled",
    "ProjectCreationFailed",
    "ProjectDeletionFailed",
    "PartialFailure",
]
