"""
In-process collaborator implementations.

Used by the test-suite and for local development; production deployments
plug their own document and graph stores into ProjectService.
"""

from lbd_projects.storage.graph_store import (
    MemoryGraphStore,
    RepositoryNotFoundError,
    RepositoryExistsError,
    result_to_dataframe,
)
from lbd_projects.storage.document_store import (
    MemoryDocumentStore,
    DocumentNotFoundError,
    ProjectRecord,
    FileRecord,
)

__all__ = [
    "MemoryGraphStore",
    "RepositoryNotFoundError",
    "RepositoryExistsError",
    "result_to_dataframe",
    "MemoryDocumentStore",
    "DocumentNotFoundError",
    "ProjectRecord",
    "FileRecord",
]
