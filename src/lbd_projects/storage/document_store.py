"""
In-process document store.

Holds project records, uploaded documents and principals. Principal
changes are made on the in-memory object first and only become durable
when ``persist`` is called, like saving a user document.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lbd_projects.collaborators import Principal
from lbd_projects.naming import ResourceNaming, new_identifier

logger = logging.getLogger(__name__)


class DocumentNotFoundError(Exception):
    """Raised when a project record or document does not exist."""
    pass


@dataclass
class ProjectRecord:
    """Document-store side of a project."""
    project_id: str
    url: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.project_id,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class FileRecord:
    """An uploaded document."""
    file_id: str
    project_id: str
    url: str
    owner: str
    main: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.file_id,
            "project": self.project_id,
            "url": self.url,
            "owner": self.owner,
            "size": len(self.main),
        }


class MemoryDocumentStore:
    """
    Thread-safe in-memory document store.

    Usage:
        docs = MemoryDocumentStore(ResourceNaming("https://example.org/lbd"))
        docs.create_project_record(repo_url, project_id)
        url = docs.upload_document(project_id, b"...", owner_uri)
    """

    def __init__(self, naming: ResourceNaming):
        self.naming = naming
        self._projects: Dict[str, ProjectRecord] = {}
        self._files: Dict[str, FileRecord] = {}
        self._principals: Dict[str, List[str]] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project_record(self, repo_url: str, project_id: str) -> bool:
        with self._lock:
            if project_id in self._projects:
                raise ValueError(f"Project record '{project_id}' already exists")
            self._projects[project_id] = ProjectRecord(project_id=project_id, url=repo_url)
        logger.debug(f"Created project record {project_id}")
        return True

    def delete_project_record(self, project_id: str) -> bool:
        with self._lock:
            if project_id not in self._projects:
                raise DocumentNotFoundError(f"Project record '{project_id}' does not exist")
            del self._projects[project_id]
        logger.debug(f"Deleted project record {project_id}")
        return True

    def get_project_record(self, project_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._projects.get(project_id)
            return record.to_dict() if record else None

    def list_all_project_records(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [r.to_dict() for r in self._projects.values()]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upload_document(self, project_id: str, data: bytes, owner: str) -> str:
        with self._lock:
            if project_id not in self._projects:
                raise DocumentNotFoundError(f"Project record '{project_id}' does not exist")
            file_id = new_identifier()
            url = self.naming.file_url(project_id, file_id)
            self._files[file_id] = FileRecord(
                file_id=file_id,
                project_id=project_id,
                url=url,
                owner=owner,
                main=bytes(data),
            )
        logger.info(f"Stored document {url} ({len(data)} bytes)")
        return url

    def get_document(self, project_id: str, file_id: str) -> bytes:
        with self._lock:
            record = self._files.get(file_id)
            if record is None or record.project_id != project_id:
                raise DocumentNotFoundError(f"Document '{file_id}' not found in project '{project_id}'")
            return record.main

    def delete_document(self, file_id: str) -> str:
        """Delete a document and return the URL it was stored under."""
        with self._lock:
            record = self._files.pop(file_id, None)
        if record is None:
            raise DocumentNotFoundError(f"Document '{file_id}' does not exist")
        logger.info(f"Deleted document {record.url}")
        return record.url

    def list_files(self, project_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [f.to_dict() for f in self._files.values() if f.project_id == project_id]

    # ------------------------------------------------------------------
    # Principals
    # ------------------------------------------------------------------

    def append_project_to_principal(self, principal: Principal, project_id: str) -> None:
        if project_id not in principal.projects:
            principal.projects.append(project_id)

    def remove_project_from_principal(self, principal: Principal, project_id: str) -> None:
        principal.projects[:] = [p for p in principal.projects if p != project_id]

    def persist(self, principal: Principal) -> bool:
        with self._lock:
            self._principals[principal.uri] = list(principal.projects)
        return True

    def load_principal(self, uri: str, email: str = "") -> Principal:
        """Principal with its last persisted project list."""
        with self._lock:
            projects = list(self._principals.get(uri, []))
        return Principal(uri=uri, email=email, projects=projects)
