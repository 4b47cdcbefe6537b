"""
Project, document and named-graph lifecycle.

Provides:
- Project creation and deletion as compensated write sequences across the
  graph store and the document store
- Named graphs and documents, each created together with its metadata
  graph and governed by an ACL
- Project snapshots assembled by parallel reads
- Scoped reads of a single graph, and the gated query / update channels

Every operation takes the calling principal and fails with Unauthenticated
before touching a store when there is none.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import polars as pl

from lbd_projects.acl import ACL_READ, build_default_acl
from lbd_projects.collaborators import (
    ANONYMOUS,
    DocumentStore,
    GraphStore,
    PermissionResolver,
    Principal,
)
from lbd_projects.config import ServerConfig
from lbd_projects.errors import (
    AclNotFound,
    GraphNotFound,
    LifecycleError,
    PartialFailure,
    ProjectCreationFailed,
    ProjectDeletionFailed,
    SagaFailed,
    StoreReadFailed,
    StoreWriteFailed,
    Unauthenticated,
    ValidationError,
)
from lbd_projects.metadata import build_meta_graph, default_graph_content
from lbd_projects.models import (
    AclChoice,
    CreateProjectRequest,
    NamedGraphRequest,
    ProjectCreated,
    ProjectSnapshot,
    ResourceCreated,
    ResourceRequest,
    ScopedRead,
)
from lbd_projects.naming import (
    CompanionPair,
    ResourceNaming,
    base_uri,
    is_internal_graph,
    is_meta_url,
)
from lbd_projects.query_scope import ensure_read_query, scope_query
from lbd_projects.saga import CancellationToken, Saga

logger = logging.getLogger(__name__)

GRAPH_STORE = "graph store"
DOCUMENT_STORE = "document store"


def _require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise Unauthenticated("You must be authenticated to perform this operation")
    return principal


class ProjectService:
    """
    Coordinates the document store and the graph store.

    Usage:
        config = ServerConfig(domain_url="https://lbdserver.org").validate()
        naming = ResourceNaming(config.base_url)
        service = ProjectService(config, MemoryDocumentStore(naming), MemoryGraphStore())

        created = service.create_project("Atrium", "", True, alice)
        service.create_named_graph(created.id, alice, NamedGraphRequest(label="site"))
        service.get_project_snapshot(created.id, alice)
    """

    def __init__(
        self,
        config: ServerConfig,
        documents: DocumentStore,
        graphs: GraphStore,
        permissions: Optional[PermissionResolver] = None,
    ):
        self.config = config
        self.naming = ResourceNaming(config.base_url)
        self.documents = documents
        self.graphs = graphs
        self.permissions = permissions

    # =========================================================================
    # Principal bookkeeping (saga actions)
    # =========================================================================

    def _save_project_to_principal(self, principal: Principal, project_id: str) -> bool:
        self.documents.append_project_to_principal(principal, project_id)
        try:
            return self.documents.persist(principal)
        except Exception:
            self.documents.remove_project_from_principal(principal, project_id)
            raise

    def _remove_project_from_principal(self, principal: Principal, project_id: str) -> bool:
        self.documents.remove_project_from_principal(principal, project_id)
        try:
            return self.documents.persist(principal)
        except Exception:
            self.documents.append_project_to_principal(principal, project_id)
            raise

    def _new_saga(self, name: str, cancellation_token: Optional[CancellationToken]) -> Saga:
        return Saga(
            name,
            timeout_seconds=self.config.saga_timeout_seconds,
            cancellation_token=cancellation_token,
        )

    # =========================================================================
    # Projects
    # =========================================================================

    def create_project(
        self,
        title: str,
        description: str,
        open: bool,
        creator: Optional[Principal],
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ProjectCreated:
        """
        Create a project in both stores and register it with its creator.

        The repository, the project record and the creator's project list
        are written as one saga. The metadata and ACL graphs are written
        afterwards inside the new repository; if either fails the saga is
        compensated, which also removes them with the repository.

        Raises:
            Unauthenticated: No creator
            ProjectCreationFailed: Any write failed; carries the cleanup outcome
        """
        creator = _require_principal(creator)
        project_id = self.naming.new_project_id()
        urls = self.naming.project(project_id)
        repo_meta = build_meta_graph(urls.repo_url, urls.acl_url, title, description)

        saga = self._new_saga(f"create-project {project_id}", cancellation_token)
        saga.add_step(
            "create-project-repository",
            self.graphs.create_repository, (title, project_id),
            compensation=self.graphs.delete_repository, compensation_args=(project_id,),
            collaborator=GRAPH_STORE,
        )
        saga.add_step(
            "create-project-record",
            self.documents.create_project_record, (urls.repo_url, project_id),
            compensation=self.documents.delete_project_record, compensation_args=(project_id,),
            collaborator=DOCUMENT_STORE,
        )
        saga.add_step(
            "save-project-to-creator",
            self._save_project_to_principal, (creator, project_id),
            compensation=self._remove_project_from_principal, compensation_args=(creator, project_id),
            collaborator=DOCUMENT_STORE,
        )

        try:
            saga.execute()
        except SagaFailed as e:
            raise ProjectCreationFailed.from_saga(e) from e

        # Both graphs live inside the repository; deleting it removes them.
        try:
            self.graphs.create_named_graph(project_id, {
                "context": urls.meta_url,
                "baseURI": base_uri(urls.meta_url),
                "data": repo_meta,
            })
            self.graphs.create_named_graph(project_id, {
                "context": urls.acl_url,
                "baseURI": base_uri(urls.acl_url),
                "data": build_default_acl(creator, urls.acl_url, open),
            })
        except Exception as e:
            cause = StoreWriteFailed("create-project-graphs", GRAPH_STORE, e)
            failures = saga.compensate()
            raise ProjectCreationFailed(
                "create-project-graphs", cause, failures,
                message="Failed to create project",
            ) from e

        logger.info(f"Created project {project_id} for {creator.uri}")
        return ProjectCreated(id=project_id, metadata=repo_meta)

    def create_project_from_request(
        self,
        request: CreateProjectRequest,
        creator: Optional[Principal],
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ProjectCreated:
        """Create a project from a validated request payload."""
        return self.create_project(
            request.title, request.description, request.open, creator, cancellation_token
        )

    def delete_project(
        self,
        project_id: str,
        owner: Optional[Principal],
        cancellation_token: Optional[CancellationToken] = None,
    ) -> bool:
        """
        Remove a project from the owner, the document store and the graph store.

        Deleting the repository cannot be undone, so it is the last step.

        Raises:
            Unauthenticated: No owner
            ProjectDeletionFailed: Any step failed; carries the cleanup outcome
        """
        owner = _require_principal(owner)
        urls = self.naming.project(project_id)

        saga = self._new_saga(f"delete-project {project_id}", cancellation_token)
        saga.add_step(
            "remove-project-from-owner",
            self._remove_project_from_principal, (owner, project_id),
            compensation=self._save_project_to_principal, compensation_args=(owner, project_id),
            collaborator=DOCUMENT_STORE,
        )
        saga.add_step(
            "delete-project-record",
            self.documents.delete_project_record, (project_id,),
            compensation=self.documents.create_project_record,
            compensation_args=(urls.repo_url, project_id),
            collaborator=DOCUMENT_STORE,
        )
        saga.add_step(
            "delete-project-repository",
            self.graphs.delete_repository, (project_id,),
            collaborator=GRAPH_STORE,
        )

        try:
            saga.execute()
        except SagaFailed as e:
            raise ProjectDeletionFailed.from_saga(e, project_id) from e

        logger.info(f"Deleted project {project_id}")
        return True

    # =========================================================================
    # Snapshots
    # =========================================================================

    def _read_graph(self, context: str, project_id: str) -> str:
        try:
            graph = self.graphs.get_named_graph(
                context, project_id, "", self.config.default_graph_format
            )
        except Exception as e:
            raise GraphNotFound(context, e) from e
        if not graph:
            raise GraphNotFound(context)
        return graph

    def _read_meta(self, context: str, project_id: str) -> str:
        meta_context = CompanionPair.for_context(context).meta_context
        try:
            return self.graphs.get_named_graph(
                meta_context, project_id, "", self.config.default_graph_format
            )
        except Exception as e:
            raise LifecycleError(f"Could not read metadata graph {meta_context}", e) from e

    def _fan_out(self, project_id: str, contexts: Sequence[str]) -> Dict[str, str]:
        """
        Read the metadata graph of each context in parallel.

        A missing metadata graph shows up as an empty string.
        """
        if not contexts:
            return {}
        workers = min(self.config.snapshot_workers, len(contexts))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._read_meta, c, project_id) for c in contexts]
            return {c: f.result() for c, f in zip(contexts, futures)}

    def _snapshot(self, project_id: str) -> ProjectSnapshot:
        urls = self.naming.project(project_id)
        metadata = self._read_graph(urls.meta_url, project_id)

        try:
            files = self.documents.list_files(project_id)
            named = self.graphs.get_all_named_graphs(project_id, "")
        except Exception as e:
            raise LifecycleError(f"Could not find project data for project with id {project_id}", e) from e

        document_urls = [f["url"] for f in files]
        graph_contexts = [
            g["contextID"] for g in named
            if not is_internal_graph(g["contextID"])
            and g["contextID"] not in document_urls
        ]

        return ProjectSnapshot(
            id=project_id,
            metadata=metadata,
            documents=self._fan_out(project_id, document_urls),
            graphs=self._fan_out(project_id, graph_contexts),
        )

    def get_project_snapshot(self, project_id: str, principal: Optional[Principal]) -> ProjectSnapshot:
        """
        Project metadata plus the metadata graph of every document and
        named graph. Metadata and ACL graphs are not listed as content.

        Raises:
            GraphNotFound: The project (or a listed metadata graph) is gone
        """
        _require_principal(principal)
        return self._snapshot(project_id)

    def get_project(
        self,
        project_id: str,
        principal: Optional[Principal],
        permissions: Sequence[str] = (),
        query: Optional[str] = None,
    ) -> ProjectSnapshot:
        """Snapshot with the caller's permissions and optional query results."""
        snapshot = self.get_project_snapshot(project_id, principal)
        snapshot.permissions = sorted(permissions)
        if query:
            snapshot.query_results = self.query_project(project_id, principal, query).to_dicts()
        return snapshot

    def list_projects(self, principal: Optional[Principal]) -> List[ProjectSnapshot]:
        """Every project owned by the caller."""
        principal = _require_principal(principal)
        return [self._snapshot(project_id) for project_id in list(principal.projects)]

    def list_public_projects(self) -> List[ProjectSnapshot]:
        """
        Every project whose ACL grants Read to anonymous agents.

        Needs a permission resolver; this call does not require a principal.
        """
        if self.permissions is None:
            raise LifecycleError("No permission resolver configured")
        try:
            records = self.documents.list_all_project_records()
        except Exception as e:
            raise LifecycleError("Could not get public projects", e) from e

        public = []
        for record in records:
            project_id = record["_id"]
            acl_url = self.naming.acl_url(project_id)
            try:
                modes = self.permissions.resolve_effective_modes(ANONYMOUS, acl_url, project_id)
            except Exception as e:
                raise LifecycleError("Could not get public projects", e) from e
            if ACL_READ in modes:
                public.append(self._snapshot(project_id))
        return public

    # =========================================================================
    # Query channels
    # =========================================================================

    def query_project(self, project_id: str, principal: Optional[Principal], query: str) -> pl.DataFrame:
        """
        Read channel over the whole project repository.

        Raises:
            InvalidQueryClass: The query contains a mutation token
            StoreReadFailed: The graph store could not evaluate the query
        """
        _require_principal(principal)
        ensure_read_query(query)
        return self._query(project_id, query, "query-project")

    def _query(self, project_id: str, query: str, operation: str) -> pl.DataFrame:
        try:
            return self.graphs.query_repository(project_id, query)
        except LifecycleError:
            raise
        except Exception as e:
            raise StoreReadFailed(operation, GRAPH_STORE, e) from e

    def update_project(self, project_id: str, principal: Optional[Principal], update: str) -> bool:
        """Update channel; the update text is forwarded unchanged."""
        _require_principal(principal)
        try:
            return self.graphs.update_repository_sparql(project_id, update)
        except Exception as e:
            raise StoreWriteFailed("update-repository", GRAPH_STORE, e) from e

    # =========================================================================
    # ACL resolution and metadata companions
    # =========================================================================

    def _graph_exists(self, context: str, project_id: str) -> bool:
        try:
            return bool(self.graphs.get_named_graph(context, project_id, "", "turtle"))
        except Exception as e:
            logger.debug(f"Existence check for {context} failed: {e}")
            return False

    def _plan_acl(self, project_id: str, choice: AclChoice) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Decide which ACL governs a new resource.

        Returns:
            (acl_url, custom_acl_graph); the second item is the graph to
            register when a custom ACL was uploaded, else None

        Raises:
            ValidationError: Custom ACL without a context URL, or one that
                names an existing graph or a metadata graph
            AclNotFound: The referenced ACL graph does not exist
        """
        if choice.acl_data is not None:
            if not choice.acl_name:
                raise ValidationError(
                    "When uploading a custom acl file, please set a context URL for it"
                )
            if (
                choice.acl_name in (self.naming.acl_url(project_id), self.naming.repo_url(project_id))
                or is_meta_url(choice.acl_name)
                or self._graph_exists(choice.acl_name, project_id)
            ):
                raise ValidationError(
                    f"Cannot upload a custom acl to {choice.acl_name}: the graph already exists "
                    "or is reserved for project metadata"
                )
            return choice.acl_name, {
                "context": choice.acl_name,
                "baseURI": base_uri(choice.acl_name),
                "data": choice.acl_data,
            }
        if choice.acl:
            if not self._graph_exists(choice.acl, project_id):
                raise AclNotFound(choice.acl)
            return choice.acl, None
        return self.naming.acl_url(project_id), None

    def _write_meta_graph(
        self,
        project_id: str,
        pair: CompanionPair,
        acl_url: str,
        request: ResourceRequest,
    ) -> str:
        meta = build_meta_graph(pair.context, acl_url, request.label, request.description)
        try:
            self.graphs.create_named_graph(project_id, {
                "context": pair.meta_context,
                "baseURI": base_uri(pair.meta_context),
                "data": meta,
            })
        except Exception as e:
            logger.error(f"Metadata graph {pair.meta_context} not created for {pair.context}: {e}")
            raise PartialFailure(pair.context, pair.meta_context, e) from e
        logger.debug(f"Created metadata graph {pair.meta_context}")
        return meta

    def _create_resource(
        self,
        project_id: str,
        request: ResourceRequest,
        step_name: str,
        collaborator: str,
        write: Callable[[str], str],
        undo: Callable[[str], Any],
        cancellation_token: Optional[CancellationToken],
    ) -> ResourceCreated:
        """
        Register the ACL (if uploaded) and write the resource as one saga,
        then write the metadata companion.

        ``write`` receives the ACL URL and returns the resource URL;
        ``undo`` receives that URL.
        """
        acl_url, custom_acl = self._plan_acl(project_id, request.acl)

        saga = self._new_saga(step_name, cancellation_token)
        if custom_acl is not None:
            saga.add_step(
                "register-custom-acl",
                self.graphs.create_named_graph, (project_id, custom_acl),
                compensation=self.graphs.delete_named_graph,
                compensation_args=(custom_acl["context"], project_id, ""),
                collaborator=GRAPH_STORE,
            )
        created: Dict[str, str] = {}

        def _write() -> str:
            created["url"] = write(acl_url)
            return created["url"]

        def _undo() -> None:
            if "url" in created:
                undo(created["url"])

        saga.add_step(step_name, _write, compensation=_undo, collaborator=collaborator)
        saga.execute()

        pair = CompanionPair.for_context(created["url"])
        meta = self._write_meta_graph(project_id, pair, acl_url, request)
        return ResourceCreated(
            url=pair.context,
            meta_context=pair.meta_context,
            meta_graph=meta,
            acl=acl_url,
        )

    # =========================================================================
    # Named graphs
    # =========================================================================

    def create_named_graph(
        self,
        project_id: str,
        principal: Optional[Principal],
        request: Optional[NamedGraphRequest] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ResourceCreated:
        """
        Create a named graph and its metadata graph.

        Raises:
            Unauthenticated: No principal
            ValidationError: Custom ACL without a context URL
            AclNotFound: The referenced ACL does not exist
            SagaFailed: The ACL or graph write failed (compensated)
            PartialFailure: The graph exists but its metadata graph does not
        """
        _require_principal(principal)
        request = request or NamedGraphRequest()
        pair = self.naming.new_graph(project_id)

        def write(acl_url: str) -> str:
            self.graphs.create_named_graph(project_id, {
                "context": pair.context,
                "baseURI": base_uri(pair.context),
                "acl": acl_url,
                "data": request.data if request.data else default_graph_content(pair.context),
            })
            return pair.context

        def undo(context: str) -> None:
            self.graphs.delete_named_graph(context, project_id, "")

        result = self._create_resource(
            project_id, request, "create-named-graph", GRAPH_STORE, write, undo, cancellation_token
        )
        logger.info(f"Created named graph {result.url}")
        return result

    def delete_named_graph(self, project_id: str, graph_id: str, principal: Optional[Principal]) -> bool:
        """
        Delete a named graph and then its metadata graph.

        Deleting an absent graph raises GraphNotFound every time and
        touches nothing.
        """
        _require_principal(principal)
        pair = CompanionPair.for_context(self.naming.graph_url(project_id, graph_id))
        if not self._graph_exists(pair.context, project_id):
            raise GraphNotFound(pair.context)

        try:
            self.graphs.delete_named_graph(pair.context, project_id, "")
        except Exception as e:
            raise StoreWriteFailed("delete-named-graph", GRAPH_STORE, e) from e
        try:
            self.graphs.delete_named_graph(pair.meta_context, project_id, "")
        except Exception as e:
            raise PartialFailure(
                pair.context, pair.meta_context, e,
                message=f"Deleted {pair.context} but could not delete its metadata graph {pair.meta_context}",
            ) from e

        logger.info(f"Deleted named graph {pair.context}")
        return True

    def read_scoped_graph_or_query(
        self,
        project_id: str,
        graph_id: str,
        principal: Optional[Principal],
        query: Optional[str] = None,
    ) -> ScopedRead:
        """
        Serialized content of one named graph, or a query scoped to it.

        Raises:
            GraphNotFound: No query given and the graph is empty or absent
            InvalidQueryClass: The query contains a mutation token
        """
        _require_principal(principal)
        return self._read_context(project_id, self.naming.graph_url(project_id, graph_id), query)

    def _read_context(self, project_id: str, context: str, query: Optional[str]) -> ScopedRead:
        if query:
            ensure_read_query(query)
            scoped = scope_query(query, [context])
            results = self._query(project_id, scoped, "scoped-read")
            return ScopedRead(context=context, query=scoped, results=results.to_dicts())
        return ScopedRead(context=context, graph=self._read_graph(context, project_id))

    # =========================================================================
    # Documents
    # =========================================================================

    def upload_document(
        self,
        project_id: str,
        principal: Optional[Principal],
        data: bytes,
        request: Optional[ResourceRequest] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ResourceCreated:
        """
        Store document bytes in the document store and describe the
        document with a metadata graph in the graph store.

        Raises the same errors as create_named_graph.
        """
        principal = _require_principal(principal)
        request = request or ResourceRequest()

        def write(acl_url: str) -> str:
            return self.documents.upload_document(project_id, data, principal.uri)

        def undo(url: str) -> None:
            self.documents.delete_document(url.rstrip("/").rsplit("/", 1)[-1])

        result = self._create_resource(
            project_id, request, "upload-document", DOCUMENT_STORE, write, undo, cancellation_token
        )
        logger.info(f"Uploaded document {result.url}")
        return result

    def get_document(self, project_id: str, file_id: str, principal: Optional[Principal]) -> bytes:
        _require_principal(principal)
        return self.documents.get_document(project_id, file_id)

    def read_document_graph(
        self,
        project_id: str,
        file_id: str,
        principal: Optional[Principal],
        query: Optional[str] = None,
    ) -> ScopedRead:
        """Scoped read of the graph stored under a document's URL."""
        _require_principal(principal)
        return self._read_context(project_id, self.naming.file_url(project_id, file_id), query)

    def delete_document(self, project_id: str, file_id: str, principal: Optional[Principal]) -> bool:
        """
        Delete a document, then the metadata graph at the URL the document
        store reports for it.
        """
        _require_principal(principal)
        try:
            url = self.documents.delete_document(file_id)
        except Exception as e:
            raise StoreWriteFailed("delete-document", DOCUMENT_STORE, e) from e

        pair = CompanionPair.for_context(url)
        try:
            self.graphs.delete_named_graph(pair.meta_context, project_id, "")
        except Exception as e:
            raise PartialFailure(
                pair.context, pair.meta_context, e,
                message=f"Deleted {pair.context} but could not delete its metadata graph {pair.meta_context}",
            ) from e

        logger.info(f"Deleted document {url}")
        return True
