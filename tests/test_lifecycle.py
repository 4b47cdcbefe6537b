"""
Tests for the project lifecycle service.

Stores are the in-memory implementations with failure injection
(see conftest.py).
"""

import pytest

from lbd_projects.acl import ACL_READ, list_authorizations
from lbd_projects.errors import (
    AclNotFound,
    GraphNotFound,
    InvalidQueryClass,
    LifecycleError,
    PartialFailure,
    ProjectCreationFailed,
    ProjectDeletionFailed,
    SagaCancelled,
    SagaCompensationFailed,
    SagaFailed,
    StoreReadFailed,
    StoreWriteFailed,
    Unauthenticated,
    ValidationError,
)
from lbd_projects.lifecycle import ProjectService
from lbd_projects.metadata import read_meta_graph
from lbd_projects.models import AclChoice, CreateProjectRequest, NamedGraphRequest, ResourceRequest
from lbd_projects.saga import CancellationToken
from lbd_projects.storage import DocumentNotFoundError

TTL_ONE = '<http://example.org/a> <http://example.org/p> "one" .'
TTL_TWO = '<http://example.org/b> <http://example.org/p> "two" .'
PREDICATE_QUERY = "SELECT ?o WHERE { ?s <http://example.org/p> ?o }"


def graph_id(url):
    return url.rsplit("/", 1)[-1]


def custom_acl(owner, acl_url):
    return (
        "@prefix acl: <http://www.w3.org/ns/auth/acl#> .\n"
        f"<{acl_url}#owner> a acl:Authorization ;\n"
        f"    acl:agent <{owner.uri}> ;\n"
        f"    acl:accessTo <{acl_url}> ;\n"
        "    acl:mode acl:Read, acl:Write, acl:Control .\n"
    )


class TestCreateProject:
    """Project creation across both stores."""

    def test_project_reachable_everywhere(self, service, graphs, documents, naming, alice):
        created = service.create_project("Atrium", "Atrium renovation", False, alice)
        urls = naming.project(created.id)

        assert graphs.repository_exists(created.id)
        assert documents.get_project_record(created.id)["url"] == urls.repo_url
        assert alice.projects == [created.id]
        assert documents.load_principal(alice.uri).projects == [created.id]
        assert created.message == "Project successfully created"

    def test_open_project_graphs(self, service, graphs, naming, alice):
        created = service.create_project("Atrium", "Atrium renovation", True, alice)
        urls = naming.project(created.id)

        acl = graphs.get_named_graph(urls.acl_url, created.id)
        auths = list_authorizations(acl, urls.acl_url)
        assert len(auths) == 2
        assert [a.is_public for a in auths] == [False, True]
        assert auths[0].agent == alice.uri

        meta = read_meta_graph(graphs.get_named_graph(urls.meta_url, created.id), urls.repo_url)
        assert meta == {"label": "Atrium", "description": "Atrium renovation", "acl": urls.acl_url}
        assert read_meta_graph(created.metadata, urls.repo_url) == meta

    def test_closed_project_acl(self, service, graphs, naming, alice):
        created = service.create_project("Atrium", "", False, alice)
        urls = naming.project(created.id)

        auths = list_authorizations(graphs.get_named_graph(urls.acl_url, created.id), urls.acl_url)
        assert len(auths) == 1
        assert not auths[0].is_public

    def test_from_request_model(self, service, graphs, naming, alice):
        request = CreateProjectRequest(title="Atrium", open=True)

        created = service.create_project_from_request(request, alice)

        urls = naming.project(created.id)
        assert len(list_authorizations(graphs.get_named_graph(urls.acl_url, created.id), urls.acl_url)) == 2
        assert read_meta_graph(created.metadata, urls.repo_url)["description"] is None

    def test_project_ids_are_unique(self, service, alice):
        ids = {service.create_project(f"P{i}", "", False, alice).id for i in range(5)}
        assert len(ids) == 5

    def test_document_store_failure_compensates(self, service, graphs, documents, alice):
        documents.fail("create_project_record")

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", False, alice)

        error = exc_info.value
        assert error.step == "create-project-record"
        assert error.compensated
        assert "Undoing past operations: SUCCESS" in str(error)
        assert graphs.stats()["repositories"] == 0
        assert documents.list_all_project_records() == []
        assert alice.projects == []

    def test_graph_store_failure_touches_nothing_else(self, service, graphs, documents, alice):
        graphs.fail("create_repository")

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", False, alice)

        assert exc_info.value.step == "create-project-repository"
        assert documents.calls == []

    def test_compensation_failure_is_reported(self, service, graphs, documents, alice):
        documents.fail("create_project_record")
        graphs.fail("delete_repository")

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", False, alice)

        error = exc_info.value
        assert not error.compensated
        assert "delete_repository unavailable" in error.cleanup_outcome
        assert isinstance(error.__cause__, SagaCompensationFailed)
        # The repository could not be removed.
        assert graphs.stats()["repositories"] == 1

    def test_persist_failure_keeps_owner_list(self, service, graphs, documents, alice):
        documents.fail("persist")

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", False, alice)

        assert exc_info.value.step == "save-project-to-creator"
        assert alice.projects == []
        assert documents.list_all_project_records() == []
        assert graphs.stats()["repositories"] == 0

    def test_graph_write_after_saga_rolls_back(self, service, graphs, documents, alice):
        graphs.fail("create_named_graph", when=lambda pid, graph: graph["context"].endswith("/.acl"))

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", True, alice)

        error = exc_info.value
        assert error.step == "create-project-graphs"
        assert isinstance(error.cause, StoreWriteFailed)
        assert error.compensated
        assert graphs.stats()["repositories"] == 0
        assert documents.list_all_project_records() == []
        assert alice.projects == []
        assert documents.load_principal(alice.uri).projects == []

    def test_cancelled_before_start(self, service, graphs, documents, alice):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ProjectCreationFailed) as exc_info:
            service.create_project("Atrium", "", False, alice, cancellation_token=token)

        assert isinstance(exc_info.value.cause, SagaCancelled)
        assert graphs.calls == []
        assert documents.calls == []

    def test_unauthenticated(self, service, graphs, documents):
        with pytest.raises(Unauthenticated):
            service.create_project("Atrium", "", False, None)
        assert graphs.calls == []
        assert documents.calls == []


class TestDeleteProject:
    """Project deletion and its compensation."""

    @pytest.fixture
    def project(self, service, alice):
        return service.create_project("Atrium", "", False, alice).id

    def test_delete_removes_everything(self, service, graphs, documents, alice, project):
        assert service.delete_project(project, alice)

        assert not graphs.repository_exists(project)
        assert documents.get_project_record(project) is None
        assert project not in alice.projects
        assert documents.load_principal(alice.uri).projects == []
        with pytest.raises(GraphNotFound):
            service.get_project_snapshot(project, alice)

    def test_repository_failure_restores_owner_and_record(self, service, graphs, documents, naming, alice, project):
        graphs.fail("delete_repository")

        with pytest.raises(ProjectDeletionFailed) as exc_info:
            service.delete_project(project, alice)

        error = exc_info.value
        assert error.step == "delete-project-repository"
        assert error.compensated
        assert project in str(error)
        assert documents.get_project_record(project)["url"] == naming.repo_url(project)
        assert alice.projects == [project]
        assert documents.load_principal(alice.uri).projects == [project]
        assert service.get_project_snapshot(project, alice).id == project

    def test_record_failure_restores_owner(self, service, graphs, documents, alice, project):
        documents.fail("delete_project_record")

        with pytest.raises(ProjectDeletionFailed) as exc_info:
            service.delete_project(project, alice)

        assert exc_info.value.step == "delete-project-record"
        assert alice.projects == [project]
        assert "delete_repository" not in graphs.calls

    def test_unauthenticated(self, service, graphs, documents, project):
        graphs.calls.clear()
        documents.calls.clear()

        with pytest.raises(Unauthenticated):
            service.delete_project(project, None)
        assert graphs.calls == []
        assert documents.calls == []


class TestSnapshots:
    """Snapshots, listings and the project-wide query channels."""

    @pytest.fixture
    def project(self, service, alice):
        return service.create_project("Atrium", "Atrium renovation", True, alice).id

    def test_snapshot_lists_content_only(self, service, naming, alice, project):
        graph = service.create_named_graph(project, alice, NamedGraphRequest(label="site", data=TTL_ONE))
        document = service.upload_document(project, alice, b"IFC-DATA", ResourceRequest(label="model"))

        snapshot = service.get_project_snapshot(project, alice)

        assert snapshot.id == project
        assert read_meta_graph(snapshot.metadata, naming.repo_url(project))["label"] == "Atrium"
        assert list(snapshot.graphs) == [graph.url]
        assert read_meta_graph(snapshot.graphs[graph.url], graph.url)["label"] == "site"
        assert list(snapshot.documents) == [document.url]
        assert read_meta_graph(snapshot.documents[document.url], document.url)["label"] == "model"

    def test_custom_acl_graph_is_not_listed(self, service, naming, alice, project):
        acl_name = naming.graph_url(project, "custom.acl")
        service.create_named_graph(project, alice, NamedGraphRequest(
            acl=AclChoice(acl_name=acl_name, acl_data=custom_acl(alice, acl_name)),
        ))

        snapshot = service.get_project_snapshot(project, alice)

        assert acl_name not in snapshot.graphs
        assert len(snapshot.graphs) == 1

    def test_get_project_with_query(self, service, alice, project):
        service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))

        snapshot = service.get_project(project, alice, permissions=[ACL_READ], query=PREDICATE_QUERY)

        assert snapshot.permissions == [ACL_READ]
        assert snapshot.query_results == [{"o": "one"}]

    def test_list_projects(self, service, alice, bob, project):
        other = service.create_project("Tower", "", False, alice).id
        service.create_project("Bridge", "", False, bob)

        assert [s.id for s in service.list_projects(alice)] == [project, other]

    def test_list_public_projects(self, service, alice, bob, project):
        service.create_project("Private", "", False, alice)
        shared = service.create_project("Shared", "", True, bob).id

        assert sorted(s.id for s in service.list_public_projects()) == sorted([project, shared])

    def test_query_project_sees_whole_repository(self, service, alice, project):
        service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_TWO))

        df = service.query_project(project, alice, PREDICATE_QUERY)

        assert sorted(df["o"].to_list()) == ["one", "two"]

    def test_query_project_gate(self, service, graphs, alice, project):
        with pytest.raises(InvalidQueryClass):
            service.query_project(project, alice, "DELETE WHERE { ?s ?p ?o }")

    def test_update_project(self, service, naming, alice, project):
        context = naming.graph_url(project, "manual")
        service.update_project(
            project, alice,
            f'INSERT DATA {{ GRAPH <{context}> {{ <http://example.org/c> <http://example.org/p> "three" }} }}',
        )

        df = service.query_project(project, alice, PREDICATE_QUERY)
        assert df["o"].to_list() == ["three"]

    def test_public_listing_resolver_failure(self, config, documents, graphs, alice, project):
        class UnavailableResolver:
            def resolve_effective_modes(self, principal, acl_url, resource_id):
                raise RuntimeError("resolver unavailable")

        service = ProjectService(config, documents, graphs, permissions=UnavailableResolver())

        with pytest.raises(LifecycleError) as exc_info:
            service.list_public_projects()

        assert "Could not get public projects" in str(exc_info.value)
        assert "resolver unavailable" in str(exc_info.value)

    def test_malformed_query_is_structured(self, service, alice, project):
        with pytest.raises(StoreReadFailed) as exc_info:
            service.query_project(project, alice, "SELECT ?s WHERE { ?s ?p }")

        error = exc_info.value
        assert error.to_dict()["kind"] == "StoreReadFailed"
        assert error.operation == "query-project"
        assert error.cause is not None

    def test_query_unknown_project(self, service, alice):
        with pytest.raises(StoreReadFailed):
            service.query_project("missing", alice, PREDICATE_QUERY)

    def test_update_unknown_project(self, service, alice):
        with pytest.raises(StoreWriteFailed):
            service.update_project("missing", alice, "INSERT DATA { <http://a> <http://b> <http://c> }")

    def test_snapshot_of_unknown_project(self, service, alice):
        with pytest.raises(GraphNotFound):
            service.get_project_snapshot("missing", alice)


class TestNamedGraphs:
    """Named graphs with metadata companions and scoped reads."""

    @pytest.fixture
    def project(self, service, alice):
        return service.create_project("Atrium", "", False, alice).id

    def test_create_with_project_acl(self, service, graphs, naming, alice, project):
        result = service.create_named_graph(project, alice, NamedGraphRequest(label="site", description="Site model"))

        assert result.url.startswith(naming.repo_url(project) + "/graphs/")
        assert result.meta_context == result.url + ".meta"
        assert result.acl == naming.acl_url(project)
        assert "NamedGraph" in graphs.get_named_graph(result.url, project)
        meta = read_meta_graph(graphs.get_named_graph(result.meta_context, project), result.url)
        assert meta == {"label": "site", "description": "Site model", "acl": result.acl}

    def test_existing_acl(self, service, naming, alice, project):
        result = service.create_named_graph(project, alice, NamedGraphRequest(
            acl=AclChoice(acl=naming.acl_url(project)),
        ))
        assert result.acl == naming.acl_url(project)

    def test_missing_acl(self, service, graphs, naming, alice, project):
        missing = naming.graph_url(project, "nothing.acl")
        before = len(graphs.calls)

        with pytest.raises(AclNotFound) as exc_info:
            service.create_named_graph(project, alice, NamedGraphRequest(acl=AclChoice(acl=missing)))

        assert exc_info.value.acl_url == missing
        assert "create_named_graph" not in graphs.calls[before:]

    def test_custom_acl_without_name(self, service, graphs, alice, project):
        before = len(graphs.calls)

        with pytest.raises(ValidationError):
            service.create_named_graph(project, alice, NamedGraphRequest(
                acl=AclChoice(acl_data="<http://a> <http://b> <http://c> ."),
            ))

        assert graphs.calls[before:] == []

    def test_custom_acl(self, service, graphs, naming, alice, project):
        acl_name = naming.graph_url(project, "custom.acl")
        result = service.create_named_graph(project, alice, NamedGraphRequest(
            acl=AclChoice(acl_name=acl_name, acl_data=custom_acl(alice, acl_name)),
        ))

        assert result.acl == acl_name
        auths = list_authorizations(graphs.get_named_graph(acl_name, project), acl_name)
        assert [a.agent for a in auths] == [alice.uri]
        assert read_meta_graph(result.meta_graph, result.url)["acl"] == acl_name

    def test_custom_acl_cannot_replace_project_acl(self, service, graphs, naming, alice, project):
        acl_url = naming.acl_url(project)
        before = graphs.get_named_graph(acl_url, project)
        graphs.fail("create_named_graph", when=lambda pid, graph: "/graphs/" in graph["context"])

        with pytest.raises(ValidationError):
            service.create_named_graph(project, alice, NamedGraphRequest(
                acl=AclChoice(acl_name=acl_url, acl_data=custom_acl(alice, acl_url)),
            ))

        assert graphs.get_named_graph(acl_url, project) == before

    def test_custom_acl_cannot_reuse_existing_graph(self, service, graphs, naming, alice, project):
        acl_name = naming.graph_url(project, "custom.acl")
        service.create_named_graph(project, alice, NamedGraphRequest(
            acl=AclChoice(acl_name=acl_name, acl_data=custom_acl(alice, acl_name)),
        ))
        existing = service.create_named_graph(project, alice)
        before = len(graphs.calls)

        for target in (acl_name, existing.url, existing.meta_context, naming.project(project).meta_url):
            with pytest.raises(ValidationError):
                service.create_named_graph(project, alice, NamedGraphRequest(
                    acl=AclChoice(acl_name=target, acl_data=custom_acl(alice, target)),
                ))

        assert graphs.calls[before:] == []
        assert graphs.get_named_graph(acl_name, project) != ""

    def test_graph_failure_removes_custom_acl(self, service, graphs, naming, alice, project):
        acl_name = naming.graph_url(project, "custom.acl")
        graphs.fail(
            "create_named_graph",
            when=lambda pid, graph: "/graphs/" in graph["context"] and not graph["context"].endswith(".acl"),
        )

        with pytest.raises(SagaFailed) as exc_info:
            service.create_named_graph(project, alice, NamedGraphRequest(
                acl=AclChoice(acl_name=acl_name, acl_data=custom_acl(alice, acl_name)),
            ))

        assert exc_info.value.step == "create-named-graph"
        assert exc_info.value.compensated
        assert graphs.get_named_graph(acl_name, project) == ""

    def test_metadata_failure_is_partial(self, service, graphs, alice, project):
        graphs.fail("create_named_graph", when=lambda pid, graph: graph["context"].endswith(".meta"))

        with pytest.raises(PartialFailure) as exc_info:
            service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))

        error = exc_info.value
        assert error.companion == error.resource + ".meta"
        assert graphs.get_named_graph(error.resource, project) != ""
        assert graphs.get_named_graph(error.companion, project) == ""

    def test_delete(self, service, graphs, alice, project):
        result = service.create_named_graph(project, alice)

        assert service.delete_named_graph(project, graph_id(result.url), alice)

        assert graphs.get_named_graph(result.url, project) == ""
        assert graphs.get_named_graph(result.meta_context, project) == ""
        assert service.get_project_snapshot(project, alice).graphs == {}

    def test_delete_absent_twice(self, service, graphs, alice, project):
        result = service.create_named_graph(project, alice)
        service.delete_named_graph(project, graph_id(result.url), alice)
        before = len(graphs.calls)

        for _ in range(2):
            with pytest.raises(GraphNotFound):
                service.delete_named_graph(project, graph_id(result.url), alice)

        assert "delete_named_graph" not in graphs.calls[before:]

    def test_delete_metadata_failure_is_partial(self, service, graphs, alice, project):
        result = service.create_named_graph(project, alice)
        graphs.fail("delete_named_graph", when=lambda context, pid: context.endswith(".meta"))

        with pytest.raises(PartialFailure) as exc_info:
            service.delete_named_graph(project, graph_id(result.url), alice)

        assert exc_info.value.companion == result.meta_context
        assert graphs.get_named_graph(result.url, project) == ""
        assert graphs.get_named_graph(result.meta_context, project) != ""

    def test_read_graph(self, service, alice, project):
        result = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))

        read = service.read_scoped_graph_or_query(project, graph_id(result.url), alice)

        assert read.context == result.url
        assert '"one"' in read.graph
        assert read.results is None

    def test_read_absent_graph(self, service, alice, project):
        with pytest.raises(GraphNotFound):
            service.read_scoped_graph_or_query(project, "nothing", alice)

    def test_scoped_query_excludes_other_graphs(self, service, alice, project):
        first = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_TWO))

        read = service.read_scoped_graph_or_query(project, graph_id(first.url), alice, PREDICATE_QUERY)

        assert read.results == [{"o": "one"}]
        assert f"FROM <{first.url}>" in read.query
        assert read.graph is None

    def test_scoped_query_overrides_caller_dataset(self, service, alice, project):
        first = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        second = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_TWO))
        query = f"SELECT ?o FROM <{second.url}> WHERE {{ ?s <http://example.org/p> ?o }}"

        read = service.read_scoped_graph_or_query(project, graph_id(first.url), alice, query)

        assert read.results == [{"o": "one"}]

    def test_scoped_mutation_rejected(self, service, alice, project):
        result = service.create_named_graph(project, alice)
        with pytest.raises(InvalidQueryClass):
            service.read_scoped_graph_or_query(
                project, graph_id(result.url), alice, "DELETE WHERE { ?s ?p ?o }"
            )


    def test_malformed_scoped_query_is_structured(self, service, alice, project):
        result = service.create_named_graph(project, alice)

        with pytest.raises(StoreReadFailed) as exc_info:
            service.read_scoped_graph_or_query(
                project, graph_id(result.url), alice, "SELECT ?s WHERE { ?s ?p }"
            )

        assert exc_info.value.operation == "scoped-read"

    def test_nested_dataset_clause_cannot_escape_scope(self, service, alice, project):
        # Same triple in both graphs; only the scoped graph may answer.
        first = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        second = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        query = (
            f"SELECT ?g ?o FROM FROM <http://example.org/x> <{second.url}> "
            f"FROM NAMED FROM NAMED <http://example.org/x> <{second.url}> "
            "WHERE { GRAPH ?g { ?s <http://example.org/p> ?o } }"
        )

        read = service.read_scoped_graph_or_query(project, graph_id(first.url), alice, query)

        assert read.results == [{"g": first.url, "o": "one"}]
        assert second.url not in read.query

    def test_variable_named_where_in_scoped_query(self, service, alice, project):
        first = service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_ONE))
        service.create_named_graph(project, alice, NamedGraphRequest(data=TTL_TWO))

        read = service.read_scoped_graph_or_query(
            project, graph_id(first.url), alice,
            "SELECT ?where WHERE { ?from <http://example.org/p> ?where }",
        )

        assert read.results == [{"where": "one"}]


class TestDocuments:
    """Document uploads and their metadata companions."""

    @pytest.fixture
    def project(self, service, alice):
        return service.create_project("Atrium", "", False, alice).id

    def test_upload_and_delete(self, service, graphs, documents, naming, alice, project):
        result = service.upload_document(project, alice, b"IFC-DATA", ResourceRequest(label="model"))
        file_id = graph_id(result.url)

        assert result.url == naming.file_url(project, file_id)
        assert service.get_document(project, file_id, alice) == b"IFC-DATA"
        assert graphs.get_named_graph(result.meta_context, project) != ""

        assert service.delete_document(project, file_id, alice)

        assert graphs.get_named_graph(result.meta_context, project) == ""
        with pytest.raises(DocumentNotFoundError):
            service.get_document(project, file_id, alice)

    def test_upload_failure_removes_custom_acl(self, service, graphs, documents, naming, alice, project):
        acl_name = naming.graph_url(project, "doc.acl")
        documents.fail("upload_document")

        with pytest.raises(SagaFailed) as exc_info:
            service.upload_document(project, alice, b"x", ResourceRequest(
                acl=AclChoice(acl_name=acl_name, acl_data=custom_acl(alice, acl_name)),
            ))

        assert exc_info.value.step == "upload-document"
        assert exc_info.value.cause.collaborator == "document store"
        assert graphs.get_named_graph(acl_name, project) == ""

    def test_metadata_failure_keeps_document(self, service, graphs, documents, alice, project):
        graphs.fail("create_named_graph", when=lambda pid, graph: graph["context"].endswith(".meta"))

        with pytest.raises(PartialFailure) as exc_info:
            service.upload_document(project, alice, b"x")

        file_id = graph_id(exc_info.value.resource)
        assert service.get_document(project, file_id, alice) == b"x"

    def test_delete_metadata_failure_is_partial(self, service, graphs, alice, project):
        result = service.upload_document(project, alice, b"x")
        graphs.fail("delete_named_graph")

        with pytest.raises(PartialFailure) as exc_info:
            service.delete_document(project, graph_id(result.url), alice)

        assert exc_info.value.resource == result.url

    def test_delete_unknown_document(self, service, alice, project):
        with pytest.raises(StoreWriteFailed):
            service.delete_document(project, "missing", alice)

    def test_read_document_graph(self, service, graphs, alice, project):
        result = service.upload_document(project, alice, b"x")
        graphs.create_named_graph(project, {"context": result.url, "baseURI": result.url + "#", "data": TTL_ONE})

        read = service.read_document_graph(project, graph_id(result.url), alice, PREDICATE_QUERY)
        assert read.results == [{"o": "one"}]

        with pytest.raises(GraphNotFound):
            service.read_document_graph(project, "missing", alice)


class TestAuthentication:
    """Every operation refuses an absent principal before touching a store."""

    @pytest.fixture
    def project(self, service, alice):
        return service.create_project("Atrium", "", False, alice).id

    @pytest.mark.parametrize("call", [
        lambda s, p: s.get_project_snapshot(p, None),
        lambda s, p: s.get_project(p, None),
        lambda s, p: s.list_projects(None),
        lambda s, p: s.query_project(p, None, PREDICATE_QUERY),
        lambda s, p: s.update_project(p, None, "INSERT DATA { <http://a> <http://b> <http://c> }"),
        lambda s, p: s.create_named_graph(p, None),
        lambda s, p: s.delete_named_graph(p, "g1", None),
        lambda s, p: s.read_scoped_graph_or_query(p, "g1", None),
        lambda s, p: s.upload_document(p, None, b"x"),
        lambda s, p: s.get_document(p, "f1", None),
        lambda s, p: s.read_document_graph(p, "f1", None),
        lambda s, p: s.delete_document(p, "f1", None),
    ])
    def test_unauthenticated(self, service, graphs, documents, project, call):
        graphs.calls.clear()
        documents.calls.clear()

        with pytest.raises(Unauthenticated):
            call(service, project)

        assert graphs.calls == []
        assert documents.calls == []
