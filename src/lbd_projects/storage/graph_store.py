"""
In-process graph store.

One rdflib Dataset per project repository. Named graphs are written from
Turtle, read back as Turtle, and queried with SPARQL. SELECT results are
returned as Polars DataFrames with one string column per variable.

Dataset semantics follow a shared multi-tenant store: a query that declares
no FROM / FROM NAMED clause is evaluated against the union of every graph
in the repository. A query that does declare them sees only those graphs.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import polars as pl
from rdflib import Dataset, Graph, URIRef
from rdflib.graph import DATASET_DEFAULT_GRAPH_ID
from rdflib.query import Result

from lbd_projects.query_scope import dataset_clauses, strip_dataset_clauses

logger = logging.getLogger(__name__)


def _named(context) -> Optional[URIRef]:
    """Graph identifier of a quad, or None for the default graph."""
    if context is None or context == DATASET_DEFAULT_GRAPH_ID:
        return None
    return context


class RepositoryNotFoundError(Exception):
    """Raised when a project repository does not exist."""
    pass


class RepositoryExistsError(Exception):
    """Raised when creating a repository that already exists."""
    pass


def result_to_dataframe(result: Result) -> pl.DataFrame:
    """Convert an rdflib SELECT/ASK result to a Polars DataFrame."""
    if result.type == "ASK":
        return pl.DataFrame({"boolean": [bool(result.askAnswer)]})
    if result.type != "SELECT":
        graph = result.graph
        rows = [(str(s), str(p), str(o)) for s, p, o in graph] if graph is not None else []
        return pl.DataFrame(
            {
                "subject": [r[0] for r in rows],
                "predicate": [r[1] for r in rows],
                "object": [r[2] for r in rows],
            },
            schema={"subject": pl.Utf8, "predicate": pl.Utf8, "object": pl.Utf8},
        )

    variables = [str(v) for v in result.vars or []]
    columns: Dict[str, List[Optional[str]]] = {v: [] for v in variables}
    for row in result:
        for var in variables:
            value = row[var]
            columns[var].append(str(value) if value is not None else None)
    return pl.DataFrame(columns, schema={v: pl.Utf8 for v in variables})


class MemoryGraphStore:
    """
    Thread-safe in-memory graph store.

    Usage:
        store = MemoryGraphStore()
        store.create_repository("Atrium", project_id)
        store.create_named_graph(project_id, {"context": ctx, "baseURI": ctx + "#", "data": ttl})
        store.get_named_graph(ctx, project_id)
    """

    def __init__(self):
        self._repositories: Dict[str, Dataset] = {}
        self._titles: Dict[str, str] = {}
        self._lock = threading.RLock()

    def _dataset(self, project_id: str) -> Dataset:
        dataset = self._repositories.get(project_id)
        if dataset is None:
            raise RepositoryNotFoundError(f"Repository '{project_id}' does not exist")
        return dataset

    def repository_exists(self, project_id: str) -> bool:
        with self._lock:
            return project_id in self._repositories

    def create_repository(self, title: str, project_id: str) -> bool:
        with self._lock:
            if project_id in self._repositories:
                raise RepositoryExistsError(f"Repository '{project_id}' already exists")
            self._repositories[project_id] = Dataset()
            self._titles[project_id] = title
        logger.info(f"Created repository {project_id} ({title})")
        return True

    def delete_repository(self, project_id: str) -> bool:
        with self._lock:
            self._dataset(project_id)
            del self._repositories[project_id]
            self._titles.pop(project_id, None)
        logger.info(f"Deleted repository {project_id}")
        return True

    def create_named_graph(self, project_id: str, graph: Dict[str, Any]) -> str:
        """
        Parse Turtle into a named graph.

        Args:
            project_id: Target repository
            graph: ``context``, ``baseURI`` and ``data`` (Turtle). An ``acl``
                key is accepted and ignored; the ACL link lives in the
                metadata graph.

        Returns:
            The context URI
        """
        context = graph["context"]
        data = graph.get("data") or ""
        with self._lock:
            dataset = self._dataset(project_id)
            parsed = Graph()
            parsed.parse(data=data, format="turtle", publicID=graph.get("baseURI") or context)
            target = dataset.graph(URIRef(context))
            for triple in parsed:
                target.add(triple)
        logger.debug(f"Stored {len(parsed)} triple(s) in {context}")
        return context

    def get_named_graph(
        self,
        context: str,
        project_id: str,
        auth_token: str = "",
        format: str = "turtle",
    ) -> str:
        """Serialized graph content; empty string when the graph is empty or absent."""
        with self._lock:
            dataset = self._dataset(project_id)
            identifier = URIRef(context)
            if not any(True for _ in dataset.quads((None, None, None, identifier))):
                return ""
            graph = Graph()
            for s, p, o, _ in dataset.quads((None, None, None, identifier)):
                graph.add((s, p, o))
        return graph.serialize(format=format)

    def delete_named_graph(self, context: str, project_id: str, auth_token: str = "") -> bool:
        with self._lock:
            dataset = self._dataset(project_id)
            dataset.remove_graph(URIRef(context))
        logger.debug(f"Deleted named graph {context}")
        return True

    def get_all_named_graphs(self, project_id: str, auth_token: str = "") -> List[Dict[str, str]]:
        with self._lock:
            dataset = self._dataset(project_id)
            contexts = sorted({
                str(_named(g)) for _, _, _, g in dataset.quads((None, None, None, None))
                if _named(g) is not None
            })
        return [{"contextID": c} for c in contexts]

    def _query_dataset(self, dataset: Dataset, query: str) -> Dataset:
        default, named = dataset_clauses(query)
        scoped = Dataset()
        if not default and not named:
            for s, p, o, _ in dataset.quads((None, None, None, None)):
                scoped.add((s, p, o))
            for s, p, o, g in dataset.quads((None, None, None, None)):
                if _named(g) is not None:
                    scoped.graph(_named(g)).add((s, p, o))
            return scoped
        for context in default:
            for s, p, o, _ in dataset.quads((None, None, None, URIRef(context))):
                scoped.add((s, p, o))
        for context in named:
            target = scoped.graph(URIRef(context))
            for s, p, o, _ in dataset.quads((None, None, None, URIRef(context))):
                target.add((s, p, o))
        return scoped

    def query_repository(self, project_id: str, query: str) -> pl.DataFrame:
        """
        Evaluate a SPARQL query.

        The dataset clauses are resolved here and stripped from the text
        handed to rdflib, which would otherwise try to dereference them.
        rdflib evaluates the default graph as the union of the query
        dataset, so FROM NAMED graphs also match unscoped patterns; scoped
        queries declare the same contexts in both clauses.
        """
        with self._lock:
            dataset = self._dataset(project_id)
            scoped = self._query_dataset(dataset, query)
        result = scoped.query(strip_dataset_clauses(query))
        return result_to_dataframe(result)

    def update_repository_sparql(self, project_id: str, update: str) -> bool:
        with self._lock:
            dataset = self._dataset(project_id)
            dataset.update(update)
        return True

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "repositories": len(self._repositories),
                "quads": sum(1 for d in self._repositories.values() for _ in d.quads((None, None, None, None))),
            }
