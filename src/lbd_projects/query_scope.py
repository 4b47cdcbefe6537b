"""
Query scoping and read/write classification.

Provides:
- scope_query: restrict a SPARQL query to explicit named-graph contexts
- is_read_query / ensure_read_query: the textual gate for the read channel
- dataset_clauses: the FROM / FROM NAMED contexts a query declares

Projects share one backing graph store, so a query that does not declare
its dataset sees every graph in the repository. Scoping removes whatever
dataset the caller declared and pins both the default graph and the set of
named graphs to the given contexts.

The read gate is a plain token-containment check, not a parse. A request
is a read if, lower-cased and percent-decoded, it contains ``select`` and
contains neither ``insert`` nor ``delete``. It will reject a harmless query
that merely mentions those words in a literal; that is accepted behavior.
"""
from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple
from urllib.parse import unquote

from lbd_projects.errors import InvalidQueryClass, ValidationError

logger = logging.getLogger(__name__)

READ_TOKEN = "select"
MUTATION_TOKENS = ("insert", "delete")

# IRIs, string literals and comments; masked before keyword search.
_OPAQUE = re.compile(
    r'"""[\s\S]*?"""'
    r"|'''[\s\S]*?'''"
    r'|"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|<[^<>\"{}|^`\\\s]*>"
    r"|#[^\n]*"
)
# Keywords preceded by ?, $ or : are variables or local names.
_DATASET_CLAUSE = re.compile(
    r"(?<![?$:\w])FROM\s+(NAMED\s+)?(<[^<>]*>|[A-Za-z_][\w.\-]*:[\w.\-]*|:[\w.\-]*)",
    re.IGNORECASE,
)
_WHERE = re.compile(r"(?<![?$:\w])WHERE\b", re.IGNORECASE)
_PREFIX_DECL = re.compile(r"\bPREFIX\s+([A-Za-z_][\w.\-]*)?:\s*<([^<>\s]*)>", re.IGNORECASE)


def _mask(query: str) -> str:
    """Blank out IRIs, literals and comments, keeping offsets stable."""
    def _blank(match: re.Match) -> str:
        text = match.group(0)
        if text.startswith("<"):
            return "<" + " " * (len(text) - 2) + ">"
        return " " * len(text)

    return _OPAQUE.sub(_blank, query)


def _check_context(context: str) -> str:
    if not context or any(c in context for c in '<>"{}|^`\\') or any(c.isspace() for c in context):
        raise ValidationError(f"Invalid graph context: {context!r}")
    return context


def strip_dataset_clauses(query: str) -> str:
    """
    Remove every FROM / FROM NAMED clause.

    Runs until no clause is left, since removing one clause can join the
    text around it into a new one (``FROM FROM <a> <b>``).
    """
    while True:
        # FROM inside literals and comments is masked out and left alone.
        spans = [m.span() for m in _DATASET_CLAUSE.finditer(_mask(query))]
        if not spans:
            return query
        for start, end in reversed(spans):
            query = query[:start] + query[end:]


def scope_query(query: str, contexts: Sequence[str]) -> str:
    """
    Rewrite a query so it only evaluates against ``contexts``.

    Existing FROM / FROM NAMED clauses are removed, then one FROM and one
    FROM NAMED clause per context is inserted in front of the WHERE clause
    (or the first group pattern when WHERE is omitted). Unscoped triple
    patterns therefore match only the given graphs, and ``GRAPH ?g``
    ranges only over them.

    Args:
        query: SPARQL query text
        contexts: One or more named-graph context URIs

    Returns:
        The rewritten query text

    Raises:
        ValidationError: If no context is given or a context is not an IRI
    """
    if not contexts:
        raise ValidationError("At least one graph context is required to scope a query")
    checked = [_check_context(c) for c in contexts]

    stripped = strip_dataset_clauses(query)
    clauses = " ".join(
        [f"FROM <{c}>" for c in checked] + [f"FROM NAMED <{c}>" for c in checked]
    )

    masked = _mask(stripped)
    where = _WHERE.search(masked)
    if where:
        pos = where.start()
    else:
        brace = masked.find("{")
        pos = brace if brace >= 0 else len(stripped)

    head = stripped[:pos].rstrip()
    tail = stripped[pos:]
    scoped = f"{head}\n{clauses}\n{tail}" if tail else f"{head}\n{clauses}"
    logger.debug(f"Scoped query to {len(checked)} context(s)")
    return scoped


def dataset_clauses(query: str) -> Tuple[List[str], List[str]]:
    """
    Contexts declared by FROM and FROM NAMED clauses.

    Prefixed names are expanded with the query's PREFIX declarations.

    Returns:
        (default_graphs, named_graphs)
    """
    prefixes = {(m.group(1) or ""): m.group(2) for m in _PREFIX_DECL.finditer(query)}
    masked = _mask(query)
    default: List[str] = []
    named: List[str] = []
    for match in _DATASET_CLAUSE.finditer(masked):
        start, end = match.span(2)
        term = query[start:end]
        if term.startswith("<"):
            iri = term[1:-1]
        else:
            prefix, _, local = term.partition(":")
            if prefix not in prefixes:
                raise ValidationError(f"Undeclared prefix in dataset clause: {term}")
            iri = prefixes[prefix] + local
        (named if match.group(1) else default).append(iri)
    return default, named


def _normalize(query: str) -> str:
    return unquote(query).lower()


def is_read_query(query: str) -> bool:
    """True if the text may be served by the read channel."""
    normalized = _normalize(query)
    if READ_TOKEN not in normalized:
        return False
    return not any(token in normalized for token in MUTATION_TOKENS)


def ensure_read_query(query: str) -> str:
    """
    Gate for the read channel.

    Raises:
        InvalidQueryClass: If the query is not a read
    """
    if not is_read_query(query):
        raise InvalidQueryClass(
            "This SPARQL query is not allowed on the read channel. "
            "Send INSERT and DELETE operations as updates"
        )
    return query
