"""
Metadata graphs and seed content for named graphs.

Every resource (project, document, named graph) gets a companion graph at
``{url}.meta`` describing it: label, description and the ACL that governs it.
"""
from __future__ import annotations

from typing import Dict, Optional

from rdflib import Graph, Literal, Namespace, URIRef
from rdflib.namespace import DCTERMS, RDF, RDFS

from lbd_projects.acl import ACL, LBD

SP = Namespace("http://spinrdf.org/sp#")


def build_meta_graph(
    resource_url: str,
    acl_url: str,
    label: Optional[str] = None,
    description: Optional[str] = None,
) -> str:
    """
    Serialize the metadata graph of a resource as Turtle.

    Args:
        resource_url: URL of the described resource
        acl_url: ACL graph governing the resource
        label: Optional human-readable label
        description: Optional description
    """
    graph = Graph()
    graph.bind("lbd", LBD)
    graph.bind("acl", ACL)
    graph.bind("dcterms", DCTERMS)

    resource = URIRef(resource_url)
    graph.add((resource, RDF.type, LBD.Resource))
    graph.add((resource, LBD.hasAcl, URIRef(acl_url)))
    if label:
        graph.add((resource, RDFS.label, Literal(label)))
    if description:
        graph.add((resource, RDFS.comment, Literal(description)))

    return graph.serialize(format="turtle")


def read_meta_graph(data: str, resource_url: str) -> Dict[str, Optional[str]]:
    """Extract label, description and ACL reference from a metadata graph."""
    graph = Graph()
    graph.parse(data=data, format="turtle", publicID=resource_url)
    resource = URIRef(resource_url)

    def _value(predicate) -> Optional[str]:
        value = graph.value(resource, predicate)
        return str(value) if value is not None else None

    return {
        "label": _value(RDFS.label),
        "description": _value(RDFS.comment),
        "acl": _value(LBD.hasAcl),
    }


def default_graph_content(context: str) -> str:
    """Seed content for a named graph created without data."""
    graph = Graph()
    graph.bind("sp", SP)
    graph.add((URIRef(f"{context}#"), RDF.type, SP.NamedGraph))
    return graph.serialize(format="turtle")
