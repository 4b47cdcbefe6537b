"""
ACL bootstrap graphs for new projects.

Generates the seed Web Access Control document of a brand-new project:
one owner authorization (Read, Write, Control) for the creator and, for
open projects, one Read authorization for the public agent class.

This module only writes seed documents. Evaluating ACLs is the job of the
permission resolver.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from rdflib import Graph, Literal, Namespace, URIRef
from rdflib.namespace import FOAF, RDF

from lbd_projects.collaborators import Principal

ACL = Namespace("http://www.w3.org/ns/auth/acl#")
VCARD = Namespace("http://www.w3.org/2006/vcard/ns#")
LBD = Namespace("https://lbdserver.org/vocabulary#")

ACL_READ = str(ACL.Read)
ACL_WRITE = str(ACL.Write)
ACL_CONTROL = str(ACL.Control)
PUBLIC_AGENT_CLASS = str(FOAF.Agent)

OWNER_MODES = frozenset({ACL_READ, ACL_WRITE, ACL_CONTROL})
PUBLIC_MODES = frozenset({ACL_READ})


@dataclass(frozen=True)
class AclAuthorization:
    """One acl:Authorization entry."""
    node: str
    modes: FrozenSet[str]
    agent: Optional[str] = None
    agent_class: Optional[str] = None

    @property
    def is_public(self) -> bool:
        return self.agent_class == PUBLIC_AGENT_CLASS


def _bind(graph: Graph) -> None:
    graph.bind("acl", ACL)
    graph.bind("lbd", LBD)
    graph.bind("vcard", VCARD)
    graph.bind("foaf", FOAF)


def build_default_acl(creator: Principal, acl_url: str, open: bool = False) -> str:
    """
    Serialize the default ACL graph of a new project as Turtle.

    Args:
        creator: The principal creating the project; becomes the owner.
        acl_url: Context URL of the ACL graph.
        open: Also grant Read to every agent (foaf:Agent).

    Returns:
        Turtle text with the owner authorization and, iff ``open``,
        the public-read authorization.

    Authorizations carry no acl:accessTo. A resource is bound to this ACL
    by the lbd:hasAcl link in its metadata graph.
    """
    graph = Graph()
    _bind(graph)

    owner = URIRef(f"{acl_url}#owner")
    agent = URIRef(creator.uri)
    graph.add((owner, RDF.type, ACL.Authorization))
    graph.add((owner, ACL.agent, agent))
    for mode in (ACL.Read, ACL.Write, ACL.Control):
        graph.add((owner, ACL.mode, mode))
    if creator.email:
        graph.add((agent, VCARD.email, Literal(creator.email)))

    if open:
        visitor = URIRef(f"{acl_url}#visitor")
        graph.add((visitor, RDF.type, ACL.Authorization))
        graph.add((visitor, ACL.agentClass, FOAF.Agent))
        graph.add((visitor, ACL.mode, ACL.Read))

    return graph.serialize(format="turtle")


def list_authorizations(data: str, acl_url: str) -> List[AclAuthorization]:
    """
    List the authorizations declared in a serialized ACL graph.

    Entries are returned sorted by node URI. Modes are not interpreted.
    """
    graph = Graph()
    graph.parse(data=data, format="turtle", publicID=acl_url)

    authorizations = []
    for node in graph.subjects(RDF.type, ACL.Authorization):
        agent = graph.value(node, ACL.agent)
        agent_class = graph.value(node, ACL.agentClass)
        authorizations.append(AclAuthorization(
            node=str(node),
            modes=frozenset(str(m) for m in graph.objects(node, ACL.mode)),
            agent=str(agent) if agent is not None else None,
            agent_class=str(agent_class) if agent_class is not None else None,
        ))
    return sorted(authorizations, key=lambda a: a.node)
