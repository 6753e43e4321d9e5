#
# Copyright (C) 2024 netcoal developers
#
# This file is part of netcoal.
#
# netcoal is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# netcoal is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with netcoal.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Module responsible for representing and parsing species networks.
"""
from __future__ import annotations

import collections
import dataclasses
import logging
import math
import re
from typing import Dict
from typing import List
from typing import Union

import newick

from . import core
from .exceptions import NetworkError

logger = logging.getLogger(__name__)

# Tolerance used when checking that inheritance probabilities sum to one.
GAMMA_TOLERANCE = 1e-8

# The extended newick format allows up to three colon-separated values
# after a label: length, support and inheritance probability (gamma).
# The newick module only understands a single length value, so we move
# gamma into a comment before handing the string over.
_EXTENDED_FIELDS = re.compile(
    r":([^:,();\[\]]*):([^:,();\[\]]*)(?::([^:,();\[\]]*))?"
)
_GAMMA_COMMENT = re.compile(r"&gamma=([^\]\s]+)")


@dataclasses.dataclass(eq=False)
class PopulationNode:
    """
    A node in a :class:`.SpeciesNetwork`: a speciation event, a
    hybridisation event, a sampled present-day species or the root.

    :ivar id: The integer ID of this node within the network.
    :vartype id: int
    :ivar name: The name of the node, or None for unnamed internal nodes.
    :vartype name: str
    """

    id: int  # noqa: A003
    name: Union[str, None] = None
    parent_edges: List[PopulationEdge] = dataclasses.field(
        default_factory=list, repr=False
    )
    child_edges: List[PopulationEdge] = dataclasses.field(
        default_factory=list, repr=False
    )

    @property
    def is_leaf(self) -> bool:
        return len(self.child_edges) == 0

    @property
    def is_root(self) -> bool:
        return len(self.parent_edges) == 0

    @property
    def is_hybrid(self) -> bool:
        return len(self.parent_edges) >= 2

    @property
    def label(self) -> str:
        """
        The name of this node, or a name derived from its ID if the node
        is unnamed. This is the name given to degree-two mapping nodes in
        gene trees.
        """
        if self.name:
            return self.name
        return str(self.id).replace("-", "minus")


@dataclasses.dataclass(eq=False)
class PopulationEdge:
    """
    A population in a :class:`.SpeciesNetwork`, connecting a parent node to
    a child node. The length is measured in coalescent units, unless stated
    otherwise. The inheritance probability ``gamma`` is required for the
    parent edges of hybrid nodes and ignored elsewhere.
    """

    id: int  # noqa: A003
    parent: PopulationNode
    child: PopulationNode
    length: Union[float, None] = None
    gamma: Union[float, None] = None

    def __repr__(self):
        return (
            f"PopulationEdge(id={self.id}, parent={self.parent.label!r}, "
            f"child={self.child.label!r}, length={self.length}, gamma={self.gamma})"
        )


class SpeciesNetwork:
    """
    A rooted species phylogeny, possibly with reticulations. Nodes and edges
    are numbered with positive integers in the order they are added.
    The network is never modified by the simulation code; methods that
    need a different network return a modified copy.
    """

    def __init__(self):
        self.nodes: List[PopulationNode] = []
        self.edges: List[PopulationEdge] = []

    def add_node(self, name=None, *, id=None) -> PopulationNode:  # noqa: A002
        if id is None:
            id = max((node.id for node in self.nodes), default=0) + 1  # noqa: A001
        if any(node.id == id for node in self.nodes):
            raise NetworkError(f"Duplicate node ID {id}")
        if name is not None:
            name = str(name)
        node = PopulationNode(id=id, name=name)
        self.nodes.append(node)
        return node

    def add_edge(
        self, parent, child, length=None, *, gamma=None, id=None  # noqa: A002
    ) -> PopulationEdge:
        if id is None:
            id = self.max_edge_id + 1  # noqa: A001
        if not core.isinteger(id) or id <= 0:
            raise NetworkError(f"Edge IDs must be positive integers, not {id}")
        if any(edge.id == id for edge in self.edges):
            raise NetworkError(f"Duplicate edge ID {id}")
        if length is not None:
            length = float(length)
        if gamma is not None:
            gamma = float(gamma)
        edge = PopulationEdge(
            id=int(id), parent=parent, child=child, length=length, gamma=gamma
        )
        parent.child_edges.append(edge)
        child.parent_edges.append(edge)
        self.edges.append(edge)
        return edge

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    @property
    def root(self) -> PopulationNode:
        roots = [node for node in self.nodes if node.is_root]
        if len(roots) != 1:
            raise NetworkError(
                f"A species network must have exactly one root; found {len(roots)}"
            )
        return roots[0]

    @property
    def leaves(self) -> List[PopulationNode]:
        return [node for node in self.nodes if node.is_leaf]

    @property
    def leaf_names(self) -> List[str]:
        return [node.name for node in self.leaves]

    @property
    def hybrid_nodes(self) -> List[PopulationNode]:
        return [node for node in self.nodes if node.is_hybrid]

    @property
    def max_edge_id(self) -> int:
        return max((edge.id for edge in self.edges), default=0)

    @property
    def above_root_population(self) -> int:
        """
        The identifier reserved for the population of unbounded duration
        above the root of the network.
        """
        return self.max_edge_id + 1

    def node(self, name: str) -> PopulationNode:
        """
        Returns the node with the specified name (or label, for unnamed nodes).
        """
        for node in self.nodes:
            if node.label == name:
                return node
        raise KeyError(f"Node '{name}' not found")

    def edge(self, id: int) -> PopulationEdge:  # noqa: A002
        for edge in self.edges:
            if edge.id == id:
                return edge
        raise KeyError(f"Edge {id} not found")

    def reverse_topological_order(self) -> List[PopulationNode]:
        """
        Returns the list of nodes ordered so that every node comes after
        all of its children: leaves first, the root last.
        """
        num_pending = {node: len(node.child_edges) for node in self.nodes}
        queue = collections.deque(node for node in self.nodes if node.is_leaf)
        order = []
        while len(queue) > 0:
            node = queue.popleft()
            order.append(node)
            for edge in node.parent_edges:
                num_pending[edge.parent] -= 1
                if num_pending[edge.parent] == 0:
                    queue.append(edge.parent)
        if len(order) != len(self.nodes):
            raise NetworkError("The species network contains a cycle")
        return order

    def validate(self):
        """
        Checks the structure of the network, raising a NetworkError if it
        cannot be used for simulation.
        """
        if len(self.nodes) == 0:
            raise NetworkError("The species network is empty")
        root = self.root
        if root.is_leaf:
            raise NetworkError("The species network must have at least one edge")
        self.reverse_topological_order()
        names = collections.Counter(node.name for node in self.nodes if node.name)
        duplicates = [name for name, count in names.items() if count > 1]
        if len(duplicates) > 0:
            raise NetworkError(f"Duplicate node names: {sorted(duplicates)}")
        for node in self.leaves:
            if not node.name:
                raise NetworkError(f"Leaf node {node.id} does not have a name")
            if len(node.parent_edges) != 1:
                raise NetworkError(
                    f"Leaf node '{node.name}' must have a single parent edge"
                )
        for edge in self.edges:
            if edge.length is None:
                raise NetworkError(f"Edge {edge.id} does not have a length")
            if not (0 <= edge.length < math.inf):
                raise NetworkError(
                    f"Edge {edge.id} has length {edge.length}; lengths must be "
                    "finite and non-negative"
                )

    def check_inheritance(self):
        """
        Checks that the parent edges of every hybrid node have inheritance
        probabilities in (0, 1] which sum to one.
        """
        for node in self.hybrid_nodes:
            gammas = [edge.gamma for edge in node.parent_edges]
            if any(gamma is None for gamma in gammas):
                raise NetworkError(
                    f"Hybrid node '{node.label}' has a parent edge with no "
                    "inheritance probability (gamma)"
                )
            if any(not (0 < gamma <= 1) for gamma in gammas):
                raise NetworkError(
                    f"Inheritance probabilities at hybrid node '{node.label}' "
                    "must be in (0, 1]"
                )
            if abs(sum(gammas) - 1) > GAMMA_TOLERANCE:
                raise NetworkError(
                    f"Inheritance probabilities at hybrid node '{node.label}' "
                    f"sum to {sum(gammas)}, not 1"
                )
        for edge in self.edges:
            if not edge.child.is_hybrid and edge.gamma is not None:
                if abs(edge.gamma - 1) > GAMMA_TOLERANCE:
                    raise NetworkError(
                        f"Edge {edge.id} is not a hybrid edge, so its "
                        "inheritance probability must be 1"
                    )

    def copy(self) -> SpeciesNetwork:
        other = SpeciesNetwork()
        node_map = {}
        for node in self.nodes:
            node_map[node] = other.add_node(node.name, id=node.id)
        for edge in self.edges:
            other.add_edge(
                node_map[edge.parent],
                node_map[edge.child],
                edge.length,
                gamma=edge.gamma,
                id=edge.id,
            )
        return other

    def with_internal_names(self, prefix="i") -> SpeciesNetwork:
        """
        Returns a copy of this network in which every unnamed internal node
        is given a name, made of the specified prefix followed by an
        integer. Existing names are left unchanged.
        """
        other = self.copy()
        used = {node.name for node in other.nodes if node.name}
        j = 0
        for node in other.nodes:
            if node.name:
                continue
            name = None
            while name is None or name in used:
                j += 1
                name = f"{prefix}{j}"
            node.name = name
            used.add(name)
        return other

    def as_newick(self, precision=None) -> str:
        """
        Returns the extended newick representation of this network. Hybrid
        nodes are written in full at their first occurrence and referred
        to by their ``#`` label afterwards.
        """
        seen = set()

        def format_value(value):
            if precision is None:
                return repr(float(value))
            return f"{value:.{precision}f}"

        def edge_fields(edge):
            if edge is None:
                return ""
            s = "" if edge.length is None else ":" + format_value(edge.length)
            if edge.child.is_hybrid and edge.gamma is not None:
                if edge.length is None:
                    s = ":"
                s += "::" + format_value(edge.gamma)
            return s

        def node_label(node):
            if node.is_hybrid:
                return "#" + (node.name if node.name else f"H{node.id}")
            return "" if node.name is None else node.name

        def subtree(node, edge):
            label = node_label(node)
            if node.is_hybrid and node in seen:
                return label + edge_fields(edge)
            seen.add(node)
            children = [subtree(e.child, e) for e in node.child_edges]
            s = label
            if len(children) > 0:
                s = "(" + ",".join(children) + ")" + label
            return s + edge_fields(edge)

        return subtree(self.root, None) + ";"

    def __str__(self):
        title = [["id"], ["parent"], ["child"], ["length"], ["gamma"]]
        data = [
            [
                [str(edge.id)],
                [edge.parent.label],
                [edge.child.label],
                [f"{edge.length:.4g}" if edge.length is not None else ""],
                [f"{edge.gamma:.4g}" if edge.gamma is not None else ""],
            ]
            for edge in self.edges
        ]
        return core.text_table(
            f"SpeciesNetwork: {self.num_nodes} nodes, {self.num_edges} edges, "
            f"{len(self.hybrid_nodes)} hybrid nodes",
            title,
            [">", "<", "<", ">", ">"],
            data,
        )


def _annotate_extended_fields(text):
    def replace(match):
        length, _support, gamma = match.groups()
        annotation = ""
        if gamma is not None and len(gamma) > 0:
            annotation = f"[&gamma={gamma}]"
        if len(length) > 0:
            annotation += ":" + length
        return annotation

    return _EXTENDED_FIELDS.sub(replace, text)


def _parse_gamma(comment):
    if comment is None:
        return None
    match = _GAMMA_COMMENT.search(comment)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        raise NetworkError(f"Cannot parse inheritance probability '{match.group(1)}'")


def _complete_gammas(network):
    """
    When only one of the two parent edges of a hybrid node carries an
    inheritance probability, the other is its complement.
    """
    for node in network.hybrid_nodes:
        missing = [edge for edge in node.parent_edges if edge.gamma is None]
        if len(node.parent_edges) == 2 and len(missing) == 1:
            other = [edge for edge in node.parent_edges if edge.gamma is not None]
            missing[0].gamma = 1 - other[0].gamma


def parse_species_network(text) -> SpeciesNetwork:
    """
    Parses the specified extended newick string into a SpeciesNetwork.
    Hybrid nodes are labelled with a leading ``#`` (e.g. ``#H1``) and
    appear once for every parent edge; exactly one of these occurrences
    lists the children of the hybrid node. Edge fields are of the form
    ``:length:support:gamma``, where support is ignored.
    """
    if not isinstance(text, str):
        raise TypeError("A species network must be given as a newick string")
    annotated = _annotate_extended_fields(text.strip())
    try:
        parsed = newick.loads(annotated)
    except ValueError as err:
        raise NetworkError(f"Not a valid newick network: '{text}'") from err
    if len(parsed) == 0:
        raise NetworkError(f"Not a valid newick network: '{text}'")

    network = SpeciesNetwork()
    hybrids: Dict[str, PopulationNode] = {}
    defined = set()
    stack = [(parsed[0], None)]
    while len(stack) > 0:
        newick_node, parent = stack.pop()
        name = None
        if newick_node.name is not None and len(newick_node.name.strip()) > 0:
            name = newick_node.name.strip()
        has_children = len(newick_node.descendants) > 0
        if name is not None and name.startswith("#"):
            label = name[1:]
            if len(label) == 0:
                raise NetworkError("Hybrid nodes must be labelled, e.g. '#H1'")
            if label not in hybrids:
                hybrids[label] = network.add_node(label)
            node = hybrids[label]
            if has_children:
                if label in defined:
                    raise NetworkError(
                        f"The children of hybrid node '{label}' are given more "
                        "than once"
                    )
                defined.add(label)
        else:
            node = network.add_node(name)
        if parent is not None:
            network.add_edge(
                parent,
                node,
                newick_node.length,
                gamma=_parse_gamma(newick_node.comment),
            )
        # Reversed so that nodes are numbered in left-to-right preorder.
        for child in reversed(newick_node.descendants):
            stack.append((child, node))

    undefined = sorted(set(hybrids) - defined)
    if len(undefined) > 0:
        raise NetworkError(f"Hybrid nodes without any children: {undefined}")
    _complete_gammas(network)
    network.validate()
    logger.debug(
        "Parsed species network with %d nodes, %d edges and %d hybrid nodes",
        network.num_nodes,
        network.num_edges,
        len(network.hybrid_nodes),
    )
    return network

