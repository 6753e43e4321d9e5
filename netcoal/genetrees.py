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
Gene trees produced by the network coalescent, and their newick encoding.
"""
from __future__ import annotations

import dataclasses
import re
from typing import Dict
from typing import FrozenSet
from typing import Iterator
from typing import List
from typing import Set
from typing import Union

import newick

from .exceptions import GeneTreeError

_POPULATION_COMMENT = re.compile(r"&population=(-?\d+)")
_INDIVIDUAL_SUFFIX = re.compile(r"_\d+$")


@dataclasses.dataclass(eq=False)
class GeneNode:
    """
    A node in a gene tree. Leaves represent sampled individuals; nodes with
    two children are coalescences and record the population (species edge
    ID) they occurred in; named nodes with a single child are mapping nodes,
    recording that the lineage went through the species node of that name.
    """

    id: int  # noqa: A003
    name: str = ""
    is_leaf: bool = False
    population: Union[int, None] = None
    parent_edge: Union[GeneEdge, None] = dataclasses.field(default=None, repr=False)
    child_edges: List[GeneEdge] = dataclasses.field(default_factory=list, repr=False)

    @property
    def degree(self) -> int:
        return len(self.child_edges) + (self.parent_edge is not None)

    @property
    def parent(self) -> Union[GeneNode, None]:
        if self.parent_edge is None:
            return None
        return self.parent_edge.parent

    @property
    def children(self) -> List[GeneNode]:
        return [edge.child for edge in self.child_edges]


@dataclasses.dataclass(eq=False)
class GeneEdge:
    """
    An edge in a gene tree, above its child node. While the edge has no
    parent it is a *lineage*: an ancestral copy of the sampled genes
    below it that is still waiting for its ancestor, and whose length
    grows as it is carried back in time.
    """

    id: int  # noqa: A003
    child: GeneNode = dataclasses.field(repr=False)
    length: float = 0.0
    population: Union[int, None] = None
    parent: Union[GeneNode, None] = dataclasses.field(default=None, repr=False)

    @property
    def is_complete(self) -> bool:
        return self.parent is not None


def population_mapped_to(item: Union[GeneNode, GeneEdge]) -> Union[int, None]:
    """
    Returns the ID of the species network edge that the specified gene tree
    node or edge is mapped to, or None if it is mapped to a species node
    rather than an edge (as are leaves and mapping nodes).
    """
    return item.population


def _is_unary(node: GeneNode) -> bool:
    return not node.is_leaf and len(node.child_edges) == 1 and node.name != ""


def _preorder(root: GeneNode):
    nodes = []
    edges = []
    stack = [root]
    while len(stack) > 0:
        node = stack.pop()
        nodes.append(node)
        if node.parent_edge is not None:
            edges.append(node.parent_edge)
        stack.extend(reversed(node.children))
    return nodes, edges


class GeneTree:
    """
    A rooted gene tree. Nodes are listed in preorder (the root first, and
    every node before its descendants) and edges in the order of their
    child nodes.
    """

    def __init__(self, root: GeneNode):
        self.root = root
        self.nodes, self.edges = _preorder(root)

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    @property
    def leaves(self) -> List[GeneNode]:
        return [node for node in self.nodes if node.is_leaf]

    @property
    def num_leaves(self) -> int:
        return len(self.leaves)

    @property
    def leaf_names(self) -> List[str]:
        return [node.name for node in self.leaves]

    @property
    def total_length(self) -> float:
        return sum(edge.length for edge in self.edges)

    def is_mapping_node(self, node: GeneNode) -> bool:
        """
        Returns True if the specified node is a mapping node: a named node
        of degree two. A root with a single child is not a mapping node,
        although it is named after the species node it maps to.
        """
        return node.parent_edge is not None and _is_unary(node)

    def mapping_nodes(self) -> Iterator[GeneNode]:
        for node in self.nodes:
            if self.is_mapping_node(node):
                yield node

    def clusters(self) -> Set[FrozenSet[str]]:
        """
        Returns the set of hardwired clusters of this tree: for each
        internal node, the set of leaf names below it.
        """
        below: Dict[GeneNode, FrozenSet[str]] = {}
        for node in reversed(self.nodes):
            if node.is_leaf:
                below[node] = frozenset([node.name])
            else:
                below[node] = frozenset().union(*(below[u] for u in node.children))
        return {below[node] for node in self.nodes if not node.is_leaf}

    def copy(self) -> GeneTree:
        node_map = {}
        for node in self.nodes:
            node_map[node] = GeneNode(
                id=node.id,
                name=node.name,
                is_leaf=node.is_leaf,
                population=node.population,
            )
        for edge in self.edges:
            new_edge = GeneEdge(
                id=edge.id,
                child=node_map[edge.child],
                length=edge.length,
                population=edge.population,
                parent=node_map[edge.parent],
            )
            new_edge.child.parent_edge = new_edge
            new_edge.parent.child_edges.append(new_edge)
        return GeneTree(node_map[self.root])

    def without_mapping_nodes(self) -> GeneTree:
        """
        Returns a copy of this tree in which all mapping nodes have been
        removed. The edges on either side of a mapping node are fused into
        one edge, which keeps the ID and population of the lower edge. A
        named root with a single child is dropped along with the edge
        below it.
        """
        tree = self.copy()
        root = tree.root
        for node in list(tree.nodes):
            if not _is_unary(node):
                continue
            lower = node.child_edges[0]
            if node.parent_edge is None:
                lower.child.parent_edge = None
                root = lower.child
            else:
                upper = node.parent_edge
                parent = upper.parent
                lower.length += upper.length
                lower.parent = parent
                index = parent.child_edges.index(upper)
                parent.child_edges[index] = lower
        return GeneTree(root)

    def as_newick(self, *, precision=None, populations=False) -> str:
        """
        Returns the newick representation of this tree. Leaves and mapping
        nodes are labelled by name; coalescence nodes are unlabelled. If
        ``populations`` is True, each node is annotated with the population
        of the edge above it (or its own population, at the root) as a
        comment of the form ``[&population=3]``.
        """

        def format_length(value):
            if precision is None:
                return repr(float(value))
            return f"{value:.{precision}f}"

        strings: Dict[GeneNode, str] = {}
        for node in reversed(self.nodes):
            s = node.name
            if len(node.child_edges) > 0:
                s = "(" + ",".join(strings.pop(u) for u in node.children) + ")" + s
            if populations:
                edge = node.parent_edge
                population = node.population if edge is None else edge.population
                if population is not None:
                    s += f"[&population={population}]"
            if node.parent_edge is not None:
                s += ":" + format_length(node.parent_edge.length)
            strings[node] = s
        return strings[self.root] + ";"

    def encode_populations(self, network):
        """
        Sets the population of every edge and coalescence node in this tree
        from the names of its leaves and mapping nodes, which must match
        the node labels of the specified species network. This recovers the
        mapping of a tree simulated with node mapping, after its
        populations have been lost by writing it to newick.
        """
        species = {node.label: node for node in network.nodes}
        above_root = network.above_root_population

        def species_node(gene_node):
            if gene_node.name in species:
                return species[gene_node.name]
            if gene_node.is_leaf:
                stripped = _INDIVIDUAL_SUFFIX.sub("", gene_node.name)
                if stripped in species and species[stripped].is_leaf:
                    return species[stripped]
            raise GeneTreeError(
                "The gene and species phylogeny have different sets of node names"
            )

        def segment_population(bottom, top):
            if bottom.is_root:
                return above_root
            if len(bottom.parent_edges) == 1:
                return bottom.parent_edges[0].id
            # There can be more than one edge between the same pair of
            # nodes; we cannot tell them apart so take the first.
            for edge in bottom.parent_edges:
                if edge.parent is top:
                    return edge.id
            raise GeneTreeError(
                f"Cannot map the gene lineage above species node '{bottom.label}' "
                "to a population"
            )

        # Species node at the bottom of the segment containing each node's
        # parent edge, filled in from the leaves up.
        bottom = {}
        for node in reversed(self.nodes):
            if node.is_leaf or _is_unary(node):
                bottom[node] = species_node(node)
            else:
                bottom[node] = bottom[node.children[0]]
        # Species node at the top of that segment, filled in from the root
        # down. A segment with no mapping node above it ends at the root.
        species_root = network.root
        top = {}
        for node in self.nodes:
            parent = node.parent
            if parent is None:
                continue
            if _is_unary(parent):
                top[node] = species_node(parent)
            else:
                top[node] = top.get(parent, species_root)
        for edge in self.edges:
            edge.population = segment_population(bottom[edge.child], top[edge.child])
        for node in self.nodes:
            if node.is_leaf or _is_unary(node):
                node.population = None
            elif node.parent_edge is not None:
                node.population = node.parent_edge.population
            else:
                node.population = segment_population(bottom[node], species_root)

    def __str__(self):
        return self.as_newick()


def parse_gene_tree(text) -> GeneTree:
    """
    Parses the specified newick string into a GeneTree. Population
    annotations written by :meth:`GeneTree.as_newick` are restored; nodes
    and edges are numbered from 1 in preorder.
    """
    parsed = newick.loads(text.strip())
    if len(parsed) == 0:
        raise ValueError(f"Not a valid newick tree: '{text}'")
    root = None
    next_id = 1
    stack = [(parsed[0], None)]
    while len(stack) > 0:
        newick_node, parent = stack.pop()
        population = None
        if newick_node.comment is not None:
            match = _POPULATION_COMMENT.search(newick_node.comment)
            if match is not None:
                population = int(match.group(1))
        is_leaf = len(newick_node.descendants) == 0
        node = GeneNode(id=next_id, name=newick_node.name or "", is_leaf=is_leaf)
        if len(newick_node.descendants) >= 2:
            node.population = population
        if parent is None:
            root = node
        else:
            length = newick_node.length
            edge = GeneEdge(
                id=next_id,
                child=node,
                length=0.0 if length is None else float(length),
                population=population,
                parent=parent,
            )
            node.parent_edge = edge
            parent.child_edges.append(edge)
        next_id += 1
        for child in reversed(newick_node.descendants):
            stack.append((child, node))
    return GeneTree(root)
