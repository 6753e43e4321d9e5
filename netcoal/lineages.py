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
Building gene trees from the bottom up: lineages, forests of lineages,
and the operations that join them.

A lineage is a :class:`.GeneEdge` whose parent has not yet been
determined; a forest is a list of lineages currently in the same
population. Node and edge IDs are handed out from a single counter by
the caller, and a node always shares its ID with the edge above it.
"""
from __future__ import annotations

from typing import List

from .exceptions import GeneTreeError
from .genetrees import GeneEdge
from .genetrees import GeneNode
from .genetrees import GeneTree

Forest = List[GeneEdge]


def make_leaf_lineage(name: str, node_id: int, population=None) -> GeneEdge:
    """
    Returns a new lineage of length zero above a new leaf node with the
    specified name.
    """
    leaf = GeneNode(id=node_id, name=name, is_leaf=True)
    edge = GeneEdge(id=node_id, child=leaf, length=0.0, population=population)
    leaf.parent_edge = edge
    return edge


def make_leaf_forest(
    species_node, num_individuals: int, next_id: int, population=None
) -> Forest:
    """
    Returns the forest of lineages sampled from the specified leaf of the
    species network. A single individual is named after the species;
    several are named ``species_1``, ``species_2``, and so on. IDs are
    allocated consecutively from ``next_id``; the caller is responsible for
    advancing its counter by the length of the returned forest.
    """
    if not species_node.is_leaf or not species_node.name:
        raise ValueError(
            f"Individuals can only be sampled from named leaves; "
            f"'{species_node.label}' is not one"
        )
    if num_individuals == 1:
        names = [species_node.name]
    else:
        names = [f"{species_node.name}_{j + 1}" for j in range(num_individuals)]
    return [
        make_leaf_lineage(name, next_id + j, population) for j, name in enumerate(names)
    ]


def merge_lineages(
    lineage1: GeneEdge, lineage2: GeneEdge, node_id: int, population=None
) -> GeneEdge:
    """
    Joins the two specified lineages at a new coalescence node, and returns
    the new lineage of length zero above it. The node records the
    population in which the coalescence happened.
    """
    node = GeneNode(id=node_id, population=population)
    for lineage in (lineage1, lineage2):
        lineage.parent = node
        node.child_edges.append(lineage)
    edge = GeneEdge(id=node_id, child=node, length=0.0, population=population)
    node.parent_edge = edge
    return edge


def insert_mapping_node(
    lineage: GeneEdge, name: str, node_id: int, population=None
) -> GeneEdge:
    """
    Ends the specified lineage at a new degree-two node with the specified
    name, and returns the new lineage above it.
    """
    node = GeneNode(id=node_id, name=name)
    lineage.parent = node
    node.child_edges.append(lineage)
    edge = GeneEdge(id=node_id, child=node, length=0.0, population=population)
    node.parent_edge = edge
    return edge


def insert_mapping_nodes(
    forest: Forest, species_node, population, next_id: int
) -> int:
    """
    Replaces, in place, every lineage in the forest by a new lineage above a
    mapping node named after the specified species node, and recording the
    population that the lineages are about to enter. Returns the next
    available ID.
    """
    for j, lineage in enumerate(forest):
        forest[j] = insert_mapping_node(lineage, species_node.label, next_id, population)
        next_id += 1
    return next_id


def finalise(lineage: GeneEdge) -> GeneTree:
    """
    Returns the gene tree below the specified lineage, discarding the
    lineage itself. The tree is checked for consistency.
    """
    root = lineage.child
    root.parent_edge = None
    tree = GeneTree(root)

    node_ids = [node.id for node in tree.nodes]
    if len(set(node_ids)) != len(node_ids):
        raise GeneTreeError("Gene tree node IDs are not unique")
    edge_ids = [edge.id for edge in tree.edges]
    if len(set(edge_ids)) != len(edge_ids):
        raise GeneTreeError("Gene tree edge IDs are not unique")
    if len(root.child_edges) > 2:
        raise GeneTreeError(f"Gene tree root {root.id} has more than two children")
    for node in tree.nodes:
        if node is not root and node.is_leaf != (node.degree == 1):
            raise GeneTreeError(f"Gene tree node {node.id} is inconsistently a leaf")
        if node.is_leaf and not node.name:
            raise GeneTreeError(f"Gene tree leaf {node.id} has no name")
    return tree

