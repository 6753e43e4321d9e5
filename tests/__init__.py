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
Common code for the netcoal test cases.
"""


def quartet_split(tree, quartet):
    """
    Returns the taxon paired with the first taxon of the specified quartet
    in the gene tree, or None if the tree does not resolve the quartet.
    """
    quartet = frozenset(quartet)
    first = sorted(quartet)[0]
    for cluster in tree.clusters():
        restricted = cluster & quartet
        if len(restricted) == 2:
            pair = restricted if first in restricted else quartet - restricted
            (partner,) = pair - {first}
            return partner
    return None


def quartet_counts(trees, quartet):
    """
    Returns a dictionary mapping each of the three possible partners of the
    first (sorted) taxon of the quartet to the number of trees displaying
    that split.
    """
    first = sorted(quartet)[0]
    counts = {taxon: 0 for taxon in quartet if taxon != first}
    for tree in trees:
        partner = quartet_split(tree, quartet)
        if partner is not None:
            counts[partner] += 1
    return counts


def root_to_leaf_lengths(tree):
    """
    Returns a dictionary mapping leaf names to their distance from the root.
    """
    depth = {tree.root: 0}
    for node in tree.nodes[1:]:
        depth[node] = depth[node.parent] + node.parent_edge.length
    return {node.name: depth[node] for node in tree.leaves}


def pairwise_distance(tree, name1, name2):
    """
    Returns the path length between the two leaves with the specified names.
    """
    leaves = {node.name: node for node in tree.leaves}
    distance_up = {}
    node = leaves[name1]
    d = 0
    while node is not None:
        distance_up[node] = d
        if node.parent_edge is not None:
            d += node.parent_edge.length
        node = node.parent
    node = leaves[name2]
    d = 0
    while node not in distance_up:
        d += node.parent_edge.length
        node = node.parent
    return d + distance_up[node]
