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
Module responsible for simulating gene trees under the multispecies
network coalescent.
"""
from __future__ import annotations

import collections.abc
import logging
import math
from typing import Dict
from typing import Iterator
from typing import List

import numpy as np

from . import coalescent
from . import core
from . import inheritance
from . import lineages
from . import networks
from . import scaling
from .genetrees import GeneTree

logger = logging.getLogger(__name__)


def _parse_network(network) -> networks.SpeciesNetwork:
    if isinstance(network, str):
        network = networks.parse_species_network(network)
    if not isinstance(network, networks.SpeciesNetwork):
        raise TypeError(
            "network must be a SpeciesNetwork or a string in extended newick format"
        )
    network.validate()
    network.check_inheritance()
    return network


def _parse_num_loci(num_loci) -> int:
    if num_loci is None:
        return 1
    if not core.isinteger(num_loci) or num_loci < 0:
        raise ValueError(f"num_loci must be a non-negative integer, not {num_loci}")
    return int(num_loci)


def _parse_num_individuals(num_individuals, network) -> Dict[str, int]:
    """
    Parse the specified number of individuals per species into a dictionary
    mapping each leaf name to its count. The value may be a single integer,
    used for every species, or a mapping from species names to integers
    that includes every species.
    """
    error_message = (
        "individual count must be an integer or complete per-species mapping"
    )
    leaf_names = network.leaf_names
    if num_individuals is None:
        num_individuals = 1
    if isinstance(num_individuals, collections.abc.Mapping):
        unknown = set(num_individuals.keys()) - set(leaf_names)
        if len(unknown) > 0:
            raise ValueError(f"{error_message}; unknown species {sorted(unknown)}")
        missing = set(leaf_names) - set(num_individuals.keys())
        if len(missing) > 0:
            raise ValueError(f"{error_message}; missing species {sorted(missing)}")
        counts = dict(num_individuals)
    elif isinstance(num_individuals, bool) or not isinstance(
        num_individuals, (int, np.integer)
    ):
        raise TypeError(error_message)
    else:
        counts = {name: num_individuals for name in leaf_names}
    parsed = {}
    for name in leaf_names:
        count = counts[name]
        if not core.isinteger(count) or count < 0:
            raise ValueError(f"{error_message}; species '{name}' has count {count}")
        parsed[name] = int(count)
    if sum(parsed.values()) == 0:
        raise ValueError("At least one individual must be sampled")
    return parsed


def _parse_random_seed(seed):
    """
    Parse the specified random seed value. If no seed is provided, generate a
    high-quality random seed.
    """
    if seed is None:
        seed = core.get_random_seed()
    if isinstance(seed, np.ndarray):
        seed = seed[0]
    seed = int(seed)
    return seed


class GeneTreeSimulator:
    """
    Simulates gene trees in a species network, one locus at a time. Each
    locus starts from one forest of sampled lineages per species and
    visits the nodes of the network from the leaves to the root. The
    lineages reaching a node from its child edges are gathered into a
    single forest, which is passed to the node's parent edge, split among
    the parent edges of a hybrid node, or, at the root, coalesced down to
    the single lineage which becomes the gene tree.

    The network is not modified.
    """

    def __init__(
        self,
        network,
        num_individuals,
        *,
        node_mapping=False,
        inheritance_correlation=0.0,
        random_seed=None,
    ):
        self.network = network
        self.num_individuals = num_individuals
        self.node_mapping = node_mapping
        self.inheritance_correlation = inheritance_correlation
        self.random_seed = random_seed
        self.node_order = network.reverse_topological_order()
        self.above_root_population = network.above_root_population

    def _run_edge(self, forest, edge, next_id, rng):
        return coalescent.simulate_population(
            forest, edge.length, next_id, population=edge.id, rng=rng
        )

    def simulate_locus(self, rng) -> GeneTree:
        """
        Simulates a single gene tree using the specified numpy random
        Generator.
        """
        # Lineages that have reached the top of each population edge.
        edge_forests: Dict[int, List] = {}
        next_id = 1
        for node in self.node_order:
            if node.is_leaf:
                edge = node.parent_edges[0]
                forest = lineages.make_leaf_forest(
                    node, self.num_individuals[node.name], next_id, population=edge.id
                )
                next_id += len(forest)
                next_id = self._run_edge(forest, edge, next_id, rng)
                edge_forests[edge.id] = forest
                continue

            forest = []
            for edge in node.child_edges:
                forest.extend(edge_forests.pop(edge.id, []))
            if len(forest) == 0:
                continue

            if node.is_root:
                if len(forest) > 1:
                    if self.node_mapping:
                        next_id = lineages.insert_mapping_nodes(
                            forest, node, self.above_root_population, next_id
                        )
                    next_id = coalescent.simulate_population(
                        forest,
                        math.inf,
                        next_id,
                        population=self.above_root_population,
                        rng=rng,
                    )
                assert len(forest) == 1
                return lineages.finalise(forest[0])

            if len(node.parent_edges) == 1:
                edge = node.parent_edges[0]
                if self.node_mapping:
                    next_id = lineages.insert_mapping_nodes(
                        forest, node, edge.id, next_id
                    )
                next_id = self._run_edge(forest, edge, next_id, rng)
                edge_forests[edge.id] = forest
            else:
                assignment = inheritance.assign_parent_edges(
                    len(forest),
                    [edge.gamma for edge in node.parent_edges],
                    self.inheritance_correlation,
                    rng,
                )
                logger.debug(
                    "Hybrid node %s: %d lineages routed to parent edges %s",
                    node.label,
                    len(forest),
                    np.bincount(assignment, minlength=len(node.parent_edges)).tolist(),
                )
                for j, edge in enumerate(node.parent_edges):
                    sub_forest = [
                        lineage for lineage, k in zip(forest, assignment) if k == j
                    ]
                    if self.node_mapping:
                        next_id = lineages.insert_mapping_nodes(
                            sub_forest, node, edge.id, next_id
                        )
                    next_id = self._run_edge(sub_forest, edge, next_id, rng)
                    edge_forests[edge.id] = sub_forest
        raise AssertionError("The root of the species network was not reached")

    def run_replicates(self, num_loci) -> Iterator[GeneTree]:
        """
        Sequentially yield gene trees for the specified number of loci.
        """
        generators = core.locus_generators(self.random_seed, num_loci)
        for locus_index, rng in enumerate(generators):
            logger.info("Starting locus %d", locus_index)
            yield self.simulate_locus(rng)


def sim_gene_trees(
    network,
    num_loci=None,
    *,
    num_individuals=None,
    node_mapping=None,
    inheritance_correlation=None,
    population_size=None,
    round_generations=None,
    random_seed=None,
) -> List[GeneTree]:
    """
    Simulates gene trees for independent loci under the multispecies
    network coalescent, and returns them as a list in locus order.

    The network may be given as a :class:`.SpeciesNetwork` or as a string
    in extended newick format, in which inheritance probabilities of hybrid
    edges are written in the third field after the label
    (``#H1:length::gamma``). Edge lengths are in coalescent units unless
    ``population_size`` is given, in which case they are in generations.

    :param network: The species network.
    :param int num_loci: The number of independent loci to simulate (default 1).
    :param num_individuals: The number of individuals sampled per species:
        either a single integer used for all species, or a mapping from
        every species name to its number of individuals (default 1).
    :param bool node_mapping: If True, the gene trees record each passage of
        a lineage through a species network node as a degree-two node named
        after it (default False).
    :param float inheritance_correlation: The correlation between the
        parent edges of lineages arriving together at a hybrid node, between
        0 (independent, the default) and 1 (all lineages follow the same
        parent edge).
    :param population_size: The effective size of each population: a single
        number, or a mapping from every edge ID and the ID of the population
        above the root (one more than the largest edge ID) to a size. If
        specified, the network's edge lengths are interpreted in
        generations, and the gene trees' edge lengths are given in
        generations.
    :param bool round_generations: If True (the default), round gene tree
        edge lengths in generations to integers. Only meaningful with
        ``population_size``.
    :param int random_seed: The random seed. If this is not specified or
        None, a high-quality random seed will be automatically generated.
    :return: The list of simulated gene trees.
    :rtype: list
    """
    network = _parse_network(network)
    num_loci = _parse_num_loci(num_loci)
    num_individuals = _parse_num_individuals(num_individuals, network)
    node_mapping = core._parse_flag(node_mapping, default=False)
    inheritance_correlation = inheritance._parse_inheritance_correlation(
        inheritance_correlation
    )
    if population_size is None and round_generations is not None:
        raise ValueError("Cannot specify round_generations without population_size")
    round_generations = core._parse_flag(round_generations, default=True)
    random_seed = _parse_random_seed(random_seed)

    sizes = None
    simulated_network = network.copy()
    if population_size is not None:
        sizes = scaling.parse_population_size(population_size, network)
        simulated_network = scaling.to_coalescent_units(network, sizes)

    simulator = GeneTreeSimulator(
        simulated_network,
        num_individuals,
        node_mapping=node_mapping or sizes is not None,
        inheritance_correlation=inheritance_correlation,
        random_seed=random_seed,
    )
    trees = []
    for tree in simulator.run_replicates(num_loci):
        if sizes is not None:
            scaling.to_generations(tree, sizes, round_generations)
            if not node_mapping:
                tree = tree.without_mapping_nodes()
        trees.append(tree)
    logger.info("Simulated %d gene trees", len(trees))
    return trees
