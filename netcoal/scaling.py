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
Conversion between generations and coalescent units.
"""
import collections.abc
import logging
import math

from .exceptions import GeneTreeError

logger = logging.getLogger(__name__)


def parse_number_or_mapping(value, message):
    """
    Interpret the specified value as either a single floating point value,
    or a mapping and returns a mapping.
    """
    try:
        x = float(value)
        value = collections.defaultdict(lambda: x)
    except TypeError:
        if not isinstance(value, collections.abc.Mapping):
            raise TypeError(message)
    except ValueError:
        raise TypeError(message)
    return value


def parse_population_size(population_size, network):
    """
    Returns a dictionary mapping every population of the specified network,
    including the population above its root, to its effective size. The
    population size may be a single number, used for all populations, or a
    mapping from population (edge) IDs to sizes, which must cover every
    population.
    """
    error_message = (
        "population_size argument must be a single number or a mapping from "
        "every population ID (including the one above the root) to its size."
    )
    value = parse_number_or_mapping(population_size, error_message)
    population_ids = [edge.id for edge in network.edges]
    population_ids.append(network.above_root_population)
    if not isinstance(value, collections.defaultdict):
        unknown = set(value.keys()) - set(population_ids)
        if len(unknown) > 0:
            raise ValueError(f"Unknown population IDs in population_size: {unknown}")
        missing = set(population_ids) - set(value.keys())
        if len(missing) > 0:
            raise ValueError(f"No population size given for populations {missing}")
    sizes = {}
    for population_id in population_ids:
        size = float(value[population_id])
        if not math.isfinite(size) or size <= 0:
            raise ValueError(
                f"Population sizes must be positive and finite; population "
                f"{population_id} has size {size}"
            )
        sizes[population_id] = size
    return sizes


def to_coalescent_units(network, sizes):
    """
    Returns a copy of the specified network whose edge lengths, given in
    generations, are divided by the size of the corresponding population.
    """
    network = network.copy()
    for edge in network.edges:
        edge.length = edge.length / sizes[edge.id]
    logger.debug("Rescaled %d populations to coalescent units", network.num_edges)
    return network


def to_generations(tree, sizes, round_generations=True):
    """
    Multiplies, in place, each edge length of the specified gene tree by
    the size of its population, converting it from coalescent units to
    generations. Every edge must lie within a single population, as is the
    case for trees simulated with node mapping. Returns the tree.
    """
    for edge in tree.edges:
        if edge.population is None:
            raise GeneTreeError(f"Gene tree edge {edge.id} has no population")
        length = edge.length * sizes[edge.population]
        if round_generations:
            length = float(round(length))
        edge.length = length
    return tree
