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
Netcoal simulates gene trees under the multispecies network coalescent.
"""

from netcoal.ancestry import (
    GeneTreeSimulator,
    sim_gene_trees,
)

from netcoal.core import __version__

from netcoal.exceptions import (
    CoalescentError,
    GeneTreeError,
    NetcoalException,
    NetworkError,
)

from netcoal.genetrees import (
    GeneEdge,
    GeneNode,
    GeneTree,
    parse_gene_tree,
    population_mapped_to,
)

from netcoal.networks import (
    PopulationEdge,
    PopulationNode,
    SpeciesNetwork,
    parse_species_network,
)
