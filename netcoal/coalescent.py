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
The Kingman coalescent within a single population.
"""
import logging
import math

import numpy as np

from . import lineages
from .exceptions import CoalescentError

logger = logging.getLogger(__name__)


def _add_length(forest, time):
    for lineage in forest:
        lineage.length += time


def simulate_population(forest, duration, next_id, population=None, rng=None):
    """
    Runs the coalescent among the lineages in the specified forest for the
    specified duration (in coalescent units, possibly infinite), modifying
    the forest in place. While there are k lineages the waiting time to the
    next coalescence is exponential with rate k(k - 1) / 2, and the two
    lineages that merge are chosen uniformly. The lineages surviving to the
    end of the population have their lengths extended up to its top.

    Each coalescence uses one ID, starting from ``next_id``, for the new
    node and the edge above it, and is tagged with the specified
    population. Returns the next available ID.

    With an infinite duration the process stops as soon as one lineage is
    left, and at least two lineages are required.
    """
    if duration is None or math.isnan(duration) or duration < 0:
        raise ValueError(f"Population duration must be non-negative, not {duration}")
    if rng is None:
        rng = np.random.default_rng()
    k = len(forest)
    infinite = math.isinf(duration)
    if infinite and k < 2:
        raise CoalescentError(
            f"Cannot run the coalescent in a population of infinite duration "
            f"with {k} lineage(s)"
        )
    if k == 0 or duration == 0:
        return next_id
    logger.debug(
        "Coalescent in population %s: %d lineages for time %g", population, k, duration
    )
    if k == 1:
        _add_length(forest, duration)
        return next_id
    remaining = duration
    while k > 1:
        rate = k * (k - 1) / 2
        waiting_time = rng.exponential(1 / rate)
        if not infinite and waiting_time >= remaining:
            break
        _add_length(forest, waiting_time)
        remaining -= waiting_time
        # Choose two lineages uniformly.
        x = forest.pop(rng.integers(k))
        j = rng.integers(k - 1)
        forest[j] = lineages.merge_lineages(x, forest[j], next_id, population)
        next_id += 1
        k -= 1
    if not infinite:
        _add_length(forest, remaining)
    return next_id
