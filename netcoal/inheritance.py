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
Routing of gene lineages through hybrid nodes.
"""
import math

import numpy as np


def _parse_inheritance_correlation(value):
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value) or value < 0 or value > 1:
        raise ValueError(
            f"The inheritance correlation must be between 0 and 1, not {value}"
        )
    return value


def assign_parent_edges(num_lineages, gammas, correlation=0.0, rng=None):
    """
    Returns an array giving, for each of the lineages arriving at a hybrid
    node, the index of the parent edge it is inherited from.

    With zero correlation every lineage is independently assigned to parent
    edge i with probability ``gammas[i]``. With a correlation r > 0 the
    lineages are assigned in turn from a Polya urn with concentration
    alpha = (1 - r) / r centred on the gammas: after n lineages have been
    assigned, the next goes to edge i with probability

        (alpha * gammas[i] + n_i) / (alpha + n)

    where n_i lineages went to edge i. The probability that two lineages
    are inherited from the same parent is then
    ``1 - (1 - r) * (1 - sum(gammas ** 2))``, and with r = 1 all lineages
    follow the same parent edge.
    """
    gammas = np.array(gammas, dtype=float)
    if len(gammas.shape) != 1 or gammas.shape[0] == 0:
        raise ValueError("Must specify a non-empty list of inheritance probabilities")
    if np.any(gammas < 0) or np.sum(gammas) <= 0:
        raise ValueError("Inheritance probabilities must be non-negative")
    gammas /= np.sum(gammas)
    correlation = _parse_inheritance_correlation(correlation)
    if rng is None:
        rng = np.random.default_rng()
    m = gammas.shape[0]
    if correlation == 0:
        return rng.choice(m, size=num_lineages, p=gammas)

    alpha = (1 - correlation) / correlation
    probs = gammas.copy()
    assignment = np.zeros(num_lineages, dtype=int)
    for n in range(num_lineages):
        k = rng.choice(m, p=probs / np.sum(probs))
        assignment[n] = k
        probs *= (alpha + n) / (alpha + n + 1)
        probs[k] += 1 / (alpha + n + 1)
    return assignment
