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
Exceptions defined in netcoal.
"""


class NetcoalException(Exception):
    """
    Superclass of all exceptions thrown.
    """


class NetworkError(NetcoalException):
    """
    The species network is malformed: it could not be parsed, it does not
    have a single root, it contains a cycle, or its inheritance
    probabilities are missing or invalid.
    """


class GeneTreeError(NetcoalException):
    """
    A gene tree is internally inconsistent, or cannot be matched against
    the species network it is supposed to be embedded in.
    """


class CoalescentError(NetcoalException):
    """
    The coalescent within a single population was asked to do something
    that cannot terminate.
    """
