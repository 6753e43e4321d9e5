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
Allow netcoal to be run as a module.
"""
from netcoal import cli


def main():
    cli.netcoal_main()


if __name__ == "__main__":
    main()
