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
Command line interface to the netcoal library.
"""
import argparse
import os
import signal
import sys

import daiquiri

import netcoal
from . import ancestry
from .exceptions import NetcoalException


def set_sigpipe_handler():
    if os.name == "posix":
        # Set signal handler for SIGPIPE to quietly kill the program.
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def positive_int(value):
    int_value = int(float(value))
    if int_value <= 0:
        msg = f"{value} is an invalid positive integer value"
        raise argparse.ArgumentTypeError(msg)
    return int_value


def _parse_assignments(value, key_type, value_type):
    """
    Parses a string of the form "key=value,key=value" into a dictionary,
    or a plain value if there is no "=".
    """
    if "=" not in value:
        return value_type(value)
    result = {}
    for item in value.split(","):
        key, sep, item_value = item.partition("=")
        if sep == "" or key.strip() == "":
            raise argparse.ArgumentTypeError(f"invalid assignment '{item}'")
        result[key_type(key.strip())] = value_type(item_value)
    return result


def num_individuals_arg(value):
    try:
        return _parse_assignments(value, str, int)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid individual count '{value}': must be an integer or a list "
            "of NAME=COUNT pairs"
        )


def population_size_arg(value):
    try:
        return _parse_assignments(value, int, float)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid population size '{value}': must be a number or a list "
            "of ID=SIZE pairs"
        )


def add_random_seed_argument(parser):
    parser.add_argument(
        "--random-seed",
        "-s",
        type=int,
        default=None,
        help="The random seed. If not specified one is chosen randomly",
    )


def add_precision_argument(parser):
    parser.add_argument(
        "--precision",
        "-p",
        type=int,
        default=None,
        help=(
            "The number of decimal places to print in edge lengths. By "
            "default lengths are printed in full"
        ),
    )


def add_logging_arguments(parser):
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="The level of logging output to write to stderr",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase the logging verbosity: -v for INFO, -vv for DEBUG",
    )


def setup_logging(args):
    log_level = args.log_level
    if args.verbose == 1:
        log_level = "INFO"
    elif args.verbose >= 2:
        log_level = "DEBUG"
    log_output = daiquiri.output.Stream(
        sys.stderr,
        formatter=daiquiri.formatter.ColorFormatter(fmt="[%(levelname)s] %(message)s"),
    )
    daiquiri.setup(level=log_level, outputs=[log_output])


def run_simulate(args, parser):
    try:
        with open(args.network) as f:
            network_text = f.read()
    except OSError as ioe:
        parser.error(str(ioe))
    try:
        trees = ancestry.sim_gene_trees(
            network_text,
            args.num_loci,
            num_individuals=args.num_individuals,
            node_mapping=args.node_mapping,
            inheritance_correlation=args.inheritance_correlation,
            population_size=args.population_size,
            round_generations=(
                None if args.population_size is None else not args.no_round
            ),
            random_seed=args.random_seed,
        )
    except (ValueError, TypeError, NetcoalException) as e:
        parser.error(str(e))
    output = sys.stdout if args.output is None else open(args.output, "w")
    try:
        for tree in trees:
            print(
                tree.as_newick(precision=args.precision, populations=args.populations),
                file=output,
            )
    finally:
        if output is not sys.stdout:
            output.close()


def get_netcoal_parser():
    top_parser = argparse.ArgumentParser(
        description="Simulate gene trees under the multispecies network coalescent."
    )
    top_parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {netcoal.__version__}"
    )
    subparsers = top_parser.add_subparsers(dest="subcommand")
    subparsers.required = True

    add_simulate_subcommand(subparsers)

    return top_parser


def add_simulate_subcommand(subparsers) -> None:
    parser = subparsers.add_parser(
        "simulate", help="Simulate gene trees within a species network"
    )
    parser.add_argument(
        "network",
        help=(
            "A file containing the species network in extended newick format, "
            "with edge lengths in coalescent units (or in generations, if "
            "--population-size is given)"
        ),
    )
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="The file to write gene trees to, one per line. Defaults to stdout",
    )
    parser.add_argument(
        "--num-loci",
        "-n",
        type=positive_int,
        default=1,
        help="The number of independent loci to simulate",
    )
    parser.add_argument(
        "--num-individuals",
        "-i",
        type=num_individuals_arg,
        default=1,
        help=(
            "The number of individuals sampled per species: either a single "
            "integer, or a list of NAME=COUNT pairs for all species, for "
            "example A=2,B=1,C=0"
        ),
    )
    parser.add_argument(
        "--node-mapping",
        action="store_true",
        default=False,
        help="Add degree-two nodes to record the species network nodes crossed",
    )
    parser.add_argument(
        "--inheritance-correlation",
        "-r",
        type=float,
        default=0,
        help=(
            "The correlation between the parent edges taken by lineages at a "
            "hybrid node, between 0 and 1"
        ),
    )
    parser.add_argument(
        "--population-size",
        "-N",
        type=population_size_arg,
        default=None,
        help=(
            "The effective population size: a single number, or a list of "
            "ID=SIZE pairs for every edge ID and the population above the root. "
            "Edge lengths are then read and written in generations"
        ),
    )
    parser.add_argument(
        "--no-round",
        action="store_true",
        default=False,
        help="Do not round edge lengths in generations to integers",
    )
    add_random_seed_argument(parser)
    add_precision_argument(parser)
    parser.add_argument(
        "--populations",
        action="store_true",
        default=False,
        help="Annotate each gene tree node with its population ID",
    )
    add_logging_arguments(parser)
    parser.set_defaults(runner=run_simulate)


def netcoal_main(arg_list=None):
    set_sigpipe_handler()
    parser = get_netcoal_parser()
    args = parser.parse_args(arg_list)
    setup_logging(args)
    args.runner(args, parser)
