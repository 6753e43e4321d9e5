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
Tests for species networks and their extended newick parsing.
"""
import pytest

import netcoal
from netcoal import networks


class TestParseTree:
    def test_two_leaves(self):
        network = networks.parse_species_network("(A:1.0,B:2.0);")
        assert network.num_nodes == 3
        assert network.num_edges == 2
        assert network.leaf_names == ["A", "B"]
        assert network.root.name is None
        assert [edge.length for edge in network.edges] == [1.0, 2.0]
        assert len(network.hybrid_nodes) == 0

    def test_ids_in_preorder(self):
        network = networks.parse_species_network("((A:1,B:1)AB:1,C:2)R;")
        assert [node.name for node in network.nodes] == ["R", "AB", "A", "B", "C"]
        assert [node.id for node in network.nodes] == [1, 2, 3, 4, 5]
        assert [edge.id for edge in network.edges] == [1, 2, 3, 4]
        assert [edge.child.name for edge in network.edges] == ["AB", "A", "B", "C"]

    def test_above_root_population(self):
        network = networks.parse_species_network("((A:1,B:1):1,C:2);")
        assert network.max_edge_id == 4
        assert network.above_root_population == 5

    def test_whitespace(self):
        network = networks.parse_species_network("  (A:1,B:1);\n")
        assert network.leaf_names == ["A", "B"]

    def test_node_lookup(self):
        network = networks.parse_species_network("((A:1,B:1)AB:1,C:2);")
        assert network.node("AB").name == "AB"
        assert network.node("1") is network.root
        with pytest.raises(KeyError):
            network.node("D")
        assert network.edge(2).child.name == "A"
        with pytest.raises(KeyError):
            network.edge(100)

    def test_str(self):
        network = networks.parse_species_network("(A:1,B:1);")
        s = str(network)
        assert "SpeciesNetwork: 3 nodes, 2 edges" in s
        assert "A" in s


class TestParseNetwork:
    def test_hybrid(self, hybrid_network_fixture):
        network = networks.parse_species_network(hybrid_network_fixture)
        assert len(network.hybrid_nodes) == 1
        hybrid = network.hybrid_nodes[0]
        assert hybrid.name == "H1"
        assert hybrid.is_hybrid
        assert [edge.gamma for edge in hybrid.parent_edges] == [0.7, 0.3]
        assert [edge.length for edge in hybrid.parent_edges] == [0.5, 0.2]
        assert [edge.child.name for edge in hybrid.child_edges] == ["B"]
        assert sorted(network.leaf_names) == ["A", "B", "C", "D"]
        network.check_inheritance()

    def test_hybrid_defined_second(self):
        network = networks.parse_species_network(
            "((A:1,#H1:1::0.4):1,(B:1)#H1:2::0.6);"
        )
        hybrid = network.node("H1")
        assert [edge.gamma for edge in hybrid.parent_edges] == [0.4, 0.6]
        assert [edge.child.name for edge in hybrid.child_edges] == ["B"]

    def test_support_ignored(self):
        network = networks.parse_species_network(
            "((A:1,#H1:1:0.95:0.4):1,(B:1)#H1:2:0.9:0.6);"
        )
        hybrid = network.node("H1")
        assert [edge.gamma for edge in hybrid.parent_edges] == [0.4, 0.6]
        assert [edge.length for edge in hybrid.parent_edges] == [1.0, 2.0]

    def test_missing_gamma_completed(self):
        network = networks.parse_species_network("((A:1,#H1:1::0.3):1,(B:1)#H1:1);")
        hybrid = network.node("H1")
        gammas = [edge.gamma for edge in hybrid.parent_edges]
        assert gammas[0] == 0.3
        assert gammas[1] == pytest.approx(0.7)
        network.check_inheritance()

    def test_two_cycle(self):
        network = networks.parse_species_network("((A:1)#H1:1::0.6,#H1:1::0.4);")
        hybrid = network.node("H1")
        assert len(hybrid.parent_edges) == 2
        assert all(edge.parent is network.root for edge in hybrid.parent_edges)
        order = network.reverse_topological_order()
        assert order[0].name == "A"
        assert order[-1] is network.root


class TestParseErrors:
    @pytest.mark.parametrize("value", [None, 1234, b"(A:1,B:1);"])
    def test_bad_type(self, value):
        with pytest.raises(TypeError):
            networks.parse_species_network(value)

    def test_empty(self):
        with pytest.raises(netcoal.NetworkError):
            networks.parse_species_network("")

    def test_single_node(self):
        with pytest.raises(netcoal.NetworkError, match="at least one edge"):
            networks.parse_species_network("A;")

    def test_duplicate_names(self):
        with pytest.raises(netcoal.NetworkError, match="Duplicate node names"):
            networks.parse_species_network("((A:1,A:1):1,B:2);")

    def test_missing_length(self):
        with pytest.raises(netcoal.NetworkError, match="length"):
            networks.parse_species_network("(A,B:1);")

    def test_unnamed_leaf(self):
        with pytest.raises(netcoal.NetworkError, match="name"):
            networks.parse_species_network("(:1,B:1);")

    def test_hybrid_without_children(self):
        with pytest.raises(netcoal.NetworkError, match="without any children"):
            networks.parse_species_network("((A:1,#H1:1::0.4):1,(B:1,#H1:1::0.6):1);")

    def test_hybrid_children_twice(self):
        with pytest.raises(netcoal.NetworkError, match="more than once"):
            networks.parse_species_network(
                "((A:1,(C:1)#H1:1::0.4):1,(B:1,(D:1)#H1:1::0.6):1);"
            )

    def test_unlabelled_hybrid(self):
        with pytest.raises(netcoal.NetworkError, match="labelled"):
            networks.parse_species_network("((A:1,#:1::0.4):1,(B:1)#:1::0.6);")


class TestCheckInheritance:
    def test_missing_gamma(self):
        network = networks.parse_species_network("((A:1,#H1:1):1,(B:1)#H1:1);")
        with pytest.raises(netcoal.NetworkError, match="gamma"):
            network.check_inheritance()

    def test_gammas_not_summing_to_one(self):
        network = networks.parse_species_network(
            "((A:1,#H1:1::0.3):1,(B:1)#H1:1::0.3);"
        )
        with pytest.raises(netcoal.NetworkError, match="sum to"):
            network.check_inheritance()

    def test_gamma_out_of_range(self):
        network = networks.parse_species_network(
            "((A:1,#H1:1::1.5):1,(B:1)#H1:1::-0.5);"
        )
        with pytest.raises(netcoal.NetworkError, match=r"\(0, 1\]"):
            network.check_inheritance()

    def test_tree_edge_gamma(self):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        network.add_edge(root, network.add_node("A"), 1, gamma=0.5)
        network.add_edge(root, network.add_node("B"), 1)
        with pytest.raises(netcoal.NetworkError, match="not a hybrid edge"):
            network.check_inheritance()

    def test_tree_edge_gamma_one(self):
        network = networks.parse_species_network("(A:1::1.0,B:1);")
        network.check_inheritance()


class TestBuildNetwork:
    def test_add_nodes_and_edges(self):
        network = networks.SpeciesNetwork()
        root = network.add_node("R")
        a = network.add_node("A")
        b = network.add_node("B")
        e1 = network.add_edge(root, a, 1)
        e2 = network.add_edge(root, b, 2.5)
        assert (e1.id, e2.id) == (1, 2)
        assert network.root is root
        assert root.child_edges == [e1, e2]
        assert a.parent_edges == [e1]
        assert e2.length == 2.5
        network.validate()

    def test_explicit_edge_ids(self):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        network.add_edge(root, network.add_node("A"), 1, id=10)
        network.add_edge(root, network.add_node("B"), 1, id=3)
        assert network.max_edge_id == 10
        assert network.above_root_population == 11
        with pytest.raises(netcoal.NetworkError, match="Duplicate edge ID"):
            network.add_edge(root, network.add_node("C"), 1, id=3)

    @pytest.mark.parametrize("bad_id", [0, -1, 1.5])
    def test_bad_edge_id(self, bad_id):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        with pytest.raises(netcoal.NetworkError, match="positive integers"):
            network.add_edge(root, network.add_node("A"), 1, id=bad_id)

    def test_duplicate_node_id(self):
        network = networks.SpeciesNetwork()
        network.add_node(id=5)
        with pytest.raises(netcoal.NetworkError, match="Duplicate node ID"):
            network.add_node(id=5)

    def test_label(self):
        network = networks.SpeciesNetwork()
        assert network.add_node("X").label == "X"
        assert network.add_node(id=7).label == "7"
        assert network.add_node(id=-3).label == "minus3"

    def test_multiple_roots(self):
        network = networks.SpeciesNetwork()
        network.add_node("A")
        network.add_node("B")
        with pytest.raises(netcoal.NetworkError, match="exactly one root"):
            network.validate()

    def test_cycle(self):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        u = network.add_node()
        v = network.add_node()
        network.add_edge(root, u, 1)
        network.add_edge(u, v, 1)
        network.add_edge(v, u, 1)
        network.add_edge(v, network.add_node("A"), 1)
        with pytest.raises(netcoal.NetworkError, match="cycle"):
            network.validate()

    def test_negative_length(self):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        network.add_edge(root, network.add_node("A"), -1)
        network.add_edge(root, network.add_node("B"), 1)
        with pytest.raises(netcoal.NetworkError, match="non-negative"):
            network.validate()

    def test_infinite_length(self):
        network = networks.SpeciesNetwork()
        root = network.add_node()
        network.add_edge(root, network.add_node("A"), float("inf"))
        network.add_edge(root, network.add_node("B"), 1)
        with pytest.raises(netcoal.NetworkError, match="finite"):
            network.validate()

    def test_empty(self):
        with pytest.raises(netcoal.NetworkError, match="empty"):
            networks.SpeciesNetwork().validate()


class TestReverseTopologicalOrder:
    def test_children_before_parents(self, hybrid_network_fixture):
        network = networks.parse_species_network(hybrid_network_fixture)
        order = network.reverse_topological_order()
        assert len(order) == network.num_nodes
        position = {node: j for j, node in enumerate(order)}
        for edge in network.edges:
            assert position[edge.child] < position[edge.parent]
        assert order[-1] is network.root


class TestCopy:
    def test_copy_is_independent(self, hybrid_network_fixture):
        network = networks.parse_species_network(hybrid_network_fixture)
        other = network.copy()
        assert other.as_newick() == network.as_newick()
        other.edges[0].length = 100
        other.nodes[1].name = "changed"
        assert network.edges[0].length == 1.0
        assert network.nodes[1].name != "changed"

    def test_with_internal_names(self):
        network = networks.parse_species_network("((A:1,B:1):1,(C:1,D:1)i1:1);")
        named = network.with_internal_names()
        names = [node.name for node in named.nodes]
        assert all(name is not None for name in names)
        assert len(set(names)) == len(names)
        assert "i1" in names
        assert named.root.name == "i2"
        # The original is unchanged.
        assert network.root.name is None

    def test_with_internal_names_prefix(self):
        network = networks.parse_species_network("(A:1,B:1);")
        assert network.with_internal_names(prefix="node").root.name == "node1"


class TestAsNewick:
    @pytest.mark.parametrize(
        "text",
        [
            "(A:1.0,B:2.0);",
            "((A:1.0,B:1.0)AB:0.5,C:1.5)R;",
            "((A:1.0,(B:0.5)#H1:0.5::0.7):1.0,(#H1:0.2::0.3,C:0.7):1.3,D:2.0);",
            "((A:1.0)#H1:1.0::0.6,#H1:1.0::0.4);",
        ],
    )
    def test_round_trip(self, text):
        network = networks.parse_species_network(text)
        assert network.as_newick() == text
        other = networks.parse_species_network(network.as_newick())
        assert other.as_newick() == text

    def test_precision(self):
        network = networks.parse_species_network("(A:1.23456,B:2);")
        assert network.as_newick(precision=2) == "(A:1.23,B:2.00);"
