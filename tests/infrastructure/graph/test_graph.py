import unittest

import numpy as np

from src.graphdiff.domain._errors import BuildError, ShapePropError
from src.graphdiff.infrastructure.graph._graph import Graph, merge_graphs
from src.graphdiff.infrastructure.graph._node import Node
from src.graphdiff.infrastructure.ops.elementwise._identity import Identity
from src.graphdiff.infrastructure.ops.elementwise._min import Min, minimum


class TestGraphNodes(unittest.TestCase):
    def test_new_node_defaults(self):
        g = Graph()
        n = g.new_node()
        self.assertIn(n, g)
        self.assertEqual(n.name, f"node_{n.id.index}")
        self.assertFalse(n.shape.is_known)
        self.assertEqual(g.nodes(), [n])

    def test_node_ids_are_unique_across_graphs(self):
        a = Graph().new_node((2,))
        b = Graph().new_node((2,))
        self.assertNotEqual(a.id, b.id)
        self.assertNotEqual(a, b)

    def test_node_from_id(self):
        g = Graph()
        n = g.new_node((3,), name="x")
        self.assertEqual(g.node_from_id(n.id), n)
        other = Graph().new_node()
        with self.assertRaises(KeyError):
            g.node_from_id(other.id)

    def test_graph_handles_are_unhashable(self):
        with self.assertRaises(TypeError):
            hash(Graph())


class TestMergeGraphs(unittest.TestCase):
    def test_merge_round_trip(self):
        n1 = Node.new((2, 3)).set_name("n1")
        n2 = Node.new((2, 3)).set_name("n2")
        self.assertNotEqual(n1.graph, n2.graph)

        merge_graphs([n1.graph, n2.graph])
        out = n1.graph.new_node((2, 3))
        Min(n1, n2, out).build()

        self.assertEqual(n1.graph, n2.graph)
        self.assertEqual(out.graph, n2.graph)
        self.assertEqual(len(n2.graph.ops()), 1)

    def test_merge_is_idempotent(self):
        a = Node.new((1,))
        b = Node.new((1,))
        merge_graphs([a.graph, b.graph])
        merge_graphs([a.graph, b.graph])
        merge_graphs([b.graph, a.graph])
        self.assertEqual(len(a.graph.nodes()), 2)

    def test_merge_keeps_ops_and_metadata(self):
        x = Node.new((2,)).set_name("x")
        y = x.graph.new_node((2,)).set_name("y")
        Identity(x, y).build()
        z = Node.new((2,)).set_name("z").set_value([1.0, 2.0])

        merge_graphs([z.graph, x.graph])

        self.assertEqual(x.graph, z.graph)
        self.assertEqual(len(x.graph.ops()), 1)
        self.assertEqual(x.graph.producers_of(y), x.graph.ops())
        self.assertEqual(y.name, "y")
        np.testing.assert_allclose(z.value, [1.0, 2.0])

    def test_merge_is_transitive(self):
        a, b, c = Node.new(), Node.new(), Node.new()
        merge_graphs([a.graph, b.graph])
        merge_graphs([c.graph, b.graph])
        self.assertEqual(a.graph, c.graph)
        self.assertEqual(len(c.graph.nodes()), 3)

    def test_convenience_builder_merges(self):
        a = Node.new((4,))
        b = Node.new((4,))
        m = minimum(a, b)
        self.assertEqual(m.graph, a.graph)
        self.assertEqual(a.graph, b.graph)


class TestRegisterOp(unittest.TestCase):
    def test_build_across_unmerged_graphs_fails(self):
        a = Node.new((2,))
        b = Node.new((2,))
        out = a.graph.new_node((2,))
        with self.assertRaises(BuildError):
            Min(a, b, out).build()
        self.assertEqual(a.graph.ops(), ())
        self.assertEqual(b.graph.ops(), ())

    def test_input_output_overlap_fails(self):
        x = Node.new((2,))
        with self.assertRaises(BuildError):
            Identity(x, x).build()
        self.assertEqual(x.graph.ops(), ())

    def test_cycle_is_rejected_and_graph_untouched(self):
        g = Graph()
        a = g.new_node((2,), name="a")
        b = g.new_node((2,), name="b")
        Identity(a, b).build()
        with self.assertRaises(BuildError) as ctx:
            Identity(b, a).build()
        self.assertIn("cycle", str(ctx.exception))
        self.assertEqual(len(g.ops()), 1)

    def test_producers_and_consumers_are_indexed(self):
        g = Graph()
        x = g.new_node((3,))
        a = g.new_node((3,))
        b = g.new_node((3,))
        out = g.new_node((3,))
        first = Min(x, a, out).build()
        second = Min(x, b, out).build()

        self.assertEqual(g.producers_of(out), (first, second))
        self.assertEqual(g.consumers_of(x), (first, second))
        self.assertEqual(g.consumers_of(a), (first,))
        self.assertEqual(g.producers_of(x), ())


class TestGraphShapes(unittest.TestCase):
    def test_propagate_commits_inferred_shapes(self):
        g = Graph()
        x = g.new_node((2, 5))
        y = g.new_node()
        Identity(x, y).build()
        g.propagate_shapes()
        self.assertEqual(y.shape, (2, 5))

    def test_failed_propagation_commits_nothing(self):
        g = Graph()
        x = g.new_node((2, 5))
        y = g.new_node()
        z = g.new_node((3, 3))
        Identity(x, y).build()
        Identity(y, z).build()
        with self.assertRaises(ShapePropError):
            g.propagate_shapes()
        self.assertFalse(y.shape.is_known)


if __name__ == "__main__":
    unittest.main()
