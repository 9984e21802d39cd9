import unittest

import numpy as np

from src.graphdiff.domain._errors import BuildError
from src.graphdiff.infrastructure._ordering import (
    ancestor_ops,
    dependency_order,
    descendant_ops,
    reaches,
)
from src.graphdiff.infrastructure.graph._graph import Graph
from src.graphdiff.infrastructure.ops.elementwise._base import ElementwiseInstance
from src.graphdiff.infrastructure.ops.elementwise._identity import (
    Identity,
    IdentityFunc,
)


class TestDependencyOrder(unittest.TestCase):
    def test_reorders_reverse_construction(self):
        g = Graph()
        a, b, c = (g.new_node((2,)) for _ in range(3))
        second = Identity(b, c).build()
        first = Identity(a, b).build()

        self.assertEqual(g.ops(), (second, first))
        self.assertEqual(dependency_order(g.ops()), [first, second])

    def test_independent_ops_keep_sequence_order(self):
        g = Graph()
        a, b, c, d = (g.new_node((2,)) for _ in range(4))
        op1 = Identity(a, b).build()
        op2 = Identity(c, d).build()
        self.assertEqual(dependency_order([op2, op1]), [op2, op1])
        self.assertEqual(dependency_order([op1, op2]), [op1, op2])

    def test_all_producers_run_before_consumers(self):
        g = Graph()
        a, b, out, final = (g.new_node((2,)) for _ in range(4))
        consumer = Identity(out, final).build()
        p1 = Identity(a, out).build()
        p2 = Identity(b, out).build()
        order = dependency_order(g.ops())
        self.assertEqual(order[-1], consumer)
        self.assertEqual(set(map(id, order[:2])), {id(p1), id(p2)})

    def test_cycle_raises(self):
        g = Graph()
        a = g.new_node((2,))
        b = g.new_node((2,))
        func = IdentityFunc()
        forward = ElementwiseInstance(func=func, input_ids=(a.id,), output=b.id)
        backward = ElementwiseInstance(func=func, input_ids=(b.id,), output=a.id)
        with self.assertRaises(BuildError):
            dependency_order([forward, backward])

    def test_execution_follows_dependencies(self):
        g = Graph()
        a, b, c = (g.new_node((2,)) for _ in range(3))
        Identity(b, c).build()
        Identity(a, b).build()
        np.testing.assert_allclose(c.calc({a: [1.0, 2.0]}), [1.0, 2.0])


class TestClosures(unittest.TestCase):
    def setUp(self):
        g = Graph()
        self.a, self.b, self.c, self.d = (g.new_node((1,)) for _ in range(4))
        self.ab = Identity(self.a, self.b).build()
        self.bc = Identity(self.b, self.c).build()
        self.dc = Identity(self.d, self.c).build()
        self.graph = g

    def _producers(self, nid):
        return self.graph.producers_of(nid)

    def _consumers(self, nid):
        return self.graph.consumers_of(nid)

    def test_ancestor_ops(self):
        found = ancestor_ops(self._producers, [self.c.id])
        self.assertEqual({id(op) for op in found}, {id(self.ab), id(self.bc), id(self.dc)})

    def test_ancestor_ops_stops_at_leaves(self):
        found = ancestor_ops(self._producers, [self.c.id], stop={self.b.id})
        self.assertEqual({id(op) for op in found}, {id(self.bc), id(self.dc)})

    def test_descendant_ops(self):
        found = descendant_ops(self._consumers, [self.a.id])
        self.assertEqual({id(op) for op in found}, {id(self.ab), id(self.bc)})

    def test_reaches(self):
        self.assertTrue(reaches(self._consumers, [self.a.id], [self.c.id]))
        self.assertTrue(reaches(self._consumers, [self.a.id], [self.a.id]))
        self.assertFalse(reaches(self._consumers, [self.c.id], [self.a.id]))
        self.assertFalse(reaches(self._consumers, [self.d.id], [self.b.id]))


if __name__ == "__main__":
    unittest.main()
