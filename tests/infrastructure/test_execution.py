import unittest

import numpy as np

from src.graphdiff.domain._errors import ExecutionError, ShapePropError
from src.graphdiff.infrastructure._execution import ExecutionContext, execute
from src.graphdiff.infrastructure.graph._graph import Graph
from src.graphdiff.infrastructure.graph._node import Node
from src.graphdiff.infrastructure.ops.elementwise._identity import Identity, identity
from src.graphdiff.infrastructure.ops.elementwise._min import minimum


class TestExecute(unittest.TestCase):
    def test_default_dtype_is_float32(self):
        x = Node.new((2,)).set_value([1.0, 2.0])
        y = identity(x)
        out = y.calc()
        self.assertEqual(out.dtype, np.float32)
        np.testing.assert_allclose(out, [1.0, 2.0])

    def test_dtype_override(self):
        x = Node.new((2,)).set_value([1.0, 2.0])
        y = identity(x)
        self.assertEqual(y.calc(dtype=np.float64).dtype, np.float64)

    def test_multiple_producers_accumulate(self):
        g = Graph()
        a = g.new_node((3,)).set_value([1.0, 2.0, 3.0])
        b = g.new_node((3,)).set_value([10.0, 20.0, 30.0])
        out = g.new_node((3,))
        Identity(a, out).build()
        Identity(b, out).build()
        np.testing.assert_allclose(out.calc(), [11.0, 22.0, 33.0])

    def test_repeated_execution_is_idempotent(self):
        g = Graph()
        a = g.new_node((3,)).set_value([1.0, 2.0, 3.0])
        out = g.new_node((3,))
        Identity(a, out).build()
        Identity(a, out).build()
        first = out.calc()
        second = out.calc()
        np.testing.assert_array_equal(first, second)
        np.testing.assert_allclose(first, [2.0, 4.0, 6.0])

    def test_supplied_inputs_override_values(self):
        x = Node.new((2,)).set_value([1.0, 1.0])
        y = identity(x)
        np.testing.assert_allclose(y.calc({x: [5.0, 6.0]}), [5.0, 6.0])
        np.testing.assert_allclose(y.calc(), [1.0, 1.0])

    def test_supplied_scalar_broadcasts(self):
        x = Node.new((2, 2))
        y = identity(x)
        np.testing.assert_allclose(y.calc({x: 3.0}), np.full((2, 2), 3.0))

    def test_shapes_inferred_from_supplied_values(self):
        x = Node.new()
        y = identity(x)
        out = y.calc({x: np.ones((2, 3))})
        self.assertEqual(out.shape, (2, 3))
        self.assertFalse(x.shape.is_known)

    def test_valued_nodes_are_leaves(self):
        x = Node.new((2,))
        y = identity(x).set_value([4.0, 4.0])
        np.testing.assert_allclose(y.calc(), [4.0, 4.0])

    def test_several_outputs(self):
        a = Node.new((2,)).set_value([1.0, -1.0])
        b = Node.new((2,)).set_value([0.0, 0.0])
        m = minimum(a, b)
        i = identity(a)
        results = execute(a.graph, [m, i])
        np.testing.assert_allclose(results[m], [0.0, -1.0])
        np.testing.assert_allclose(results[i], [1.0, -1.0])

    def test_missing_value_raises(self):
        x = Node.new((2,)).set_name("x")
        y = identity(x)
        with self.assertRaises(ExecutionError) as ctx:
            y.calc()
        self.assertIn("'x'", str(ctx.exception))

    def test_unresolved_shape_raises(self):
        x = Node.new().set_init("zeros")
        y = identity(x)
        with self.assertRaises(ShapePropError):
            y.calc()

    def test_supplied_value_with_wrong_shape(self):
        x = Node.new((2,))
        y = identity(x)
        with self.assertRaises(ShapePropError):
            y.calc({x: np.zeros((3,))})

    def test_foreign_node_raises(self):
        x = Node.new((1,)).set_value([1.0])
        other = Node.new((1,))
        with self.assertRaises(ExecutionError):
            execute(x.graph, [other])


class TestExecutionContext(unittest.TestCase):
    def setUp(self):
        g = Graph()
        self.x = g.new_node((2,))
        self.y = g.new_node((2,))
        self.z = g.new_node((2,))
        self.op = Identity(self.x, self.y).build()
        self.storage = {
            self.x.id: np.array([1.0, 2.0], dtype=np.float32),
            self.y.id: np.zeros(2, dtype=np.float32),
            self.z.id: np.zeros(2, dtype=np.float32),
        }

    def test_input_views_are_read_only(self):
        ctx = ExecutionContext(self.op, self.storage)
        view = ctx.get_input_standard(self.x.id)
        with self.assertRaises(ValueError):
            view[0] = 3.0

    def test_output_is_writable_storage(self):
        ctx = ExecutionContext(self.op, self.storage)
        out = ctx.get_output_standard(self.y.id)
        out += 1.0
        np.testing.assert_allclose(self.storage[self.y.id], [1.0, 1.0])
        self.assertEqual(ctx.shape(self.y.id), (2,))

    def test_undeclared_access_raises(self):
        ctx = ExecutionContext(self.op, self.storage)
        with self.assertRaises(ExecutionError):
            ctx.get_input_standard(self.z.id)
        with self.assertRaises(ExecutionError):
            ctx.get_output_standard(self.x.id)
        with self.assertRaises(ExecutionError):
            ctx.shape(self.z.id)

    def test_execute_accumulates_into_output(self):
        self.op.execute(ExecutionContext(self.op, self.storage))
        self.op.execute(ExecutionContext(self.op, self.storage))
        np.testing.assert_allclose(self.storage[self.y.id], [2.0, 4.0])


if __name__ == "__main__":
    unittest.main()
