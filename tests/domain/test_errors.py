import unittest

from src.graphdiff.domain._errors import (
    BuildError,
    ExecutionError,
    GradientError,
    ShapePropError,
    UnimplementedGradientError,
)


class TestErrorTaxonomy(unittest.TestCase):
    def test_all_errors_are_runtime_errors(self):
        for cls in (
            BuildError,
            ShapePropError,
            ExecutionError,
            GradientError,
            UnimplementedGradientError,
        ):
            self.assertTrue(issubclass(cls, RuntimeError), cls.__name__)

    def test_op_type_prefixes_message(self):
        err = BuildError("bad inputs", "Min")
        self.assertEqual(str(err), "Min: bad inputs")
        self.assertEqual(err.op_type, "Min")

        err = ExecutionError("size mismatch")
        self.assertEqual(str(err), "size mismatch")
        self.assertIsNone(err.op_type)

    def test_shape_prop_error_carries_shapes(self):
        err = ShapePropError("conflict", existing=(1, 2), proposed=(2, 1))
        self.assertEqual(err.existing, (1, 2))
        self.assertEqual(err.proposed, (2, 1))

    def test_unimplemented_gradient_is_gradient_error(self):
        err = UnimplementedGradientError("MinBack")
        self.assertIsInstance(err, GradientError)
        self.assertEqual(err.op_type, "MinBack")
        self.assertIn("not implemented", str(err))


if __name__ == "__main__":
    unittest.main()
