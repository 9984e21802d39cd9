import unittest

import numpy as np

from src.graphdiff.infrastructure.utils.initializer import Initializer


class TestInitializerRegistry(unittest.TestCase):
    def test_available_contains_builtins(self):
        names = Initializer.available()
        for name in ("zeros", "ones", "constant", "uniform", "normal"):
            self.assertIn(name, names)

    def test_get_returns_callable(self):
        self.assertTrue(callable(Initializer.get("uniform")))

    def test_unknown_initializer_raises_value_error(self):
        with self.assertRaises(ValueError) as ctx:
            Initializer("___does_not_exist___")
        msg = str(ctx.exception)
        self.assertIn("Unsupported initializer name", msg)
        self.assertIn("Available:", msg)

    def test_register_initializer_no_overwrite_by_default(self):
        name = "__unit_test_initializer__"

        @Initializer.register_initializer(name, overwrite=True)
        def init_a(array):
            return array

        with self.assertRaises(ValueError):

            @Initializer.register_initializer(name)
            def init_b(array):
                return array

    def test_register_initializer_overwrite_true(self):
        name = "__unit_test_initializer_overwrite__"

        @Initializer.register_initializer(name, overwrite=True)
        def init_a(array):
            array.fill(1.0)
            return array

        @Initializer.register_initializer(name, overwrite=True)
        def init_b(array):
            array.fill(2.0)
            return array

        out = Initializer(name)(np.zeros(3))
        np.testing.assert_allclose(out, np.full(3, 2.0))

    def test_register_rejects_empty_name(self):
        with self.assertRaises(ValueError):
            Initializer.register_initializer("")

    def test_repr(self):
        self.assertEqual(
            repr(Initializer("constant", value=3.0)), "Initializer('constant', value=3.0)"
        )


class TestBuiltinInitializers(unittest.TestCase):
    def test_constants(self):
        np.testing.assert_allclose(Initializer("zeros")(np.ones(4)), np.zeros(4))
        np.testing.assert_allclose(Initializer("ones")(np.zeros(4)), np.ones(4))
        np.testing.assert_allclose(
            Initializer("constant", value=-2.5)(np.zeros((2, 2))), np.full((2, 2), -2.5)
        )

    def test_fills_in_place(self):
        arr = np.zeros(5)
        out = Initializer("ones")(arr)
        self.assertIs(out, arr)

    def test_uniform_bounds(self):
        np.random.seed(0)
        out = Initializer("uniform", low=0.25, high=0.5)(np.zeros((50, 50)))
        self.assertGreaterEqual(out.min(), 0.25)
        self.assertLess(out.max(), 0.5)

    def test_uniform_invalid_bounds(self):
        with self.assertRaises(ValueError):
            Initializer("uniform", low=1.0, high=0.0)(np.zeros(2))

    def test_normal_statistics(self):
        np.random.seed(0)
        out = Initializer("normal", mean=1.0, std=0.1)(np.zeros((100, 100)))
        self.assertAlmostEqual(float(out.mean()), 1.0, delta=0.01)
        self.assertAlmostEqual(float(out.std()), 0.1, delta=0.01)

    def test_normal_negative_std(self):
        with self.assertRaises(ValueError):
            Initializer("normal", std=-1.0)(np.zeros(2))

    def test_unknown_parameter_is_rejected_at_call(self):
        init = Initializer("ones", scale=2.0)
        with self.assertRaises(TypeError):
            init(np.zeros(2))


if __name__ == "__main__":
    unittest.main()
