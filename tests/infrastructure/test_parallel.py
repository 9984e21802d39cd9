import os
import threading
import unittest
from unittest import mock

import numpy as np

from src.graphdiff.domain._errors import ExecutionError
from src.graphdiff.infrastructure import _parallel
from src.graphdiff.infrastructure._parallel import (
    as_lanes,
    for_each_lane,
    get_num_threads,
    set_num_threads,
)


class TestAsLanes(unittest.TestCase):
    def test_scalar_is_single_lane(self):
        self.assertEqual(as_lanes(np.array(3.0)).shape, (1, 1))

    def test_outer_axes_are_flattened(self):
        arr = np.arange(24.0).reshape(2, 3, 4)
        lanes = as_lanes(arr)
        self.assertEqual(lanes.shape, (6, 4))
        lanes[5, 3] = -1.0
        self.assertEqual(arr[1, 2, 3], -1.0)

    def test_non_contiguous_rejected(self):
        arr = np.zeros((4, 4))[:, ::2]
        with self.assertRaises(ExecutionError):
            as_lanes(arr)


class TestForEachLane(unittest.TestCase):
    def setUp(self):
        self._threads = get_num_threads()
        set_num_threads(4)

    def tearDown(self):
        set_num_threads(self._threads)

    def test_blocks_cover_every_lane_once(self):
        x = np.random.RandomState(0).rand(1000, 7)
        out = np.zeros_like(x)
        calls = []
        lock = threading.Lock()

        def kernel(o, i):
            with lock:
                calls.append(o.shape[0])
            o += i * 2.0

        for_each_lane(kernel, out, x, min_lanes_per_task=1)

        np.testing.assert_allclose(out, x * 2.0)
        self.assertGreater(len(calls), 1)
        self.assertEqual(sum(calls), 1000)

    def test_small_workloads_run_inline(self):
        calls = []

        def kernel(o):
            calls.append(threading.current_thread())
            o += 1.0

        out = np.zeros((8, 3))
        for_each_lane(kernel, out, min_lanes_per_task=64)
        self.assertEqual(calls, [threading.current_thread()])
        np.testing.assert_allclose(out, 1.0)

    def test_kernel_errors_propagate(self):
        def kernel(o):
            raise ValueError("boom")

        with self.assertRaises(ValueError):
            for_each_lane(kernel, np.zeros((100, 2)), min_lanes_per_task=1)

    def test_shape_mismatch_raises(self):
        with self.assertRaises(ExecutionError):
            for_each_lane(lambda a, b: None, np.zeros((2, 2)), np.zeros((2, 3)))

    def test_empty_arrays_skip_kernel(self):
        def kernel(o):
            raise AssertionError("kernel must not run")

        for_each_lane(kernel, np.zeros((0, 4)))
        for_each_lane(kernel, np.zeros((3, 0)))


class TestThreadConfig(unittest.TestCase):
    def test_set_num_threads_validates(self):
        with self.assertRaises(ValueError):
            set_num_threads(0)
        with self.assertRaises(ValueError):
            set_num_threads(2.5)

    def test_num_threads_from_environment(self):
        with mock.patch.dict(os.environ, {"GRAPHDIFF_NUM_THREADS": "3"}):
            with mock.patch.object(_parallel, "_NUM_THREADS", None):
                self.assertEqual(get_num_threads(), 3)

    def test_invalid_environment_value_warns(self):
        with mock.patch.dict(os.environ, {"GRAPHDIFF_MIN_LANES_PER_TASK": "many"}):
            with self.assertWarns(RuntimeWarning):
                for_each_lane(lambda o: None, np.zeros((4, 4)))


if __name__ == "__main__":
    unittest.main()
