import unittest

from path_sampler import Point, has_enough_points, resample


def _line(count):
    return [Point(float(i), float(-i)) for i in range(count)]


class TestResample(unittest.TestCase):
    def test_long_path_keeps_every_kth_point(self):
        points = _line(250)
        sampled = resample(points, 100)

        self.assertEqual(len(sampled), 125)
        self.assertEqual(sampled[0], points[0])
        self.assertEqual(sampled[1], points[2])
        self.assertEqual(sampled[-1], points[248])

    def test_short_path_passes_through(self):
        points = _line(37)
        self.assertEqual(resample(points, 100), points)

    def test_exact_target_passes_through(self):
        points = _line(100)
        self.assertEqual(resample(points, 100), points)

    def test_order_is_preserved(self):
        sampled = resample(_line(1000), 100)
        xs = [p.x for p in sampled]
        self.assertEqual(xs, sorted(xs))
        self.assertEqual(len(sampled), 100)

    def test_empty_path(self):
        self.assertEqual(resample([], 100), [])


class TestHasEnoughPoints(unittest.TestCase):
    def test_ten_points_is_not_enough(self):
        self.assertFalse(has_enough_points(_line(10)))

    def test_eleven_points_is_enough(self):
        self.assertTrue(has_enough_points(_line(11)))

    def test_custom_minimum(self):
        self.assertFalse(has_enough_points(_line(3), minimum=3))
        self.assertTrue(has_enough_points(_line(4), minimum=3))


if __name__ == "__main__":
    unittest.main()
