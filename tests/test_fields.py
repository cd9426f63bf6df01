"""Unit tests for tolerant record access and coercion."""

import math
import unittest

from utils.fields import get_field, get_value, normalize_id, to_bool, to_number, to_period


class TestGetField(unittest.TestCase):
    """Tests for alias-based field lookup."""

    def test_first_alias_wins(self):
        row = {'team_h': 3, 'home_team': 7}
        self.assertEqual(get_field(row, 'home_team'), 7)

    def test_falls_through_missing_values(self):
        row = {'home_team': None, 'team_h': float('nan'), 'home_team_id': 9}
        self.assertEqual(get_field(row, 'home_team'), 9)

    def test_missing_everywhere(self):
        self.assertIsNone(get_field({}, 'minutes'))
        self.assertIsNone(get_value(None, 'a', 'b'))


class TestCoercion(unittest.TestCase):
    """Tests for numeric, boolean and id coercion."""

    def test_to_number(self):
        self.assertEqual(to_number('4'), 4.0)
        self.assertEqual(to_number('n/a'), 0.0)
        self.assertEqual(to_number(None), 0.0)
        self.assertEqual(to_number(float('nan')), 0.0)
        self.assertEqual(to_number(True), 1.0)

    def test_to_period(self):
        self.assertEqual(to_period('12'), 12)
        self.assertEqual(to_period(3.0), 3)
        self.assertIsNone(to_period(0))
        self.assertIsNone(to_period('gw'))
        self.assertIsNone(to_period(float('inf')))

    def test_to_bool(self):
        for value in (True, 'true', 'TRUE', 1, 'yes', '1'):
            self.assertTrue(to_bool(value), value)
        for value in (False, 'false', 0, None, '', 'no', float('nan')):
            self.assertFalse(to_bool(value), value)

    def test_normalize_id_equivalent_forms(self):
        self.assertEqual(normalize_id(7), 7)
        self.assertEqual(normalize_id('7'), 7)
        self.assertEqual(normalize_id('7.0'), 7)
        self.assertEqual(normalize_id(7.0), 7)
        self.assertEqual(normalize_id(' 7 '), 7)

    def test_normalize_id_non_numeric(self):
        self.assertEqual(normalize_id('ARS'), 'ARS')
        self.assertEqual(normalize_id(7.5), '7.5')
        self.assertIsNone(normalize_id(''))
        self.assertIsNone(normalize_id(None))
        self.assertIsNone(normalize_id(float('nan')))
        self.assertIsNone(normalize_id(math.inf))
        self.assertIsNone(normalize_id(True))


if __name__ == '__main__':
    unittest.main()
