from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from apps.job.services.money import from_minor_units, to_minor_units


class ToMinorUnitsTest(SimpleTestCase):
    def test_rounds_half_up_at_the_cent(self):
        self.assertEqual(to_minor_units("123.455"), 12346)
        self.assertEqual(to_minor_units("123.454"), 12345)
        self.assertEqual(to_minor_units("0.005"), 1)

    def test_accepts_int_float_and_decimal(self):
        self.assertEqual(to_minor_units(100), 10000)
        self.assertEqual(to_minor_units(0.1), 10)
        self.assertEqual(to_minor_units(Decimal("1250.50")), 125050)

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            to_minor_units("-1", "amount_paid")
        self.assertIn("amount_paid", ctx.exception.message_dict)

    def test_non_numeric_rejected(self):
        for value in ("abc", None, True, "NaN"):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    to_minor_units(value)

    def test_from_minor_units(self):
        self.assertEqual(from_minor_units(12345), Decimal("123.45"))
        self.assertEqual(str(from_minor_units(0)), "0.00")
