from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from competitions import scoring

FIELDS = [
    {"id": "drill", "type": "number", "maxValue": 10},
    {"id": "bearing", "type": "dropdown", "values": ["5", "10", "15"]},
    {"id": "faults", "type": "penalty", "penaltyType": "points"},
    {"id": "severity", "type": "penalty", "penaltyType": "minor_major"},
    {"id": "outs", "type": "penalty", "penaltyType": "split"},
    {"id": "uniform", "type": "penalty", "penaltyType": "checkbox_list", "penaltyValue": -3},
    {"id": "late", "type": "penalty_checkbox", "penaltyValue": -2},
    {"id": "comments", "type": "text"},
    {"id": "heading", "type": "section_header"},
]


class CalculateTotalTests(SimpleTestCase):
    def test_every_penalty_type(self):
        scores = {
            "drill": 8,
            "bearing": "15",
            "faults": 2,
            "severity": "major",
            "outs": 3,
            "uniform": ["gig line", "shine"],
            "late": 1,
            "comments": "sharp",
        }
        # 8 + 15 - 20 - 50 - (5 + 2 * 25) - 6 - 2
        self.assertEqual(scoring.calculate_total(FIELDS, scores), -110)

    def test_blank_and_zero_entries_are_skipped(self):
        self.assertEqual(scoring.calculate_total(FIELDS, scoring.default_scores(FIELDS)), 0)
        self.assertEqual(scoring.calculate_total(FIELDS, {"outs": 0, "severity": ""}), 0)

    def test_custom_point_values(self):
        fields = [
            {"id": "p", "type": "penalty", "penaltyType": "points", "pointValue": -4},
            {"id": "s", "type": "penalty", "penaltyType": "split", "splitFirstValue": -1, "splitSubsequentValue": -2},
        ]
        self.assertEqual(scoring.calculate_total(fields, {"p": 3, "s": 1}), -13)

    def test_non_finite_entries_count_as_zero(self):
        fields = [
            {"id": "a", "type": "number"},
            {"id": "s", "type": "penalty", "penaltyType": "split"},
        ]
        self.assertEqual(scoring.calculate_total(fields, {"a": "nan"}), 0)
        self.assertEqual(scoring.calculate_total(fields, {"a": "1e999", "s": "inf"}), 0)
        self.assertEqual(scoring.calculate_total(fields, {"a": 7, "s": "-inf"}), 7)

    def test_overflowing_total_rejected(self):
        fields = [{"id": "p", "type": "penalty", "penaltyType": "points"}]
        with self.assertRaises(ValidationError):
            scoring.calculate_total(fields, {"p": "1e308"})

    def test_minor_major_ignores_unknown_values(self):
        self.assertEqual(scoring.calculate_total(FIELDS, {"severity": "minor"}), -20)
        self.assertEqual(scoring.calculate_total(FIELDS, {"severity": ["major"]}), 0)


class TemplateTests(SimpleTestCase):
    def test_defaults(self):
        defaults = scoring.default_scores(FIELDS)
        self.assertEqual(defaults["drill"], 0)
        self.assertEqual(defaults["faults"], 0)
        self.assertEqual(defaults["bearing"], "")
        self.assertEqual(defaults["comments"], "")

    def test_max_points(self):
        self.assertEqual(scoring.template_max_points(FIELDS), 25)
        self.assertEqual(scoring.field_max_points({"type": "scoring_scale", "options": [{"value": 3}, {"value": 7}]}), 7)

    def test_validation(self):
        scoring.validate_template_fields(FIELDS)
        with self.assertRaises(ValidationError) as ctx:
            scoring.validate_template_fields(
                [
                    {"id": "a", "type": "number"},
                    {"id": "a", "type": "number"},
                    {"id": "", "type": "bogus"},
                    {"id": "p", "type": "penalty", "penaltyType": "nope"},
                ]
            )
        messages = ctx.exception.message_dict["fields"]
        self.assertIn('Duplicate field id "a".', messages)
        self.assertIn("Field 3 is missing an id.", messages)
        self.assertIn('Field 3 has unknown type "bogus".', messages)
        self.assertIn('Field 4 has unknown penalty type "nope".', messages)

    def test_preview(self):
        result = scoring.preview(FIELDS[:3])
        self.assertEqual(result["max_points"], 25)
        self.assertEqual(result["total"], 0)
        self.assertEqual(result["fields"][0]["default"], 0)
        self.assertEqual(result["fields"][1]["max_points"], 15)
