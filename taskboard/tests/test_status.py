from types import SimpleNamespace

from django.test import SimpleTestCase

from taskboard import status


def option(value, label, is_active=True, color_class=""):
    return SimpleNamespace(value=value, label=label, is_active=is_active, color_class=color_class)


class StatusUtilsTests(SimpleTestCase):
    def setUp(self):
        self.options = [
            option("not_started", "Not Started"),
            option("resolved_ok", "All good"),
            option("wrapped", "Finished"),
            option("closed", "Closed", is_active=False),
            option("aborted", "Stopped"),
            option("rejected", "Rejected", color_class="bg-red-100"),
        ]

    def test_completion_statuses_match_value_or_label(self):
        self.assertEqual(status.completion_statuses(self.options), ["resolved_ok", "wrapped"])

    def test_cancel_statuses(self):
        self.assertEqual(status.cancel_statuses(self.options), ["aborted", "rejected"])

    def test_is_task_done(self):
        self.assertTrue(status.is_task_done("wrapped", self.options))
        self.assertTrue(status.is_task_done("rejected", self.options))
        self.assertFalse(status.is_task_done("closed", self.options))
        self.assertFalse(status.is_task_done("not_started", self.options))

    def test_defaults_fall_back(self):
        self.assertEqual(status.default_completion_status(self.options), "resolved_ok")
        self.assertEqual(status.default_completion_status([]), "done")
        self.assertEqual(status.default_cancel_status([]), "canceled")

    def test_labels(self):
        self.assertEqual(status.status_label("wrapped", self.options), "Finished")
        self.assertEqual(status.status_label("waiting_on_parts_now", []), "waiting on_parts_now")
        self.assertEqual(status.priority_label("urgent", []), "Urgent")

    def test_color_class(self):
        self.assertEqual(status.color_class("rejected", self.options), "bg-red-100")
        self.assertEqual(status.color_class("unknown", self.options), status.DEFAULT_COLOR_CLASS)
