from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase

from cadets import chain
from cadets.models import Cadet, ChainOfCommandRole
from schools.models import School


class AnalyzeRoleTests(SimpleTestCase):
    def test_group_levels(self):
        self.assertEqual(chain.analyze_role("Group Commander").level, 0)
        self.assertEqual(chain.analyze_role("Deputy Group Commander").role_type, "group-command")
        self.assertEqual(chain.analyze_role("Inspector General").role_type, "group-staff")

    def test_squadron_commander(self):
        analysis = chain.analyze_role("Operations Squadron Commander")
        self.assertEqual(analysis.level, 2)
        self.assertTrue(analysis.is_command)
        self.assertEqual(analysis.squadron, "operations")

    def test_commander_is_not_communications(self):
        analysis = chain.analyze_role("Alpha Flight Commander")
        self.assertEqual(analysis.level, 3)
        self.assertIsNone(analysis.squadron)
        self.assertEqual(chain.analyze_role("Comm Squadron CC").squadron, "communications")

    def test_staff_and_specialists(self):
        self.assertEqual(chain.analyze_role("MX Supply NCO"), chain.RoleAnalysis(4, False, "maintenance", "squadron-staff"))
        self.assertEqual(chain.analyze_role("Public Affairs").role_type, "specialist")


class ChainRoleTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central High", jrotc_program="air_force")
        self.commander = chain.save_chain_role(self.school, {"role": "Group Commander", "reports_to": "NA", "assistant": "NA"})

    def test_role_unique_case_insensitive(self):
        with self.assertRaises(ValidationError) as ctx:
            chain.save_chain_role(self.school, {"role": "group commander ", "reports_to": "NA", "assistant": "NA"})
        self.assertEqual(ctx.exception.message_dict["role"], ["Role already exists, please change."])

    def test_update_excludes_self(self):
        job = chain.save_chain_role(
            self.school, {"role": "Group Commander", "reports_to": "NA", "assistant": "NA"}, self.commander
        )
        self.assertEqual(job.pk, self.commander.pk)

    def test_reports_to_and_assistant_together_rejected(self):
        chain.save_chain_role(self.school, {"role": "Executive Officer", "reports_to": "NA", "assistant": "NA"})
        with self.assertRaises(ValidationError) as ctx:
            chain.save_chain_role(
                self.school,
                {"role": "Ops Squadron Commander", "reports_to": "Group Commander", "assistant": "Executive Officer"},
            )
        self.assertIn("assistant", ctx.exception.message_dict)
        self.assertFalse(ChainOfCommandRole.objects.filter(role="Ops Squadron Commander").exists())

    def test_edited_link_clears_the_other(self):
        job = chain.save_chain_role(
            self.school, {"role": "Ops Squadron Commander", "reports_to": "Group Commander", "assistant": "NA"}
        )
        data = chain.linked_fields({"assistant": "Group Commander"}, job)
        self.assertEqual(data["reports_to"], "NA")
        job = chain.save_chain_role(self.school, data, job)
        self.assertEqual((job.reports_to, job.assistant), ("NA", "Group Commander"))

        data = chain.linked_fields({"reports_to": "Group Commander"}, job)
        self.assertEqual((data["reports_to"], data["assistant"]), ("Group Commander", "NA"))

        data = chain.linked_fields({"assistant": "na"}, job)
        self.assertEqual(data["reports_to"], "NA")
        self.assertEqual(data["role"], "Ops Squadron Commander")

    def test_delete_resets_links(self):
        child = chain.save_chain_role(
            self.school, {"role": "Executive Officer", "reports_to": "Group Commander", "assistant": "NA"}
        )
        aide = chain.save_chain_role(self.school, {"role": "Aide", "reports_to": "NA", "assistant": "Group Commander"})
        chain.delete_chain_role(self.commander)
        child.refresh_from_db()
        aide.refresh_from_db()
        self.assertEqual(child.reports_to, "NA")
        self.assertEqual(aide.assistant, "NA")
        self.assertFalse(ChainOfCommandRole.objects.filter(role="Group Commander").exists())

    def test_required_and_unknown_references(self):
        with self.assertRaises(ValidationError) as ctx:
            chain.validate_chain_role(self.school, "", "", "NA")
        self.assertIn("role", ctx.exception.message_dict)
        self.assertIn("reports_to", ctx.exception.message_dict)
        with self.assertRaises(ValidationError):
            chain.validate_chain_role(self.school, "Flight Commander", "Nobody", "NA")
        with self.assertRaises(ValidationError):
            chain.validate_chain_role(self.school, "Flight Commander", "Flight Commander", "NA")

    def test_rename_repoints_links(self):
        child = chain.save_chain_role(
            self.school, {"role": "Executive Officer", "reports_to": "Group Commander", "assistant": "NA"}
        )
        chain.save_chain_role(
            self.school, {"role": "Cadet Group Commander", "reports_to": "NA", "assistant": "NA"}, self.commander
        )
        child.refresh_from_db()
        self.assertEqual(child.reports_to, "Cadet Group Commander")

    def test_tree_and_squadrons(self):
        cadet = Cadet.objects.create(school=self.school, first_name="Ada", last_name="Lee", email="ada@example.com")
        sq = chain.save_chain_role(
            self.school,
            {"role": "Operations Squadron Commander", "reports_to": "Group Commander", "assistant": "NA", "cadet": cadet},
        )
        staff = chain.save_chain_role(
            self.school, {"role": "Ops Training NCO", "reports_to": "Operations Squadron Commander", "assistant": "NA"}
        )
        jobs = ChainOfCommandRole.objects.filter(school=self.school)
        nodes = {node.id: node for node in chain.build_command_tree(jobs)}
        self.assertEqual(nodes[sq.pk].parent, self.commander.pk)
        self.assertEqual(nodes[sq.pk].children, [staff.pk])
        self.assertEqual(nodes[sq.pk].cadet, "Ada Lee")
        self.assertEqual(nodes[self.commander.pk].squadron, "general")
        self.assertEqual(sq.email_address, "ada@example.com")

        squadrons = chain.build_squadron_structures(jobs)
        self.assertEqual(list(squadrons), ["operations"])
        self.assertEqual(squadrons["operations"].commander, sq.pk)
        self.assertEqual(sorted(squadrons["operations"].members), sorted([sq.pk, staff.pk]))

    def test_export_csv(self):
        content = chain.export_chain_csv(ChainOfCommandRole.objects.filter(school=self.school))
        self.assertTrue(content.startswith("Role,Cadet,Email,Reports To,Assistant,Level,Squadron"))
        self.assertIn("Group Commander,,,NA,NA,0,", content)
