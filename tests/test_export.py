"""Workbook export tests."""

from io import BytesIO
from pathlib import Path

from openpyxl import load_workbook

from conftest import make_marks
from results_engine.services.aggregation import score_student
from results_engine.services.export import WorkbookReportRenderer, write_class_broadsheet
from results_engine.services.ranking import rank
from results_engine.services.summary import summarize


def ranked_class(policy):
    group = [
        score_student("S001", make_marks("S001", {"MATH": 85, "ENGL": 30}), policy),
        score_student("S002", make_marks("S002", {"MATH": 55, "ENGL": None}), policy),
    ]
    return rank(group, policy.ranking)


class TestBroadsheet:
    """Class broadsheet export."""

    def test_broadsheet_rows(self, o_level_policy, o_level_subjects):
        ranked = ranked_class(o_level_policy)
        summary = summarize(ranked)

        content = write_class_broadsheet(
            ranked,
            summary,
            subjects=o_level_subjects,
            student_names={"S001": "Amina Juma"},
            title="Form Two Results",
        )

        ws = load_workbook(BytesIO(content))["Broadsheet"]
        assert ws.cell(row=1, column=1).value == "Form Two Results"
        headers = [ws.cell(row=2, column=c).value for c in range(1, 10)]
        assert headers == [
            "Rank", "Student ID", "Student Name", "Mathematics", "English",
            "Total Marks", "Average", "Points", "Division",
        ]
        # S001 has 6 points, S002 has 3; points descending puts S001 first
        assert ws.cell(row=3, column=2).value == "S001"
        assert ws.cell(row=3, column=3).value == "Amina Juma"
        assert ws.cell(row=3, column=4).value == "85 A*"
        assert ws.cell(row=4, column=5).value == "-"
        assert ws.cell(row=4, column=9).value == "0"


class TestWorkbookReportRenderer:
    """Per-student result sheets."""

    def test_render_writes_file(self, tmp_path, o_level_policy, o_level_subjects):
        ranked = ranked_class(o_level_policy)
        renderer = WorkbookReportRenderer(tmp_path / "out", subjects=o_level_subjects)

        path = renderer.render(ranked[0], summarize(ranked))

        assert path.endswith("S001.xlsx")
        ws = load_workbook(path)["Result"]
        assert ws.cell(row=3, column=1).value == "Mathematics"
        assert ws.cell(row=3, column=3).value == "A"
        assert ws.cell(row=3, column=5).value == "Excellent"
        assert ws.cell(row=3, column=6).value == "Yes"

    def test_unsafe_student_id_is_sanitized(self, tmp_path, o_level_policy):
        aggregate = score_student("F2/2024 01", make_marks("F2/2024 01", {"MATH": 50}), o_level_policy)
        ranked = rank([aggregate])
        renderer = WorkbookReportRenderer(tmp_path)

        path = renderer.render(ranked[0], summarize(ranked))

        assert Path(path).name.startswith("F2_2024_01-")
        assert Path(path).suffix == ".xlsx"

    def test_ids_that_clean_to_the_same_name_get_separate_files(self, tmp_path, o_level_policy):
        renderer = WorkbookReportRenderer(tmp_path)
        paths = []
        for student_id in ("A/1", "A_1"):
            ranked = rank([score_student(student_id, make_marks(student_id, {"MATH": 50}), o_level_policy)])
            paths.append(renderer.render(ranked[0], summarize(ranked)))

        assert paths[0] != paths[1]
        assert Path(paths[1]).name == "A_1.xlsx"
        assert all(Path(path).exists() for path in paths)
