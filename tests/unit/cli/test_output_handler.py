"""Unit tests for cli.output module."""

import pytest

from src.cli.output import OutputHandler, describe
from src.content_converter.models import AttachmentSpec
from src.page_graph.models import NodeKind
from src.sync.models import (
    ArchivePage,
    CreatePage,
    LabelDelta,
    MovePage,
    OperationPlan,
    PlanDiagnostic,
    SkipAttachment,
    UpdateMetadata,
    UploadAttachment,
)
from src.sync.pipeline import RunReport
from src.sync.plan_executor import ExecutionReport, OperationResult, Outcome

SPEC = AttachmentSpec("a.md", "img/a.png", "docs/img/a.png", "img_a.png")


class TestDescribe:
    """Test cases for operation descriptions."""

    @pytest.mark.parametrize("operation,expected", [
        (CreatePage(path="a.md", title="A", kind=NodeKind.PAGE, body="", version_message=""),
         "create page 'A' (a.md)"),
        (MovePage(path="a.md", page_id="5", title="A", parent_path="sub/index.md"),
         "move 'A' under sub/index.md"),
        (MovePage(path="a.md", page_id="5", title="A"), "move 'A' under space root"),
        (UploadAttachment(path="a.md", attachment=SPEC), "upload img_a.png to a.md"),
        (ArchivePage(page_id="5", title="Old", source="old.md"), "archive 'Old' (old.md)"),
        (ArchivePage(page_id="5", title="Old"), "archive 'Old'"),
    ])
    def test_describe(self, operation, expected):
        """Each operation has a one-line description."""
        assert describe(operation) == expected

    def test_metadata_parts(self):
        """Metadata updates list the aspects that change."""
        update = UpdateMetadata(path="a.md", labels=LabelDelta(add=["x"]), status="Verified",
                                refresh_marker="m")

        assert describe(update) == "update labels, status, source marker of a.md"


class TestOutputHandler:
    """Test cases for OutputHandler."""

    def test_info_hidden_at_verbosity_0(self, capsys):
        """Info messages need verbosity 1."""
        OutputHandler(verbosity=0, no_color=True).info("hidden")
        OutputHandler(verbosity=1, no_color=True).info("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_print_plan(self, capsys):
        """Changes and diagnostics are listed; kept attachments only at verbosity 2."""
        plan = OperationPlan(
            operations=[
                ArchivePage(page_id="5", title="Old"),
                SkipAttachment(path="a.md", attachment=SPEC),
            ],
            diagnostics=[PlanDiagnostic("2 pages match 'a.md' by title")],
        )

        OutputHandler(no_color=True).print_plan(plan)

        out = capsys.readouterr().out
        assert "Plan: 1 change(s)" in out
        assert "archive 'Old'" in out
        assert "keep img_a.png" not in out
        assert "2 pages match 'a.md' by title" in out

    def test_print_empty_plan(self, capsys):
        """An empty plan reports that the space is in sync."""
        OutputHandler(no_color=True).print_plan(OperationPlan())

        assert "Already in sync" in capsys.readouterr().out

    def test_print_dry_run_report(self, capsys):
        """A dry run reports the unapplied changes."""
        report = RunReport(documents=2, plan=OperationPlan(operations=[ArchivePage(page_id="5", title="Old")]))

        OutputHandler(no_color=True).print_report(report)

        out = capsys.readouterr().out
        assert "Documents: 2/2 converted" in out
        assert "Dry run: 1 change(s) not applied" in out

    def test_print_execution_report(self, capsys):
        """Failures are listed with the operation they belong to."""
        archive = ArchivePage(page_id="5", title="Old")
        execution = ExecutionReport(results=[
            OperationResult(archive, Outcome.FAILED, "forbidden"),
        ])
        report = RunReport(documents=1, execution=execution)

        OutputHandler(no_color=True).print_report(report)

        out = capsys.readouterr().out
        assert "Failed: 1" in out
        assert "failed: archive 'Old': forbidden" in out
        assert "Sync completed with errors" in out
