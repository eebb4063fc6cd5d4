"""Unit tests for sync.plan_executor module."""

from unittest.mock import Mock

import pytest

from src.confluence_client.api_wrapper import COVER_PICTURE_PROPERTY, COVER_PROPERTY, cover_property_value
from src.confluence_client.errors import APIAccessError, InvalidCredentialsError
from src.content_converter.models import AttachmentSpec
from src.document.models import Cover
from src.page_graph.models import NodeKind, PageGraph, PageNode
from src.sync.models import (
    ArchivePage,
    CreatePage,
    LabelDelta,
    MovePage,
    OperationPlan,
    RemoteAttachment,
    RestorePage,
    SkipAttachment,
    UpdateContent,
    UpdateMetadata,
    UploadAttachment,
)
from src.sync.plan_executor import Outcome, PlanExecutor
from src.sync.remote_state import RemoteState

SPEC = AttachmentSpec("a.md", "img/a.png", "docs/img/a.png", "img_a.png")


def create(path, title, parent_path=None, parent_id=None, kind=NodeKind.PAGE):
    return CreatePage(
        path=path, title=title, kind=kind, body=f"<p>{title}</p>",
        version_message=f"marker {path}", parent_path=parent_path, parent_id=parent_id,
    )


@pytest.fixture
def api():
    return Mock()


@pytest.fixture
def reader():
    return Mock()


@pytest.fixture
def graph():
    graph = PageGraph()
    graph.add(PageNode(path="a.md", title="A", body="<p>a</p>"))
    return graph


@pytest.fixture
def executor(api, reader, graph):
    state = RemoteState(space_key="DOCS", space_id="99", homepage_id="1")
    return PlanExecutor(api, state, reader, graph)


def run(executor, *operations):
    return executor.execute(OperationPlan(operations=list(operations)))


class TestCreate:
    """Test cases for creating pages and folders."""

    def test_children_bound_to_created_parent(self, executor, api):
        """A child created after its parent gets the parent's new id."""
        api.create_page.side_effect = [{"id": "10"}, {"id": "11"}]

        report = run(executor, create("a.md", "A", parent_id="1"), create("a/b.md", "B", parent_path="a.md"))

        assert report.succeeded == 2
        assert api.create_page.call_args_list[0].args == ("DOCS", "A", "<p>A</p>", "1")
        assert api.create_page.call_args_list[1].args == ("DOCS", "B", "<p>B</p>", "10")
        api.update_page.assert_any_call("10", "A", "<p>A</p>", "marker a.md")

    def test_folder(self, executor, api):
        """Folders are created in the space by id."""
        api.create_folder.return_value = {"id": "12"}

        report = run(executor, create("sub/index.md", "Sub", parent_id="1", kind=NodeKind.FOLDER))

        assert report.succeeded == 1
        api.create_folder.assert_called_once_with("99", "Sub", "1")
        api.update_page.assert_not_called()

    def test_failed_create_skips_dependents(self, executor, api):
        """Operations that need a page that failed to appear are skipped."""
        api.create_page.side_effect = APIAccessError("boom")

        report = run(
            executor,
            create("a.md", "A", parent_id="1"),
            create("a/b.md", "B", parent_path="a.md"),
            UploadAttachment(path="a.md", attachment=SPEC, content_hash="h"),
            UpdateContent(path="c.md", page_id="5", title="C", body="<p>c</p>", version_message="m"),
        )

        assert [r.outcome for r in report.results] == [
            Outcome.FAILED, Outcome.SKIPPED, Outcome.SKIPPED, Outcome.SUCCEEDED,
        ]
        assert (report.succeeded, report.failed, report.skipped) == (1, 1, 2)
        assert len(report.failures) == 3
        api.upload_attachment.assert_not_called()

    def test_invalid_credentials_abort(self, executor, api):
        """Authentication failures stop the run."""
        api.archive_page.side_effect = InvalidCredentialsError("u", "e")

        with pytest.raises(InvalidCredentialsError):
            run(executor, ArchivePage(page_id="5", title="Old"))


class TestStructure:
    """Test cases for restore, move and archive."""

    def test_restore_binds_page(self, executor, api):
        """A restored page can be referenced by later operations."""
        api.create_page.return_value = {"id": "11"}

        report = run(
            executor,
            RestorePage(path="a.md", page_id="5", title="A"),
            create("a/b.md", "B", parent_path="a.md"),
        )

        api.restore_page.assert_called_once_with("5")
        assert api.create_page.call_args.args[3] == "5"
        assert report.failed == 0

    def test_move_under_created_parent(self, executor, api):
        """A page is moved under a parent created earlier in the plan."""
        api.create_page.return_value = {"id": "10"}

        run(
            executor,
            create("sub/index.md", "Sub", parent_id="1"),
            MovePage(path="sub/a.md", page_id="5", title="A", parent_path="sub/index.md"),
        )

        api.move_page.assert_called_once_with("5", "10")

    def test_archive(self, executor, api):
        """Archive operations archive the page by id."""
        report = run(executor, ArchivePage(page_id="5", title="Old", source="old.md"))

        api.archive_page.assert_called_once_with("5")
        assert report.results[0].outcome == Outcome.SUCCEEDED


class TestAttachments:
    """Test cases for attachment uploads."""

    def test_upload_local_file(self, executor, api, tmp_path):
        """Local files are uploaded with their hash as comment."""
        path = tmp_path / "a.png"
        path.write_bytes(b"data")
        spec = AttachmentSpec("a.md", "a.png", str(path), "a.png")

        run(executor, UploadAttachment(path="a.md", attachment=spec, page_id="5", content_hash="abc"))

        api.upload_attachment.assert_called_once_with("5", "a.png", b"data", "hash:abc")

    def test_upload_remote_url(self, executor, api):
        """Mirrored URLs are downloaded and uploaded with the URL as comment."""
        api.download.return_value = b"png"
        spec = AttachmentSpec("a.md", "https://example.com/b.png", "https://example.com/b.png", "example.com_b.png")

        run(executor, UploadAttachment(path="a.md", attachment=spec, page_id="5"))

        api.upload_attachment.assert_called_once_with(
            "5", "example.com_b.png", b"png", "url:https://example.com/b.png"
        )

    def test_missing_local_file_fails(self, executor, api):
        """An unreadable file fails only its own upload."""
        spec = AttachmentSpec("a.md", "gone.png", "/nonexistent/gone.png", "gone.png")

        report = run(executor, UploadAttachment(path="a.md", attachment=spec, page_id="5", content_hash="x"))

        assert report.failed == 1

    def test_skip_attachment(self, executor, api):
        """Up-to-date attachments succeed without API calls."""
        report = run(executor, SkipAttachment(path="a.md", attachment=SPEC, page_id="5", remote_id="att"))

        assert report.succeeded == 1
        assert api.method_calls == []


class TestMetadata:
    """Test cases for metadata updates."""

    def test_labels_status_and_editors(self, executor, api):
        """Labels, status and restrictions are applied to the page."""
        update = UpdateMetadata(
            path="a.md", page_id="5",
            labels=LabelDelta(add=["a"], remove=["b", "c"]),
            status="Verified",
            editors=["acc-1"],
        )

        report = run(executor, update)

        api.add_labels.assert_called_once_with("5", ["a"])
        assert [c.args for c in api.remove_label.call_args_list] == [("5", "b"), ("5", "c")]
        api.set_content_state.assert_called_once_with("5", "Verified")
        api.set_editors.assert_called_once_with("5", ["acc-1"])
        assert report.results[0].message == "labels, status, restrictions"

    def test_metadata_of_created_page(self, executor, api):
        """Metadata of a page created in the same run uses its new id."""
        api.create_page.return_value = {"id": "10"}

        run(
            executor,
            create("a.md", "A", parent_id="1"),
            UpdateMetadata(path="a.md", labels=LabelDelta(add=["x"])),
        )

        api.add_labels.assert_called_once_with("10", ["x"])

    def test_remote_cover(self, executor, api):
        """A remote cover is published by URL."""
        cover = Cover("https://example.com/c.png", 30)

        run(executor, UpdateMetadata(path="a.md", page_id="5", cover_changed=True, cover=cover))

        api.set_property.assert_any_call(
            "5", COVER_PICTURE_PROPERTY, cover_property_value("https://example.com/c.png", 30)
        )
        api.set_property.assert_any_call(
            "5", COVER_PROPERTY, {"source": "https://example.com/c.png", "position": 30}
        )

    def test_local_cover_uses_attachment_file_id(self, executor, api, reader):
        """A local cover is published by the file id of its attachment."""
        reader.attachments.return_value = [RemoteAttachment(id="att", title="img_c.png", file_id="file-1")]

        run(executor, UpdateMetadata(
            path="a.md", page_id="5", cover_changed=True,
            cover=Cover("img/c.png", 50), cover_attachment="img_c.png",
        ))

        reader.attachments.assert_called_once_with("5", refresh=True)
        api.set_property.assert_any_call("5", COVER_PICTURE_PROPERTY, cover_property_value("file-1", 50))

    def test_local_cover_missing_attachment(self, executor, api, reader):
        """A local cover without its attachment is skipped."""
        reader.attachments.return_value = []

        report = run(executor, UpdateMetadata(
            path="a.md", page_id="5", cover_changed=True,
            cover=Cover("img/c.png"), cover_attachment="img_c.png",
        ))

        assert report.skipped == 1
        api.set_property.assert_not_called()

    def test_cover_removed(self, executor, api):
        """Removing the cover deletes both properties."""
        run(executor, UpdateMetadata(path="a.md", page_id="5", cover_changed=True, cover=None))

        assert [c.args for c in api.delete_property.call_args_list] == [
            ("5", COVER_PICTURE_PROPERTY), ("5", COVER_PROPERTY),
        ]

    def test_refresh_marker_republishes_body(self, executor, api):
        """A stale marker is replaced by publishing the body again."""
        run(executor, UpdateMetadata(path="a.md", page_id="5", refresh_marker="new marker"))

        api.update_page.assert_called_once_with("5", "A", "<p>a</p>", "new marker")
