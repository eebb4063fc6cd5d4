"""Unit tests for content_converter.models and slug helpers."""

from src.content_converter.models import attachment_key
from src.content_converter.storage_renderer import slugify


class TestAttachmentKey:
    """Test cases for attachment_key."""

    def test_local_path(self):
        """Path separators are replaced so directories cannot collide."""
        assert attachment_key("assets/diagram.png") == "assets_diagram.png"
        assert attachment_key("other/diagram.png") != attachment_key("assets/diagram.png")

    def test_remote_url(self):
        """URLs are keyed by host and path, without the scheme."""
        assert attachment_key("https://example.com/img/logo.png") == "example.com_img_logo.png"

    def test_empty_reference(self):
        """An empty reference still yields a usable name."""
        assert attachment_key("/") == "attachment"


def test_slugify():
    """slugify lowercases, strips punctuation and hyphenates spaces."""
    assert slugify("Getting Started, Quickly!") == "getting-started-quickly"
    assert slugify("  ") == ""
