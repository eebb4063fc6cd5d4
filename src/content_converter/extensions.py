"""Python-Markdown extensions used by the document converter."""

import re

from markdown.extensions import Extension
from markdown.inlinepatterns import SimpleTagInlineProcessor
from markdown.postprocessors import Postprocessor

# Tags that are never passed through as raw HTML
DENIED_TAGS = (
    "title", "textarea", "style", "xmp", "iframe",
    "noembed", "noframes", "script", "plaintext",
)

# Confluence elements that may open a raw HTML block
CONFLUENCE_BLOCK_ELEMENTS = ("ac:structured-macro", "ac:layout", "ac:task-list", "ac:image")


class StrikethroughExtension(Extension):
    """Renders ``~~text~~`` as ``<del>text</del>``."""

    def extendMarkdown(self, md):
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(r'(~~)(.+?)~~', 'del'), 'strikethrough', 175
        )


class TagFilterPostprocessor(Postprocessor):
    """Escapes the opening bracket of denied raw HTML tags."""

    PATTERN = re.compile(
        r'<(/?(?:' + '|'.join(DENIED_TAGS) + r'))(?=[\s/>])',
        re.IGNORECASE
    )

    def run(self, text):
        return self.PATTERN.sub(r'&lt;\1', text)


class ConfluenceExtension(Extension):
    """Raw Confluence block elements and the tag filter.

    Raw HTML blocks opened by a Confluence element are kept verbatim instead
    of being wrapped in a paragraph. The tag filter runs after raw HTML has
    been restored into the output.
    """

    def extendMarkdown(self, md):
        for element in CONFLUENCE_BLOCK_ELEMENTS:
            if element not in md.block_level_elements:
                md.block_level_elements.append(element)
        md.postprocessors.register(TagFilterPostprocessor(md), 'tagfilter', 5)
