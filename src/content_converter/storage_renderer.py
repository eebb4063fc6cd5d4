"""Rewrites rendered HTML into Confluence storage format.

Python-Markdown produces plain HTML. StorageRenderer walks the parsed tree
with BeautifulSoup and replaces the constructs Confluence represents
natively: heading anchors, page and anchor links, images and file links
(as attachments), code blocks, task lists and alert callouts.
"""

import logging
import posixpath
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup, CData, NavigableString, Tag

from src.document.diagnostics import (
    BrokenLinkWarning,
    DocumentWarning,
    MalformedBlockWarning,
)
from src.macros.index import CrossDocumentIndex

from .models import AttachmentSpec, attachment_key

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

# GitHub alert kinds and the Confluence panel macro each one renders as
ALERT_MACROS = {
    "note": "info",
    "tip": "tip",
    "important": "info",
    "warning": "note",
    "caution": "warning",
}

ALERT_MARKER = re.compile(r'^\[!(?P<kind>[A-Za-z]+)\](?P<expand>\[expand\])?[ \t]*(?P<title>[^\n]*)$')

TASK_MARKER = re.compile(r'^\s*\[(?P<state>[ xX])\]\s+')


def slugify(text: str) -> str:
    """Anchor name for a heading: lowercase, punctuation stripped, spaces to hyphens.

    Example:
        >>> slugify("Getting Started, Quickly!")
        'getting-started-quickly'
    """
    slug = re.sub(r"[^\w\s-]", "", text.lower()).strip()
    return re.sub(r"\s+", "-", slug)


def is_external(target: str) -> bool:
    parsed = urlparse(target)
    return bool(parsed.scheme) or target.startswith("//")


class StorageRenderer:
    """Converts the HTML of one document into Confluence storage format.

    Args:
        source: Path of the document being converted
        index: Cross-document index used to resolve links
        source_dir: Directory that document paths are relative to
        index_name: File name of directory index documents
        mirror_remote_images: Upload remote images as attachments
    """

    def __init__(self, source: str, index: CrossDocumentIndex, source_dir: str = ".",
                 index_name: str = "index.md", mirror_remote_images: bool = False):
        self.source = source
        self.index = index
        self.source_dir = source_dir
        self.index_name = index_name
        self.mirror_remote_images = mirror_remote_images
        self.warnings: List[DocumentWarning] = []
        self.attachments: Dict[str, AttachmentSpec] = {}
        self._doc_dir = posixpath.dirname(source)

    def render(self, soup: BeautifulSoup) -> None:
        """Rewrite ``soup`` in place."""
        self._render_code_blocks(soup)
        self._render_heading_anchors(soup)
        self._render_links(soup)
        self._render_images(soup)
        self._render_task_lists(soup)
        self._render_alerts(soup)

    def _macro(self, soup: BeautifulSoup, name: str,
               parameters: Optional[Dict[str, str]] = None) -> Tag:
        macro = soup.new_tag("ac:structured-macro", attrs={"ac:name": name, "ac:schema-version": "1"})
        for key, value in (parameters or {}).items():
            param = soup.new_tag("ac:parameter", attrs={"ac:name": key})
            param.string = value
            macro.append(param)
        return macro

    def _warn(self, warning: DocumentWarning) -> None:
        logger.warning(warning.message)
        self.warnings.append(warning)

    # Headings

    def _render_heading_anchors(self, soup: BeautifulSoup) -> None:
        seen: Dict[str, int] = {}
        for heading in soup.find_all(HEADING_TAGS):
            slug = slugify(heading.get_text())
            if not slug:
                continue
            if slug in seen:
                seen[slug] += 1
                slug = f"{slug}-{seen[slug]}"
            else:
                seen[slug] = 0
            heading.insert(0, self._macro(soup, "anchor", {"": slug}))

    # Links

    def resolve_path(self, target: str) -> Optional[str]:
        """Source-relative path of a relative link target, or None if it leaves the tree."""
        target = unquote(target)
        if target.startswith("/"):
            path = posixpath.normpath(target.lstrip("/"))
        else:
            path = posixpath.normpath(posixpath.join(self._doc_dir, target))
        if path == ".." or path.startswith("../"):
            return None
        return path

    def _resolve_page(self, path: str):
        page = self.index.page(path)
        if page is None and not path.endswith(".md"):
            index_path = self.index_name if path == "." else posixpath.join(path, self.index_name)
            page = self.index.page(index_path)
        return page

    def _split_target(self, href: str) -> Tuple[str, str]:
        path, _, fragment = href.partition("#")
        return path, fragment

    def _render_links(self, soup: BeautifulSoup) -> None:
        for link in soup.find_all("a"):
            href = link.get("href", "")
            if not href or is_external(href) or link.get("class") in (["footnote-ref"], ["footnote-backref"]):
                continue
            if href.startswith("#") and link.find_parent(class_="footnote") is not None:
                continue

            path, fragment = self._split_target(href)
            if not path:
                link.replace_with(self._anchor_link(soup, link, fragment))
                continue

            resolved = self.resolve_path(path)
            page = self._resolve_page(resolved) if resolved else None
            if page is not None:
                link.replace_with(self._page_link(soup, link, page.title, fragment))
            elif resolved and self.index.has_file(resolved):
                spec = self._register(resolved, href)
                link.replace_with(self._attachment_link(soup, link, spec.key))
            else:
                self._warn(BrokenLinkWarning(source=self.source, target=href))
                link.replace_with(link.get_text())

    def _link_body(self, soup: BeautifulSoup, link: Tag) -> Tag:
        body = soup.new_tag("ac:link-body")
        for child in list(link.contents):
            body.append(child.extract())
        return body

    def _anchor_link(self, soup: BeautifulSoup, link: Tag, fragment: str) -> Tag:
        ac_link = soup.new_tag("ac:link", attrs={"ac:anchor": fragment})
        ac_link.append(self._link_body(soup, link))
        return ac_link

    def _page_link(self, soup: BeautifulSoup, link: Tag, title: str, fragment: str) -> Tag:
        attrs = {"ac:anchor": fragment} if fragment else {}
        ac_link = soup.new_tag("ac:link", attrs=attrs)
        ac_link.append(soup.new_tag("ri:page", attrs={
            "ri:content-title": title,
            "ri:space-key": self.index.space_key,
        }))
        ac_link.append(self._link_body(soup, link))
        return ac_link

    def _attachment_link(self, soup: BeautifulSoup, link: Tag, key: str) -> Tag:
        ac_link = soup.new_tag("ac:link")
        ac_link.append(soup.new_tag("ri:attachment", attrs={"ri:filename": key}))
        ac_link.append(self._link_body(soup, link))
        return ac_link

    # Attachments and images

    def _register(self, reference: str, original: str) -> AttachmentSpec:
        if is_external(reference):
            source = reference
        else:
            source = posixpath.join(self.source_dir, reference)
        key = attachment_key(reference)
        if key not in self.attachments:
            self.attachments[key] = AttachmentSpec(
                page=self.source, reference=original, source=source, key=key
            )
        return self.attachments[key]

    def _render_images(self, soup: BeautifulSoup) -> None:
        for img in soup.find_all("img"):
            src = img.get("src", "")
            alt = img.get("alt", "")
            attrs = {"ac:align": "center"}
            if img.get("title") or alt:
                attrs["ac:title"] = img.get("title") or alt
            if alt:
                attrs["ac:alt"] = alt
            image = soup.new_tag("ac:image", attrs=attrs)

            if is_external(src):
                if self.mirror_remote_images:
                    spec = self._register(src, src)
                    image.append(soup.new_tag("ri:attachment", attrs={"ri:filename": spec.key}))
                else:
                    image.append(soup.new_tag("ri:url", attrs={"ri:value": src}))
                img.replace_with(image)
                continue

            resolved = self.resolve_path(src) if src else None
            if resolved and self.index.has_file(resolved):
                spec = self._register(resolved, src)
                image.append(soup.new_tag("ri:attachment", attrs={"ri:filename": spec.key}))
                img.replace_with(image)
            else:
                self._warn(BrokenLinkWarning(source=self.source, target=src))
                img.replace_with(alt)

    # Code

    def _render_code_blocks(self, soup: BeautifulSoup) -> None:
        for pre in soup.find_all("pre"):
            code = pre.find("code")
            if code is None:
                continue
            language = None
            for css_class in code.get("class", []):
                if css_class.startswith("language-"):
                    language = css_class[len("language-"):]
            text = code.get_text()
            if text.endswith("\n"):
                text = text[:-1]

            parameters = {"language": language} if language else {}
            macro = self._macro(soup, "code", parameters)
            body = soup.new_tag("ac:plain-text-body")
            # CDATA cannot contain its own terminator
            body.append(CData(text.replace("]]>", "]]]]><![CDATA[>")))
            macro.append(body)
            pre.replace_with(macro)

    # Task lists

    def _task_marker(self, item: Tag) -> Optional[Tuple[NavigableString, re.Match]]:
        node = item
        while isinstance(node, Tag):
            first = next((c for c in node.contents if not (isinstance(c, NavigableString) and not c.strip())), None)
            if first is None:
                return None
            if isinstance(first, NavigableString):
                match = TASK_MARKER.match(str(first))
                return (first, match) if match else None
            if first.name != "p":
                return None
            node = first
        return None

    def _render_task_lists(self, soup: BeautifulSoup) -> None:
        # innermost lists first, so nested task lists end up inside their parent task
        for ul in reversed(soup.find_all("ul")):
            items = ul.find_all("li", recursive=False)
            markers = [self._task_marker(item) for item in items]
            if not items or any(marker is None for marker in markers):
                continue

            task_list = soup.new_tag("ac:task-list")
            for item, (text_node, match) in zip(items, markers):
                text_node.replace_with(str(text_node)[match.end():])
                task = soup.new_tag("ac:task")
                task.append(soup.new_tag("ac:task-id"))
                status = soup.new_tag("ac:task-status")
                status.string = "incomplete" if match.group("state") == " " else "complete"
                task.append(status)
                body = soup.new_tag("ac:task-body")
                for child in list(item.contents):
                    body.append(child.extract())
                task.append(body)
                task_list.append(task)
            ul.replace_with(task_list)

        for number, task_id in enumerate(soup.find_all("ac:task-id"), start=1):
            task_id.string = str(number)

    # Alerts

    @staticmethod
    def _marker_line(paragraph: Tag) -> Tuple[str, List, str]:
        """Split the first line off a paragraph.

        Returns:
            (text of the first line, nodes making up that line, text after
            the line break inside the last of those nodes)
        """
        parts: List[str] = []
        nodes: List = []
        for child in list(paragraph.contents):
            nodes.append(child)
            if isinstance(child, Tag) and child.name == "br":
                return "".join(parts), nodes, ""
            if isinstance(child, NavigableString):
                head, newline, tail = str(child).partition("\n")
                parts.append(head)
                if newline:
                    return "".join(parts), nodes, tail
            else:
                parts.append(child.get_text())
        return "".join(parts), nodes, ""

    def _render_alerts(self, soup: BeautifulSoup) -> None:
        for quote in reversed(soup.find_all("blockquote")):
            first = quote.find(True)
            if first is None or first.name != "p" or not first.contents:
                continue
            lead = first.contents[0]
            if not isinstance(lead, NavigableString) or not str(lead).startswith("[!"):
                continue

            marker_line, line_nodes, rest = self._marker_line(first)
            match = ALERT_MARKER.match(marker_line.rstrip())
            if match is None or match.group("kind").lower() not in ALERT_MACROS:
                self._warn(MalformedBlockWarning(source=self.source, marker=marker_line.strip()))
                continue
            for node in line_nodes[:-1]:
                node.extract()
            last = line_nodes[-1]
            if rest.strip():
                last.replace_with(rest.lstrip())
            else:
                last.extract()
            if not first.get_text(strip=True) and first.find(True) is None:
                first.decompose()

            title = match.group("title").strip()
            parameters = {"title": title} if title else {}
            if match.group("expand"):
                macro = self._macro(soup, "expand", parameters)
                del macro["ac:schema-version"]
            else:
                macro = self._macro(soup, ALERT_MACROS[match.group("kind").lower()], parameters)

            body = soup.new_tag("ac:rich-text-body")
            for child in list(quote.contents):
                body.append(child.extract())
            macro.append(body)
            quote.replace_with(macro)
