"""parsers/epub_parser.py — Parse EPUB (packed or directory) into chapters."""

import html
import posixpath
import warnings
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from models import BookMetadata, Chapter
from parsers.base import (
    CorruptContainer,
    Deadline,
    NoChaptersFound,
    ParseResult,
    ReadError,
    normalize_markup,
    normalize_text,
    strip_tags,
)

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
HTML_MEDIA_TYPES = {"application/xhtml+xml", "text/html", "application/xml", "text/xml"}


@dataclass
class _ManifestItem:
    href: str        # relative to the OPF directory, unquoted, no fragment
    path: str        # full path inside the container
    media_type: str
    properties: str = ""


@dataclass
class _Package:
    opf_path: str
    manifest: dict[str, _ManifestItem]
    spine: list[str]
    toc_id: str | None
    metadata: BookMetadata
    toc: list[tuple[str, str]] = field(default_factory=list)   # (full path, label)


class _Container:
    """Read-only access to the entries of a zipped or unpacked EPUB."""

    def __init__(self, epub_path: Path):
        self._root = None
        self._zip = None
        if epub_path.is_dir():
            self._root = epub_path
            return
        try:
            self._zip = zipfile.ZipFile(epub_path)
        except zipfile.BadZipFile as e:
            raise CorruptContainer(f"{epub_path.name} is not a valid EPUB archive") from e
        except OSError as e:
            raise ReadError(str(e)) from e

    def read(self, name: str) -> bytes:
        if self._zip is not None:
            return self._zip.read(name)
        root = self._root.resolve()
        target = (root / name).resolve()
        if not target.is_relative_to(root):
            raise KeyError(name)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise KeyError(name) from e

    def names(self) -> list[str]:
        if self._zip is not None:
            return self._zip.namelist()
        return [p.relative_to(self._root).as_posix() for p in sorted(self._root.rglob("*")) if p.is_file()]

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _resolve(base_dir: str, href: str) -> str:
    """Resolve an href against a container directory, dropping any #fragment."""
    target = unquote(href.split("#", 1)[0])
    return posixpath.normpath(posixpath.join(base_dir, target))


def _find_opf_path(container: _Container) -> str:
    try:
        root = ET.fromstring(container.read("META-INF/container.xml"))
        rootfile = root.find(f".//{{{CONTAINER_NS}}}rootfile")
        if rootfile is not None and rootfile.get("full-path"):
            return rootfile.get("full-path")
    except (KeyError, ET.ParseError):
        pass
    for name in container.names():
        if name.lower().endswith(".opf"):
            return name
    raise CorruptContainer("No OPF package document found")


def _extract_metadata(root: ET.Element) -> BookMetadata:
    """Read title and author from the OPF metadata block."""
    title, author = "Untitled", "Unknown"
    t = root.find(f".//{{{DC_NS}}}title")
    if t is not None and t.text:
        title = t.text.strip()
    a = root.find(f".//{{{DC_NS}}}creator")
    if a is not None and a.text:
        author = a.text.strip()
    return BookMetadata(title=title, author=author, source_format="epub")


def _read_package(container: _Container) -> _Package:
    opf_path = _find_opf_path(container)
    try:
        root = ET.fromstring(container.read(opf_path))
    except KeyError as e:
        raise CorruptContainer(f"Package document missing: {opf_path}") from e
    except ET.ParseError as e:
        raise CorruptContainer(f"Package document is not valid XML: {e}") from e

    opf_dir = posixpath.dirname(opf_path)
    manifest = {}
    for item in root.findall(f".//{{{OPF_NS}}}manifest/{{{OPF_NS}}}item"):
        item_id, href = item.get("id"), item.get("href")
        if not item_id or not href:
            continue
        manifest[item_id] = _ManifestItem(
            href=posixpath.normpath(unquote(href.split("#", 1)[0])),
            path=_resolve(opf_dir, href),
            media_type=item.get("media-type", ""),
            properties=item.get("properties") or "",
        )

    spine_el = root.find(f".//{{{OPF_NS}}}spine")
    if spine_el is None:
        raise CorruptContainer("Package document has no spine")
    spine = [ref.get("idref", "") for ref in spine_el.findall(f"{{{OPF_NS}}}itemref")]

    return _Package(
        opf_path=opf_path,
        manifest=manifest,
        spine=spine,
        toc_id=spine_el.get("toc"),
        metadata=_extract_metadata(root),
    )


def _parse_nav_document(container: _Container, nav_path: str) -> list[tuple[str, str]]:
    """EPUB 3 navigation document: anchors of the nav marked epub:type="toc"."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(container.read(nav_path), "lxml")
    navs = soup.find_all("nav")
    if not navs:
        return []
    toc_nav = next((n for n in navs if "toc" in (n.get("epub:type") or "").split()), navs[0])
    nav_dir = posixpath.dirname(nav_path)
    entries = []
    for anchor in toc_nav.find_all("a", href=True):
        label = anchor.get_text(" ", strip=True)
        if label:
            entries.append((_resolve(nav_dir, anchor["href"]), label))
    return entries


def _parse_toc_ncx(container: _Container, ncx_path: str) -> list[tuple[str, str]]:
    """EPUB 2 toc.ncx: every navPoint, nested ones included, in document order."""
    root = ET.fromstring(container.read(ncx_path))
    nav_map = root.find(f"{{{NCX_NS}}}navMap")
    if nav_map is None:
        return []
    ncx_dir = posixpath.dirname(ncx_path)
    entries = []
    for np in nav_map.iter(f"{{{NCX_NS}}}navPoint"):
        label = np.find(f"{{{NCX_NS}}}navLabel/{{{NCX_NS}}}text")
        content = np.find(f"{{{NCX_NS}}}content")
        title = label.text.strip() if label is not None and label.text else ""
        src = content.get("src", "") if content is not None else ""
        if title and src:
            entries.append((_resolve(ncx_dir, src), title))
    return entries


def _read_toc(container: _Container, package: _Package) -> list[tuple[str, str]]:
    """Best effort: a TOC that cannot be read is treated as absent."""
    nav_item = next((i for i in package.manifest.values() if "nav" in i.properties.split()), None)
    ncx_item = package.manifest.get(package.toc_id or "") or next(
        (i for i in package.manifest.values() if i.media_type == NCX_MEDIA_TYPE), None
    )
    if nav_item is not None:
        try:
            entries = _parse_nav_document(container, nav_item.path)
            if entries:
                return entries
        except Exception:
            pass
    if ncx_item is not None:
        try:
            return _parse_toc_ncx(container, ncx_item.path)
        except Exception:
            pass
    return []


def _section_title(item: _ManifestItem | None, toc: list[tuple[str, str]], position: int) -> str:
    """First TOC entry pointing at the section, else "Chapter N".

    TOC targets are container paths; a target also matches when it ends with
    the section's OPF-relative href.
    """
    if item is not None:
        for target, label in toc:
            if target == item.path or target == item.href or target.endswith("/" + item.href):
                return label.strip()
    return f"Chapter {position + 1}"


def _plain_text(content: bytes) -> str:
    return normalize_text(html.unescape(strip_tags(content)))


# Tried in order for each section; the first one that does not fail decides.
EXTRACTION_STRATEGIES = (normalize_markup, _plain_text)


def _extract_section_text(content: bytes) -> str:
    for extract in EXTRACTION_STRATEGIES:
        try:
            return extract(content)
        except Exception:
            continue
    return ""


def _load_section(container: _Container, item: _ManifestItem | None) -> str:
    """Read and extract one spine section. Empty and unreadable sections both give ""."""
    if item is None or item.media_type not in HTML_MEDIA_TYPES:
        return ""
    try:
        content = container.read(item.path)
    except Exception:
        return ""
    return _extract_section_text(content)


def parse_epub(epub_path: Path, deadline: Deadline | None = None, on_section=None) -> ParseResult:
    """Main entry point. Returns ParseResult with chapters and metadata."""
    epub_path = Path(epub_path)
    with _Container(epub_path) as container:
        package = _read_package(container)
        package.toc = _read_toc(container, package)

        chapters = []
        total = len(package.spine)
        for position, idref in enumerate(package.spine):
            if deadline is not None:
                deadline.check()
            item = package.manifest.get(idref)
            # Only one section's bytes are alive at a time; they go out of scope here.
            text = _load_section(container, item)
            if text.strip():
                title = _section_title(item, package.toc, position)
                chapters.append(Chapter(title=title, text=text, index=position))
            if on_section is not None:
                on_section(position + 1, total)

    if not chapters:
        raise NoChaptersFound(f"No readable sections in {epub_path.name}")
    return ParseResult(chapters=chapters, metadata=package.metadata)
