from __future__ import annotations

import zipfile
from pathlib import Path

import pytest


class FakeTimer:
    """Stands in for RepeatingTimer; ticks only when the test calls fire()."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        # Fires even after cancel(), like a tick that was already in flight.
        for _ in range(times):
            self.callback()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, callback) -> FakeTimer:
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def xhtml(body: str, title: str = "Section") -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>{title}</title></head>
  <body>
{body}
  </body>
</html>
"""


def _opf(sections, toc_kind: str) -> str:
    items = [
        f'    <item id="s{i}" href="{name}" media-type="application/xhtml+xml"/>'
        for i, (name, _) in enumerate(sections)
    ]
    spine_attr = ""
    if toc_kind == "ncx":
        items.append('    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>')
        spine_attr = ' toc="ncx"'
    elif toc_kind == "nav":
        items.append('    <item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>')
    itemrefs = [f'    <itemref idref="s{i}"/>' for i in range(len(sections))]
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package version="3.0" unique-identifier="BookId" xmlns="http://www.idpf.org/2007/opf">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Sample Book</dc:title>
    <dc:creator>Sample Author</dc:creator>
  </metadata>
  <manifest>
{chr(10).join(items)}
  </manifest>
  <spine{spine_attr}>
{chr(10).join(itemrefs)}
  </spine>
</package>
"""


def _ncx(toc) -> str:
    points = []
    for n, (target, label) in enumerate(toc, start=1):
        points.append(
            f'    <navPoint id="np{n}" playOrder="{n}">'
            f"<navLabel><text>{label}</text></navLabel>"
            f'<content src="{target}"/></navPoint>'
        )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
{chr(10).join(points)}
  </navMap>
</ncx>
"""


def _nav(toc) -> str:
    links = "\n".join(f'      <li><a href="{target}">{label}</a></li>' for target, label in toc)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
  <head><title>Contents</title></head>
  <body>
    <nav epub:type="toc"><ol>
{links}
    </ol></nav>
  </body>
</html>
"""


@pytest.fixture
def make_epub(tmp_path: Path):
    """
    Build a zipped EPUB under tmp_path.

    `sections` is a list of (file name, xhtml or None); None lists the section
    in the manifest and spine but leaves it out of the archive. `toc` is a
    list of (href, label) written as an NCX or EPUB 3 nav document.
    """

    def build(sections, toc=None, toc_kind: str = "ncx", name: str = "book.epub", raw_ncx: str | None = None) -> Path:
        if toc is None and raw_ncx is None:
            toc_kind = "none"
        epub_path = tmp_path / name
        with zipfile.ZipFile(epub_path, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip")
            zf.writestr("META-INF/container.xml", CONTAINER_XML)
            zf.writestr("OEBPS/content.opf", _opf(sections, toc_kind))
            if toc_kind == "ncx":
                zf.writestr("OEBPS/toc.ncx", raw_ncx if raw_ncx is not None else _ncx(toc))
            elif toc_kind == "nav":
                zf.writestr("OEBPS/nav.xhtml", _nav(toc))
            for file_name, content in sections:
                if content is not None:
                    zf.writestr(f"OEBPS/{file_name}", content)
        return epub_path

    return build
