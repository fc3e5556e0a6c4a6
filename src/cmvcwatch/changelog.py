"""Persisted changelog format.

The changelog is an XML document written once per build and read back
for display. It is independent of the raw report layout, so changelogs of
old builds stay readable when the report tool changes. Every free-text
value is stored in an attribute, which keeps newlines, tabs and markup
characters intact across a round trip.

Layout (version 1)::

    <changelog version="1">
      <entry track="100" release="RC_1" user="bob"
             lastUpdate="2020-01-01T10:00:00" description="Fix &lt;x&gt;">
        <file name="src/a.c" revision="1.4"/>
      </entry>
      <release name="RC_1">
        <track id="100"/>
      </release>
    </changelog>

Tags and attributes are never renamed or reused; new ones come with a new
``version``.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import IO

import structlog

from cmvcwatch.errors import ChangelogFormatError
from cmvcwatch.models import ChangedFile, ChangeLogEntry, ChangeModel

logger = structlog.get_logger()

FORMAT_VERSION = "1"

_ENTRY_ATTRS = {"track", "release", "user", "lastUpdate", "description"}
_FILE_ATTRS = {"name", "revision"}

# Characters XML 1.0 cannot carry, even escaped.
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def _text(value: str, what: str) -> str:
    if _ILLEGAL_XML_CHARS.search(value):
        raise ChangelogFormatError(f"{what} contains characters not allowed in XML: {value!r}")
    return value


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def to_element(model: ChangeModel) -> ET.Element:
    root = ET.Element("changelog", version=FORMAT_VERSION)
    for entry in model.entries:
        node = ET.SubElement(
            root,
            "entry",
            track=_text(entry.track_id, "track id"),
            release=_text(entry.release_name, "release name"),
            user=_text(entry.user, "user"),
            lastUpdate=entry.last_update.isoformat(),
            description=_text(entry.description, "description"),
        )
        for changed in entry.files:
            ET.SubElement(
                node,
                "file",
                name=_text(changed.file_name, "file name"),
                revision=_text(changed.revision, "revision"),
            )
    for release, track_ids in model.tracks_by_release.items():
        node = ET.SubElement(root, "release", name=_text(release, "release name"))
        for track_id in track_ids:
            ET.SubElement(node, "track", id=_text(track_id, "track id"))
    return root


def dumps(model: ChangeModel) -> str:
    root = to_element(model)
    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def write(model: ChangeModel, sink: IO[str]) -> None:
    """Serialize ``model`` to a text sink."""
    sink.write(dumps(model))


def write_file(model: ChangeModel, path: str | Path) -> None:
    path = Path(path)
    with path.open("w", encoding="utf-8") as fh:
        write(model, fh)
    logger.info("changelog.written", path=str(path), entries=len(model.entries))


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def _check_attrs(node: ET.Element, allowed: set[str], required: tuple[str, ...]) -> None:
    unknown = set(node.attrib) - allowed
    if unknown:
        raise ChangelogFormatError(f"unknown attribute(s) {sorted(unknown)} on <{node.tag}>")
    missing = [name for name in required if name not in node.attrib]
    if missing:
        raise ChangelogFormatError(f"<{node.tag}> is missing attribute(s) {missing}")


def _read_entry(node: ET.Element) -> ChangeLogEntry:
    _check_attrs(node, _ENTRY_ATTRS, ("track", "release", "lastUpdate"))
    try:
        last_update = datetime.fromisoformat(node.attrib["lastUpdate"])
    except ValueError as exc:
        raise ChangelogFormatError(
            f"invalid lastUpdate {node.attrib['lastUpdate']!r} for track {node.attrib['track']}"
        ) from exc
    files: list[ChangedFile] = []
    for child in node:
        if child.tag != "file":
            raise ChangelogFormatError(f"unknown element <{child.tag}> in <entry>")
        _check_attrs(child, _FILE_ATTRS, ("name",))
        files.append(
            ChangedFile(file_name=child.attrib["name"], revision=child.get("revision", ""))
        )
    return ChangeLogEntry(
        track_id=node.attrib["track"],
        release_name=node.attrib["release"],
        user=node.get("user", ""),
        last_update=last_update,
        description=node.get("description", ""),
        files=files,
    )


def _read_release(node: ET.Element) -> tuple[str, list[str]]:
    _check_attrs(node, {"name"}, ("name",))
    track_ids: list[str] = []
    for child in node:
        if child.tag != "track":
            raise ChangelogFormatError(f"unknown element <{child.tag}> in <release>")
        _check_attrs(child, {"id"}, ("id",))
        track_ids.append(child.attrib["id"])
    return node.attrib["name"], track_ids


def from_element(root: ET.Element) -> ChangeModel:
    if root.tag != "changelog":
        raise ChangelogFormatError(f"expected <changelog> root, found <{root.tag}>")
    version = root.get("version")
    if version != FORMAT_VERSION:
        raise ChangelogFormatError(f"unsupported changelog version {version!r}")

    model = ChangeModel()
    for node in root:
        if node.tag == "entry":
            model.entries.append(_read_entry(node))
        elif node.tag == "release":
            name, track_ids = _read_release(node)
            model.tracks_by_release.setdefault(name, []).extend(track_ids)
        else:
            raise ChangelogFormatError(f"unknown element <{node.tag}> in <changelog>")

    known = set(model.track_ids)
    for release, track_ids in model.tracks_by_release.items():
        dangling = [t for t in track_ids if t not in known]
        if dangling:
            raise ChangelogFormatError(
                f"release {release} lists tracks without entries: {dangling}",
                release=release,
            )
    return model


def loads(text: str | bytes) -> ChangeModel:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ChangelogFormatError(f"changelog is not well-formed XML: {exc}") from exc
    return from_element(root)


def read(source: IO[str] | IO[bytes]) -> ChangeModel:
    """Parse a changelog previously produced by :func:`write`."""
    return loads(source.read())


def read_file(path: str | Path) -> ChangeModel:
    path = Path(path)
    with path.open("rb") as fh:
        return read(fh)
