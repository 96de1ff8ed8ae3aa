"""Streaming GPX track parser.

The parser turns a route document into a lazy, finite sequence of
events in document order::

    ParseStart, ParsePoint*, (ParseEnd | ParseError)

A malformed document, an I/O failure or a point without usable
``lat``/``lon`` attributes yields exactly one :class:`ParseError`, after
which the sequence ends. No partial point is ever emitted.
"""

from __future__ import annotations

import io
import logging
import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import IO

from pygpxreplay._constants import LEAF_TAGS, POINT_TAGS
from pygpxreplay.ingestion.normalize import parse_coordinate

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParseStart:
    """Document parsing started."""


@dataclass(frozen=True, slots=True)
class ParsePoint:
    """A complete point element.

    ``fields`` holds the raw attribute/leaf text keyed by GPX element
    name: ``lat`` and ``lon`` always, ``ele``/``time``/``sat``/``fix``
    when present.
    """

    fields: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ParseError:
    """Parsing failed; nothing else follows."""

    message: str


@dataclass(frozen=True, slots=True)
class ParseEnd:
    """Document parsed completely."""


ParseEvent = ParseStart | ParsePoint | ParseError | ParseEnd


class _InvalidPoint(Exception):
    pass


def _local_name(tag: str) -> str:
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.lower()


def _detach(parents: list[ET.Element], elem: ET.Element) -> None:
    elem.clear()
    if parents:
        parents[-1].remove(elem)


class GpxParser:
    """Parse GPX documents into :data:`ParseEvent` sequences.

    Each call to :meth:`parse_file` / :meth:`parse_string` returns a
    fresh iterator; an iterator cannot be resumed once it stops.
    """

    def __init__(self, *, point_tags: Iterable[str] = POINT_TAGS) -> None:
        self._point_tags = frozenset(tag.lower() for tag in point_tags)

    def parse_file(self, path: str | os.PathLike[str]) -> Iterator[ParseEvent]:
        try:
            source = open(path, "rb")  # noqa: SIM115
        except OSError as exc:
            _logger.debug("Unable to open route file path=%s", path, exc_info=True)
            yield ParseError(message=f"Unable to read {os.fspath(path)}: {exc.strerror or exc}")
            return
        with source:
            yield from self._parse(source)

    def parse_string(self, text: str) -> Iterator[ParseEvent]:
        return self._parse(io.BytesIO(text.encode("utf-8")))

    def _parse(self, source: IO[bytes]) -> Iterator[ParseEvent]:
        yield ParseStart()

        fields: dict[str, str] | None = None
        depth = 0
        # Open ancestors; finished elements are detached from them so the
        # tree never holds more than the current point.
        parents: list[ET.Element] = []
        try:
            for event, elem in ET.iterparse(source, events=("start", "end")):
                tag = _local_name(elem.tag)
                if event == "start":
                    parents.append(elem)
                    if fields is None:
                        if tag in self._point_tags:
                            fields = self._open_point(elem)
                            depth = 0
                    else:
                        depth += 1
                    continue

                parents.pop()
                if fields is None:
                    _detach(parents, elem)
                    continue
                if depth == 0:
                    # Closing the point element itself.
                    point = fields
                    fields = None
                    _detach(parents, elem)
                    yield ParsePoint(fields=point)
                    continue
                if depth == 1 and tag in LEAF_TAGS:
                    text = (elem.text or "").strip()
                    if text:
                        fields[tag] = text
                depth -= 1
        except _InvalidPoint as exc:
            yield ParseError(message=str(exc))
            return
        except ET.ParseError as exc:
            yield ParseError(message=f"Malformed route document: {exc}")
            return
        except OSError as exc:
            yield ParseError(message=f"Unable to read route document: {exc}")
            return

        yield ParseEnd()

    @staticmethod
    def _open_point(elem: ET.Element) -> dict[str, str]:
        lat = elem.get("lat")
        lon = elem.get("lon")
        try:
            parse_coordinate(lat, name="lat")
            parse_coordinate(lon, name="lon")
        except ValueError as exc:
            raise _InvalidPoint(str(exc)) from exc
        assert lat is not None and lon is not None  # noqa: S101
        return {"lat": lat.strip(), "lon": lon.strip()}
