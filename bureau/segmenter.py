from typing import Iterable, Iterator, List, Sequence

from loguru import logger


def _section_end(lowered: str, search_from: int, end_markers: List[str]) -> int:
    end = len(lowered)
    for marker in end_markers:
        if not marker:
            continue
        idx = lowered.find(marker.lower(), search_from)
        if idx != -1 and idx < end:
            end = idx
    return end


def segment_all(text: str, start_marker: str, end_markers: Iterable[str] = ()) -> Iterator[str]:
    """
    every section opened by `start_marker`, in document order

    summary boxes often repeat a heading ("Credit Enquiries (last 180 days) 2")
    well before the table it names, so callers can walk past such mentions.
    """
    if not text or not start_marker:
        return

    end_markers = list(end_markers)
    lowered = text.lower()
    needle = start_marker.lower()

    start = lowered.find(needle)
    while start != -1:
        search_from = start + len(needle)
        yield text[start:_section_end(lowered, search_from, end_markers)]
        start = lowered.find(needle, search_from)


def segment(text: str, start_marker: str, end_markers: Iterable[str] = ()) -> str:
    """
    cut one named section out of the report text

    case-insensitive search for `start_marker`; the section runs to the
    nearest end marker found after it, or to end of text. returns "" when
    the start marker is missing (section not present).
    """
    return next(segment_all(text, start_marker, end_markers), "")


def iter_sections(text: str, start_markers: Sequence[str],
                  end_markers: Iterable[str] = ()) -> Iterator[str]:
    """every section for each start marker in turn, marker order first"""
    end_markers = list(end_markers)
    for marker in start_markers:
        for block in segment_all(text, marker, end_markers):
            logger.debug(f"Section '{marker}' found ({len(block)} chars)")
            yield block

