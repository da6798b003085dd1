"""
Pytest configuration and fixtures for Google Docs unit tests.

Documents are built as raw API dicts with the same index layout the Docs API
returns: the body starts with a section break ending at 1, every paragraph
ends with "\\n", and tables, rows and cells each consume one index before
their content. The Docs service is a MagicMock; documents().get() returns the
queued documents in order.
"""
from typing import Any, Dict, List, Optional, Sequence, Union
from unittest.mock import MagicMock

import pytest

from gdocs.docs_helpers import utf16_len

# A None part stands for a one-index inline object (image, page break, ...).
Part = Optional[str]


def make_paragraph(
    start: int,
    parts: Sequence[Part],
    bullet: bool = False,
    named_style: str = "NORMAL_TEXT",
) -> Dict[str, Any]:
    elements = []
    index = start
    for part in parts:
        if part is None:
            elements.append({
                "startIndex": index,
                "endIndex": index + 1,
                "inlineObjectElement": {"inlineObjectId": f"obj.{index}"},
            })
            index += 1
            continue
        length = utf16_len(part)
        elements.append({
            "startIndex": index,
            "endIndex": index + length,
            "textRun": {"content": part, "textStyle": {}},
        })
        index += length

    paragraph = {"elements": elements, "paragraphStyle": {"namedStyleType": named_style}}
    if bullet:
        paragraph["bullet"] = {"listId": "kix.list1"}
    return {"startIndex": start, "endIndex": index, "paragraph": paragraph}


def make_table(start: int, rows: List[List[str]]) -> Dict[str, Any]:
    index = start + 1
    table_rows = []
    for row in rows:
        row_start = index
        index += 1
        cells = []
        for text in row:
            cell_start = index
            paragraph = make_paragraph(cell_start + 1, [text + "\n"])
            index = paragraph["endIndex"]
            cells.append({
                "startIndex": cell_start,
                "endIndex": index,
                "content": [paragraph],
                "tableCellStyle": {},
            })
        table_rows.append({"startIndex": row_start, "endIndex": index, "tableCells": cells})

    return {
        "startIndex": start,
        "endIndex": index + 1,
        "table": {
            "rows": len(rows),
            "columns": len(rows[0]) if rows else 0,
            "tableRows": table_rows,
        },
    }


class DocBuilder:
    """Appends body elements at the next free index."""

    def __init__(self, document_id: str = "doc123", title: str = "Test Doc"):
        self.document_id = document_id
        self.title = title
        self.content: List[Dict[str, Any]] = [{"endIndex": 1, "sectionBreak": {"sectionStyle": {}}}]
        self.index = 1

    def paragraph(
        self,
        text: Union[str, Sequence[Part]] = "",
        bullet: bool = False,
        named_style: str = "NORMAL_TEXT",
    ) -> Dict[str, Any]:
        """Add a paragraph. A list of parts splits it into runs; the newline is appended."""
        parts = [text] if isinstance(text, str) else list(text)
        if parts and isinstance(parts[-1], str):
            parts[-1] = parts[-1] + "\n"
        else:
            parts.append("\n")
        element = make_paragraph(self.index, parts, bullet, named_style)
        self.content.append(element)
        self.index = element["endIndex"]
        return element

    def pad_to(self, index: int) -> "DocBuilder":
        """Add one filler paragraph so the next element starts at index."""
        filler = index - self.index - 1
        assert filler >= 0, f"cannot pad from {self.index} to {index}"
        self.paragraph("x" * filler)
        return self

    def table(self, rows: List[List[str]]) -> Dict[str, Any]:
        element = make_table(self.index, rows)
        self.content.append(element)
        self.index = element["endIndex"]
        return element

    def section_break(self) -> Dict[str, Any]:
        element = {"startIndex": self.index, "endIndex": self.index + 1, "sectionBreak": {"sectionStyle": {}}}
        self.content.append(element)
        self.index += 1
        return element

    def build(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "title": self.title,
            "revisionId": "rev-1",
            "body": {"content": list(self.content)},
        }

    def build_with_tabs(self, tab_id: str = "t.0", title: str = "Tab 1") -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "title": self.title,
            "tabs": [{
                "tabProperties": {"tabId": tab_id, "title": title, "index": 0},
                "documentTab": {"body": {"content": list(self.content)}},
            }],
        }


def make_service(*documents: Dict[str, Any], batch_response: Optional[Dict[str, Any]] = None) -> MagicMock:
    service = MagicMock()
    service.documents.return_value.get.return_value.execute.side_effect = list(documents)
    service.documents.return_value.batchUpdate.return_value.execute.return_value = batch_response or {}
    return service


def batch_requests(service: MagicMock, call: int = 0) -> List[Dict[str, Any]]:
    """Requests sent in the Nth batchUpdate call."""
    return service.documents.return_value.batchUpdate.call_args_list[call][1]["body"]["requests"]


@pytest.fixture
def doc_builder():
    """Factory for DocBuilder instances."""
    return DocBuilder


@pytest.fixture
def service_factory():
    """Factory for a mocked Docs service returning the given documents in order."""
    return make_service


@pytest.fixture
def sent_requests():
    """Accessor for the requests of the Nth batchUpdate call."""
    return batch_requests
