"""
Delta Module - Structured rich-text documents

A delta is an ordered list of insert operations. Each operation carries either
a string of literal text or an embed mapping (e.g. {"image": url}) plus an
optional mapping of formatting attributes. Newline inserts terminate a block;
their attributes describe the block (header, list, blockquote, code-block).

Stored content is resolved once into a tagged variant:
    DeltaContent(delta)  - a parsed delta document
    RawContent(text)     - legacy plain text or raw HTML
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Union


class DeltaFormatError(ValueError):
    """Raised when a value cannot be read as a delta document"""


@dataclass(frozen=True)
class Op:
    insert: Union[str, dict]
    attributes: dict = field(default_factory=dict)

    @property
    def is_text(self):
        return isinstance(self.insert, str)

    def to_dict(self):
        data = {'insert': self.insert}
        if self.attributes:
            data['attributes'] = dict(self.attributes)
        return data

    @classmethod
    def from_dict(cls, raw):
        if not isinstance(raw, dict) or 'insert' not in raw:
            raise DeltaFormatError(f"Operation must be a mapping with an 'insert' key: {raw!r}")
        insert = raw['insert']
        if not isinstance(insert, (str, dict)):
            raise DeltaFormatError(f"Unsupported insert payload: {insert!r}")
        attributes = raw.get('attributes') or {}
        if not isinstance(attributes, dict):
            raise DeltaFormatError(f"Attributes must be a mapping: {attributes!r}")
        return cls(insert=insert, attributes=dict(attributes))


@dataclass
class Delta:
    ops: List[Op] = field(default_factory=list)

    @classmethod
    def from_ops(cls, ops):
        if not isinstance(ops, list):
            raise DeltaFormatError('Delta ops must be a list')
        return cls(ops=[op if isinstance(op, Op) else Op.from_dict(op) for op in ops])

    @classmethod
    def from_text(cls, text):
        """Build a plain delta; Quill documents always end with a newline"""
        if not text.endswith('\n'):
            text += '\n'
        return cls(ops=[Op(insert=text)])

    @classmethod
    def loads(cls, raw):
        """Parse a serialized {"ops": [...]} document"""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as e:
            raise DeltaFormatError(f"Not valid JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get('ops'), list):
            raise DeltaFormatError("JSON value does not expose an 'ops' list")
        return cls.from_ops(data['ops'])

    def dumps(self):
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(',', ':'))

    def to_dict(self):
        return {'ops': [op.to_dict() for op in self.ops]}

    def insert(self, value, attributes=None):
        """Append an insert, merging with the previous text op when formatting matches"""
        attributes = dict(attributes or {})
        if isinstance(value, str) and not value:
            return self
        if self.ops and isinstance(value, str):
            last = self.ops[-1]
            if last.is_text and last.attributes == attributes:
                self.ops[-1] = Op(insert=last.insert + value, attributes=attributes)
                return self
        self.ops.append(Op(insert=value, attributes=attributes))
        return self

    def plain_text(self):
        return ''.join(op.insert for op in self.ops if op.is_text)

    def __len__(self):
        return len(self.ops)


@dataclass(frozen=True)
class DeltaContent:
    delta: Delta


@dataclass(frozen=True)
class RawContent:
    text: str


Content = Union[DeltaContent, RawContent]


def parse_content(raw: Optional[str]) -> Content:
    """Resolve a stored content/description value into its tagged variant.

    The value is a delta when it parses as JSON and exposes an ``ops`` list;
    anything else (invalid JSON, other JSON shapes, malformed operations) is
    treated as legacy text/HTML.
    """
    if raw is None:
        return RawContent('')
    if isinstance(raw, dict):
        try:
            return DeltaContent(Delta.from_ops(raw.get('ops')))
        except DeltaFormatError:
            return RawContent(json.dumps(raw))
    try:
        return DeltaContent(Delta.loads(raw))
    except DeltaFormatError:
        return RawContent(raw)


__all__ = [
    'Content',
    'Delta',
    'DeltaContent',
    'DeltaFormatError',
    'Op',
    'RawContent',
    'parse_content',
]
