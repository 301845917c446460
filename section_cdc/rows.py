from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union


# Column name -> string value (None for SQL NULL)
RowImage = Mapping[str, Optional[str]]


class ChangeKind(str, Enum):
    """Kind of row mutation carried by a change event."""

    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass(frozen=True)
class InsertRow:
    """A row that was inserted; only the after image exists."""

    after: RowImage
    kind: ChangeKind = field(default=ChangeKind.INSERT, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.kind.value, "after": dict(self.after)}


@dataclass(frozen=True)
class DeleteRow:
    """A row that was deleted; only the before image exists."""

    before: RowImage
    kind: ChangeKind = field(default=ChangeKind.DELETE, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"event_type": self.kind.value, "before": dict(self.before)}


@dataclass(frozen=True)
class UpdateRow:
    """
    A row that was updated, carrying both images.

    An update can be projected onto the other two kinds when a column filter
    decides that, from a consumer's point of view, the row entered or left
    the matched set.
    """

    before: RowImage
    after: RowImage
    kind: ChangeKind = field(default=ChangeKind.UPDATE, init=False)

    def to_insert(self) -> InsertRow:
        """Project onto an insert of the after image."""
        return InsertRow(after=self.after)

    def to_delete(self) -> DeleteRow:
        """Project onto a delete of the before image."""
        return DeleteRow(before=self.before)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.kind.value,
            "before": dict(self.before),
            "after": dict(self.after),
        }


ChangeRow = Union[InsertRow, UpdateRow, DeleteRow]


class BatchKey(NamedTuple):
    """Identity of a batch: consecutive micro-batches merge iff keys are equal."""

    schema: str
    table: str
    kind: ChangeKind


@dataclass
class RowBatch:
    """
    A micro-batch as delivered by a transport.

    All rows share one (schema, table, kind) triple.
    """

    schema: str
    table: str
    kind: ChangeKind
    rows: List[ChangeRow] = field(default_factory=list)

    @property
    def key(self) -> BatchKey:
        return BatchKey(self.schema, self.table, self.kind)
