from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from snaplog.events import CategorizedRecord, EventKind, to_plain_value


class RecordModel(BaseModel):
    """
    Transport form of a CategorizedRecord.

    Field names on the wire are camelCase (``createdAtLocal``); Python
    code may use either spelling. Category values are expected to be
    plain JSON data, see ``from_record``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: EventKind
    message: str = ""
    created_at_local: datetime
    created_at_utc: datetime
    signature: Optional[str] = None
    categories: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator('kind', mode='before')
    @classmethod
    def parse_kind(cls, value):
        return EventKind.parse(value)

    @classmethod
    def from_record(cls, record: CategorizedRecord) -> "RecordModel":
        return cls(
            id=record.id,
            kind=record.kind,
            message=record.message or "",
            created_at_local=record.created_at_local,
            created_at_utc=record.created_at_utc,
            signature=record.signature,
            categories={
                name: {field: to_plain_value(value) for field, value in fields.items()}
                for name, fields in record.categories.items()
            },
        )

    def to_record(self) -> CategorizedRecord:
        record = CategorizedRecord(
            self.kind,
            self.message,
            id=self.id,
            created_at_local=self.created_at_local,
            created_at_utc=self.created_at_utc,
            signature=self.signature,
        )
        for name, fields in self.categories.items():
            category = record.get_or_create_category(name)
            if category is not None:
                category.update(fields)
        return record
