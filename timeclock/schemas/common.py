import re
from typing import Annotated, Any, List

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic.alias_generators import to_camel

OBJECT_ID_RE = re.compile(r"^[a-fA-F0-9]{24}$")

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted too."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def object_id(value: str, entity: str = "") -> str:
    """Check a path identifier before it reaches the database."""
    if not isinstance(value, str) or not OBJECT_ID_RE.match(value):
        label = f"Invalid {entity} ID" if entity else "Invalid ID"
        raise HTTPException(status_code=400, detail=label)
    return value


def string_list(value: Any) -> List[str]:
    """Normalise a string or list of strings into a trimmed list without blanks."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    value = str(value).strip()
    return [value] if value else []
