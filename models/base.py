"""Shared base model for pipeline records.

All records cross the JSON entry points with camelCase keys (newsSummary,
foundByKeyword, videoCount), while Python code uses snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """BaseModel that reads and writes camelCase JSON keys.

    Both the alias (``newsSummary``) and the field name (``news_summary``)
    are accepted on input. Use ``to_json_dict()`` for output.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
