"""
Shared model configuration
"""
import time

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds"""
    return int(time.time() * 1000)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """JSON-safe dict with camelCase keys and absent optionals dropped"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
