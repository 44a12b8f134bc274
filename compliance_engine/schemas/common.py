"""
Shared schema base and pagination block.
API payloads use camelCase keys; Python code uses snake_case.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int
